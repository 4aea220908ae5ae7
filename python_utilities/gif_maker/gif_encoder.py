"""
gif_encoder.py

Description:
	Wraps Pillow's GIF writer in an encoder session that is fed one frame at a time.
	The session is a context manager: the output stream is opened on entry and is
	always closed on exit, including when a frame raises part way through.

	Every added frame is encoded and appended to the stream straight away, so the
	output holds exactly one image per add_frame() call, even when two consecutive
	frames are identical.

	Session settings (repeat, delay, quality, transparent color) are global to the
	animation, not per frame. The header and loop count are written with the first
	frame, so settings must be made before it.

Dependencies:
    - PIL (Python Imaging Library)

Usage:
	with GifEncoderSession("out.gif", 64, 64) as encoder:
		encoder.set_repeat(0)
		encoder.set_delay(76)
		encoder.set_transparent(0x000000)
		encoder.add_frame(canvas)
		encoder.finish()
"""
from PIL import GifImagePlugin, Image, ImageChops
import os
import struct

#palette index reserved for the transparent color key
TRANSPARENT_INDEX = 255
#lower quality values trade speed for extra k-means passes
QUALITY_MIN = 1
QUALITY_KMEANS_CEILING = 20

#disposal methods, see GIF89a graphic control extension
DISPOSAL_UNSPECIFIED = 0
DISPOSAL_RESTORE_BACKGROUND = 2

GIF_TRAILER = b";"


def color_to_rgb(color):
	"""Splits a 24 bit 0xRRGGBB integer into an (r, g, b) tuple."""
	return ((color >> 16) & 0xFF, (color >> 8) & 0xFF, color & 0xFF)


def delay_to_gif_duration(delay):
	"""Rounds a delay in milliseconds, half up, to the hundredths of a second a gif can store."""
	return int(delay / 10 + 0.5) * 10


class GifEncoderSession:
	"""
	Encoder session bound to a fixed output size and output path.

	Lifecycle: start -> set_* -> add_frame ... -> finish. Each frame is quantized and
	written when it is added. finish() writes the trailer and flushes the stream to
	disk. Leaving the with block closes the stream whether or not finish() ran.
	"""

	def __init__(self, output_path, width, height):
		self.output_path = output_path
		self.width = width
		self.height = height
		self.repeat = 0
		self.delay = 0
		self.quality = 10
		self.transparent = None
		self._frame_count = 0
		self._stream = None
		self._finished = False

	def __enter__(self):
		self.start()
		return self

	def __exit__(self, exc_type, exc_value, traceback):
		self.close()
		return False

	@property
	def frame_count(self):
		return self._frame_count

	@property
	def closed(self):
		return self._stream is None or self._stream.closed

	def start(self):
		"""Opens (and truncates) the output stream."""
		if self._stream is not None:
			raise RuntimeError("encoder session already started")
		self._stream = open(self.output_path, "wb")

	def close(self):
		if self._stream is not None:
			self._stream.close()

	def set_repeat(self, repeat):
		"""0 loops forever, None plays the animation once, n > 0 repeats n times."""
		self.repeat = repeat

	def set_delay(self, delay):
		"""Delay between frames in milliseconds."""
		self.delay = delay

	def set_quality(self, quality):
		self.quality = max(QUALITY_MIN, quality)

	def set_transparent(self, color):
		"""Declares the 0xRRGGBB color rendered transparent, None disables transparency."""
		self.transparent = color

	def _check_open(self):
		if self._finished:
			raise RuntimeError("encoder session already finished")
		if self.closed:
			raise RuntimeError("encoder session is not started")

	def add_frame(self, canvas):
		"""
		Encodes the current pixels of canvas as the next frame and appends it to the stream.

		Alpha is dropped the same way a 2D canvas readback is, so fully cleared pixels
		become black. With a transparent color set, pixels exactly matching it are
		moved to the reserved palette index which is declared transparent.
		"""
		self._check_open()
		if canvas.size != (self.width, self.height):
			raise ValueError(f"frame size {canvas.size} does not match encoder size {(self.width, self.height)}")

		frame = self._quantize(canvas.convert("RGB"))

		if self._frame_count == 0:
			self._write_header(frame)

		params = {
			"duration": delay_to_gif_duration(self.delay),
			"disposal": DISPOSAL_RESTORE_BACKGROUND if self.transparent is not None else DISPOSAL_UNSPECIFIED,
			"include_color_table": True,
		}
		if self.transparent is not None:
			params["transparency"] = TRANSPARENT_INDEX

		for chunk in GifImagePlugin.getdata(frame, **params):
			self._stream.write(chunk)
		self._frame_count += 1

	def _quantize(self, rgb):
		kmeans = max(0, QUALITY_KMEANS_CEILING - self.quality)
		frame = rgb.quantize(colors=TRANSPARENT_INDEX, method=Image.Quantize.MEDIANCUT, kmeans=kmeans)

		if self.transparent is not None:
			key = color_to_rgb(self.transparent)
			palette = frame.getpalette()[:TRANSPARENT_INDEX * 3]
			palette += [0] * (TRANSPARENT_INDEX * 3 - len(palette))
			frame.putpalette(palette + list(key))
			frame.paste(TRANSPARENT_INDEX, (0, 0, self.width, self.height), self._key_mask(rgb, key))

		return frame

	def _key_mask(self, rgb, key):
		#255 where every channel equals the key, 0 elsewhere
		diff = ImageChops.difference(rgb, Image.new("RGB", rgb.size, key))
		r, g, b = diff.point(lambda v: 255 if v else 0).split()
		return ImageChops.invert(ImageChops.lighter(ImageChops.lighter(r, g), b))

	def _write_header(self, frame):
		#GIF89a signature, logical screen, global palette of the first frame, loop extension
		info = {}
		if self.repeat is not None:
			info["loop"] = self.repeat
		frame.info["version"] = b"89a"
		header, _ = GifImagePlugin.getheader(frame, info=info)
		for chunk in header:
			self._stream.write(chunk)

	def finish(self):
		"""Writes the trailer and waits for the bytes to reach disk."""
		self._check_open()

		if self._frame_count == 0:
			#no frames: header, logical screen descriptor without color table
			self._stream.write(b"GIF89a" + struct.pack("<HHBBB", self.width, self.height, 0, 0, 0))

		self._stream.write(GIF_TRAILER)
		self._stream.flush()
		os.fsync(self._stream.fileno())
		self._finished = True
		self.close()
