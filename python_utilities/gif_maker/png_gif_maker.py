"""
png_gif_maker.py

Description:
	Assembles every .png file in a directory into one animated gif.
	Files are played back in plain name order, so numbered frames must be zero padded
	(frame_009.png sorts before frame_010.png, frame_9.png does not).

	Each frame is drawn onto a single reusable canvas, stretched to exactly fill the
	output size, and handed to the encoder session. Frames that cannot be decoded are
	reported and skipped, they never abort the run.

Dependencies:
    - PIL (Python Imaging Library)
    - terminaltables
    - argparse

Usage:
    python png_gif_maker.py [input_directory] [-o <output>] [-d <delay_ms>] [-s <size>]
                            [-W <width>] [-H <height>] [-r <repeat>] [-q <quality>]
                            [-N] [-c <color>]

Args:
    input_directory (str): Directory containing the .png frames (default: ./purple/).
    -o, --output (str): Output gif file, overwritten if it exists (default: purple.gif).
    -d, --delay (int): Delay between frames in milliseconds (default: 76).
    -s, --size (int): Width and height of the output in pixels (default: 64).
    -W, --width (int): Output width, overrides --size.
    -H, --height (int): Output height, overrides --size.
    -r, --repeat (int): 0 loops forever, -1 plays once, n repeats n times (default: 0).
    -q, --quality (int): Palette quality 1-30, lower is better (default: 20).
    -N, --no_transparency: Do not declare a transparent color.
    -c, --transparent_color (str): Hex color rendered transparent (default: 000000).

Example:
    python png_gif_maker.py ./purple/ -o purple.gif -d 76 -s 64
"""
from dataclasses import dataclass
from typing import Optional
from PIL import Image
from terminaltables import AsciiTable
import argparse
import os
import sys

from gif_encoder import GifEncoderSession

PNG_EXTENSION = ".png"
#AppleDouble resource fork files copied alongside the real frames
HIDDEN_PREFIX = "._"

DEFAULT_INPUT_DIRECTORY = "./purple/"
DEFAULT_OUTPUT_PATH = "purple.gif"
DEFAULT_FRAME_DELAY = 76
DEFAULT_SIZE = 64

QUALITY_MAX = 30
COLOR_MAX = 0xFFFFFF


@dataclass(frozen=True)
class RenderConfig:
	width: int = 200
	height: int = 200
	delay: int = 500 #milliseconds between frames
	repeat: Optional[int] = 0 #0 = loop forever, None = don't loop
	quality: int = 20 #lower is better quality (1-30)
	transparent: bool = True
	transparent_color: int = 0x000000

	def __post_init__(self):
		if self.width <= 0 or self.height <= 0:
			raise ValueError(f"output size must be positive, got {self.width}x{self.height}")
		if self.delay < 0:
			raise ValueError(f"delay must not be negative, got {self.delay}")
		if self.repeat is not None and self.repeat < 0:
			raise ValueError(f"repeat must be None or >= 0, got {self.repeat}")
		if not 1 <= self.quality <= QUALITY_MAX:
			raise ValueError(f"quality must be between 1 and {QUALITY_MAX}, got {self.quality}")
		if not 0 <= self.transparent_color <= COLOR_MAX:
			raise ValueError(f"transparent color must be a 24 bit rgb value, got {self.transparent_color:#x}")

"""
Function: list_png_files

Description:
    Lists the frames in a directory: visible files with the given extension (case
    insensitive), sorted by name. Errors from reading the directory are not caught.

Args:
    directory_path (str): Directory to scan.
    extension (str): Extension of the frames, including the dot.

Returns:
    list: Paths of the frames, directory_path joined with each file name, in playback order.
"""
def list_png_files(directory_path, extension=PNG_EXTENSION):
	png_files = []

	for file_name in sorted(os.listdir(directory_path)):
		if file_name.startswith(HIDDEN_PREFIX):
			continue
		if os.path.splitext(file_name)[1].lower() != extension.lower():
			continue

		file_path = os.path.join(directory_path, file_name)
		if os.path.isfile(file_path):
			png_files.append(file_path)

	return png_files

"""
Function: load_frame

Description:
    Decodes an image file completely so that a corrupt file fails here rather than
    while it is being drawn.

Args:
    file_path (str): Path of the image.

Returns:
    Image: RGBA PIL Image object.
"""
def load_frame(file_path):
	with Image.open(file_path) as im:
		im.load()
		return im.convert("RGBA")

"""
Function: create_animated_gif

Description:
    Draws each frame onto one reusable canvas and encodes it into an animated gif.
    Frames that fail to decode are reported and skipped. Errors writing the output
    are raised.

Args:
    png_files (list): Frame paths in playback order.
    output_path (str): Gif file to write, overwritten if it exists.
    config (RenderConfig): Output size, timing, looping and transparency settings.

Returns:
    str: output_path, once the gif has been flushed to disk.
"""
def create_animated_gif(png_files, output_path, config=None):
	if config is None:
		config = RenderConfig()

	size = (config.width, config.height)

	with GifEncoderSession(output_path, config.width, config.height) as encoder:
		encoder.set_repeat(config.repeat)
		encoder.set_delay(config.delay)
		encoder.set_quality(config.quality)
		if config.transparent:
			encoder.set_transparent(config.transparent_color)

		canvas = Image.new("RGBA", size, (0, 0, 0, 0))

		for file_path in png_files:
			try:
				image = load_frame(file_path)
			except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
				print(f"Error processing {file_path}: {e}", file=sys.stderr)
				continue

			#clear, previous frame must not bleed through transparent areas
			canvas.paste((0, 0, 0, 0), (0, 0) + size)
			canvas.alpha_composite(image.resize(size, Image.LANCZOS))
			encoder.add_frame(canvas)

		encoder.finish()

	return output_path

"""
Function: parse_color

Description:
    argparse type for hex colors such as '000000', '#ff00ff' or '0xff00ff'.
"""
def parse_color(value):
	digits = value.lower()
	for prefix in ("#", "0x"):
		if digits.startswith(prefix):
			digits = digits[len(prefix):]
	try:
		color = int(digits, 16)
	except ValueError:
		raise argparse.ArgumentTypeError(f"'{value}' is not a hex color")
	if len(digits) != 6:
		raise argparse.ArgumentTypeError(f"'{value}' is not a 6 digit hex color")
	return color

def parse_args(argv=None):
	parser = argparse.ArgumentParser(prog = 'png gif maker', description='Assembles the .png files of a directory into an animated gif.')
	parser.add_argument('input_directory', type = str, nargs='?', default = DEFAULT_INPUT_DIRECTORY, help='Directory containing the .png frames, played back in file name order (default: %(default)s).')
	parser.add_argument('-o', '-O', '--output', type = str, default = DEFAULT_OUTPUT_PATH, help='Output gif file, overwritten if it already exists (default: %(default)s).')
	parser.add_argument('-d', '-D', '--delay', type=int, default = DEFAULT_FRAME_DELAY, help='Delay between frames in milliseconds (default: %(default)s).')
	parser.add_argument('-s', '-S', '--size', type=int, default = DEFAULT_SIZE, help='Width and height of the output, frames are stretched to fill it (default: %(default)s).')
	parser.add_argument('-W', '--width', type=int, help='Output width, overrides --size.')
	parser.add_argument('-H', '--height', type=int, help='Output height, overrides --size.')
	parser.add_argument('-r', '-R', '--repeat', type=int, default = 0, help='Times the animation repeats, 0 loops forever, -1 plays once (default: %(default)s).')
	parser.add_argument('-q', '-Q', '--quality', type=int, metavar='x', choices=range(1, QUALITY_MAX + 1), default = 20, help=f'Palette quality 1-{QUALITY_MAX}, lower is better and slower (default: %(default)s).')
	parser.add_argument('-N', '-n', '--no_transparency', action='store_true', help='Do not declare a transparent color, cleared areas will appear black.')
	parser.add_argument('-c', '-C', '--transparent_color', type=parse_color, help='Hex color rendered transparent (default: 000000).')

	args = parser.parse_args(argv)

	#-c only available if transparency is on
	if args.transparent_color is not None and args.no_transparency:
		parser.error('-c/--transparent_color cannot be used with -N/--no_transparency')

	if args.size <= 0 or (args.width is not None and args.width <= 0) or (args.height is not None and args.height <= 0):
		parser.error('output size must be positive')

	if args.delay < 0:
		parser.error('-d/--delay must not be negative')

	if args.repeat < -1:
		parser.error('-r/--repeat must be -1 or greater')

	return args

def config_from_args(args):
	return RenderConfig(
		width = args.width if args.width is not None else args.size,
		height = args.height if args.height is not None else args.size,
		delay = args.delay,
		repeat = None if args.repeat < 0 else args.repeat,
		quality = args.quality,
		transparent = not args.no_transparency,
		transparent_color = args.transparent_color if args.transparent_color is not None else 0x000000,
	)

def main(argv=None):
	args = parse_args(argv)
	config = config_from_args(args)

	try:
		png_files = list_png_files(args.input_directory)
	except OSError as e:
		print(f"Error reading {args.input_directory}: {e}", file=sys.stderr)
		return 1

	if len(png_files) == 0:
		print(f"No PNG files found in directory {args.input_directory}", file=sys.stderr)
		return 1

	table_data = [["#", "Found PNG file"]]
	table_data += [[i + 1, file_path] for i, file_path in enumerate(png_files)]
	print(AsciiTable(table_data).table)

	try:
		create_animated_gif(png_files, args.output, config)
	except OSError as e:
		print(f"Error writing {args.output}: {e}", file=sys.stderr)
		return 1

	print(f"GIF created successfully: {args.output}")
	return 0


if __name__ == '__main__':
	sys.exit(main())
