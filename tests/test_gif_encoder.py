import struct

import pytest
from PIL import Image

from conftest import read_gif
from gif_encoder import GifEncoderSession
from gif_encoder import TRANSPARENT_INDEX
from gif_encoder import color_to_rgb
from gif_encoder import delay_to_gif_duration


def solid(color, size=(16, 16)):
    return Image.new("RGBA", size, color)


def test_color_to_rgb():
    assert color_to_rgb(0x000000) == (0, 0, 0)
    assert color_to_rgb(0xFF8001) == (255, 128, 1)


def test_session_writes_frames(tmp_path):
    output = str(tmp_path / "out.gif")

    with GifEncoderSession(output, 16, 16) as encoder:
        encoder.set_repeat(3)
        encoder.set_delay(100)
        encoder.add_frame(solid((255, 0, 0, 255)))
        encoder.add_frame(solid((0, 0, 255, 255)))
        assert encoder.frame_count == 2
        encoder.finish()

    size, frame_count, durations, loop, centers = read_gif(output)
    assert size == (16, 16)
    assert frame_count == 2
    assert durations == [100, 100]
    assert loop == 3
    assert centers == [(255, 0, 0), (0, 0, 255)]


def test_add_frame_snapshots_canvas(tmp_path):
    output = str(tmp_path / "out.gif")
    canvas = solid((255, 0, 0, 255))

    with GifEncoderSession(output, 16, 16) as encoder:
        encoder.add_frame(canvas)
        canvas.paste((0, 255, 0, 255), (0, 0, 16, 16))
        encoder.add_frame(canvas)
        encoder.finish()

    _, _, _, _, centers = read_gif(output)
    assert centers == [(255, 0, 0), (0, 255, 0)]


def test_transparent_key_uses_reserved_index(tmp_path):
    output = str(tmp_path / "out.gif")

    with GifEncoderSession(output, 16, 16) as encoder:
        encoder.set_transparent(0xFF00FF)
        canvas = solid((255, 0, 255, 255))
        canvas.paste((0, 0, 0, 255), (0, 0, 8, 16))
        encoder.add_frame(canvas)
        encoder.finish()

    with Image.open(output) as im:
        assert im.info["transparency"] == TRANSPARENT_INDEX
        assert im.getpixel((12, 8)) == TRANSPARENT_INDEX
        assert im.getpixel((4, 8)) != TRANSPARENT_INDEX
        rgba = im.convert("RGBA")
        assert rgba.getpixel((12, 8))[3] == 0
        assert rgba.getpixel((4, 8)) == (0, 0, 0, 255)


def test_zero_frames_writes_empty_gif(tmp_path):
    output = tmp_path / "out.gif"

    with GifEncoderSession(str(output), 20, 10) as encoder:
        encoder.finish()

    assert output.read_bytes() == b"GIF89a" + struct.pack("<HHBBB", 20, 10, 0, 0, 0) + b";"


def test_frame_size_mismatch(tmp_path):
    with GifEncoderSession(str(tmp_path / "out.gif"), 16, 16) as encoder:
        with pytest.raises(ValueError):
            encoder.add_frame(solid((0, 0, 0, 255), size=(8, 8)))


def test_stream_closed_when_frame_raises(tmp_path):
    encoder = GifEncoderSession(str(tmp_path / "out.gif"), 16, 16)

    with pytest.raises(ValueError):
        with encoder:
            encoder.add_frame(solid((255, 0, 0, 255)))
            encoder.add_frame(solid((255, 0, 0, 255), size=(4, 4)))

    assert encoder.closed
    assert (tmp_path / "out.gif").read_bytes().startswith(b"GIF89a")


def test_add_frame_requires_started_session(tmp_path):
    encoder = GifEncoderSession(str(tmp_path / "out.gif"), 16, 16)
    with pytest.raises(RuntimeError):
        encoder.add_frame(solid((255, 0, 0, 255)))


def test_finish_twice(tmp_path):
    with GifEncoderSession(str(tmp_path / "out.gif"), 16, 16) as encoder:
        encoder.add_frame(solid((255, 0, 0, 255)))
        encoder.finish()
        with pytest.raises(RuntimeError):
            encoder.finish()


def test_start_twice(tmp_path):
    with GifEncoderSession(str(tmp_path / "out.gif"), 16, 16) as encoder:
        with pytest.raises(RuntimeError):
            encoder.start()


def test_quality_clamped():
    encoder = GifEncoderSession("unused.gif", 16, 16)
    encoder.set_quality(-4)
    assert encoder.quality == 1


def test_delay_rounded_to_hundredths():
    assert delay_to_gif_duration(76) == 80
    assert delay_to_gif_duration(74) == 70
    assert delay_to_gif_duration(25) == 30
    assert delay_to_gif_duration(0) == 0


def test_identical_frames_each_encoded(tmp_path):
    output = str(tmp_path / "out.gif")

    with GifEncoderSession(output, 16, 16) as encoder:
        encoder.set_delay(76)
        encoder.set_transparent(0x000000)
        for color in ((255, 0, 0, 255), (255, 0, 0, 255), (255, 0, 0, 255), (0, 255, 0, 255)):
            encoder.add_frame(solid(color))
        assert encoder.frame_count == 4
        encoder.finish()

    _, frame_count, durations, _, centers = read_gif(output)
    assert frame_count == 4
    assert durations == [80, 80, 80, 80]
    assert centers == [(255, 0, 0), (255, 0, 0), (255, 0, 0), (0, 255, 0)]
