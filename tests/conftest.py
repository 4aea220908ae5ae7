import os

import pytest
from PIL import Image

RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)
BLUE = (0, 0, 255, 255)


def write_png(path, color, size=(64, 64)):
    Image.new("RGBA", size, color).save(path, format="PNG")
    return str(path)


@pytest.fixture
def frames_dir(tmp_path):
    """Directory holding a.png, b.png and c.png, solid red, green and blue 64x64 squares."""
    directory = tmp_path / "frames"
    directory.mkdir()
    for name, color in (("a.png", RED), ("b.png", GREEN), ("c.png", BLUE)):
        write_png(directory / name, color)
    return directory


@pytest.fixture
def frame_paths(frames_dir):
    return [os.path.join(str(frames_dir), name) for name in ("a.png", "b.png", "c.png")]


def read_gif(path):
    """Returns (size, frame count, per frame durations, loop, center pixel of each frame)."""
    with Image.open(path) as im:
        loop = im.info.get("loop")
        durations = []
        centers = []
        for index in range(im.n_frames):
            im.seek(index)
            durations.append(im.info.get("duration"))
            centers.append(im.convert("RGB").getpixel((im.width // 2, im.height // 2)))
        return im.size, im.n_frames, durations, loop, centers
