import sys
from pathlib import Path

import pytest
from PIL import Image

# Allow importing the modules from the repository root
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from comic_reader.comics import ComicState  # noqa: E402
from comic_reader.server import build_app  # noqa: E402


def write_image(path: Path, fmt: str = "PNG", color=(200, 30, 30)) -> Path:
    Image.new("RGB", (4, 4), color).save(path, format=fmt)
    return path


@pytest.fixture
def comic_dir(tmp_path: Path) -> Path:
    folder = tmp_path / "vol1"
    folder.mkdir()
    write_image(folder / "001.png")
    write_image(folder / "002.jpg", "JPEG")
    write_image(folder / "003.webp", "WEBP")
    (folder / "notes.txt").write_text("not a page", encoding="utf-8")
    return folder


@pytest.fixture
def other_dir(tmp_path: Path) -> Path:
    folder = tmp_path / "vol2"
    folder.mkdir()
    write_image(folder / "a.png", color=(0, 0, 255))
    write_image(folder / "b.jpeg", "JPEG")
    return folder


@pytest.fixture
def state() -> ComicState:
    return ComicState()


@pytest.fixture
def client(state: ComicState):
    app = build_app(state)
    app.config["TESTING"] = True
    return app.test_client()
