import os
import stat
import logging
import threading
from pathlib import Path

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.webp')
PAGE_SIZE = 20

CONTENT_TYPES = {
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.webp': 'image/webp',
}
DEFAULT_CONTENT_TYPE = 'application/octet-stream'


class ComicError(Exception):
    pass


class InvalidPath(ComicError):
    pass


class ComicIOError(ComicError):
    pass


class EmptyDirectory(ComicError):
    pass


class BadRequest(ComicError):
    pass


class NotFound(ComicError):
    pass


# Make sure the path exists and is a directory, returns it unchanged
def validate_directory(path):
    path = Path(path)
    try:
        st = path.stat()
    except OSError as e:
        raise InvalidPath(f"could not read {path}: {e.strerror or e}") from e
    if not stat.S_ISDIR(st.st_mode):
        raise InvalidPath(f"{path} is not a directory")
    return path


# Names of the images directly inside `directory`, sorted (001.png, 002.png, ...)
def load_images(directory):
    directory = Path(directory)
    try:
        entries = list(directory.iterdir())
    except OSError as e:
        raise ComicIOError(f"failed to read {directory}: {e.strerror or e}") from e

    images = [p.name for p in entries if p.is_file() and is_image(p.name) and is_utf8(p.name)]
    images.sort()
    return images


def is_image(name):
    return os.path.splitext(name)[1].lower() in IMAGE_EXTENSIONS


# False for names the OS could only decode with surrogate escapes
def is_utf8(name):
    try:
        name.encode('utf-8')
    except UnicodeEncodeError:
        return False
    return True


# Basic MIME lookup so the browser renders the bytes as an image
def content_type_for(name):
    ext = os.path.splitext(name)[1].lower()
    return CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


# Validate + list in one go; an empty folder is an error at startup
def load_comic(path):
    directory = validate_directory(path)
    images = load_images(directory)
    if not images:
        exts = ', '.join(IMAGE_EXTENSIONS)
        raise EmptyDirectory(f"No images found in {directory} (looking for {exts})")
    return directory, images


class ComicState:
    """The active folder and its image names, swapped together.

    Readers get a snapshot of both under the lock, so a directory switch can
    never be observed half done. The lock is only held while copying or
    replacing the pair, never while touching the disk.
    """

    def __init__(self, directory=None, images=()):
        self._lock = threading.Lock()
        self._directory = Path(directory) if directory is not None else None
        self._images = tuple(images)

    def snapshot(self):
        with self._lock:
            return self._directory, list(self._images)

    @property
    def directory(self):
        return self.snapshot()[0]

    @property
    def images(self):
        return self.snapshot()[1]

    def replace(self, directory, images):
        images = tuple(images)
        with self._lock:
            self._directory = Path(directory)
            self._images = images

    # Switch to another folder. Scanning happens outside the lock and
    # the state is left alone if anything fails.
    def select(self, raw_path):
        if not isinstance(raw_path, str):
            raise BadRequest("path must be a string")
        trimmed = raw_path.strip()
        if not trimmed:
            raise BadRequest("Please enter a folder path")

        directory = validate_directory(trimmed)
        images = load_images(directory)
        self.replace(directory, images)
        logger.info("Switched to %s (%d images)", directory, len(images))
        return len(images)

    # Full path of `name` inside the current folder. The name must be a bare
    # file name; anything that could climb out of the folder is refused.
    def resolve_image(self, name):
        if '..' in name or '/' in name or '\\' in name:
            raise BadRequest(f"invalid image name: {name!r}")
        directory, _ = self.snapshot()
        if directory is None:
            raise NotFound("no folder selected")
        path = directory / name
        if not path.is_file():
            raise NotFound(f"{name} not found")
        return path
