import threading
import time
from contextlib import contextmanager

import pytest
from PIL import Image

from image_sieve.scanning.filesystem import LocalFilesystem


class CountingFilesystem(LocalFilesystem):
    """Local filesystem that records how many handles are open at once."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self._lock = threading.Lock()
        self.open_now = 0
        self.max_open = 0
        self.opens = 0
        self.stats = 0

    def stat(self, path):
        with self._lock:
            self.stats += 1
        return super().stat(path)

    @contextmanager
    def open(self, path):
        with super().open(path) as f:
            with self._lock:
                self.opens += 1
                self.open_now += 1
                self.max_open = max(self.max_open, self.open_now)
            try:
                if self.delay:
                    time.sleep(self.delay)
                yield f
            finally:
                with self._lock:
                    self.open_now -= 1


@pytest.fixture
def make_image(tmp_path):
    """Returns a factory that writes a blank image under tmp_path."""
    def _make(name, size=(10, 10), mode="RGB", root=None):
        path = (root or tmp_path) / name
        path.parent.mkdir(parents=True, exist_ok=True)
        with Image.new(mode, size) as im:
            im.save(path)
        return path
    return _make


@pytest.fixture
def counting_fs():
    return CountingFilesystem()
