"""Shared fixtures: fake codec gateway and sample images."""
import threading
from contextlib import contextmanager
from pathlib import Path

import pytest
from PIL import Image

from heicbatch.conversion.errors import CodecSessionError, CorruptInputError
from heicbatch.fs import LocalFilesystem


class FakeCodec:
    """Stands in for the Pillow gateway: copies bytes, fails on request."""

    def __init__(self, available=True, failures=None, session_failures=0):
        self.available = available
        self.failures = dict(failures or {})  # source name -> exception
        self.session_failures = session_failures
        self.calls = []
        self.sessions_opened = 0
        self.sessions_released = 0
        self._lock = threading.Lock()
        self._local = threading.local()

    def probe_availability(self):
        return self.available

    @contextmanager
    def thread_session(self):
        try:
            with self._lock:
                if self.session_failures > 0:
                    self.session_failures -= 1
                    raise CodecSessionError("init failed")
                self.sessions_opened += 1
            self._local.active = True
            yield self
        finally:
            self._local.active = False
            with self._lock:
                self.sessions_released += 1

    def convert(self, source_path, staging_path, target, quality=None):
        assert getattr(self._local, "active", False), "convert() outside session"
        with self._lock:
            self.calls.append((Path(source_path), Path(staging_path), target, quality))
        exc = self.failures.get(Path(source_path).name)
        if exc is not None:
            Path(staging_path).write_bytes(b"partial")
            raise exc
        Path(staging_path).write_bytes(b"converted:" + Path(source_path).read_bytes())


class RenameFailingFilesystem(LocalFilesystem):
    """Rename fails for final paths whose name is listed."""

    def __init__(self, fail_names, error=None):
        self.fail_names = set(fail_names)
        self.error = error or PermissionError(13, "Permission denied")

    def atomic_rename(self, src, dst):
        if Path(dst).name in self.fail_names:
            raise self.error
        super().atomic_rename(src, dst)


@pytest.fixture
def fake_codec():
    return FakeCodec


@pytest.fixture
def rename_failing_fs():
    return RenameFailingFilesystem


@pytest.fixture
def make_images(tmp_path):
    """Create count small PNG files and return their paths."""

    def _make(count, directory=None, suffix=".png"):
        directory = Path(directory or tmp_path / "in")
        directory.mkdir(parents=True, exist_ok=True)
        paths = []
        for i in range(count):
            path = directory / f"img_{i:03d}{suffix}"
            Image.new("RGB", (8, 8), color=(i % 256, 0, 0)).save(path, format="PNG")
            paths.append(path)
        return paths

    return _make


@pytest.fixture
def corrupt_error():
    return CorruptInputError("cannot decode")
