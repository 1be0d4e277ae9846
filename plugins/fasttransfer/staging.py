"""
Executable Staging Module

Writes the FastTransfer binary to a uniquely named temporary file and marks
it executable. Every invocation stages its own copy so concurrent tasks in
one worker never share a path.

Cleanup is scoped: staged_executable() removes the file on every normal exit
path. An atexit hook removes anything left behind when the worker process
exits; it does not run if the worker is killed, so a crashed worker can leak
staged files in the temp directory.
"""

from contextlib import contextmanager
from typing import Iterator, Optional, Set
import atexit
import importlib.resources
import logging
import os
import stat
import tempfile
import threading

from fasttransfer.errors import IOFailure, ResourceMissing

logger = logging.getLogger(__name__)

EXECUTE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


class PayloadSource:
    """Provides the bytes of the executable to stage."""

    def read(self) -> bytes:
        raise NotImplementedError

    def describe(self) -> str:
        return self.__class__.__name__


class PackageResourceSource(PayloadSource):
    """
    Binary shipped as package data.

    Args:
        package: Importable package name (e.g. "fasttransfer")
        resource: Path of the file inside the package (e.g. "bin/FastTransfer")
    """

    def __init__(self, package: str, resource: str):
        self.package = package
        self.resource = resource

    def read(self) -> bytes:
        try:
            target = importlib.resources.files(self.package).joinpath(self.resource)
            return target.read_bytes()
        # TypeError: not a package; NotADirectoryError: zipped install
        except (FileNotFoundError, ModuleNotFoundError, IsADirectoryError,
                NotADirectoryError, TypeError) as e:
            raise ResourceMissing(f"Executable resource not found: {self.describe()}") from e

    def describe(self) -> str:
        return f"{self.package}/{self.resource}"


class FilePayloadSource(PayloadSource):
    """Binary installed on the worker's filesystem."""

    def __init__(self, path: str):
        self.path = path

    def read(self) -> bytes:
        if not os.path.isfile(self.path):
            raise ResourceMissing(f"Executable resource not found: {self.path}")
        try:
            with open(self.path, 'rb') as f:
                return f.read()
        except OSError as e:
            raise IOFailure(f"Cannot read executable {self.path}: {e}") from e

    def describe(self) -> str:
        return self.path


class BytesPayloadSource(PayloadSource):
    """In-memory payload, mainly for tests."""

    def __init__(self, data: Optional[bytes]):
        self.data = data

    def read(self) -> bytes:
        if self.data is None:
            raise ResourceMissing("Executable resource not found: in-memory payload is empty")
        return self.data

    def describe(self) -> str:
        return f"<{len(self.data or b'')} bytes in memory>"


class _ExitCleanup:
    """Thread-safe registry of staged paths removed at interpreter exit."""

    def __init__(self):
        self._paths: Set[str] = set()
        self._lock = threading.Lock()
        self._registered = False

    def add(self, path: str) -> None:
        with self._lock:
            if not self._registered:
                atexit.register(self.run)
                self._registered = True
            self._paths.add(path)

    def discard(self, path: str) -> None:
        with self._lock:
            self._paths.discard(path)

    def pending(self) -> Set[str]:
        with self._lock:
            return set(self._paths)

    def run(self) -> None:
        for path in self.pending():
            discard_staged(path)


_exit_cleanup = _ExitCleanup()


def discard_staged(path: str) -> bool:
    """
    Remove a staged executable, best effort.

    Returns:
        True if the file is gone, False if removal failed (logged, not raised)
    """
    _exit_cleanup.discard(path)
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove staged executable {path}: {e}")
        return False
    return True


def stage_executable(
    source: PayloadSource,
    name_hint: str = "fasttransfer",
    temp_dir: Optional[str] = None,
) -> str:
    """
    Write the payload to a fresh temporary file and make it executable.

    Args:
        source: Where the executable bytes come from
        name_hint: Prefix for the temporary file name
        temp_dir: Directory to stage in (default: system temp dir)

    Returns:
        Absolute path of the staged executable

    Raises:
        ResourceMissing: If the payload cannot be located
        IOFailure: If the file cannot be created, written or made executable
    """
    payload = source.read()

    try:
        fd, path = tempfile.mkstemp(prefix=f"{name_hint}-", dir=temp_dir)
    except OSError as e:
        raise IOFailure(f"Cannot create staging file for {source.describe()}: {e}") from e

    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(payload)
        mode = os.stat(path).st_mode
        os.chmod(path, mode | EXECUTE_BITS)
    except OSError as e:
        discard_staged(path)
        raise IOFailure(f"Cannot stage executable at {path}: {e}") from e

    path = os.path.abspath(path)
    _exit_cleanup.add(path)
    logger.info(f"Staged {source.describe()} to {path} ({len(payload)} bytes)")
    return path


@contextmanager
def staged_executable(
    source: PayloadSource,
    name_hint: str = "fasttransfer",
    temp_dir: Optional[str] = None,
) -> Iterator[str]:
    """
    Stage an executable for the duration of a with-block.

    Usage:
        with staged_executable(source) as path:
            run_process([path, "--help"])
    """
    path = stage_executable(source, name_hint=name_hint, temp_dir=temp_dir)
    try:
        yield path
    finally:
        discard_staged(path)
