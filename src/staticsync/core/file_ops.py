"""Low-level file operations: streaming hashes and atomic replacement."""

import hashlib
import os
import shutil
import tempfile
from pathlib import Path
from typing import Union

from ..config.settings import DEFAULT_HASH_BUFFER_SIZE

PathLike = Union[str, Path]

TEMP_SUFFIX = ".staticsync-tmp"
DEFAULT_HASH_ALGORITHM = "sha1"


class CopyError(Exception):
    """Raised when a file could not be copied over its destination."""

    def __init__(self, source: PathLike, destination: PathLike, reason: str):
        self.source = Path(source)
        self.destination = Path(destination)
        self.reason = reason
        super().__init__(f"Failed to copy {source} -> {destination}: {reason}")


def hash_file(
    path: PathLike,
    buffer_size: int = DEFAULT_HASH_BUFFER_SIZE,
    algorithm: str = DEFAULT_HASH_ALGORITHM
) -> str:
    """Compute the hex digest of a file, reading at most buffer_size bytes at a time."""
    if buffer_size <= 0:
        raise ValueError(f"buffer_size must be positive, got {buffer_size}")

    hasher = hashlib.new(algorithm)
    with open(path, 'rb') as f:
        while chunk := f.read(buffer_size):
            hasher.update(chunk)
    return hasher.hexdigest()


def atomic_copy(
    source: PathLike,
    destination: PathLike,
    buffer_size: int = DEFAULT_HASH_BUFFER_SIZE
) -> int:
    """Replace destination with the contents of source.

    The data is written to a temporary file next to the destination, given
    the source's permission bits and timestamps, then renamed over the
    destination. Readers of the destination see either the old file or the
    new one, never a partial write. A symlinked destination keeps its link;
    the file it points to is the one replaced.

    Timestamps are read from the open source after copying, so a source
    rewritten mid-copy gives a destination whose mtime matches its bytes.

    Returns:
        Number of bytes copied

    Raises:
        CopyError: If any step fails. The destination is left untouched and
            the temporary file is removed.
    """
    source = Path(source)
    destination = Path(destination)
    # Write through symlinks so the link survives and its target is updated
    target = Path(os.path.realpath(destination))

    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}.",
            suffix=TEMP_SUFFIX,
            dir=target.parent
        )
    except OSError as e:
        raise CopyError(source, destination, _describe(e)) from e

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, 'wb') as dst, open(source, 'rb') as src:
            shutil.copyfileobj(src, dst, buffer_size)
            source_stat = os.fstat(src.fileno())
            dst.flush()
            os.fsync(dst.fileno())
            copied = dst.tell()

        shutil.copymode(source, tmp_path)
        # The rename keeps these, so the next cycle sees matching mtimes
        os.utime(tmp_path, ns=(source_stat.st_atime_ns, source_stat.st_mtime_ns))
        os.replace(tmp_path, target)
    except OSError as e:
        _discard(tmp_path)
        raise CopyError(source, destination, _describe(e)) from e
    except BaseException:
        _discard(tmp_path)
        raise

    return copied


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except OSError:
        # Cleanup only; the original error is what gets reported
        pass


def _describe(error: OSError) -> str:
    if error.strerror:
        return error.strerror
    return str(error) or error.__class__.__name__
