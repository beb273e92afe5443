"""Pairwise comparison of two files into a sync decision.

The comparator only reads. Given the two paths of a pair it decides whether
they already agree, which side is authoritative, or why the pair cannot be
reconciled right now.

Modification time is the primary staleness signal. Content hashes are only
computed when the timestamps disagree, to filter out files that were touched
without being modified.
"""

import os
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from .file_ops import hash_file, DEFAULT_HASH_ALGORITHM
from ..config.settings import DEFAULT_HASH_BUFFER_SIZE
from ..utils.logging import get_logger

PathLike = Union[str, Path]


class Side(str, Enum):
    """One side of a pair."""
    A = "a"
    B = "b"

    @property
    def other(self) -> "Side":
        return Side.B if self is Side.A else Side.A


class DecisionKind(str, Enum):
    """What the reconciler should do with a pair."""
    IDENTICAL = "identical"
    COPY_A_TO_B = "copy_a_to_b"
    COPY_B_TO_A = "copy_b_to_a"
    ERROR = "error"


class ErrorKind(str, Enum):
    """Reasons a pair could not be reconciled."""
    SAME_PATH = "same_path"
    NOT_FOUND = "not_found"
    IS_DIRECTORY = "is_directory"
    NOT_REGULAR_FILE = "not_regular_file"
    UNREADABLE = "unreadable"
    AMBIGUOUS_CONFLICT = "ambiguous_conflict"
    COPY_FAILED = "copy_failed"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class FileState:
    """Metadata observed for one side of a pair."""

    path: Path
    exists: bool
    is_dir: bool = False
    is_file: bool = False
    mtime_ns: Optional[int] = None
    size: Optional[int] = None
    stat_result: Optional[os.stat_result] = None

    @classmethod
    def observe(cls, path: PathLike) -> "FileState":
        """Stat path, following symlinks. A missing file is not an error."""
        path = Path(path)
        try:
            st = os.stat(path)
        except (FileNotFoundError, NotADirectoryError):
            return cls(path=path, exists=False)

        return cls(
            path=path,
            exists=True,
            is_dir=stat.S_ISDIR(st.st_mode),
            is_file=stat.S_ISREG(st.st_mode),
            mtime_ns=st.st_mtime_ns,
            size=st.st_size,
            stat_result=st
        )


@dataclass(frozen=True)
class SyncDecision:
    """Outcome of comparing the two sides of a pair."""

    kind: DecisionKind
    error: Optional[ErrorKind] = None
    side: Optional[Side] = None
    detail: Optional[str] = None

    @classmethod
    def identical(cls, detail: Optional[str] = None) -> "SyncDecision":
        return cls(kind=DecisionKind.IDENTICAL, detail=detail)

    @classmethod
    def copy_from(cls, source: Side) -> "SyncDecision":
        """Decision to copy the given side over the other one."""
        kind = DecisionKind.COPY_A_TO_B if source is Side.A else DecisionKind.COPY_B_TO_A
        return cls(kind=kind, side=source)

    @classmethod
    def failure(
        cls,
        error: ErrorKind,
        side: Optional[Side] = None,
        detail: Optional[str] = None
    ) -> "SyncDecision":
        return cls(kind=DecisionKind.ERROR, error=error, side=side, detail=detail)

    @property
    def is_copy(self) -> bool:
        return self.kind in (DecisionKind.COPY_A_TO_B, DecisionKind.COPY_B_TO_A)

    @property
    def is_error(self) -> bool:
        return self.kind == DecisionKind.ERROR

    @property
    def source(self) -> Optional[Side]:
        """Authoritative side for copy decisions."""
        if self.kind == DecisionKind.COPY_A_TO_B:
            return Side.A
        if self.kind == DecisionKind.COPY_B_TO_A:
            return Side.B
        return None

    @property
    def destination(self) -> Optional[Side]:
        source = self.source
        return source.other if source else None


def canonical_path(path: PathLike) -> str:
    """Resolved, case-normalized form of path used for identity checks."""
    return os.path.normcase(os.path.realpath(os.path.expanduser(path)))


class Comparator:
    """Decides how to reconcile the two files of a pair."""

    def __init__(
        self,
        hash_buffer_size: int = DEFAULT_HASH_BUFFER_SIZE,
        algorithm: str = DEFAULT_HASH_ALGORITHM
    ):
        """Initialize comparator.

        Args:
            hash_buffer_size: Largest chunk read at once while hashing
            algorithm: hashlib algorithm name for content digests
        """
        if hash_buffer_size <= 0:
            raise ValueError(f"hash_buffer_size must be positive, got {hash_buffer_size}")

        self.hash_buffer_size = hash_buffer_size
        self.algorithm = algorithm
        self.logger = get_logger(self.__class__.__name__)

    def compare(self, path_a: PathLike, path_b: PathLike) -> SyncDecision:
        """Compare two files and return the action that reconciles them."""
        path_a = Path(path_a)
        path_b = Path(path_b)

        if canonical_path(path_a) == canonical_path(path_b):
            return SyncDecision.failure(
                ErrorKind.SAME_PATH, detail=f"{path_a} and {path_b} are the same file"
            )

        states = {}
        for side, path in ((Side.A, path_a), (Side.B, path_b)):
            try:
                states[side] = FileState.observe(path)
            except OSError as e:
                return SyncDecision.failure(
                    ErrorKind.UNREADABLE, side, f"Cannot stat \"{path}\": {e.strerror or e}"
                )
        state_a, state_b = states[Side.A], states[Side.B]

        for side, state in ((Side.A, state_a), (Side.B, state_b)):
            if not state.exists:
                return SyncDecision.failure(
                    ErrorKind.NOT_FOUND, side, f"File \"{state.path}\" does not exist"
                )

        for side, state in ((Side.A, state_a), (Side.B, state_b)):
            if state.is_dir:
                return SyncDecision.failure(
                    ErrorKind.IS_DIRECTORY, side, f"\"{state.path}\" is a directory"
                )
            if not state.is_file:
                return SyncDecision.failure(
                    ErrorKind.NOT_REGULAR_FILE, side, f"\"{state.path}\" is not a regular file"
                )

        # Hard links and case-insensitive mounts slip past the path check
        if os.path.samestat(state_a.stat_result, state_b.stat_result):
            return SyncDecision.failure(
                ErrorKind.SAME_PATH, detail=f"{path_a} and {path_b} are the same file"
            )

        return self._decide(state_a, state_b)

    def _decide(self, state_a: FileState, state_b: FileState) -> SyncDecision:
        same_mtime = state_a.mtime_ns == state_b.mtime_ns
        same_size = state_a.size == state_b.size

        if same_mtime and same_size:
            return SyncDecision.identical("timestamps and sizes match")

        if same_mtime:
            return SyncDecision.failure(
                ErrorKind.AMBIGUOUS_CONFLICT,
                detail="files differ but share a modification time"
            )

        newer = Side.A if state_a.mtime_ns > state_b.mtime_ns else Side.B

        if not same_size:
            # Different sizes already prove different content
            return SyncDecision.copy_from(newer)

        self.logger.debug(
            "Timestamps differ, checking hashes",
            a=str(state_a.path),
            b=str(state_b.path),
            newer=newer.value
        )

        digests = {}
        for side, state in ((Side.A, state_a), (Side.B, state_b)):
            try:
                digests[side] = hash_file(state.path, self.hash_buffer_size, self.algorithm)
            except OSError as e:
                return SyncDecision.failure(
                    ErrorKind.UNREADABLE, side, f"Cannot read \"{state.path}\": {e.strerror or e}"
                )

        if digests[Side.A] == digests[Side.B]:
            return SyncDecision.identical("contents match despite differing timestamps")

        return SyncDecision.copy_from(newer)


def compare(
    path_a: PathLike,
    path_b: PathLike,
    hash_buffer_size: int = DEFAULT_HASH_BUFFER_SIZE
) -> SyncDecision:
    """Compare two files with a one-off Comparator."""
    return Comparator(hash_buffer_size).compare(path_a, path_b)
