"""Tests for the pairwise comparator."""

import hashlib
import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from staticsync.core import (
    Comparator, DecisionKind, ErrorKind, FileState, Side, SyncDecision, compare, hash_file
)


T1 = 1_700_000_000 * 10**9
T2 = T1 + 60 * 10**9


def write_file(path: Path, content: bytes, mtime_ns: int) -> Path:
    """Write content to path and pin its timestamps."""
    path.write_bytes(content)
    os.utime(path, ns=(mtime_ns, mtime_ns))
    return path


class TestFastPath:
    """Timestamp and size checks that avoid reading content."""

    def test_equal_mtime_and_size_is_identical_without_hashing(self, tmp_path):
        a = write_file(tmp_path / "a.txt", b"same", T1)
        b = write_file(tmp_path / "b.txt", b"same", T1)

        with patch("staticsync.core.comparator.hash_file") as mock_hash:
            decision = compare(a, b)

        assert decision.kind == DecisionKind.IDENTICAL
        mock_hash.assert_not_called()

    def test_equal_mtime_different_size_is_ambiguous(self, tmp_path):
        a = write_file(tmp_path / "a.txt", b"short", T1)
        b = write_file(tmp_path / "b.txt", b"much longer", T1)

        decision = compare(a, b)

        assert decision.kind == DecisionKind.ERROR
        assert decision.error == ErrorKind.AMBIGUOUS_CONFLICT
        assert decision.side is None

    def test_different_size_skips_hashing(self, tmp_path):
        a = write_file(tmp_path / "a.txt", b"v1", T1)
        b = write_file(tmp_path / "b.txt", b"version 2", T2)

        with patch("staticsync.core.comparator.hash_file") as mock_hash:
            decision = compare(a, b)

        assert decision.kind == DecisionKind.COPY_B_TO_A
        mock_hash.assert_not_called()


class TestSlowPath:
    """Content hashing when timestamps disagree."""

    def test_newer_b_wins(self, tmp_path):
        a = write_file(tmp_path / "a.txt", b"v1", T1)
        b = write_file(tmp_path / "b.txt", b"v2", T2)

        decision = compare(a, b)

        assert decision.kind == DecisionKind.COPY_B_TO_A
        assert decision.source is Side.B
        assert decision.destination is Side.A

    def test_newer_a_wins(self, tmp_path):
        a = write_file(tmp_path / "a.txt", b"v2", T2)
        b = write_file(tmp_path / "b.txt", b"v1", T1)

        decision = compare(a, b)

        assert decision.kind == DecisionKind.COPY_A_TO_B
        assert decision.source is Side.A
        assert decision.is_copy

    def test_swapping_sides_reverses_direction(self, tmp_path):
        older = write_file(tmp_path / "older.txt", b"old", T1)
        newer = write_file(tmp_path / "newer.txt", b"new", T2)

        forward = compare(older, newer)
        backward = compare(newer, older)

        assert forward.kind == DecisionKind.COPY_B_TO_A
        assert backward.kind == DecisionKind.COPY_A_TO_B

    def test_identical_content_with_different_mtimes_is_identical(self, tmp_path):
        a = write_file(tmp_path / "a.txt", b"same bytes", T1)
        b = write_file(tmp_path / "b.txt", b"same bytes", T2)

        decision = compare(a, b)

        assert decision.kind == DecisionKind.IDENTICAL
        assert not decision.is_error

    def test_small_buffer_still_compares_content(self, tmp_path):
        a = write_file(tmp_path / "a.bin", b"x" * 1000 + b"a", T1)
        b = write_file(tmp_path / "b.bin", b"x" * 1000 + b"b", T2)

        decision = Comparator(hash_buffer_size=7).compare(a, b)

        assert decision.kind == DecisionKind.COPY_B_TO_A

    def test_unreadable_file_is_reported(self, tmp_path):
        a = write_file(tmp_path / "a.txt", b"aaaa", T1)
        b = write_file(tmp_path / "b.txt", b"bbbb", T2)

        with patch(
            "staticsync.core.comparator.hash_file",
            side_effect=PermissionError(13, "Permission denied")
        ):
            decision = compare(a, b)

        assert decision.error == ErrorKind.UNREADABLE
        assert decision.side is Side.A
        assert "Permission denied" in decision.detail


class TestPreconditions:
    """Errors raised before any comparison takes place."""

    def test_missing_a(self, tmp_path):
        b = write_file(tmp_path / "b.txt", b"data", T1)

        decision = compare(tmp_path / "missing.txt", b)

        assert decision.kind == DecisionKind.ERROR
        assert decision.error == ErrorKind.NOT_FOUND
        assert decision.side is Side.A

    def test_missing_b(self, tmp_path):
        a = write_file(tmp_path / "a.txt", b"data", T1)

        decision = compare(a, tmp_path / "missing.txt")

        assert decision.error == ErrorKind.NOT_FOUND
        assert decision.side is Side.B

    def test_directory(self, tmp_path):
        a = write_file(tmp_path / "a.txt", b"data", T1)
        directory = tmp_path / "folder"
        directory.mkdir()

        decision = compare(a, directory)

        assert decision.error == ErrorKind.IS_DIRECTORY
        assert decision.side is Side.B

    def test_same_path_written_differently(self, tmp_path):
        a = write_file(tmp_path / "a.txt", b"data", T1)
        (tmp_path / "sub").mkdir()

        decision = compare(a, os.path.join(str(tmp_path), "sub", "..", "a.txt"))

        assert decision.error == ErrorKind.SAME_PATH

    def test_symlink_to_the_other_side(self, tmp_path):
        a = write_file(tmp_path / "a.txt", b"data", T1)
        link = tmp_path / "link.txt"
        link.symlink_to(a)

        decision = compare(a, link)

        assert decision.error == ErrorKind.SAME_PATH

    def test_hard_link_is_same_path(self, tmp_path):
        a = write_file(tmp_path / "a.txt", b"data", T1)
        hard = tmp_path / "hard.txt"
        try:
            os.link(a, hard)
        except OSError:
            pytest.skip("Hard links not supported on this filesystem")

        decision = compare(a, hard)

        assert decision.error == ErrorKind.SAME_PATH

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="FIFOs not available")
    def test_fifo_is_not_a_regular_file(self, tmp_path):
        a = write_file(tmp_path / "a.txt", b"data", T1)
        fifo = tmp_path / "pipe"
        os.mkfifo(fifo)

        decision = compare(fifo, a)

        assert decision.error == ErrorKind.NOT_REGULAR_FILE
        assert decision.side is Side.A

    def test_invalid_buffer_size(self):
        with pytest.raises(ValueError):
            Comparator(hash_buffer_size=0)


class TestModels:
    """FileState and SyncDecision helpers."""

    def test_observe_missing_file(self, tmp_path):
        state = FileState.observe(tmp_path / "nothing")

        assert state.exists is False
        assert state.mtime_ns is None

    def test_observe_regular_file(self, tmp_path):
        path = write_file(tmp_path / "a.txt", b"12345", T1)

        state = FileState.observe(path)

        assert state.exists and state.is_file and not state.is_dir
        assert state.size == 5
        assert state.mtime_ns == T1

    def test_decision_constructors(self):
        assert SyncDecision.copy_from(Side.A).kind == DecisionKind.COPY_A_TO_B
        assert SyncDecision.copy_from(Side.B).kind == DecisionKind.COPY_B_TO_A
        assert SyncDecision.identical().source is None

        failure = SyncDecision.failure(ErrorKind.NOT_FOUND, Side.B, "gone")
        assert failure.is_error
        assert failure.destination is None
        assert Side.A.other is Side.B

    def test_hash_file_matches_hashlib(self, tmp_path):
        path = write_file(tmp_path / "a.bin", b"content to hash" * 100, T1)

        assert hash_file(path, buffer_size=16) == hashlib.sha1(b"content to hash" * 100).hexdigest()
