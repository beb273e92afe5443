"""Core reconciliation logic package."""

from .comparator import (
    Comparator,
    DecisionKind,
    ErrorKind,
    FileState,
    Side,
    SyncDecision,
    compare
)
from .file_ops import CopyError, atomic_copy, hash_file
from .reconciler import (
    CycleReport,
    OutcomeKind,
    PairOutcome,
    Reconciler,
    run,
    run_cycle
)

__all__ = [
    "Comparator",
    "DecisionKind",
    "ErrorKind",
    "FileState",
    "Side",
    "SyncDecision",
    "compare",

    "CopyError",
    "atomic_copy",
    "hash_file",

    "CycleReport",
    "OutcomeKind",
    "PairOutcome",
    "Reconciler",
    "run",
    "run_cycle"
]
