"""Reconciliation loop that keeps every configured pair in sync."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

from .comparator import (
    Comparator,
    DecisionKind,
    ErrorKind,
    Side,
    SyncDecision,
    canonical_path,
)
from .file_ops import CopyError, atomic_copy
from ..config.schema import PathPair, SyncConfig
from ..utils.logging import get_logger, log_execution_time


class OutcomeKind(str, Enum):
    """What happened to a pair during a cycle."""
    NOOP = "noop"
    COPIED_A_TO_B = "copied_a_to_b"
    COPIED_B_TO_A = "copied_b_to_a"
    ERROR = "error"


@dataclass
class PairOutcome:
    """Result of reconciling one pair."""

    index: int
    pair: PathPair
    kind: OutcomeKind
    decision: Optional[SyncDecision] = None
    error: Optional[ErrorKind] = None
    side: Optional[Side] = None
    detail: Optional[str] = None
    bytes_copied: int = 0
    duration: float = 0.0

    @property
    def is_error(self) -> bool:
        return self.kind == OutcomeKind.ERROR

    @property
    def copied(self) -> bool:
        return self.kind in (OutcomeKind.COPIED_A_TO_B, OutcomeKind.COPIED_B_TO_A)


@dataclass
class CycleReport:
    """Outcomes of one pass over all configured pairs, in configuration order."""

    cycle: int
    started_at: datetime
    finished_at: Optional[datetime] = None
    outcomes: List[PairOutcome] = field(default_factory=list)

    @property
    def copied(self) -> int:
        return sum(1 for o in self.outcomes if o.copied)

    @property
    def noops(self) -> int:
        return sum(1 for o in self.outcomes if o.kind == OutcomeKind.NOOP)

    @property
    def errors(self) -> int:
        return sum(1 for o in self.outcomes if o.is_error)

    @property
    def settled(self) -> bool:
        """True when every pair was already identical."""
        return all(o.kind == OutcomeKind.NOOP for o in self.outcomes)

    @property
    def duration(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def summary(self) -> Dict[str, Any]:
        return {
            "cycle": self.cycle,
            "pairs": len(self.outcomes),
            "copied": self.copied,
            "noops": self.noops,
            "errors": self.errors,
            "duration": f"{self.duration:.3f}s",
        }


class PathLocks:
    """Per-path locks so no file is reconciled by two workers at once."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    @contextmanager
    def hold(self, *paths: Path) -> Iterator[None]:
        # Sorted acquisition keeps pairs that share a file from deadlocking
        keys = sorted({canonical_path(p) for p in paths})
        with self._guard:
            locks = [self._locks.setdefault(key, threading.Lock()) for key in keys]

        for lock in locks:
            lock.acquire()
        try:
            yield
        finally:
            for lock in reversed(locks):
                lock.release()


class Reconciler:
    """Runs the comparator over every pair and applies its decisions."""

    def __init__(
        self,
        config: SyncConfig,
        comparator: Optional[Comparator] = None,
        cancel_event: Optional[threading.Event] = None
    ):
        """Initialize reconciler.

        Args:
            config: Validated pair configuration
            comparator: Comparator to use; built from the config if omitted
            cancel_event: Event that stops run() when set
        """
        self.config = config
        self.comparator = comparator or Comparator(config.hash_buffer_size)
        self.cancel_event = cancel_event or threading.Event()
        self.cycles_completed = 0
        self.logger = get_logger(self.__class__.__name__)
        self._locks = PathLocks()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def stop(self) -> None:
        """Ask run() to return at the next cycle boundary or sleep tick."""
        self.cancel_event.set()

    def reconcile_pair(self, pair: PathPair, index: int = 0) -> PairOutcome:
        """Compare one pair and copy the authoritative side if needed."""
        start_time = time.monotonic()

        with self._locks.hold(pair.a, pair.b):
            decision = self.comparator.compare(pair.a, pair.b)
            outcome = self._apply(pair, index, decision)

        outcome.duration = time.monotonic() - start_time
        return outcome

    def _apply(self, pair: PathPair, index: int, decision: SyncDecision) -> PairOutcome:
        if decision.kind == DecisionKind.IDENTICAL:
            return PairOutcome(
                index=index, pair=pair, kind=OutcomeKind.NOOP,
                decision=decision, detail=decision.detail
            )

        if decision.is_error:
            return PairOutcome(
                index=index, pair=pair, kind=OutcomeKind.ERROR, decision=decision,
                error=decision.error, side=decision.side, detail=decision.detail
            )

        if decision.source is Side.A:
            source, destination = pair.a, pair.b
            kind = OutcomeKind.COPIED_A_TO_B
        else:
            source, destination = pair.b, pair.a
            kind = OutcomeKind.COPIED_B_TO_A

        self.logger.debug("Copying newer file", source=str(source), destination=str(destination))

        try:
            copied = atomic_copy(source, destination, self.config.hash_buffer_size)
        except CopyError as e:
            return PairOutcome(
                index=index, pair=pair, kind=OutcomeKind.ERROR, decision=decision,
                error=ErrorKind.COPY_FAILED, side=decision.destination, detail=e.reason
            )

        return PairOutcome(
            index=index, pair=pair, kind=kind, decision=decision, bytes_copied=copied
        )

    def _reconcile_isolated(self, index: int, pair: PathPair) -> PairOutcome:
        """reconcile_pair, with any unexpected failure confined to this pair."""
        try:
            return self.reconcile_pair(pair, index)
        except Exception as e:
            self.logger.error(
                "Unexpected error reconciling pair",
                pair=str(pair),
                error=str(e),
                exc_info=True
            )
            return PairOutcome(
                index=index, pair=pair, kind=OutcomeKind.ERROR,
                error=ErrorKind.UNEXPECTED, detail=f"{e.__class__.__name__}: {e}"
            )

    @log_execution_time
    def run_cycle(self) -> CycleReport:
        """Reconcile every pair once and return the collected outcomes."""
        report = CycleReport(
            cycle=self.cycles_completed + 1,
            started_at=datetime.now(timezone.utc)
        )
        pairs = list(enumerate(self.config.pairs))
        workers = min(self.config.max_workers, len(pairs))

        if workers > 1:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="staticsync") as pool:
                # map() yields in submission order and the with-block drains the pool
                report.outcomes = list(pool.map(lambda item: self._reconcile_isolated(*item), pairs))
        else:
            report.outcomes = [self._reconcile_isolated(index, pair) for index, pair in pairs]

        report.finished_at = datetime.now(timezone.utc)
        self.cycles_completed += 1
        return report

    def run(self, on_report: Optional[Callable[[CycleReport], None]] = None) -> int:
        """Run cycles every interval until cancelled, or once if configured.

        Returns:
            Number of completed cycles
        """
        self.logger.info(
            "Reconciler started",
            pairs=len(self.config.pairs),
            interval_seconds=self.config.interval_seconds,
            once=self.config.once,
            max_workers=self.config.max_workers
        )

        cycles = 0
        while not self.cancelled:
            report = self.run_cycle()
            cycles += 1
            if on_report:
                on_report(report)

            if self.config.once or self._wait(self.config.interval_seconds):
                break

        self.logger.info("Reconciler stopped", cycles=cycles, cancelled=self.cancelled)
        return cycles

    def _wait(self, seconds: float) -> bool:
        """Sleep up to seconds in short ticks. Returns True if cancelled."""
        deadline = time.monotonic() + seconds
        while not self.cancel_event.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            self.cancel_event.wait(min(self.config.cancel_poll_seconds, remaining))
        return True


def run_cycle(config: SyncConfig, comparator: Optional[Comparator] = None) -> CycleReport:
    """Run a single reconciliation cycle over config's pairs."""
    return Reconciler(config, comparator=comparator).run_cycle()


def run(
    config: SyncConfig,
    cancel_event: Optional[threading.Event] = None,
    on_report: Optional[Callable[[CycleReport], None]] = None
) -> int:
    """Run the reconciliation loop until cancel_event is set or, with once, for one cycle."""
    return Reconciler(config, cancel_event=cancel_event).run(on_report=on_report)
