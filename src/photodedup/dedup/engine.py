"""
Concurrent duplicate detection over a list of image records.

A fixed pool of worker threads takes records one at a time and runs
fetch -> fingerprint -> classify for each. Fingerprints that match nothing
already registered are added to a shared HashRegistry; matches are merged
into the duplicate group for the two owners involved.
"""

from __future__ import annotations

import threading
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Protocol, Sequence, Set

from PIL import Image

from ..fetch.fetcher import FetchFailed
from ..records import FailedRecord, FailureReason, ImageRecord
from ..logging import get_logger
from .aggregate import finalize
from .groups import DuplicateGroup, DuplicateGroupMap
from .hash import Fingerprint, HashFailed, compute_fingerprint
from .registry import HashRegistry, RegistryEntry

logger = get_logger(__name__)

DEFAULT_WORKERS = 10
DEFAULT_THRESHOLD = 1


class DuplicateRecordIdError(ValueError):
    """Raised when two input records share an id."""


class Fetcher(Protocol):
    def fetch(self, url: str) -> Image.Image: ...


class RecordState(Enum):
    """Lifecycle of a single record; transitions only move forward."""
    PENDING = "pending"
    FETCHING = "fetching"
    HASHING = "hashing"
    CLASSIFYING = "classifying"
    REGISTERED = "registered"
    GROUPED = "grouped"
    FAILED = "failed"
    DROPPED = "dropped"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset({
    RecordState.REGISTERED,
    RecordState.GROUPED,
    RecordState.FAILED,
    RecordState.DROPPED,
})


@dataclass(frozen=True)
class RecordOutcome:
    """Terminal result for one input record."""
    record: ImageRecord
    state: RecordState
    matched_id: Optional[str] = None              # Registry entry a GROUPED record collided with
    failure: Optional[FailureReason] = None       # Set for FAILED and DROPPED
    error: Optional[str] = None


@dataclass
class RunStats:
    """Counters for a completed run."""
    records: int = 0
    registered: int = 0
    grouped: int = 0
    fetch_failed: int = 0
    hash_failed: int = 0
    duplicate_groups: int = 0
    elapsed_seconds: float = 0.0

    @property
    def failure_rate(self) -> float:
        if self.records == 0:
            return 0.0
        return (self.fetch_failed + self.hash_failed) / self.records


@dataclass
class DedupResult:
    """Everything a run produces, read-only once returned."""
    duplicates: List[DuplicateGroup]
    failed: List[FailedRecord]
    stats: RunStats
    outcomes: List[RecordOutcome] = field(default_factory=list)
    registry_entries: List[RegistryEntry] = field(default_factory=list)

    def accounted_ids(self) -> Set[str]:
        """Ids that ended up registered, grouped, or failed."""
        ids = {entry.record.id for entry in self.registry_entries}
        for group in self.duplicates:
            ids.update(group.record_ids)
        ids.update(failed.id for failed in self.failed)
        return ids


class _RunState:
    """Mutable state shared by the workers of one run."""

    def __init__(self) -> None:
        self.registry = HashRegistry()
        self.groups = DuplicateGroupMap()
        self.failed: List[FailedRecord] = []
        self._failed_lock = threading.Lock()

    def add_failure(self, failed: FailedRecord) -> None:
        with self._failed_lock:
            self.failed.append(failed)


class DedupEngine:
    """
    Classify records as registered, grouped duplicates, or failures.

    Args:
        fetcher: Object with ``fetch(url) -> PIL.Image``; raises FetchFailed
        threshold: Exclusive upper bound on fingerprint distance for a duplicate
        workers: Size of the worker pool
        hasher: Fingerprint function; raises HashFailed
        report_hash_failures: Report fingerprint failures as FailedRecords
            instead of dropping them
    """

    def __init__(
        self,
        fetcher: Fetcher,
        threshold: int = DEFAULT_THRESHOLD,
        workers: int = DEFAULT_WORKERS,
        hasher: Callable[[Image.Image], Fingerprint] = compute_fingerprint,
        report_hash_failures: bool = False,
    ) -> None:
        if threshold < 0:
            raise ValueError(f"threshold must be non-negative, got {threshold}")
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self._fetcher = fetcher
        self._threshold = threshold
        self._workers = workers
        self._hasher = hasher
        self._report_hash_failures = report_hash_failures

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def workers(self) -> int:
        return self._workers

    def process(self, records: Sequence[ImageRecord]) -> DedupResult:
        """
        Run duplicate detection over ``records``.

        Blocks until every record has reached a terminal state. Per-record
        fetch and hash failures are captured in the result; any other
        exception raised by a worker propagates.

        Raises:
            DuplicateRecordIdError: If two input records share an id
        """
        _check_unique_ids(records)

        started = time.perf_counter()
        run = _RunState()
        logger.info(
            f"Processing {len(records)} records with {self._workers} workers "
            f"(threshold {self._threshold})"
        )

        with ThreadPoolExecutor(max_workers=self._workers, thread_name_prefix="dedup") as executor:
            futures = [executor.submit(self._process_record, record, run) for record in records]
            # Collected in input order; result() re-raises worker errors
            outcomes = [future.result() for future in futures]

        duplicates, failed = finalize(run.groups.snapshot(), run.failed)
        stats = _build_stats(outcomes, duplicates, time.perf_counter() - started)

        logger.info(
            f"Run complete: {stats.registered} registered, {stats.grouped} grouped into "
            f"{stats.duplicate_groups} duplicate groups, {stats.fetch_failed} fetch failures, "
            f"{stats.hash_failed} hash failures in {stats.elapsed_seconds:.1f}s"
        )
        return DedupResult(
            duplicates=duplicates,
            failed=failed,
            stats=stats,
            outcomes=outcomes,
            registry_entries=run.registry.entries(),
        )

    def _process_record(self, record: ImageRecord, run: _RunState) -> RecordOutcome:
        _log_state(record, RecordState.FETCHING)
        try:
            image = self._fetcher.fetch(record.url)
        except FetchFailed as exc:
            logger.error(f"Failed to download image for record {record.id} from {record.url}: {exc}")
            run.add_failure(FailedRecord.from_record(record, reason="fetch"))
            return RecordOutcome(record, RecordState.FAILED, failure="fetch", error=str(exc))

        _log_state(record, RecordState.HASHING)
        try:
            fingerprint = self._hasher(image)
        except HashFailed as exc:
            logger.warning(f"Failed to hash image for record {record.id} from {record.url}: {exc}")
            if self._report_hash_failures:
                run.add_failure(FailedRecord.from_record(record, reason="hash"))
                return RecordOutcome(record, RecordState.FAILED, failure="hash", error=str(exc))
            return RecordOutcome(record, RecordState.DROPPED, failure="hash", error=str(exc))
        finally:
            image.close()
            del image

        _log_state(record, RecordState.CLASSIFYING)
        match = run.registry.classify(record, fingerprint, self._threshold)
        if match is None:
            return RecordOutcome(record, RecordState.REGISTERED)

        run.groups.merge(record, match.record)
        logger.debug(f"Record {record.id} duplicates {match.record.id}")
        return RecordOutcome(record, RecordState.GROUPED, matched_id=match.record.id)


def _log_state(record: ImageRecord, state: RecordState) -> None:
    logger.debug(f"Record {record.id}: {state.value}")


def _check_unique_ids(records: Sequence[ImageRecord]) -> None:
    counts = Counter(record.id for record in records)
    repeated = sorted(record_id for record_id, count in counts.items() if count > 1)
    if repeated:
        raise DuplicateRecordIdError(f"Record ids must be unique; repeated: {', '.join(repeated)}")


def _build_stats(
    outcomes: Sequence[RecordOutcome],
    duplicates: Sequence[DuplicateGroup],
    elapsed: float,
) -> RunStats:
    stats = RunStats(records=len(outcomes), duplicate_groups=len(duplicates), elapsed_seconds=elapsed)
    for outcome in outcomes:
        if outcome.state is RecordState.REGISTERED:
            stats.registered += 1
        elif outcome.state is RecordState.GROUPED:
            stats.grouped += 1
        elif outcome.failure == "fetch":
            stats.fetch_failed += 1
        elif outcome.failure == "hash":
            stats.hash_failed += 1
    return stats
