"""Shared registry of fingerprints seen during a run."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..records import ImageRecord
from ..logging import get_logger
from .distance import hamming_distance, is_duplicate
from .hash import Fingerprint

logger = get_logger(__name__)


class DuplicateRecordError(Exception):
    """Raised when a record id is registered twice."""


@dataclass(frozen=True)
class RegistryEntry:
    """A registered record and its fingerprint."""
    record: ImageRecord
    fingerprint: Fingerprint


class HashRegistry:
    """
    Append-only collection of (record, fingerprint) entries.

    Every public method takes the same lock, so ``classify`` observes and
    extends the registry as a single step: two workers holding near-identical
    fingerprints can never both miss each other and register twice.

    Matching is first-match in insertion order, not nearest-match. Which entry
    a new fingerprint pairs with depends on which records were registered
    first, so the canonical half of a pair can vary between runs.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: List[RegistryEntry] = []
        self._ids: Dict[str, RegistryEntry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, record_id: object) -> bool:
        with self._lock:
            return record_id in self._ids

    def entries(self) -> List[RegistryEntry]:
        """Snapshot of the entries in insertion order."""
        with self._lock:
            return list(self._entries)

    def find_first_match(self, fingerprint: Fingerprint, threshold: int) -> Optional[RegistryEntry]:
        with self._lock:
            return self._scan(fingerprint, threshold)

    def insert(self, record: ImageRecord, fingerprint: Fingerprint) -> RegistryEntry:
        with self._lock:
            return self._insert(record, fingerprint)

    def classify(
        self,
        record: ImageRecord,
        fingerprint: Fingerprint,
        threshold: int,
    ) -> Optional[RegistryEntry]:
        """
        Match ``fingerprint`` against the registry, registering it on a miss.

        Args:
            record: Record the fingerprint belongs to
            fingerprint: Fingerprint to classify
            threshold: Exclusive upper bound on duplicate distance

        Returns:
            The matched entry, or None if the record was registered instead
        """
        with self._lock:
            match = self._scan(fingerprint, threshold)
            if match is None:
                self._insert(record, fingerprint)
            return match

    def _scan(self, fingerprint: Fingerprint, threshold: int) -> Optional[RegistryEntry]:
        for entry in self._entries:
            distance = hamming_distance(fingerprint, entry.fingerprint)
            if is_duplicate(distance, threshold):
                logger.debug(f"Matched registry entry {entry.record.id} (distance: {distance})")
                return entry
        return None

    def _insert(self, record: ImageRecord, fingerprint: Fingerprint) -> RegistryEntry:
        if record.id in self._ids:
            raise DuplicateRecordError(f"Record {record.id} is already registered")
        entry = RegistryEntry(record=record, fingerprint=fingerprint)
        self._entries.append(entry)
        self._ids[record.id] = entry
        return entry
