"""Perceptual duplicate detection engine for remote image records."""

from .model import detect_duplicates, build_engine
from .engine import DedupEngine, DedupResult, DuplicateRecordIdError, RecordOutcome, RecordState, RunStats
from .aggregate import finalize
from .groups import DuplicateGroup, DuplicateGroupMap, OwnerPair
from .registry import HashRegistry, RegistryEntry, DuplicateRecordError
from .hash import Fingerprint, HashFailed, compute_fingerprint
from .distance import hamming_distance, is_duplicate

__all__ = [
    "detect_duplicates",
    "build_engine",
    "DedupEngine",
    "DedupResult",
    "DuplicateRecordIdError",
    "RecordOutcome",
    "RecordState",
    "RunStats",
    "finalize",
    "DuplicateGroup",
    "DuplicateGroupMap",
    "OwnerPair",
    "HashRegistry",
    "RegistryEntry",
    "DuplicateRecordError",
    "Fingerprint",
    "HashFailed",
    "compute_fingerprint",
    "hamming_distance",
    "is_duplicate",
]
