"""Duplicate groups keyed by the owners involved."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from ..records import ImageRecord
from ..logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class OwnerPair:
    """Unordered pair of owner ids; (a, b) and (b, a) are the same key."""
    first: str
    second: str

    @classmethod
    def of(cls, a: str, b: str) -> OwnerPair:
        low, high = sorted((a, b))
        return cls(first=low, second=high)

    @property
    def primary_owner_id(self) -> str:
        return self.first

    @property
    def is_self_pair(self) -> bool:
        return self.first == self.second


@dataclass
class DuplicateGroup:
    """Colliding records for one owner pair, in discovery order."""
    owner_pair: OwnerPair
    members: List[Tuple[str, str]] = field(default_factory=list)  # (record id, url)

    @property
    def primary_owner_id(self) -> str:
        return self.owner_pair.primary_owner_id

    @property
    def record_ids(self) -> List[str]:
        return [record_id for record_id, _ in self.members]

    @property
    def urls(self) -> List[str]:
        return [url for _, url in self.members]

    def add(self, record: ImageRecord) -> None:
        member = (record.id, record.url)
        if member not in self.members:
            self.members.append(member)


class DuplicateGroupMap:
    """Thread-safe map from owner pair to its duplicate group."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._groups: Dict[OwnerPair, DuplicateGroup] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._groups)

    def merge(self, record: ImageRecord, matched: ImageRecord) -> DuplicateGroup:
        """Add a colliding pair to the group for their owners, creating it if absent."""
        key = OwnerPair.of(record.owner_id, matched.owner_id)
        with self._lock:
            group = self._groups.get(key)
            if group is None:
                group = DuplicateGroup(owner_pair=key)
                self._groups[key] = group
                logger.debug(f"Created duplicate group for owners {key.first}/{key.second}")
            group.add(record)
            group.add(matched)
            return group

    def get(self, key: OwnerPair) -> DuplicateGroup | None:
        with self._lock:
            return self._groups.get(key)

    def snapshot(self) -> Dict[OwnerPair, DuplicateGroup]:
        with self._lock:
            return dict(self._groups)
