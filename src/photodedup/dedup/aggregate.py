"""Collect the final duplicate and failure lists once a run has finished."""

from typing import Dict, List, Sequence, Tuple

from ..records import FailedRecord
from .groups import DuplicateGroup, OwnerPair


def finalize(
    groups_by_owner_pair: Dict[OwnerPair, DuplicateGroup],
    failed: Sequence[FailedRecord],
) -> Tuple[List[DuplicateGroup], List[FailedRecord]]:
    """
    Flatten the owner-pair map into export lists.

    This is a pure collection step: no further deduplication or validation.
    Group order follows the map and carries no meaning.

    Args:
        groups_by_owner_pair: Duplicate groups keyed by owner pair
        failed: Records that could not be fetched (or hashed, when reported)

    Returns:
        (duplicate groups, failed records)
    """
    return list(groups_by_owner_pair.values()), list(failed)
