"""
Tabular reports for duplicate detection results.

Two sheets are produced: one row per duplicate group, and one row per record
whose image could not be downloaded. Files ending in ``.xlsx`` are written as
Excel workbooks; anything else is written as CSV.
"""

from pathlib import Path
from typing import Iterable, List

import pandas as pd

from ..dedup.groups import DuplicateGroup
from ..records import FailedRecord
from ..logging import get_logger

logger = get_logger(__name__)

DUPLICATE_COLUMNS = ["frontliner_id", "duplicate image URLs", "id"]
FAILED_COLUMNS = ["id", "store_id", "frontliner_id", "photo_url"]


class ReportWriteError(Exception):
    """Raised when a report file cannot be written."""


def format_list(values: Iterable[str]) -> str:
    """Render a list cell as ``[a b c]``."""
    return "[" + " ".join(values) + "]"


def duplicates_frame(groups: Iterable[DuplicateGroup]) -> pd.DataFrame:
    rows = [
        {
            "frontliner_id": group.primary_owner_id,
            "duplicate image URLs": format_list(group.urls),
            "id": format_list(group.record_ids),
        }
        for group in groups
    ]
    return pd.DataFrame(rows, columns=DUPLICATE_COLUMNS)


def failed_frame(failed: Iterable[FailedRecord]) -> pd.DataFrame:
    rows = [
        {
            "id": record.id,
            "store_id": record.store_id,
            "frontliner_id": record.owner_id,
            "photo_url": record.url,
        }
        for record in failed
    ]
    return pd.DataFrame(rows, columns=FAILED_COLUMNS)


def write_report(frame: pd.DataFrame, path: Path) -> Path:
    """
    Write a report frame to ``path``.

    Args:
        frame: Rows to write
        path: Destination; ``.xlsx`` selects Excel, otherwise CSV

    Returns:
        The path written

    Raises:
        ReportWriteError: If the file cannot be written
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix.lower() == ".xlsx":
            frame.to_excel(path, index=False, sheet_name="Sheet1")
        else:
            frame.to_csv(path, index=False)
    except (OSError, ValueError) as exc:
        raise ReportWriteError(f"Failed to write report {path}: {exc}") from exc

    logger.info(f"Wrote {len(frame)} rows to {path}")
    return path


def write_reports(
    duplicates: List[DuplicateGroup],
    failed: List[FailedRecord],
    duplicates_path: Path,
    failed_path: Path,
) -> List[Path]:
    """Write the duplicates and failed-downloads reports."""
    return [
        write_report(duplicates_frame(duplicates), duplicates_path),
        write_report(failed_frame(failed), failed_path),
    ]
