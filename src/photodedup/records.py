"""
Input records and the CSV record source.

Each row of the input sheet describes one uploaded photo: its id, the store
it was taken at, the frontliner who owns it, and where to download it.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import List, Literal

import pandas as pd

from .logging import get_logger

logger = get_logger(__name__)

FailureReason = Literal["fetch", "hash"]

RECORD_COLUMNS = 4


class RecordSourceError(Exception):
    """Raised when the input records cannot be read."""


@dataclass(frozen=True)
class ImageRecord:
    """One photo to check for duplicates."""
    id: str                # Unique record identifier
    store_id: str          # Secondary owner (store)
    owner_id: str          # Grouping owner (frontliner)
    url: str               # Photo URL


@dataclass(frozen=True)
class FailedRecord:
    """A record that could not be turned into a fingerprint."""
    id: str
    store_id: str
    owner_id: str
    url: str
    reason: FailureReason = "fetch"

    @classmethod
    def from_record(cls, record: ImageRecord, reason: FailureReason = "fetch") -> FailedRecord:
        return cls(
            id=record.id,
            store_id=record.store_id,
            owner_id=record.owner_id,
            url=record.url,
            reason=reason,
        )


def read_records(path: Path | str) -> List[ImageRecord]:
    """
    Read image records from a CSV file.

    The first row is a header and is skipped. Columns are positional:
    id, store id, owner id, photo URL. Extra trailing columns are ignored.

    Args:
        path: CSV file to read

    Returns:
        Records in file order

    Raises:
        RecordSourceError: If the file is missing, unparseable, has fewer
            than four columns, or has a row whose field count differs from
            the header
    """
    path = Path(path)
    if not path.exists():
        raise RecordSourceError(f"Record file does not exist: {path}")

    try:
        _check_row_widths(path)
        frame = pd.read_csv(path, dtype=str, keep_default_na=False, on_bad_lines="error")
    except (OSError, ValueError, csv.Error, pd.errors.ParserError) as exc:
        raise RecordSourceError(f"Failed to read records from {path}: {exc}") from exc

    if frame.shape[1] < RECORD_COLUMNS:
        raise RecordSourceError(
            f"Expected at least {RECORD_COLUMNS} columns in {path}, found {frame.shape[1]}"
        )

    records = [
        ImageRecord(id=row[0], store_id=row[1], owner_id=row[2], url=row[3])
        for row in frame.iloc[:, :RECORD_COLUMNS].itertuples(index=False, name=None)
    ]
    logger.info(f"Read {len(records)} records from {path}")
    return records


def _check_row_widths(path: Path) -> None:
    """Reject ragged rows; pandas silently pads short ones with empty cells."""
    with open(path, newline="", encoding="utf-8") as handle:
        reader = csv.reader(handle)
        header = next(reader, None)
        if header is None:
            return
        for row in reader:
            if not row:
                continue
            if len(row) != len(header):
                raise RecordSourceError(
                    f"Line {reader.line_num} of {path} has {len(row)} fields, "
                    f"expected {len(header)}"
                )
