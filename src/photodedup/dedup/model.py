"""Public API for duplicate detection over image records."""

from typing import Optional, Sequence

import requests

from ..config import Settings
from ..fetch.fetcher import ImageFetcher, make_session
from ..records import ImageRecord
from ..logging import get_logger
from .engine import DedupEngine, DedupResult

logger = get_logger(__name__)


def build_engine(settings: Settings, session: Optional[requests.Session] = None) -> DedupEngine:
    """Wire a fetcher and engine from settings; a pooled session is created if none is given."""
    if session is None:
        session = make_session(pool_size=settings.workers)
    fetcher = ImageFetcher(
        session,
        timeout=settings.timeout,
        max_attempts=settings.max_attempts,
        backoff=settings.backoff,
    )
    return DedupEngine(
        fetcher,
        threshold=settings.threshold,
        workers=settings.workers,
        report_hash_failures=settings.report_hash_failures,
    )


def detect_duplicates(
    records: Sequence[ImageRecord],
    settings: Optional[Settings] = None,
    session: Optional[requests.Session] = None,
) -> DedupResult:
    """
    Detect visually duplicate images among ``records``.

    Args:
        records: Input records; ids must be unique
        settings: Run configuration (defaults if omitted)
        session: HTTP session to fetch with

    Returns:
        DedupResult with duplicate groups, failed records, and run stats

    Raises:
        DuplicateRecordIdError: If two records share an id
    """
    settings = settings or Settings()
    if not records:
        logger.info("No records to process")
    engine = build_engine(settings, session=session)
    return engine.process(records)
