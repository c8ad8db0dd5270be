"""Test configuration for pytest."""

import logging
import os
import pytest


@pytest.fixture(autouse=True)
def configure_test_logging():
    """Configure logging for tests to be minimal."""
    # Set environment variable to ensure minimal logging during tests
    os.environ['PHOTODEDUP_LOG_LEVEL'] = 'WARNING'

    # Also configure root logger to be quiet
    logging.getLogger().setLevel(logging.WARNING)

    # Fetch retries and hash failures are expected in many tests
    for logger_name in ['photodedup.fetch.fetcher', 'photodedup.dedup.engine']:
        logging.getLogger(logger_name).setLevel(logging.CRITICAL)
