from pathlib import Path
import pytest
from hypothesis import given, strategies as st

from photodedup.config import Settings


class TestSettings:
    def test_default_values(self):
        """Test that Settings has sensible defaults."""
        settings = Settings()
        assert settings.workers == 10
        assert settings.timeout == 180.0
        assert settings.max_attempts == 3
        assert settings.backoff == 120.0
        assert settings.threshold == 1
        assert settings.report_hash_failures is False
        assert settings.duplicates_path == Path("duplicates.xlsx")
        assert settings.failed_path == Path("failed_downloads.xlsx")

    def test_custom_values(self):
        """Test that Settings accepts custom values."""
        settings = Settings(
            workers=4,
            timeout=5.0,
            max_attempts=1,
            backoff=0.0,
            threshold=0,
            duplicates_path=Path("/tmp/d.csv"),
        )
        assert settings.workers == 4
        assert settings.max_attempts == 1
        assert settings.backoff == 0.0
        assert settings.threshold == 0
        assert settings.duplicates_path == Path("/tmp/d.csv")


class TestConfigValidation:
    @given(workers=st.integers(max_value=0))
    def test_non_positive_workers_rejected(self, workers):
        with pytest.raises(ValueError, match="workers"):
            Settings(workers=workers)

    @given(threshold=st.integers(max_value=-1))
    def test_negative_threshold_rejected(self, threshold):
        with pytest.raises(ValueError, match="threshold"):
            Settings(threshold=threshold)

    @given(attempts=st.integers(max_value=0))
    def test_non_positive_attempts_rejected(self, attempts):
        with pytest.raises(ValueError, match="max_attempts"):
            Settings(max_attempts=attempts)

    def test_zero_timeout_rejected(self):
        with pytest.raises(ValueError, match="timeout"):
            Settings(timeout=0)

    def test_negative_backoff_rejected(self):
        with pytest.raises(ValueError, match="backoff"):
            Settings(backoff=-1.0)

    @given(
        workers=st.integers(min_value=1, max_value=256),
        threshold=st.integers(min_value=0, max_value=64),
    )
    def test_valid_values_accepted(self, workers, threshold):
        """For any positive pool size and non-negative threshold, Settings should accept them."""
        settings = Settings(workers=workers, threshold=threshold)
        assert settings.workers == workers
        assert settings.threshold == threshold
