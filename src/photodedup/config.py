from dataclasses import dataclass
from pathlib import Path


@dataclass
class Settings:
    workers: int = 10
    timeout: float = 180.0
    max_attempts: int = 3
    backoff: float = 120.0
    threshold: int = 1
    report_hash_failures: bool = False
    duplicates_path: Path = Path("duplicates.xlsx")
    failed_path: Path = Path("failed_downloads.xlsx")

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.threshold < 0:
            raise ValueError(f"threshold must be non-negative, got {self.threshold}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.backoff < 0:
            raise ValueError(f"backoff must be non-negative, got {self.backoff}")
