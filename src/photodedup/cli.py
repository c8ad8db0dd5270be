from pathlib import Path
from typing import Optional
import time

import typer

from .config import Settings
from .logging import get_logger, set_package_level
from .records import RecordSourceError, read_records
from .dedup.engine import DuplicateRecordIdError
from .dedup.model import detect_duplicates
from .output.report import ReportWriteError, write_reports

app = typer.Typer(help="photodedup – find visually duplicate photos across image records", no_args_is_help=True)


def safe_echo(message: str) -> None:
    """Echo message with Unicode fallback for consoles without UTF-8."""
    try:
        typer.echo(message)
    except UnicodeEncodeError:
        fallback_message = (
            message.replace("✅", "[OK]")
            .replace("📄", "[CSV]")
            .replace("🖼️", "[IMG]")
            .replace("🔄", "[DUP]")
            .replace("⚠️", "[FAIL]")
            .replace("📁", "[OUT]")
            .replace("⏱️", "[TIME]")
        )
        typer.echo(fallback_message)


@app.command()
def scan(
    csv_path: Path = typer.Argument(..., exists=True, readable=True, help="CSV of id, store id, frontliner id, photo URL"),
    duplicates_out: Path = typer.Option(Path("duplicates.xlsx"), "--duplicates-out", "-d", help="Duplicates report (.xlsx or .csv)"),
    failed_out: Path = typer.Option(Path("failed_downloads.xlsx"), "--failed-out", "-f", help="Failed downloads report (.xlsx or .csv)"),
    workers: int = typer.Option(10, help="Number of concurrent download workers"),
    threshold: int = typer.Option(1, help="Fingerprint distance below which two images are duplicates"),
    timeout: float = typer.Option(180.0, help="Per-request HTTP timeout in seconds"),
    retries: int = typer.Option(3, help="Download attempts per image"),
    backoff: float = typer.Option(120.0, help="Seconds to wait between download attempts"),
    report_hash_failures: bool = typer.Option(
        False,
        "--report-hash-failures/--drop-hash-failures",
        help="Report images that download but cannot be fingerprinted as failures",
    ),
    log_level: Optional[str] = typer.Option(None, help="Log level for all photodedup loggers (e.g. DEBUG)"),
) -> None:
    """
    Detect duplicate photos listed in a CSV file.

    Every photo URL is downloaded and fingerprinted with a perceptual hash.
    Photos whose fingerprints are closer than THRESHOLD are grouped by the
    pair of frontliners who uploaded them. Downloads that fail after all
    retries are written to a separate report.
    """
    logger = get_logger(__name__)
    start = time.perf_counter()

    try:
        if log_level:
            set_package_level(log_level)
        settings = Settings(
            workers=workers,
            timeout=timeout,
            max_attempts=retries,
            backoff=backoff,
            threshold=threshold,
            report_hash_failures=report_hash_failures,
            duplicates_path=duplicates_out,
            failed_path=failed_out,
        )
    except ValueError as exc:
        logger.error(f"Invalid settings: {exc}")
        raise typer.Exit(code=1) from exc

    try:
        logger.info(f"Reading records from {csv_path}")
        records = read_records(csv_path)
    except RecordSourceError as exc:
        logger.error(f"Failed to read CSV file: {exc}")
        raise typer.Exit(code=2) from exc

    try:
        result = detect_duplicates(records, settings)
    except DuplicateRecordIdError as exc:
        logger.error(f"Invalid input records: {exc}")
        raise typer.Exit(code=2) from exc
    logger.info("Duplicate detection complete")

    try:
        write_reports(result.duplicates, result.failed, settings.duplicates_path, settings.failed_path)
    except ReportWriteError as exc:
        logger.error(f"Failed to write report: {exc}")
        raise typer.Exit(code=1) from exc

    stats = result.stats
    safe_echo("\n✅ Duplicate detection complete!")
    safe_echo(f"📄 Records: {stats.records}")
    safe_echo(f"🖼️  Registered: {stats.registered}")
    safe_echo(f"🔄 Duplicate groups: {stats.duplicate_groups} ({stats.grouped} duplicate images)")
    safe_echo(f"⚠️  Failed downloads: {stats.fetch_failed}")
    if stats.hash_failed:
        safe_echo(f"⚠️  Unhashable images: {stats.hash_failed}")
    safe_echo(f"📁 Duplicates written to {settings.duplicates_path}")
    safe_echo(f"📁 Failed downloads written to {settings.failed_path}")
    safe_echo(f"⏱️  Time taken: {time.perf_counter() - start:.2f}s")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
