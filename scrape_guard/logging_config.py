"""Logging configuration using loguru"""

import sys
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

from .config import SCRAPER_ERROR_TAG

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"


def is_scraper_error(record: Dict) -> bool:
    """loguru filter matching the structured entries written by ``log_scraping_error``"""
    return record["message"].startswith(SCRAPER_ERROR_TAG)


def error_log_path(log_file: Path) -> Path:
    """``logs/scrape_guard.log`` -> ``logs/scrape_guard.errors.log``"""
    return log_file.with_name(f"{log_file.stem}.errors{log_file.suffix or '.log'}")


def setup_logging(
    verbose: bool = False,
    log_file: Optional[Path] = None,
    error_log_file: Optional[Path] = None,
) -> List[int]:
    """
    Configure loguru for scraper runs.

    The console sink goes to stderr so that ``--json`` output on stdout stays
    parseable. With ``log_file`` set, everything at DEBUG and above is written
    there, and the structured ``[SCRAPER_ERROR]`` entries are also copied to a
    separate error log (``error_log_file``, or ``<stem>.errors.log`` next to
    ``log_file``) so failed scrapes can be reviewed without the noise.

    Args:
        verbose: Enable debug-level logging
        log_file: Optional file path for log output
        error_log_file: Optional override for the structured error log

    Returns:
        Sink ids added, in order (console, then file sinks if any)
    """
    logger.remove()

    sink_ids = [
        logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level="DEBUG" if verbose else "INFO",
            colorize=True,
        )
    ]

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        sink_ids.append(
            logger.add(
                log_file,
                format=FILE_FORMAT,
                level="DEBUG",
                rotation="50 MB",
                retention="14 days",
                compression="zip",
                enqueue=True,
            )
        )

        errors_path = Path(error_log_file) if error_log_file else error_log_path(log_file)
        errors_path.parent.mkdir(parents=True, exist_ok=True)
        # Entries are multi-line JSON; keep the bare message so each one stays parseable
        sink_ids.append(
            logger.add(
                errors_path,
                format="{message}",
                level="ERROR",
                filter=is_scraper_error,
                rotation="50 MB",
                retention="30 days",
                enqueue=True,
            )
        )
        logger.info(f"Logging to file: {log_file} (scrape errors: {errors_path})")

    return sink_ids
