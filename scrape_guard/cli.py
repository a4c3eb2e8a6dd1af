"""Command-line interface for resilient article scraping"""

import argparse
import asyncio
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlsplit

import orjson
from loguru import logger

from . import __version__
from .circuit_breaker import CircuitBreaker
from .config import (
    BASE_DELAY,
    CIRCUIT_BREAKER_THRESHOLD,
    CIRCUIT_BREAKER_TIMEOUT,
    DEFAULT_LOG_FILE,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SCRAPE_CONCURRENCY,
    MAX_RETRIES,
)
from .exceptions import ConfigurationError
from .handler import ScrapingErrorHandler
from .logging_config import setup_logging
from .scraper import run_demo, scrape_urls
from .storage import save_batch_report


async def run_scrape(
    urls: List[str],
    concurrency: int = DEFAULT_SCRAPE_CONCURRENCY,
    max_retries: int = MAX_RETRIES,
    base_delay: float = BASE_DELAY,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
    enable_circuit_breaker: bool = True,
    failure_threshold: int = CIRCUIT_BREAKER_THRESHOLD,
    breaker_timeout: float = CIRCUIT_BREAKER_TIMEOUT,
    demo: bool = False,
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Scrape ``urls`` (or the demo URLs against the simulated network).

    Returns:
        Tuple of (batch result, circuit breaker status)
    """
    handler = ScrapingErrorHandler(
        max_retries=max_retries,
        base_delay=base_delay,
        enable_circuit_breaker=enable_circuit_breaker,
        circuit_breaker=CircuitBreaker(
            failure_threshold=failure_threshold, timeout=breaker_timeout
        ),
    )

    if demo:
        report = await run_demo(urls or None, handler=handler, concurrency=concurrency)
    else:
        report = await scrape_urls(
            urls, handler=handler, concurrency=concurrency, timeout=timeout
        )

    return report, handler.get_circuit_breaker_status()


def is_valid_url(url: str) -> bool:
    """Absolute http(s) URL with a host"""
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def log_batch_report(
    report: Dict[str, Any],
    breaker_status: Dict[str, Any],
    elapsed: Optional[float] = None,
) -> None:
    """Log a readable summary of a batch result"""
    summary = report["summary"]

    logger.info("=" * 60)
    logger.info("RESULTS")
    if elapsed is not None:
        logger.info(f"   Completed in:   {elapsed:.2f}s")
    logger.info(f"   Total URLs:     {summary['total']}")
    logger.info(f"   Successful:     {summary['succeeded']}")
    logger.info(f"   Failed:         {summary['failed']}")
    logger.info(f"   Success rate:   {summary['success_rate'] * 100:.1f}%")

    if report["results"]:
        logger.info("")
        logger.info("SUCCESSFUL SCRAPES")
        for item in report["results"]:
            data = item.get("data") or {}
            title = data.get("title", "") if isinstance(data, dict) else ""
            logger.info(f"   {item['url']}  {title}")

    if report["errors"]:
        logger.info("")
        logger.info("HANDLED ERRORS")
        for item in report["errors"]:
            error = item["error"]
            logger.info(
                f"   {item['url']}  {error['type']}: {error['message']} "
                f"(can retry: {error['can_retry']})"
            )

    logger.info("")
    logger.info("CIRCUIT BREAKER")
    if not breaker_status["failures"]:
        logger.info("   All domains operational")
    for domain, count in sorted(breaker_status["failures"].items()):
        logger.info(f"   {domain}: {count}/{breaker_status['threshold']} failures")
    logger.info("=" * 60)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scrape-guard",
        description="Scrape article URLs with failure classification, retries and circuit breaking",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("urls", nargs="*", help="Article URLs to scrape")
    parser.add_argument(
        "--demo", action="store_true", help="Scrape the demo URLs against a simulated network"
    )

    retry_group = parser.add_argument_group("Retry and Circuit Breaker")
    retry_group.add_argument(
        "--max-retries", type=int, default=MAX_RETRIES, help="Retries for transient failures"
    )
    retry_group.add_argument(
        "--base-delay", type=float, default=BASE_DELAY, help="Seconds before the first retry"
    )
    retry_group.add_argument(
        "--no-circuit-breaker", action="store_true", help="Disable per-domain circuit breaking"
    )
    retry_group.add_argument(
        "--failure-threshold",
        type=int,
        default=CIRCUIT_BREAKER_THRESHOLD,
        help="Failures before a domain is blocked",
    )
    retry_group.add_argument(
        "--breaker-timeout",
        type=float,
        default=CIRCUIT_BREAKER_TIMEOUT,
        help="Seconds a blocked domain stays blocked",
    )

    config_group = parser.add_argument_group("Configuration")
    config_group.add_argument(
        "--concurrency", type=int, default=DEFAULT_SCRAPE_CONCURRENCY, help="URLs per group"
    )
    config_group.add_argument(
        "--timeout", type=float, default=DEFAULT_REQUEST_TIMEOUT, help="Request timeout (seconds)"
    )
    config_group.add_argument("--output", type=str, help="Directory for the JSON batch report")
    config_group.add_argument(
        "--json", action="store_true", help="Print the batch result as JSON on stdout"
    )
    config_group.add_argument("--verbose", action="store_true", help="Debug logging")
    config_group.add_argument("--log-file", type=str, help="Log file path")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.urls and not args.demo:
        parser.error("at least one URL is required (or use --demo)")
    if args.concurrency < 1:
        parser.error("--concurrency must be at least 1")
    for url in args.urls:
        if not is_valid_url(url):
            parser.error(f"invalid URL: {url}")

    log_file = Path(args.log_file) if args.log_file else DEFAULT_LOG_FILE
    setup_logging(verbose=args.verbose, log_file=log_file)

    logger.info(f"scrape-guard v{__version__}")

    async def run() -> Dict[str, Any]:
        start_time = time.perf_counter()
        report, breaker_status = await run_scrape(
            args.urls,
            concurrency=args.concurrency,
            max_retries=args.max_retries,
            base_delay=args.base_delay,
            timeout=args.timeout,
            enable_circuit_breaker=not args.no_circuit_breaker,
            failure_threshold=args.failure_threshold,
            breaker_timeout=args.breaker_timeout,
            demo=args.demo,
        )
        log_batch_report(report, breaker_status, elapsed=time.perf_counter() - start_time)

        if args.output:
            path, size = await save_batch_report(
                report, Path(args.output), circuit_breaker=breaker_status
            )
            logger.info(f"Report saved: {path} ({size} bytes)")

        if args.json:
            sys.stdout.write(
                orjson.dumps(report, default=str, option=orjson.OPT_INDENT_2).decode()
            )
            sys.stdout.write("\n")

        return report

    try:
        report = asyncio.run(run())
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)

    if not args.demo and not report["success"]:
        sys.exit(1)


if __name__ == "__main__":
    main()
