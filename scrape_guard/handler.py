"""
Error handler wrapping scrape operations.

Composes the classifier, circuit breaker and retry scheduler around a single
scrape operation and turns every anticipated failure into a structured
envelope instead of an exception:

    handler = ScrapingErrorHandler(max_retries=2)
    result = await handler.wrap(url, fetch_operation)
    if result["success"]:
        article = result["data"]
    else:
        logger.warning(result["error"]["type"])
"""

import asyncio
import hashlib
import inspect
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional
from urllib.parse import urlsplit

import orjson
from loguru import logger

from .circuit_breaker import CircuitBreaker, get_circuit_breaker
from .classifier import classify_error
from .config import (
    BASE_DELAY,
    DEFAULT_CONCURRENCY,
    MAX_RETRIES,
    SCRAPER_ERROR_TAG,
    UNKNOWN_DOMAIN,
)
from .exceptions import (
    BatchAbortedError,
    CircuitOpenError,
    ConfigurationError,
    ScrapingError,
)
from .retry import retry_with_backoff


def extract_domain(url: Any) -> str:
    """Hostname of ``url``, or ``UNKNOWN_DOMAIN`` when it cannot be parsed"""
    try:
        hostname = urlsplit(url if isinstance(url, str) else _safe_str(url)).hostname
    except Exception:
        return UNKNOWN_DOMAIN
    return hostname or UNKNOWN_DOMAIN


def make_operation_id(url: Any) -> str:
    """Short log-correlation token; not guaranteed unique"""
    seed = f"{_safe_str(url)}-{int(time.time() * 1000)}".encode("utf-8", errors="replace")
    return hashlib.md5(seed, usedforsecurity=False).hexdigest()[:8]


def log_scraping_error(
    error: ScrapingError, url: Any, context: Optional[Mapping] = None
) -> None:
    """Emit a structured log entry for a failed scrape without ever raising"""
    try:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "url": _safe_str(url),
            "error": {
                "type": error.error_type.value,
                "message": error.message,
                "can_retry": error.can_retry,
            },
            "context": dict(context or {}),
            "metadata": dict(error.metadata),
        }
        payload = orjson.dumps(entry, default=str, option=orjson.OPT_INDENT_2)
        logger.error(f"{SCRAPER_ERROR_TAG} {payload.decode()}")
    except Exception:
        logger.error(
            f"{SCRAPER_ERROR_TAG} Failed to log error: "
            f"{error.error_type.value} {error.message}"
        )


def _safe_str(value: Any) -> str:
    try:
        return str(value)
    except Exception:
        return f"<unprintable {type(value).__name__}>"


def _safe_attr(obj: Any, name: str) -> Any:
    try:
        return getattr(obj, name, None)
    except Exception:
        return None


class ScrapingErrorHandler:
    """
    Resilient wrapper for scraping operations with:
    - Failure classification into ``ErrorType`` values
    - Per-domain circuit breaker (process-wide by default)
    - Exponential backoff retry for transient failures
    - Non-fatal structured error logging
    - Bounded-concurrency batches with per-item isolation
    """

    def __init__(
        self,
        max_retries: int = MAX_RETRIES,
        base_delay: float = BASE_DELAY,
        enable_circuit_breaker: bool = True,
        log_errors: bool = True,
        circuit_breaker: Optional[CircuitBreaker] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize error handler.

        Args:
            max_retries: Retries after the first attempt for retryable failures
            base_delay: Seconds before the first retry, doubled on each retry
            enable_circuit_breaker: Block domains with repeated failures
            log_errors: Log a structured entry for every failed operation
            circuit_breaker: Breaker to use instead of the process-wide one
            sleep: Awaitable sleep used for backoff (injectable for tests)
        """
        if max_retries < 0:
            raise ConfigurationError(f"max_retries must not be negative, got {max_retries}")
        if base_delay < 0:
            raise ConfigurationError(f"base_delay must not be negative, got {base_delay}")

        self.max_retries = max_retries
        self.base_delay = base_delay
        self.enable_circuit_breaker = enable_circuit_breaker
        self.log_errors = log_errors
        self.circuit_breaker = (
            circuit_breaker if circuit_breaker is not None else get_circuit_breaker()
        )
        self._sleep = sleep

    async def wrap(
        self,
        url: Any,
        operation: Callable[[], Any],
        context: Optional[Mapping] = None,
    ) -> Dict[str, Any]:
        """
        Run ``operation`` against ``url`` and return a success or failure envelope.

        ``operation`` is a zero-argument callable, normally async. Any
        ``Exception`` it raises is classified; the envelope is returned in
        every case and nothing is raised to the caller.
        """
        url_text = _safe_str(url)
        domain = extract_domain(url_text)
        operation_id = make_operation_id(url)
        breaker = self.circuit_breaker if self.enable_circuit_breaker else None
        attempts = 0

        async def attempt():
            nonlocal attempts
            attempts += 1
            try:
                result = operation()
                if inspect.isawaitable(result):
                    result = await result
                return result
            except ScrapingError as e:
                raise e.with_metadata(
                    domain=domain, url=url_text, operation_id=operation_id, attempt=attempts
                ) from None
            except Exception as e:
                classification = classify_error(
                    e, _safe_attr(e, "response"), _safe_attr(e, "content")
                )
                raise ScrapingError(
                    classification.error_type,
                    classification.message,
                    e,
                    {
                        "domain": domain,
                        "url": url_text,
                        "operation_id": operation_id,
                        "attempt": attempts,
                    },
                ) from e

        try:
            if breaker is not None and not breaker.can_attempt(domain):
                raise CircuitOpenError(
                    metadata={"domain": domain, "url": url_text, "operation_id": operation_id}
                )

            data = await retry_with_backoff(
                attempt,
                max_retries=self.max_retries,
                base_delay=self.base_delay,
                sleep=self._sleep,
            )

        except Exception as e:
            error = e if isinstance(e, ScrapingError) else self._classify_unexpected(
                e, domain, url_text, operation_id
            )

            if (
                breaker is not None
                and not isinstance(error, CircuitOpenError)
                and error.error_type.trips_circuit_breaker
            ):
                breaker.record_failure(domain)

            if self.log_errors:
                try:
                    log_scraping_error(error, url, context)
                except Exception as log_error:
                    logger.error(f"[ERROR_HANDLER] Failed to log error: {log_error!r}")

            return {
                "success": False,
                "error": error.to_dict(),
                "metadata": self._envelope_metadata(domain, operation_id),
            }

        if breaker is not None:
            breaker.record_success(domain)

        return {
            "success": True,
            "data": data,
            "metadata": self._envelope_metadata(domain, operation_id),
        }

    async def wrap_batch(
        self,
        items: Iterable[Any],
        concurrency: int = DEFAULT_CONCURRENCY,
        continue_on_error: bool = True,
        collect_errors: bool = True,
    ) -> Dict[str, Any]:
        """
        Handle many ``{url, operation, context}`` items with error isolation.

        Items run in sequential groups of ``concurrency``; every item of a
        group runs concurrently and the whole group settles before the next
        one starts. ``results`` and ``errors`` are in completion order, which
        is not the input order and is not stable between runs.

        Raises:
            BatchAbortedError: ``continue_on_error`` is False and an item of
                the last settled group failed. Carries the partial result.
        """
        if concurrency < 1:
            raise ConfigurationError(f"concurrency must be at least 1, got {concurrency}")

        items = list(items)
        total = len(items)
        results: List[Dict[str, Any]] = []
        errors: List[Dict[str, Any]] = []
        failed = 0

        async def run_item(item):
            nonlocal failed
            url, operation, context = _unpack_item(item)
            outcome = await self.wrap(url, operation, context)
            entry = {"url": url, **outcome}
            if outcome["success"]:
                results.append(entry)
            else:
                failed += 1
                if collect_errors:
                    errors.append(entry)
            return outcome

        for start in range(0, total, concurrency):
            group = items[start:start + concurrency]
            logger.debug(
                f"Batch group {start // concurrency + 1}: "
                f"items {start + 1}-{start + len(group)} of {total}"
            )

            outcomes = await asyncio.gather(
                *(run_item(item) for item in group), return_exceptions=True
            )
            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    raise outcome

            if not continue_on_error:
                failures = [outcome for outcome in outcomes if not outcome["success"]]
                if failures:
                    partial = _batch_result(total, results, errors, failed)
                    raise BatchAbortedError(
                        f"Batch operation failed: {failures[0]['error']['message']}",
                        result=partial,
                    )

        report = _batch_result(total, results, errors, failed)
        summary = report["summary"]
        logger.info(
            f"Batch complete: {summary['succeeded']}/{summary['total']} succeeded "
            f"({summary['success_rate'] * 100:.1f}%)"
        )
        return report

    def get_circuit_breaker_status(self) -> Dict[str, Any]:
        """Circuit breaker snapshot for monitoring"""
        return self.circuit_breaker.status()

    def reset_circuit_breaker(self, domain: Optional[str] = None) -> None:
        """Reset one domain, or every domain (for testing/manual intervention)"""
        self.circuit_breaker.reset(domain)

    @staticmethod
    def _classify_unexpected(
        error: Exception, domain: str, url: Any, operation_id: str
    ) -> ScrapingError:
        classification = classify_error(error)
        return ScrapingError(
            classification.error_type,
            classification.message,
            error,
            {"domain": domain, "url": url, "operation_id": operation_id},
        )

    @staticmethod
    def _envelope_metadata(domain: str, operation_id: str) -> Dict[str, Any]:
        return {
            "domain": domain,
            "operation_id": operation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


def _unpack_item(item: Any):
    if isinstance(item, Mapping):
        return item.get("url"), item.get("operation"), item.get("context")
    return (
        getattr(item, "url", None),
        getattr(item, "operation", None),
        getattr(item, "context", None),
    )


def _batch_result(
    total: int,
    results: List[Dict[str, Any]],
    errors: List[Dict[str, Any]],
    failed: int,
) -> Dict[str, Any]:
    succeeded = len(results)
    return {
        "success": succeeded > 0,
        "results": list(results),
        "errors": list(errors),
        "summary": {
            "total": total,
            "succeeded": succeeded,
            "failed": failed,
            "success_rate": succeeded / total if total else 0.0,
        },
    }


_SHARED_HANDLER: Optional[ScrapingErrorHandler] = None


def get_error_handler() -> ScrapingErrorHandler:
    """Get or create the default handler bound to the process-wide breaker"""
    global _SHARED_HANDLER
    if _SHARED_HANDLER is None:
        _SHARED_HANDLER = ScrapingErrorHandler()
    return _SHARED_HANDLER
