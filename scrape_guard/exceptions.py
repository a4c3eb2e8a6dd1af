"""Custom exception classes for the scraping error handler"""

from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .models import ErrorType


class ScraperError(Exception):
    """Base exception for scraper errors"""

    pass


class ConfigurationError(ScraperError, ValueError):
    """Raised when a component is constructed with invalid options"""

    pass


class FetchError(ScraperError):
    """Raised by scrape operations to describe what went wrong

    Every field is optional. ``response`` may be any object exposing
    ``status`` or ``status_code`` (or a mapping with a ``"status"`` key),
    ``content`` is the fetched body, and ``code`` mirrors socket error codes
    such as ``ENOTFOUND``. Missing fields simply carry no signal for the
    classifier.
    """

    def __init__(
        self,
        message: str = "Fetch failed",
        code: Optional[str] = None,
        response: Any = None,
        content: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.response = response
        self.content = content


def _describe_cause(error: Optional[BaseException]) -> Optional[Dict[str, str]]:
    if error is None:
        return None
    try:
        message = str(error)
    except Exception:
        message = repr(type(error))
    return {"name": type(error).__name__, "message": message}


class ScrapingError(ScraperError):
    """
    Structured, immutable failure value for a single scrape operation.

    Carries the classified error type, a human readable message, whether the
    failure is retryable, the name and message of the original cause and
    contextual metadata (timestamp, domain, url, operation id, attempt).
    """

    def __init__(
        self,
        error_type: ErrorType,
        message: str,
        original_error: Optional[BaseException] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message)
        self._error_type = ErrorType(error_type)
        self._message = message
        self._original_error = _describe_cause(original_error)
        merged = {"timestamp": datetime.now(timezone.utc).isoformat()}
        if metadata:
            merged.update(metadata)
        self._metadata = MappingProxyType(merged)

    @property
    def error_type(self) -> ErrorType:
        return self._error_type

    @property
    def message(self) -> str:
        return self._message

    @property
    def can_retry(self) -> bool:
        return self._error_type.retryable

    @property
    def original_error(self) -> Optional[Dict[str, str]]:
        if self._original_error is None:
            return None
        return dict(self._original_error)

    @property
    def metadata(self) -> Mapping[str, Any]:
        return self._metadata

    def with_metadata(self, **extra: Any) -> "ScrapingError":
        """Return a copy of this error with ``extra`` merged into its metadata"""
        metadata = dict(self._metadata)
        metadata.update(extra)
        return self._copy_with(metadata)

    def _copy_with(self, metadata: Dict[str, Any]) -> "ScrapingError":
        # Bypass __init__ so subclasses keep their type and extra attributes
        clone = type(self).__new__(type(self))
        clone.__dict__.update(self.__dict__)
        clone.args = self.args
        clone._metadata = MappingProxyType(dict(metadata))
        return clone

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for logging and API responses"""
        data: Dict[str, Any] = {
            "type": self._error_type.value,
            "message": self._message,
            "can_retry": self.can_retry,
            "metadata": dict(self._metadata),
        }
        if self._original_error is not None:
            data["original_error"] = dict(self._original_error)
        return data

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._error_type.value!r}, {self._message!r})"


class CircuitOpenError(ScrapingError):
    """Raised when the circuit breaker blocks a domain"""

    DEFAULT_MESSAGE = (
        "Circuit breaker open - domain temporarily blocked due to repeated failures"
    )

    def __init__(
        self,
        message: str = DEFAULT_MESSAGE,
        metadata: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(ErrorType.HTTP_ERROR, message, metadata=metadata)


class BatchAbortedError(ScraperError):
    """Raised by ``wrap_batch`` when ``continue_on_error`` is off and an item failed

    ``result`` holds the partial batch result collected up to and including
    the group that contained the failure.
    """

    def __init__(self, message: str, result: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.result = result
