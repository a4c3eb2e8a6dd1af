"""Data models and enums for the scraping error handler"""

from dataclasses import dataclass
from enum import Enum


class CircuitState(Enum):
    """Circuit breaker states"""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject attempts until the timeout elapses


class ErrorType(Enum):
    """Error categories for different handling strategies"""

    HTTP_ERROR = "http_error"
    PAYWALL = "paywall"
    JAVASCRIPT_REQUIRED = "javascript_required"
    NETWORK_ERROR = "network_error"
    DNS_ERROR = "dns_error"
    TIMEOUT = "timeout"
    PARSING_ERROR = "parsing_error"
    RATE_LIMITED = "rate_limited"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        """Whether a failure of this kind is worth another attempt"""
        return self in _RETRYABLE

    @property
    def trips_circuit_breaker(self) -> bool:
        """Whether a failure of this kind counts against the domain"""
        return self in _BREAKER_ELIGIBLE


_RETRYABLE = frozenset(
    {ErrorType.NETWORK_ERROR, ErrorType.TIMEOUT, ErrorType.RATE_LIMITED}
)

_BREAKER_ELIGIBLE = frozenset(
    {ErrorType.HTTP_ERROR, ErrorType.NETWORK_ERROR, ErrorType.DNS_ERROR}
)


@dataclass(frozen=True)
class Classification:
    """Result of classifying a failed scrape"""

    error_type: ErrorType
    message: str
