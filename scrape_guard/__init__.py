"""Resilient scraping error handler
Classifies scrape failures, retries transient ones and blocks failing domains
"""

__version__ = "0.1.0"

from .circuit_breaker import CircuitBreaker, get_circuit_breaker
from .classifier import classify_error, http_status_for
from .exceptions import (
    BatchAbortedError,
    CircuitOpenError,
    ConfigurationError,
    FetchError,
    ScraperError,
    ScrapingError,
)
from .handler import ScrapingErrorHandler, extract_domain, get_error_handler
from .models import CircuitState, Classification, ErrorType
from .retry import compute_backoff, retry_with_backoff
from .scraper import fetch_article, scrape_for_app, scrape_url, scrape_urls

__all__ = [
    "__version__",
    "CircuitBreaker",
    "get_circuit_breaker",
    "classify_error",
    "http_status_for",
    "BatchAbortedError",
    "CircuitOpenError",
    "ConfigurationError",
    "FetchError",
    "ScraperError",
    "ScrapingError",
    "ScrapingErrorHandler",
    "extract_domain",
    "get_error_handler",
    "CircuitState",
    "Classification",
    "ErrorType",
    "compute_backoff",
    "retry_with_backoff",
    "fetch_article",
    "scrape_for_app",
    "scrape_url",
    "scrape_urls",
]
