"""Per-domain circuit breaker"""

import threading
import time
from typing import Any, Callable, Dict, Optional

from loguru import logger

from .config import CIRCUIT_BREAKER_THRESHOLD, CIRCUIT_BREAKER_TIMEOUT
from .exceptions import ConfigurationError
from .models import CircuitState


class CircuitBreaker:
    """
    Circuit breaker keyed by domain to stop hammering failing sites.

    A key blocks once it has ``failure_threshold`` recorded failures and is
    admitted again when more than ``timeout`` seconds have passed since its
    last failure. This is a simplified two-state breaker (closed and
    open-with-timeout): there is no half-open phase that admits a bounded
    number of trial requests. After the cool-down every attempt is admitted, a
    success clears the key and a further failure refreshes the timestamp,
    which blocks the key for another full timeout.

    All methods are synchronous and serialized by a lock that is never held
    across an ``await``, so concurrent tasks (or threads) recording against
    the same key never lose an update.
    """

    def __init__(
        self,
        failure_threshold: int = CIRCUIT_BREAKER_THRESHOLD,
        timeout: float = CIRCUIT_BREAKER_TIMEOUT,
        name: str = "domains",
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize circuit breaker.

        Args:
            failure_threshold: Number of failures before a key is blocked
            timeout: Seconds after the last failure before a blocked key is tried again
            name: Name for logging purposes
            clock: Time source returning seconds since the epoch
        """
        if failure_threshold < 1:
            raise ConfigurationError(
                f"failure_threshold must be at least 1, got {failure_threshold}"
            )
        if timeout < 0:
            raise ConfigurationError(f"timeout must not be negative, got {timeout}")

        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.name = name
        self._clock = clock
        self._failures: Dict[str, int] = {}
        self._last_failure: Dict[str, float] = {}
        self._lock = threading.Lock()

        logger.debug(
            f"Circuit breaker '{name}' initialized: "
            f"threshold={failure_threshold}, timeout={timeout}s"
        )

    def can_attempt(self, key: str) -> bool:
        """Whether an attempt against ``key`` is currently permitted"""
        with self._lock:
            return self._is_admissible(key)

    def state(self, key: str) -> CircuitState:
        with self._lock:
            return CircuitState.CLOSED if self._is_admissible(key) else CircuitState.OPEN

    def record_failure(self, key: str) -> int:
        """Count a failure against ``key`` and return the new failure count"""
        with self._lock:
            failures = self._failures.get(key, 0) + 1
            self._failures[key] = failures
            self._last_failure[key] = self._clock()

        if failures == self.failure_threshold:
            logger.error(
                f"Circuit '{self.name}' OPENING for {key} after {failures} failures"
            )
        elif failures < self.failure_threshold:
            logger.warning(
                f"Circuit '{self.name}' failure for {key} "
                f"{failures}/{self.failure_threshold}"
            )
        else:
            logger.warning(
                f"Circuit '{self.name}' still failing for {key} ({failures} failures), "
                f"blocked for another {self.timeout:.0f}s"
            )
        return failures

    def record_success(self, key: str) -> None:
        """Clear the failure history of ``key``"""
        with self._lock:
            failures = self._failures.pop(key, 0)
            self._last_failure.pop(key, None)

        if failures >= self.failure_threshold:
            logger.success(f"Circuit '{self.name}' recovered for {key}, closing")

    def reset(self, key: Optional[str] = None) -> None:
        """Clear one key, or every key when ``key`` is None"""
        with self._lock:
            if key is None:
                self._failures.clear()
                self._last_failure.clear()
            else:
                self._failures.pop(key, None)
                self._last_failure.pop(key, None)

        logger.info(f"Circuit '{self.name}' reset: {key or 'all keys'}")

    def status(self) -> Dict[str, Any]:
        """Read-only snapshot for monitoring"""
        with self._lock:
            return {
                "failures": dict(self._failures),
                "last_failures": dict(self._last_failure),
                "threshold": self.failure_threshold,
                "timeout": self.timeout,
            }

    def _is_admissible(self, key: str) -> bool:
        if self._failures.get(key, 0) < self.failure_threshold:
            return True
        elapsed = self._clock() - self._last_failure.get(key, 0.0)
        return elapsed > self.timeout


_SHARED_CIRCUIT_BREAKER: Optional[CircuitBreaker] = None
_SHARED_LOCK = threading.Lock()


def get_circuit_breaker() -> CircuitBreaker:
    """Get or create the process-wide circuit breaker"""
    global _SHARED_CIRCUIT_BREAKER
    with _SHARED_LOCK:
        if _SHARED_CIRCUIT_BREAKER is None:
            _SHARED_CIRCUIT_BREAKER = CircuitBreaker()
        return _SHARED_CIRCUIT_BREAKER
