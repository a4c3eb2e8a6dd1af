import asyncio

import pytest

from scrape_guard.circuit_breaker import CircuitBreaker, get_circuit_breaker
from scrape_guard.exceptions import ConfigurationError
from scrape_guard.models import CircuitState


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def breaker(clock):
    return CircuitBreaker(failure_threshold=5, timeout=60.0, name="test", clock=clock)


def test_unknown_key_is_admissible(breaker):
    assert breaker.can_attempt("x.com")
    assert breaker.state("x.com") is CircuitState.CLOSED


def test_blocks_after_threshold_failures(breaker):
    for _ in range(4):
        breaker.record_failure("x.com")
        assert breaker.can_attempt("x.com")

    breaker.record_failure("x.com")
    assert not breaker.can_attempt("x.com")
    assert breaker.state("x.com") is CircuitState.OPEN


def test_reopens_only_after_timeout(breaker, clock):
    for _ in range(5):
        breaker.record_failure("x.com")

    clock.advance(59.0)
    assert not breaker.can_attempt("x.com")
    clock.advance(1.0)
    assert not breaker.can_attempt("x.com")
    clock.advance(0.5)
    assert breaker.can_attempt("x.com")


def test_failure_after_cooldown_extends_block(breaker, clock):
    for _ in range(5):
        breaker.record_failure("x.com")
    clock.advance(61.0)
    assert breaker.can_attempt("x.com")

    breaker.record_failure("x.com")
    assert not breaker.can_attempt("x.com")
    clock.advance(61.0)
    assert breaker.can_attempt("x.com")


def test_success_clears_entry(breaker):
    for _ in range(5):
        breaker.record_failure("x.com")
    breaker.record_success("x.com")

    assert breaker.can_attempt("x.com")
    assert "x.com" not in breaker.status()["failures"]
    assert "x.com" not in breaker.status()["last_failures"]


def test_keys_are_independent(breaker):
    for _ in range(5):
        breaker.record_failure("bad.com")
    assert not breaker.can_attempt("bad.com")
    assert breaker.can_attempt("good.com")


def test_reset_single_key(breaker):
    for _ in range(5):
        breaker.record_failure("a.com")
        breaker.record_failure("b.com")

    breaker.reset("a.com")

    status = breaker.status()
    assert breaker.can_attempt("a.com")
    assert "a.com" not in status["failures"]
    assert status["failures"]["b.com"] == 5


def test_reset_all(breaker):
    breaker.record_failure("a.com")
    breaker.record_failure("b.com")
    breaker.reset()
    assert breaker.status()["failures"] == {}
    assert breaker.status()["last_failures"] == {}


def test_status_snapshot(breaker, clock):
    breaker.record_failure("x.com")
    breaker.record_failure("x.com")

    status = breaker.status()
    assert status == {
        "failures": {"x.com": 2},
        "last_failures": {"x.com": clock.now},
        "threshold": 5,
        "timeout": 60.0,
    }

    # Snapshot is a copy
    status["failures"]["x.com"] = 99
    assert breaker.status()["failures"]["x.com"] == 2


def test_record_failure_returns_count(breaker):
    assert breaker.record_failure("x.com") == 1
    assert breaker.record_failure("x.com") == 2


@pytest.mark.asyncio
async def test_concurrent_failures_are_not_lost(breaker):
    async def fail_many():
        for _ in range(50):
            breaker.record_failure("x.com")
            await asyncio.sleep(0)

    await asyncio.gather(*(fail_many() for _ in range(10)))
    assert breaker.status()["failures"]["x.com"] == 500


@pytest.mark.parametrize("threshold,timeout", [(0, 60.0), (-1, 60.0), (5, -1.0)])
def test_invalid_configuration(threshold, timeout):
    with pytest.raises(ConfigurationError):
        CircuitBreaker(failure_threshold=threshold, timeout=timeout)


def test_shared_breaker_is_a_singleton():
    assert get_circuit_breaker() is get_circuit_breaker()
    assert get_circuit_breaker().failure_threshold == 5
    assert get_circuit_breaker().timeout == 60.0
