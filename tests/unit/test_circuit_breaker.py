"""Unit tests for the provider circuit breaker."""

import pytest

from locus.core.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
    get_all_circuit_breakers,
    get_circuit_breaker,
    reset_all_circuit_breakers,
)
from locus.core.exceptions import CircuitBreakerOpenError


class FakeMonotonic:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class TestCircuitBreaker:
    """State transitions."""

    @pytest.fixture
    def clock(self):
        return FakeMonotonic()

    @pytest.fixture
    def breaker(self, clock):
        return CircuitBreaker("test", failure_threshold=3, recovery_timeout=30.0, clock=clock)

    @pytest.mark.asyncio
    async def test_opens_after_threshold(self, breaker):
        """Consecutive failures open the circuit."""
        for _ in range(2):
            await breaker.record_failure()
        assert breaker.is_closed

        await breaker.record_failure()

        assert breaker.is_open
        assert breaker.can_execute() is False

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, breaker):
        """A success in between keeps the circuit closed."""
        await breaker.record_failure()
        await breaker.record_failure()
        await breaker.record_success()
        await breaker.record_failure()

        assert breaker.is_closed

    @pytest.mark.asyncio
    async def test_half_open_after_recovery_timeout(self, breaker, clock):
        for _ in range(3):
            await breaker.record_failure()
        assert breaker.time_until_recovery() == pytest.approx(30.0)

        clock.now += 30.0

        assert breaker.state == CircuitState.HALF_OPEN
        assert breaker.can_execute() is True

    @pytest.mark.asyncio
    async def test_half_open_closes_after_successes(self, breaker, clock):
        for _ in range(3):
            await breaker.record_failure()
        clock.now += 31.0
        assert breaker.state == CircuitState.HALF_OPEN

        await breaker.record_success()
        await breaker.record_success()

        assert breaker.is_closed

    @pytest.mark.asyncio
    async def test_half_open_failure_reopens(self, breaker, clock):
        for _ in range(3):
            await breaker.record_failure()
        clock.now += 31.0
        assert breaker.state == CircuitState.HALF_OPEN

        await breaker.record_failure()

        assert breaker.is_open

    @pytest.mark.asyncio
    async def test_ensure_closed_raises_when_open(self, breaker, clock):
        breaker.ensure_closed()
        for _ in range(3):
            await breaker.record_failure()
        clock.now += 10.0

        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            breaker.ensure_closed()
        assert exc_info.value.recovery_time == pytest.approx(20.0)

    @pytest.mark.asyncio
    async def test_reset(self, breaker):
        for _ in range(3):
            await breaker.record_failure()

        breaker.reset()

        assert breaker.is_closed
        assert breaker.time_until_recovery() == 0.0


class TestRegistry:
    """Process-wide breaker registry."""

    def test_same_name_same_breaker(self):
        assert get_circuit_breaker("yelp") is get_circuit_breaker("yelp")
        assert "yelp" in get_all_circuit_breakers()

    @pytest.mark.asyncio
    async def test_reset_all(self):
        breaker = get_circuit_breaker("registry_test", failure_threshold=1)
        await breaker.record_failure()
        assert breaker.is_open

        reset_all_circuit_breakers()

        assert breaker.is_closed
