"""
Circuit breaker guarding outbound provider calls.

A provider that keeps failing is cut off for ``recovery_timeout`` seconds,
then probed again. Blocked calls fail immediately; nothing is retried.

    CLOSED --(failure_threshold consecutive failures)--> OPEN
    OPEN   --(recovery_timeout elapsed)----------------> HALF_OPEN
    HALF_OPEN --(success_threshold successes)----------> CLOSED
    HALF_OPEN --(any failure)--------------------------> OPEN

Usage:
    breaker = get_circuit_breaker("tmdb")

    if not breaker.can_execute():
        raise ProviderUnavailableError("tmdb", "circuit open")
    try:
        payload = await call_api()
    except httpx.RequestError:
        await breaker.record_failure()
        raise
    await breaker.record_success()
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

import structlog

from locus.core.exceptions import CircuitBreakerOpenError
from locus.monitoring.metrics import (
    record_circuit_breaker_failure,
    update_circuit_breaker_state,
)

logger = structlog.get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    """
    Failure gate for one upstream provider.

    Args:
        name: Provider name, used as the metrics label
        failure_threshold: Consecutive failures that open the circuit
        recovery_timeout: Seconds the circuit stays open before probing
        success_threshold: Probe successes needed to close again
        clock: Monotonic time source in seconds
    """

    name: str
    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    success_threshold: int = 2
    clock: Callable[[], float] = time.monotonic

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _consecutive_failures: int = field(default=0, init=False)
    _probe_successes: int = field(default=0, init=False)
    _opened_at: Optional[float] = field(default=None, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    @property
    def state(self) -> CircuitState:
        if self._state is CircuitState.OPEN and self.time_until_recovery() == 0.0:
            self._move_to(CircuitState.HALF_OPEN)
        return self._state

    @property
    def is_closed(self) -> bool:
        return self.state is CircuitState.CLOSED

    @property
    def is_open(self) -> bool:
        return self.state is CircuitState.OPEN

    def can_execute(self) -> bool:
        return self.state is not CircuitState.OPEN

    def ensure_closed(self) -> None:
        """Raise CircuitBreakerOpenError while calls are blocked."""
        if not self.can_execute():
            raise CircuitBreakerOpenError(self.name, self.time_until_recovery())

    def time_until_recovery(self) -> float:
        """Seconds left before an open circuit lets a probe through."""
        if self._state is not CircuitState.OPEN or self._opened_at is None:
            return 0.0
        remaining = self.recovery_timeout - (self.clock() - self._opened_at)
        return max(0.0, remaining)

    async def record_success(self) -> None:
        async with self._lock:
            if self._state is CircuitState.HALF_OPEN:
                self._probe_successes += 1
                if self._probe_successes >= self.success_threshold:
                    self._move_to(CircuitState.CLOSED)
            else:
                self._consecutive_failures = 0

    async def record_failure(self) -> None:
        async with self._lock:
            self._consecutive_failures += 1
            record_circuit_breaker_failure(self.name)

            tripped = (
                self._state is CircuitState.HALF_OPEN
                or self._consecutive_failures >= self.failure_threshold
            )
            if tripped:
                self._opened_at = self.clock()
                if self._state is not CircuitState.OPEN:
                    self._move_to(CircuitState.OPEN, failures=self._consecutive_failures)

    def reset(self) -> None:
        self._consecutive_failures = 0
        self._opened_at = None
        self._move_to(CircuitState.CLOSED)

    def _move_to(self, state: CircuitState, **context) -> None:
        previous = self._state
        self._state = state
        self._probe_successes = 0
        if state is CircuitState.CLOSED:
            self._consecutive_failures = 0
        update_circuit_breaker_state(self.name, state.value)
        if previous is not state:
            logger.info(
                "circuit_breaker_state_changed",
                name=self.name,
                previous=previous.value,
                state=state.value,
                **context,
            )


# =============================================================================
# Registry
# =============================================================================


_circuit_breakers: dict[str, CircuitBreaker] = {}


def get_circuit_breaker(
    name: str,
    failure_threshold: int = 5,
    recovery_timeout: float = 60.0,
) -> CircuitBreaker:
    """
    Return the process-wide breaker for a provider, creating it on first use.

    Thresholds only apply when the breaker is created.
    """
    breaker = _circuit_breakers.get(name)
    if breaker is None:
        breaker = CircuitBreaker(
            name=name,
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
        )
        _circuit_breakers[name] = breaker
    return breaker


def get_all_circuit_breakers() -> dict[str, CircuitBreaker]:
    return dict(_circuit_breakers)


def reset_all_circuit_breakers() -> None:
    for breaker in _circuit_breakers.values():
        breaker.reset()
