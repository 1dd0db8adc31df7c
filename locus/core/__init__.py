"""
Core infrastructure modules for Locus.

Provides common utilities used across the application:
- exceptions: Standardized exception hierarchy
- circuit_breaker: Failure isolation for upstream providers
- container: Dependency container (import from locus.core.container)
"""

from locus.core.exceptions import (
    LocusError,
    RetryableError,
    PermanentError,
    InitializationError,
    ConfigurationError,
    PersistenceError,
    PersistenceConnectionError,
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    ProviderAuthError,
    ProviderUnavailableError,
    ProviderPayloadError,
    NotFoundError,
    CircuitBreakerOpenError,
)

from locus.core.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
    get_circuit_breaker,
    get_all_circuit_breakers,
    reset_all_circuit_breakers,
)

__all__ = [
    # Exceptions
    "LocusError",
    "RetryableError",
    "PermanentError",
    "InitializationError",
    "ConfigurationError",
    "PersistenceError",
    "PersistenceConnectionError",
    "ProviderError",
    "ProviderRateLimitError",
    "ProviderTimeoutError",
    "ProviderAuthError",
    "ProviderUnavailableError",
    "ProviderPayloadError",
    "NotFoundError",
    "CircuitBreakerOpenError",
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitState",
    "get_circuit_breaker",
    "get_all_circuit_breakers",
    "reset_all_circuit_breakers",
]
