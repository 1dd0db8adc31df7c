"""
Core exception hierarchy for Locus.

Provides standardized exception types with categorization for retry logic.
The cache controller never retries; the markers exist so callers and the
API boundary can tell transient upstream trouble from permanent failures.
"""

from typing import Any, Optional


# =============================================================================
# Base Exceptions
# =============================================================================


class LocusError(Exception):
    """Base exception for all Locus errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class RetryableError(LocusError):
    """
    Transient errors that a caller may retry.

    Examples: Rate limits, timeouts, temporary network issues.
    """

    pass


class PermanentError(LocusError):
    """
    Errors that won't be fixed by retrying.

    Examples: Invalid input, missing required data, authentication failures.
    """

    pass


# =============================================================================
# Initialization / Configuration Errors
# =============================================================================


class InitializationError(PermanentError):
    """Raised when a critical component fails to initialize."""

    def __init__(self, component: str, message: str, details: Optional[dict[str, Any]] = None):
        self.component = component
        super().__init__(f"[{component}] {message}", details)


class ConfigurationError(PermanentError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details)


# =============================================================================
# Persistence Errors
# =============================================================================


class PersistenceError(LocusError):
    """Raised when the store is unreachable or a constraint fails."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        self.operation = operation
        super().__init__(f"[{operation}] {message}", details)


class PersistenceConnectionError(PersistenceError, RetryableError):
    """Raised when unable to reach the store."""

    pass


# =============================================================================
# Provider Errors
# =============================================================================


class ProviderError(LocusError):
    """Base exception for upstream provider errors."""

    def __init__(
        self,
        provider: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        self.provider = provider
        super().__init__(f"[{provider}] {message}", details)


class ProviderRateLimitError(ProviderError, RetryableError):
    """Raised when a provider rate limits us."""

    pass


class ProviderTimeoutError(ProviderError, RetryableError):
    """Raised when a provider call times out."""

    pass


class ProviderAuthError(ProviderError, PermanentError):
    """Raised when provider authentication fails or no key is configured."""

    pass


class ProviderUnavailableError(ProviderError, RetryableError):
    """Raised when a provider is temporarily unavailable (circuit open)."""

    pass


class ProviderPayloadError(ProviderError, PermanentError):
    """Raised when a provider returns a malformed or empty payload."""

    pass


# =============================================================================
# Lookup Errors
# =============================================================================


class NotFoundError(PermanentError):
    """Raised when a free-text query resolves to nothing upstream."""

    def __init__(self, query: str, message: Optional[str] = None):
        self.query = query
        super().__init__(message or f"No results for query: {query}", {"query": query})


# =============================================================================
# Circuit Breaker
# =============================================================================


class CircuitBreakerOpenError(RetryableError):
    """Raised when circuit breaker is open and blocking requests."""

    def __init__(self, service: str, recovery_time: float):
        self.service = service
        self.recovery_time = recovery_time
        super().__init__(
            f"Circuit breaker open for {service}. Recovery in {recovery_time:.1f}s",
            {"service": service, "recovery_time": recovery_time},
        )
