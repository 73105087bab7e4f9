"""Service error hierarchy for webhook reconciliation and Alchemy API calls.

This module defines the exception hierarchy for service-level errors:
- ServiceError: Base for all service errors
- TransientError: Retryable errors (network, rate limits, timeouts, database outages)
- PermanentError: Non-retryable errors (bad payloads, authentication, validation)
"""


class ServiceError(Exception):
    """Base exception for all service errors."""

    pass


class TransientError(ServiceError):
    """Transient error that may succeed on retry.

    Examples:
    - Network timeouts
    - Rate limit exceeded (429)
    - Service unavailable (503)
    - Database unavailable or statement timeout
    """

    pass


class PermanentError(ServiceError):
    """Permanent error that will not succeed on retry.

    Examples:
    - Malformed webhook activity
    - Authentication failures (401, 403)
    - Invalid request parameters (400)
    """

    pass


# Reconciliation errors
class MalformedEventError(PermanentError):
    """Activity record has missing or invalid addresses or token id."""

    pass


class UnknownCollectionError(PermanentError):
    """Contract address does not belong to a tracked collection."""

    pass


class PersistenceError(TransientError):
    """Store unavailable, timed out, or rejected a write unexpectedly."""

    pass


# Alchemy API errors
class AlchemyApiError(ServiceError):
    """Base exception for Alchemy Notify and NFT API errors."""

    pass


class AlchemyRateLimitError(AlchemyApiError, TransientError):
    """Rate limit exceeded (429)."""

    pass


class AlchemyNetworkError(AlchemyApiError, TransientError):
    """Network timeout or service unavailable."""

    pass


class AlchemyAuthError(AlchemyApiError, PermanentError):
    """Authentication failure (401, 403)."""

    pass


class AlchemyValidationError(AlchemyApiError, PermanentError):
    """Bad request (400)."""

    pass
