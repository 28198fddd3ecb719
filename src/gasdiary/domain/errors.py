"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class FetchError(DomainError):
    """A source fetch failed after exhausting its retries."""

    def __init__(self, message: str, label: str, attempts: int):
        super().__init__(message)
        self.label = label
        self.attempts = attempts


class FetchTimeoutError(FetchError):
    """A single fetch attempt exceeded its time bound."""

    def __init__(self, label: str, timeout: float):
        super().__init__(fetch_timed_out(label, timeout), label=label, attempts=1)
        self.timeout = timeout


class StorageQuotaError(DomainError):
    """Persisted key/value store refused a write."""


def fetch_timed_out(label: str, timeout: float) -> str:
    """Return message for a fetch that exceeded its time bound."""
    return f"{label} timed out after {timeout:g}s"


def fetch_exhausted(label: str, attempts: int, error: BaseException) -> str:
    """Return message for a fetch that failed on every attempt."""
    return f"{label} failed after {attempts} attempt{'s' if attempts != 1 else ''}: {error}"


def storage_quota_exceeded(key: str, size: int, quota: int) -> str:
    """Return message when a value does not fit the store quota."""
    return f"Cannot store '{key}': {size} bytes exceeds quota of {quota} bytes"


def notification_not_found(notification_id: str) -> str:
    """Return message for an unknown notification ID."""
    return f"Notification '{notification_id}' not found"


def invalid_setting(name: str, value: str) -> str:
    """Return message for an unparseable configuration value."""
    return f"Invalid value for {name}: '{value}'"
