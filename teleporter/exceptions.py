"""Application-level exception types.

Convention:
- Every failure the engine can surface derives from ``TeleporterError`` so the
  CLI can report it as a one-line message and a non-zero exit status.
- Persistence failures (``StateStoreError`` subclasses) abort the current
  ``process_update`` call without touching the previously stored record.
- Platform failures (``PlatformError`` subclasses) abort the whole
  ``update_repo`` call. Nothing is retried; callers retry the operation as a
  whole.
"""

from __future__ import annotations


class TeleporterError(Exception):
    """Base class for all template teleporter errors."""


class StateStoreError(TeleporterError):
    """Raised when the state persistence backend fails."""


class StateStoreIOError(StateStoreError):
    """Raised when state storage cannot be read or written."""


class StateDeserializationError(StateStoreError):
    """Raised when a stored state record is corrupt or malformed."""


class ChecksumError(TeleporterError):
    """Raised when content cannot be fingerprinted."""


class ConfigurationError(TeleporterError):
    """Raised for missing or invalid required settings."""


class PlatformError(TeleporterError):
    """Base class for errors raised while talking to a repository platform."""


class AuthenticationError(PlatformError):
    """Raised when the platform rejects the configured credentials."""


class RateLimitExceededError(PlatformError):
    """Raised when the platform API rate limit was exceeded."""

    def __init__(self, message: str = "API rate limit exceeded") -> None:
        super().__init__(message)


class RepositoryNotFoundError(PlatformError):
    """Raised when a repository does not exist or is not accessible."""

    def __init__(self, org: str, name: str) -> None:
        self.org = org
        self.name = name
        super().__init__(f"Repository not found: {org}/{name}")


class TemplateNotFoundError(PlatformError):
    """Raised when a template path does not exist in the master repository."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Template path not found: {path}")


class CategoryNotFoundError(PlatformError):
    """Raised when a template category is not defined in the master configuration."""

    def __init__(self, category: str) -> None:
        self.category = category
        super().__init__(f"Category not found: {category!r}")


class InvalidContentError(PlatformError):
    """Raised when platform content cannot be decoded."""


class ApiError(PlatformError):
    """Raised for generic API or network failures."""


class OperationFailedError(PlatformError):
    """Raised when a platform operation cannot proceed, e.g. an empty change set."""


class WebhookVerificationError(PlatformError):
    """Raised when an incoming webhook signature cannot be verified."""

    def __init__(self, message: str = "Webhook verification failed") -> None:
        super().__init__(message)
