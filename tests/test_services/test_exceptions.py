"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

from teleporter.exceptions import (
    ApiError,
    AuthenticationError,
    CategoryNotFoundError,
    ChecksumError,
    ConfigurationError,
    InvalidContentError,
    OperationFailedError,
    PlatformError,
    RateLimitExceededError,
    RepositoryNotFoundError,
    StateDeserializationError,
    StateStoreError,
    StateStoreIOError,
    TeleporterError,
    TemplateNotFoundError,
    WebhookVerificationError,
)


@pytest.mark.parametrize(
    "error_cls",
    [
        AuthenticationError,
        RateLimitExceededError,
        InvalidContentError,
        ApiError,
        OperationFailedError,
        WebhookVerificationError,
    ],
)
def test_platform_errors_share_base(error_cls: type[PlatformError]) -> None:
    assert issubclass(error_cls, PlatformError)
    assert issubclass(error_cls, TeleporterError)


def test_persistence_errors_share_base() -> None:
    assert issubclass(StateStoreIOError, StateStoreError)
    assert issubclass(StateDeserializationError, StateStoreError)
    assert not issubclass(StateStoreError, PlatformError)
    assert issubclass(ChecksumError, TeleporterError)
    assert issubclass(ConfigurationError, TeleporterError)


def test_default_messages() -> None:
    assert str(RateLimitExceededError()) == "API rate limit exceeded"
    assert str(WebhookVerificationError()) == "Webhook verification failed"


def test_not_found_errors_keep_identifiers() -> None:
    repo_error = RepositoryNotFoundError("acme", "service-a")
    assert (repo_error.org, repo_error.name) == ("acme", "service-a")
    assert str(repo_error) == "Repository not found: acme/service-a"

    assert TemplateNotFoundError("ci.yml").path == "ci.yml"
    assert str(CategoryNotFoundError("python")) == "Category not found: 'python'"
