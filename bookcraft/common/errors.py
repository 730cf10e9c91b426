"""
Typed failure conditions raised by content provider integrations.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    CREDENTIAL_MISSING = "credential-missing"
    PROVIDER_ERROR = "provider-error"
    PARSE_ERROR = "parse-error"


class ProviderError(Exception):
    """
    Base class for failures coming from the content provider.

    The ``kind`` discriminant lets callers classify a failure without
    inspecting its message.
    """

    default_kind: ErrorKind = ErrorKind.PROVIDER_ERROR

    def __init__(self, message: str, *, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.kind = kind or self.default_kind


class CredentialError(ProviderError):
    """Raised before any network attempt when no credential is configured."""

    default_kind = ErrorKind.CREDENTIAL_MISSING


class ProviderCallError(ProviderError):
    """A single provider request (or stream) failed."""


class OutlineError(ProviderError):
    """Outline synthesis failed or returned an unusable shape."""

    default_kind = ErrorKind.PARSE_ERROR
