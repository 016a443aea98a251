"""Exception hierarchy for solidclient.

All exceptions inherit from :class:`SolidClientError`, so callers that do
not care about the failure class can catch that one type.  Errors raised
by collaborators (relying party, identity manager) propagate through
:class:`~solidclient.client.solid_client.SolidClient` unchanged.

Subclass hierarchy::

    SolidClientError
    +-- ConfigError
    +-- ConnectionError_
    +-- LoginError
    |   +-- UnexpectedLoginPageError
    |   |   +-- ProviderDidNotRedirectError
    |   +-- LoginRejectedError
    +-- RelyingPartyError
        +-- RegistrationError
        +-- ResponseValidationError
"""

from __future__ import annotations


class SolidClientError(Exception):
    """Base exception for all solidclient errors.

    Args:
        message: Human-readable error description.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigError(SolidClientError):
    """Raised for configuration problems (bad environment values, unreadable paths)."""


class ConnectionError_(SolidClientError):
    """Raised on network-level failures (DNS resolution, TLS, connection refused, timeout).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.  The originating :mod:`httpx` exception is always
    available as ``__cause__``.
    """


class LoginError(SolidClientError):
    """Base class for failures while driving the provider's login pages."""


class UnexpectedLoginPageError(LoginError):
    """Raised when a login hop does not have the expected shape.

    Covers a missing ``Location`` or ``Set-Cookie`` header, a page without a
    ``<form>``, or a form without an ``action``.  The provider may have
    changed its markup or may be down; the two are not distinguished.
    """


class ProviderDidNotRedirectError(UnexpectedLoginPageError):
    """Raised when the authorization URL answers without a ``Location`` header."""


class LoginRejectedError(LoginError):
    """Raised when the provider does not accept the submitted credentials.

    Args:
        cause: Reason extracted from the provider's error page, or
            ``"unknown cause"``.
    """

    def __init__(self, cause: str):
        super().__init__(f"Could not log in: {cause}")
        self.cause = cause


class RelyingPartyError(SolidClientError):
    """Base class for failures reported by the relying-party collaborator."""


class RegistrationError(RelyingPartyError):
    """Raised when provider discovery or dynamic client registration fails."""


class ResponseValidationError(RelyingPartyError):
    """Raised when an access URL cannot be validated into a session."""
