"""Canonical Pydantic models shared across all solidclient modules.

This is the single source of truth for data shapes in the project.  The
models fall into three groups:

**Login models** -- transient, built fresh for every login attempt:
    :class:`Credentials`, :class:`LoginForm`, and :class:`LoginParams`.

**Protocol models** -- produced by the relying-party collaborator and kept
by the identity manager:
    :class:`ProviderSettings` and :class:`Session`.

**Configuration** -- runtime knobs for the client:
    :class:`ClientConfig`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, SecretStr

from solidclient import __version__

REDIRECT_URL = "http://example.org/"
"""Sentinel redirect URI registered with every provider.

It anchors the implicit flow but is never fetched: the login is completed by
following the provider's redirects by hand, and the final ``Location`` is
handed to the relying party for validation instead.
"""


# --- Login ---


class Credentials(BaseModel):
    """A username and password, held only for the duration of a login attempt.

    The password is a :class:`~pydantic.SecretStr` so that it never shows up
    in ``repr()`` output or log records.

    Example::

        creds = Credentials(username="alice", password="secret")
        creds.password.get_secret_value()  # "secret"
    """

    username: str
    password: SecretStr


class LoginForm(BaseModel):
    """The login form scraped from a provider's HTML page.

    Attributes:
        action_url: The raw ``action`` attribute, not yet resolved against
            the page URL.
        fields: ``name -> value`` for every ``<input>`` carrying a literal
            value (hidden CSRF tokens and the like).
    """

    action_url: str
    fields: dict[str, str] = Field(default_factory=dict)


class LoginParams(BaseModel):
    """Everything needed to submit the login form.

    Attributes:
        login_url: Absolute URL the form posts to.
        fields: Scraped form fields, submitted as-is next to the credentials.
    """

    login_url: str
    fields: dict[str, str] = Field(default_factory=dict)


# --- Protocol ---


class ProviderSettings(BaseModel):
    """Everything needed to rebuild a relying party without touching the network.

    Attributes:
        issuer: The identity provider URL the settings were registered for.
        configuration: The provider's OpenID discovery document.
        jwks: The provider's JSON Web Key Set at registration time.
        registration: The client registration response (``client_id`` etc.).
        defaults: Default parameters applied to every authentication request.
    """

    issuer: str
    configuration: dict[str, Any] = Field(default_factory=dict)
    jwks: dict[str, Any] = Field(default_factory=dict)
    registration: dict[str, Any] = Field(default_factory=dict)
    defaults: dict[str, Any] = Field(default_factory=dict)


class Session(BaseModel):
    """A validated login with the identity provider.

    Produced by :meth:`~solidclient.oidc.base.RelyingParty.validate_response`
    and cached per ``(issuer, username)`` by the identity manager.  The
    :attr:`session_key` is the private half of the key pair announced in the
    authorization request; it signs proof-of-possession tokens.
    """

    issuer: str = Field(description="Issuer that validated the id_token")
    client_id: str = Field(description="Client ID the session was issued to")
    id_token: str
    access_token: str
    token_type: str = "Bearer"
    id_claims: dict[str, Any] = Field(default_factory=dict)
    web_id: Optional[str] = Field(
        default=None, description="WebID claim, falling back to the subject"
    )
    session_key: dict[str, Any] = Field(
        description="Private JWK used to sign proof-of-possession tokens"
    )
    expires_at: Optional[datetime] = None


# --- Configuration ---


class ClientConfig(BaseModel):
    """Runtime configuration for :class:`~solidclient.client.solid_client.SolidClient`.

    See :func:`solidclient.config.resolve_client_config` for how environment
    variables are layered on top of these defaults.
    """

    timeout: float = Field(default=30.0, description="Per-request timeout in seconds")
    verify_ssl: bool = True
    redirect_url: str = Field(
        default=REDIRECT_URL, description="Sentinel redirect URI used as the flow anchor"
    )
    scope: str = "openid profile"
    pop_token_lifetime: int = Field(
        default=3600, description="Lifetime of issued PoP tokens in seconds"
    )
    user_agent: str = f"solidclient/{__version__}"
