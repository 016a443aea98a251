"""solidclient -- Headless login to Solid / OpenID Connect identity providers.

This package logs a user in to an OpenID Connect identity provider with the
implicit flow, without a browser: the provider's HTML login form is scraped,
the credentials are injected, and the redirect chain is followed by hand.
The validated :class:`~solidclient.models.Session` can then mint
proof-of-possession tokens for protected resources.

Typical usage::

    from solidclient import Credentials, IdentityManager, SolidClient

    async with SolidClient(IdentityManager()) as client:
        session = await client.login(
            "https://idp.example/",
            Credentials(username="alice", password="secret"),
        )
        token = await client.create_token("https://alice.example/private/", session)

Modules:
    client: The HTTP fetcher and the :class:`SolidClient` session orchestrator.
    login: HTML login form scraping and credential submission.
    oidc: Relying-party registration, response validation, and PoP tokens.
    identity: In-memory and file-backed provider settings / session caches.
    models: Pydantic models shared across the entire package.
    config: XDG-aware paths and runtime configuration.
    exceptions: Exception hierarchy.
"""

__version__ = "0.1.0"

from solidclient.client import SolidClient
from solidclient.identity import FileIdentityManager, IdentityManager
from solidclient.models import ClientConfig, Credentials, Session

__all__ = [
    "ClientConfig",
    "Credentials",
    "FileIdentityManager",
    "IdentityManager",
    "Session",
    "SolidClient",
    "__version__",
]
