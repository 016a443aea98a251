"""Session orchestrator -- ties relying parties, headless login and caching together.

:class:`SolidClient` is the main entry point of the package.  Given an
identity provider URL and a user's credentials it returns a validated
:class:`~solidclient.models.Session`:

1. A relying party for the provider is rebuilt from cached settings, or
   registered and cached on first use.
2. A cached session for ``(provider, username)`` is returned as-is.
3. Otherwise the relying party builds an authorization request, a
   :class:`~solidclient.login.base.LoginDriver` completes the provider's
   login pages, and the relying party validates the resulting access URL.
   Only then is the session cached.

Concurrent calls for the same provider (registration) or the same
``(provider, username)`` pair (login) are collapsed into a single flow by
:class:`~solidclient.client.inflight.InFlight`.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from solidclient.client.fetcher import Fetcher
from solidclient.client.inflight import InFlight
from solidclient.config import resolve_client_config
from solidclient.identity.manager import IdentityManager
from solidclient.login.base import FormExtractor, LoginDriver
from solidclient.login.bridge import LoginFormBridge
from solidclient.login.driver import FormLoginDriver
from solidclient.login.submitter import CredentialSubmitter
from solidclient.models import ClientConfig, Credentials, LoginParams, Session
from solidclient.oidc import pop_token
from solidclient.oidc.base import RelyingParty, RelyingPartyFactory
from solidclient.oidc.relying_party import OIDCRelyingParty

logger = logging.getLogger(__name__)

RESPONSE_TYPE = "id_token token"


class SolidClient:
    """Log users in to identity providers and issue tokens for their sessions.

    Use as an async context manager, or call :meth:`aclose` when done, so the
    underlying HTTP connections are released.

    Args:
        identity_manager: Cache for provider settings and sessions.
        config: Runtime configuration.  Defaults to
            :func:`~solidclient.config.resolve_client_config`.
        fetcher: HTTP fetcher for the login hops.  Created (and closed by
            this client) when omitted.
        login_driver: Strategy that completes the provider's login pages.
            Defaults to a :class:`~solidclient.login.driver.FormLoginDriver`.
        extractor: Form extraction strategy for the default login driver.
        relying_party_factory: Registers and rebuilds relying parties.
            Defaults to :class:`~solidclient.oidc.relying_party.OIDCRelyingParty`.

    Example::

        async with SolidClient(IdentityManager()) as client:
            session = await client.login("https://idp.example/", credentials)
    """

    def __init__(
        self,
        identity_manager: IdentityManager,
        *,
        config: Optional[ClientConfig] = None,
        fetcher: Optional[Fetcher] = None,
        login_driver: Optional[LoginDriver] = None,
        extractor: Optional[FormExtractor] = None,
        relying_party_factory: Optional[RelyingPartyFactory] = None,
    ) -> None:
        self._identity_manager = identity_manager
        self._config = config or resolve_client_config()
        self._owns_fetcher = fetcher is None
        self._fetcher = fetcher or Fetcher(self._config)
        self._bridge = LoginFormBridge(self._fetcher, extractor)
        self._submitter = CredentialSubmitter(self._fetcher)
        self._login_driver = login_driver or FormLoginDriver(self._bridge, self._submitter)
        self._relying_party_factory: RelyingPartyFactory = (
            relying_party_factory or OIDCRelyingParty
        )
        self._registrations: InFlight[str, RelyingParty] = InFlight()
        self._logins: InFlight[tuple[str, str], Session] = InFlight()

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> SolidClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the fetcher if this client created it."""
        if self._owns_fetcher:
            await self._fetcher.aclose()

    # ------------------------------------------------------------------ #
    # Sessions
    # ------------------------------------------------------------------ #

    async def login(self, identity_provider: str, credentials: Credentials) -> Session:
        """Log the user in with the given identity provider.

        A session already cached for ``(identity_provider, username)`` is
        returned unchanged, without any network activity.

        Args:
            identity_provider: URL of the identity provider.
            credentials: The user's username and password.

        Returns:
            A validated session for the user.

        Raises:
            LoginError: If the provider's login pages are not as expected or
                the credentials are rejected.
            RelyingPartyError: If registration or validation fails.
            ConnectionError_: On transport failures.
        """
        relying_party = await self.get_relying_party(identity_provider)

        username = credentials.username
        session = self._identity_manager.get_session(relying_party, username)
        if session is not None:
            return session

        async def create_and_store() -> Session:
            new_session = await self.create_session(relying_party, credentials)
            self._identity_manager.add_session(relying_party, username, new_session)
            logger.info("Logged in %s with %s", username, relying_party.issuer)
            return new_session

        return await self._logins.run((relying_party.issuer, username), create_and_store)

    async def create_session(
        self, relying_party: RelyingParty, credentials: Credentials
    ) -> Session:
        """Run the full login flow and return the validated session.

        Nothing is cached here; :meth:`login` stores the result.

        Args:
            relying_party: Relying party registered with the provider.
            credentials: The user's username and password.

        Returns:
            The session validated by *relying_party*.
        """
        auth_state: dict[str, Any] = {}
        auth_url = await relying_party.create_request(
            {"redirect_uri": self._config.redirect_url}, auth_state
        )
        access_url = await self._login_driver.obtain_access_url(auth_url, credentials)
        return await relying_party.validate_response(access_url, auth_state)

    async def create_token(self, url: str, session: Session) -> str:
        """Create a proof-of-possession token for *url*.

        Args:
            url: The protected resource the token is for.
            session: The session to bind the token to.

        Returns:
            A PoP token for the resource's origin.
        """
        return pop_token.issue_for(url, session, lifetime=self._config.pop_token_lifetime)

    # ------------------------------------------------------------------ #
    # Relying parties
    # ------------------------------------------------------------------ #

    async def get_relying_party(self, identity_provider: str) -> RelyingParty:
        """Obtain a relying party for the given identity provider.

        Cached provider settings are turned back into a relying party without
        touching the network; otherwise a new one is registered and its
        settings cached.

        Args:
            identity_provider: URL of the identity provider.

        Returns:
            A relying party registered with *identity_provider*.
        """
        settings = self._identity_manager.get_provider_settings(identity_provider)
        if settings is not None:
            return self._relying_party_factory.from_settings(settings)

        async def register_and_store() -> RelyingParty:
            relying_party = await self.register_relying_party(identity_provider)
            self._identity_manager.add_provider_settings(relying_party)
            return relying_party

        return await self._registrations.run(identity_provider, register_and_store)

    async def register_relying_party(self, identity_provider: str) -> RelyingParty:
        """Register a new relying party for the given identity provider.

        The sentinel redirect URI is registered and used as the default for
        every authentication request.  Discovery and registration go through
        the fetcher's client, so they honour the same timeout, TLS and user
        agent settings as the login hops.

        Args:
            identity_provider: URL of the identity provider.

        Returns:
            The newly registered relying party.
        """
        redirect_url = self._config.redirect_url
        registration = {
            "issuer": identity_provider,
            "grant_types": ["implicit"],
            "redirect_uris": [redirect_url],
            "response_types": [RESPONSE_TYPE],
            "scope": self._config.scope,
        }
        options = {
            "defaults": {
                "authenticate": {
                    "redirect_uri": redirect_url,
                    "response_type": RESPONSE_TYPE,
                },
            },
        }
        return await self._relying_party_factory.register(
            identity_provider, registration, options, http=self._fetcher.client
        )

    # ------------------------------------------------------------------ #
    # Login steps
    # ------------------------------------------------------------------ #

    async def get_login_params(self, auth_url: str) -> LoginParams:
        """Obtain the login form parameters reachable from *auth_url*.

        See :meth:`~solidclient.login.bridge.LoginFormBridge.get_login_params`.
        """
        return await self._bridge.get_login_params(auth_url)

    async def perform_login(
        self, login_url: str, login_params: LoginParams, credentials: Credentials
    ) -> str:
        """Submit the login form and return the access URL.

        See :meth:`~solidclient.login.submitter.CredentialSubmitter.perform_login`.
        """
        return await self._submitter.perform_login(login_url, login_params, credentials)
