"""Abstract relying-party interface.

A relying party is the OpenID Connect client registered with one identity
provider.  :class:`~solidclient.client.solid_client.SolidClient` only ever
talks to it through :class:`RelyingParty` and builds new ones through a
:class:`RelyingPartyFactory`, so the protocol implementation can be
replaced (or faked in tests) without touching the login orchestration.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional, Protocol

import httpx

from solidclient.models import ProviderSettings, Session


class RelyingParty(ABC):
    """An OpenID Connect client registered with a single identity provider."""

    @property
    @abstractmethod
    def issuer(self) -> str:
        """The identity provider URL this relying party is registered with."""
        ...

    @property
    @abstractmethod
    def client_id(self) -> str:
        """The client ID assigned by the provider at registration."""
        ...

    @property
    @abstractmethod
    def settings(self) -> ProviderSettings:
        """Settings sufficient to rebuild this relying party offline."""
        ...

    @abstractmethod
    async def create_request(self, params: dict[str, Any], auth_state: dict[str, Any]) -> str:
        """Build an authorization request URL.

        Args:
            params: Request parameters overriding the registered defaults
                (typically ``{"redirect_uri": ...}``).
            auth_state: Mutable mapping the relying party fills with the
                per-request state (``state``, ``nonce``, session key) that
                :meth:`validate_response` needs later.

        Returns:
            The URL to start the login at.
        """
        ...

    @abstractmethod
    async def validate_response(self, access_url: str, auth_state: dict[str, Any]) -> Session:
        """Validate the provider's final redirect and build a session.

        Args:
            access_url: The URL the provider redirected to after login.
            auth_state: The mapping previously filled by :meth:`create_request`.

        Returns:
            A validated :class:`~solidclient.models.Session`.

        Raises:
            ResponseValidationError: If the response is an error, does not
                match the request, or carries an invalid token.
        """
        ...


class RelyingPartyFactory(Protocol):
    """Creates relying parties, either by registering or from stored settings."""

    async def register(
        self,
        issuer: str,
        registration: dict[str, Any],
        options: dict[str, Any],
        *,
        http: Optional[httpx.AsyncClient] = None,
    ) -> RelyingParty: ...

    def from_settings(self, settings: ProviderSettings) -> RelyingParty: ...
