"""OpenID Connect relying party for the implicit flow.

This module provides :class:`OIDCRelyingParty`, the default
:class:`~solidclient.oidc.base.RelyingParty`.  It covers the three protocol
steps solidclient needs:

1. **Registration** -- fetch the provider's discovery document
   (``<issuer>/.well-known/openid-configuration``) and JSON Web Key Set, then
   register a client dynamically at the ``registration_endpoint``.
2. **Authorization request** -- generate ``state``, ``nonce`` and an RSA
   session key, and announce the public half of the key in a signed
   ``request`` object so tokens can later be bound to it.
3. **Response validation** -- read the tokens from the access URL's
   fragment, verify the ``id_token`` against the stored key set, and check
   ``state`` and ``nonce``.

All JOSE work is delegated to :mod:`jose`; keys are generated with
:mod:`cryptography`.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import parse_qs, urlencode, urlsplit

import httpx
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt
from jose.exceptions import JOSEError

from solidclient.exceptions import RegistrationError, ResponseValidationError
from solidclient.models import ProviderSettings, Session
from solidclient.oidc.base import RelyingParty

logger = logging.getLogger(__name__)

_DISCOVERY_PATH = "/.well-known/openid-configuration"
_SIGNING_ALG = "RS256"
_PUBLIC_JWK_MEMBERS = ("kty", "alg", "n", "e", "kid")


def discovery_url(issuer: str) -> str:
    """Return the OpenID discovery document URL for *issuer*."""
    return issuer.rstrip("/") + _DISCOVERY_PATH


def generate_session_key() -> dict[str, Any]:
    """Generate a fresh RSA-2048 private key as a JWK with a random ``kid``."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    key = jwk.construct(pem, algorithm=_SIGNING_ALG).to_dict()
    key["kid"] = secrets.token_urlsafe(8)
    return key


def public_jwk(private_jwk: dict[str, Any]) -> dict[str, Any]:
    """Strip the private members from an RSA JWK."""
    public = {k: private_jwk[k] for k in _PUBLIC_JWK_MEMBERS if k in private_jwk}
    public["key_ops"] = ["verify"]
    return public


async def _get_json(client: httpx.AsyncClient, url: str, what: str) -> dict[str, Any]:
    try:
        response = await client.get(
            url, headers={"Accept": "application/json"}, follow_redirects=True
        )
        response.raise_for_status()
        doc = response.json()
    except httpx.HTTPStatusError as exc:
        raise RegistrationError(
            f"Fetching {what} failed with status {exc.response.status_code}: "
            f"{exc.response.text}"
        ) from exc
    except httpx.HTTPError as exc:
        raise RegistrationError(f"Fetching {what} failed: {exc}") from exc
    except ValueError as exc:
        raise RegistrationError(f"{what} at {url} is not valid JSON") from exc
    if not isinstance(doc, dict):
        raise RegistrationError(f"{what} at {url} is not a JSON object")
    return doc


class OIDCRelyingParty(RelyingParty):
    """Relying party backed by stored :class:`~solidclient.models.ProviderSettings`.

    Instances never touch the network: everything needed to build requests
    and validate responses is in the settings.  Use :meth:`register` to
    obtain settings from a provider, or :meth:`from_settings` to rebuild a
    previously registered relying party.

    Example::

        rp = await OIDCRelyingParty.register(
            "https://idp.example/",
            {"redirect_uris": ["http://example.org/"], ...},
            {"defaults": {"authenticate": {...}}},
        )
        auth_state: dict = {}
        url = await rp.create_request({"redirect_uri": "http://example.org/"}, auth_state)
    """

    def __init__(self, settings: ProviderSettings) -> None:
        if "client_id" not in settings.registration:
            raise RegistrationError(
                f"Provider settings for {settings.issuer} have no client_id"
            )
        self._settings = settings

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #

    @classmethod
    async def register(
        cls,
        issuer: str,
        registration: dict[str, Any],
        options: dict[str, Any],
        *,
        http: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> OIDCRelyingParty:
        """Discover *issuer* and register a new client with it.

        Args:
            issuer: The identity provider URL.
            registration: Client metadata to register.  An ``issuer`` key, if
                present, is not sent.
            options: Relying-party options; ``options["defaults"]`` is kept
                as the default authentication parameters.
            http: Optional client to send the requests through.
            timeout: Request timeout when no *http* client is given.

        Returns:
            A registered :class:`OIDCRelyingParty`.

        Raises:
            RegistrationError: If discovery, key set retrieval, or
                registration fails, or the provider does not support dynamic
                registration.
        """
        client = http or httpx.AsyncClient(timeout=timeout)
        try:
            configuration = await _get_json(
                client, discovery_url(issuer), "OpenID discovery document"
            )
            registration_endpoint = configuration.get("registration_endpoint")
            if not registration_endpoint:
                raise RegistrationError(
                    f"{issuer} does not support dynamic client registration"
                )
            jwks_uri = configuration.get("jwks_uri")
            if not jwks_uri:
                raise RegistrationError(
                    "OpenID discovery document missing 'jwks_uri'"
                )
            jwks = await _get_json(client, jwks_uri, "JSON Web Key Set")

            metadata = {k: v for k, v in registration.items() if k != "issuer"}
            try:
                response = await client.post(registration_endpoint, json=metadata)
                response.raise_for_status()
                client_registration = response.json()
            except httpx.HTTPStatusError as exc:
                raise RegistrationError(
                    f"Client registration failed with status "
                    f"{exc.response.status_code}: {exc.response.text}"
                ) from exc
            except httpx.HTTPError as exc:
                raise RegistrationError(f"Client registration failed: {exc}") from exc
            except ValueError as exc:
                raise RegistrationError(
                    "Client registration response is not valid JSON"
                ) from exc
        finally:
            if http is None:
                await client.aclose()

        if not isinstance(client_registration, dict) or "client_id" not in client_registration:
            raise RegistrationError("Client registration response missing 'client_id'")

        settings = ProviderSettings(
            issuer=issuer,
            configuration=configuration,
            jwks=jwks,
            registration=client_registration,
            defaults=options.get("defaults", {}),
        )
        logger.info(
            "Registered client %s with %s", client_registration["client_id"], issuer
        )
        return cls(settings)

    @classmethod
    def from_settings(cls, settings: ProviderSettings) -> OIDCRelyingParty:
        """Rebuild a relying party from stored settings without network access."""
        return cls(settings)

    # ------------------------------------------------------------------ #
    # RelyingParty interface
    # ------------------------------------------------------------------ #

    @property
    def issuer(self) -> str:
        return self._settings.issuer

    @property
    def client_id(self) -> str:
        return str(self._settings.registration["client_id"])

    @property
    def settings(self) -> ProviderSettings:
        return self._settings

    async def create_request(self, params: dict[str, Any], auth_state: dict[str, Any]) -> str:
        endpoint = self._settings.configuration.get("authorization_endpoint")
        if not endpoint:
            raise RegistrationError(
                "OpenID discovery document missing 'authorization_endpoint'"
            )

        request_params: dict[str, Any] = dict(self._settings.defaults.get("authenticate", {}))
        request_params.update(params)
        request_params.setdefault(
            "scope", self._settings.registration.get("scope", "openid")
        )

        state = secrets.token_urlsafe(16)
        nonce = secrets.token_urlsafe(16)
        session_key = generate_session_key()
        auth_state.update(
            state=state,
            nonce=nonce,
            session_key=session_key,
            redirect_uri=request_params.get("redirect_uri"),
        )

        request_object = jwt.encode(
            {
                "iss": self.client_id,
                "aud": self._expected_issuer,
                "key": public_jwk(session_key),
            },
            session_key,
            algorithm=_SIGNING_ALG,
            headers={"kid": session_key["kid"]},
        )
        query = {
            **request_params,
            "client_id": self.client_id,
            "state": state,
            "nonce": nonce,
            "request": request_object,
        }
        separator = "&" if "?" in endpoint else "?"
        return f"{endpoint}{separator}{urlencode(query)}"

    async def validate_response(self, access_url: str, auth_state: dict[str, Any]) -> Session:
        parts = urlsplit(access_url)
        values = {
            k: v[0] for k, v in parse_qs(parts.fragment or parts.query).items()
        }

        if "error" in values:
            description = values.get("error_description", "")
            raise ResponseValidationError(
                f"Authentication error: {values['error']}"
                + (f" ({description})" if description else "")
            )
        if not auth_state.get("state") or values.get("state") != auth_state["state"]:
            raise ResponseValidationError("Response state does not match the request")

        id_token = values.get("id_token")
        access_token = values.get("access_token")
        if not id_token or not access_token:
            raise ResponseValidationError("Response is missing id_token or access_token")

        try:
            claims = jwt.decode(
                id_token,
                self._settings.jwks,
                algorithms=[_SIGNING_ALG],
                audience=self.client_id,
                issuer=self._expected_issuer,
                access_token=access_token,
            )
        except JOSEError as exc:
            raise ResponseValidationError(f"Invalid id_token: {exc}") from exc

        if claims.get("nonce") != auth_state.get("nonce"):
            raise ResponseValidationError("id_token nonce does not match the request")

        expires_at = None
        if values.get("expires_in", "").isdigit():
            expires_at = datetime.now(timezone.utc) + timedelta(
                seconds=int(values["expires_in"])
            )

        return Session(
            issuer=self._expected_issuer,
            client_id=self.client_id,
            id_token=id_token,
            access_token=access_token,
            token_type=values.get("token_type", "Bearer"),
            id_claims=claims,
            web_id=claims.get("webid") or claims.get("sub"),
            session_key=auth_state["session_key"],
            expires_at=expires_at,
        )

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    @property
    def _expected_issuer(self) -> str:
        """The ``iss`` the provider signs tokens with, per its discovery document."""
        return self._settings.configuration.get("issuer") or self._settings.issuer
