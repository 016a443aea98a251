"""Tests for the OpenID Connect relying party."""

from __future__ import annotations

import json
import time
from typing import Any
from urllib.parse import parse_qs, urlencode, urlsplit

import httpx
import pytest
from jose import jwt

from solidclient.exceptions import RegistrationError, ResponseValidationError
from solidclient.models import ProviderSettings
from solidclient.oidc.relying_party import (
    OIDCRelyingParty,
    discovery_url,
    generate_session_key,
    public_jwk,
)

ISSUER = "https://idp.example"
REDIRECT_URL = "http://example.org/"

DISCOVERY = {
    "issuer": ISSUER,
    "authorization_endpoint": "https://idp.example/authorize",
    "jwks_uri": "https://idp.example/jwks",
    "registration_endpoint": "https://idp.example/register",
}

REGISTRATION = {
    "issuer": "https://idp.example/",
    "grant_types": ["implicit"],
    "redirect_uris": [REDIRECT_URL],
    "response_types": ["id_token token"],
    "scope": "openid profile",
}

OPTIONS = {
    "defaults": {
        "authenticate": {"redirect_uri": REDIRECT_URL, "response_type": "id_token token"}
    }
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class ProviderEndpoints:
    """MockTransport handler serving discovery, JWKS and registration."""

    def __init__(
        self,
        jwks: dict[str, Any],
        discovery: dict[str, Any] | None = None,
        registration_status: int = 201,
    ) -> None:
        self.jwks = jwks
        self.discovery = DISCOVERY if discovery is None else discovery
        self.registration_status = registration_status
        self.registered: list[dict[str, Any]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/.well-known/openid-configuration":
            return httpx.Response(200, json=self.discovery)
        if path == "/jwks":
            return httpx.Response(200, json=self.jwks)
        if path == "/register" and request.method == "POST":
            body = json.loads(request.content)
            self.registered.append(body)
            if self.registration_status >= 400:
                return httpx.Response(self.registration_status, json={"error": "invalid_redirect_uri"})
            return httpx.Response(
                self.registration_status, json={"client_id": "client-123", **body}
            )
        return httpx.Response(404)


def _settings(jwks: dict[str, Any]) -> ProviderSettings:
    return ProviderSettings(
        issuer="https://idp.example/",
        configuration=DISCOVERY,
        jwks=jwks,
        registration={"client_id": "client-123", "scope": "openid profile"},
        defaults=OPTIONS["defaults"],
    )


def _id_token(key: dict[str, Any], **overrides: Any) -> str:
    now = int(time.time())
    claims = {
        "iss": ISSUER,
        "aud": "client-123",
        "sub": "https://alice.example/profile/card#me",
        "iat": now,
        "exp": now + 3600,
    }
    claims.update(overrides)
    return jwt.encode(claims, key, algorithm="RS256", headers={"kid": key["kid"]})


def _access_url(**values: str) -> str:
    return f"{REDIRECT_URL}#{urlencode(values)}"


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestRegister:
    def test_discovery_url(self) -> None:
        assert discovery_url("https://idp.example/") == (
            "https://idp.example/.well-known/openid-configuration"
        )

    @pytest.mark.asyncio
    async def test_register(self, provider_jwks) -> None:
        endpoints = ProviderEndpoints(provider_jwks)
        async with httpx.AsyncClient(transport=httpx.MockTransport(endpoints)) as http:
            rp = await OIDCRelyingParty.register(
                "https://idp.example/", REGISTRATION, OPTIONS, http=http
            )

        assert rp.issuer == "https://idp.example/"
        assert rp.client_id == "client-123"
        assert rp.settings.configuration == DISCOVERY
        assert rp.settings.jwks == provider_jwks
        assert rp.settings.defaults == OPTIONS["defaults"]
        assert endpoints.registered == [
            {k: v for k, v in REGISTRATION.items() if k != "issuer"}
        ]

    @pytest.mark.asyncio
    async def test_missing_registration_endpoint(self, provider_jwks) -> None:
        discovery = {k: v for k, v in DISCOVERY.items() if k != "registration_endpoint"}
        endpoints = ProviderEndpoints(provider_jwks, discovery=discovery)
        async with httpx.AsyncClient(transport=httpx.MockTransport(endpoints)) as http:
            with pytest.raises(RegistrationError, match="dynamic client registration"):
                await OIDCRelyingParty.register(ISSUER, REGISTRATION, OPTIONS, http=http)

    @pytest.mark.asyncio
    async def test_registration_rejected(self, provider_jwks) -> None:
        endpoints = ProviderEndpoints(provider_jwks, registration_status=400)
        async with httpx.AsyncClient(transport=httpx.MockTransport(endpoints)) as http:
            with pytest.raises(RegistrationError, match="status 400"):
                await OIDCRelyingParty.register(ISSUER, REGISTRATION, OPTIONS, http=http)

    @pytest.mark.asyncio
    async def test_discovery_unreachable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            with pytest.raises(RegistrationError, match="discovery"):
                await OIDCRelyingParty.register(ISSUER, REGISTRATION, OPTIONS, http=http)

    def test_from_settings(self, provider_jwks) -> None:
        rp = OIDCRelyingParty.from_settings(_settings(provider_jwks))
        assert rp.client_id == "client-123"
        assert rp.issuer == "https://idp.example/"

    def test_settings_without_client_id_rejected(self) -> None:
        with pytest.raises(RegistrationError, match="client_id"):
            OIDCRelyingParty(ProviderSettings(issuer=ISSUER))


# ---------------------------------------------------------------------------
# Authorization request
# ---------------------------------------------------------------------------


class TestCreateRequest:
    @pytest.mark.asyncio
    async def test_builds_authorization_url(self, provider_jwks) -> None:
        rp = OIDCRelyingParty.from_settings(_settings(provider_jwks))
        auth_state: dict[str, Any] = {}

        url = await rp.create_request({"redirect_uri": REDIRECT_URL}, auth_state)

        parts = urlsplit(url)
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == DISCOVERY["authorization_endpoint"]
        query = {k: v[0] for k, v in parse_qs(parts.query).items()}
        assert query["client_id"] == "client-123"
        assert query["response_type"] == "id_token token"
        assert query["redirect_uri"] == REDIRECT_URL
        assert query["scope"] == "openid profile"
        assert query["state"] == auth_state["state"]
        assert query["nonce"] == auth_state["nonce"]

    @pytest.mark.asyncio
    async def test_request_object_announces_public_session_key(self, provider_jwks) -> None:
        rp = OIDCRelyingParty.from_settings(_settings(provider_jwks))
        auth_state: dict[str, Any] = {}

        url = await rp.create_request({"redirect_uri": REDIRECT_URL}, auth_state)

        request_object = parse_qs(urlsplit(url).query)["request"][0]
        session_key = auth_state["session_key"]
        claims = jwt.decode(
            request_object, public_jwk(session_key), algorithms=["RS256"], audience=ISSUER
        )
        assert claims["key"]["n"] == session_key["n"]
        assert "d" not in claims["key"]

    @pytest.mark.asyncio
    async def test_each_request_gets_fresh_state(self, provider_jwks) -> None:
        rp = OIDCRelyingParty.from_settings(_settings(provider_jwks))
        first: dict[str, Any] = {}
        second: dict[str, Any] = {}
        await rp.create_request({}, first)
        await rp.create_request({}, second)
        assert first["state"] != second["state"]
        assert first["session_key"]["n"] != second["session_key"]["n"]


# ---------------------------------------------------------------------------
# Response validation
# ---------------------------------------------------------------------------


class TestValidateResponse:
    @pytest.fixture
    def rp(self, provider_jwks) -> OIDCRelyingParty:
        return OIDCRelyingParty.from_settings(_settings(provider_jwks))

    @pytest.mark.asyncio
    async def test_valid_response_yields_session(self, rp, provider_key) -> None:
        auth_state: dict[str, Any] = {}
        await rp.create_request({"redirect_uri": REDIRECT_URL}, auth_state)
        id_token = _id_token(provider_key, nonce=auth_state["nonce"])

        session = await rp.validate_response(
            _access_url(
                access_token="at",
                id_token=id_token,
                state=auth_state["state"],
                token_type="Bearer",
                expires_in="3600",
            ),
            auth_state,
        )

        assert session.issuer == ISSUER
        assert session.client_id == "client-123"
        assert session.id_token == id_token
        assert session.access_token == "at"
        assert session.web_id == "https://alice.example/profile/card#me"
        assert session.session_key == auth_state["session_key"]
        assert session.expires_at is not None

    @pytest.mark.asyncio
    async def test_webid_claim_preferred_over_sub(self, rp, provider_key) -> None:
        auth_state: dict[str, Any] = {}
        await rp.create_request({}, auth_state)
        id_token = _id_token(
            provider_key, nonce=auth_state["nonce"], webid="https://alice.example/#me"
        )
        session = await rp.validate_response(
            _access_url(access_token="at", id_token=id_token, state=auth_state["state"]),
            auth_state,
        )
        assert session.web_id == "https://alice.example/#me"

    @pytest.mark.asyncio
    async def test_state_mismatch(self, rp, provider_key) -> None:
        auth_state: dict[str, Any] = {}
        await rp.create_request({}, auth_state)
        id_token = _id_token(provider_key, nonce=auth_state["nonce"])
        with pytest.raises(ResponseValidationError, match="state"):
            await rp.validate_response(
                _access_url(access_token="at", id_token=id_token, state="forged"),
                auth_state,
            )

    @pytest.mark.asyncio
    async def test_nonce_mismatch(self, rp, provider_key) -> None:
        auth_state: dict[str, Any] = {}
        await rp.create_request({}, auth_state)
        id_token = _id_token(provider_key, nonce="replayed")
        with pytest.raises(ResponseValidationError, match="nonce"):
            await rp.validate_response(
                _access_url(access_token="at", id_token=id_token, state=auth_state["state"]),
                auth_state,
            )

    @pytest.mark.asyncio
    async def test_unknown_signing_key(self, rp) -> None:
        auth_state: dict[str, Any] = {}
        await rp.create_request({}, auth_state)
        id_token = _id_token(generate_session_key(), nonce=auth_state["nonce"])
        with pytest.raises(ResponseValidationError, match="Invalid id_token"):
            await rp.validate_response(
                _access_url(access_token="at", id_token=id_token, state=auth_state["state"]),
                auth_state,
            )

    @pytest.mark.asyncio
    async def test_wrong_audience(self, rp, provider_key) -> None:
        auth_state: dict[str, Any] = {}
        await rp.create_request({}, auth_state)
        id_token = _id_token(provider_key, nonce=auth_state["nonce"], aud="someone-else")
        with pytest.raises(ResponseValidationError, match="Invalid id_token"):
            await rp.validate_response(
                _access_url(access_token="at", id_token=id_token, state=auth_state["state"]),
                auth_state,
            )

    @pytest.mark.asyncio
    async def test_error_response(self, rp) -> None:
        auth_state: dict[str, Any] = {}
        await rp.create_request({}, auth_state)
        with pytest.raises(ResponseValidationError, match="access_denied"):
            await rp.validate_response(
                _access_url(
                    error="access_denied",
                    error_description="User declined",
                    state=auth_state["state"],
                ),
                auth_state,
            )

    @pytest.mark.asyncio
    async def test_missing_tokens(self, rp) -> None:
        auth_state: dict[str, Any] = {}
        await rp.create_request({}, auth_state)
        with pytest.raises(ResponseValidationError, match="missing"):
            await rp.validate_response(_access_url(state=auth_state["state"]), auth_state)
