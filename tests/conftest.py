"""Shared test fixtures for solidclient.

Provides an isolated data directory, a scripted fake identity provider
served through :class:`httpx.MockTransport`, fetchers wired to arbitrary
handlers, and RSA keys for signing test tokens.  These fixtures are
automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable
from urllib.parse import parse_qs

import httpx
import pytest

from solidclient.client.fetcher import Fetcher
from solidclient.models import ClientConfig, Credentials, Session
from solidclient.oidc.relying_party import generate_session_key, public_jwk

IDP_URL = "https://idp.example/"
AUTH_URL = "https://idp.example/authorize?client_id=client-123&state=xyz"
ACCESS_URL = "http://example.org/#access_token=at&id_token=it&state=xyz"

LOGIN_PAGE = """<!DOCTYPE html>
<html>
  <body>
    <h1>Log in</h1>
    <form method="post" action="/login/password">
      <input type="hidden" name="_csrf" value="csrf-token-1">
      <input type="hidden" name="response_type" value="id_token token">
      <input type="text" name="username" value="placeholder">
      <input type="password" name="password">
      <input type="checkbox" name="remember">
      <input type="submit" value="Log in">
    </form>
    <form action="/register"><input name="other" value="ignored"></form>
  </body>
</html>
"""


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the XDG data directory at tmp_path and clear SOLIDCLIENT_* variables.

    Returns:
        The directory solidclient will use as its data directory.
    """
    monkeypatch.setattr("solidclient.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in [
        "SOLIDCLIENT_TIMEOUT",
        "SOLIDCLIENT_VERIFY_SSL",
        "SOLIDCLIENT_REDIRECT_URL",
    ]:
        monkeypatch.delenv(var, raising=False)
    return tmp_path / "data" / "solidclient"


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_fetcher() -> Callable[[Callable[[httpx.Request], Any]], Fetcher]:
    """Factory building a :class:`Fetcher` whose requests go to a handler function."""

    def _make(handler: Callable[[httpx.Request], Any]) -> Fetcher:
        return Fetcher(ClientConfig(), transport=httpx.MockTransport(handler))

    return _make


class FakeIdentityProvider:
    """Scripted identity provider covering the three login hops.

    1. ``GET /authorize`` without a cookie redirects to ``/login``.
    2. ``GET /login`` serves :data:`LOGIN_PAGE`.
    3. ``POST /login/password`` answers 302 + session cookie for the right
       password, or a 200 error page otherwise.
    4. ``GET /authorize`` with the session cookie redirects to the access URL.

    Every request is recorded in :attr:`requests`.
    """

    def __init__(self, password: str = "secret", error_page: str = "<p><strong>Invalid password</strong></p>") -> None:
        self.password = password
        self.error_page = error_page
        self.requests: list[httpx.Request] = []
        self.posted: list[dict[str, list[str]]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "GET" and path == "/authorize":
            if request.headers.get("cookie") == "sid=abc123":
                return httpx.Response(302, headers={"location": ACCESS_URL})
            return httpx.Response(302, headers={"location": "/login"})

        if request.method == "GET" and path == "/login":
            return httpx.Response(200, text=LOGIN_PAGE)

        if request.method == "POST" and path == "/login/password":
            form = parse_qs(request.content.decode("utf-8"))
            self.posted.append(form)
            if form.get("password") == [self.password]:
                return httpx.Response(
                    302,
                    headers=[
                        ("location", "https://idp.example/authorize?resume=1"),
                        ("set-cookie", "sid=abc123; Path=/; HttpOnly"),
                        ("set-cookie", "tracking=1; Path=/"),
                    ],
                )
            return httpx.Response(200, text=self.error_page)

        return httpx.Response(404, text="not found")

    @property
    def request_count(self) -> int:
        return len(self.requests)


@pytest.fixture
def fake_idp() -> FakeIdentityProvider:
    """A fresh :class:`FakeIdentityProvider` accepting password ``secret``."""
    return FakeIdentityProvider()


@pytest.fixture
def login_page() -> str:
    """The HTML login page served by :class:`FakeIdentityProvider`."""
    return LOGIN_PAGE


@pytest.fixture
def idp_fetcher(fake_idp: FakeIdentityProvider, make_fetcher) -> Fetcher:
    """A fetcher talking to :func:`fake_idp`."""
    return make_fetcher(fake_idp)


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(username="alice", password="secret")


@pytest.fixture(scope="session")
def provider_key() -> dict[str, Any]:
    """Private JWK the fake provider signs id_tokens with."""
    return generate_session_key()


@pytest.fixture(scope="session")
def provider_jwks(provider_key: dict[str, Any]) -> dict[str, Any]:
    """Public JWKS matching :func:`provider_key`."""
    return {"keys": [public_jwk(provider_key)]}


@pytest.fixture(scope="session")
def session_key() -> dict[str, Any]:
    """Private JWK used as a session key."""
    return generate_session_key()


@pytest.fixture
def session(session_key: dict[str, Any]) -> Session:
    """A validated-looking session for alice."""
    return Session(
        issuer="https://idp.example",
        client_id="client-123",
        id_token="header.payload.signature",
        access_token="access-token",
        id_claims={"sub": "https://alice.example/profile/card#me"},
        web_id="https://alice.example/profile/card#me",
        session_key=session_key,
    )
