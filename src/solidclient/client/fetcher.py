"""Single-shot asynchronous HTTP fetcher.

This module provides :class:`Fetcher`, a thin wrapper around
:class:`httpx.AsyncClient` used for every hop of the login flow.  Unlike a
general-purpose API client it deliberately does *not* follow redirects,
retry, or remember cookies: the login flow inspects the ``Location`` and
``Set-Cookie`` headers of each hop itself and decides what to send next.

The response body is always fully buffered before :meth:`Fetcher.fetch`
returns, so callers can read ``response.text`` without further awaits.

See Also:
    :class:`~solidclient.login.bridge.LoginFormBridge` and
    :class:`~solidclient.login.submitter.CredentialSubmitter`, the two
    consumers of this fetcher.
"""

from __future__ import annotations

import logging
from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Optional

import httpx

from solidclient.exceptions import ConnectionError_
from solidclient.models import ClientConfig

logger = logging.getLogger(__name__)


def _discarding_cookies() -> CookieJar:
    """A cookie jar whose policy rejects every cookie, set or sent."""
    return CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))


class Fetcher:
    """Issue one HTTP(S) request at a time and return the buffered response.

    Use as an async context manager, or call :meth:`aclose` when done.  An
    existing :class:`httpx.AsyncClient` may be injected; the fetcher then
    leaves closing it, and its cookie handling, to the caller.

    The client the fetcher builds itself never stores cookies, so logins
    running concurrently on one fetcher cannot see each other's sessions.

    Args:
        config: Timeout, TLS verification, and user agent settings.
        client: Optional pre-built client to send requests through.
        transport: Transport for the client the fetcher builds (tests pass
            an :class:`httpx.MockTransport`).  Ignored when *client* is given.

    Example::

        async with Fetcher() as fetcher:
            response = await fetcher.fetch("GET", "https://idp.example/login")
            print(response.status_code, response.headers.get("location"))
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=False,
            headers={"User-Agent": self._config.user_agent},
            cookies=_discarding_cookies(),
            transport=transport,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        """The underlying client, shared with relying-party registration."""
        return self._client

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> Fetcher:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying client if this fetcher created it."""
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    async def fetch(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[dict[str, str]] = None,
        content: Optional[str | bytes] = None,
    ) -> httpx.Response:
        """Send a single request and return the fully-read response.

        Redirects are returned as-is.  Cookies set by earlier responses are
        not replayed; pass a ``Cookie`` header explicitly when a hop needs
        one.

        Args:
            method: HTTP method (``GET``, ``POST``).
            url: Absolute request URL.
            headers: Extra request headers.
            content: Raw request body.

        Returns:
            The :class:`httpx.Response`, with its body already buffered.

        Raises:
            ConnectionError_: On any transport-level failure (DNS, TLS,
                refused connection, timeout).  Not retried.
        """
        try:
            response = await self._client.request(
                method,
                url,
                headers=headers,
                content=content,
                follow_redirects=False,
            )
        except httpx.TransportError as exc:
            raise ConnectionError_(f"{method} {url} failed: {exc}") from exc

        logger.debug("%s %s -> %s", method, url, response.status_code)
        return response
