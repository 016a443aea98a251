"""Login form bridge -- from an authorization URL to the scraped login form.

The identity provider answers the authorization request with a redirect to
its HTML login page.  :class:`LoginFormBridge` follows that one redirect,
scrapes the page's form, and returns the resolved submission URL together
with the hidden fields (CSRF tokens and the like) that must be posted back.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urljoin

from solidclient.client.fetcher import Fetcher
from solidclient.exceptions import ProviderDidNotRedirectError
from solidclient.login.base import FormExtractor
from solidclient.login.extractors import RegexFormExtractor
from solidclient.models import LoginParams

logger = logging.getLogger(__name__)


class LoginFormBridge:
    """Scrape the provider's login form reachable from an authorization URL.

    Args:
        fetcher: Fetcher used for both hops.
        extractor: Form extraction strategy.  Defaults to
            :class:`~solidclient.login.extractors.RegexFormExtractor`.
    """

    def __init__(self, fetcher: Fetcher, extractor: Optional[FormExtractor] = None) -> None:
        self._fetcher = fetcher
        self._extractor = extractor or RegexFormExtractor()

    async def get_login_params(self, auth_url: str) -> LoginParams:
        """Follow *auth_url* to the login page and scrape its form.

        Args:
            auth_url: The authorization request URL built by the relying party.

        Returns:
            :class:`~solidclient.models.LoginParams` with the absolute
            submission URL and every scraped field.

        Raises:
            ProviderDidNotRedirectError: If the authorization response has no
                ``Location`` header.
            UnexpectedLoginPageError: If the login page has no usable form.
            ConnectionError_: On transport failures.
        """
        authorization = await self._fetcher.fetch("GET", auth_url)
        location = authorization.headers.get("location")
        if not location:
            raise ProviderDidNotRedirectError(
                f"Identity provider did not redirect from the authorization URL "
                f"(HTTP {authorization.status_code})"
            )
        login_page_url = urljoin(auth_url, location)

        login_page = await self._fetcher.fetch("GET", login_page_url)
        form = self._extractor.extract(login_page.text)
        login_url = urljoin(login_page_url, form.action_url)
        logger.debug(
            "Scraped login form at %s posting to %s (%d fields)",
            login_page_url,
            login_url,
            len(form.fields),
        )
        return LoginParams(login_url=login_url, fields=dict(form.fields))
