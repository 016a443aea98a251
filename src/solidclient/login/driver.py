"""HTML form login driver.

:class:`FormLoginDriver` is the default
:class:`~solidclient.login.base.LoginDriver`: it chains the
:class:`~solidclient.login.bridge.LoginFormBridge` and the
:class:`~solidclient.login.submitter.CredentialSubmitter`, standing in for a
browser that would otherwise render the login page.
"""

from __future__ import annotations

from typing import Optional

from solidclient.client.fetcher import Fetcher
from solidclient.login.base import FormExtractor, LoginDriver
from solidclient.login.bridge import LoginFormBridge
from solidclient.login.submitter import CredentialSubmitter
from solidclient.models import Credentials


class FormLoginDriver(LoginDriver):
    """Log in by scraping and submitting the provider's HTML login form.

    Args:
        bridge: Scrapes the login form reachable from the authorization URL.
        submitter: Posts the credentials and follows the redirect chain.
    """

    def __init__(self, bridge: LoginFormBridge, submitter: CredentialSubmitter) -> None:
        self.bridge = bridge
        self.submitter = submitter

    @classmethod
    def for_fetcher(
        cls, fetcher: Fetcher, extractor: Optional[FormExtractor] = None
    ) -> FormLoginDriver:
        """Build a driver whose bridge and submitter share *fetcher*."""
        return cls(LoginFormBridge(fetcher, extractor), CredentialSubmitter(fetcher))

    async def obtain_access_url(self, auth_url: str, credentials: Credentials) -> str:
        login_params = await self.bridge.get_login_params(auth_url)
        return await self.submitter.perform_login(
            login_params.login_url, login_params, credentials
        )
