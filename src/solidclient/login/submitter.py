"""Credential submitter -- posts the login form and follows the redirect chain.

After a successful POST the provider answers ``302 Found`` with a session
cookie and a redirect back to its authorization endpoint.  Replaying that
redirect with the cookie yields a second redirect whose ``Location`` is the
access URL: the registered redirect URI with the tokens in its fragment.

Only the first ``Set-Cookie`` header of the login response is carried
forward.  Providers that need several cookies for the follow-up hop are not
supported.
"""

from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import urlencode, urljoin

from solidclient.client.fetcher import Fetcher
from solidclient.exceptions import LoginRejectedError, UnexpectedLoginPageError
from solidclient.models import Credentials, LoginParams

logger = logging.getLogger(__name__)

_STRONG_RE = re.compile(r"<strong>(.*?)</strong>", re.DOTALL)

UNKNOWN_CAUSE = "unknown cause"


def extract_rejection_cause(body: str) -> str:
    """Return the text of the first ``<strong>`` element in *body*.

    Providers put the human-readable reason for a failed login there.

    Args:
        body: HTML body of the rejected login response.

    Returns:
        The extracted reason, or ``"unknown cause"`` when there is none.
    """
    match = _STRONG_RE.search(body)
    return match.group(1) if match else UNKNOWN_CAUSE


def session_cookie(set_cookie: str) -> str:
    """Trim a ``Set-Cookie`` value to its ``name=value`` pair.

    Example::

        session_cookie("sid=abc123; Path=/; HttpOnly")  # "sid=abc123"
    """
    return set_cookie.split(";", 1)[0].strip()


class CredentialSubmitter:
    """Submit credentials to the scraped login form and return the access URL.

    Args:
        fetcher: Fetcher used for the POST and the follow-up hop.
    """

    def __init__(self, fetcher: Fetcher) -> None:
        self._fetcher = fetcher

    async def perform_login(
        self,
        login_url: str,
        login_params: LoginParams,
        credentials: Credentials,
    ) -> str:
        """Post *credentials* with the scraped fields and follow the redirects.

        ``username`` and ``password`` override any scraped field with the
        same name.  *login_params* itself is left untouched.

        Args:
            login_url: Absolute URL the form posts to.
            login_params: Scraped form fields.
            credentials: The user's username and password.

        Returns:
            The ``Location`` of the response to the post-login redirect.

        Raises:
            LoginRejectedError: If the POST is answered with anything but 302.
            UnexpectedLoginPageError: If a redirect or the session cookie is
                missing.
            ConnectionError_: On transport failures.
        """
        fields = dict(login_params.fields)
        fields["username"] = credentials.username
        fields["password"] = credentials.password.get_secret_value()

        post_data = urlencode(fields)
        login_response = await self._fetcher.fetch(
            "POST",
            login_url,
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Content-Length": str(len(post_data.encode("utf-8"))),
            },
            content=post_data,
        )

        if login_response.status_code != 302:
            cause = extract_rejection_cause(login_response.text)
            logger.debug(
                "Login for %s rejected with HTTP %s",
                credentials.username,
                login_response.status_code,
            )
            raise LoginRejectedError(cause)

        next_url = self._redirect_target(login_url, login_response.headers.get("location"))
        cookies = login_response.headers.get_list("set-cookie")
        if not cookies:
            raise UnexpectedLoginPageError("Login response did not set a session cookie")

        auth_response = await self._fetcher.fetch(
            "GET",
            next_url,
            headers={"Cookie": session_cookie(cookies[0])},
        )
        access_url = auth_response.headers.get("location")
        if not access_url:
            raise UnexpectedLoginPageError(
                f"Provider did not redirect to an access URL "
                f"(HTTP {auth_response.status_code})"
            )
        return access_url

    @staticmethod
    def _redirect_target(base_url: str, location: Optional[str]) -> str:
        if not location:
            raise UnexpectedLoginPageError("Login response has no Location header")
        return urljoin(base_url, location)
