"""Abstract interfaces for headless login.

This module defines the two seams of the login subsystem:

- :class:`FormExtractor` -- turns a login page's HTML into a
  :class:`~solidclient.models.LoginForm`.  The default implementation is
  regex based; a real HTML parser can be swapped in without touching any
  caller.
- :class:`LoginDriver` -- turns an authorization URL plus credentials into
  the provider's final access URL.  The default
  :class:`~solidclient.login.driver.FormLoginDriver` scrapes and submits
  the provider's HTML form; a provider-specific driver can replace it
  without changing :class:`~solidclient.client.solid_client.SolidClient`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from solidclient.models import Credentials, LoginForm


class FormExtractor(ABC):
    """Extract the login form from a provider's HTML page."""

    @abstractmethod
    def extract(self, html: str) -> LoginForm:
        """Return the first form's ``action`` and its ``<input>`` name/value pairs.

        Args:
            html: The login page body.

        Returns:
            A :class:`~solidclient.models.LoginForm` whose ``action_url`` is
            still relative to the page it was found on.

        Raises:
            UnexpectedLoginPageError: If the page has no form, or the form
                has no ``action`` attribute.
        """
        ...


class LoginDriver(ABC):
    """Complete a provider login without a browser.

    Implementations receive the authorization URL created by the relying
    party and must return the URL the provider finally redirects to, which
    carries the tokens in its fragment.
    """

    @abstractmethod
    async def obtain_access_url(self, auth_url: str, credentials: Credentials) -> str:
        """Log in with *credentials* starting at *auth_url*.

        Args:
            auth_url: Authorization request URL.
            credentials: The user's username and password.

        Returns:
            The access URL to hand to the relying party for validation.

        Raises:
            LoginError: If the provider's pages are not shaped as expected
                or the credentials are rejected.
            ConnectionError_: On transport failures.
        """
        ...
