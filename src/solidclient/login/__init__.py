"""Headless login against an identity provider's HTML login form.

The main entry points are:

- :class:`LoginDriver` -- interface for completing a login without a browser.
- :class:`FormLoginDriver` -- the default driver, composed of a
  :class:`LoginFormBridge` (scrapes the form) and a
  :class:`CredentialSubmitter` (posts it and follows the redirects).
- :class:`FormExtractor` -- interface for pulling the form out of HTML, with
  :class:`RegexFormExtractor` and :class:`SoupFormExtractor` implementations.
"""

from solidclient.login.base import FormExtractor, LoginDriver
from solidclient.login.bridge import LoginFormBridge
from solidclient.login.driver import FormLoginDriver
from solidclient.login.extractors import RegexFormExtractor, SoupFormExtractor
from solidclient.login.submitter import (
    CredentialSubmitter,
    extract_rejection_cause,
    session_cookie,
)

__all__ = [
    "CredentialSubmitter",
    "FormExtractor",
    "FormLoginDriver",
    "LoginDriver",
    "LoginFormBridge",
    "RegexFormExtractor",
    "SoupFormExtractor",
    "extract_rejection_cause",
    "session_cookie",
]
