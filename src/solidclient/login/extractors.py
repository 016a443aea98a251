"""Login form extractors.

Two interchangeable :class:`~solidclient.login.base.FormExtractor`
implementations:

- :class:`RegexFormExtractor` (default) -- matches the markup with regular
  expressions.  Fast and dependency free, but tightly coupled to the
  provider's exact markup: attributes must be double-quoted.
- :class:`SoupFormExtractor` -- parses the page with BeautifulSoup, so
  single-quoted or unquoted attributes and odd whitespace are tolerated.

Both follow the same contract: only the *first* ``<form>`` on the page is
considered, and ``<input>`` tags without a non-empty ``value`` attribute are
skipped rather than submitted empty.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

from solidclient.exceptions import UnexpectedLoginPageError
from solidclient.login.base import FormExtractor
from solidclient.models import LoginForm

_FORM_RE = re.compile(r"<form\b.*?</form>", re.IGNORECASE | re.DOTALL)
_ACTION_RE = re.compile(r'\saction="([^"]+)"', re.IGNORECASE)
_INPUT_RE = re.compile(r"""<input\b(?:[^>"']|"[^"]*"|'[^']*')*>""", re.IGNORECASE)
_NAME_RE = re.compile(r'\sname="([^"]+)"', re.IGNORECASE)
_VALUE_RE = re.compile(r'\svalue="([^"]+)"', re.IGNORECASE)


class RegexFormExtractor(FormExtractor):
    """Extract the login form with regular expressions."""

    def extract(self, html: str) -> LoginForm:
        form_match = _FORM_RE.search(html)
        if form_match is None:
            raise UnexpectedLoginPageError("Login page does not contain a <form>")
        form = form_match.group(0)

        action_match = _ACTION_RE.search(form)
        if action_match is None:
            raise UnexpectedLoginPageError("Login form has no action attribute")

        fields: dict[str, str] = {}
        for tag in _INPUT_RE.findall(form):
            name = _NAME_RE.search(tag)
            value = _VALUE_RE.search(tag)
            if name and value:
                fields[name.group(1)] = value.group(1)

        return LoginForm(action_url=action_match.group(1), fields=fields)


class SoupFormExtractor(FormExtractor):
    """Extract the login form with BeautifulSoup.

    Args:
        parser: Parser name handed to :class:`bs4.BeautifulSoup`.
    """

    def __init__(self, parser: str = "html.parser") -> None:
        self._parser = parser

    def extract(self, html: str) -> LoginForm:
        soup = BeautifulSoup(html, self._parser)
        form = soup.find("form")
        if form is None:
            raise UnexpectedLoginPageError("Login page does not contain a <form>")

        action = form.get("action")
        if not action:
            raise UnexpectedLoginPageError("Login form has no action attribute")

        fields: dict[str, str] = {}
        for tag in form.find_all("input"):
            name = tag.get("name")
            value = tag.get("value")
            if name and value:
                fields[name] = value

        return LoginForm(action_url=action, fields=fields)
