"""In-memory identity manager.

:class:`IdentityManager` is the cache :class:`~solidclient.client.solid_client.SolidClient`
consults before doing any network work.  It keeps two maps:

- provider settings, keyed by issuer URL, so a relying party is registered
  only once per provider;
- sessions, keyed by ``(issuer, username)``, so each user logs in to each
  provider only once.

It is a plain get/put store with no transactional guarantees: a second
``add_*`` for the same key simply replaces the first.
"""

from __future__ import annotations

from typing import Optional

from solidclient.models import ProviderSettings, Session
from solidclient.oidc.base import RelyingParty


class IdentityManager:
    """Keep provider settings and sessions in memory for the process lifetime.

    Example::

        manager = IdentityManager()
        manager.add_session(relying_party, "alice", session)
        assert manager.get_session(relying_party, "alice") is session
    """

    def __init__(self) -> None:
        self._providers: dict[str, ProviderSettings] = {}
        self._sessions: dict[tuple[str, str], Session] = {}

    # --- Provider settings ---

    def get_provider_settings(self, issuer: str) -> Optional[ProviderSettings]:
        """Return the stored settings for *issuer*, or ``None``."""
        return self._providers.get(issuer)

    def add_provider_settings(self, relying_party: RelyingParty) -> None:
        """Store the settings of *relying_party* under its issuer."""
        self._providers[relying_party.issuer] = relying_party.settings

    # --- Sessions ---

    def get_session(self, relying_party: RelyingParty, username: str) -> Optional[Session]:
        """Return the cached session of *username* with *relying_party*, or ``None``."""
        return self._sessions.get((relying_party.issuer, username))

    def add_session(self, relying_party: RelyingParty, username: str, session: Session) -> None:
        """Cache *session* for *username* with *relying_party*."""
        self._sessions[(relying_party.issuer, username)] = session

    def remove_session(self, relying_party: RelyingParty, username: str) -> None:
        """Forget the session of *username*; a no-op when none is cached."""
        self._sessions.pop((relying_party.issuer, username), None)
