"""File-backed identity manager.

Stores provider settings and sessions in ``~/.local/share/solidclient/identity.json``
(XDG) or the platform-equivalent directory.  The file is rewritten
atomically after every change with ``0o600`` permissions: sessions contain
the private keys that sign proof-of-possession tokens.

See Also:
    :class:`~solidclient.identity.manager.IdentityManager` -- the in-memory
    behaviour this class extends.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from solidclient.config import _atomic_write, get_data_dir
from solidclient.identity.manager import IdentityManager
from solidclient.models import ProviderSettings, Session
from solidclient.oidc.base import RelyingParty

logger = logging.getLogger(__name__)

_STORE_FILENAME = "identity.json"


class FileIdentityManager(IdentityManager):
    """Identity manager that survives process restarts.

    The store is loaded once on construction.  A missing file means an empty
    store; an unreadable or corrupt one is logged and ignored, and gets
    overwritten by the next change.

    Args:
        path: Store location.  Defaults to ``<data dir>/identity.json``.

    Example::

        manager = FileIdentityManager()
        async with SolidClient(manager) as client:
            session = await client.login(idp, credentials)
        # A later process reuses the session without logging in again.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        super().__init__()
        self._path = path or get_data_dir() / _STORE_FILENAME
        self._load()

    @property
    def path(self) -> Path:
        """The filesystem path of the store."""
        return self._path

    def add_provider_settings(self, relying_party: RelyingParty) -> None:
        super().add_provider_settings(relying_party)
        self._save()

    def add_session(self, relying_party: RelyingParty, username: str, session: Session) -> None:
        super().add_session(relying_party, username, session)
        self._save()

    def remove_session(self, relying_party: RelyingParty, username: str) -> None:
        super().remove_session(relying_party, username)
        self._save()

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #

    def _load(self) -> None:
        if not self._path.is_file():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            providers = {
                issuer: ProviderSettings.model_validate(settings)
                for issuer, settings in data.get("providers", {}).items()
            }
            sessions = {
                (entry["issuer"], entry["username"]): Session.model_validate(entry["session"])
                for entry in data.get("sessions", [])
            }
        except (json.JSONDecodeError, ValidationError, KeyError, TypeError, AttributeError, OSError) as exc:
            logger.warning("Ignoring unreadable identity store %s: %s", self._path, exc)
            return
        self._providers = providers
        self._sessions = sessions

    def _save(self) -> None:
        data = {
            "providers": {
                issuer: settings.model_dump(mode="json")
                for issuer, settings in self._providers.items()
            },
            "sessions": [
                {
                    "issuer": issuer,
                    "username": username,
                    "session": session.model_dump(mode="json"),
                }
                for (issuer, username), session in self._sessions.items()
            ],
        }
        _atomic_write(self._path, json.dumps(data, indent=2) + "\n", mode=0o600)
