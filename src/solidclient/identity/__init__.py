"""Provider settings and session caches.

- :class:`IdentityManager` -- in-memory cache.
- :class:`FileIdentityManager` -- the same cache persisted to a JSON file
  in the data directory.
"""

from solidclient.identity.manager import IdentityManager
from solidclient.identity.store import FileIdentityManager

__all__ = ["FileIdentityManager", "IdentityManager"]
