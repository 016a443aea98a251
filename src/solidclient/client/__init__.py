"""HTTP fetcher and session orchestrator for solidclient.

Classes:
    :class:`Fetcher` -- single-shot, non-redirecting request wrapper around
    :class:`httpx.AsyncClient`.
    :class:`SolidClient` -- logs users in and issues PoP tokens.

Example::

    from solidclient.client import SolidClient

    async with SolidClient(identity_manager) as client:
        session = await client.login(idp, credentials)
"""

from solidclient.client.fetcher import Fetcher
from solidclient.client.solid_client import SolidClient

__all__ = ["Fetcher", "SolidClient"]
