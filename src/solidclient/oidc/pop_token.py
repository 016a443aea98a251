"""Proof-of-possession tokens.

A PoP token is a short-lived JWT signed with the session key whose public
half was announced during the authorization request.  It wraps the
session's ``id_token`` and is bound to the origin of one resource server
through its ``aud`` claim, so a token leaked to one server cannot be
replayed against another.
"""

from __future__ import annotations

import time
from urllib.parse import urlsplit

from jose import jwt

from solidclient.models import Session

DEFAULT_LIFETIME = 3600
"""Seconds a PoP token stays valid."""


def origin_of(url: str) -> str:
    """Return the ``scheme://host[:port]`` origin of *url*."""
    parts = urlsplit(url)
    host = parts.netloc.rsplit("@", 1)[-1]
    return f"{parts.scheme}://{host}"


def issue_for(url: str, session: Session, lifetime: int = DEFAULT_LIFETIME) -> str:
    """Issue a PoP token for the resource server hosting *url*.

    Args:
        url: Any URL on the target resource server.
        session: The session whose key signs the token.
        lifetime: Validity in seconds.

    Returns:
        The compact-serialised RS256 JWT.
    """
    now = int(time.time())
    claims = {
        "iss": session.client_id,
        "aud": origin_of(url),
        "iat": now,
        "exp": now + lifetime,
        "id_token": session.id_token,
        "token_type": "pop",
    }
    headers = {}
    if "kid" in session.session_key:
        headers["kid"] = session.session_key["kid"]
    return jwt.encode(claims, session.session_key, algorithm="RS256", headers=headers)
