"""OpenID Connect relying party and proof-of-possession tokens.

- :class:`RelyingParty` -- interface the login orchestration talks to.
- :class:`OIDCRelyingParty` -- default implementation: discovery, dynamic
  registration, implicit-flow requests and ``id_token`` validation.
- :func:`issue_for` -- mint a PoP token for a resource URL from a session.
"""

from solidclient.oidc.base import RelyingParty, RelyingPartyFactory
from solidclient.oidc.pop_token import issue_for
from solidclient.oidc.relying_party import OIDCRelyingParty

__all__ = ["OIDCRelyingParty", "RelyingParty", "RelyingPartyFactory", "issue_for"]
