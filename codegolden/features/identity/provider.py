"""
Identity provider protocol.

Login is delegated to an external provider that performs the OAuth
redirect/callback and yields a verified Identity.
"""
from typing import Any, Mapping, Optional, Protocol

from starlette.requests import Request
from starlette.responses import Response

from codegolden.models.identity import Identity


class IdentityProviderError(Exception):
    """Raised when the provider cannot complete a login."""


class IdentityProvider(Protocol):
    async def authorize_redirect(self, request: Request, redirect_uri: str) -> Response:
        """Return a redirect response that sends the user to the provider."""
        ...

    async def fetch_identity(self, request: Request) -> Identity:
        """
        Complete the callback and return the verified identity.

        Raises:
            IdentityProviderError: token exchange or profile lookup failed
        """
        ...


def identity_from_userinfo(userinfo: Optional[Mapping[str, Any]]) -> Identity:
    """Build an Identity from an OpenID Connect userinfo payload."""
    if not isinstance(userinfo, Mapping) or not userinfo.get("email"):
        raise IdentityProviderError("Provider profile is missing an e-mail address")
    if userinfo.get("email_verified") is False:
        raise IdentityProviderError("Provider e-mail address is not verified")
    return Identity(
        identity=str(userinfo["email"]),
        display_name=userinfo.get("name") or userinfo.get("given_name"),
        avatar_url=userinfo.get("picture"),
        subject=str(userinfo.get("sub") or userinfo.get("id") or "") or None,
    )
