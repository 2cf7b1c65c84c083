"""Google OAuth identity provider (authlib Starlette client)."""

from typing import Any, Mapping, Optional

import httpx
from authlib.integrations.base_client import OAuthError
from authlib.integrations.starlette_client import OAuth
from starlette.requests import Request
from starlette.responses import Response

from codegolden.features.identity.provider import IdentityProviderError, identity_from_userinfo
from codegolden.models.identity import Identity


GOOGLE_METADATA_URL = "https://accounts.google.com/.well-known/openid-configuration"
GOOGLE_SCOPES = "openid email profile"


class GoogleIdentityProvider:
    def __init__(self, client_id: str, client_secret: str):
        if not client_id or not client_secret:
            raise ValueError("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET are required")
        self._oauth = OAuth()
        self._oauth.register(
            name="google",
            client_id=client_id,
            client_secret=client_secret,
            server_metadata_url=GOOGLE_METADATA_URL,
            client_kwargs={"scope": GOOGLE_SCOPES},
        )

    @property
    def client(self):
        return self._oauth.google

    async def authorize_redirect(self, request: Request, redirect_uri: str) -> Response:
        try:
            return await self.client.authorize_redirect(request, redirect_uri)
        except (OAuthError, httpx.HTTPError) as exc:
            raise IdentityProviderError(f"Could not start Google login: {exc}") from exc

    async def fetch_identity(self, request: Request) -> Identity:
        try:
            token: Optional[Mapping[str, Any]] = await self.client.authorize_access_token(request)
        except (OAuthError, httpx.HTTPError) as exc:
            raise IdentityProviderError(f"Google token exchange failed: {exc}") from exc

        if not isinstance(token, Mapping):
            raise IdentityProviderError("Google returned an unexpected token payload")

        userinfo = token.get("userinfo")
        if not isinstance(userinfo, Mapping) or "email" not in userinfo:
            try:
                userinfo = await self.client.userinfo(token=token)
            except (OAuthError, httpx.HTTPError) as exc:
                raise IdentityProviderError(f"Google userinfo lookup failed: {exc}") from exc

        return identity_from_userinfo(userinfo)
