"""Google login, logout and current-user profile."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from codegolden.api.deps import get_ledger
from codegolden.core.auth import get_current_identity, login_session, logout_session
from codegolden.core.errors import ServiceError, ServiceUnavailableError
from codegolden.features.identity.provider import IdentityProviderError
from codegolden.features.plans.ledger import PlanLedger
from codegolden.models.identity import Identity

logger = logging.getLogger("codegolden.auth")

router = APIRouter()


class MeOut(BaseModel):
    identity: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    tier: str


def _callback_url(request: Request) -> str:
    configured = request.app.state.settings.GOOGLE_CALLBACK_URL
    if configured:
        return configured
    return str(request.url_for("auth_google_callback"))


@router.get("/auth/google")
async def login_google(request: Request):
    """Redirect the user to Google's login page."""
    provider = request.app.state.identity_provider
    if provider is None:
        raise ServiceUnavailableError("Google login is not configured")
    try:
        return await provider.authorize_redirect(request, _callback_url(request))
    except IdentityProviderError as exc:
        logger.error(f"[auth] could not start Google login: {exc}")
        raise ServiceError("Unable to reach the login service. Please try again.")


@router.get("/auth/google/callback", name="auth_google_callback")
async def auth_google_callback(request: Request):
    """Complete the OAuth callback, open a session and redirect."""
    settings = request.app.state.settings
    provider = request.app.state.identity_provider
    if provider is None:
        return RedirectResponse(settings.LOGIN_FAILURE_REDIRECT, status_code=302)
    try:
        identity = await provider.fetch_identity(request)
    except IdentityProviderError as exc:
        logger.warning(f"[auth] Google login failed: {exc}")
        return RedirectResponse(settings.LOGIN_FAILURE_REDIRECT, status_code=302)

    login_session(request, identity)
    logger.info("[auth] login", extra={"identity": identity.identity})
    return RedirectResponse(settings.LOGIN_SUCCESS_REDIRECT, status_code=302)


@router.get("/auth/logout")
def logout(request: Request):
    logout_session(request)
    return RedirectResponse("/", status_code=302)


@router.get("/api/me", response_model=MeOut)
def me(
    identity: Identity = Depends(get_current_identity),
    ledger: PlanLedger = Depends(get_ledger),
):
    return MeOut(
        identity=identity.identity,
        display_name=identity.display_name,
        avatar_url=identity.avatar_url,
        tier=ledger.get_effective_tier(identity.identity).value,
    )
