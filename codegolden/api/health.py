"""
Health endpoints.

Lightweight checks for operational monitoring without exposing secrets.
"""

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz(request: Request):
    """Lightweight liveness check (no deps)."""
    return {"status": "ok", "env": request.app.state.settings.ENV}


@router.get("/readyz")
def readyz(request: Request):
    """Reports which optional collaborators are wired up."""
    state = request.app.state
    return {
        "status": "ok",
        "plan_store": type(state.ledger.store).__name__,
        "google_login": state.identity_provider is not None,
        "model_providers": sorted(state.model_proxy.providers.keys()),
    }
