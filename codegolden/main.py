import logging
import os
from datetime import timedelta
from pathlib import Path
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from codegolden.core.config import Settings, settings as default_settings, validate_config
from codegolden.core.logging import configure_logging
from codegolden.core.middleware.request_id import RequestIdMiddleware
from codegolden.core.validation import validate_env
from codegolden.core.admin_auth import build_admin_authorizers
from codegolden.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from codegolden.api import admin, ai, auth, health, pages, plans
from codegolden.features.access.gate import AccessGate
from codegolden.features.ai.service import ModelProxy
from codegolden.features.identity.google import GoogleIdentityProvider
from codegolden.features.identity.provider import IdentityProvider
from codegolden.features.plans.ledger import Clock, PlanLedger
from codegolden.features.plans.store import PlanStore, build_plan_store
from codegolden.features.sessions.store import SessionStore

logger = logging.getLogger("codegolden")


def _build_identity_provider(cfg: Settings) -> Optional[IdentityProvider]:
    if not (cfg.GOOGLE_CLIENT_ID and cfg.GOOGLE_CLIENT_SECRET):
        logger.warning("Google OAuth not configured; /auth/google will return 503")
        return None
    return GoogleIdentityProvider(cfg.GOOGLE_CLIENT_ID, cfg.GOOGLE_CLIENT_SECRET)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting CodeGoldenAI backend...")
    try:
        yield
    finally:
        logger.info("Stopping CodeGoldenAI backend...")


def create_app(
    settings_obj: Optional[Settings] = None,
    *,
    store: Optional[PlanStore] = None,
    clock: Optional[Clock] = None,
    identity_provider: Optional[IdentityProvider] = None,
    model_proxy: Optional[ModelProxy] = None,
) -> FastAPI:
    """
    Build the application.

    Collaborators (plan store, identity provider, model proxy) default to the
    ones described by settings and can be injected for tests.
    """
    cfg = settings_obj or default_settings

    app = FastAPI(title="CodeGoldenAI - Backend", lifespan=lifespan)

    ledger = PlanLedger(
        store if store is not None else build_plan_store(cfg.DATABASE_URL),
        clock=clock,
        plan_duration=timedelta(days=cfg.PLAN_DURATION_DAYS),
    )
    app.state.settings = cfg
    app.state.ledger = ledger
    app.state.access_gate = AccessGate(ledger)
    app.state.sessions = SessionStore()
    app.state.admin_authorizers = build_admin_authorizers(cfg)
    app.state.identity_provider = identity_provider if identity_provider is not None else _build_identity_provider(cfg)
    app.state.model_proxy = model_proxy if model_proxy is not None else ModelProxy.from_settings(cfg)

    # Middlewares (last added runs first)
    is_production = cfg.ENV.lower() == "production"
    app.add_middleware(
        SessionMiddleware,
        secret_key=cfg.SESSION_SECRET,
        session_cookie=cfg.SESSION_COOKIE,
        max_age=cfg.SESSION_MAX_AGE,
        same_site="lax",
        https_only=is_production,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health.router)
    app.include_router(auth.router, tags=["auth"])
    app.include_router(plans.router)
    app.include_router(admin.router)
    app.include_router(ai.router)
    if Path(cfg.STATIC_DIR).is_dir():
        app.mount("/static", StaticFiles(directory=cfg.STATIC_DIR), name="static")
    app.include_router(pages.router)

    return app


configure_logging(default_settings.ENV)
validate_env()
validate_config(strict=getattr(default_settings, "CONFIG_STRICT", False))

app = create_app()
