# codegolden/conftest.py
import os
from datetime import datetime, timedelta, timezone
from typing import List, Optional

os.environ.setdefault("SKIP_ENV_VALIDATION", "1")

import pytest
from fastapi.testclient import TestClient
from starlette.responses import RedirectResponse

from codegolden.core.config import Settings
from codegolden.features.ai.providers import ChatMessage
from codegolden.features.ai.service import ModelProxy, default_routes
from codegolden.features.identity.provider import IdentityProviderError
from codegolden.features.plans.ledger import PlanLedger
from codegolden.features.plans.store import InMemoryPlanStore
from codegolden.models.identity import Identity

ADMIN_KEY = "test-admin-key-123"
ADMIN_EMAIL = "boss@codegolden.ai"


class FrozenClock:
    """Deterministic clock for ledger tests."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeIdentityProvider:
    """Stands in for Google: the next callback yields `next_identity`."""

    def __init__(self):
        self.next_identity: Optional[Identity] = None
        self.redirect_uris: List[str] = []

    async def authorize_redirect(self, request, redirect_uri: str):
        self.redirect_uris.append(redirect_uri)
        return RedirectResponse("https://accounts.google.com/o/oauth2/v2/auth?client_id=fake", status_code=302)

    async def fetch_identity(self, request) -> Identity:
        if self.next_identity is None:
            raise IdentityProviderError("access_denied")
        return self.next_identity


class FakeChatProvider:
    def __init__(self, reply: str = "Hello from the model", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def generate(self, model: str, messages: List[ChatMessage], temperature: Optional[float] = None) -> str:
        self.calls.append({"model": model, "messages": list(messages), "temperature": temperature})
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def plan_store():
    return InMemoryPlanStore()


@pytest.fixture
def ledger(plan_store, clock):
    return PlanLedger(plan_store, clock=clock)


@pytest.fixture
def static_dir(tmp_path):
    pages = tmp_path / "public"
    pages.mkdir()
    for name in ("login", "index", "advanced", "ultra", "marketplace"):
        (pages / f"{name}.html").write_text(f"<html><body>{name} page</body></html>")
    return pages


@pytest.fixture
def test_settings(static_dir):
    return Settings(
        _env_file=None,
        ENV="test",
        SESSION_SECRET="test-session-secret",
        ADMIN_KEY=ADMIN_KEY,
        ADMIN_EMAILS=ADMIN_EMAIL,
        ADMIN_AUTH_MODE="hybrid",
        STATIC_DIR=str(static_dir),
        DATABASE_URL=None,
    )


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture
def chat_providers():
    return {
        "openai": FakeChatProvider("openai reply"),
        "deepseek": FakeChatProvider("deepseek reply"),
        "gemini": FakeChatProvider("gemini reply"),
    }


@pytest.fixture
def app(test_settings, plan_store, clock, identity_provider, chat_providers):
    from codegolden.main import create_app

    return create_app(
        test_settings,
        store=plan_store,
        clock=clock,
        identity_provider=identity_provider,
        model_proxy=ModelProxy(chat_providers, default_routes(test_settings)),
    )


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def login(client, identity_provider):
    """Log the test client in through the OAuth callback as `email`."""

    def _login(email: str, name: Optional[str] = None) -> Identity:
        identity_provider.next_identity = Identity(
            identity=email,
            display_name=name or email.split("@")[0],
            avatar_url=f"https://example.com/{email}.png",
            subject=f"google-{email}",
        )
        resp = client.get("/auth/google/callback", follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/index.html"
        return identity_provider.next_identity

    return _login


@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": ADMIN_KEY}
