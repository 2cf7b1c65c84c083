"""Tier-gated model routes."""

import pytest
from fastapi.testclient import TestClient

from codegolden.features.ai.providers import ModelProviderError
from codegolden.features.ai.service import ModelProxy, default_routes
from codegolden.features.plans.store import InMemoryPlanStore
from codegolden.main import create_app
from codegolden.models.identity import Identity


def _grant(client, login, admin_headers, identity, tier):
    login(identity)
    client.post("/api/upgrade", json={"tier": tier})
    resp = client.post("/api/admin/approve", json={"identity": identity, "tier": tier}, headers=admin_headers)
    assert resp.status_code == 200


@pytest.fixture
def login_as(identity_provider):
    def _login(client, email):
        identity_provider.next_identity = Identity(identity=email)
        assert client.get("/auth/google/callback", follow_redirects=False).status_code == 302

    return _login


@pytest.mark.parametrize(
    "path,body",
    [
        ("/api/generate-playground", {"prompt": "hi"}),
        ("/api/generate-advanced", {"prompt": "hi"}),
        ("/api/generate-deepseek", {"prompt": "hi"}),
        ("/api/generate-ultra", {"messages": [{"role": "user", "content": "hi"}]}),
    ],
)
def test_model_routes_require_login(client, chat_providers, path, body):
    resp = client.post(path, json=body)
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "unauthenticated"
    assert all(not p.calls for p in chat_providers.values())


def test_playground_open_to_free_users(client, login, chat_providers):
    login("ada@example.com")
    resp = client.post("/api/generate-playground", json={"prompt": "Write a haiku"})
    assert resp.status_code == 200
    assert resp.json() == {"text": "openai reply"}

    call = chat_providers["openai"].calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert call["temperature"] == 0.7
    assert [(m.role, m.content) for m in call["messages"]] == [("user", "Write a haiku")]


def test_advanced_denied_for_free_user(client, login, chat_providers):
    login("ada@example.com")
    resp = client.post("/api/generate-advanced", json={"prompt": "hi"})
    assert resp.status_code == 403
    error = resp.json()["error"]
    assert error["code"] == "upgrade_required"
    assert error["required_tier"] == "plus"
    assert error["current_tier"] == "free"
    assert error["upgrade_url"] == "/api/upgrade"
    assert chat_providers["openai"].calls == []


def test_advanced_and_deepseek_for_plus(client, login, admin_headers, chat_providers):
    _grant(client, login, admin_headers, "ada@example.com", "plus")

    advanced = client.post("/api/generate-advanced", json={"prompt": "refactor this"})
    assert advanced.status_code == 200
    assert chat_providers["openai"].calls[-1]["model"] == "gpt-4"
    assert chat_providers["openai"].calls[-1]["temperature"] == 0.6

    deepseek = client.post("/api/generate-deepseek", json={"prompt": "explain"})
    assert deepseek.status_code == 200
    assert deepseek.json()["text"] == "deepseek reply"
    assert chat_providers["deepseek"].calls[-1]["model"] == "deepseek-chat"


def test_ultra_denied_for_plus(client, login, admin_headers):
    _grant(client, login, admin_headers, "ada@example.com", "plus")
    resp = client.post("/api/generate-ultra", json={"messages": [{"role": "user", "content": "hi"}]})
    assert resp.status_code == 403
    assert resp.json()["error"]["required_tier"] == "pro"
    assert resp.json()["error"]["current_tier"] == "plus"


def test_ultra_trims_history_to_last_twenty(client, login, admin_headers, chat_providers):
    _grant(client, login, admin_headers, "ada@example.com", "pro")
    messages = [
        {"role": "user" if i % 2 == 0 else "assistant", "content": f"message {i}"}
        for i in range(25)
    ]

    resp = client.post("/api/generate-ultra", json={"messages": messages})
    assert resp.status_code == 200
    assert resp.json()["text"] == "gemini reply"

    call = chat_providers["gemini"].calls[0]
    assert call["model"] == "gemini-2.5-pro"
    assert call["temperature"] is None
    assert len(call["messages"]) == 20
    assert call["messages"][0].content == "message 5"
    assert call["messages"][-1].content == "message 24"


def test_access_lapses_with_plan(client, login, admin_headers, clock):
    _grant(client, login, admin_headers, "ada@example.com", "pro")
    assert client.post("/api/generate-advanced", json={"prompt": "hi"}).status_code == 200

    clock.advance(days=31)
    resp = client.post("/api/generate-advanced", json={"prompt": "hi"})
    assert resp.status_code == 403
    assert resp.json()["error"]["current_tier"] == "free"


@pytest.mark.parametrize("body", [{}, {"prompt": ""}, {"prompt": "   "}])
def test_missing_prompt(client, login, body):
    login("ada@example.com")
    resp = client.post("/api/generate-playground", json=body)
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "No prompt provided."


@pytest.mark.parametrize(
    "body",
    [{}, {"messages": []}, {"messages": None}, {"messages": "hi"}, {"messages": {"role": "user", "content": "hi"}}],
)
def test_missing_messages(client, login, admin_headers, body):
    _grant(client, login, admin_headers, "ada@example.com", "pro")
    resp = client.post("/api/generate-ultra", json=body)
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "No messages provided (expected an array)."


def test_empty_reply_becomes_placeholder(client, login, chat_providers):
    chat_providers["openai"].reply = ""
    login("ada@example.com")
    resp = client.post("/api/generate-playground", json={"prompt": "hi"})
    assert resp.status_code == 200
    assert resp.json()["text"] == "No response."


@pytest.mark.parametrize("messages", [["hi"], [{"role": "user"}], [{"role": "user", "content": ["a", "b"]}]])
def test_malformed_messages_are_rejected(client, login, admin_headers, chat_providers, messages):
    _grant(client, login, admin_headers, "ada@example.com", "pro")
    resp = client.post("/api/generate-ultra", json={"messages": messages})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"
    assert resp.json()["error"]["message"] == "Each message needs a role and content."
    assert chat_providers["gemini"].calls == []


def test_empty_ultra_reply_becomes_warning(client, login, admin_headers, chat_providers):
    chat_providers["gemini"].reply = ""
    _grant(client, login, admin_headers, "ada@example.com", "pro")
    resp = client.post("/api/generate-ultra", json={"messages": [{"role": "user", "content": "hi"}]})
    assert resp.status_code == 200
    assert resp.json()["text"] == "⚠️ No reply generated."


def test_provider_failure_is_service_error(client, login, chat_providers):
    chat_providers["openai"].error = ModelProviderError("upstream 500: secret-ish details")
    login("ada@example.com")
    resp = client.post("/api/generate-playground", json={"prompt": "hi"})
    assert resp.status_code == 502
    body = resp.json()
    assert body["error"]["code"] == "service_error"
    assert body["error"]["message"] == "Error generating response."
    assert body["error"]["route"] == "playground"
    assert "secret-ish" not in resp.text


def test_unconfigured_provider_is_unavailable(test_settings, clock, identity_provider, login_as):
    app = create_app(
        test_settings,
        store=InMemoryPlanStore(),
        clock=clock,
        identity_provider=identity_provider,
        model_proxy=ModelProxy({}, default_routes(test_settings)),
    )
    client = TestClient(app)
    login_as(client, "ada@example.com")

    resp = client.post("/api/generate-playground", json={"prompt": "hi"})
    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "service_unavailable"
