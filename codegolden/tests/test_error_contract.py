"""Tests for normalized error responses."""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from codegolden.core.errors import (
    AppError,
    ServiceError,
    app_error_handler,
    unhandled_exception_handler,
)
from codegolden.core.middleware.request_id import RequestIdMiddleware


def test_validation_error_has_standard_shape(client, login):
    login("ada@example.com")
    resp = client.post("/api/generate-playground", json={"prompt": "   "})
    assert resp.status_code == 400
    body = resp.json()
    rid = resp.headers.get("x-request-id")
    assert body["error"]["code"] == "validation_error"
    assert body["error"]["message"] == "No prompt provided."
    assert body["detail"] == "No prompt provided."
    assert body["error"]["request_id"] == rid


def test_unauthenticated_error_normalized(client):
    resp = client.post("/api/upgrade", json={"tier": "plus"})
    assert resp.status_code == 401
    body = resp.json()
    assert body["error"]["code"] == "unauthenticated"
    assert body["error"]["request_id"] == resp.headers.get("x-request-id")


def test_invalid_tier_error_code(client, login):
    login("ada@example.com")
    resp = client.post("/api/upgrade", json={"tier": "gold"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_tier"


def test_unknown_route_is_not_found(client):
    resp = client.get("/api/does-not-exist")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "not_found"


def test_details_are_merged_but_do_not_override_core_fields():
    test_app = FastAPI()
    test_app.add_middleware(RequestIdMiddleware)
    test_app.add_exception_handler(AppError, app_error_handler)

    @test_app.get("/boom")
    async def boom():
        raise ServiceError("Error generating response.", details={"route": "ultra", "code": "sneaky"})

    resp = TestClient(test_app).get("/boom", headers={"X-Request-Id": "rid-boom"})
    assert resp.status_code == 502
    error = resp.json()["error"]
    assert error["code"] == "service_error"
    assert error["route"] == "ultra"
    assert error["request_id"] == "rid-boom"


def test_unhandled_exception_is_internal_error():
    test_app = FastAPI()
    test_app.add_middleware(RequestIdMiddleware)
    test_app.add_exception_handler(Exception, unhandled_exception_handler)

    @test_app.get("/crash")
    async def crash():
        raise RuntimeError("kaboom")

    client = TestClient(test_app, raise_server_exceptions=False)
    resp = client.get("/crash")
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"]["code"] == "internal_error"
    assert body["error"]["message"] == "Unexpected error"
    assert "kaboom" not in resp.text
