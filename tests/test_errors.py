import json
import logging

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field

from cricketstore.core.errors import (
    ERROR_MESSAGES,
    ERROR_STATUS,
    ApiError,
    ErrorCode,
    create_error_response,
    handle_unexpected_error,
    register_exception_handlers,
    with_error_handler,
)


def _body(resp):
    return json.loads(resp.body)


def test_every_code_has_status_and_message():
    for code in ErrorCode:
        assert code in ERROR_STATUS
        assert ERROR_MESSAGES[code]


@pytest.mark.parametrize(
    "code,status",
    [
        (ErrorCode.AUTH_REQUIRED, 401),
        (ErrorCode.AUTH_ADMIN_REQUIRED, 403),
        (ErrorCode.VALIDATION_FAILED, 400),
        (ErrorCode.ORDER_NOT_FOUND, 404),
        (ErrorCode.WISHLIST_ALREADY_EXISTS, 409),
        (ErrorCode.ORDER_CANNOT_BE_CANCELLED, 422),
        (ErrorCode.RATE_LIMIT_EXCEEDED, 429),
        (ErrorCode.SERVER_ERROR, 500),
    ],
)
def test_create_error_response_status(code, status):
    resp = create_error_response(code)
    assert resp.status_code == status
    assert _body(resp) == {"error": ERROR_MESSAGES[code], "code": code.value}


def test_custom_message_and_details():
    resp = create_error_response(ErrorCode.VALIDATION_FAILED, "Bad slug", details={"slug": "invalid"})
    assert _body(resp) == {"error": "Bad slug", "code": "VALIDATION_FAILED", "details": {"slug": "invalid"}}


def test_server_errors_never_carry_details():
    resp = create_error_response(ErrorCode.DATABASE_ERROR, details={"sql": "SELECT secret"})
    assert "details" not in _body(resp)


def test_unexpected_error_is_logged_and_hidden(caplog):
    with caplog.at_level(logging.ERROR, logger="cricketstore.core.errors"):
        resp = handle_unexpected_error(RuntimeError("connection string leaked"), "GET /api/orders/my-orders")
    assert resp.status_code == 500
    body = _body(resp)
    assert body == {"error": ERROR_MESSAGES[ErrorCode.SERVER_ERROR], "code": "SERVER_ERROR"}
    assert "leaked" not in resp.body.decode()
    assert any("GET /api/orders/my-orders" in r.getMessage() for r in caplog.records)


class _Payload(BaseModel):
    name: str = Field(..., min_length=3)


def _app():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/boom")
    @with_error_handler("GET /boom")
    def boom():
        raise KeyError("internal")

    @app.get("/async-boom")
    @with_error_handler("GET /async-boom")
    async def async_boom():
        raise ValueError("internal")

    @app.get("/missing")
    @with_error_handler("GET /missing")
    def missing():
        raise ApiError(ErrorCode.PRODUCT_NOT_FOUND)

    @app.post("/items")
    @with_error_handler("POST /items")
    def items(payload: _Payload):
        return {"name": payload.name}

    return app


def test_with_error_handler_maps_failures():
    client = TestClient(_app())
    resp = client.get("/boom")
    assert resp.status_code == 500
    assert resp.json()["code"] == "SERVER_ERROR"

    resp = client.get("/async-boom")
    assert resp.status_code == 500

    resp = client.get("/missing")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Product not found", "code": "PRODUCT_NOT_FOUND"}


def test_request_validation_maps_to_400():
    client = TestClient(_app())
    resp = client.post("/items", json={"name": "ab"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "VALIDATION_FAILED"
    assert "name" in body["details"]

    assert client.post("/items", json={"name": "abc"}).json() == {"name": "abc"}
