# Feedonomics FDX Client
# File: tests/test_client_requests.py
# Version: v3

"""Transport and normalisation tests for FdxClient.

HTTP is stubbed with ``httpx.MockTransport``; every request the client sends
is recorded so tests can assert on method, URL, headers and body.
"""

from __future__ import annotations

import json
import logging
from typing import Callable, List

import httpx
import pytest

from fdx_client.client import DB_ID_REQUIRED, FdxClient
from fdx_client.config import FdxConfig
from fdx_client.models import GroupMovePayload, Schedule, VaultEntry

BASE = "https://meta.feedonomics.com/api.php"


class _Recorder:
    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handler = handler
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


def _client(handler=None, **config) -> tuple[FdxClient, _Recorder]:
    recorder = _Recorder(handler or (lambda request: httpx.Response(200, json={"ok": True})))
    cfg = FdxConfig(api_token=config.pop("api_token", "test-token"), **config)
    return FdxClient(cfg, transport=httpx.MockTransport(recorder)), recorder


# ---------------------------------------------------------------------------
# Envelope mapping
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_success_maps_body_and_status() -> None:
    client, recorder = _client(lambda r: httpx.Response(201, json=[{"id": 1}]))

    result = await client.accounts()

    assert result.success is True
    assert result.data == [{"id": 1}]
    assert result.status == 201
    assert result.error is None

    request = recorder.requests[0]
    assert request.method == "GET"
    assert str(request.url) == f"{BASE}/user/accounts"
    assert request.headers["x-api-key"] == "test-token"
    assert request.headers["content-type"] == "application/json"
    assert request.headers["accept"] == "application/json"


@pytest.mark.asyncio
async def test_error_status_uses_server_message() -> None:
    client, _ = _client(lambda r: httpx.Response(403, json={"message": "Forbidden token"}))

    result = await client.accounts()

    assert result.success is False
    assert result.data is None
    assert result.error == "Forbidden token"
    assert result.status == 403


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"detail": "no message key"}),
        httpx.Response(502, text="<html>Bad gateway</html>"),
        httpx.Response(404),
    ],
)
async def test_error_status_without_message_uses_placeholder(response) -> None:
    client, _ = _client(lambda r: response)

    result = await client.accounts()

    assert result.success is False
    assert result.error == "API error"
    assert result.status == response.status_code


@pytest.mark.asyncio
async def test_transport_error_has_no_status() -> None:
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    client, _ = _client(boom)

    result = await client.accounts()

    assert result.success is False
    assert result.error == "Connection refused"
    assert result.status is None


@pytest.mark.asyncio
async def test_exception_with_response_prefers_its_status_and_message() -> None:
    def boom(request: httpx.Request) -> httpx.Response:
        response = httpx.Response(503, json={"message": "Maintenance"}, request=request)
        raise httpx.HTTPStatusError("Server error", request=request, response=response)

    client, _ = _client(boom)

    result = await client.accounts()

    assert result.success is False
    assert result.error == "Maintenance"
    assert result.status == 503


@pytest.mark.asyncio
async def test_unserialisable_body_becomes_failure() -> None:
    client, recorder = _client()
    client.set_db_id("5")

    result = await client.update_db_fields({"bad": object()})

    assert result.success is False
    assert result.error
    assert recorder.requests == []


# ---------------------------------------------------------------------------
# Timeouts, overrides & verbose logging
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_default_and_per_call_timeout() -> None:
    client, recorder = _client(timeout_ms=60000)

    await client.accounts()
    await client.request("GET", "/user/accounts", timeout_ms=5000, headers={"X-Trace": "abc"})

    assert recorder.requests[0].extensions["timeout"]["read"] == 60.0
    assert recorder.requests[1].extensions["timeout"]["read"] == 5.0
    assert recorder.requests[1].headers["x-trace"] == "abc"
    assert recorder.requests[1].headers["x-api-key"] == "test-token"


@pytest.mark.asyncio
async def test_base_url_override() -> None:
    client, recorder = _client(base_url="https://staging.example.com/api.php/")

    await client.dbs(7)

    assert str(recorder.requests[0].url) == "https://staging.example.com/api.php/accounts/7/dbs"


@pytest.mark.asyncio
async def test_verbose_logs_url_but_not_token(caplog) -> None:
    caplog.set_level(logging.INFO, logger="fdx_client.client")
    client, _ = _client(api_token="very-secret-token", verbose=True)

    await client.accounts()

    assert f"Full API URL: {BASE}/user/accounts" in caplog.text
    assert "API Key: [Set]" in caplog.text
    assert "very-secret-token" not in caplog.text


@pytest.mark.asyncio
async def test_quiet_by_default(caplog) -> None:
    caplog.set_level(logging.INFO, logger="fdx_client.client")
    client, _ = _client()

    await client.accounts()

    assert "Full API URL" not in caplog.text


# ---------------------------------------------------------------------------
# Active database precondition
# ---------------------------------------------------------------------------


DB_SCOPED_CALLS = [
    ("ftp_accounts", ()),
    ("create_ftp_accounts", ({},)),
    ("imports", ()),
    ("create_import", ({"name": "x"},)),
    ("update_import", (1, {"name": "x"})),
    ("update_import_schedule", (1, Schedule("*", "*", "0"))),
    ("run_import", (1,)),
    ("exports", ()),
    ("create_export", ({"name": "x"},)),
    ("update_export", (1, {"name": "x"})),
    ("schedule_export", (1, Schedule("*", "*", "0"))),
    ("run_export", (1,)),
    ("transformers", ()),
    ("create_transformer", ({"field_name": "x"},)),
    ("update_transformer", (1, {"field_name": "x"})),
    ("update_db_fields", ({"field": "x"},)),
    ("join_imports", ()),
    ("create_join_import", ({"name": "x"},)),
    ("feed_build", (1,)),
    ("cancel_build", (1,)),
    ("apply_automate_build_template", (1, "template")),
]


@pytest.mark.asyncio
@pytest.mark.parametrize("method_name,args", DB_SCOPED_CALLS)
async def test_db_scoped_calls_need_active_db(method_name, args) -> None:
    client, recorder = _client()

    result = await getattr(client, method_name)(*args)

    assert result.success is False
    assert result.error == DB_ID_REQUIRED
    assert result.status is None
    assert recorder.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize("cleared", [None, ""])
async def test_clearing_db_id_blocks_scoped_calls(cleared) -> None:
    client, recorder = _client(db_id="5")

    client.set_db_id(cleared)
    result = await client.imports()

    assert client.get_db_id() is None
    assert result.success is False
    assert result.error == DB_ID_REQUIRED
    assert recorder.requests == []


# ---------------------------------------------------------------------------
# Paths & payloads
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "call,method,path",
    [
        (lambda c: c.imports(), "GET", "/dbs/9/imports"),
        (lambda c: c.update_import(3, {"name": "x"}), "PUT", "/dbs/9/imports/3"),
        (lambda c: c.update_import_schedule(3, Schedule("*", "1", "0")), "PUT", "/dbs/9/imports/3/schedule"),
        (lambda c: c.run_import(3), "POST", "/dbs/9/imports/3/run"),
        (lambda c: c.schedule_export(4, Schedule("*", "1", "0")), "POST", "/dbs/9/exports/4/schedule"),
        (lambda c: c.run_export(4), "POST", "/dbs/9/exports/4/run"),
        (lambda c: c.update_transformer(5, {"x": 1}), "PUT", "/dbs/9/transformers/5"),
        (lambda c: c.feed_build(6), "GET", "/dbs/9/builds/6"),
        (lambda c: c.cancel_build(6), "POST", "/dbs/9/builds/6/cancel"),
        (lambda c: c.join_imports(), "GET", "/dbs/9/join_imports"),
        (lambda c: c.ftp_accounts(), "GET", "/dbs/9/ftp"),
        (lambda c: c.delete_db(11), "DELETE", "/dbs/11"),
        (lambda c: c.db_fields(11), "GET", "/dbs/11/fields"),
        (lambda c: c.delete_db_field(11, 12), "DELETE", "/dbs/11/fields/12"),
        (lambda c: c.groups(2), "GET", "/accounts/2/groups"),
        (lambda c: c.vault(), "GET", "/vault"),
        (lambda c: c.delete_vault(8), "DELETE", "/vault/8"),
    ],
)
async def test_paths(call, method, path) -> None:
    client, recorder = _client(db_id="9")

    result = await call(client)

    assert result.success is True
    assert recorder.requests[0].method == method
    assert str(recorder.requests[0].url) == f"{BASE}{path}"


@pytest.mark.asyncio
async def test_request_bodies() -> None:
    client, recorder = _client()

    await client.invite_primary_user(10, "owner@example.com")
    await client.login("user", "pw", "token-name")
    await client.create_bigcommerce_account("BC-42")
    await client.move_db_into_new_db_group(77, "BigCommerce")
    await client.move_db_to_group(GroupMovePayload(db_id=77, group_id=5, group_name="BC-42"))
    await client.add_db_vault_entry(
        77, VaultEntry(name="bc_credentials", expiration="2030-01-01", credentials="{}")
    )

    bodies = [(str(r.url), json.loads(r.content)) for r in recorder.requests]
    assert bodies[0] == (
        f"{BASE}/accounts/10/user_account_permissions",
        {"permissions": "primary", "username": "owner@example.com"},
    )
    assert bodies[1] == (
        f"{BASE}/login",
        {"username": "user", "password": "pw", "method": "token", "name": "token-name"},
    )
    assert bodies[2] == (f"{BASE}/bigcommerce/account", {"name": "BC-42"})
    assert bodies[3] == (
        f"{BASE}/dbs/77/move_db_to_db_group",
        {"source_db_group_id": 0, "target_db_group_id": -1, "target_db_group_name": "BigCommerce"},
    )
    assert bodies[4] == (f"{BASE}/groups/5/dbs", {"db_id": 77, "group_id": 5, "group_name": "BC-42"})
    assert bodies[5] == (
        f"{BASE}/dbs/77/vault",
        {
            "name": "bc_credentials",
            "expiration": "2030-01-01",
            "credentials_type": "none",
            "credentials": "{}",
        },
    )
