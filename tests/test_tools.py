# Feedonomics FDX Client
# File: tests/test_tools.py
# Version: v1

"""Tests for the MCP-facing helpers in tools.tasks.

``_make_service`` is patched so no test talks to the real Feedonomics API.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List

import pytest

from fdx_client.models import ServiceResponse as R
from fdx_client.service import FdxService
from fdx_client.tools import tasks


def _run(coro):
    """Helper to run async coroutines in plain pytest tests."""
    return asyncio.run(coro)


class DummyServer:
    """Minimal duck-typed MCP server that records registered tool names."""

    def __init__(self) -> None:
        self.names: List[str] = []

    def tool(self, *args, **kwargs):
        def decorator(fn):
            self.names.append(kwargs["name"])
            return fn

        return decorator


def test_register_tools_exposes_every_tool() -> None:
    server = DummyServer()

    tasks.register_tools(server)

    assert server.names == [
        "fdx_verify_token",
        "fdx_list_accounts",
        "fdx_list_databases",
        "fdx_get_or_create_account",
        "fdx_setup_bigcommerce_integration",
        "fdx_preprocessor_url",
    ]


def test_register_tools_rejects_non_server() -> None:
    with pytest.raises(ValueError):
        tasks.register_tools(object())


def test_missing_token_is_a_config_error(monkeypatch) -> None:
    monkeypatch.delenv("FEEDONOMICS_API_TOKEN", raising=False)

    result = _run(tasks.list_accounts())

    assert result["success"] is False
    assert result["error"]["code"] == "CONFIG_ERROR"
    assert result["error"]["message"] == "API key is required"


def test_verify_token_summarises_accounts(monkeypatch, fake_client) -> None:
    client = fake_client(
        {"accounts": R.ok([{"id": 1, "account_name": "BC-1"}, {"id": 2, "account_name": "BC-2"}])}
    )
    # Synchronous on the real client.
    client.get_connection_details = lambda: {"api_key_set": "[Set]"}
    monkeypatch.setattr(tasks, "_make_service", lambda: FdxService(client))

    result = _run(tasks.verify_token())

    assert result["valid"] is True
    assert result["account_count"] == 2
    assert result["accounts"][1] == {"id": 2, "account_name": "BC-2"}
    assert result["connection"] == {"api_key_set": "[Set]"}
    assert "error" not in result


def test_verify_token_reports_backend_error(monkeypatch, fake_client) -> None:
    client = fake_client({"accounts": R.fail("Unauthorized", status=401)})
    client.get_connection_details = lambda: {}
    monkeypatch.setattr(tasks, "_make_service", lambda: FdxService(client))

    result = _run(tasks.verify_token())

    assert result["valid"] is False
    assert result["account_count"] == 0
    assert result["error"] == {
        "code": "BACKEND_ERROR",
        "message": "Unauthorized",
        "details": {"status": 401},
    }


def test_list_databases_maps_rows(monkeypatch, fake_client) -> None:
    client = fake_client(
        {"dbs": R.ok([{"id": 7, "name": "Main", "status": "active", "extra": 1}])}
    )
    monkeypatch.setattr(tasks, "_make_service", lambda: FdxService(client))

    result = _run(tasks.list_databases("10"))

    assert result == {
        "success": True,
        "account_id": "10",
        "databases": [{"id": 7, "name": "Main", "status": "active"}],
    }
    assert client.args_of("dbs") == ("10",)


def test_setup_tool_builds_schedule(monkeypatch) -> None:
    captured: Dict[str, Any] = {}

    class _Service:
        async def setup_bigcommerce_integration(self, params):
            captured["params"] = params
            return R.fail("Failed to create account: nope", status=409)

    monkeypatch.setattr(tasks, "_make_service", lambda: _Service())

    result = _run(
        tasks.setup_bigcommerce_integration(
            account_name="BC-1", store_hash="abc", access_token="t", schedule_hour="*/4"
        )
    )

    assert result == {"success": False, "error": "Failed to create account: nope", "status": 409}
    schedule = captured["params"].import_schedule
    assert schedule.to_payload() == {"day": "*", "hour": "*/4", "minute": "0"}


def test_setup_tool_without_schedule(monkeypatch) -> None:
    captured: Dict[str, Any] = {}

    class _Service:
        async def setup_bigcommerce_integration(self, params):
            captured["params"] = params
            return R.ok({"account_id": "1"})

    monkeypatch.setattr(tasks, "_make_service", lambda: _Service())

    result = _run(tasks.setup_bigcommerce_integration("BC-1", "abc", "t"))

    assert result == {"success": True, "data": {"account_id": "1"}}
    assert captured["params"].import_schedule is None


def test_preprocessor_url_tool_uses_configured_import_url(monkeypatch) -> None:
    monkeypatch.setenv("FEEDONOMICS_IMPORT_URL", "https://pre.example/run.php")

    result = _run(tasks.preprocessor_url({"store_hash": "abc"}, {"request_type": "get"}))

    assert result["url"].startswith("https://pre.example/run.php?connection_info%5Bclient%5D=")
    assert "file_info%5Brequest_type%5D=get" in result["url"]
