# Feedonomics FDX Client
# File: tools/tasks.py
# Version: v4
#
# NOTE: This module is the composition root for the MCP server. It is the
# only place that reads configuration from the environment; the client and
# service receive an explicit FdxConfig.

from __future__ import annotations

import time
from typing import Any, Dict, Optional

from ..client import FdxClient
from ..config import FdxConfig
from ..models import Account, Database, IntegrationSetupParams, Schedule
from ..preprocessor import build_preprocessor_url
from ..service import FdxService


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _make_error(
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Small, LLM-friendly error shape."""
    err: Dict[str, Any] = {"code": code, "message": message}
    if details:
        err["details"] = details
    return err


def _make_service(cfg: Optional[FdxConfig] = None) -> FdxService:
    """Create an FdxService from environment variables.

    Callers should prefer invoking this with *no arguments* so tests can
    replace it with a no-arg lambda.
    """
    cfg = cfg or FdxConfig.from_env()
    return FdxService(FdxClient(cfg))


def _service_or_error() -> tuple[Optional[FdxService], Optional[Dict[str, Any]]]:
    try:
        return _make_service(), None
    except ValueError as exc:
        return None, {"success": False, "error": _make_error("CONFIG_ERROR", str(exc))}


# ---------------------------------------------------------------------------
# Core async tasks (library-style)
# ---------------------------------------------------------------------------


async def verify_token() -> Dict[str, Any]:
    """Check the API token by listing accounts (read-only)."""
    started = time.time()
    service, error = _service_or_error()
    if error:
        return {**error, "valid": False}

    result = await service.client.accounts()
    rows = result.data if result.success and isinstance(result.data, list) else []
    accounts = [Account.from_payload(a) for a in rows if isinstance(a, dict)]

    out: Dict[str, Any] = {
        "valid": result.success,
        "connection": service.client.get_connection_details(),
        "account_count": len(accounts),
        "accounts": [{"id": a.id, "account_name": a.account_name} for a in accounts],
        "elapsed_ms": int((time.time() - started) * 1000),
    }
    if not result.success:
        out["error"] = _make_error(
            "BACKEND_ERROR",
            result.error or "Unknown error",
            {"status": result.status} if result.status is not None else None,
        )
    return out


async def list_accounts() -> Dict[str, Any]:
    service, error = _service_or_error()
    if error:
        return error
    return (await service.retrieve_accounts()).to_dict()


async def list_databases(account_id: str) -> Dict[str, Any]:
    service, error = _service_or_error()
    if error:
        return error
    result = await service.client.dbs(account_id)
    if not result.success:
        return result.to_dict()

    rows = result.data if isinstance(result.data, list) else []
    databases = [Database.from_payload(d) for d in rows if isinstance(d, dict)]
    return {
        "success": True,
        "account_id": account_id,
        "databases": [
            {"id": d.id, "name": d.name, "status": d.status} for d in databases
        ],
    }


async def get_or_create_account(store_id: str) -> Dict[str, Any]:
    service, error = _service_or_error()
    if error:
        return error
    return (await service.get_or_create_account(store_id)).to_dict()


async def setup_bigcommerce_integration(
    account_name: str,
    store_hash: str,
    access_token: str,
    channel_id: Optional[str] = None,
    client_id: Optional[str] = None,
    store_url: Optional[str] = None,
    user_email: Optional[str] = None,
    db_name: Optional[str] = None,
    group_name: Optional[str] = None,
    vault_entry_name: Optional[str] = None,
    schedule_day: Optional[str] = None,
    schedule_hour: Optional[str] = None,
    schedule_minute: Optional[str] = None,
    build_template: Optional[str] = None,
) -> Dict[str, Any]:
    service, error = _service_or_error()
    if error:
        return error

    schedule = None
    if schedule_day or schedule_hour or schedule_minute:
        schedule = Schedule(
            day=schedule_day or "*",
            hour=schedule_hour or "*",
            minute=schedule_minute or "0",
        )

    params = IntegrationSetupParams(
        account_name=account_name,
        store_hash=store_hash,
        access_token=access_token,
        channel_id=channel_id,
        client_id=client_id,
        store_url=store_url,
        user_email=user_email,
        db_name=db_name,
        group_name=group_name,
        vault_entry_name=vault_entry_name,
        import_schedule=schedule,
        build_template=build_template,
    )
    return (await service.setup_bigcommerce_integration(params)).to_dict()


async def preprocessor_url(
    connection_info: Dict[str, Any],
    file_info: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build a preprocessor URL without calling the API."""
    cfg = FdxConfig.from_env()
    return {"url": build_preprocessor_url(connection_info, file_info, base_url=cfg.import_url)}


# ---------------------------------------------------------------------------
# MCP tool registration
# ---------------------------------------------------------------------------


def register_tools(server: Any) -> None:
    """Register MCP tools on an MCP Server-like instance."""
    if server is None or not hasattr(server, "tool"):
        raise ValueError(
            "register_tools(server) expects an MCP Server-like object that exposes a .tool() decorator."
        )

    @server.tool(name="fdx_verify_token", description="Check that the Feedonomics API token works.")
    async def mcp_verify_token() -> Dict[str, Any]:
        return await verify_token()

    @server.tool(name="fdx_list_accounts", description="List Feedonomics accounts keyed by account name.")
    async def mcp_list_accounts() -> Dict[str, Any]:
        return await list_accounts()

    @server.tool(name="fdx_list_databases", description="List the databases of a Feedonomics account.")
    async def mcp_list_databases(account_id: str) -> Dict[str, Any]:
        return await list_databases(account_id=account_id)

    @server.tool(
        name="fdx_get_or_create_account",
        description="Find the BC-<store id> account or create it.",
    )
    async def mcp_get_or_create_account(store_id: str) -> Dict[str, Any]:
        return await get_or_create_account(store_id=store_id)

    @server.tool(
        name="fdx_setup_bigcommerce_integration",
        description=(
            "Create account, database, vault entry and import for a BigCommerce store; "
            "optionally invite a user, group the database, schedule the import and apply a build template."
        ),
    )
    async def mcp_setup_bigcommerce_integration(
        account_name: str,
        store_hash: str,
        access_token: str,
        channel_id: Optional[str] = None,
        client_id: Optional[str] = None,
        store_url: Optional[str] = None,
        user_email: Optional[str] = None,
        db_name: Optional[str] = None,
        group_name: Optional[str] = None,
        vault_entry_name: Optional[str] = None,
        schedule_day: Optional[str] = None,
        schedule_hour: Optional[str] = None,
        schedule_minute: Optional[str] = None,
        build_template: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await setup_bigcommerce_integration(
            account_name=account_name,
            store_hash=store_hash,
            access_token=access_token,
            channel_id=channel_id,
            client_id=client_id,
            store_url=store_url,
            user_email=user_email,
            db_name=db_name,
            group_name=group_name,
            vault_entry_name=vault_entry_name,
            schedule_day=schedule_day,
            schedule_hour=schedule_hour,
            schedule_minute=schedule_minute,
            build_template=build_template,
        )

    @server.tool(
        name="fdx_preprocessor_url",
        description="Build a BigCommerce preprocessor URL from connection_info / file_info.",
    )
    async def mcp_preprocessor_url(
        connection_info: Dict[str, Any],
        file_info: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return await preprocessor_url(connection_info=connection_info, file_info=file_info)
