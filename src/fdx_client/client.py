# Feedonomics FDX Client
# File: client.py
# Version: v7
"""Low-level client for the Feedonomics REST API.

Every public coroutine issues at most one HTTP request and returns a
``ServiceResponse``. Nothing here raises once the client is constructed:

- 2xx responses become ``ServiceResponse.ok(body, status)``
- other statuses become ``ServiceResponse.fail(message, status)``
- transport errors become ``ServiceResponse.fail(str(exc))``

Operations under ``/dbs/{db_id}`` that do not take an explicit database id
use the session's active database (see ``set_db_id``) and fail locally,
without a request, when it is not set.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from .config import FdxConfig
from .models import (
    ExportConfig,
    GroupMovePayload,
    Identifier,
    ImportConfig,
    JoinImportConfig,
    Schedule,
    ServiceResponse,
    Transformer,
    VaultEntry,
)
from .preprocessor import build_preprocessor_url

logger = logging.getLogger(__name__)

DB_ID_REQUIRED = "Database ID is required. Please set it using setDbId() first."


def _payload(data: Any) -> Any:
    """Turn request models into JSON-ready dicts; pass plain data through."""
    if hasattr(data, "to_payload"):
        return data.to_payload()
    return data


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_from_response(response: httpx.Response) -> ServiceResponse:
    body = _parse_body(response)
    message = body.get("message") if isinstance(body, dict) else None
    return ServiceResponse.fail(message or "API error", status=response.status_code)


class FdxClient:
    """Wrapper around the Feedonomics account, database and feed endpoints."""

    def __init__(
        self,
        config: Optional[FdxConfig],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if config is None:
            raise ValueError("Config is required")
        if not config.api_token:
            raise ValueError("API key is required")

        self.config = config
        self._api_token = config.api_token
        self._db_id = config.db_id or None
        self._base_url = (config.base_url or "").rstrip("/")
        self._verbose = bool(config.verbose)

        # Tests inject httpx.MockTransport here.
        self._transport = transport

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    @property
    def db_id(self) -> Optional[str]:
        return self._db_id

    def set_db_id(self, db_id: Optional[Identifier]) -> None:
        """Set the active database used by database-scoped operations.

        ``None`` or an empty string clears it.
        """
        self._db_id = str(db_id) if db_id not in (None, "") else None

    def get_db_id(self) -> Optional[str]:
        return self._db_id

    def get_connection_details(self) -> Dict[str, Any]:
        """Connection details that are safe to print (no token)."""
        return {
            "base_url": self._base_url,
            "api_key_set": "[Set]" if self._api_token else "[Not Set]",
            "verbose": self._verbose,
        }

    def _require_db_id(self) -> Optional[ServiceResponse]:
        if not self._db_id:
            return ServiceResponse.fail(DB_ID_REQUIRED)
        return None

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _log_verbose(self, url: str) -> None:
        if self._verbose:
            logger.info("Full API URL: %s", url)
            logger.info("API Key: %s", "[Set]" if self._api_token else "[Not Set]")

    async def request(
        self,
        method: str,
        path: str,
        data: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout_ms: Optional[int] = None,
    ) -> ServiceResponse:
        """Send one request and normalise the outcome.

        ``path`` is relative to the configured base URL. ``headers`` and
        ``timeout_ms`` override the session defaults for this call only.
        """
        url = f"{self._base_url}{path}"
        self._log_verbose(url)

        request_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "x-api-key": self._api_token,
        }
        if headers:
            request_headers.update(headers)

        timeout = (
            float(timeout_ms) / 1000.0
            if timeout_ms is not None
            else self.config.timeout_seconds
        )

        try:
            async with httpx.AsyncClient(
                timeout=timeout, transport=self._transport
            ) as http_client:
                response = await http_client.request(
                    method,
                    url,
                    headers=request_headers,
                    json=_payload(data) if data is not None else None,
                )
        except httpx.HTTPStatusError as exc:
            result = _error_from_response(exc.response)
            logger.warning("Feedonomics API error on %s %s: %s", method, path, result.error)
            return result
        except Exception as exc:  # noqa: BLE001
            logger.warning("Feedonomics request %s %s failed: %s", method, path, exc)
            return ServiceResponse.fail(str(exc) or "Network error")

        if 200 <= response.status_code < 300:
            return ServiceResponse.ok(_parse_body(response), status=response.status_code)

        result = _error_from_response(response)
        logger.warning(
            "Feedonomics API error on %s %s (HTTP %s): %s",
            method,
            path,
            response.status_code,
            result.error,
        )
        return result

    # ------------------------------------------------------------------
    # Users & authentication
    # ------------------------------------------------------------------

    async def invite_primary_user(self, account_id: Identifier, email: str) -> ServiceResponse:
        return await self.request(
            "POST",
            f"/accounts/{account_id}/user_account_permissions",
            {"permissions": "primary", "username": email},
        )

    async def login(self, username: str, password: str, name: str) -> ServiceResponse:
        """Generate an API token for a user (``POST /login``)."""
        return await self.request(
            "POST",
            "/login",
            {"username": username, "password": password, "method": "token", "name": name},
        )

    async def create_bigcommerce_account(self, name: str) -> ServiceResponse:
        return await self.request("POST", "/bigcommerce/account", {"name": name})

    # ------------------------------------------------------------------
    # Accounts & databases
    # ------------------------------------------------------------------

    async def accounts(self) -> ServiceResponse:
        return await self.request("GET", "/user/accounts")

    async def dbs(self, account_id: Identifier) -> ServiceResponse:
        return await self.request("GET", f"/accounts/{account_id}/dbs")

    async def create_db(self, account_id: Identifier, db_name: str) -> ServiceResponse:
        return await self.request("POST", f"/accounts/{account_id}/dbs", {"name": db_name})

    async def delete_db(self, db_id: Identifier) -> ServiceResponse:
        return await self.request("DELETE", f"/dbs/{db_id}")

    async def db_fields(self, db_id: Identifier) -> ServiceResponse:
        return await self.request("GET", f"/dbs/{db_id}/fields")

    async def delete_db_field(self, db_id: Identifier, field_id: Identifier) -> ServiceResponse:
        return await self.request("DELETE", f"/dbs/{db_id}/fields/{field_id}")

    async def update_db_fields(self, data: Any) -> ServiceResponse:
        """Update fields of the active database."""
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request("PUT", f"/dbs/{self._db_id}/fields", data)

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    async def groups(self, account_id: Identifier) -> ServiceResponse:
        return await self.request("GET", f"/accounts/{account_id}/groups")

    async def create_group(self, group_name: str) -> ServiceResponse:
        return await self.request("POST", "/groups", {"name": group_name})

    async def move_db_to_group(self, payload: GroupMovePayload) -> ServiceResponse:
        return await self.request("POST", f"/groups/{payload.group_id}/dbs", payload)

    async def move_db_into_new_db_group(
        self, db_id: Identifier, target_group_name: str
    ) -> ServiceResponse:
        """Move a database that has no group into a new group.

        Source group 0 means "no current group" and target -1 asks the API to
        create ``target_group_name``.
        """
        return await self.move_db_from_source_to_target_db_group(
            db_id, source_group_id=0, target_group_id=-1, target_group_name=target_group_name
        )

    async def move_db_from_source_to_target_db_group(
        self,
        db_id: Identifier,
        source_group_id: int,
        target_group_id: int,
        target_group_name: str = "",
    ) -> ServiceResponse:
        return await self.request(
            "POST",
            f"/dbs/{db_id}/move_db_to_db_group",
            {
                "source_db_group_id": source_group_id,
                "target_db_group_id": target_group_id,
                "target_db_group_name": target_group_name,
            },
        )

    # ------------------------------------------------------------------
    # Vault
    # ------------------------------------------------------------------

    async def vault(self) -> ServiceResponse:
        """List vault entries; rows live under ``data.vault_rows``."""
        return await self.request("GET", "/vault")

    async def create_vault(self, entry: VaultEntry) -> ServiceResponse:
        return await self.request("POST", "/vault", entry)

    async def update_vault(self, vault_id: Identifier, entry: VaultEntry) -> ServiceResponse:
        return await self.request("PUT", f"/vault/{vault_id}", entry)

    async def delete_vault(self, vault_id: Identifier) -> ServiceResponse:
        return await self.request("DELETE", f"/vault/{vault_id}")

    async def add_db_vault_entry(self, db_id: Identifier, entry: VaultEntry) -> ServiceResponse:
        """Store a vault entry scoped to one database.

        The new id comes back as ``data.new_row_id``.
        """
        return await self.request("POST", f"/dbs/{db_id}/vault", entry)

    # ------------------------------------------------------------------
    # FTP
    # ------------------------------------------------------------------

    async def ftp_accounts(self) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request("GET", f"/dbs/{self._db_id}/ftp")

    async def create_ftp_accounts(self, data: Optional[Dict[str, Any]] = None) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request("POST", f"/dbs/{self._db_id}/ftp", data if data is not None else {})

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    async def imports(self) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request("GET", f"/dbs/{self._db_id}/imports")

    async def create_import(self, import_config: ImportConfig) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request("POST", f"/dbs/{self._db_id}/imports", import_config)

    async def update_import(
        self, import_id: Identifier, import_config: ImportConfig
    ) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request(
            "PUT", f"/dbs/{self._db_id}/imports/{import_id}", import_config
        )

    async def update_import_schedule(
        self, import_id: Identifier, schedule: Schedule
    ) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request(
            "PUT", f"/dbs/{self._db_id}/imports/{import_id}/schedule", schedule
        )

    async def run_import(self, import_id: Identifier) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request("POST", f"/dbs/{self._db_id}/imports/{import_id}/run", {})

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    async def exports(self) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request("GET", f"/dbs/{self._db_id}/exports")

    async def create_export(self, export_config: ExportConfig) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request("POST", f"/dbs/{self._db_id}/exports", export_config)

    async def update_export(
        self, export_id: Identifier, export_config: ExportConfig
    ) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request(
            "PUT", f"/dbs/{self._db_id}/exports/{export_id}", export_config
        )

    async def schedule_export(self, export_id: Identifier, schedule: Schedule) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request(
            "POST", f"/dbs/{self._db_id}/exports/{export_id}/schedule", schedule
        )

    async def run_export(self, export_id: Identifier) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request("POST", f"/dbs/{self._db_id}/exports/{export_id}/run", {})

    # ------------------------------------------------------------------
    # Transformers & join imports
    # ------------------------------------------------------------------

    async def transformers(self) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request("GET", f"/dbs/{self._db_id}/transformers")

    async def create_transformer(self, transformer: Transformer) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request("POST", f"/dbs/{self._db_id}/transformers", transformer)

    async def update_transformer(
        self, transformer_id: Identifier, transformer: Transformer
    ) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request(
            "PUT", f"/dbs/{self._db_id}/transformers/{transformer_id}", transformer
        )

    async def join_imports(self) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request("GET", f"/dbs/{self._db_id}/join_imports")

    async def create_join_import(self, join_import_config: JoinImportConfig) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request(
            "POST", f"/dbs/{self._db_id}/join_imports", join_import_config
        )

    # ------------------------------------------------------------------
    # Feed builds
    # ------------------------------------------------------------------

    async def feed_build(self, build_id: Identifier) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request("GET", f"/dbs/{self._db_id}/builds/{build_id}")

    async def cancel_build(self, build_id: Identifier) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request("POST", f"/dbs/{self._db_id}/builds/{build_id}/cancel")

    async def apply_automate_build_template(
        self, import_id: Identifier, template_name: str
    ) -> ServiceResponse:
        missing = self._require_db_id()
        if missing:
            return missing
        return await self.request(
            "POST",
            f"/dbs/{self._db_id}/apply_automate_build_template",
            {"import_id": import_id, "template_name": template_name},
        )

    # ------------------------------------------------------------------
    # Preprocessor URL
    # ------------------------------------------------------------------

    def generate_bigcommerce_preprocessor_url(self, params: Mapping[str, Any]) -> str:
        """Build the preprocessor URL from ``connection_info`` / ``file_info``."""
        return build_preprocessor_url(
            params.get("connection_info") or {},
            params.get("file_info"),
            base_url=self.config.import_url,
        )


__all__: List[str] = ["FdxClient", "DB_ID_REQUIRED"]
