# Feedonomics FDX Client
# File: service.py
# Version: v5

"""Higher-level Feedonomics operations built on ``FdxClient``.

The service never talks HTTP directly. Each method chains one or more client
calls, stops at the first failure and prefixes the error with the stage that
failed (``"Error getting imports: ..."``).

The "ensure" helpers look resources up by a fixed name before creating them
so repeated calls do not create duplicates:

- accounts: ``BC-<store id>``; found records are returned as-is
- groups: first group whose name starts with ``BC-``; returned as-is
- main import / export: exact name; found records are updated in place and
  the *pre-existing* record is returned
- vault entry: exact name; the update (or create) response body is returned
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from .client import FdxClient
from .models import (
    ExportConfig,
    ExportField,
    FtpCredentials,
    GroupMovePayload,
    Identifier,
    ImportConfig,
    IntegrationSetupParams,
    JoinImportConfig,
    Schedule,
    ServiceResponse,
    Tag,
    Transformer,
    VaultEntry,
)
from .workflow import run_bigcommerce_setup, vault_expiration, vault_placeholder

logger = logging.getLogger(__name__)

ACCOUNT_PREFIX = "BC-"
MAIN_IMPORT_NAME = "BigCommerceImport"
JOIN_IMPORT_NAME = "Extra Google Fields"
EXPORT_NAME = "Export Google"
LEGACY_VAULT_ENTRY_NAME = "BigCommerce Credentials"

# Google Shopping column -> Feedonomics field.
EXPORT_FIELD_MAP: Dict[str, str] = {
    "id": "id",
    "title": "title",
    "description": "description",
    "product_type": "category_ancestors",
    "link": "product_url",
    "image_link": "image_link",
    "additional_image_link": "additional_image_link_zoom",
    "condition": "condition",
    "availability": "availability",
    "price": "price_parent",
    "sale_price": "sale_price_parent",
    "brand": "brand",
    "gtin": "gtin",
    "mpn": "mpn",
    "item_group_id": "item_group_id",
    "currency": "currency",
    "storefront_url": "storefront_url",
    "country": "country",
    "language": "language",
    "product_url": "product_url",
    "weight_unit": "weight_unit",
}


def _find_by_name(items: Any, name: str) -> Optional[Dict[str, Any]]:
    if not isinstance(items, list):
        return None
    for item in items:
        if isinstance(item, dict) and item.get("name") == name:
            return item
    return None


class FdxService:
    """Composite Feedonomics workflows for BigCommerce stores."""

    def __init__(self, client: FdxClient) -> None:
        self.client = client

    @staticmethod
    def get_account_name(store_id: Identifier) -> str:
        return f"{ACCOUNT_PREFIX}{store_id}"

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def retrieve_accounts(self) -> ServiceResponse:
        """Return accounts keyed by ``account_name``."""
        result = await self.client.accounts()
        if not result.success:
            return result.with_prefix("Error getting accounts:")

        accounts: Dict[str, Any] = {}
        for account in result.data or []:
            if isinstance(account, dict) and "account_name" in account:
                # First match wins when names repeat.
                accounts.setdefault(account["account_name"], account)
        return ServiceResponse.ok(accounts)

    async def get_or_create_account(self, store_id: Identifier) -> ServiceResponse:
        account_name = self.get_account_name(store_id)
        accounts = await self.retrieve_accounts()
        if not accounts.success:
            return accounts

        account = accounts.data.get(account_name)
        if account:
            return ServiceResponse.ok(account)

        logger.info("Creating Feedonomics account %s", account_name)
        return await self.create_account(account_name)

    async def create_account(self, account_name: str) -> ServiceResponse:
        result = await self.client.create_bigcommerce_account(account_name)
        if not result.success:
            return result.with_prefix("Error creating account:")
        return ServiceResponse.ok(result.data)

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    async def find_group(self, account_id: Identifier) -> ServiceResponse:
        """First group of the account whose name starts with ``BC-``, or None."""
        result = await self.client.groups(account_id)
        if not result.success:
            return result.with_prefix("Error getting db groups:")

        for group in result.data or []:
            if isinstance(group, dict) and str(group.get("name", "")).startswith(ACCOUNT_PREFIX):
                return ServiceResponse.ok(group)
        return ServiceResponse.ok(None)

    async def get_or_create_group(
        self, account_id: Identifier, account_name: str
    ) -> ServiceResponse:
        existing = await self.find_group(account_id)
        if not existing.success or existing.data:
            return existing

        result = await self.client.create_group(account_name)
        if not result.success:
            return result.with_prefix("Error creating group:")
        return ServiceResponse.ok(result.data)

    async def move_db_to_group(
        self,
        account_id: Identifier,
        account_name: str,
        db_id: Identifier = 0,
    ) -> ServiceResponse:
        group = await self.get_or_create_group(account_id, account_name)
        if not group.success:
            return group

        group_id = group.data.get("id") if isinstance(group.data, dict) else None
        if group_id is None:
            return ServiceResponse.fail("Error moving db to group: group has no id")

        payload = GroupMovePayload(db_id=db_id, group_id=group_id, group_name=account_name)
        result = await self.client.move_db_to_group(payload)
        if not result.success:
            return result.with_prefix("Error moving db to group:")
        return ServiceResponse.ok(result.data)

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    async def create_db(self, account_id: Identifier, db_name: str) -> ServiceResponse:
        result = await self.client.create_db(account_id, db_name)
        if not result.success:
            return result.with_prefix("Error creating db:")
        return ServiceResponse.ok(result.data)

    async def delete_db(self, db_id: Identifier) -> ServiceResponse:
        result = await self.client.delete_db(db_id)
        if not result.success:
            return result.with_prefix("Error deleting db:")
        return ServiceResponse.ok(result.data)

    async def update_db_fields(self, fields: Iterable[Any]) -> ServiceResponse:
        results: List[Any] = []
        for field_data in fields:
            result = await self.client.update_db_fields(field_data)
            if not result.success:
                return result.with_prefix("Error updating db fields:")
            results.append(result.data)
        return ServiceResponse.ok(results)

    # ------------------------------------------------------------------
    # Vault
    # ------------------------------------------------------------------

    async def update_vault_entries(self, access_token: str) -> ServiceResponse:
        """Store ``access_token`` under the configured vault entry name.

        Any entry still using the legacy name is deleted first; if that
        delete fails nothing else is attempted.
        """
        vault = await self.client.vault()
        if not vault.success:
            return vault.with_prefix("Error getting vaults:")

        body = vault.data if isinstance(vault.data, dict) else {}
        entries = (body.get("data") or {}).get("vault_rows") or []

        legacy = _find_by_name(entries, LEGACY_VAULT_ENTRY_NAME)
        if legacy:
            deleted = await self.client.delete_vault(legacy.get("id"))
            if not deleted.success:
                return deleted.with_prefix("Error deleting vault:")

        entry_name = self.client.config.vault_entry_name
        payload = VaultEntry(
            name=entry_name,
            expiration=vault_expiration(),
            credentials=json.dumps({"access_token": access_token}),
        )

        existing = _find_by_name(entries, entry_name)
        if existing:
            result = await self.client.update_vault(existing.get("id"), payload)
        else:
            result = await self.client.create_vault(payload)

        if not result.success:
            return result.with_prefix("Error creating vault:")
        return ServiceResponse.ok(result.data)

    # ------------------------------------------------------------------
    # FTP
    # ------------------------------------------------------------------

    async def get_ftp_credentials(self) -> ServiceResponse:
        existing = await self.client.ftp_accounts()
        if not existing.success:
            return existing.with_prefix("Error getting credentials:")
        if existing.data:
            return ServiceResponse.ok(existing.data)

        created = await self.client.create_ftp_accounts({})
        if not created.success:
            return created.with_prefix("Error creating FTP credentials:")
        return ServiceResponse.ok(created.data)

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    async def retrieve_import(self) -> ServiceResponse:
        """The main import of the active database, or None."""
        imports = await self.client.imports()
        if not imports.success:
            return imports.with_prefix("Error getting imports:")
        return ServiceResponse.ok(_find_by_name(imports.data, MAIN_IMPORT_NAME))

    async def create_or_update_import(
        self,
        user_id: Identifier,
        store_hash: str,
        channel_id: Identifier,
        is_create: bool = True,
    ) -> ServiceResponse:
        import_config = self.build_import_config(user_id, store_hash, channel_id, is_create)

        existing = await self.retrieve_import()
        if not existing.success:
            return existing

        if existing.data:
            # Always update; the API has no "unchanged" shortcut.
            result = await self.client.update_import(existing.data.get("id"), import_config)
            if not result.success:
                return result.with_prefix("Error updating import:")
            return ServiceResponse.ok(existing.data)

        result = await self.client.create_import(import_config)
        if not result.success:
            return result.with_prefix("Error creating import:")
        return ServiceResponse.ok(result.data)

    async def update_import_schedule(
        self, import_id: Identifier, day: str, hour: str, minute: str
    ) -> ServiceResponse:
        """Set an import's cron-like schedule, e.g. ``("*", "1,2", "0")``."""
        schedule = Schedule(day=day, hour=hour, minute=minute)
        result = await self.client.update_import_schedule(import_id, schedule)
        if not result.success:
            return result.with_prefix("Error updating import schedule:")
        return ServiceResponse.ok(result.data)

    async def run_import(self, import_id: Identifier) -> ServiceResponse:
        result = await self.client.run_import(import_id)
        if not result.success:
            return result.with_prefix("Error running import:")
        return ServiceResponse.ok(result.data)

    def build_connection_info(
        self,
        user_id: Identifier,
        store_hash: str,
        channel_ids: Any,
        mode: str,
    ) -> Dict[str, Any]:
        return {
            "access_token": vault_placeholder(self.client.config.vault_entry_name),
            "client_id": user_id,
            "store_hash": store_hash,
            "store_url": f"https://store-{store_hash}.mybigcommerce.com",
            "channel_ids": channel_ids,
            "filters": {"is_visible": 1},
            "include": "products",
            "additional_parent_fields": "price,sale_price",
            "additional_variant_fields": "price,sale_price",
            "pull_sample": 1 if mode == "create" else 0,
        }

    def build_import_config(
        self,
        user_id: Identifier,
        store_hash: str,
        channel_id: Identifier,
        is_create: bool,
    ) -> ImportConfig:
        mode = "create" if is_create else "update"
        connection_info = self.build_connection_info(user_id, store_hash, [channel_id], mode)
        url = self.client.generate_bigcommerce_preprocessor_url(
            {"connection_info": connection_info, "file_info": {"request_type": "get"}}
        )

        return ImportConfig(
            name=MAIN_IMPORT_NAME,
            additional_options="google_field,category_tree",
            url=url,
            preprocess_info={"connection_info": connection_info},
            do_import=None if is_create else False,
        )

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    async def get_existing_export(self) -> ServiceResponse:
        exports = await self.client.exports()
        if not exports.success:
            return exports.with_prefix("Error getting exports:")
        return ServiceResponse.ok(_find_by_name(exports.data, EXPORT_NAME))

    async def create_or_update_export(
        self,
        ftp_credentials: FtpCredentials,
        filename: str,
        time_slot: Optional[Dict[str, str]] = None,
    ) -> ServiceResponse:
        """Ensure the Google export exists, optionally scheduling it.

        ``time_slot`` is ``{"hour": ..., "minutes": ...}``; the export then
        runs every day at that time.
        """
        current = await self.get_existing_export()
        if not current.success:
            return current.with_prefix("Getting existing export:")

        export = await self._create_or_update_export(current.data, ftp_credentials, filename)
        if not export.success:
            return export.with_prefix("Creating or updating exports:")

        if time_slot:
            return await self._schedule_export(export.data, time_slot)
        return export

    async def _create_or_update_export(
        self,
        existing: Optional[Dict[str, Any]],
        ftp_credentials: FtpCredentials,
        filename: str,
    ) -> ServiceResponse:
        export_config = self.build_export_config(ftp_credentials, filename)

        if existing:
            result = await self.client.update_export(existing.get("id"), export_config)
            if not result.success:
                return result.with_prefix("Error updating exports:")
            return ServiceResponse.ok(existing)

        result = await self.client.create_export(export_config)
        if not result.success:
            return result.with_prefix("Error creating exports:")
        return ServiceResponse.ok(result.data)

    async def _schedule_export(self, export: Any, time_slot: Dict[str, str]) -> ServiceResponse:
        schedule = Schedule(day="*", hour=time_slot["hour"], minute=time_slot["minutes"])
        export_id = export.get("id") if isinstance(export, dict) else None

        result = await self.client.schedule_export(export_id, schedule)
        if not result.success:
            return result.with_prefix("Error setting running export schedule in FDX:")
        return ServiceResponse.ok(export)

    async def run_export(self, export_id: Identifier) -> ServiceResponse:
        result = await self.client.run_export(export_id)
        if not result.success:
            return result.with_prefix("Error running export:")
        return ServiceResponse.ok(result.data)

    @staticmethod
    def build_export_config(ftp_credentials: FtpCredentials, filename: str) -> ExportConfig:
        return ExportConfig(
            name=EXPORT_NAME,
            file_name=filename,
            protocol="sftp",
            host=ftp_credentials.host,
            username=ftp_credentials.username,
            password=ftp_credentials.password,
            export_fields=[
                ExportField(field_name=field_name, export_field_name=export_name)
                for export_name, field_name in EXPORT_FIELD_MAP.items()
            ],
            export_selector="[can_export] equal 'true'",
            tags=[Tag(tag="export_template", value="google_shopping")],
        )

    # ------------------------------------------------------------------
    # Transformers & join imports
    # ------------------------------------------------------------------

    async def create_transformers(self, transformers: Iterable[Transformer]) -> ServiceResponse:
        results: List[Any] = []
        for transformer in transformers:
            result = await self.client.create_transformer(transformer)
            if not result.success:
                return result.with_prefix("Error creating transformer:")
            results.append(result.data)
        return ServiceResponse.ok(results)

    async def retrieve_join_import(self) -> ServiceResponse:
        join_imports = await self.client.join_imports()
        if not join_imports.success:
            return join_imports.with_prefix("Error getting join imports:")
        return ServiceResponse.ok(_find_by_name(join_imports.data, JOIN_IMPORT_NAME))

    async def create_join_import(
        self, ftp_credentials: FtpCredentials, file_name: str
    ) -> ServiceResponse:
        config = JoinImportConfig(
            name=JOIN_IMPORT_NAME,
            file_name=file_name,
            host=ftp_credentials.host,
            username=ftp_credentials.username,
            password=ftp_credentials.password,
        )
        result = await self.client.create_join_import(config)
        if not result.success:
            return result.with_prefix("Error creating join import:")
        return ServiceResponse.ok(result.data)

    # ------------------------------------------------------------------
    # Composite workflow
    # ------------------------------------------------------------------

    async def setup_bigcommerce_integration(
        self, params: IntegrationSetupParams
    ) -> ServiceResponse:
        """Provision account, database, vault entry and import in one go.

        See ``fdx_client.workflow`` for the individual steps.
        """
        return await run_bigcommerce_setup(self.client, params)
