# Feedonomics FDX Client
# File: workflow.py
# Version: v3

"""BigCommerce integration setup as an ordered pipeline of steps.

Each step receives the context built so far and returns a ``ServiceResponse``
whose data is a dict of context updates. ``run_pipeline`` applies the
updates in order and stops at the first failure, labelling it with the
step's ``label``. Steps with an ``enabled`` predicate that returns False are
skipped entirely.

Nothing is rolled back when a later step fails: an account or database
created by an earlier step stays in Feedonomics.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from .client import FdxClient
from .models import (
    Identifier,
    ImportConfig,
    IntegrationSetupParams,
    IntegrationSetupResult,
    Schedule,
    ServiceResponse,
    VaultEntry,
)

logger = logging.getLogger(__name__)

SETUP_FAILED_PREFIX = "BigCommerce setup failed:"
SETUP_IMPORT_NAME = "BC Product Import"


def vault_placeholder(entry_name: str, key: str = "access_token") -> str:
    """Reference to a vault secret that Feedonomics substitutes at run time."""
    return f"{{{{feedonomics::vault::{entry_name}::{key}}}}}"


def vault_expiration(days: int = 365) -> str:
    """ISO date ``days`` from today (UTC)."""
    return (datetime.now(timezone.utc) + timedelta(days=days)).date().isoformat()


@dataclass(frozen=True)
class SetupContext:
    client: FdxClient
    params: IntegrationSetupParams
    account_id: Optional[Identifier] = None
    db_id: Optional[Identifier] = None
    vault_entry_id: Optional[Identifier] = None
    import_id: Optional[Identifier] = None
    group_moved: bool = False
    schedule_applied: bool = False
    build_template_applied: bool = False

    @property
    def vault_entry_name(self) -> str:
        return self.params.vault_entry_name or self.client.config.vault_entry_name

    def to_result(self) -> IntegrationSetupResult:
        return IntegrationSetupResult(
            account_id=self.account_id,
            db_id=self.db_id,
            import_id=self.import_id,
            vault_entry_id=self.vault_entry_id,
            primary_user_email=self.params.user_email,
            group_moved=self.group_moved,
            schedule_applied=self.schedule_applied,
            build_template_applied=self.build_template_applied,
        )


StepFn = Callable[[SetupContext], Awaitable[ServiceResponse]]


@dataclass(frozen=True)
class SetupStep:
    label: str
    run: StepFn
    enabled: Optional[Callable[[SetupContext], bool]] = None


async def run_pipeline(steps: Sequence[SetupStep], context: SetupContext) -> ServiceResponse:
    """Run ``steps`` in order; return the final context or the first failure."""
    for step in steps:
        if step.enabled is not None and not step.enabled(context):
            logger.debug("Skipping setup step: %s", step.label)
            continue

        result = await step.run(context)
        if not result.success:
            return ServiceResponse.fail(f"{step.label}: {result.error}", status=result.status)

        context = replace(context, **(result.data or {}))

    return ServiceResponse.ok(context)


def _id_of(result: ServiceResponse) -> Optional[Identifier]:
    return result.data.get("id") if isinstance(result.data, dict) else None


def _missing_id(result: ServiceResponse) -> ServiceResponse:
    return ServiceResponse.fail("response did not include an id", status=result.status)


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


async def _create_account(ctx: SetupContext) -> ServiceResponse:
    result = await ctx.client.create_bigcommerce_account(ctx.params.account_name)
    if not result.success:
        return result
    account_id = _id_of(result)
    if account_id is None:
        return _missing_id(result)
    return ServiceResponse.ok({"account_id": account_id})


async def _invite_user(ctx: SetupContext) -> ServiceResponse:
    result = await ctx.client.invite_primary_user(ctx.account_id, ctx.params.user_email)
    if not result.success:
        return result
    return ServiceResponse.ok({})


async def _create_database(ctx: SetupContext) -> ServiceResponse:
    db_name = ctx.params.db_name or f"BC Store {ctx.params.store_hash}"
    result = await ctx.client.create_db(ctx.account_id, db_name)
    if not result.success:
        return result
    db_id = _id_of(result)
    if db_id is None:
        return _missing_id(result)

    # Later steps are scoped to the new database.
    ctx.client.set_db_id(str(db_id))
    return ServiceResponse.ok({"db_id": db_id})


async def _move_to_group(ctx: SetupContext) -> ServiceResponse:
    result = await ctx.client.move_db_into_new_db_group(ctx.db_id, ctx.params.group_name)
    if not result.success:
        return result
    return ServiceResponse.ok({"group_moved": True})


async def _store_credentials(ctx: SetupContext) -> ServiceResponse:
    params = ctx.params
    entry = VaultEntry(
        name=ctx.vault_entry_name,
        expiration=vault_expiration(),
        credentials=json.dumps(
            {
                "access_token": params.access_token,
                "store_hash": params.store_hash,
                "client_id": params.client_id or "",
                "channel_id": params.channel_id or "",
            }
        ),
    )
    result = await ctx.client.add_db_vault_entry(ctx.db_id, entry)
    if not result.success:
        return result

    body = result.data if isinstance(result.data, dict) else {}
    inner = body.get("data") if isinstance(body.get("data"), dict) else {}
    return ServiceResponse.ok({"vault_entry_id": inner.get("new_row_id")})


def build_setup_import_config(ctx: SetupContext) -> ImportConfig:
    params = ctx.params
    connection_info: Dict[str, Any] = {
        "client": "bigcommerce",
        "protocol": "api",
        "access_token": vault_placeholder(ctx.vault_entry_name),
        "client_id": params.client_id or "",
        "include": "products,category_tree",
        "filters": {},
        "price_list": {"currencies": "", "ids": ""},
        "location_inventory": {"ids": ""},
        "store_hash": params.store_hash,
        "store_url": params.store_url
        or f"https://store-{params.store_hash}.mybigcommerce.com/",
        "show_empty_fields": "",
        "additional_image_sizes": False,
        "additional_options": "",
        "additional_parent_fields": "",
        "additional_variant_fields": "",
        "to_columns": "",
        "to_columns_keep_both": False,
    }
    file_info = {"request_type": "get", "output_compressed": True}

    url = ctx.client.generate_bigcommerce_preprocessor_url(
        {"connection_info": connection_info, "file_info": file_info}
    )

    return ImportConfig(
        name=SETUP_IMPORT_NAME,
        url=url,
        file_location="preprocess_script",
        join_type="product_feed",
        tags={"platform": "Bigcommerce"},
        timeout="1800",
        do_import=False,
        do_notify=False,
        notification_email=None,
        cron="0 * * * *",
        preprocess_info={
            "actions": [],
            "connection_info": connection_info,
            "file_info": file_info,
        },
    )


async def _create_import(ctx: SetupContext) -> ServiceResponse:
    result = await ctx.client.create_import(build_setup_import_config(ctx))
    if not result.success:
        return result
    import_id = _id_of(result)
    if import_id is None:
        return _missing_id(result)
    return ServiceResponse.ok({"import_id": import_id})


async def _schedule_import(ctx: SetupContext) -> ServiceResponse:
    requested = ctx.params.import_schedule
    schedule = Schedule(
        day=requested.day or "*",
        hour=requested.hour or "*",
        minute=requested.minute or "0",
    )
    result = await ctx.client.update_import_schedule(ctx.import_id, schedule)
    if not result.success:
        return result
    return ServiceResponse.ok({"schedule_applied": True})


async def _apply_build_template(ctx: SetupContext) -> ServiceResponse:
    result = await ctx.client.apply_automate_build_template(
        ctx.import_id, ctx.params.build_template
    )
    if not result.success:
        return result
    return ServiceResponse.ok({"build_template_applied": True})


BIGCOMMERCE_SETUP_STEPS: List[SetupStep] = [
    SetupStep("Failed to create account", _create_account),
    SetupStep("Failed to invite user", _invite_user, lambda ctx: bool(ctx.params.user_email)),
    SetupStep("Failed to create database", _create_database),
    SetupStep(
        "Failed to move database to group",
        _move_to_group,
        lambda ctx: bool(ctx.params.group_name),
    ),
    SetupStep("Failed to create vault entry", _store_credentials),
    SetupStep("Failed to create import", _create_import),
    SetupStep(
        "Failed to update import schedule",
        _schedule_import,
        lambda ctx: ctx.params.import_schedule is not None,
    ),
    SetupStep(
        "Failed to apply build template",
        _apply_build_template,
        lambda ctx: bool(ctx.params.build_template),
    ),
]


async def run_bigcommerce_setup(
    client: FdxClient, params: IntegrationSetupParams
) -> ServiceResponse:
    """Run every setup step; on success return an ``IntegrationSetupResult``.

    Step failures come back as ``"<label>: <error>"``. Exceptions raised by
    a step are caught here and reported as ``"BigCommerce setup failed: ..."``.
    """
    try:
        outcome = await run_pipeline(BIGCOMMERCE_SETUP_STEPS, SetupContext(client, params))
    except Exception as exc:  # noqa: BLE001
        logger.exception("BigCommerce setup raised")
        return ServiceResponse.fail(f"{SETUP_FAILED_PREFIX} {exc}")

    if not outcome.success:
        logger.warning("BigCommerce setup stopped: %s", outcome.error)
        return outcome

    result = outcome.data.to_result()
    logger.info(
        "BigCommerce setup complete: account=%s db=%s import=%s",
        result.account_id,
        result.db_id,
        result.import_id,
    )
    return ServiceResponse.ok(result)
