# Feedonomics FDX Client
# File: models.py
# Version: v3

"""Domain models used by the Feedonomics client and service."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Union

Identifier = Union[str, int]


@dataclass(frozen=True)
class ServiceResponse:
    """Uniform outcome of every remote operation.

    A successful response never carries an error, and a failed one never
    carries data. Build instances through ``ok()`` / ``fail()``.
    """

    success: bool
    data: Any = None
    error: Optional[str] = None
    status: Optional[int] = None

    def __post_init__(self) -> None:
        if self.success and self.error is not None:
            raise ValueError("A successful response cannot carry an error.")
        if not self.success and (self.data is not None or self.error is None):
            raise ValueError("A failed response needs an error and no data.")

    @classmethod
    def ok(cls, data: Any = None, status: Optional[int] = None) -> "ServiceResponse":
        return cls(success=True, data=data, status=status)

    @classmethod
    def fail(cls, error: str, status: Optional[int] = None) -> "ServiceResponse":
        return cls(success=False, error=error, status=status)

    def with_prefix(self, label: str) -> "ServiceResponse":
        """Return a failure relabelled with ``label``; successes pass through."""
        if self.success:
            return self
        return ServiceResponse.fail(f"{label} {self.error}", status=self.status)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success}
        if self.data is not None:
            data = self.data
            if hasattr(data, "to_dict"):
                data = data.to_dict()
            out["data"] = data
        if self.error is not None:
            out["error"] = self.error
        if self.status is not None:
            out["status"] = self.status
        return out


# ---------------------------------------------------------------------------
# Remote records
# ---------------------------------------------------------------------------


@dataclass
class Account:
    """An account as returned by ``GET /user/accounts``."""

    id: Identifier
    account_name: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    # Raw JSON payload from the API, for debugging / advanced use.
    raw: Optional[Dict[str, Any]] = None

    @classmethod
    def from_payload(cls, item: Dict[str, Any]) -> "Account":
        return cls(
            id=item.get("id"),
            account_name=str(item.get("account_name") or ""),
            created_at=item.get("created_at"),
            updated_at=item.get("updated_at"),
            raw=item,
        )


@dataclass
class Database:
    id: Identifier
    name: str
    account_id: Optional[Identifier] = None
    status: Optional[str] = None

    raw: Optional[Dict[str, Any]] = None

    @classmethod
    def from_payload(cls, item: Dict[str, Any]) -> "Database":
        return cls(
            id=item.get("id"),
            name=str(item.get("name") or ""),
            account_id=item.get("account_id"),
            status=item.get("status"),
            raw=item,
        )


@dataclass
class VaultEntry:
    """A stored credentials blob. ``credentials`` is a JSON string."""

    name: str
    expiration: str
    credentials: str
    credentials_type: str = "none"
    id: Optional[Identifier] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.name,
            "expiration": self.expiration,
            "credentials_type": self.credentials_type,
            "credentials": self.credentials,
        }
        if self.id is not None:
            payload["id"] = self.id
        return payload


@dataclass
class Schedule:
    day: str
    hour: str
    minute: str

    def to_payload(self) -> Dict[str, str]:
        return {"day": self.day, "hour": self.hour, "minute": self.minute}


@dataclass
class FtpCredentials:
    host: str
    username: str
    password: str


@dataclass
class GroupMovePayload:
    db_id: Identifier
    group_id: Identifier
    group_name: str

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ExportField:
    field_name: str
    export_field_name: str
    required: str = ""


@dataclass
class Tag:
    tag: str
    value: str


@dataclass
class Transformer:
    field_name: str
    selector: str
    transformer: str
    enabled: bool = True
    export_id: List[int] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class JoinImportConfig:
    name: str
    file_name: str
    host: str
    username: str
    password: str

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ExportConfig:
    name: str
    file_name: str
    protocol: str
    host: str
    username: str
    password: str
    export_fields: List[ExportField] = field(default_factory=list)
    export_selector: Optional[str] = None
    tags: List[Tag] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        payload = asdict(self)
        if self.export_selector is None:
            payload.pop("export_selector")
        return payload


@dataclass
class ImportConfig:
    """Import definition sent to ``/dbs/{id}/imports``.

    ``preprocess_info`` is kept as a plain mapping: its ``connection_info``
    block is also what feeds the preprocessor URL builder.
    """

    name: str
    url: str = ""
    file_location: Optional[str] = None
    join_type: Optional[str] = None
    tags: Optional[Dict[str, str]] = None
    timeout: Optional[str] = None
    do_import: Optional[bool] = None
    do_notify: Optional[bool] = None
    notification_email: Optional[str] = None
    cron: Optional[str] = None
    additional_options: Optional[str] = None
    preprocess_info: Optional[Dict[str, Any]] = None

    def to_payload(self) -> Dict[str, Any]:
        payload = {k: v for k, v in asdict(self).items() if v is not None}
        # The API expects an explicit null address once notifications are set.
        if self.do_notify is not None:
            payload["notification_email"] = self.notification_email
        return payload


# ---------------------------------------------------------------------------
# Integration setup workflow
# ---------------------------------------------------------------------------


@dataclass
class IntegrationSetupParams:
    """Inputs for ``FdxService.setup_bigcommerce_integration``.

    Only the account name, store hash and access token are required. The
    remaining optional values switch their workflow step on.
    """

    account_name: str
    store_hash: str
    access_token: str
    channel_id: Optional[Identifier] = None
    store_url: Optional[str] = None
    client_id: Optional[str] = None
    user_email: Optional[str] = None
    vault_entry_name: Optional[str] = None
    db_name: Optional[str] = None
    group_name: Optional[str] = None
    import_schedule: Optional[Schedule] = None
    build_template: Optional[str] = None


@dataclass
class IntegrationSetupResult:
    account_id: Identifier
    db_id: Identifier
    import_id: Identifier
    vault_entry_id: Optional[Identifier] = None
    primary_user_email: Optional[str] = None
    group_moved: bool = False
    schedule_applied: bool = False
    build_template_applied: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
