# Feedonomics FDX Client
# File: config.py
# Version: v2

"""Configuration for the Feedonomics API client."""

from __future__ import annotations

from dataclasses import dataclass
import os

DEFAULT_BASE_URL = "https://meta.feedonomics.com/api.php"
DEFAULT_IMPORT_URL = (
    "https://preprocess.proxy.feedonomics.com/preprocess/run_preprocess.php"
)
DEFAULT_VAULT_ENTRY_NAME = "bc_credentials"
DEFAULT_TIMEOUT_MS = 60000


def _parse_bool_env(name: str, default: bool = False) -> bool:
    """Parse a boolean-like environment variable.

    Accepts 1/0, true/false, yes/no, on/off (case-insensitive).
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


def _parse_int_env(
    name: str,
    default: int,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    """Parse an int environment variable with clamping and safe fallback."""
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        value = int(default)
    else:
        try:
            value = int(str(raw).strip())
        except ValueError:
            value = int(default)

    if min_value is not None and value < min_value:
        value = min_value
    if max_value is not None and value > max_value:
        value = max_value

    return value


@dataclass
class FdxConfig:
    """Settings for one client session.

    The client never reads the environment itself. Use ``from_env()`` at the
    edge of the application (scripts, the MCP server) and pass the result in.
    """

    api_token: str | None
    db_id: str | None = None
    base_url: str = DEFAULT_BASE_URL
    import_url: str = DEFAULT_IMPORT_URL
    vault_entry_name: str = DEFAULT_VAULT_ENTRY_NAME
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    verbose: bool = False

    @property
    def timeout_seconds(self) -> float:
        return float(self.timeout_ms) / 1000.0

    @classmethod
    def from_env(cls) -> "FdxConfig":
        """Create configuration from environment variables."""
        api_token = os.getenv("FEEDONOMICS_API_TOKEN")
        db_id = os.getenv("FEEDONOMICS_DB_ID") or None

        base_url = os.getenv("FEEDONOMICS_BASE_API_URL") or DEFAULT_BASE_URL
        import_url = os.getenv("FEEDONOMICS_IMPORT_URL") or DEFAULT_IMPORT_URL
        vault_entry_name = (
            os.getenv("FEEDONOMICS_VAULT_ENTRY_NAME") or DEFAULT_VAULT_ENTRY_NAME
        )

        timeout_ms = _parse_int_env(
            "FEEDONOMICS_TIMEOUT_MS",
            default=DEFAULT_TIMEOUT_MS,
            min_value=1,
            max_value=600000,
        )
        verbose = _parse_bool_env("FEEDONOMICS_VERBOSE", default=False)

        return cls(
            api_token=api_token,
            db_id=db_id,
            base_url=base_url,
            import_url=import_url,
            vault_entry_name=vault_entry_name,
            timeout_ms=timeout_ms,
            verbose=verbose,
        )
