# Feedonomics FDX Client
# File: __init__.py
# Version: v3

"""Async Python client for the Feedonomics API."""

from __future__ import annotations

from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version
from typing import Optional

from .client import FdxClient
from .config import FdxConfig
from .models import IntegrationSetupParams, IntegrationSetupResult, Schedule, ServiceResponse
from .service import FdxService

__all__ = [
    "__version__",
    "FdxApi",
    "FdxClient",
    "FdxConfig",
    "FdxService",
    "IntegrationSetupParams",
    "IntegrationSetupResult",
    "Schedule",
    "ServiceResponse",
    "create_client",
    "create_feedonomics_api",
    "create_service",
]


def _resolve_version() -> str:
    """Resolve installed distribution version.

    Falls back to a reasonable default when running from source without an
    installed distribution.
    """
    try:
        return version("fdx-client")
    except PackageNotFoundError:
        return "0.3.0"


__version__ = _resolve_version()


@dataclass
class FdxApi:
    client: FdxClient
    service: FdxService


def create_client(config: Optional[FdxConfig]) -> FdxClient:
    """Create an ``FdxClient``; raises ``ValueError`` without a token."""
    return FdxClient(config)


def create_service(client: FdxClient) -> FdxService:
    return FdxService(client)


def create_feedonomics_api(config: Optional[FdxConfig]) -> FdxApi:
    """Create a client and a service sharing the same session."""
    client = create_client(config)
    return FdxApi(client=client, service=create_service(client))
