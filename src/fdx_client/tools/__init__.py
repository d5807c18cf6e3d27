# Feedonomics FDX Client
# File: tools/__init__.py
# Version: v1

"""MCP tools exposing Feedonomics operations."""

from __future__ import annotations

from . import tasks

__all__ = ["tasks"]
