# Feedonomics FDX Client
# File: transports/stdio_server.py
# Version: v2

"""STDIO entrypoint for the Feedonomics MCP server.

This is the script behind the ``fdx-mcp`` console command.
"""

from __future__ import annotations

import logging

from mcp.server.fastmcp import FastMCP

from ..tools import tasks


def main() -> None:
    """Synchronous entrypoint for console_scripts."""
    # stdout carries the MCP protocol; diagnostics go to stderr.
    logging.basicConfig(level=logging.INFO)

    mcp = FastMCP("fdx-mcp")
    tasks.register_tools(mcp)

    # Let FastMCP handle stdio + event loop setup.
    mcp.run()


if __name__ == "__main__":
    main()
