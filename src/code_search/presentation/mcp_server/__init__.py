"""
Code Search MCP Server

This module provides a Model Context Protocol (MCP) server for federated code search.

Usage as standalone server:
    python -m code_search.presentation.mcp_server

Or in mcp.json:
    {
        "servers": {
            "code-search": {
                "type": "stdio",
                "command": "code-search-mcp"
            }
        }
    }

Usage for integration:
    from code_search.presentation.mcp_server import create_server, register_all_tools

    # Option 1: Create standalone server
    server = create_server()
    server.run()

    # Option 2: Register tools to existing server
    register_all_tools(your_mcp_server, container)
"""

from __future__ import annotations

from .server import create_server, main
from .tools import register_all_tools

__all__ = ["create_server", "main", "register_all_tools"]
