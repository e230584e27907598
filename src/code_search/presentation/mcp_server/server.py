"""
Code Search MCP Server

A standalone Model Context Protocol server for federated code search.

Architecture:
- instructions.py: SERVER_INSTRUCTIONS for AI agents
- tools.py: tool implementations bound to the DI container
- container: DI container (dependency-injector) holding the one SearchEngine
"""

from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import TYPE_CHECKING, Any

from mcp.server.fastmcp import FastMCP

from code_search.container import ApplicationContainer

from .instructions import SERVER_INSTRUCTIONS
from .tools import register_all_tools

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

logger = logging.getLogger(__name__)

# ── Module-level DI container ──────────────────────────────────────────────
_container: ApplicationContainer | None = None


def get_container() -> ApplicationContainer:
    """Get the application DI container.

    Raises:
        RuntimeError: If ``create_server()`` has not been called yet.
    """
    if _container is None:
        msg = "Container not initialized. Call create_server() first."
        raise RuntimeError(msg)
    return _container


def _make_lifespan(
    container: ApplicationContainer,
) -> Callable[[FastMCP[Any]], AbstractAsyncContextManager[ApplicationContainer]]:
    """Create a FastMCP lifespan handler bound to *container*."""

    @asynccontextmanager
    async def _lifespan(server: FastMCP[Any]) -> AsyncIterator[ApplicationContainer]:
        logger.info("Lifecycle: startup")
        try:
            yield container
        finally:
            await container.engine().close()
            logger.info("Lifecycle: shutdown, provider clients closed")

    return _lifespan


def create_server(
    container: ApplicationContainer | None = None,
    name: str = "code-search",
) -> FastMCP:
    """
    Create and configure the Code Search MCP server.

    Args:
        container: Configured DI container. When omitted one is built from
            environment variables.
        name: Server name.

    Returns:
        Configured FastMCP server instance.
    """
    global _container
    logger.info("Initializing Code Search MCP Server...")

    if container is None:
        from code_search.settings import Settings

        container = ApplicationContainer()
        container.config.from_dict(Settings.from_env().as_config())
    _container = container

    mcp = FastMCP(
        name,
        instructions=SERVER_INSTRUCTIONS,
        lifespan=_make_lifespan(container),
    )

    stats = register_all_tools(mcp, container)
    logger.info("Tool registration complete: %s", stats)

    return mcp


def main() -> None:
    """Run the MCP server on stdio."""
    from code_search.settings import Settings
    from code_search.shared.logging_config import setup_logging

    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)

    container = ApplicationContainer()
    container.config.from_dict(settings.as_config())

    # Blocks until stdin closes
    create_server(container=container).run()


if __name__ == "__main__":
    main()
