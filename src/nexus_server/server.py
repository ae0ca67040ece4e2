"""Nexus MCP Server: exposes crawled library operations as MCP tools."""

import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog
from mcp import types
from mcp.server import Server
from mcp.server.models import InitializationOptions
from mcp.server.stdio import stdio_server
from mcp.types import Tool

from .config import NexusConfig
from .discovery.crawler import CatalogCrawler, CrawlResult
from .discovery.dispatcher import DispatchGenerator, OperationHandler
from .discovery.meta_tools import META_TOOL_NAMES, MetaTools
from .discovery.registry import OperationRegistry
from .errors import NexusError, OperationFailed, OperationNotFound
from .models.catalog import Catalog

logger = structlog.get_logger(__name__)


@dataclass
class Discovery:
    """A crawl plus the handlers generated from it."""

    crawl: CrawlResult
    handlers: Dict[str, OperationHandler]

    @property
    def catalog(self) -> Catalog:
        return self.crawl.catalog


def discover_operations(config: NexusConfig) -> Discovery:
    """Crawl the configured library and generate its dispatch handlers."""
    crawler = CatalogCrawler(descriptor_name=config.descriptor_name)
    crawl = crawler.crawl(config.library_root, config.namespace)
    generator = DispatchGenerator(wrap_result=config.wrap_result)
    handlers = generator.generate(crawl.catalog, crawl.signatures)
    return Discovery(crawl=crawl, handlers=handlers)


class NexusMCPServer:
    """Nexus MCP Server with descriptor-driven operation discovery."""

    def __init__(self, config: Optional[NexusConfig] = None):
        self.config = config or NexusConfig()
        self.server = Server("nexus-mcp-server")

        # Discovery components
        self.catalog = Catalog()
        self.registry = OperationRegistry()
        self.meta_tools = MetaTools(self.config)
        self.meta_tools.set_callbacks(
            refresh_fn=self._discover_operations,
            get_catalog_fn=lambda: self.catalog,
        )

        self._discovery_done = False

        # Register MCP handlers
        self._register_handlers()

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def _discover_operations(self) -> int:
        """Crawl the library tree and populate the registry. Returns operation count."""
        try:
            discovery = await asyncio.to_thread(discover_operations, self.config)
        except Exception as e:
            logger.warning(
                "Operation discovery failed, serving meta tools only", error=str(e)
            )
            return 0

        self.catalog = discovery.catalog
        count = self.registry.load(discovery.handlers)
        self._discovery_done = True
        logger.info("Operation discovery complete", operation_count=count)

        # Notify MCP clients that the tool list changed
        try:
            await self.server.request_context.session.send_tool_list_changed()
        except LookupError:
            logger.debug("No active session to notify")

        return count

    # ------------------------------------------------------------------
    # MCP handlers
    # ------------------------------------------------------------------

    def _register_handlers(self) -> None:
        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            # Lazy discovery on first call
            if not self._discovery_done:
                await self._discover_operations()

            tools = self.meta_tools.get_tools() + self.registry.get_mcp_tools()
            logger.info("list_tools", count=len(tools))
            return tools

        @self.server.call_tool()
        async def call_tool(name: str, arguments: Dict[str, Any]) -> list[types.TextContent]:
            logger.info("call_tool", tool=name)
            try:
                text = await self.call(name, arguments)
            except NexusError as e:
                # Raised errors reach the client as an isError result
                logger.warning("Tool call failed", tool=name, error=str(e))
                raise
            except Exception as e:
                logger.error("Unexpected error", error=str(e), tool=name, exc_info=True)
                raise
            return [types.TextContent(type="text", text=text)]

    async def call(self, name: str, arguments: Optional[Dict[str, Any]]) -> str:
        """Run a meta tool or a discovered operation and return JSON text.

        Raises :class:`OperationNotFound` for unknown names and
        :class:`OperationFailed` when the operation answers with an error.
        """
        if name in META_TOOL_NAMES:
            return await self.meta_tools.call_tool(name, arguments or {})

        if not self._discovery_done:
            await self._discover_operations()

        handler = self.registry.get(name)
        if handler is None:
            raise OperationNotFound(name)

        response = await handler.handle({"params": arguments or {}})
        if not response.ok:
            raise OperationFailed(name, response.error or "", response.status_code)
        return json.dumps(response.body, indent=2, default=str)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> None:
        logger.info("Starting Nexus MCP server", library_root=str(self.config.library_root))
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                InitializationOptions(
                    server_name="nexus-mcp-server",
                    server_version="0.3.0",
                    capabilities=types.ServerCapabilities(
                        tools=types.ToolsCapability(listChanged=True),
                    ),
                ),
            )


# ------------------------------------------------------------------
# Entry points
# ------------------------------------------------------------------


def configure_logging(level: int = logging.INFO) -> None:
    """Route structlog through stdlib logging and render JSON to stderr."""
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


async def async_main(config: Optional[NexusConfig] = None) -> None:
    configure_logging()

    try:
        server = NexusMCPServer(config)
        await server.run()
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
    except Exception as e:
        logger.error("Server error", error=str(e), exc_info=True)
        sys.exit(1)


def main() -> None:
    """Synchronous entry point for console script."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
