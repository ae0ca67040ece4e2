"""Catalog tools that are NOT discovered from libraries."""

from __future__ import annotations

import json
from typing import Any

from mcp.types import Tool

from ..config import NexusConfig

# ─── Tool definitions ────────────────────────────────────────────────

META_TOOL_DEFINITIONS: list[Tool] = [
    Tool(
        name="list_services",
        description="List every cataloged operation with its namespace and description.",
        inputSchema={
            "type": "object",
            "properties": {
                "namespace": {
                    "type": "string",
                    "description": "Only list operations under this namespace prefix",
                },
            },
        },
    ),
    Tool(
        name="search_param",
        description=(
            "Find operations that take a parameter. Matching ignores case and "
            "separators, so user_id, userId and UserID are equivalent."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "name": {
                    "type": "string",
                    "description": "Parameter name in any casing convention",
                },
            },
            "required": ["name"],
        },
    ),
    Tool(
        name="refresh_catalog",
        description=(
            "Re-crawl the library tree and rebuild the tool list. "
            "Use after libraries were added or changed."
        ),
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="get_configuration",
        description="Show the current crawl and dispatch configuration.",
        inputSchema={"type": "object", "properties": {}},
    ),
]

META_TOOL_NAMES: set[str] = {t.name for t in META_TOOL_DEFINITIONS}


class MetaTools:
    """Handles the catalog tools."""

    def __init__(self, config: NexusConfig):
        self._config = config
        # Populated by server after discovery
        self._get_catalog_fn: Any = None
        self._refresh_fn: Any = None

    def set_callbacks(
        self,
        *,
        refresh_fn: Any = None,
        get_catalog_fn: Any = None,
    ) -> None:
        """Set callbacks that the server provides after init."""
        self._refresh_fn = refresh_fn
        self._get_catalog_fn = get_catalog_fn

    @staticmethod
    def get_tools() -> list[Tool]:
        return list(META_TOOL_DEFINITIONS)

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> str:
        """Dispatch a meta tool call. Returns a text string."""
        if name == "list_services":
            return self._list_services(arguments)
        if name == "search_param":
            return self._search_param(arguments)
        if name == "refresh_catalog":
            return await self._refresh_catalog()
        if name == "get_configuration":
            return self._get_configuration()
        raise ValueError(f"Unknown meta tool: {name}")

    # ─── Handlers ──────────────────────────────────────────────────

    def _list_services(self, arguments: dict[str, Any]) -> str:
        if self._get_catalog_fn is None:
            return json.dumps({"error": "Catalog callback not set"})
        catalog = self._get_catalog_fn()
        prefix = arguments.get("namespace")
        services = [
            {
                "operation": op.operation_id,
                "description": op.description,
                "inputs": [p.model_dump() for p in op.inputs],
            }
            for op in catalog.services
            if not prefix
            or op.namespace == prefix
            or op.namespace.startswith(prefix + ".")
        ]
        return json.dumps(
            {"services": services, "total_services": len(services)}, indent=2
        )

    def _search_param(self, arguments: dict[str, Any]) -> str:
        if self._get_catalog_fn is None:
            return json.dumps({"error": "Catalog callback not set"})
        query = arguments["name"]
        results = self._get_catalog_fn().search_by_param(query)
        return json.dumps(
            {
                "query": query,
                "matches": [
                    {
                        "operation": f"{r.namespace}.{r.method}",
                        "matched_param": r.matched_param,
                    }
                    for r in results
                ],
            },
            indent=2,
        )

    async def _refresh_catalog(self) -> str:
        if self._refresh_fn is None:
            return json.dumps({"error": "Refresh callback not set"})
        count = await self._refresh_fn()
        return json.dumps({
            "success": True,
            "message": f"Refreshed catalog: {count} operations discovered",
            "operation_count": count,
        })

    def _get_configuration(self) -> str:
        return self._config.model_dump_json(indent=2)
