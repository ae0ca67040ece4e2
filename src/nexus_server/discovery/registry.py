"""Operation registry: filters dispatch handlers and converts them to MCP Tools."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog
from mcp.types import Tool

from ..models.catalog import OperationEntry
from .dispatcher import OperationHandler

logger = structlog.get_logger(__name__)

# Declared type text -> JSON Schema type.
_JSON_TYPES: dict[str, str] = {
    "int": "integer",
    "float": "number",
    "str": "string",
    "bool": "boolean",
    "list": "array",
    "tuple": "array",
    "dict": "object",
}


@dataclass
class RegistryConfig:
    """Filtering knobs for the operation registry."""

    include_namespaces: list[str] | None = None  # None = all
    exclude_namespaces: list[str] = field(default_factory=list)
    max_tools: int = 500


class OperationRegistry:
    """Stores dispatch handlers keyed by operation id."""

    def __init__(self, config: RegistryConfig | None = None):
        self.config = config or RegistryConfig()
        self._handlers: dict[str, OperationHandler] = {}

    # ------------------------------------------------------------------
    # Bulk load
    # ------------------------------------------------------------------

    def load(self, handlers: Mapping[str, OperationHandler]) -> int:
        """Filter *handlers* and store them. Returns count of accepted operations."""
        self._handlers = {}
        accepted = 0
        for operation_id, handler in handlers.items():
            if self._should_skip(handler.entry):
                continue
            self._handlers[operation_id] = handler
            accepted += 1
            if accepted >= self.config.max_tools:
                logger.warning("Max tools reached", max_tools=self.config.max_tools)
                break

        logger.info("Operation registry loaded", operation_count=accepted)
        return accepted

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, operation_id: str) -> OperationHandler | None:
        return self._handlers.get(operation_id)

    @property
    def operation_ids(self) -> list[str]:
        return list(self._handlers)

    @property
    def operation_count(self) -> int:
        return len(self._handlers)

    def get_namespaces(self) -> dict[str, int]:
        """Return {namespace: operation_count} for registered operations."""
        counts: dict[str, int] = {}
        for handler in self._handlers.values():
            ns = handler.entry.namespace
            counts[ns] = counts.get(ns, 0) + 1
        return dict(sorted(counts.items()))

    # ------------------------------------------------------------------
    # MCP conversion
    # ------------------------------------------------------------------

    def get_mcp_tools(self) -> list[Tool]:
        """Convert all registered operations to MCP Tool objects."""
        return [self._to_mcp_tool(h.entry) for h in self._handlers.values()]

    @classmethod
    def _to_mcp_tool(cls, entry: OperationEntry) -> Tool:
        return Tool(
            name=entry.operation_id,
            description=entry.description or f"{entry.method} in {entry.namespace}",
            inputSchema=cls._build_input_schema(entry),
        )

    @classmethod
    def _build_input_schema(cls, entry: OperationEntry) -> dict[str, Any]:
        """Build a JSON Schema ``inputSchema``; every declared input is required."""
        properties: dict[str, Any] = {}
        for param in entry.inputs:
            prop: dict[str, Any] = {"description": param.type}
            json_type = cls._json_type(param.type)
            if json_type is not None:
                prop["type"] = json_type
            properties[param.name] = prop

        result: dict[str, Any] = {"type": "object", "properties": properties}
        if entry.inputs:
            result["required"] = [p.name for p in entry.inputs]
        return result

    @staticmethod
    def _json_type(type_text: str) -> str | None:
        # list[int] -> list, typing.Dict -> dict
        base = type_text.split("[", 1)[0].rsplit(".", 1)[-1].lower()
        return _JSON_TYPES.get(base)

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------

    def _should_skip(self, entry: OperationEntry) -> bool:
        ns = entry.namespace
        if self.config.include_namespaces is not None and not any(
            _in_namespace(ns, prefix) for prefix in self.config.include_namespaces
        ):
            return True
        return any(_in_namespace(ns, prefix) for prefix in self.config.exclude_namespaces)


def _in_namespace(namespace: str, prefix: str) -> bool:
    return namespace == prefix or namespace.startswith(prefix + ".")
