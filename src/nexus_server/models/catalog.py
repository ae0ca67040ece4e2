"""Catalog models: the flat, serializable list of discovered operations.

The persisted form is the only contract between the crawler and downstream
consumers (search tooling, transports, generators)::

    {"services": [{"namespace": ..., "method": ..., "description": ...,
                   "inputs": [{"name": ..., "type": ...}],
                   "outputs": [{"name": ..., "type": ...}]}]}

Unknown fields are ignored on load.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, Field, model_validator

from ..naming import normalize

if TYPE_CHECKING:
    from ..config import NexusConfig

logger = structlog.get_logger(__name__)

OperationKey = tuple[str, str]


class ParamEntry(BaseModel):
    """One named, typed input or output slot."""

    name: str
    type: str

    model_config = {"extra": "ignore"}


class OperationEntry(BaseModel):
    """One discovered operation."""

    namespace: str = ""
    method: str
    description: str = ""
    inputs: list[ParamEntry] = Field(default_factory=list)
    outputs: list[ParamEntry] = Field(default_factory=list)

    model_config = {"extra": "ignore"}

    @property
    def key(self) -> OperationKey:
        return (self.namespace, self.method)

    @property
    def operation_id(self) -> str:
        return f"{self.namespace}.{self.method}"


@dataclass(frozen=True)
class SearchResult:
    namespace: str
    method: str
    matched_param: str


class Catalog(BaseModel):
    """Ordered collection of operations keyed by ``(namespace, method)``."""

    services: list[OperationEntry] = Field(default_factory=list)

    model_config = {"extra": "ignore"}

    @model_validator(mode="after")
    def _reject_duplicates(self) -> "Catalog":
        seen: set[OperationKey] = set()
        for op in self.services:
            if op.key in seen:
                raise ValueError(f"duplicate operation {op.operation_id}")
            seen.add(op.key)
        return self

    # ------------------------------------------------------------------
    # Mutation (crawl time only)
    # ------------------------------------------------------------------

    def add(self, op: OperationEntry) -> bool:
        """Append *op* unless its key is already present (first one wins)."""
        existing = self.get(op.namespace, op.method)
        if existing is not None:
            logger.warning(
                "Duplicate operation ignored",
                operation=op.operation_id,
            )
            return False
        self.services.append(op)
        return True

    def extend(self, other: "Catalog") -> list[OperationEntry]:
        """Add every operation of *other*. Returns the accepted entries."""
        return [op for op in other.services if self.add(op)]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, namespace: str, method: str) -> OperationEntry | None:
        for op in self.services:
            if op.namespace == namespace and op.method == method:
                return op
        return None

    @property
    def operation_count(self) -> int:
        return len(self.services)

    def namespaces(self) -> dict[str, int]:
        """Return {namespace: operation_count}, sorted by namespace."""
        counts: dict[str, int] = {}
        for op in self.services:
            counts[op.namespace] = counts.get(op.namespace, 0) + 1
        return dict(sorted(counts.items()))

    def search_by_param(self, query: str) -> list[SearchResult]:
        """Find operations taking a parameter named like *query*.

        Matching ignores case and separators, so ``userId``, ``UserID`` and
        ``user_id`` all find the same operations.
        """
        wanted = normalize(query)
        results: list[SearchResult] = []
        for op in self.services:
            for param in op.inputs:
                if normalize(param.name) == wanted:
                    results.append(
                        SearchResult(
                            namespace=op.namespace,
                            method=op.method,
                            matched_param=param.name,
                        )
                    )
                    break
        return results

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2) + "\n", encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "Catalog":
        return cls.model_validate_json(path.read_text(encoding="utf-8"))


def persist_catalog(catalog: Catalog, config: "NexusConfig") -> list[Path]:
    """Write the local catalog and, when enabled, the global copy."""
    written = [catalog.save(config.catalog_path)]
    if config.write_global_catalog:
        try:
            written.append(catalog.save(config.global_catalog_path))
        except OSError as e:
            logger.warning(
                "Global catalog not written",
                path=str(config.global_catalog_path),
                error=str(e),
            )
    logger.info(
        "Catalog persisted",
        paths=[str(p) for p in written],
        operation_count=catalog.operation_count,
    )
    return written
