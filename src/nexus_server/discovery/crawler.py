"""Walk a library tree guided by domain descriptors and build the catalog."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from ..errors import DescriptorInvalid, DescriptorMissing, ExtractionFailed
from ..models.catalog import Catalog, OperationKey
from .descriptor import DEFAULT_DESCRIPTOR_NAME, read_descriptor
from .extractor import OperationSignature, SignatureExtractor

logger = structlog.get_logger(__name__)


@dataclass
class CrawlResult:
    """Everything a crawl produces; owned by the crawl that built it."""

    catalog: Catalog = field(default_factory=Catalog)
    signatures: dict[OperationKey, OperationSignature] = field(default_factory=dict)
    pruned: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class CatalogCrawler:
    """Depth-first, pre-order walk over descriptor-declared domains."""

    def __init__(
        self,
        extractor: SignatureExtractor | None = None,
        descriptor_name: str = DEFAULT_DESCRIPTOR_NAME,
    ):
        self.extractor = extractor or SignatureExtractor()
        self.descriptor_name = descriptor_name

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def crawl(self, root_path: Path, root_namespace: str) -> CrawlResult:
        """Crawl one library rooted at *root_path* under *root_namespace*."""
        result = CrawlResult()
        self._visit(Path(root_path), root_namespace, result, visited=set())
        logger.info(
            "Catalog crawl complete",
            root=str(root_path),
            namespace=root_namespace,
            operation_count=result.catalog.operation_count,
            pruned=len(result.pruned),
            failed=len(result.failed),
        )
        return result

    def crawl_many(self, libraries: Mapping[str, Path]) -> CrawlResult:
        """Crawl several libraries (namespace -> root) into one result."""
        merged = CrawlResult()
        for namespace, root in libraries.items():
            partial = self.crawl(root, namespace)
            for op in merged.catalog.extend(partial.catalog):
                merged.signatures[op.key] = partial.signatures[op.key]
            merged.pruned.extend(partial.pruned)
            merged.failed.extend(partial.failed)
        return merged

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def _visit(
        self,
        path: Path,
        namespace: str,
        result: CrawlResult,
        visited: set[Path],
    ) -> None:
        real = path.resolve()
        if real in visited:
            logger.warning("Directory already crawled", path=str(path))
            result.pruned.append(str(path))
            return
        visited.add(real)

        try:
            descriptor = read_descriptor(path, self.descriptor_name)
        except DescriptorMissing as e:
            logger.info("No domain descriptor, pruning", path=e.path)
            result.pruned.append(str(path))
            return
        except DescriptorInvalid as e:
            logger.warning(
                "Invalid domain descriptor, pruning", path=e.path, reason=e.reason
            )
            result.pruned.append(str(path))
            return

        if descriptor.is_inert:
            logger.debug("Inert directory", path=str(path), namespace=namespace)
            return

        if descriptor.is_domain:
            self._collect(path, namespace, result)

        for child in descriptor.children:
            self._visit(path / child, f"{namespace}.{child}", result, visited)

    def _collect(self, path: Path, namespace: str, result: CrawlResult) -> None:
        try:
            extracted = self.extractor.extract(path)
        except ExtractionFailed as e:
            logger.warning(
                "Signature extraction failed, skipping domain",
                path=e.path,
                namespace=namespace,
                reason=e.reason,
            )
            result.failed.append(str(path))
            return

        accepted = 0
        for item in extracted:
            stamped = item.stamped(namespace)
            if result.catalog.add(stamped.entry):
                result.signatures[stamped.entry.key] = stamped.signature
                accepted += 1
        logger.info("Domain crawled", namespace=namespace, operation_count=accepted)
