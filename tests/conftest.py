"""Shared fixtures for tests."""

import json
from pathlib import Path

import pytest

from nexus_server.discovery.crawler import CatalogCrawler, CrawlResult
from nexus_server.discovery.dispatcher import DispatchGenerator, OperationHandler

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def library_root() -> Path:
    """The offline sample library tree."""
    return FIXTURES_DIR / "libreria-a"


@pytest.fixture
def crawl_result(library_root) -> CrawlResult:
    return CatalogCrawler().crawl(library_root, "libreria-a")


@pytest.fixture
def handlers(crawl_result) -> dict[str, OperationHandler]:
    return DispatchGenerator().generate(crawl_result.catalog, crawl_result.signatures)


@pytest.fixture
def make_tree(tmp_path):
    """Write a library tree from ``{relative_path: content}``.

    Dict contents are written as JSON (descriptors), strings verbatim.
    """

    def _make(layout: dict) -> Path:
        root = tmp_path / "lib"
        for rel, content in layout.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, dict):
                path.write_text(json.dumps(content))
            else:
                path.write_text(content)
        root.mkdir(exist_ok=True)
        return root

    return _make
