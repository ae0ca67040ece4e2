"""Command line entry points: build, list, search and serve the catalog."""

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError

from .config import NexusConfig
from .discovery.crawler import CatalogCrawler
from .models.catalog import Catalog, persist_catalog
from .server import async_main, configure_logging

app = typer.Typer(
    name="nexus",
    help="Crawl operation libraries into a catalog and serve them.",
    no_args_is_help=True,
)

CatalogOption = Annotated[
    Optional[Path],
    typer.Option(
        "--catalog",
        help="Path to catalog.json (default: local, then ~/.nexus/catalog.json)",
    ),
]


def _load_catalog(config: NexusConfig, explicit: Optional[Path]) -> Catalog:
    path = config.resolve_catalog_path(explicit)
    try:
        return Catalog.load(path)
    except OSError as exc:
        typer.echo(f"Error reading catalog: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    except ValidationError as exc:
        typer.echo(f"Error parsing catalog: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def build(
    root: Annotated[Path, typer.Argument(help="Library root directory")] = Path("."),
    namespace: Annotated[
        Optional[str],
        typer.Option("--namespace", "-n", help="Root namespace (default: directory name)"),
    ] = None,
    output: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="Catalog output path")
    ] = None,
    write_global: Annotated[
        bool, typer.Option("--global/--no-global", help="Also update ~/.nexus/catalog.json")
    ] = True,
) -> None:
    """Crawl ROOT and write the catalog."""
    configure_logging()
    overrides: dict = {"library_root": root, "write_global_catalog": write_global}
    if namespace:
        overrides["root_namespace"] = namespace
    if output:
        overrides["catalog_path"] = output
    config = NexusConfig(**overrides)

    crawler = CatalogCrawler(descriptor_name=config.descriptor_name)
    result = crawler.crawl(config.library_root, config.namespace)
    written = persist_catalog(result.catalog, config)

    typer.echo(
        f"Cataloged {result.catalog.operation_count} operations "
        f"under '{config.namespace}'"
    )
    for path in written:
        typer.echo(f"Catalog written to: {path}")
    if result.failed:
        typer.echo(f"Domains skipped after extraction errors: {len(result.failed)}")


@app.command("list")
def list_services(catalog: CatalogOption = None) -> None:
    """List every cataloged operation."""
    loaded = _load_catalog(NexusConfig(), catalog)
    typer.echo("Available Services:")
    for op in loaded.services:
        typer.echo(f"- {op.operation_id}: {op.description}")


@app.command("search-param")
def search_param(
    name: Annotated[str, typer.Argument(help="Parameter name (snake, camel or Pascal case)")],
    catalog: CatalogOption = None,
) -> None:
    """Find operations taking a parameter named like NAME."""
    loaded = _load_catalog(NexusConfig(), catalog)
    results = loaded.search_by_param(name)
    if not results:
        typer.echo("No services found with that parameter.")
        return
    typer.echo(f"Found {len(results)} services with parameter '{name}':")
    for res in results:
        typer.echo(
            f"- {res.namespace}.{res.method} (Found matching param: {res.matched_param})"
        )


@app.command()
def serve() -> None:
    """Run the MCP server over stdio (configured via NEXUS_* variables)."""
    asyncio.run(async_main())


@app.command("serve-http")
def serve_http() -> None:
    """Run the HTTP dispatch server (configured via NEXUS_* variables)."""
    from .http_app import serve as serve_app

    serve_app()


if __name__ == "__main__":
    app()
