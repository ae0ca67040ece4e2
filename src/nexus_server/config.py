"""Runtime configuration for the crawler, the transports and the SDK client."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

CATALOG_FILENAME = "catalog.json"


class NexusConfig(BaseSettings):
    """Configuration loaded from ``NEXUS_*`` environment variables."""

    library_root: Path = Field(
        default=Path("."), description="Root directory of the library to crawl"
    )
    root_namespace: Optional[str] = Field(
        default=None,
        description="Namespace of the library root (defaults to the directory name)",
    )
    descriptor_name: str = Field(
        default="nexus.json", description="File name of per-directory domain descriptors"
    )
    catalog_path: Path = Field(
        default=Path(CATALOG_FILENAME), description="Where the local catalog is written"
    )
    global_catalog_dir: Path = Field(
        default_factory=lambda: Path.home() / ".nexus",
        description="Directory of the user-wide catalog",
    )
    write_global_catalog: bool = Field(
        default=True, description="Also persist the catalog to the global directory"
    )
    wrap_result: bool = Field(
        default=True, description='Wrap successful results as {"result": value}'
    )
    server_url: str = Field(
        default="http://localhost:8080", description="Base URL used by the SDK client"
    )
    http_host: str = Field(default="127.0.0.1", description="HTTP bind address")
    http_port: int = Field(default=8080, description="HTTP bind port", ge=1, le=65535)
    timeout: int = Field(default=30, description="SDK request timeout in seconds", ge=1)

    model_config = {"env_prefix": "NEXUS_", "case_sensitive": False}

    @property
    def namespace(self) -> str:
        """The root namespace, falling back to the library directory name."""
        if self.root_namespace:
            return self.root_namespace
        return self.library_root.resolve().name

    @property
    def global_catalog_path(self) -> Path:
        return self.global_catalog_dir / CATALOG_FILENAME

    def resolve_catalog_path(self, explicit: Optional[Path] = None) -> Path:
        """Pick the catalog to read: explicit, then local, then global.

        Falls back to the local path even when it does not exist so callers
        get a meaningful "file not found" error.
        """
        if explicit is not None:
            return explicit
        if self.catalog_path.exists():
            return self.catalog_path
        if self.global_catalog_path.exists():
            return self.global_catalog_path
        return self.catalog_path
