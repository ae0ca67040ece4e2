"""Nexus SDK client: call cataloged operations over HTTP."""

from typing import Any, Dict, Optional

import httpx
import structlog

from .config import NexusConfig
from .errors import NexusClientError
from .models.catalog import Catalog

logger = structlog.get_logger(__name__)


class NexusClient:
    """Asynchronous client for a Nexus HTTP server."""

    def __init__(
        self,
        config: Optional[NexusConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or NexusConfig()
        self._transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_client(self):
        if not self.client:
            self.client = httpx.AsyncClient(
                base_url=self.config.server_url,
                timeout=self.config.timeout,
                transport=self._transport,
            )

    async def close(self) -> None:
        if self.client:
            await self.client.aclose()
            self.client = None

    # ------------------------------------------------------------------
    # Core HTTP
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        await self._ensure_client()
        try:
            response = await self.client.request(method=method, url=path, **kwargs)
        except httpx.RequestError as e:
            logger.error("Request error", error=str(e), path=path)
            raise NexusClientError(f"Request failed: {e}")

        logger.info(
            "API request",
            method=method,
            path=path,
            status_code=response.status_code,
        )

        if response.status_code != 200:
            error_msg = f"server error: {response.status_code}"
            try:
                detail = response.json()
                if isinstance(detail, dict) and "error" in detail:
                    error_msg += f" - {detail['error']}"
            except ValueError:
                error_msg += f" - {response.text}"
            raise NexusClientError(error_msg, response.status_code)

        return response.json()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def call(
        self, namespace: str, method: str, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Invoke ``namespace.method`` and return its result value."""
        body = await self._request(
            "POST", f"/{namespace}.{method}", json={"params": params or {}}
        )
        if self.config.wrap_result and isinstance(body, dict):
            return body.get("result")
        return body

    async def get_catalog(self) -> Catalog:
        return Catalog.model_validate(await self._request("GET", "/catalog"))
