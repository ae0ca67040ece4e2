"""HTTP transport: ``POST /{namespace}.{method}`` with the request envelope."""

from typing import Any, Dict, Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import NexusConfig
from .discovery.dispatcher import OperationHandler
from .errors import OperationNotFound
from .models.catalog import Catalog
from .server import configure_logging, discover_operations

logger = structlog.get_logger(__name__)


def create_app(catalog: Catalog, handlers: Dict[str, OperationHandler]) -> FastAPI:
    """Build the FastAPI app serving *handlers*."""
    app = FastAPI(title="Nexus", version="0.3.0")

    @app.get("/catalog")
    async def get_catalog() -> Dict[str, Any]:
        return catalog.model_dump()

    @app.post("/{operation_id}")
    async def dispatch(operation_id: str, request: Request) -> JSONResponse:
        handler = handlers.get(operation_id)
        if handler is None:
            error = OperationNotFound(operation_id)
            logger.warning("Unknown operation", operation=operation_id)
            return JSONResponse(status_code=404, content={"error": str(error)})

        try:
            envelope = await request.json()
        except ValueError:
            return JSONResponse(status_code=400, content={"error": "Invalid request body"})

        response = await handler.handle(envelope)
        return JSONResponse(status_code=response.status_code, content=response.body)

    return app


def build_app(config: Optional[NexusConfig] = None) -> FastAPI:
    """Crawl the configured library and return an app serving it."""
    config = config or NexusConfig()
    discovery = discover_operations(config)
    return create_app(discovery.catalog, discovery.handlers)


def serve(config: Optional[NexusConfig] = None) -> None:
    configure_logging()
    config = config or NexusConfig()
    app = build_app(config)
    logger.info("Starting Nexus HTTP server", host=config.http_host, port=config.http_port)
    uvicorn.run(app, host=config.http_host, port=config.http_port)
