"""
FastAPI Application
===================

Builds the HTTP application over the shared services. The services are
created and closed by the server process; the app only borrows them.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from html2image_mcp.config.logging import get_logger
from html2image_mcp.mcp_server.server import Html2ImageServices

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Starting FastAPI application")
    try:
        yield
    finally:
        logger.info("Shutting down FastAPI application")


def get_services(request: Request) -> Html2ImageServices:
    """Dependency returning the services the app was built with."""
    return request.app.state.services


def create_app(services: Html2ImageServices) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        services: Shared services used by every route

    Returns:
        Configured FastAPI application
    """
    settings = services.settings
    app = FastAPI(
        title="HTML to Image MCP Server",
        description="Render HTML, URLs and local files to images over MCP",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_hosts,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next) -> Any:  # type: ignore
        """Add request ID to all requests."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """General exception handler for unexpected errors."""
        request_id = getattr(request.state, "request_id", None)
        logger.error(
            "Unhandled exception", exception=str(exc), request_id=request_id, exc_info=True
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "details": {"exception": str(exc)} if settings.debug else None,
                "request_id": request_id,
            },
        )

    from html2image_mcp.api.routes.health import router as health_router
    from html2image_mcp.api.routes.rpc import router as rpc_router

    app.include_router(health_router)
    app.include_router(rpc_router)

    if settings.sse_enabled:
        from html2image_mcp.api.routes.sse import router as sse_router

        app.include_router(sse_router)

    settings.images_dir.mkdir(parents=True, exist_ok=True)
    app.mount(
        settings.images_url_prefix,
        StaticFiles(directory=settings.images_dir),
        name="images",
    )

    return app
