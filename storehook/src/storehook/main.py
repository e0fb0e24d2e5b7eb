"""FastAPI application for storehook."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storehook.config import Settings, get_settings

WEBHOOK_PATH = "/api/v1/webhooks/platform"


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Route structlog through stdlib logging at the configured level."""
    settings = settings or get_settings()
    level = logging.getLevelName(settings.app.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.app.log_format == "json"
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger().setLevel(level)


configure_logging()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database and ingestor on startup, release them on shutdown."""
    from storehook.api.dependencies import build_ingestor
    from storehook.database.connection import get_db_manager

    db_manager = get_db_manager()
    try:
        await db_manager.initialize()
    except Exception as e:
        # Deliveries fail with 500 until the database is reachable
        logger.error("Database unavailable at startup", exc_info=e)

    if getattr(app.state, "ingestor", None) is None:
        app.state.ingestor = build_ingestor(db_manager=db_manager)

    logger.info("storehook started", webhook_path=WEBHOOK_PATH)

    yield

    client = app.state.ingestor.client
    if client is not None:
        await client.close()

    try:
        await db_manager.close()
    except Exception as e:
        logger.error("Failed to dispose database engine", exc_info=e)

    logger.info("storehook stopped")


def _internal_error(exc: Exception, debug: bool) -> Dict[str, Any]:
    body: Dict[str, Any] = {"status": "error", "error": "internal"}
    if debug:
        body.update(message=str(exc), type=type(exc).__name__)
    else:
        body["message"] = "An unexpected error occurred"
    return body


def create_app(ingestor=None) -> FastAPI:
    """Build the application.

    Args:
        ingestor: Pre-built WebhookIngestor; built from settings at startup
            (or on first delivery) when omitted
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app.title,
        description=settings.app.description,
        version=settings.app.version,
        debug=settings.app.debug,
        lifespan=lifespan,
    )
    app.state.ingestor = ingestor

    @app.get("/health", tags=["system"])
    async def health_check() -> JSONResponse:
        """Report service and database status."""
        from storehook.api.schemas import HealthStatus
        from storehook.database.connection import get_db_manager

        connected = await get_db_manager().ping()
        health = HealthStatus(
            status="healthy" if connected else "degraded",
            service="storehook",
            version=settings.app.version,
            database="connected" if connected else "disconnected",
        )
        return JSONResponse(content=health.model_dump(), status_code=200 if connected else 503)

    @app.get("/", tags=["system"])
    async def root() -> JSONResponse:
        return JSONResponse(
            content={
                "message": "storehook webhook ingestion API",
                "version": settings.app.version,
                "docs_url": "/docs",
                "health_url": "/health",
                "webhook_url": WEBHOOK_PATH,
            }
        )

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            exc_info=exc,
            path=request.url.path,
            method=request.method,
        )
        return JSONResponse(status_code=500, content=_internal_error(exc, settings.app.debug))

    from storehook.api import v1_router

    app.include_router(v1_router)
    return app


app = create_app()


def main(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "storehook.main:app",
        host=host or settings.app.host,
        port=port or settings.app.port,
        reload=settings.app.reload,
        log_level=settings.app.log_level.lower(),
    )


if __name__ == "__main__":
    main()
