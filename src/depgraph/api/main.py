"""Dependency graph API entry point.

FastAPI application factory with routers and middleware.
"""

import sys
import time
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import NoReturn

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from depgraph.common.config import get_settings
from depgraph.common.database import close_database, get_session_factory, init_database
from depgraph.common.exceptions import DepGraphError, StoreUnavailableError
from depgraph.common.health import HealthChecker
from depgraph.common.logging import bind_context, clear_context, get_logger, setup_logging
from depgraph.common.metrics import API_REQUESTS, API_REQUEST_DURATION, set_app_info
from depgraph.graph.adjacency import AdjacencyIndex
from depgraph.stores import MemoryGraphStores, build_stores

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    A failed database connection does not stop startup; it is reported
    through /health and requests fail with 503 until it recovers.
    """
    settings = get_settings()

    setup_logging(settings.logging)
    set_app_info(
        version=settings.app_version,
        environment=settings.environment,
    )

    logger.info(
        "Starting depgraph API",
        version=settings.app_version,
        environment=settings.environment,
        backend=settings.graph.backend,
    )

    db_ready = False
    if settings.graph.backend == "sql":
        result = await init_database(settings, create_tables=not settings.is_production)
        app.state.health_checker.init_error = result.error
        db_ready = result.ok
        if result.ok:
            logger.info("Database initialized", url=result.url)
        else:
            logger.warning("Serving without database", url=result.url, error=result.error)

    if settings.graph.adjacency_enabled:
        if settings.graph.backend == "memory":
            await app.state.adjacency.rebuild(app.state.memory_stores.relationships)
        elif db_ready:
            try:
                async with get_session_factory()() as session:
                    stores = build_stores(settings.graph, session=session)
                    await app.state.adjacency.rebuild(stores.relationships)
            except StoreUnavailableError as e:
                logger.warning("Adjacency index left empty", error=e.message)

    yield

    logger.info("Shutting down depgraph API")
    if settings.graph.backend == "sql":
        await close_database()
        logger.info("Database closed")


def create_app() -> FastAPI:
    """Create FastAPI application instance."""
    settings = get_settings()

    app = FastAPI(
        title="depgraph API",
        description="Network dependency graph ingestion and query API",
        version=settings.app_version,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json" if not settings.is_production else None,
        lifespan=lifespan,
    )

    app.state.health_checker = HealthChecker(
        service_name="depgraph-api",
        version=settings.app_version,
        backend=settings.graph.backend,
    )
    app.state.adjacency = AdjacencyIndex()
    app.state.memory_stores = None
    if settings.graph.backend == "memory":
        app.state.memory_stores = MemoryGraphStores.create(
            cascade_unlink=settings.graph.cascade_unlink,
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = str(uuid.uuid4())[:8]
        bind_context(request_id=request_id)

        start = time.perf_counter()
        try:
            response = await call_next(request)
            duration = time.perf_counter() - start

            API_REQUESTS.labels(
                method=request.method,
                endpoint=request.url.path,
                status=response.status_code,
            ).inc()
            API_REQUEST_DURATION.labels(
                method=request.method,
                endpoint=request.url.path,
            ).observe(duration)

            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
            )
            return response
        except Exception as e:
            duration = time.perf_counter() - start
            logger.error(
                "Request failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                duration_ms=round(duration * 1000, 2),
            )
            raise
        finally:
            clear_context()

    @app.exception_handler(DepGraphError)
    async def depgraph_exception_handler(
        request: Request,
        exc: DepGraphError,
    ) -> JSONResponse:
        logger.warning(
            "Application error",
            error_code=exc.error_code,
            message=exc.message,
            details=exc.details,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = exc.errors()
        logger.warning("Validation error", errors=errors)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": [
                    {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
                    for e in errors
                ],
            },
        )

    from depgraph.api.routers import admin, dependencies, graph

    app.include_router(admin.router)
    app.include_router(dependencies.router, prefix="/api/v1")
    app.include_router(graph.router, prefix="/api/v1")

    @app.get("/")
    async def root() -> dict:
        return {
            "name": "depgraph API",
            "version": settings.app_version,
            "docs": "/docs" if not settings.is_production else None,
        }

    return app


# Create app instance for uvicorn
app = create_app()


def run() -> NoReturn:
    """Run the API server."""
    import uvicorn

    settings = get_settings()

    try:
        uvicorn.run(
            "depgraph.api.main:app",
            host=settings.api.host,
            port=settings.api.port,
            workers=settings.api.workers if not settings.api.reload else 1,
            reload=settings.api.reload,
            log_level="info",
            access_log=False,
        )
        sys.exit(0)
    except KeyboardInterrupt:
        sys.exit(0)
    except Exception as e:
        logger.error("API failed to start", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    run()
