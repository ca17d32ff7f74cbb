"""
Main TaskCal FastAPI application.

Startup order: the server binds its socket, then the lifespan schedules the
store bootstrap (readiness wait, then schema creation) as a background task.
Until that task succeeds every ``/api`` route answers 503. If it fails the
server is asked to stop and the process exits with status 1.
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .api.routers.tasks_router import router as tasks_router
from .config import AppConfig
from .database import TaskStore
from .exceptions import StorageError, TaskCalError
from .logging_setup import setup_logging
from .models import HealthStatus
from .repositories import TaskRepository

logger = logging.getLogger(__name__)

BootstrapFailureHook = Callable[[BaseException], None]


def _store_state(app: FastAPI) -> str:
    if getattr(app.state, "store_ready", False):
        return "ready"
    if getattr(app.state, "bootstrap_error", None) is not None:
        return "failed"
    return "starting"


async def bootstrap_store(app: FastAPI) -> None:
    """Wait for the store, create the schema, then open the API for traffic."""
    config: AppConfig = app.state.config
    store: TaskStore = app.state.store
    try:
        await store.wait_until_ready(config.ready_max_attempts, config.ready_delay_s)
        await store.ensure_schema()
    except Exception as exc:
        logger.critical(
            "Failed to start server: %s", exc, exc_info=not isinstance(exc, StorageError)
        )
        app.state.bootstrap_error = exc
        hook: Optional[BootstrapFailureHook] = getattr(app.state, "on_bootstrap_failure", None)
        if hook is not None:
            hook(exc)
        return

    app.state.store_ready = True
    logger.info("Server running on port %s", config.port)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting TaskCal API application...")

    store = TaskStore.from_config(app.state.config)
    app.state.store = store
    app.state.repository = TaskRepository(store.session_factory)
    app.state.store_ready = False
    app.state.bootstrap_error = None
    app.state.bootstrap_task = asyncio.create_task(bootstrap_store(app))

    yield

    # Shutdown
    logger.info("Shutting down TaskCal API application...")
    bootstrap_task: asyncio.Task = app.state.bootstrap_task
    if not bootstrap_task.done():
        bootstrap_task.cancel()
        try:
            await bootstrap_task
        except asyncio.CancelledError:
            pass

    await store.dispose()
    logger.info("TaskCal API application shutdown complete")


def _register_error_handlers(app: FastAPI) -> None:
    """Render every error as ``{"error": message}``."""

    @app.exception_handler(TaskCalError)
    async def _taskcal_error(request: Request, exc: TaskCalError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else None
        if first is not None and first.get("type") == "json_invalid":
            message = "Invalid JSON body"
        elif first is not None:
            field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
            message = f"Invalid {field or 'request body'}: {first.get('msg', 'invalid value')}"
        else:
            message = "Invalid request body"
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    config = config or AppConfig()

    app = FastAPI(
        title="TaskCal API",
        description="Personal task calendar backend",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.store_ready = False
    app.state.bootstrap_error = None
    app.state.on_bootstrap_failure = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    _register_error_handlers(app)
    app.include_router(tasks_router, prefix="/api", tags=["Tasks"])

    @app.get("/health", response_model=HealthStatus)
    async def health_check() -> HealthStatus:
        return HealthStatus(status="Backend is running", store=_store_state(app))

    @app.get("/readyz")
    async def ready_check():
        state = _store_state(app)
        if state != "ready":
            return JSONResponse(
                status_code=503, content={"status": "not_ready", "deps": {"db": state}}
            )
        store: TaskStore = app.state.store
        if not await store.check_health():
            return JSONResponse(
                status_code=503, content={"status": "not_ready", "deps": {"db": "error"}}
            )
        return {"status": "ready", "deps": {"db": "ok"}, "pool": store.pool_stats()}

    @app.get("/metrics")
    async def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


def main() -> None:
    config = AppConfig()
    setup_logging(config.log_level)
    app = create_app(config)

    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=config.host,
            port=config.port,
            log_config=None,
            proxy_headers=True,
            forwarded_allow_ips="*",
        )
    )

    def _stop_server(exc: BaseException) -> None:
        server.should_exit = True

    app.state.on_bootstrap_failure = _stop_server
    server.run()

    if app.state.bootstrap_error is not None:
        sys.exit(1)


if __name__ == "__main__":
    main()
