from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles

from chirpy.api import admin
from chirpy.api.error_handling import register_exception_handlers
from chirpy.api.routes import router
from chirpy.config import Settings, get_settings
from chirpy.logging import bind_request_id, get_logger
from chirpy.service.runtime import get_runtime

logger = get_logger(__name__)

__version__ = "0.1.0"

FILESERVER_PREFIX = "/app"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the runtime on startup so storage errors surface before serving."""
    runtime = get_runtime()
    logger.info("api_started", platform=runtime.settings.platform)
    yield
    close = getattr(runtime.store, "close", None)
    if close:
        close()
    logger.info("runtime_cleanup_complete")


def _mount_fileserver(app: FastAPI, root: str) -> None:
    directory = Path(root)
    if not directory.is_dir():
        logger.warning("fileserver_root_missing", fileserver_root=str(directory))
        return
    app.mount(
        FILESERVER_PREFIX,
        StaticFiles(directory=str(directory), html=True),
        name="fileserver",
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Chirpy", version=__version__, lifespan=lifespan)

    @app.middleware("http")
    async def count_fileserver_hits(request: Request, call_next):
        path = request.url.path
        if path == FILESERVER_PREFIX or path.startswith(FILESERVER_PREFIX + "/"):
            get_runtime().hits.increment()
        return await call_next(request)

    @app.middleware("http")
    async def bind_request_context(request: Request, call_next):
        """Bind a request id to every log event emitted for this request.

        The id comes from the X-Request-ID header when the client sends one,
        otherwise a new UUID. It is echoed back in the X-Request-ID response
        header and in the envelope's ``request_id``.
        """
        request_id = bind_request_id(request.headers.get("X-Request-ID"))
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    register_exception_handlers(app)
    app.include_router(router)
    app.include_router(admin.router)
    _mount_fileserver(app, settings.fileserver_root)
    return app


app = create_app()
