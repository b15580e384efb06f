"""FastAPI application factory.

Lifespan
--------
On startup the app opens the single :class:`~sitecms.db.store.ContentStore`
(shared across all requests via ``request.app.state.store``), migrates it and
imports legacy flat-file content into empty tables.  On shutdown it closes the
store.

Routers
-------
    /api/posts     blog post CRUD (writes need the API key)
    /api/projects  per-language project set (bulk replace)
    /api/content   section listings (blog from the store, others from files)
    /api/krasotulya-crm  file-based case-study articles
    /api/health    liveness check
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sitecms.config import Settings, configure_logging, settings as default_settings
from sitecms.content.bootstrap import bootstrap_if_empty
from sitecms.db.store import ContentStore

from sitecms.api.routers import content as content_router
from sitecms.api.routers import krasotulya_crm as krasotulya_crm_router
from sitecms.api.routers import posts as posts_router
from sitecms.api.routers import projects as projects_router

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    cfg = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Open the store on startup and close it on shutdown."""
        configure_logging(cfg.log_level)
        store = ContentStore.open(cfg.db_path)
        bootstrap_if_empty(store, cfg)
        app.state.store = store
        try:
            yield
        finally:
            store.close()

    app = FastAPI(
        title="Site Content API",
        description=(
            "Headless content backend for the agency website: blog posts, "
            "project listings and file-based content sections."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = cfg

    # The site and the admin UI are served from other origins.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Every error body is {"error": ...}, whatever the status.
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "Invalid request")
        return JSONResponse(status_code=400, content={"error": f"{loc}: {message}" if loc else message})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("%s %s failed", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc) or "Internal Server Error"})

    @app.get("/api/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    app.include_router(posts_router.router, prefix="/api/posts", tags=["posts"])
    app.include_router(projects_router.router, prefix="/api/projects", tags=["projects"])
    app.include_router(content_router.router, prefix="/api/content", tags=["content"])
    app.include_router(
        krasotulya_crm_router.router, prefix="/api/krasotulya-crm", tags=["krasotulya-crm"]
    )

    return app


# Module-level instance used by uvicorn:
#   uvicorn sitecms.api.app:app --reload
app = create_app()
