"""
Zelus API Server

Entry point for the FastAPI application.
"""

from __future__ import annotations

from typing import Optional

import redis.asyncio as redis
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from starlette.responses import JSONResponse

from app.core.config import Settings, get_settings
from app.core.database import Database
from app.core.errors import install_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import (
    CSRFMiddleware,
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
)
from app.core.redis import close_redis, create_redis
from app.core.sessions import SessionStore
from app.api.v1 import router as api_v1_router
from app.api.v1.auth import router as auth_router
from app.services.audit import AuditDispatcher

log = structlog.get_logger()


def create_app(
    settings: Optional[Settings] = None,
    *,
    redis_client: Optional[redis.Redis] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Every shared resource (engine, Redis client, session store, audit
    dispatcher) is built here and hung off ``app.state``.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Zelus",
        description="Multi-tenant condominium management.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    db = Database(settings.database_url, echo=settings.db_echo)
    redis_client = redis_client if redis_client is not None else create_redis(settings.redis_url)
    app.state.settings = settings
    app.state.db = db
    app.state.redis = redis_client
    app.state.session_store = SessionStore(redis_client, settings.session_max_age)
    app.state.audit = AuditDispatcher(db)

    # Middleware (last added is outermost)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CSRFMiddleware,
        session_cookie=settings.session_cookie_name,
        csrf_cookie=settings.csrf_cookie_name,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-CSRF-Token", "X-Request-ID"],
    )
    app.add_middleware(RequestContextMiddleware)

    install_exception_handlers(
        app,
        login_path=settings.login_path,
        onboarding_path=settings.onboarding_path,
    )

    # Auth routes (not org-scoped)
    app.include_router(auth_router, prefix="/auth", tags=["Authentication"])

    # API routes
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Liveness check: the process is up and serving."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check(request: Request):
        """Readiness check: database and Redis must answer."""
        checks = {}
        try:
            async with request.app.state.db.session() as session:
                await session.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except Exception as exc:
            log.warning("ready.database_failed", error=str(exc))
            checks["database"] = "error"
        try:
            await request.app.state.redis.ping()
            checks["redis"] = "ok"
        except Exception as exc:
            log.warning("ready.redis_failed", error=str(exc))
            checks["redis"] = "error"

        if all(v == "ok" for v in checks.values()):
            return {"status": "ready", "checks": checks}
        return JSONResponse(status_code=503, content={"status": "unavailable", "checks": checks})

    @app.on_event("startup")
    async def on_startup():
        log.info("zelus.starting", debug=settings.debug)
        if settings.debug:
            await db.init_db()

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("zelus.shutting_down")
        await app.state.audit.drain()
        await db.dispose()
        await close_redis(redis_client)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(app, host=_settings.host, port=_settings.port)
