"""
Access-control error taxonomy and its HTTP surface.

- Unauthenticated        → 303 redirect to the login page
- NoActiveOrganization   → 303 redirect to onboarding / org selection
- Forbidden              → 403
- NotFound               → 404 (absent and other-tenant rows look the same)
"""

from __future__ import annotations

from urllib.parse import quote

import structlog
from fastapi import FastAPI, Request
from starlette.responses import JSONResponse, RedirectResponse, Response

log = structlog.get_logger()


class AccessError(Exception):
    """Base class for access-control failures decided in dependencies."""

    code = "ACCESS_ERROR"
    status_code = 400
    default_message = "Access denied"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(AccessError):
    """No valid session."""

    code = "UNAUTHENTICATED"
    status_code = 303
    default_message = "Authentication required"


class NoActiveOrganization(AccessError):
    """Valid session, but no tenant selected or no membership in it."""

    code = "NO_ACTIVE_ORGANIZATION"
    status_code = 303
    default_message = "No active organization"


class Forbidden(AccessError):
    """Role insufficient for the requested action."""

    code = "FORBIDDEN"
    status_code = 403
    default_message = "Forbidden"


class NotFound(AccessError):
    """Entity absent or owned by another organization."""

    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


def _error_body(exc: AccessError) -> dict:
    return {
        "error": {
            "code": exc.code,
            "message": exc.message,
            "status": exc.status_code,
        }
    }


def install_exception_handlers(app: FastAPI, *, login_path: str, onboarding_path: str) -> None:
    """Register handlers mapping the access taxonomy onto HTTP responses."""

    @app.exception_handler(Unauthenticated)
    async def _unauthenticated(request: Request, exc: Unauthenticated) -> Response:
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        log.info("access.unauthenticated", path=request.url.path)
        return RedirectResponse(
            f"{login_path}?redirect={quote(target, safe='')}", status_code=303
        )

    @app.exception_handler(NoActiveOrganization)
    async def _no_active_org(request: Request, exc: NoActiveOrganization) -> Response:
        log.info("access.no_active_org", path=request.url.path)
        return RedirectResponse(onboarding_path, status_code=303)

    @app.exception_handler(Forbidden)
    async def _forbidden(request: Request, exc: Forbidden) -> Response:
        log.warning("access.forbidden", path=request.url.path, reason=exc.message)
        return JSONResponse(status_code=403, content=_error_body(exc))

    @app.exception_handler(NotFound)
    async def _not_found(request: Request, exc: NotFound) -> Response:
        return JSONResponse(status_code=404, content=_error_body(exc))
