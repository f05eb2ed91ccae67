from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from classpages.api.endpoints import catalog, health, pages, settings
from classpages.api.endpoints import metrics_export
from classpages.api.middleware.auth import AuthMiddleware
from classpages.api.middleware.error_shaping import SafeErrorMiddleware
from classpages.api.middleware.request_context import RequestContextMiddleware
from classpages.core.config import AppConfig
from classpages.core.navigation import NavigationError
from classpages.core.overlay import ImportDocumentError, InvalidOverrideError
from classpages.core.settings import InvalidSettingValueError, UnknownSettingError

log = logging.getLogger("classpages.api")


def _error(status_code: int, request: Request, detail: str) -> JSONResponse:
    payload = {"detail": detail}
    rid = getattr(request.state, "request_id", None)
    if rid:
        payload["request_id"] = rid
    return JSONResponse(status_code=status_code, content=payload)


def _install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ImportDocumentError)
    async def _import_document_error(request: Request, exc: ImportDocumentError):
        return _error(400, request, str(exc))

    @app.exception_handler(NavigationError)
    async def _navigation_error(request: Request, exc: NavigationError):
        return _error(400, request, str(exc))

    @app.exception_handler(UnknownSettingError)
    async def _unknown_setting(request: Request, exc: UnknownSettingError):
        return _error(404, request, f"Unknown setting: {exc.args[0] if exc.args else ''}")

    @app.exception_handler(InvalidSettingValueError)
    async def _invalid_setting(request: Request, exc: InvalidSettingValueError):
        return _error(400, request, str(exc))

    @app.exception_handler(InvalidOverrideError)
    async def _invalid_override(request: Request, exc: InvalidOverrideError):
        return _error(400, request, str(exc))


def create_app(config: Optional[AppConfig] = None, *, auth_enabled: Optional[bool] = None) -> FastAPI:
    cfg = config or AppConfig.from_env()
    app = FastAPI(
        title="Class Pages API",
        version="0.1.0",
    )

    # ------------------------------------------------------------
    # Middleware stack (ORDER MATTERS)
    # Starlette reverses add_middleware order: the LAST call is the OUTERMOST wrapper.
    # Runtime order (outermost -> innermost):
    #   SafeErrorMiddleware -> RequestContext -> Auth -> handler
    # ------------------------------------------------------------

    # Auth boundary: CLASSPAGES_AUTH_ENABLED via AppConfig unless overridden
    if auth_enabled is None:
        auth_enabled = cfg.auth_enabled
    app.add_middleware(AuthMiddleware, enabled=auth_enabled)

    # Request context (request_id + metrics increment)
    app.add_middleware(RequestContextMiddleware)

    # Outermost: catches everything the inner layers raise
    app.add_middleware(SafeErrorMiddleware)

    _install_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(metrics_export.router)
    app.include_router(pages.router)
    app.include_router(settings.router)
    app.include_router(catalog.router)

    log.info("app created env=%s auth_enabled=%s", cfg.env, auth_enabled)
    return app


app = create_app()
