from __future__ import annotations

import logging
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from classpages.api.observability.metrics import AUTHZ_DECISIONS_TOTAL, normalize_path
from classpages.core.auth.models import Principal
from classpages.core.auth.policy import required_role_for
from classpages.core.auth.provider import AuthError, get_auth_provider
from classpages.core.auth.rbac import enforce_required_role

log = logging.getLogger("classpages.auth")


def _principal_to_user(principal: Principal) -> dict:
    role = "admin" if principal.privileged else "viewer"
    return {"sub": principal.subject, "role": role, "roles": sorted(set(principal.roles or []))}


def _set_principal(request: Request, principal: Principal) -> None:
    request.state.principal = principal
    request.state.user = _principal_to_user(principal)


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Resolves every caller to admin (privileged) or viewer and applies the
    path policy to /api/v1/*.
    """

    def __init__(self, app, *, enabled: bool = True):
        super().__init__(app)
        self.enabled = enabled
        self.provider = None

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        method = request.method.upper()

        # Public health checks: always unauthenticated
        if path.startswith("/api/v1/health/"):
            _set_principal(request, Principal(subject="anonymous", roles=["viewer"]))
            return await call_next(request)

        # Auth disabled (dev-only): allow everything as admin
        if not self.enabled:
            _set_principal(request, Principal(subject="anonymous", roles=["admin"]))
            return await call_next(request)

        try:
            if self.provider is None:
                self.provider = get_auth_provider()
            principal = self.provider.authenticate(request) if self.provider else None
            _set_principal(request, principal or Principal(subject="anonymous", roles=["viewer"]))
        except AuthError as e:
            if path.startswith("/api/v1/"):
                log.info("authn deny method=%s path=%s reason=%s", method, path, str(e))
                return JSONResponse(status_code=401, content={"detail": str(e)})
            _set_principal(request, Principal(subject="anonymous", roles=["viewer"]))

        required = required_role_for(method, path)
        if required is not None:
            user_role = request.state.user.get("role")
            allowed = enforce_required_role(user_role=user_role, required_role=required)
            decision = "allow" if allowed else "deny"
            AUTHZ_DECISIONS_TOTAL.labels(
                decision=decision,
                required_role=str(required),
                actual_role=str(user_role),
                method=method,
                path=normalize_path(path),
            ).inc()
            log.info(
                "authz %s subject=%s role=%s required=%s method=%s path=%s",
                decision,
                request.state.user.get("sub"),
                user_role,
                required,
                method,
                path,
            )
            if not allowed:
                return JSONResponse(
                    status_code=403,
                    content={"detail": "Insufficient role", "required_role": required, "actual_role": user_role},
                )

        return await call_next(request)

