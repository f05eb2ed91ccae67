from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Request

from classpages.core.auth.models import Principal


class AuthError(Exception):
    pass


def _extract_bearer(request: Request) -> str:
    auth_header = (
        request.headers.get("authorization")
        or request.headers.get("x-forwarded-authorization")
    )
    if not auth_header:
        raise AuthError("Authentication required")
    if not auth_header.startswith("Bearer "):
        raise AuthError("Invalid authorization header")
    return auth_header.replace("Bearer ", "").strip()


class StaticTokenProvider:
    """
    The host hands out two opaque tokens: one for privileged callers
    (admin) and one for everybody else (viewer).
    """

    def __init__(self, *, admin_token: Optional[str] = None, viewer_token: Optional[str] = None):
        self.admin_token = admin_token if admin_token is not None else os.getenv("CLASSPAGES_STATIC_ADMIN_TOKEN")
        self.viewer_token = viewer_token if viewer_token is not None else os.getenv("CLASSPAGES_STATIC_VIEWER_TOKEN")

        if not any([self.admin_token, self.viewer_token]):
            raise AuthError(
                "Missing static token config. "
                "Set CLASSPAGES_STATIC_ADMIN_TOKEN or CLASSPAGES_STATIC_VIEWER_TOKEN."
            )

    def authenticate(self, request: Request) -> Optional[Principal]:
        token = _extract_bearer(request)

        if self.admin_token and token == self.admin_token:
            return Principal(subject="admin", roles=["admin"])
        if self.viewer_token and token == self.viewer_token:
            return Principal(subject="viewer", roles=["viewer"])

        raise AuthError("Invalid bearer token")


@dataclass(frozen=True)
class JwtConfig:
    signing_key: str
    issuer: Optional[str] = None
    audience: Optional[str] = None
    leeway_seconds: int = 30


class JwtProvider:
    """
    Host-issued HS256 tokens. The ``roles`` (or ``role``) claim decides
    whether the caller is privileged.

      CLASSPAGES_SIGNING_KEY        required
      CLASSPAGES_JWT_ISSUER         optional
      CLASSPAGES_JWT_AUDIENCE       optional
    """

    def __init__(self):
        key = (os.getenv("CLASSPAGES_SIGNING_KEY") or "").strip()
        if not key:
            raise AuthError("Missing CLASSPAGES_SIGNING_KEY for jwt mode")

        issuer = (os.getenv("CLASSPAGES_JWT_ISSUER") or "").strip() or None
        audience = (os.getenv("CLASSPAGES_JWT_AUDIENCE") or "").strip() or None
        leeway = int((os.getenv("CLASSPAGES_JWT_LEEWAY_SECONDS") or "30").strip() or "30")
        self.cfg = JwtConfig(signing_key=key, issuer=issuer, audience=audience, leeway_seconds=leeway)

    def authenticate(self, request: Request) -> Optional[Principal]:
        token = _extract_bearer(request)

        options = {
            "verify_signature": True,
            "verify_exp": True,
            "verify_iss": self.cfg.issuer is not None,
            "verify_aud": self.cfg.audience is not None,
        }

        try:
            claims = jwt.decode(
                token,
                self.cfg.signing_key,
                algorithms=["HS256"],
                issuer=self.cfg.issuer,
                audience=self.cfg.audience,
                options=options,
                leeway=self.cfg.leeway_seconds,
            )
        except jwt.PyJWTError:
            raise AuthError("Invalid bearer token")

        sub = claims.get("sub") or "user"
        roles = claims.get("roles") or claims.get("role") or ["viewer"]
        if isinstance(roles, str):
            roles = [roles]
        return Principal(subject=sub, roles=list(roles))


def get_auth_provider():
    mode = (os.getenv("CLASSPAGES_AUTH_MODE") or "static_token").strip().lower()

    if mode == "none":
        return None
    if mode == "static_token":
        return StaticTokenProvider()
    if mode == "jwt":
        return JwtProvider()

    raise AuthError(f"Unsupported auth mode: {mode}")
