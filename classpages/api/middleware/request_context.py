from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from classpages.api.observability.metrics import (
    HTTP_REQUESTS_TOTAL,
    HTTP_REQUEST_DURATION_SECONDS,
    normalize_path,
)

log = logging.getLogger("classpages.request")


def _json_log(event: str, **fields):
    # Structured log in a single line; tokens are never logged.
    msg = {"event": event, **fields}
    log.info("%s", msg)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Request ID + basic structured request log (no secrets).

    Adds:
      request.state.request_id
      response header: X-Request-Id
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = rid

        start = time.time()
        resp = await call_next(request)
        dur_ms = int((time.time() - start) * 1000)

        resp.headers["X-Request-Id"] = rid

        # Prometheus metrics (low-cardinality path)
        p = normalize_path(request.url.path)
        m = request.method.upper()
        s = str(getattr(resp, "status_code", 0))
        HTTP_REQUESTS_TOTAL.labels(method=m, path=p, status=s).inc()
        HTTP_REQUEST_DURATION_SECONDS.labels(method=m, path=p).observe(dur_ms / 1000.0)

        if request.url.path.startswith("/api/"):
            user = getattr(request.state, "user", None) or {}
            _json_log(
                "request",
                request_id=rid,
                method=request.method,
                path=request.url.path,
                status_code=resp.status_code,
                duration_ms=dur_ms,
                sub=user.get("sub"),
                role=user.get("role"),
            )
        return resp
