from __future__ import annotations

import re

from prometheus_client import Counter, Histogram


def normalize_path(path: str) -> str:
    """Reduce high-cardinality paths for metrics labels."""
    p = path or "/"

    # Per-class and per-family settings paths
    p = re.sub(r"^(/api/v1/settings/overrides)/[^/]+$", r"\1/:identifier", p)
    p = re.sub(r"^(/api/v1/settings/sources)/[^/]+$", r"\1/:record_type", p)
    # ints
    p = re.sub(r"/\d+", "/:id", p)

    return p


HTTP_REQUESTS_TOTAL = Counter(
    "classpages_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "classpages_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

AUTHZ_DECISIONS_TOTAL = Counter(
    "classpages_authz_decisions_total",
    "Authorization decisions",
    ["decision", "required_role", "actual_role", "method", "path"],
)
