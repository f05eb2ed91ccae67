from __future__ import annotations

import logging

from fastapi import APIRouter
from starlette.responses import JSONResponse

from classpages.core.config import AppConfig

router = APIRouter(prefix="/api/v1/health", tags=["health"])

log = logging.getLogger("classpages.health")


@router.get("/live")
def liveness():
    return {"status": "alive"}


@router.get("/ready")
def readiness():
    """
    Ready when the catalog directory exists and the settings file location
    is writable.
    """
    cfg = AppConfig.from_env()
    problems: list[str] = []

    if not cfg.catalog_root.is_dir():
        problems.append(f"missing_catalog_root:{cfg.catalog_root}")

    settings_dir = cfg.settings_path.parent
    try:
        settings_dir.mkdir(parents=True, exist_ok=True)
        marker = settings_dir / ".ready_check.tmp"
        marker.write_text("ok", encoding="utf-8")
        marker.unlink()
    except OSError as e:
        problems.append(f"settings_not_writable:{settings_dir} err={type(e).__name__}")

    if problems:
        log.warning("not ready: %s", problems)
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "problems": problems},
        )

    return {"status": "ready"}
