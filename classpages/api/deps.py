from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request

from classpages.core.aggregation.pipeline import ClassPagesService, ServiceContext
from classpages.core.catalog.providers import DirectoryCatalogProvider
from classpages.core.config import AppConfig
from classpages.core.settings.gateway import SettingsPersistenceGateway
from classpages.core.settings.store import JsonFileKeyValueStore

log = logging.getLogger("classpages.api")


def build_service(config: Optional[AppConfig] = None) -> ClassPagesService:
    cfg = config or AppConfig.from_env()
    provider = DirectoryCatalogProvider(cfg.catalog_root)
    gateway = SettingsPersistenceGateway(JsonFileKeyValueStore(cfg.settings_path))
    log.info(
        "service wired env=%s catalogs=%s settings=%s",
        cfg.env,
        cfg.catalog_root,
        cfg.settings_path,
    )
    return ClassPagesService(
        ServiceContext(
            provider=provider,
            gateway=gateway,
            default_subclass_label=cfg.default_subclass_label,
        )
    )


def get_service(request: Request) -> ClassPagesService:
    """
    One service per app, built on first use from the environment.
    Tests swap it via ``app.dependency_overrides[get_service]``.
    """
    svc = getattr(request.app.state, "service", None)
    if svc is None:
        svc = build_service()
        request.app.state.service = svc
    return svc
