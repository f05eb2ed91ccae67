from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _env_flag(name: str, default: str) -> bool:
    return (os.getenv(name) or default).strip().lower() in ("1", "true", "yes", "on")


def _env_path(name: str, default: Path) -> Path:
    raw = (os.getenv(name) or "").strip()
    return Path(raw).resolve() if raw else default


@dataclass(frozen=True)
class AppConfig:
    env: str = "dev"
    workspace_root: Path = PROJECT_ROOT / "workspace"
    catalog_root: Path = PROJECT_ROOT / "catalogs"
    auth_enabled: bool = True
    default_subclass_label: str = "Subclass"

    @property
    def settings_path(self) -> Path:
        return self.workspace_root / ".classpages" / "settings.json"

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            env=(os.getenv("CLASSPAGES_ENV") or "dev").strip().lower(),
            workspace_root=_env_path("CLASSPAGES_WORKSPACE_ROOT", PROJECT_ROOT / "workspace"),
            catalog_root=_env_path("CLASSPAGES_CATALOG_ROOT", PROJECT_ROOT / "catalogs"),
            auth_enabled=_env_flag("CLASSPAGES_AUTH_ENABLED", "true"),
            default_subclass_label=(os.getenv("CLASSPAGES_DEFAULT_SUBCLASS_LABEL") or "Subclass").strip() or "Subclass",
        )
