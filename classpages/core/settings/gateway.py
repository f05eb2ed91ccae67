from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from classpages.core.observability.metrics import SETTINGS_WRITES_TOTAL
from classpages.core.settings.store import KeyValueStore

log = logging.getLogger("classpages.settings")

NAMESPACE = "class-pages"

CLASSES_SOURCES = "classes-sources"
SUBCLASSES_SOURCES = "subclasses-sources"
SPELLS_SOURCES = "spells-sources"
SPELL_LISTS = "spell-lists"
SUBCLASS_LABELS = "subclass-labels"
CLASS_BACKDROPS = "class-backdrops"


@dataclass(frozen=True)
class SettingDefinition:
    key: str
    type: type
    default: Any


REGISTERED: Dict[str, SettingDefinition] = {
    d.key: d
    for d in (
        SettingDefinition(CLASSES_SOURCES, list, []),
        SettingDefinition(SUBCLASSES_SOURCES, list, []),
        SettingDefinition(SPELLS_SOURCES, list, []),
        SettingDefinition(SPELL_LISTS, dict, {}),
        SettingDefinition(SUBCLASS_LABELS, dict, {}),
        SettingDefinition(CLASS_BACKDROPS, dict, {}),
    )
}


class UnknownSettingError(KeyError):
    pass


class InvalidSettingValueError(ValueError):
    pass


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class SettingsAck:
    namespace: str
    key: str
    updated_ts: str

    def to_dict(self) -> Dict[str, Any]:
        return {"namespace": self.namespace, "key": self.key, "updated_ts": self.updated_ts}


class SettingsPersistenceGateway:
    """
    Read/write boundary over the external key-value store.

    Only registered keys are accepted. Reads never mutate; a write does not
    trigger any recomputation, callers re-run aggregation themselves.
    """

    def __init__(self, store: KeyValueStore, *, namespace: str = NAMESPACE):
        self.store = store
        self.namespace = namespace

    def _definition(self, key: str) -> SettingDefinition:
        d = REGISTERED.get(key)
        if d is None:
            raise UnknownSettingError(key)
        return d

    async def get(self, key: str, default: Optional[Any] = None) -> Any:
        d = self._definition(key)
        value = await asyncio.to_thread(self.store.read, self.namespace, key)
        if value is None:
            return json.loads(json.dumps(d.default if default is None else default))
        if not isinstance(value, d.type):
            log.warning("setting %s has type %s, expected %s; using default", key, type(value).__name__, d.type.__name__)
            return json.loads(json.dumps(d.default))
        return value

    async def set(self, key: str, value: Any) -> SettingsAck:
        d = self._definition(key)
        if not isinstance(value, d.type):
            raise InvalidSettingValueError(f"Setting '{key}' expects {d.type.__name__}, got {type(value).__name__}")
        try:
            json.dumps(value)
        except (TypeError, ValueError) as e:
            raise InvalidSettingValueError(f"Setting '{key}' is not JSON-serializable: {e}") from e

        await asyncio.to_thread(self.store.write, self.namespace, key, value)
        SETTINGS_WRITES_TOTAL.labels(key=key).inc()
        log.info("setting written namespace=%s key=%s", self.namespace, key)
        return SettingsAck(namespace=self.namespace, key=key, updated_ts=_utc_now_iso())
