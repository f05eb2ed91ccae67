"""
Configuration overlays on top of aggregated catalog records.

Two durable mappings live in settings:
  - spell-lists: class identifier -> ordered list of spell uuids
  - subclass-labels / class-backdrops: per-class display overrides

Everything that writes them goes through ``ConfigOverlay``.
"""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from classpages.core.catalog.constants import SOURCE_FAMILIES, RecordType
from classpages.core.catalog.models import ClassRecord
from classpages.core.observability.metrics import ASSIGNMENT_IMPORTS_TOTAL
from classpages.core.settings.gateway import (
    CLASS_BACKDROPS,
    SPELL_LISTS,
    SUBCLASS_LABELS,
    SettingsAck,
    SettingsPersistenceGateway,
)

log = logging.getLogger("classpages.overlay")

Assignments = Dict[str, List[str]]

EXPORT_CONTENT_TYPE = "application/json"
EXPORT_NAME_PREFIX = "spell-list-backup-"


class ImportMode(str, Enum):
    OVERRIDE = "override"
    MERGE = "merge"


class ImportDocumentError(ValueError):
    """Raised when an import document cannot be used; nothing has been written."""


class InvalidOverrideError(ValueError):
    pass


@dataclass(frozen=True)
class ClassOverride:
    label: Optional[str] = None
    backdrop: Optional[str] = None


@dataclass(frozen=True)
class AppliedOverlay:
    label: str
    backdrop: Optional[str]


@dataclass(frozen=True)
class ExportDocument:
    name: str
    content_type: str
    content: str

    @property
    def filename(self) -> str:
        return f"{self.name}.json"


@dataclass(frozen=True)
class ImportResult:
    mode: ImportMode
    assignments: Assignments
    ack: SettingsAck

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "classes": sorted(self.assignments.keys()),
            "spell_count": sum(len(v) for v in self.assignments.values()),
            "ack": self.ack.to_dict(),
        }


def clean_text(value: Any) -> Optional[str]:
    """Blank or missing text means "unset"."""
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def build_overrides(labels: Mapping[str, Any], backdrops: Mapping[str, Any]) -> Dict[str, ClassOverride]:
    out: Dict[str, ClassOverride] = {}
    for identifier in set(labels or {}) | set(backdrops or {}):
        out[identifier] = ClassOverride(
            label=clean_text((labels or {}).get(identifier)),
            backdrop=clean_text((backdrops or {}).get(identifier)),
        )
    return out


def apply_label_and_backdrop(
    record: ClassRecord,
    overrides: Mapping[str, ClassOverride],
    default_label: Union[str, Callable[[ClassRecord], str]],
) -> AppliedOverlay:
    ov = overrides.get(record.identifier) or ClassOverride()
    if ov.label:
        label = ov.label
    else:
        label = default_label(record) if callable(default_label) else default_label
    return AppliedOverlay(label=label, backdrop=ov.backdrop)


def validate_assignments(data: Any) -> Assignments:
    if not isinstance(data, dict):
        raise ImportDocumentError("Spell list document must be a JSON object of class identifier -> uuid list")
    out: Assignments = {}
    for key, value in data.items():
        if not isinstance(key, str) or not key:
            raise ImportDocumentError(f"Invalid class identifier {key!r}")
        if not isinstance(value, list) or not all(isinstance(u, str) for u in value):
            raise ImportDocumentError(f"Spell list for '{key}' must be a list of uuid strings")
        out[key] = list(value)
    return out


def parse_assignment_document(document: Union[str, bytes, Mapping[str, Any]]) -> Assignments:
    if isinstance(document, Mapping):
        return validate_assignments(dict(document))
    if isinstance(document, bytes):
        try:
            document = document.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ImportDocumentError(f"Spell list document is not UTF-8: {e}") from e
    try:
        data = json.loads(document)
    except json.JSONDecodeError as e:
        raise ImportDocumentError(f"Spell list document is not valid JSON: {e}") from e
    return validate_assignments(data)


def override_assignments(current: Mapping[str, List[str]], incoming: Assignments) -> Assignments:
    return {k: list(v) for k, v in incoming.items()}


def merge_assignments(current: Mapping[str, List[str]], incoming: Mapping[str, List[str]]) -> Assignments:
    """
    Union per class for every class already tracked in ``current``.

    Classes that only appear in ``incoming`` are not added.
    """
    out: Assignments = {}
    for key, old in current.items():
        merged = dict.fromkeys(incoming.get(key) or [])
        merged.update(dict.fromkeys(old or []))
        out[key] = list(merged)
    return out


_IMPORTERS: Dict[ImportMode, Callable[[Mapping[str, List[str]], Assignments], Assignments]] = {
    ImportMode.OVERRIDE: override_assignments,
    ImportMode.MERGE: merge_assignments,
}


def _dedupe_keep_order(values: Iterable[Any]) -> List[str]:
    return list(dict.fromkeys(s for s in (clean_text(v) for v in values or []) if s))


class ConfigOverlay:
    def __init__(self, gateway: SettingsPersistenceGateway, *, clock: Callable[[], float] = time.time):
        self.gateway = gateway
        self.clock = clock

    async def overrides(self) -> Dict[str, ClassOverride]:
        labels = await self.gateway.get(SUBCLASS_LABELS)
        backdrops = await self.gateway.get(CLASS_BACKDROPS)
        return build_overrides(labels, backdrops)

    async def assignments(self) -> Assignments:
        """
        Persisted lists, cleaned per class: non-string uuids are dropped and a
        class whose value is not a list is skipped. Valid classes always survive.
        """
        raw = await self.gateway.get(SPELL_LISTS)
        out: Assignments = {}
        for key, value in raw.items():
            if not isinstance(key, str) or not key or not isinstance(value, list):
                log.warning("skipping malformed persisted spell list for %r", key)
                continue
            uuids = [u for u in value if isinstance(u, str)]
            if len(uuids) != len(value):
                log.warning("dropping %d non-string uuids from persisted spell list %r", len(value) - len(uuids), key)
            out[key] = uuids
        return out

    async def import_assignments(
        self, document: Union[str, bytes, Mapping[str, Any]], mode: Union[ImportMode, str]
    ) -> ImportResult:
        mode = ImportMode(mode)
        try:
            incoming = parse_assignment_document(document)
        except ImportDocumentError:
            ASSIGNMENT_IMPORTS_TOTAL.labels(mode=mode.value, outcome="rejected").inc()
            raise

        current = await self.assignments()
        result = _IMPORTERS[mode](current, incoming)
        ack = await self.gateway.set(SPELL_LISTS, result)
        ASSIGNMENT_IMPORTS_TOTAL.labels(mode=mode.value, outcome="applied").inc()
        log.info("spell lists imported mode=%s classes=%d", mode.value, len(result))
        return ImportResult(mode=mode, assignments=result, ack=ack)

    async def export_assignments(self) -> ExportDocument:
        data = await self.gateway.get(SPELL_LISTS)
        millis = int(self.clock() * 1000)
        return ExportDocument(
            name=f"{EXPORT_NAME_PREFIX}{millis}",
            content_type=EXPORT_CONTENT_TYPE,
            content=json.dumps(data),
        )

    async def set_spell_lists(self, lists: Mapping[str, Any]) -> SettingsAck:
        """Direct edit from the list editor; empty uuid entries are dropped."""
        cleaned = {k: [u for u in (v or []) if u] for k, v in dict(lists).items()}
        return await self.gateway.set(SPELL_LISTS, validate_assignments(cleaned))

    async def set_override(
        self,
        identifier: str,
        *,
        label: Optional[str] = None,
        backdrop: Optional[str] = None,
    ) -> Dict[str, ClassOverride]:
        """
        ``None`` leaves a field untouched; a blank string unsets it so the
        default label or backdrop applies again.
        """
        ident = clean_text(identifier)
        if not ident:
            raise InvalidOverrideError("Class identifier is required")

        if label is not None:
            labels = await self.gateway.get(SUBCLASS_LABELS)
            value = clean_text(label)
            if value is None:
                labels.pop(ident, None)
            else:
                labels[ident] = value
            await self.gateway.set(SUBCLASS_LABELS, labels)

        if backdrop is not None:
            backdrops = await self.gateway.get(CLASS_BACKDROPS)
            value = clean_text(backdrop)
            if value is None:
                backdrops.pop(ident, None)
            else:
                backdrops[ident] = value
            await self.gateway.set(CLASS_BACKDROPS, backdrops)

        return await self.overrides()

    async def sources(self) -> Dict[str, List[str]]:
        out: Dict[str, List[str]] = {}
        for family in SOURCE_FAMILIES.values():
            out[family] = list(await self.gateway.get(f"{family}-sources"))
        return out

    async def set_sources(self, record_type: RecordType, source_keys: Iterable[str]) -> SettingsAck:
        keys = _dedupe_keep_order(source_keys)
        return await self.gateway.set(f"{SOURCE_FAMILIES[record_type]}-sources", keys)
