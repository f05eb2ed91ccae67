from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from classpages.core.catalog.constants import RecordType
from classpages.core.catalog.models import CatalogRecord, ClassRecord, SpellRecord, SubclassRecord
from classpages.core.catalog.providers import CatalogProvider
from classpages.core.reports import ReportKind, ReportLog

log = logging.getLogger("classpages.loader")

# Current and legacy locations of every field the loader normalizes.
_FIELD_PATHS: Dict[str, tuple[str, ...]] = {
    "identifier": ("system.identifier", "data.identifier"),
    "class_identifier": ("system.classIdentifier", "data.classIdentifier"),
    "description": ("system.description.value", "data.description.value"),
    "level": ("system.level", "data.level"),
    "school": ("system.school", "data.school"),
}

_TYPE_FIELDS: Dict[RecordType, tuple[str, ...]] = {
    RecordType.CLASS: ("identifier", "description"),
    RecordType.SUBCLASS: ("identifier", "class_identifier", "description"),
    RecordType.SPELL: ("level", "school", "description"),
}


def projection_for(record_type: RecordType, extra: Iterable[str] = ()) -> List[str]:
    """Dotted paths to request from a provider; the description is always included."""
    out: List[str] = []
    for name in _TYPE_FIELDS[record_type]:
        out.extend(_FIELD_PATHS[name])
    for f in extra:
        if f not in out:
            out.append(f)
    return out


def _lookup(entry: Dict[str, Any], path: str) -> Any:
    cur: Any = entry
    for part in path.split("."):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(part)
    return cur


def read_field(entry: Dict[str, Any], name: str) -> Any:
    for path in _FIELD_PATHS[name]:
        value = _lookup(entry, path)
        if value is not None:
            return value
    return None


def _coerce_level(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _entry_id(entry: Dict[str, Any]) -> str:
    if entry.get("_id"):
        return str(entry["_id"])
    uuid = str(entry.get("uuid") or "")
    return uuid.rsplit(".", 1)[-1] if uuid else ""


def normalize_entry(entry: Dict[str, Any], record_type: RecordType, source: str) -> CatalogRecord:
    base = dict(
        uuid=str(entry.get("uuid") or ""),
        id=_entry_id(entry),
        name=str(entry.get("name") or ""),
        type=str(entry.get("type") or record_type.value),
        source=source,
        img=entry.get("img"),
        description=str(read_field(entry, "description") or ""),
    )
    if record_type == RecordType.CLASS:
        return ClassRecord(**base, identifier=str(read_field(entry, "identifier") or ""))
    if record_type == RecordType.SUBCLASS:
        return SubclassRecord(
            **base,
            identifier=str(read_field(entry, "identifier") or ""),
            class_identifier=str(read_field(entry, "class_identifier") or ""),
        )
    return SpellRecord(
        **base,
        level=_coerce_level(read_field(entry, "level")),
        school=str(read_field(entry, "school") or ""),
    )


class IndexLoader:
    """
    Fetches one record family from a set of catalog sources.

    Sources are fetched concurrently but concatenated in the order they were
    given. A source that is not registered contributes nothing; a source whose
    fetch raises is reported and also contributes nothing.
    """

    def __init__(self, provider: CatalogProvider):
        self.provider = provider

    async def _fetch_source(
        self, source_key: str, fields: List[str], reports: ReportLog
    ) -> List[Dict[str, Any]]:
        try:
            index = await self.provider.get_index(source_key, fields)
        except Exception as e:
            reports.report(
                ReportKind.UNREACHABLE_SOURCE,
                f"Catalog source '{source_key}' could not be read: {e}",
                subject=source_key,
                logger=log,
            )
            return []
        if index is None:
            log.debug("catalog source %s is not registered; treating as empty", source_key)
            return []
        return list(index)

    async def load(
        self,
        record_type: RecordType,
        source_keys: Sequence[str],
        fields: Iterable[str] = (),
        *,
        reports: Optional[ReportLog] = None,
    ) -> List[CatalogRecord]:
        reports = reports if reports is not None else ReportLog()
        projection = projection_for(record_type, fields)
        keys = list(source_keys or [])

        indices = await asyncio.gather(*(self._fetch_source(k, projection, reports) for k in keys))

        records: List[CatalogRecord] = []
        for key, index in zip(keys, indices):
            for entry in index:
                if not isinstance(entry, dict) or entry.get("type") != record_type.value:
                    continue
                records.append(normalize_entry(entry, record_type, key))

        if record_type == RecordType.CLASS:
            records = self._dedupe_classes(records, reports)

        log.debug("loaded %d %s records from %d sources", len(records), record_type.value, len(keys))
        return records

    def _dedupe_classes(self, records: List[CatalogRecord], reports: ReportLog) -> List[CatalogRecord]:
        seen: set[str] = set()
        out: List[CatalogRecord] = []
        for rec in records:
            ident = getattr(rec, "identifier", "")
            if not ident or ident in seen:
                reports.report(
                    ReportKind.DUPLICATE_CLASS,
                    f"Missing or duplicate class identifier found. The class '{rec.name}' "
                    f"with uuid '{rec.uuid}' was skipped.",
                    subject=rec.uuid,
                    logger=log,
                )
                continue
            seen.add(ident)
            out.append(rec)
        return out
