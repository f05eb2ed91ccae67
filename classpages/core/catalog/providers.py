"""
Catalog providers - the read-only boundary to externally managed catalogs.

A provider answers ``get_index(source_key, fields)`` with the raw index
entries of one catalog source, projected to the requested dotted field paths,
or ``None`` when the source is not registered.

Directory layout understood by ``DirectoryCatalogProvider``:

    <root>/dnd5e.classes.json
    <root>/dnd5e.spells.yaml

Each file is either a list of entries or ``{"label": ..., "entries": [...]}``.
"""
from __future__ import annotations

import asyncio
import json
import logging
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

import yaml

_log = logging.getLogger("classpages.catalog")

BASE_FIELDS: tuple[str, ...] = ("_id", "uuid", "type", "name", "img")

_SUFFIXES: tuple[str, ...] = (".json", ".yaml", ".yml")


class CatalogError(Exception):
    pass


@dataclass(frozen=True)
class SourceInfo:
    key: str
    label: str
    document_type: str = "Item"

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "label": self.label, "document_type": self.document_type}


class CatalogProvider(Protocol):
    async def get_index(self, source_key: str, fields: Iterable[str]) -> Optional[List[Dict[str, Any]]]:
        ...

    def list_sources(self) -> List[SourceInfo]:
        ...


def _get_path(obj: Dict[str, Any], path: str) -> Any:
    cur: Any = obj
    for part in path.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return None
        cur = cur[part]
    return cur


def _set_path(obj: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    cur = obj
    for part in parts[:-1]:
        cur = cur.setdefault(part, {})
    cur[parts[-1]] = deepcopy(value)


def project_entry(entry: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Keep the base index keys plus every requested dotted path that exists."""
    out: Dict[str, Any] = {k: entry[k] for k in BASE_FIELDS if k in entry}
    for f in fields:
        value = _get_path(entry, f)
        if value is not None:
            _set_path(out, f, value)
    return out


class InMemoryCatalogProvider:
    def __init__(self, sources: Optional[Dict[str, List[Dict[str, Any]]]] = None, labels: Optional[Dict[str, str]] = None):
        self._sources: Dict[str, List[Dict[str, Any]]] = {k: list(v) for k, v in (sources or {}).items()}
        self._labels: Dict[str, str] = dict(labels or {})

    def register(self, source_key: str, entries: List[Dict[str, Any]], *, label: Optional[str] = None) -> None:
        self._sources[source_key] = list(entries)
        if label:
            self._labels[source_key] = label

    async def get_index(self, source_key: str, fields: Iterable[str]) -> Optional[List[Dict[str, Any]]]:
        entries = self._sources.get(source_key)
        if entries is None:
            return None
        fields = list(fields)
        return [project_entry(e, fields) for e in entries]

    def list_sources(self) -> List[SourceInfo]:
        return [SourceInfo(key=k, label=self._labels.get(k, k)) for k in sorted(self._sources)]


class DirectoryCatalogProvider:
    def __init__(self, root: Path):
        self.root = Path(root)

    def _source_file(self, source_key: str) -> Optional[Path]:
        # Source keys are dotted names; never let them escape the root.
        if not source_key or "/" in source_key or "\\" in source_key or source_key.startswith("."):
            return None
        for suffix in _SUFFIXES:
            p = self.root / f"{source_key}{suffix}"
            if p.is_file():
                return p
        return None

    def _read(self, path: Path) -> Dict[str, Any]:
        text = path.read_text(encoding="utf-8")
        try:
            if path.suffix == ".json":
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise CatalogError(f"Catalog file {path.name} is not valid: {exc}") from exc

        if isinstance(data, list):
            return {"label": path.stem, "entries": data}
        if isinstance(data, dict) and isinstance(data.get("entries"), list):
            return {"label": data.get("label") or path.stem, "entries": data["entries"]}
        raise CatalogError(f"Catalog file {path.name} must contain a list of entries")

    def _load_index(self, source_key: str, fields: List[str]) -> Optional[List[Dict[str, Any]]]:
        path = self._source_file(source_key)
        if path is None:
            return None
        entries = self._read(path)["entries"]
        return [project_entry(e, fields) for e in entries if isinstance(e, dict)]

    async def get_index(self, source_key: str, fields: Iterable[str]) -> Optional[List[Dict[str, Any]]]:
        return await asyncio.to_thread(self._load_index, source_key, list(fields))

    def list_sources(self) -> List[SourceInfo]:
        if not self.root.is_dir():
            return []
        out: List[SourceInfo] = []
        seen: set[str] = set()
        for p in sorted(self.root.iterdir()):
            if p.suffix not in _SUFFIXES or p.stem in seen:
                continue
            seen.add(p.stem)
            try:
                label = self._read(p)["label"]
            except (CatalogError, OSError) as exc:
                _log.warning("Skipping unreadable catalog file %s: %s", p, exc)
                continue
            out.append(SourceInfo(key=p.stem, label=str(label)))
        return out
