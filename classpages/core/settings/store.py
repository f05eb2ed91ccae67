from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Optional, Protocol

try:
    import fcntl as _fcntl
    _HAS_FCNTL = True
except ImportError:
    _HAS_FCNTL = False
    logging.getLogger("classpages.locking").warning(
        "fcntl not available (non-POSIX). File locking is disabled. "
        "Do not run concurrent settings writes in production on this platform."
    )


class SettingsStoreError(Exception):
    pass


@contextmanager
def _locked_file(path: Path, mode: str) -> Generator:
    """Open a file and apply an exclusive flock (POSIX only). No-op on Windows."""
    with open(path, mode, encoding="utf-8") as fh:
        if _HAS_FCNTL:
            _fcntl.flock(fh, _fcntl.LOCK_EX)
        try:
            yield fh
        finally:
            if _HAS_FCNTL:
                _fcntl.flock(fh, _fcntl.LOCK_UN)


class KeyValueStore(Protocol):
    def read(self, namespace: str, key: str) -> Optional[Any]:
        ...

    def write(self, namespace: str, key: str, value: Any) -> None:
        ...


class MemoryKeyValueStore:
    def __init__(self, initial: Optional[Dict[str, Dict[str, Any]]] = None):
        self._lock = threading.Lock()
        self._data: Dict[str, Dict[str, Any]] = json.loads(json.dumps(initial or {}))

    def read(self, namespace: str, key: str) -> Optional[Any]:
        with self._lock:
            value = self._data.get(namespace, {}).get(key)
            return json.loads(json.dumps(value)) if value is not None else None

    def write(self, namespace: str, key: str, value: Any) -> None:
        payload = json.loads(json.dumps(value))
        with self._lock:
            self._data.setdefault(namespace, {})[key] = payload


class JsonFileKeyValueStore:
    """
    Settings persisted as a single JSON document:

        {"kind": "settings", "namespaces": {"class-pages": {"spell-lists": {...}}}}

    Values are round-tripped through JSON on every read and write so callers
    never share mutable state with the store.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.lock_path = self.path.with_suffix(self.path.suffix + ".lock")
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {"kind": "settings", "namespaces": {}}
        raw = self.path.read_text(encoding="utf-8")
        try:
            obj = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as e:
            raise SettingsStoreError(f"Settings file {self.path} is corrupt: {e}") from e
        if not isinstance(obj, dict) or not isinstance(obj.get("namespaces", {}), dict):
            raise SettingsStoreError(f"Settings file {self.path} has an unexpected shape")
        obj.setdefault("kind", "settings")
        obj.setdefault("namespaces", {})
        return obj

    def _save(self, obj: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(obj, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self.path)

    def read(self, namespace: str, key: str) -> Optional[Any]:
        with self._lock:
            obj = self._load()
        ns = obj["namespaces"].get(namespace) or {}
        return ns.get(key)

    def write(self, namespace: str, key: str, value: Any) -> None:
        payload = json.loads(json.dumps(value))
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Writers in every process serialize on the sidecar lock file.
        with self._lock, _locked_file(self.lock_path, "a"):
            obj = self._load()
            obj["namespaces"].setdefault(namespace, {})[key] = payload
            self._save(obj)
