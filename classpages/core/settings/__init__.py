from .store import JsonFileKeyValueStore, MemoryKeyValueStore, SettingsStoreError
from .gateway import (
    CLASS_BACKDROPS,
    CLASSES_SOURCES,
    SPELL_LISTS,
    SPELLS_SOURCES,
    SUBCLASS_LABELS,
    SUBCLASSES_SOURCES,
    InvalidSettingValueError,
    SettingsAck,
    SettingsPersistenceGateway,
    UnknownSettingError,
)

__all__ = [
    "JsonFileKeyValueStore",
    "MemoryKeyValueStore",
    "SettingsStoreError",
    "CLASS_BACKDROPS",
    "CLASSES_SOURCES",
    "SPELL_LISTS",
    "SPELLS_SOURCES",
    "SUBCLASS_LABELS",
    "SUBCLASSES_SOURCES",
    "InvalidSettingValueError",
    "SettingsAck",
    "SettingsPersistenceGateway",
    "UnknownSettingError",
]
