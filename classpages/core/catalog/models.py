from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class CatalogRecord:
    """Canonical shape shared by every record family after normalization."""

    uuid: str
    id: str
    name: str
    type: str
    source: str
    img: Optional[str] = None
    description: str = ""

    def base_dict(self) -> Dict[str, Any]:
        return {
            "uuid": self.uuid,
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "source": self.source,
            "img": self.img,
        }


@dataclass(frozen=True)
class ClassRecord(CatalogRecord):
    identifier: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {**self.base_dict(), "identifier": self.identifier}


@dataclass(frozen=True)
class SubclassRecord(CatalogRecord):
    identifier: str = ""
    class_identifier: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.base_dict(),
            "identifier": self.identifier,
            "class_identifier": self.class_identifier,
        }


@dataclass(frozen=True)
class SpellRecord(CatalogRecord):
    level: Optional[int] = None
    school: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {**self.base_dict(), "level": self.level, "school": self.school}


@dataclass
class SpellBucket:
    level: int
    label: str
    spells: list = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "label": self.label,
            "spells": [s.to_dict() for s in self.spells],
        }
