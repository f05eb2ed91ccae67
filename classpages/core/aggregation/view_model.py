from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from classpages.core.aggregation.enrichment import EnrichedRecord
from classpages.core.catalog.models import ClassRecord, SpellBucket, SubclassRecord
from classpages.core.navigation.state_machine import NavigationState


@dataclass
class AggregatedClass:
    """A class with its joined subclasses, partitioned spells and overlays applied."""

    record: ClassRecord
    label: str
    backdrop: Optional[str]
    subclasses: List[SubclassRecord] = field(default_factory=list)
    spell_lists: List[SpellBucket] = field(default_factory=list)

    @property
    def identifier(self) -> str:
        return self.record.identifier

    def summary(self) -> Dict[str, Any]:
        return {
            "identifier": self.record.identifier,
            "name": self.record.name,
            "img": self.record.img,
            "uuid": self.record.uuid,
            "label": self.label,
            "backdrop": self.backdrop,
            "subclass_count": len(self.subclasses),
            "spell_count": sum(len(b.spells) for b in self.spell_lists),
        }


@dataclass
class EnrichedBucket:
    level: int
    label: str
    spells: List[EnrichedRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"level": self.level, "label": self.label, "spells": [s.to_dict() for s in self.spells]}


@dataclass
class ClassPage:
    cls: EnrichedRecord
    identifier: str
    subclass_label: str
    backdrop: Optional[str]
    subclasses: List[EnrichedRecord] = field(default_factory=list)
    spell_lists: List[EnrichedBucket] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "class": self.cls.to_dict(),
            "identifier": self.identifier,
            "subclass_label": self.subclass_label,
            "backdrop": self.backdrop,
            "subclasses": [s.to_dict() for s in self.subclasses],
            "spell_lists": [b.to_dict() for b in self.spell_lists],
        }


@dataclass
class ViewModel:
    classes: List[Dict[str, Any]] = field(default_factory=list)
    page: Optional[ClassPage] = None
    navigation: Optional[NavigationState] = None
    reports: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.page is None

    @property
    def identifier(self) -> Optional[str]:
        return self.page.identifier if self.page else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "classes": self.classes,
            "page": self.page.to_dict() if self.page else None,
            "navigation": self.navigation.to_dict() if self.navigation else None,
            "reports": self.reports,
        }
