from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from classpages.core.aggregation.joiner import name_sorted
from classpages.core.catalog.models import ClassRecord, SpellRecord

_LEVEL_TOKEN = re.compile(r"level:([0-9]+)")
_SCHOOL_TOKEN = re.compile(r"school:([a-z]+)")


@dataclass(frozen=True)
class SpellFilter:
    level: Optional[int] = None
    school: Optional[str] = None
    text: str = ""

    def matches(self, spell: SpellRecord) -> bool:
        if self.level is not None and spell.level != self.level:
            return False
        if self.school is not None and spell.school != self.school:
            return False
        if self.text and not re.search(re.escape(self.text), spell.name, re.IGNORECASE):
            return False
        return True


def parse_filter_query(query: Optional[str]) -> SpellFilter:
    """
    ``"level:3 school:evo fire"`` -> level 3, evocation, name contains "fire".
    """
    q = query or ""
    level = None
    school = None

    m = _LEVEL_TOKEN.search(q)
    if m:
        level = int(m.group(1))
        q = q.replace(m.group(0), "")

    m = _SCHOOL_TOKEN.search(q)
    if m:
        school = m.group(1)
        q = q.replace(m.group(0), "")

    return SpellFilter(level=level, school=school, text=" ".join(q.split()))


@dataclass
class SpellListEditor:
    classes: List[Dict[str, Any]] = field(default_factory=list)
    rows: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"classes": self.classes, "rows": self.rows}


def build_spell_list_editor(
    classes: Sequence[ClassRecord],
    spells: Sequence[SpellRecord],
    assignments: Mapping[str, Sequence[str]],
    *,
    query: Optional[str] = None,
) -> SpellListEditor:
    """One row per spell with a membership flag for every class."""
    flt = parse_filter_query(query)
    members = {c.identifier: set(assignments.get(c.identifier) or []) for c in classes}

    rows: List[Dict[str, Any]] = []
    for spell in name_sorted(spells):
        if not flt.matches(spell):
            continue
        rows.append({
            **spell.to_dict(),
            "classes": {ident: spell.uuid in uuids for ident, uuids in members.items()},
        })

    return SpellListEditor(
        classes=[{"identifier": c.identifier, "name": c.name} for c in classes],
        rows=rows,
    )
