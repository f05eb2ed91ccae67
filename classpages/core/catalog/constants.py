from __future__ import annotations

from enum import Enum
from typing import Dict


class RecordType(str, Enum):
    CLASS = "class"
    SUBCLASS = "subclass"
    SPELL = "spell"


# Settings key prefix per record family (e.g. "classes-sources").
SOURCE_FAMILIES: Dict[RecordType, str] = {
    RecordType.CLASS: "classes",
    RecordType.SUBCLASS: "subclasses",
    RecordType.SPELL: "spells",
}

SPELL_LEVELS: Dict[int, str] = {
    0: "Cantrip",
    1: "1st Level",
    2: "2nd Level",
    3: "3rd Level",
    4: "4th Level",
    5: "5th Level",
    6: "6th Level",
    7: "7th Level",
    8: "8th Level",
    9: "9th Level",
}

SPELL_SCHOOLS: Dict[str, str] = {
    "abj": "Abjuration",
    "con": "Conjuration",
    "div": "Divination",
    "enc": "Enchantment",
    "evo": "Evocation",
    "ill": "Illusion",
    "nec": "Necromancy",
    "trs": "Transmutation",
}

SUBPAGES: tuple[str, ...] = ("class", "subclasses", "spells")
DEFAULT_SUBPAGE = "class"


def parse_record_type(value: str) -> RecordType:
    """Accept either the singular record type or its plural settings family."""
    v = (value or "").strip().lower()
    for rt, family in SOURCE_FAMILIES.items():
        if v in (rt.value, family):
            return rt
    raise ValueError(f"Unknown record type: {value!r}")
