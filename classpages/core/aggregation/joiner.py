from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, TypeVar

from classpages.core.catalog.constants import SPELL_LEVELS, SPELL_SCHOOLS
from classpages.core.catalog.models import ClassRecord, SpellBucket, SpellRecord, SubclassRecord
from classpages.core.reports import ReportKind, ReportLog

log = logging.getLogger("classpages.joiner")

T = TypeVar("T")


def name_sorted(records: Iterable[T]) -> List[T]:
    """Case-insensitive name order; ``sorted`` is stable so ties keep source order."""
    return sorted(records, key=lambda r: (getattr(r, "name", "") or "").casefold())


def join_subclasses(
    classes: Sequence[ClassRecord],
    subclasses: Sequence[SubclassRecord],
    *,
    reports: Optional[ReportLog] = None,
) -> Dict[str, List[SubclassRecord]]:
    reports = reports if reports is not None else ReportLog()
    groups: Dict[str, List[SubclassRecord]] = {c.identifier: [] for c in classes}

    for sub in subclasses:
        bucket = groups.get(sub.class_identifier)
        if bucket is None:
            reports.report(
                ReportKind.ORPHAN_SUBCLASS,
                f"Subclass '{sub.name}' with uuid '{sub.uuid}' references unknown class "
                f"'{sub.class_identifier}' and was skipped.",
                subject=sub.uuid,
                logger=log,
            )
            continue
        bucket.append(sub)

    return {k: name_sorted(v) for k, v in groups.items()}


def index_spells(spells: Iterable[SpellRecord]) -> Dict[str, SpellRecord]:
    """uuid -> spell; the first record seen for a uuid wins."""
    out: Dict[str, SpellRecord] = {}
    for s in spells:
        if s.uuid and s.uuid not in out:
            out[s.uuid] = s
    return out


def partition_spells(
    assignment: Sequence[str],
    spell_index: Mapping[str, SpellRecord],
    levels: Mapping[int, str] = SPELL_LEVELS,
    *,
    schools: Mapping[str, str] = SPELL_SCHOOLS,
    reports: Optional[ReportLog] = None,
) -> List[SpellBucket]:
    """
    Split an ordered list of spell uuids into one bucket per spell level.

    Every level of the enumeration gets a bucket, even when empty. Spells
    that cannot be resolved or carry a level/school outside the enumerations
    are dropped and reported.
    """
    reports = reports if reports is not None else ReportLog()
    buckets: Dict[int, SpellBucket] = {
        lvl: SpellBucket(level=lvl, label=label) for lvl, label in sorted(levels.items())
    }
    placed: set[str] = set()

    for uuid in assignment or []:
        if uuid in placed:
            continue
        spell = spell_index.get(uuid)
        if spell is None:
            reports.report(
                ReportKind.UNRESOLVED_SPELL,
                f"Assigned spell '{uuid}' was not found in any spell source.",
                subject=uuid,
                logger=log,
            )
            continue
        if spell.level not in buckets:
            reports.report(
                ReportKind.INVALID_SPELL_LEVEL,
                f"Spell '{spell.name}' with uuid '{uuid}' has invalid level {spell.level!r}.",
                subject=uuid,
                logger=log,
            )
            continue
        if spell.school not in schools:
            reports.report(
                ReportKind.INVALID_SPELL_SCHOOL,
                f"Spell '{spell.name}' with uuid '{uuid}' has invalid school {spell.school!r}.",
                subject=uuid,
                logger=log,
            )
            continue
        placed.add(uuid)
        buckets[spell.level].spells.append(spell)

    for b in buckets.values():
        b.spells = name_sorted(b.spells)
    return list(buckets.values())
