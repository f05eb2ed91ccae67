from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from classpages.core.observability.metrics import AGGREGATION_REPORTS_TOTAL


class ReportKind(str, Enum):
    DUPLICATE_CLASS = "duplicate_class"
    ORPHAN_SUBCLASS = "orphan_subclass"
    UNRESOLVED_SPELL = "unresolved_spell"
    INVALID_SPELL_LEVEL = "invalid_spell_level"
    INVALID_SPELL_SCHOOL = "invalid_spell_school"
    UNREACHABLE_SOURCE = "unreachable_source"
    ENRICHMENT_FAILED = "enrichment_failed"


@dataclass(frozen=True)
class Report:
    kind: ReportKind
    message: str
    subject: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, "subject": self.subject}


@dataclass
class ReportLog:
    """
    Non-fatal findings of one aggregation pass.

    Every report is logged at WARNING and counted; the log travels with the
    pass and ends up in the view model.
    """

    reports: List[Report] = field(default_factory=list)

    def report(
        self,
        kind: ReportKind,
        message: str,
        *,
        subject: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> Report:
        r = Report(kind=kind, message=message, subject=subject)
        self.reports.append(r)
        (logger or logging.getLogger("classpages.reports")).warning("%s subject=%s", message, subject)
        AGGREGATION_REPORTS_TOTAL.labels(kind=kind.value).inc()
        return r

    def of_kind(self, kind: ReportKind) -> List[Report]:
        return [r for r in self.reports if r.kind == kind]

    def to_list(self) -> List[Dict[str, Any]]:
        return [r.to_dict() for r in self.reports]
