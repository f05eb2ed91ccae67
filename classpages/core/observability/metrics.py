from __future__ import annotations

from prometheus_client import Counter

AGGREGATION_REPORTS_TOTAL = Counter(
    "classpages_aggregation_reports_total",
    "Non-fatal findings reported while aggregating catalogs",
    ["kind"],
)

VIEW_BUILDS_TOTAL = Counter(
    "classpages_view_builds_total",
    "Completed class page view builds",
    ["outcome"],
)

ASSIGNMENT_IMPORTS_TOTAL = Counter(
    "classpages_assignment_imports_total",
    "Spell list import attempts",
    ["mode", "outcome"],
)

SETTINGS_WRITES_TOTAL = Counter(
    "classpages_settings_writes_total",
    "Writes to the persisted settings store",
    ["key"],
)
