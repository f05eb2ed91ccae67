from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

# Keep consistent with classpages.core.auth.rbac.ROLE_ORDER
DEFAULT_REQUIRED_ROLE = "admin"


@dataclass(frozen=True)
class PolicyRule:
    method: str  # "GET", "POST", "*" etc.
    pattern: re.Pattern
    required_role: str


# Ordered: first match wins
RULES: list[PolicyRule] = [
    PolicyRule(method="GET", pattern=re.compile(r"^/api/v1/health/(live|ready)$"), required_role="viewer"),

    # Reading pages and moving between tabs is open to every caller.
    PolicyRule(method="*", pattern=re.compile(r"^/api/v1/pages/"), required_role="viewer"),

    # Settings and catalog administration are privileged.
    PolicyRule(method="*", pattern=re.compile(r"^/api/v1/settings/"), required_role="admin"),
    PolicyRule(method="*", pattern=re.compile(r"^/api/v1/catalog/"), required_role="admin"),

    PolicyRule(method="*", pattern=re.compile(r"^/api/v1/"), required_role=DEFAULT_REQUIRED_ROLE),
]


def required_role_for(method: str, path: str) -> Optional[str]:
    """
    Returns required role for this request, or None if policy does not apply.
    """
    m = (method or "GET").upper()
    for rule in RULES:
        if rule.method != "*" and rule.method != m:
            continue
        if rule.pattern.match(path):
            return rule.required_role
    return None
