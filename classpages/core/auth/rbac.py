from __future__ import annotations

from typing import Optional


# Role hierarchy: admin is the privileged caller.
ROLE_ORDER = {
    "viewer": 1,
    "admin": 2,
}


def enforce_required_role(*, user_role: Optional[str], required_role: str) -> bool:
    """
    Used by middleware policy enforcement.
    Returns True if allowed else False.
    """
    if required_role not in ROLE_ORDER:
        raise ValueError(f"Unknown role: {required_role}")
    if not user_role or user_role not in ROLE_ORDER:
        return False
    return ROLE_ORDER[user_role] >= ROLE_ORDER[required_role]
