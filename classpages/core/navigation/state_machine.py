"""
Nested tab selection for the class pages view.

Scopes:
  page              one active class among all classes
  subpage:<class>   class detail / subclasses / spells for one class
  spells:<class>    spell level tab inside the spells view of one class

Each scope holds exactly one active member. Per-class scopes are kept when
the page selection moves, so returning to a class restores its tabs.
All functions here are pure: (state, action) -> new state.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from classpages.core.catalog.constants import DEFAULT_SUBPAGE, SPELL_LEVELS, SUBPAGES

PAGE_SCOPE = "page"


def subpage_scope(class_identifier: str) -> str:
    return f"subpage:{class_identifier}"


def spells_scope(class_identifier: str) -> str:
    return f"spells:{class_identifier}"


class NavigationError(ValueError):
    pass


class ActionType(str, Enum):
    NEXT = "next"
    PREVIOUS = "previous"
    JUMP = "jump"
    FOCUS = "focus"


@dataclass(frozen=True)
class NavigationAction:
    type: ActionType
    scope: Optional[str] = None  # None => the state's active scope
    member: Optional[str] = None


@dataclass(frozen=True)
class NavigationState:
    active_scope: str
    members_by_scope: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    active_member_by_scope: Mapping[str, str] = field(default_factory=dict)

    def active_member(self, scope: Optional[str] = None) -> Optional[str]:
        return self.active_member_by_scope.get(scope or self.active_scope)

    @property
    def active_class(self) -> Optional[str]:
        return self.active_member_by_scope.get(PAGE_SCOPE)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "active_scope": self.active_scope,
            "members_by_scope": {k: list(v) for k, v in self.members_by_scope.items()},
            "active_member_by_scope": dict(self.active_member_by_scope),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NavigationState":
        members = {str(k): tuple(str(m) for m in v) for k, v in (data.get("members_by_scope") or {}).items()}
        active = {str(k): str(v) for k, v in (data.get("active_member_by_scope") or {}).items()}
        return cls(
            active_scope=str(data.get("active_scope") or PAGE_SCOPE),
            members_by_scope=members,
            active_member_by_scope=active,
        )


def cyclic_step(members: Sequence[str], current: Optional[str], offset: int) -> Optional[str]:
    if not members:
        return None
    if current not in members:
        return members[0]
    return members[(members.index(current) + offset) % len(members)]


def _with_member(state: NavigationState, scope: str, member: str) -> NavigationState:
    active = dict(state.active_member_by_scope)
    active[scope] = member
    return replace(state, active_member_by_scope=active)


def transition(state: NavigationState, action: NavigationAction) -> NavigationState:
    scope = action.scope or state.active_scope
    if scope not in state.members_by_scope:
        raise NavigationError(f"Unknown navigation scope: {scope}")
    members = state.members_by_scope[scope]

    if action.type == ActionType.FOCUS:
        return replace(state, active_scope=scope)

    if action.type == ActionType.JUMP:
        if action.member not in members:
            raise NavigationError(f"'{action.member}' is not a member of scope {scope}")
        return _with_member(state, scope, action.member)

    offset = 1 if action.type == ActionType.NEXT else -1
    nxt = cyclic_step(members, state.active_member_by_scope.get(scope), offset)
    if nxt is None:
        return state
    return _with_member(state, scope, nxt)


@dataclass(frozen=True)
class Stimulus:
    """
    A UI event. ``kind`` is one of:
      click      member was clicked (``member`` set)
      direction  a left/right button (``direction`` set)
      wheel      a scroll gesture (``delta_y`` set)
    """

    kind: str
    scope: Optional[str] = None
    member: Optional[str] = None
    direction: Optional[str] = None
    delta_y: float = 0.0


def action_for(stimulus: Stimulus) -> Optional[NavigationAction]:
    """Map a UI event to a transition; ``None`` when the event is a no-op."""
    if stimulus.kind == "click":
        return NavigationAction(ActionType.JUMP, scope=stimulus.scope, member=stimulus.member)
    if stimulus.kind == "direction":
        t = ActionType.PREVIOUS if stimulus.direction == "left" else ActionType.NEXT
        return NavigationAction(t, scope=stimulus.scope)
    if stimulus.kind == "wheel":
        if stimulus.delta_y > 0:
            return NavigationAction(ActionType.NEXT, scope=stimulus.scope)
        if stimulus.delta_y < 0:
            return NavigationAction(ActionType.PREVIOUS, scope=stimulus.scope)
        return None
    raise NavigationError(f"Unknown stimulus kind: {stimulus.kind}")


def build_navigation(
    class_identifiers: Sequence[str],
    *,
    initial_class: Optional[str] = None,
    initial_subtab: Optional[str] = None,
    spell_levels: Sequence[str] = tuple(str(lvl) for lvl in sorted(SPELL_LEVELS)),
    previous: Optional[NavigationState] = None,
) -> NavigationState:
    """
    Build the selection structure over an ordered list of class identifiers.

    Page selection: explicit ``initial_class`` if known, else the previous
    state's class if still present, else the first class. Remembered per-class
    selections from ``previous`` survive when still valid.
    """
    members: Dict[str, Tuple[str, ...]] = {PAGE_SCOPE: tuple(class_identifiers)}
    active: Dict[str, str] = {}
    prev_active = dict(previous.active_member_by_scope) if previous else {}
    levels = tuple(spell_levels)

    page_members = members[PAGE_SCOPE]
    if initial_class in page_members:
        active_class = initial_class
    elif prev_active.get(PAGE_SCOPE) in page_members:
        active_class = prev_active[PAGE_SCOPE]
    else:
        active_class = page_members[0] if page_members else None
    if active_class is not None:
        active[PAGE_SCOPE] = active_class

    for ident in page_members:
        sp, sl = subpage_scope(ident), spells_scope(ident)
        members[sp] = SUBPAGES
        members[sl] = levels

        if ident == active_class and initial_subtab in SUBPAGES:
            active[sp] = initial_subtab
        elif prev_active.get(sp) in SUBPAGES:
            active[sp] = prev_active[sp]
        else:
            active[sp] = DEFAULT_SUBPAGE

        if prev_active.get(sl) in levels:
            active[sl] = prev_active[sl]
        elif levels:
            active[sl] = levels[0]

    active_scope = PAGE_SCOPE
    if previous and previous.active_scope in members:
        active_scope = previous.active_scope
    return NavigationState(active_scope=active_scope, members_by_scope=members, active_member_by_scope=active)
