from .state_machine import (
    PAGE_SCOPE,
    ActionType,
    NavigationAction,
    NavigationError,
    NavigationState,
    Stimulus,
    action_for,
    build_navigation,
    cyclic_step,
    spells_scope,
    subpage_scope,
    transition,
)

__all__ = [
    "PAGE_SCOPE",
    "ActionType",
    "NavigationAction",
    "NavigationError",
    "NavigationState",
    "Stimulus",
    "action_for",
    "build_navigation",
    "cyclic_step",
    "spells_scope",
    "subpage_scope",
    "transition",
]
