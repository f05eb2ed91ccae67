from .config_overlay import (
    AppliedOverlay,
    ClassOverride,
    ConfigOverlay,
    ExportDocument,
    ImportDocumentError,
    ImportMode,
    ImportResult,
    InvalidOverrideError,
    apply_label_and_backdrop,
    merge_assignments,
    override_assignments,
    parse_assignment_document,
)
from .spell_list_editor import SpellFilter, build_spell_list_editor, parse_filter_query

__all__ = [
    "AppliedOverlay",
    "ClassOverride",
    "ConfigOverlay",
    "ExportDocument",
    "ImportDocumentError",
    "ImportMode",
    "ImportResult",
    "InvalidOverrideError",
    "apply_label_and_backdrop",
    "merge_assignments",
    "override_assignments",
    "parse_assignment_document",
    "SpellFilter",
    "build_spell_list_editor",
    "parse_filter_query",
]
