"""Edit-command protocol: extraction, validation and execution."""

from notecopilot.edits.models import EDIT_ACTIONS, EditAction, EditCommand, EditParams, ExecutionResult
from notecopilot.edits.parser import (
    EDIT_END,
    EDIT_START,
    generate_preview,
    get_display_text,
    get_markers,
    has_edit_commands,
    parse_edit_commands,
    sanitize_json,
    sanitize_markers,
)
from notecopilot.edits.protocol import EditProtocol

__all__ = [
    "EDIT_ACTIONS",
    "EDIT_END",
    "EDIT_START",
    "EditAction",
    "EditCommand",
    "EditParams",
    "EditProtocol",
    "ExecutionResult",
    "generate_preview",
    "get_display_text",
    "get_markers",
    "has_edit_commands",
    "parse_edit_commands",
    "sanitize_json",
    "sanitize_markers",
]
