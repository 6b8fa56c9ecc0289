"""Extraction of edit commands from free-form model replies.

The pipeline is a short, ordered list of best-effort repairs followed by a
strict marker-delimited extraction:

1. sanitize_markers: normalise damaged marker spellings and wrap bare
   ``{"action": ..., "params": {...}}`` objects in markers.
2. Pull every ``<<<EDIT_START>>> ... <<<EDIT_END>>>`` payload.
3. sanitize_json: drop trailing commas, cut prose before the first ``{`` and
   after the last ``}``.
4. json.loads, then structural validation.

Payloads that still fail to parse are skipped. Not recovered: JSON split
across several marker pairs, bare objects whose params contain nested
objects, unescaped quotes inside string values, and marker damage other than
missing/extra angle brackets.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from notecopilot.edits.models import EDIT_ACTIONS, EditCommand

logger = logging.getLogger(__name__)

EDIT_START = "<<<EDIT_START>>>"
EDIT_END = "<<<EDIT_END>>>"

_START_VARIANT_RE = re.compile(r"<?<<?EDIT_START>?>?>?")
_END_VARIANT_RE = re.compile(r"<?<<?EDIT_END>?>?>?[}\s]*")
_BARE_COMMAND_RE = re.compile(
    r'\{"action"\s*:\s*"[^"]+"\s*,\s*"params"\s*:\s*\{[^}]+\}\s*\}'
)
_BLOCK_RE = re.compile(
    re.escape(EDIT_START) + r"\s*(.*?)\s*" + re.escape(EDIT_END), re.DOTALL
)
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")

_PREVIEW_LIMIT = 50


def get_markers() -> dict[str, str]:
    return {"start": EDIT_START, "end": EDIT_END}


def sanitize_markers(response: str) -> str:
    """Repair common marker mistakes. Applying it twice changes nothing."""
    result = _START_VARIANT_RE.sub(EDIT_START, response)
    result = _BARE_COMMAND_RE.sub(_wrap_bare_command, result)
    # The end-marker pattern also swallows stray braces/whitespace after the
    # marker, so keep one newline if the model put one there.
    return _END_VARIANT_RE.sub(_end_marker_sub, result)


def _end_marker_sub(match: re.Match[str]) -> str:
    return EDIT_END + ("\n" if "\n" in match.group(0) else "")


def _wrap_bare_command(match: re.Match[str]) -> str:
    text = match.string
    before = text[: match.start()].rstrip()
    after = text[match.end():].lstrip()
    if before.endswith(EDIT_START) or _END_VARIANT_RE.match(after):
        return match.group(0)
    return f"{EDIT_START}\n{match.group(0)}\n{EDIT_END}"


def sanitize_json(payload: str) -> str:
    """Clean up a candidate JSON payload before parsing."""
    result = _TRAILING_COMMA_RE.sub(r"\1", payload)
    first = result.find("{")
    last = result.rfind("}")
    if first == -1 or last < first:
        return ""
    return result[first:last + 1]


def is_valid_edit_command(obj: Any) -> bool:
    """Structural check only: a known action and an object of params."""
    if not isinstance(obj, dict):
        return False
    action = obj.get("action")
    if not isinstance(action, str) or action not in EDIT_ACTIONS:
        return False
    return isinstance(obj.get("params"), dict)


def parse_edit_commands(response: str) -> list[EditCommand]:
    """Extract every structurally valid edit command, in order of appearance."""
    commands: list[EditCommand] = []
    for match in _BLOCK_RE.finditer(sanitize_markers(response)):
        payload = sanitize_json(match.group(1).strip())
        try:
            parsed = json.loads(payload)
        except json.JSONDecodeError as e:
            logger.debug("skipping unparseable edit block: %s", e)
            continue
        if not is_valid_edit_command(parsed):
            logger.debug("skipping edit block with invalid shape: %.80s", payload)
            continue
        try:
            commands.append(EditCommand.model_validate(parsed))
        except ValidationError as e:
            logger.debug("skipping edit block with bad params: %s", e)
    return commands


def has_edit_commands(response: str) -> bool:
    return EDIT_START in sanitize_markers(response)


def get_display_text(response: str) -> str:
    """The reply with every edit block removed."""
    cleaned = _BLOCK_RE.sub("", sanitize_markers(response))
    return cleaned.strip()


def _truncate(text: str, limit: int = _PREVIEW_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def generate_preview(command: EditCommand) -> str:
    """One-line human description of what a command will do."""
    p = command.params
    match command.action:
        case "replace_selection":
            return f'Replace selection with: "{_truncate(p.body)}"'
        case "insert_at_cursor":
            return f'Insert at cursor: "{_truncate(p.body)}"'
        case "replace_range":
            return f"Replace lines {p.start_line}-{p.end_line}"
        case "find_replace":
            suffix = " (all occurrences)" if p.all else ""
            return f'Replace "{p.find}" with "{p.replace}"{suffix}'
        case "update_section":
            return f'Update section "{p.heading}"'
        case "append":
            return f'Append to note: "{_truncate(p.body)}"'
        case "prepend":
            return f'Prepend to note: "{_truncate(p.body)}"'
        case "replace_all":
            return "Replace entire note content"
        case "insert_after_heading":
            return f'Insert after "{p.heading}": "{_truncate(p.body)}"'
    return f"Unknown action: {command.action}"
