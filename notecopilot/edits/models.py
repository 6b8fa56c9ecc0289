"""Pydantic models for edit commands and their execution results."""

from __future__ import annotations

from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, model_validator

EditAction = Literal[
    "replace_selection",
    "insert_at_cursor",
    "replace_range",
    "find_replace",
    "update_section",
    "append",
    "prepend",
    "replace_all",
    "insert_after_heading",
]

EDIT_ACTIONS: tuple[str, ...] = get_args(EditAction)

# Actions whose body is conventionally called "content" rather than "text".
_CONTENT_FIRST: frozenset[str] = frozenset({"update_section", "replace_all"})


class EditParams(BaseModel):
    """Action parameters with the text/content aliases folded into `text`."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    text: str | None = None
    find: str | None = None
    replace: str | None = None
    all: bool = False
    heading: str | None = None
    start_line: int | None = Field(default=None, alias="startLine")
    end_line: int | None = Field(default=None, alias="endLine")

    @property
    def body(self) -> str:
        return self.text or ""


class EditCommand(BaseModel):
    """One structured edit emitted by the model."""

    action: EditAction
    params: EditParams = Field(default_factory=EditParams)

    @model_validator(mode="before")
    @classmethod
    def _coalesce_text_alias(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        params = data.get("params")
        if not isinstance(params, dict) or "content" not in params:
            return data
        params = dict(params)
        content = params.pop("content")
        text = params.get("text")
        if data.get("action") in _CONTENT_FIRST:
            params["text"] = content if content is not None else text
        elif text is None:
            params["text"] = content
        return {**data, "params": params}


class ExecutionResult(BaseModel):
    command: EditCommand
    success: bool
    message: str
