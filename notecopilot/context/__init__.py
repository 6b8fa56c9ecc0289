from notecopilot.context.builder import CHARS_PER_TOKEN, ChatMessage, ContextBuilder
from notecopilot.context.prompts import default_system_prompt
from notecopilot.context.transforms import (
    TRANSFORM_DESCRIPTIONS,
    TRANSFORM_NAMES,
    TRANSFORM_TYPES,
    TransformType,
    get_transform_prompt,
)

__all__ = [
    "CHARS_PER_TOKEN",
    "ChatMessage",
    "ContextBuilder",
    "TRANSFORM_DESCRIPTIONS",
    "TRANSFORM_NAMES",
    "TRANSFORM_TYPES",
    "TransformType",
    "default_system_prompt",
    "get_transform_prompt",
]
