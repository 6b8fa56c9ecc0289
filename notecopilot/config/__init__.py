from .loader import load_config
from .models import (
    CUSTOM_MODEL_SENTINEL,
    AssistantConfig,
    BedrockSettings,
    ConnectionSettings,
    GeminiSettings,
    GroqSettings,
)

__all__ = [
    "CUSTOM_MODEL_SENTINEL",
    "AssistantConfig",
    "BedrockSettings",
    "ConnectionSettings",
    "GeminiSettings",
    "GroqSettings",
    "load_config",
]
