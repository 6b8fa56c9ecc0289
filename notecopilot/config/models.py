from pydantic import BaseModel, Field
from typing import Literal

# Sentinel model id meaning "use the custom_model_id field instead".
CUSTOM_MODEL_SENTINEL = "other"

DEFAULT_BEDROCK_MODEL = "anthropic.claude-sonnet-4-20250514-v1:0"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_GROQ_MODEL = "llama-3.3-70b-versatile"


class BedrockSettings(BaseModel):
    access_key_id: str = ""
    secret_access_key: str = ""
    session_token: str = ""
    region: str = "us-east-1"
    model_id: str = DEFAULT_BEDROCK_MODEL
    custom_model_id: str = ""


class GeminiSettings(BaseModel):
    api_key: str = ""
    model_id: str = DEFAULT_GEMINI_MODEL
    custom_model_id: str = ""
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"


class GroqSettings(BaseModel):
    api_key: str = ""
    model_id: str = DEFAULT_GROQ_MODEL
    custom_model_id: str = ""
    base_url: str = "https://api.groq.com/openai/v1"


class ConnectionSettings(BaseModel):
    cache_duration_seconds: float = Field(default=300.0, ge=0)


class AssistantConfig(BaseModel):
    # Kept as a plain string: unknown names fall back to bedrock at runtime.
    provider: str = "bedrock"
    bedrock: BedrockSettings = Field(default_factory=BedrockSettings)
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    groq: GroqSettings = Field(default_factory=GroqSettings)
    max_tokens: int = Field(default=8192, gt=0)
    temperature: float = Field(default=0.7, ge=0, le=2)
    timeout: int = Field(default=60, gt=0)
    max_retries: int = Field(default=2, ge=0)
    system_prompt: str = ""
    auto_include_context: bool = True
    stream_responses: bool = True
    excluded_notes: list[str] = Field(default_factory=list)
    max_note_tokens: int = Field(default=8000, gt=0)
    connection: ConnectionSettings = Field(default_factory=ConnectionSettings)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"
