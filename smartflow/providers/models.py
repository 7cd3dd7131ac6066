# -*- coding: utf-8 -*-
"""Pydantic data models for providers, models and feature bindings."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class ApiFormat(str, Enum):
    """Wire format spoken by a model endpoint."""

    CHAT_COMPLETIONS = "chat-completions"
    RESPONSES = "responses"


class ReasoningEffort(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


VALID_REASONING_EFFORTS: tuple[str, ...] = tuple(
    e.value for e in ReasoningEffort
)

ModelType = Literal["chat", "image", "embedding", "tts", "asr"]


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


class LocalKeyConfig(BaseModel):
    """API key stored inline in settings."""

    mode: Literal["local"] = "local"
    value: str = Field(default="", description="API key value")


class SharedKeyConfig(BaseModel):
    """API key held by an external secret store, referenced by id."""

    mode: Literal["shared"] = "shared"
    secret_id: str = Field(default="", description="Secret store id")


KeyConfig = Annotated[
    Union[LocalKeyConfig, SharedKeyConfig],
    Field(discriminator="mode"),
]


# ---------------------------------------------------------------------------
# Providers and models
# ---------------------------------------------------------------------------


class ModelConfig(BaseModel):
    """A single model offered by a provider."""

    id: str = Field(..., description="Unique id within the provider")
    name: str = Field(..., description="Model identifier used in API calls")
    display_name: str = Field(default="", description="Human-readable name")
    temperature: float = Field(default=0.7, description="0 to 2")
    top_p: float = Field(default=1.0, description="0 to 1")
    max_output_tokens: int = Field(
        default=0,
        description="Output token cap; 0 leaves it to the provider",
    )
    api_format: ApiFormat = Field(default=ApiFormat.CHAT_COMPLETIONS)
    # Kept as a plain string so stale values loaded from disk surface as
    # InvalidReasoningEffortError at request time instead of a load failure.
    reasoning_effort: Optional[str] = Field(
        default=None,
        description="low / medium / high (responses format only)",
    )
    model_type: ModelType = Field(default="chat")
    context_length: Optional[int] = Field(default=None)

    @property
    def label(self) -> str:
        return self.display_name or self.name


class Provider(BaseModel):
    """A named OpenAI-compatible backend with its credentials and models."""

    id: str
    name: str
    endpoint: str = Field(..., description="Base API URL as entered")
    key_config: Optional[KeyConfig] = Field(
        default=None,
        description="Single API key",
    )
    key_configs: List[KeyConfig] = Field(
        default_factory=list,
        description="Ordered keys for rotation (takes precedence)",
    )
    current_key_index: int = Field(default=0)
    models: List[ModelConfig] = Field(default_factory=list)


class FeatureBinding(BaseModel):
    """Feature name -> provider + model + prompt."""

    provider_id: str
    model_id: str
    prompt_template: str = ""


class AssistantConfig(BaseModel):
    provider_id: Optional[str] = None
    model_id: Optional[str] = None


class VoiceSettings(BaseModel):
    """Voice features that reference a provider/model outside bindings."""

    post_processing_provider_id: Optional[str] = None
    post_processing_model_id: Optional[str] = None
    assistant: AssistantConfig = Field(default_factory=AssistantConfig)


class Settings(BaseModel):
    """Root of settings.json."""

    providers: List[Provider] = Field(default_factory=list)
    feature_bindings: Dict[str, FeatureBinding] = Field(default_factory=dict)
    voice: VoiceSettings = Field(default_factory=VoiceSettings)
    timeout: float = Field(default=15.0, description="Request timeout (s)")
    debug_mode: bool = False


class ResolvedConfig(BaseModel):
    """Fully dereferenced feature config. Never persisted."""

    provider: Provider
    model: ModelConfig
    prompt_template: str = ""


class ProviderModelOption(BaseModel):
    """Flattened provider/model choice for pickers."""

    label: str
    provider_id: str
    model_id: str


class ProviderPreset(BaseModel):
    """Static template for a well-known provider."""

    id: str = Field(..., description="Preset identifier")
    name: str = Field(..., description="Human-readable provider name")
    endpoint: str = Field(default="", description="Default API base URL")
    api_key_prefix: str = Field(
        default="",
        description="Expected prefix for the API key",
    )
    models: List[str] = Field(
        default_factory=list,
        description="Suggested model identifiers",
    )
