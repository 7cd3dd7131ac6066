# -*- coding: utf-8 -*-
"""Provider management: models, presets, key resolution and storage."""

from .keys import KeyResolver, describe_key_config, mask_api_key
from .manager import (
    ConfigError,
    ConfigManager,
    ConfigValidationError,
    ModelNotFoundError,
    PersistSettings,
    ProviderNotFoundError,
)
from .models import (
    VALID_REASONING_EFFORTS,
    ApiFormat,
    AssistantConfig,
    FeatureBinding,
    KeyConfig,
    LocalKeyConfig,
    ModelConfig,
    Provider,
    ProviderModelOption,
    ProviderPreset,
    ReasoningEffort,
    ResolvedConfig,
    Settings,
    SharedKeyConfig,
    VoiceSettings,
)
from .registry import (
    KNOWN_FEATURES,
    PRESETS,
    SHORT_ANSWER_FEATURES,
    get_default_prompt_template,
    get_preset,
    list_presets,
)
from .store import (
    get_settings_json_path,
    load_settings_json,
    make_json_persister,
    save_settings_json,
)

__all__ = [
    # keys
    "KeyResolver",
    "describe_key_config",
    "mask_api_key",
    # manager
    "ConfigError",
    "ConfigManager",
    "ConfigValidationError",
    "ModelNotFoundError",
    "PersistSettings",
    "ProviderNotFoundError",
    # models
    "VALID_REASONING_EFFORTS",
    "ApiFormat",
    "AssistantConfig",
    "FeatureBinding",
    "KeyConfig",
    "LocalKeyConfig",
    "ModelConfig",
    "Provider",
    "ProviderModelOption",
    "ProviderPreset",
    "ReasoningEffort",
    "ResolvedConfig",
    "Settings",
    "SharedKeyConfig",
    "VoiceSettings",
    # registry
    "KNOWN_FEATURES",
    "PRESETS",
    "SHORT_ANSWER_FEATURES",
    "get_default_prompt_template",
    "get_preset",
    "list_presets",
    # store
    "get_settings_json_path",
    "load_settings_json",
    "make_json_persister",
    "save_settings_json",
]
