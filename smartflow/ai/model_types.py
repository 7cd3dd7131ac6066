# -*- coding: utf-8 -*-
"""Infer model type, abilities and context length from a model id.

Keyword rules are case-insensitive substring matches. A ``!`` prefix
excludes (checked first) and a ``^`` prefix only matches at the start.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from ..providers.models import ModelType

# Checked in order; anything unmatched is "chat".
TYPE_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (
        "image",
        (
            "dall-e",
            "dalle",
            "midjourney",
            "stable-diffusion",
            "sd-",
            "flux",
            "imagen",
            "image-gen",
            "cogview",
            "wanxiang",
            "!gemini",
        ),
    ),
    (
        "embedding",
        ("embedding", "embed", "bge", "m3e", "e5-", "text-embedding"),
    ),
    (
        "tts",
        (
            "tts",
            "voice-gen",
            "audio-out",
            "text-to-speech",
            "elevenlabs",
            "cosyvoice",
        ),
    ),
    (
        "asr",
        (
            "whisper",
            "asr",
            "stt",
            "speech-to-text",
            "audio-in",
            "transcribe",
            "sensevoice",
        ),
    ),
)

MODEL_FAMILIES: Dict[str, Tuple[str, ...]] = {
    "openai": ("gpt-", "o1", "o3", "o4", "chatgpt"),
    "anthropic": ("claude",),
    "google": ("gemini", "gemma", "learnlm"),
    "deepseek": ("deepseek",),
    "qwen": ("qwen", "qwq", "qvq"),
    "zhipu": ("glm", "chatglm"),
    "moonshot": ("moonshot", "kimi"),
    "mistral": ("mistral", "mixtral"),
    "llama": ("llama", "llava"),
}

ABILITY_KEYWORDS: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "openai": {
        "vision": ("4o", "gpt-4-turbo", "gpt-4-vision", "gpt-5", "!audio"),
        "reasoning": ("o1", "o3", "o4", "deep-research"),
        "function_call": ("gpt-4", "gpt-3.5-turbo", "gpt-5", "o3", "o4"),
        "web_search": ("search", "deep-research"),
    },
    "anthropic": {
        "vision": ("claude-3", "claude-4"),
        "reasoning": ("claude-3.5-sonnet", "claude-3-opus", "claude-4"),
        "function_call": ("claude-3", "claude-4"),
    },
    "google": {
        "vision": ("gemini", "learnlm", "!embedding", "!gemma"),
        "reasoning": ("gemini-3", "gemini-2.5", "!flash-lite", "!image"),
        "function_call": ("gemini", "learnlm", "!embedding", "!gemma"),
        "web_search": ("gemini-2.5", "gemini-3", "!embedding"),
    },
    "deepseek": {
        "vision": ("deepseek-vl", "janus", "ocr"),
        "reasoning": ("deepseek-reasoner", "deepseek-r1", "r1-"),
        "function_call": ("deepseek-chat", "deepseek-reasoner", "deepseek-v3"),
    },
    "qwen": {
        "vision": ("-vl", "qvq", "-omni"),
        "reasoning": ("qwq", "qvq", "thinking"),
        "function_call": ("qwen-max", "qwen-plus", "qwen-turbo", "qwen2"),
    },
    "zhipu": {
        "vision": ("glm-4v", "glm-4.5v", "-4v", "cogvlm"),
        "reasoning": ("glm-z1", "glm-4.5", "glm-4.6"),
        "function_call": ("glm-4",),
        "web_search": ("web-search", "alltools"),
    },
    "moonshot": {
        "vision": ("vision",),
        "reasoning": ("kimi-thinking", "kimi-k2"),
        "function_call": ("moonshot-v1", "kimi"),
    },
    "mistral": {
        "vision": ("pixtral",),
        "function_call": ("mistral-large", "mistral-medium", "mixtral"),
    },
    "llama": {
        "vision": ("llava", "llama-3.2-vision"),
        "function_call": ("llama-3.1", "llama-3.2", "llama-3.3"),
    },
    "default": {
        "vision": ("vision", "-vl", "vl-", "-omni", "ocr"),
        "reasoning": ("thinking", "reasoner", "reason"),
        "web_search": ("search",),
    },
}

ABILITIES = ("vision", "reasoning", "function_call", "web_search")

# (keyword, tokens); first match wins, so specific ids precede families.
CONTEXT_LENGTHS: Tuple[Tuple[str, int], ...] = (
    ("gpt-4.1", 1_047_576),
    ("gpt-4o", 128_000),
    ("gpt-4-turbo", 128_000),
    ("gpt-4-32k", 32_768),
    ("gpt-4", 8_192),
    ("gpt-3.5-turbo", 16_385),
    ("gpt-5", 400_000),
    ("o1", 200_000),
    ("o3", 200_000),
    ("o4", 200_000),
    ("claude", 200_000),
    ("gemini-1.5-pro", 2_097_152),
    ("gemini", 1_048_576),
    ("deepseek", 65_536),
    ("qwen-long", 10_000_000),
    ("qwen", 131_072),
    ("qwq", 131_072),
    ("glm-4-long", 1_000_000),
    ("glm", 128_000),
    ("moonshot-v1-8k", 8_192),
    ("moonshot-v1-32k", 32_768),
    ("moonshot-v1-128k", 131_072),
    ("kimi", 131_072),
    ("mistral", 32_768),
    ("llama-3", 131_072),
)


def matches_keywords(model_id: str, keywords: Sequence[str]) -> bool:
    lowered = model_id.lower()

    def _hit(keyword: str) -> bool:
        keyword = keyword.lower()
        if keyword.startswith("^"):
            return lowered.startswith(keyword[1:])
        return keyword in lowered

    if any(_hit(k[1:]) for k in keywords if k.startswith("!")):
        return False
    return any(_hit(k) for k in keywords if not k.startswith("!"))


def detect_model_family(model_id: str) -> str:
    lowered = model_id.lower()
    for family, keywords in MODEL_FAMILIES.items():
        if any(keyword in lowered for keyword in keywords):
            return family
    return "default"


def infer_model_type(
    model_id: str,
    explicit_type: Optional[ModelType] = None,
) -> ModelType:
    if explicit_type:
        return explicit_type
    for model_type, keywords in TYPE_KEYWORDS:
        if matches_keywords(model_id, keywords):
            return model_type  # type: ignore[return-value]
    return "chat"


def infer_model_abilities(
    model_id: str,
    model_type: Optional[ModelType] = None,
) -> List[str]:
    """Abilities a chat model likely has; empty for other model types."""
    if (model_type or infer_model_type(model_id)) != "chat":
        return []
    rules = ABILITY_KEYWORDS.get(
        detect_model_family(model_id),
        ABILITY_KEYWORDS["default"],
    )
    return [
        ability
        for ability in ABILITIES
        if rules.get(ability) and matches_keywords(model_id, rules[ability])
    ]


def infer_context_length(model_id: str) -> Optional[int]:
    lowered = model_id.lower()
    for keyword, length in CONTEXT_LENGTHS:
        if keyword in lowered:
            return length
    return None
