# -*- coding: utf-8 -*-
"""Built-in provider presets and known feature names."""

from __future__ import annotations

from typing import List, Optional

from .models import ProviderPreset

# ---------------------------------------------------------------------------
# Provider presets
# ---------------------------------------------------------------------------

PRESET_OPENAI = ProviderPreset(
    id="openai",
    name="OpenAI",
    endpoint="https://api.openai.com/v1",
    api_key_prefix="sk-",
    models=["gpt-4o-mini", "gpt-4o", "o4-mini"],
)

PRESET_DEEPSEEK = ProviderPreset(
    id="deepseek",
    name="DeepSeek",
    endpoint="https://api.deepseek.com",
    api_key_prefix="sk-",
    models=["deepseek-chat", "deepseek-reasoner"],
)

PRESET_SILICONFLOW = ProviderPreset(
    id="siliconflow",
    name="SiliconFlow",
    endpoint="https://api.siliconflow.cn/v1",
    api_key_prefix="sk-",
    models=["Qwen/Qwen2.5-7B-Instruct", "deepseek-ai/DeepSeek-V3"],
)

PRESET_DASHSCOPE = ProviderPreset(
    id="dashscope",
    name="DashScope",
    endpoint="https://dashscope.aliyuncs.com/compatible-mode/v1",
    api_key_prefix="sk-",
    models=["qwen-plus", "qwen-max"],
)

PRESET_ZHIPU = ProviderPreset(
    id="zhipu",
    name="Zhipu AI",
    endpoint="https://open.bigmodel.cn/api/paas/v4",
    models=["glm-4-flash", "glm-4.5"],
)

PRESET_MOONSHOT = ProviderPreset(
    id="moonshot",
    name="Moonshot",
    endpoint="https://api.moonshot.cn/v1",
    api_key_prefix="sk-",
    models=["moonshot-v1-8k", "kimi-k2-0711-preview"],
)

PRESET_OPENROUTER = ProviderPreset(
    id="openrouter",
    name="OpenRouter",
    endpoint="https://openrouter.ai/api/v1",
    api_key_prefix="sk-or-",
    models=["openai/gpt-4o-mini"],
)

PRESET_CUSTOM = ProviderPreset(
    id="custom",
    name="Custom",
)

# Registry: preset_id -> ProviderPreset
PRESETS: dict[str, ProviderPreset] = {
    p.id: p
    for p in (
        PRESET_OPENAI,
        PRESET_DEEPSEEK,
        PRESET_SILICONFLOW,
        PRESET_DASHSCOPE,
        PRESET_ZHIPU,
        PRESET_MOONSHOT,
        PRESET_OPENROUTER,
        PRESET_CUSTOM,
    )
}


def get_preset(preset_id: str) -> Optional[ProviderPreset]:
    """Return a provider preset by id, or None if not found."""
    return PRESETS.get(preset_id)


def list_presets() -> List[ProviderPreset]:
    """Return all registered provider presets."""
    return list(PRESETS.values())


# ---------------------------------------------------------------------------
# Features
# ---------------------------------------------------------------------------

# Features recognised by convention. Bindings accept any name.
KNOWN_FEATURES: tuple[str, ...] = (
    "naming",
    "translation",
    "writing",
    "tagging",
    "categorizing",
)

# Features whose answer is a single short value (name, tag list, folder)
# and goes through clean_output by default.
SHORT_ANSWER_FEATURES: tuple[str, ...] = ("naming", "tagging", "categorizing")

NAMING_PROMPT_TEMPLATE = """\
Generate a concise, accurate file name for the note below.
Reply with the file name only: no extension, no quotes, no explanation.
{{#if currentFileName}}
Current file name: {{currentFileName}}
{{/if}}
{{#if directoryNamingStyle}}
Naming style used by sibling files: {{directoryNamingStyle}}
{{/if}}
Note content:
{{content}}
"""

TAGGING_PROMPT_TEMPLATE = """\
Suggest up to 5 short tags for the note below.
Reply with the tags on one line, separated by commas.
{{#if existingTags}}
Existing tags in the vault: {{existingTags}}
{{/if}}
Note content:
{{content}}
"""

CATEGORIZING_PROMPT_TEMPLATE = """\
Choose the best folder for the note below.
Candidate folders: {{folders}}
Reply with the folder path only.
Note content:
{{content}}
"""

TRANSLATION_PROMPT_TEMPLATE = """\
Translate the text below into {{targetLanguage}}.
Reply with the translation only.

{{content}}
"""

WRITING_PROMPT_TEMPLATE = """\
Improve the clarity and flow of the text below without changing its meaning.

{{content}}
"""

DEFAULT_PROMPT_TEMPLATES: dict[str, str] = {
    "naming": NAMING_PROMPT_TEMPLATE,
    "translation": TRANSLATION_PROMPT_TEMPLATE,
    "writing": WRITING_PROMPT_TEMPLATE,
    "tagging": TAGGING_PROMPT_TEMPLATE,
    "categorizing": CATEGORIZING_PROMPT_TEMPLATE,
}


def get_default_prompt_template(feature: str) -> str:
    """Return the built-in prompt for *feature*, or ``"{{content}}"``."""
    return DEFAULT_PROMPT_TEMPLATES.get(feature, "{{content}}")
