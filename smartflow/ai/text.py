# -*- coding: utf-8 -*-
"""Prompt rendering and output cleanup shared by all features."""

from __future__ import annotations

import re
from typing import Mapping, Optional

from ..constant import MAX_OUTPUT_LENGTH, MAX_PROMPT_CONTENT_CHARS

_IF_BLOCK_RE = re.compile(r"\{\{#if\s+(\w+)\}\}(.*?)\{\{/if\}\}", re.DOTALL)
_VAR_RE = re.compile(r"\{\{(\w+)\}\}")

_MARKER_RE = re.compile(r"(?:文件名\s*[：:]|title\s*:)", re.IGNORECASE)
_PREFIX_RE = re.compile(r"^(?:文件名\s*[：:]|title\s*:)\s*", re.IGNORECASE)

WRAPPING_PAIRS = (
    ('"', '"'),
    ("'", "'"),
    ("`", "`"),
    ("“", "”"),
    ("‘", "’"),
    ("《", "》"),
    ("「", "」"),
    ("【", "】"),
    ("[", "]"),
)


def render_prompt(template: str, variables: Mapping[str, object]) -> str:
    """Render ``{{var}}`` and ``{{#if var}}...{{/if}}`` placeholders.

    Unknown variables render as empty strings.
    """

    def _if(match: re.Match) -> str:
        return match.group(2) if variables.get(match.group(1)) else ""

    def _var(match: re.Match) -> str:
        value = variables.get(match.group(1))
        return "" if value is None else str(value)

    return _VAR_RE.sub(_var, _IF_BLOCK_RE.sub(_if, template))


def smart_truncate(
    content: str,
    max_chars: int = MAX_PROMPT_CONTENT_CHARS,
) -> str:
    """Keep the first 60% and last 30% of overly long content."""
    if len(content) <= max_chars:
        return content
    head_chars = int(max_chars * 0.6)
    tail_chars = int(max_chars * 0.3)
    head = content[:head_chars]
    tail = content[len(content) - tail_chars :]
    return (
        f"{head}\n\n[... Content truncated due to length. Total "
        f"{len(content)} characters, showing first {head_chars} and last "
        f"{tail_chars} characters ...]\n\n{tail}"
    )


def _pick_answer_line(text: str) -> str:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if len(lines) <= 1:
        return lines[0] if lines else ""
    for line in reversed(lines):
        parts = _MARKER_RE.split(line, maxsplit=1)
        if len(parts) == 2:
            return parts[1].strip() or line
    return lines[-1]


def strip_wrapping(text: str) -> str:
    """Remove one layer of matching quotes or brackets around *text*."""
    for left, right in WRAPPING_PAIRS:
        if len(text) >= 2 and text.startswith(left) and text.endswith(right):
            return text[len(left) : -len(right)].strip()
    return text


def clean_output(
    content: str,
    max_length: Optional[int] = MAX_OUTPUT_LENGTH,
) -> str:
    """Reduce a model answer to the bare value a feature expects.

    Multi-line answers collapse to the line after an explicit
    ``Title:`` / ``文件名：`` marker, else the last line. Wrapping quotes,
    a trailing ``.md`` and a leading marker are removed, then the result is
    capped at *max_length* characters.
    """
    text = _pick_answer_line((content or "").strip())
    text = strip_wrapping(text)
    if text.lower().endswith(".md"):
        text = text[:-3]
    text = _PREFIX_RE.sub("", text).strip()
    text = strip_wrapping(text)
    if max_length is not None and len(text) > max_length:
        text = text[:max_length]
    return text.strip()
