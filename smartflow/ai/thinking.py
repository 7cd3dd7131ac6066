# -*- coding: utf-8 -*-
"""Split inline reasoning markup out of model output."""

from __future__ import annotations

import re
from typing import List, NamedTuple, Optional

# (open, close) pairs; content between them is reasoning, not answer.
THINKING_TAGS = (
    ("<think>", "</think>"),
    ("<thinking>", "</thinking>"),
    ("【思考】", "【/思考】"),
    ("[思考]", "[/思考]"),
)

_MULTI_SPACE_RE = re.compile(r" {2,}")

# Matched on the original text; lowercasing can change its length.
_TAG_PATTERNS = tuple(
    re.compile(
        re.escape(open_tag) + r"(.*?)" + re.escape(close_tag),
        re.IGNORECASE | re.DOTALL,
    )
    for open_tag, close_tag in THINKING_TAGS
)


class ThinkingResult(NamedTuple):
    content: str
    thinking: Optional[str]


class ThinkingProcessor:
    @classmethod
    def process(cls, text: str) -> ThinkingResult:
        """Return the answer with reasoning blocks removed, plus the
        reasoning joined by newlines (None if there was none).

        An unclosed opening tag is left in place; it usually means the
        output was cut off.
        """
        if not text:
            return ThinkingResult("", None)
        parts: List[str] = []
        for pattern in _TAG_PATTERNS:
            text = cls._filter_tag(text, pattern, parts)
        thinking = "\n".join(parts) if parts else None
        return ThinkingResult(cls._clean_whitespace(text), thinking)

    @staticmethod
    def _filter_tag(
        text: str,
        pattern: re.Pattern,
        parts: List[str],
    ) -> str:
        def collect(match: re.Match) -> str:
            inner = match.group(1).strip()
            if inner:
                parts.append(inner)
            return ""

        return pattern.sub(collect, text)

    @staticmethod
    def _clean_whitespace(text: str) -> str:
        lines: List[str] = []
        prev_empty = False
        for line in _MULTI_SPACE_RE.sub(" ", text).splitlines():
            line = line.strip()
            if not line:
                if lines and not prev_empty:
                    lines.append("")
                prev_empty = True
                continue
            lines.append(line)
            prev_empty = False
        while lines and not lines[-1]:
            lines.pop()
        return "\n".join(lines)

    @staticmethod
    def has_thinking(text: str) -> bool:
        lowered = (text or "").lower()
        return any(
            open_tag.lower() in lowered for open_tag, _ in THINKING_TAGS
        )
