# -*- coding: utf-8 -*-
"""Turn a raw 2xx response body into content, reasoning and usage."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from .errors import InvalidResponseError
from .text import clean_output
from .thinking import ThinkingProcessor
from ..constant import MAX_OUTPUT_LENGTH
from ..providers.models import ApiFormat

logger = logging.getLogger(__name__)


class Usage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0
    reasoning_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class ParsedResponse(BaseModel):
    content: str
    reasoning_summary: Optional[str] = None
    usage: Optional[Usage] = None
    api_format: ApiFormat = Field(default=ApiFormat.CHAT_COMPLETIONS)


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _join_text_parts(
    parts: Any,
    text_types: tuple,
    separator: str = "",
) -> str:
    if isinstance(parts, str):
        return parts
    if not isinstance(parts, list):
        return ""
    out: List[str] = []
    for part in parts:
        if isinstance(part, str):
            out.append(part)
        elif isinstance(part, dict) and part.get("type", "text") in (
            text_types
        ):
            text = part.get("text")
            if isinstance(text, str):
                out.append(text)
    return separator.join(out)


class ResponseParser:
    @staticmethod
    def detect_format(raw: Any) -> Optional[ApiFormat]:
        if not isinstance(raw, dict):
            return None
        if isinstance(raw.get("choices"), list):
            return ApiFormat.CHAT_COMPLETIONS
        if isinstance(raw.get("output"), list):
            return ApiFormat.RESPONSES
        return None

    @classmethod
    def parse(
        cls,
        raw: Any,
        format_hint: Optional[ApiFormat] = None,
        clean: bool = True,
        max_length: Optional[int] = MAX_OUTPUT_LENGTH,
    ) -> ParsedResponse:
        """Parse *raw* as chat-completions or responses.

        The format is detected from the body shape; *format_hint* is only
        used when the body carries no ``choices``/``output`` array, so a
        provider answering in the other format still parses. With
        ``clean=True`` the content goes through :func:`clean_output`.

        Raises:
            InvalidResponseError: unknown shape, explicit provider error
                or empty content.
        """
        if isinstance(raw, dict) and isinstance(raw.get("error"), dict):
            error = raw["error"]
            raise InvalidResponseError(
                str(error.get("message") or "Provider returned an error"),
                raw=raw,
                malformed=False,
            )

        fmt = cls.detect_format(raw)
        if fmt is None:
            if format_hint is None or not isinstance(raw, dict):
                raise InvalidResponseError(
                    "Unrecognized response format",
                    raw=raw,
                )
            fmt = ApiFormat(format_hint)
            logger.debug("Response shape unknown, trying %s", fmt.value)

        if fmt is ApiFormat.RESPONSES:
            parsed = cls.parse_responses(raw)
        else:
            parsed = cls.parse_chat_completions(raw)

        if clean:
            content = clean_output(parsed.content, max_length=max_length)
            if not content:
                raise InvalidResponseError(
                    "Response content is empty after cleanup",
                    raw=raw,
                )
            parsed.content = content
        return parsed

    @classmethod
    def parse_chat_completions(cls, raw: dict) -> ParsedResponse:
        choices = raw.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            raise InvalidResponseError("Response has no choices", raw=raw)
        message = choices[0].get("message") or {}
        if not isinstance(message, dict):
            raise InvalidResponseError(
                "Response message is malformed",
                raw=raw,
            )
        content = message.get("content") or ""
        if isinstance(content, list):
            content = _join_text_parts(content, ("text", "output_text"))
        elif not isinstance(content, str):
            raise InvalidResponseError(
                "Response message content is malformed",
                raw=raw,
            )
        reasoning = message.get("reasoning_content") or ""

        if not str(content).strip():
            if not str(reasoning).strip():
                raise InvalidResponseError(
                    "Response message content is empty",
                    raw=raw,
                )
            # some providers put the whole answer in reasoning_content
            content, reasoning = reasoning, ""

        result = ThinkingProcessor.process(str(content))
        summary_parts = [
            part for part in (str(reasoning).strip(), result.thinking) if part
        ]
        if not result.content:
            raise InvalidResponseError(
                "Response contains only reasoning markup",
                raw=raw,
            )
        return ParsedResponse(
            content=result.content,
            reasoning_summary="\n".join(summary_parts) or None,
            usage=cls._chat_usage(raw.get("usage")),
            api_format=ApiFormat.CHAT_COMPLETIONS,
        )

    @classmethod
    def parse_responses(cls, raw: dict) -> ParsedResponse:
        output = raw.get("output") or []
        if not output:
            raise InvalidResponseError("Response output is empty", raw=raw)

        content_parts: List[str] = []
        summary_parts: List[str] = []
        for item in output:
            if not isinstance(item, dict):
                continue
            kind = item.get("type")
            if kind == "message":
                text = _join_text_parts(
                    item.get("content"),
                    ("output_text", "text"),
                )
                if text:
                    content_parts.append(text)
            elif kind == "reasoning":
                text = _join_text_parts(
                    item.get("summary"),
                    ("summary_text", "text"),
                    separator="\n",
                )
                if text:
                    summary_parts.append(text)

        content = "".join(content_parts)
        if not content.strip():
            raise InvalidResponseError(
                "Response output contains no message content",
                raw=raw,
            )
        result = ThinkingProcessor.process(content)
        if result.thinking:
            summary_parts.append(result.thinking)
        if not result.content:
            raise InvalidResponseError(
                "Response contains only reasoning markup",
                raw=raw,
            )
        return ParsedResponse(
            content=result.content,
            reasoning_summary="\n".join(summary_parts) or None,
            usage=cls._responses_usage(raw.get("usage")),
            api_format=ApiFormat.RESPONSES,
        )

    @staticmethod
    def _chat_usage(usage: Any) -> Optional[Usage]:
        if not isinstance(usage, dict):
            return None
        details = usage.get("completion_tokens_details") or {}
        return Usage(
            input_tokens=_as_int(usage.get("prompt_tokens")),
            output_tokens=_as_int(usage.get("completion_tokens")),
            reasoning_tokens=_as_int(
                details.get("reasoning_tokens")
                if isinstance(details, dict)
                else 0,
            ),
        )

    @staticmethod
    def _responses_usage(usage: Any) -> Optional[Usage]:
        if not isinstance(usage, dict):
            return None
        details = usage.get("output_tokens_details") or {}
        reasoning = usage.get("reasoning_tokens")
        if reasoning is None and isinstance(details, dict):
            reasoning = details.get("reasoning_tokens")
        return Usage(
            input_tokens=_as_int(usage.get("input_tokens")),
            output_tokens=_as_int(usage.get("output_tokens")),
            reasoning_tokens=_as_int(reasoning),
        )
