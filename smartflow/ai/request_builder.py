# -*- coding: utf-8 -*-
"""Build wire-format request bodies from a model config."""

from __future__ import annotations

from typing import Any, Dict, Optional

from .errors import InvalidReasoningEffortError
from ..providers.models import (
    VALID_REASONING_EFFORTS,
    ApiFormat,
    ModelConfig,
    ReasoningEffort,
)

RequestBody = Dict[str, Any]


class RequestBuilder:
    @classmethod
    def build(
        cls,
        model: ModelConfig,
        prompt: str,
        system_prompt: Optional[str] = None,
        api_format: Optional[ApiFormat] = None,
        stream: bool = False,
    ) -> RequestBody:
        """Build the body for *api_format* (defaults to the model's).

        Raises:
            InvalidReasoningEffortError: responses format with an effort
                outside low/medium/high. Raised before any I/O.
        """
        fmt = ApiFormat(api_format or model.api_format)
        if fmt is ApiFormat.RESPONSES:
            body = cls.build_responses(model, prompt, system_prompt)
        else:
            body = cls.build_chat_completions(model, prompt, system_prompt)
        if stream:
            body["stream"] = True
        return body

    @staticmethod
    def build_chat_completions(
        model: ModelConfig,
        prompt: str,
        system_prompt: Optional[str] = None,
    ) -> RequestBody:
        """Chat-completions body for *model*.

        ``max_tokens`` is sent only when ``max_output_tokens`` is positive;
        0 leaves the limit to the provider instead of sending
        ``max_tokens: 0``.
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        body: RequestBody = {
            "model": model.name,
            "messages": messages,
            "temperature": model.temperature,
            "top_p": model.top_p,
        }
        # 0 means "provider default"; some backends reject max_tokens=0
        if model.max_output_tokens > 0:
            body["max_tokens"] = model.max_output_tokens
        return body

    @staticmethod
    def build_responses(
        model: ModelConfig,
        prompt: str,
        system_prompt: Optional[str] = None,
    ) -> RequestBody:
        effort = model.reasoning_effort or ReasoningEffort.MEDIUM
        effort = getattr(effort, "value", effort)
        if effort not in VALID_REASONING_EFFORTS:
            raise InvalidReasoningEffortError(str(effort))

        body: RequestBody = {
            "model": model.name,
            "input": prompt,
            "reasoning": {"effort": effort},
        }
        if system_prompt:
            body["instructions"] = system_prompt
        if model.max_output_tokens > 0:
            body["max_output_tokens"] = model.max_output_tokens
        return body
