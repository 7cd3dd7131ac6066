# -*- coding: utf-8 -*-
"""Feature-level entry point: resolve a binding, render, request, rotate.

:class:`AIClient` never retries. :class:`AIService` is the outer policy
that may rotate to the next API key after a rate limit or an auth failure
and re-issue the same request.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from .client import AIClient, AIRequestOptions, AIResponse
from .errors import AIError, AIErrorCode, ConfigurationError, RateLimitError
from .model_fetcher import ModelFetcher, RemoteModelInfo
from .text import render_prompt, smart_truncate
from .transport import HttpxTransport, StreamingTransport, Transport
from ..constant import DEFAULT_REQUEST_TIMEOUT
from ..providers.manager import ConfigManager
from ..providers.models import ModelConfig, Provider
from ..providers.registry import (
    SHORT_ANSWER_FEATURES,
    get_default_prompt_template,
)

logger = logging.getLogger(__name__)

TEST_PROMPT = "Hi"


class AIService:
    def __init__(
        self,
        manager: ConfigManager,
        transport: Optional[Transport] = None,
        streaming_transport: Optional[StreamingTransport] = None,
        rotate_on_rate_limit: bool = True,
        timeout: Optional[float] = None,
    ):
        self.manager = manager
        self.transport = transport or HttpxTransport()
        self.streaming_transport = streaming_transport
        self.rotate_on_rate_limit = rotate_on_rate_limit
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        return (
            self._timeout
            or self.manager.settings.timeout
            or DEFAULT_REQUEST_TIMEOUT
        )

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    def _lookup(self, provider_id: str, model_id: str):
        provider = self.manager.get_provider(provider_id)
        if provider is None:
            raise ConfigurationError(
                AIErrorCode.NO_PROVIDER_CONFIGURED,
                f"Provider not found: {provider_id}",
            )
        model = self.manager.get_model(provider_id, model_id)
        if model is None:
            raise ConfigurationError(
                AIErrorCode.NO_MODEL_CONFIGURED,
                f"Model not found: {provider_id}/{model_id}",
            )
        return provider, model

    def _client(
        self,
        provider: Provider,
        model: ModelConfig,
        api_key: Optional[str],
    ) -> AIClient:
        return AIClient(
            provider,
            model,
            api_key,
            transport=self.transport,
            streaming_transport=self.streaming_transport,
            timeout=self.timeout,
            debug=self.manager.settings.debug_mode,
        )

    def create_client(self, provider_id: str, model_id: str) -> AIClient:
        """Client bound to the provider's current key."""
        provider, model = self._lookup(provider_id, model_id)
        return self._client(
            provider,
            model,
            self.manager.get_api_key(provider_id),
        )

    def create_feature_client(self, feature: str) -> AIClient:
        resolved = self._resolve(feature)
        return self.create_client(resolved.provider.id, resolved.model.id)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _resolve(self, feature: str):
        resolved = self.manager.resolve_feature_config(feature)
        if resolved is None:
            raise ConfigurationError(
                AIErrorCode.NO_PROVIDER_CONFIGURED,
                f"No provider/model bound to feature '{feature}'",
            )
        return resolved

    @staticmethod
    def prepare_prompt(
        feature: str,
        template: str,
        variables: Mapping[str, Any],
    ) -> str:
        """Render *template* (or the feature default) with *variables*.

        ``content`` is truncated head/tail first to bound prompt size.
        """
        values = dict(variables)
        if values.get("content"):
            values["content"] = smart_truncate(str(values["content"]))
        return render_prompt(
            template or get_default_prompt_template(feature),
            values,
        )

    async def generate(
        self,
        feature: str,
        variables: Mapping[str, Any],
        system_prompt: Optional[str] = None,
        clean: Optional[bool] = None,
    ) -> AIResponse:
        """Run *feature* on *variables* through its bound provider/model.

        *clean* defaults to True for short-answer features (naming,
        tagging, categorizing) and False otherwise.

        Raises:
            ConfigurationError: the feature is not bound (or its provider
                or model is gone), or no key resolves.
            AIError: any request failure, after rotation is exhausted.
        """
        resolved = self._resolve(feature)
        prompt = self.prepare_prompt(
            feature,
            resolved.prompt_template,
            variables,
        )
        if self.manager.settings.debug_mode:
            logger.debug(
                "Feature %s -> %s / %s\n%s",
                feature,
                resolved.provider.name,
                resolved.model.label,
                prompt,
            )
        return await self._request_with_rotation(
            resolved.provider,
            resolved.model,
            AIRequestOptions(
                prompt=prompt,
                system_prompt=system_prompt,
                clean=(
                    feature in SHORT_ANSWER_FEATURES
                    if clean is None
                    else clean
                ),
            ),
        )

    async def complete(
        self,
        provider_id: str,
        model_id: str,
        prompt: str,
        system_prompt: Optional[str] = None,
        clean: bool = False,
    ) -> AIResponse:
        """Send a raw prompt to a specific provider/model."""
        provider, model = self._lookup(provider_id, model_id)
        return await self._request_with_rotation(
            provider,
            model,
            AIRequestOptions(
                prompt=prompt,
                system_prompt=system_prompt,
                clean=clean,
            ),
        )

    async def test_connection(self, provider_id: str, model_id: str) -> bool:
        """Send a minimal prompt; True on success, otherwise raises."""
        provider, model = self._lookup(provider_id, model_id)
        logger.info("Testing connection: %s / %s", provider.name, model.name)
        client = self._client(
            provider,
            model,
            self.manager.get_api_key(provider_id),
        )
        await client.request(AIRequestOptions(prompt=TEST_PROMPT, clean=False))
        return True

    async def fetch_models(self, provider_id: str) -> List[RemoteModelInfo]:
        provider = self.manager.get_provider(provider_id)
        if provider is None:
            raise ConfigurationError(
                AIErrorCode.NO_PROVIDER_CONFIGURED,
                f"Provider not found: {provider_id}",
            )
        fetcher = ModelFetcher(
            transport=self.transport,
            timeout=self.timeout,
            debug=self.manager.settings.debug_mode,
        )
        return await fetcher.fetch_models(
            provider,
            self.manager.get_api_key(provider_id),
        )

    # ------------------------------------------------------------------
    # Rotation
    # ------------------------------------------------------------------

    @staticmethod
    def should_rotate(error: AIError) -> bool:
        if isinstance(error, RateLimitError):
            return True
        # HTTP 401/403 only; a missing key is a ConfigurationError.
        return (
            error.code is AIErrorCode.INVALID_API_KEY
            and error.status_code is not None
        )

    async def _request_with_rotation(
        self,
        provider: Provider,
        model: ModelConfig,
        options: AIRequestOptions,
    ) -> AIResponse:
        attempts = 1
        if self.rotate_on_rate_limit:
            attempts = max(1, self.manager.get_api_key_count(provider.id))
        api_key = self.manager.get_api_key(provider.id)

        attempt = 1
        while True:
            client = self._client(provider, model, api_key)
            try:
                return await client.request(options)
            except AIError as exc:
                if attempt >= attempts or not self.should_rotate(exc):
                    raise
                next_key = self.manager.rotate_api_key(provider.id)
                if not next_key or next_key == api_key:
                    raise
                logger.warning(
                    "Provider %s: %s; retrying with next API key",
                    provider.name,
                    exc.message,
                )
                api_key = next_key
                attempt += 1
