# -*- coding: utf-8 -*-
"""List the models a provider exposes via its ``/v1/models`` endpoint."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .client import classify_http_error
from .endpoint import EndpointNormalizer
from .errors import (
    AIErrorCode,
    ConfigurationError,
    InvalidResponseError,
    NetworkError,
    RequestTimeoutError,
)
from .model_types import (
    infer_context_length,
    infer_model_abilities,
    infer_model_type,
)
from .transport import (
    HttpxTransport,
    Transport,
    TransportError,
    TransportRequest,
)
from ..constant import DEFAULT_REQUEST_TIMEOUT
from ..providers.models import ApiFormat, ModelType, Provider

logger = logging.getLogger(__name__)


class RemoteModelInfo(BaseModel):
    id: str
    name: str
    model_type: ModelType = "chat"
    abilities: List[str] = Field(default_factory=list)
    context_length: Optional[int] = None
    # Capabilities reported by the API itself, when it reports any.
    raw_abilities: Optional[Dict[str, bool]] = None

    def to_model_fields(self) -> Dict[str, Any]:
        """Keyword arguments for ``ConfigManager.add_model``."""
        return {
            "name": self.name,
            "display_name": self.name,
            "model_type": self.model_type,
            "context_length": self.context_length,
        }


class ModelFetcher:
    def __init__(
        self,
        transport: Optional[Transport] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        debug: bool = False,
    ):
        self._transport = transport or HttpxTransport()
        self.timeout = timeout
        self.debug = debug

    async def fetch_models(
        self,
        provider: Provider,
        api_key: Optional[str],
    ) -> List[RemoteModelInfo]:
        """GET the provider's model list.

        Raises:
            ConfigurationError: no key or no endpoint.
            RequestTimeoutError, NetworkError, HTTPRequestError: as for
                :meth:`AIClient.request`.
            InvalidResponseError: body has no ``data`` array.
        """
        if not (api_key or "").strip():
            raise ConfigurationError(
                AIErrorCode.INVALID_API_KEY,
                f"No API key available for provider '{provider.name}'",
            )
        if not (provider.endpoint or "").strip():
            raise ConfigurationError(
                AIErrorCode.INVALID_ENDPOINT,
                f"Provider '{provider.name}' has no endpoint",
            )

        url = EndpointNormalizer.normalize_models(provider.endpoint)
        if self.debug:
            logger.debug("Fetching models for %s from %s", provider.name, url)

        request = TransportRequest(
            method="GET",
            url=url,
            headers={"Authorization": f"Bearer {api_key}"},
        )
        try:
            response = await asyncio.wait_for(
                self._transport.send(request),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise RequestTimeoutError(self.timeout, endpoint=url) from exc
        except (TransportError, OSError) as exc:
            raise NetworkError(str(exc), exc, endpoint=url) from exc

        if not response.ok:
            raise classify_http_error(
                response,
                ApiFormat.CHAT_COMPLETIONS,
                url,
            )
        return self.parse_models(response.body)

    @staticmethod
    def parse_models(body: Any) -> List[RemoteModelInfo]:
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list):
            raise InvalidResponseError(
                "Model list response has no data array",
                raw=body,
            )

        models: List[RemoteModelInfo] = []
        for item in data:
            if not isinstance(item, dict) or not item.get("id"):
                continue
            model_id = str(item["id"])
            caps = item.get("capabilities")
            raw_abilities = None
            if isinstance(caps, dict):
                raw_abilities = {
                    "vision": bool(caps.get("vision")),
                    "function_call": bool(caps.get("function_calling")),
                    "reasoning": bool(caps.get("reasoning")),
                }
            model_type = infer_model_type(model_id)
            models.append(
                RemoteModelInfo(
                    id=model_id,
                    name=model_id,
                    model_type=model_type,
                    abilities=infer_model_abilities(model_id, model_type),
                    context_length=(
                        item.get("context_length")
                        or item.get("max_context_length")
                        or infer_context_length(model_id)
                    ),
                    raw_abilities=raw_abilities,
                ),
            )
        logger.debug("Fetched %d models", len(models))
        return models
