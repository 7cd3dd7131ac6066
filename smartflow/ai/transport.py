# -*- coding: utf-8 -*-
"""Transport ports used by the AI client, plus an httpx implementation.

The client never talks to the network directly: a :class:`Transport`
issues one request/response round trip, and a :class:`StreamingTransport`
pushes chunk/thinking/complete/error events for a streaming call.
"""

from __future__ import annotations

import json
import logging
from typing import (
    Any,
    Callable,
    Dict,
    Optional,
    Protocol,
    runtime_checkable,
)

import httpx
from pydantic import BaseModel, Field

from ..providers.models import ApiFormat

logger = logging.getLogger(__name__)

Unsubscribe = Callable[[], None]


class TransportError(Exception):
    """Transport-level failure: DNS, refused connection, reset, ..."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class TransportRequest(BaseModel):
    method: str = "POST"
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Any] = None


class TransportResponse(BaseModel):
    status_code: int
    body: Optional[Any] = None
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@runtime_checkable
class Transport(Protocol):
    async def send(self, request: TransportRequest) -> TransportResponse:
        ...


class StreamRequest(BaseModel):
    endpoint: str
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Dict[str, Any] = Field(default_factory=dict)
    api_format: ApiFormat = ApiFormat.CHAT_COMPLETIONS


@runtime_checkable
class StreamingTransport(Protocol):
    """Push-style streaming primitive.

    Every ``on_*`` registration returns a callable that removes the
    listener. ``cancel_stream`` must be safe to call with nothing running.
    """

    def on_chunk(self, listener: Callable[[str], None]) -> Unsubscribe:
        ...

    def on_thinking(self, listener: Callable[[str], None]) -> Unsubscribe:
        ...

    def on_complete(self, listener: Callable[[], None]) -> Unsubscribe:
        ...

    def on_error(self, listener: Callable[[str], None]) -> Unsubscribe:
        ...

    async def start_stream(self, request: StreamRequest) -> None:
        ...

    async def cancel_stream(self) -> None:
        ...


def _decode_body(response: httpx.Response) -> Optional[Any]:
    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


class HttpxTransport:
    """:class:`Transport` backed by a shared ``httpx.AsyncClient``.

    Timeouts are enforced by the caller, so the client is created without
    one unless *timeout* is given.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send(self, request: TransportRequest) -> TransportResponse:
        logger.debug("%s %s", request.method, request.url)
        try:
            response = await self._client.request(
                request.method,
                request.url,
                headers=request.headers,
                json=request.body,
            )
        except httpx.TransportError as exc:
            raise TransportError(str(exc) or type(exc).__name__, exc) from exc
        return TransportResponse(
            status_code=response.status_code,
            body=_decode_body(response),
            text=response.text,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
