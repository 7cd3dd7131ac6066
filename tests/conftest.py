# -*- coding: utf-8 -*-
"""Shared fixtures and in-memory fakes for the smartflow test suite."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

import pytest

from smartflow.ai.transport import (
    StreamRequest,
    TransportRequest,
    TransportResponse,
)
from smartflow.providers import (
    ConfigManager,
    LocalKeyConfig,
    Settings,
)


# ============================================================================
# Response bodies
# ============================================================================


def chat_body(
    content: Optional[str] = "Hello",
    reasoning_content: Optional[str] = None,
    usage: Optional[dict] = None,
) -> dict:
    message: Dict[str, Any] = {"role": "assistant", "content": content}
    if reasoning_content is not None:
        message["reasoning_content"] = reasoning_content
    body: Dict[str, Any] = {"choices": [{"index": 0, "message": message}]}
    if usage is not None:
        body["usage"] = usage
    return body


def responses_body(text: str = "Answer", summary: Optional[str] = None):
    output: List[dict] = []
    if summary is not None:
        output.append(
            {
                "type": "reasoning",
                "summary": [{"type": "summary_text", "text": summary}],
            },
        )
    output.append(
        {
            "type": "message",
            "content": [{"type": "output_text", "text": text}],
        },
    )
    return {"output": output}


def ok(body: Any, status_code: int = 200) -> TransportResponse:
    return TransportResponse(status_code=status_code, body=body)


def error(status_code: int, message: str = "", **extra: Any):
    body: Dict[str, Any] = {"error": {"message": message, **extra}}
    return TransportResponse(status_code=status_code, body=body)


# ============================================================================
# Fakes
# ============================================================================


class FakeTransport:
    """Returns queued responses (or raises queued exceptions) in order."""

    def __init__(self, *responses: Any):
        self.responses: List[Any] = list(responses)
        self.requests: List[TransportRequest] = []

    def queue(self, *responses: Any) -> "FakeTransport":
        self.responses.extend(responses)
        return self

    async def send(self, request: TransportRequest) -> TransportResponse:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request to {request.url}")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    @property
    def last(self) -> TransportRequest:
        return self.requests[-1]


class HangingTransport:
    """Never answers until cancelled."""

    def __init__(self):
        self.started = asyncio.Event()
        self.cancelled = False

    async def send(self, request: TransportRequest) -> TransportResponse:
        self.started.set()
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        raise AssertionError("unreachable")


class FakeStreamingTransport:
    """Push-style streaming fake.

    ``script`` is a list of ``(kind, text)`` events emitted from
    ``start_stream``; leave it empty to drive events from the test.
    """

    def __init__(self, script: Optional[List[tuple]] = None):
        self.script = list(script or [])
        self.requests: List[StreamRequest] = []
        self.cancel_count = 0
        self.started = asyncio.Event()
        self._listeners: Dict[str, List[Callable]] = {
            "chunk": [],
            "thinking": [],
            "complete": [],
            "error": [],
        }

    def _subscribe(self, kind: str, listener: Callable) -> Callable[[], None]:
        self._listeners[kind].append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners[kind]:
                self._listeners[kind].remove(listener)

        return unsubscribe

    def on_chunk(self, listener):
        return self._subscribe("chunk", listener)

    def on_thinking(self, listener):
        return self._subscribe("thinking", listener)

    def on_complete(self, listener):
        return self._subscribe("complete", listener)

    def on_error(self, listener):
        return self._subscribe("error", listener)

    def listener_count(self) -> int:
        return sum(len(v) for v in self._listeners.values())

    def emit(self, kind: str, text: str = "") -> None:
        for listener in list(self._listeners[kind]):
            if kind == "complete":
                listener()
            else:
                listener(text)

    async def start_stream(self, request: StreamRequest) -> None:
        self.requests.append(request)
        self.started.set()
        for kind, text in self.script:
            self.emit(kind, text)

    async def cancel_stream(self) -> None:
        self.cancel_count += 1


class MemorySecretStore:
    def __init__(self, secrets: Optional[Dict[str, str]] = None):
        self.secrets = dict(secrets or {})
        self.lookups: List[str] = []

    def get_secret(self, secret_id: str) -> Optional[str]:
        self.lookups.append(secret_id)
        return self.secrets.get(secret_id)

    def set_secret(self, secret_id: str, value: str) -> None:
        self.secrets[secret_id] = value

    def list_secrets(self) -> List[str]:
        return sorted(self.secrets)

    def validate_secret_id(self, secret_id: str) -> bool:
        return bool(secret_id)

    def clear_cache(self) -> None:
        pass


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def saved() -> List[Settings]:
    """Settings snapshots handed to the persistence callback."""
    return []


@pytest.fixture
def secret_store() -> MemorySecretStore:
    return MemorySecretStore({"shared-one": "sk-shared-111"})


@pytest.fixture
def manager(saved, secret_store) -> ConfigManager:
    return ConfigManager(
        Settings(),
        on_settings_change=lambda s: saved.append(s.model_copy(deep=True)),
        secret_service=secret_store,
    )


@pytest.fixture
def provider(manager):
    return manager.add_provider(
        "OpenAI",
        "https://api.openai.com/v1",
        key_config=LocalKeyConfig(value="sk-test-1234567890"),
    )


@pytest.fixture
def model(manager, provider):
    return manager.add_model(
        provider.id,
        name="gpt-4o-mini",
        display_name="GPT-4o mini",
        temperature=0.3,
    )


@pytest.fixture
def responses_model(manager, provider):
    return manager.add_model(
        provider.id,
        name="o3-mini",
        api_format="responses",
        reasoning_effort="high",
    )
