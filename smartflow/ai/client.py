# -*- coding: utf-8 -*-
"""One AI call against one provider/model: build, send, classify, parse."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import (
    Any,
    AsyncIterator,
    Callable,
    List,
    NamedTuple,
    Optional,
    Set,
)

from pydantic import BaseModel

from .endpoint import EndpointNormalizer
from .errors import (
    AIError,
    AIErrorCode,
    ConfigurationError,
    HTTPRequestError,
    InvalidReasoningEffortError,
    InvalidResponseError,
    NetworkError,
    RateLimitError,
    RequestCancelledError,
    RequestTimeoutError,
    ResponsesAPIError,
    UnsupportedAPIFormatError,
)
from .request_builder import RequestBuilder
from .response_parser import ResponseParser, Usage
from .text import clean_output
from .thinking import ThinkingProcessor
from .transport import (
    HttpxTransport,
    StreamingTransport,
    StreamRequest,
    Transport,
    TransportError,
    TransportRequest,
    TransportResponse,
)
from ..constant import DEFAULT_REQUEST_TIMEOUT
from ..providers.keys import mask_api_key
from ..providers.models import ApiFormat, ModelConfig, Provider

logger = logging.getLogger(__name__)

_UNSUPPORTED_MARKERS = ("unsupported", "not supported", "invalid endpoint")
_EFFORT_MARKERS = ("reasoning", "effort")


class AIRequestOptions(BaseModel):
    prompt: str
    system_prompt: Optional[str] = None
    # Apply clean_output to the content (one-shot values such as names).
    clean: bool = True


class AIResponse(BaseModel):
    content: str
    reasoning_summary: Optional[str] = None
    usage: Optional[Usage] = None
    api_format: ApiFormat = ApiFormat.CHAT_COMPLETIONS
    model: str = ""
    endpoint: str = ""


class StreamEvent(NamedTuple):
    """``kind`` is ``chunk``, ``thinking`` or ``complete``."""

    kind: str
    text: str = ""


@dataclass
class StreamCallbacks:
    on_chunk: Optional[Callable[[str], None]] = None
    on_thinking: Optional[Callable[[str], None]] = None
    on_complete: Optional[Callable[[AIResponse], None]] = None
    on_error: Optional[Callable[[AIError], None]] = None


def extract_error_message(body: Any, text: str = "") -> str:
    """Provider message from ``error.message`` or top-level ``message``."""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        if body.get("message"):
            return str(body["message"])
    return (text or "").strip()[:500]


def _extract_error_type(body: Any) -> Optional[str]:
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        error = body["error"]
        value = error.get("type") or error.get("code")
        return str(value) if value else None
    return None


def classify_http_error(
    response: TransportResponse,
    api_format: ApiFormat,
    endpoint: str,
    reasoning_effort: Optional[str] = None,
) -> AIError:
    """Map a non-2xx response onto the error taxonomy."""
    status = response.status_code
    body = response.body
    message = extract_error_message(body, response.text)
    lowered = message.lower()
    is_responses = api_format is ApiFormat.RESPONSES
    extra = {"endpoint": endpoint, "details": body}

    if status in (401, 403):
        return HTTPRequestError(
            AIErrorCode.INVALID_API_KEY,
            f"Authentication failed ({status}): {message or 'invalid key'}",
            status_code=status,
            **extra,
        )
    if status == 429:
        return RateLimitError(message or "Rate limit exceeded", **extra)
    if status == 404:
        if is_responses:
            return UnsupportedAPIFormatError(status_code=status, **extra)
        return HTTPRequestError(
            AIErrorCode.INVALID_ENDPOINT,
            f"Endpoint not found (404): {endpoint}",
            status_code=status,
            **extra,
        )
    if is_responses and 400 <= status < 500:
        if status == 400 and any(m in lowered for m in _UNSUPPORTED_MARKERS):
            return UnsupportedAPIFormatError(status_code=status, **extra)
        if status == 400 and any(m in lowered for m in _EFFORT_MARKERS):
            return InvalidReasoningEffortError(
                reasoning_effort or "medium",
                status_code=status,
                **extra,
            )
        return ResponsesAPIError(
            status,
            f"Responses API error ({status}): {message}",
            error_type=_extract_error_type(body),
            original_message=message,
            **extra,
        )
    if status >= 500:
        return HTTPRequestError(
            AIErrorCode.REQUEST_FAILED,
            f"Provider server error ({status}): {message}",
            retryable=True,
            status_code=status,
            **extra,
        )
    code = (
        AIErrorCode.INVALID_PARAMETER
        if status in (400, 422)
        else AIErrorCode.REQUEST_FAILED
    )
    return HTTPRequestError(
        code,
        f"Request failed ({status}): {message}",
        status_code=status,
        **extra,
    )


class AIClient:
    """Issues requests for one provider/model pair with a resolved key.

    Each call has its own timeout; any number of calls may be in flight.
    :meth:`cancel` aborts all of them.
    """

    def __init__(
        self,
        provider: Optional[Provider],
        model: Optional[ModelConfig],
        api_key: Optional[str],
        transport: Optional[Transport] = None,
        streaming_transport: Optional[StreamingTransport] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        debug: bool = False,
    ):
        self.provider = provider
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self.debug = debug
        self._transport = transport or HttpxTransport()
        self._streaming = streaming_transport
        self._tasks: Set[asyncio.Task] = set()
        self._streams: Set[asyncio.Future] = set()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_options(self, options: AIRequestOptions) -> None:
        """Raise :class:`ConfigurationError` before any I/O if unusable."""
        if self.provider is None:
            raise ConfigurationError(
                AIErrorCode.NO_PROVIDER_CONFIGURED,
                "No provider configured",
            )
        if self.model is None:
            raise ConfigurationError(
                AIErrorCode.NO_MODEL_CONFIGURED,
                f"No model configured for provider '{self.provider.name}'",
            )
        if not (self.api_key or "").strip():
            raise ConfigurationError(
                AIErrorCode.INVALID_API_KEY,
                f"No API key available for provider '{self.provider.name}'",
            )
        if not (self.provider.endpoint or "").strip():
            raise ConfigurationError(
                AIErrorCode.INVALID_ENDPOINT,
                f"Provider '{self.provider.name}' has no endpoint",
            )
        if not (self.model.name or "").strip():
            raise ConfigurationError(
                AIErrorCode.NO_MODEL_CONFIGURED,
                "Model name is empty",
            )
        if not options.prompt:
            raise ConfigurationError(
                AIErrorCode.INVALID_PARAMETER,
                "Prompt is empty",
            )

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _log_request(self, url: str, api_format: ApiFormat) -> None:
        if self.debug:
            logger.debug(
                "AI request: endpoint=%s format=%s model=%s key=%s",
                url,
                api_format.value,
                self.model.name,
                mask_api_key(self.api_key),
            )

    @property
    def is_request_in_progress(self) -> bool:
        return bool(self._tasks) or any(
            not fut.done() for fut in self._streams
        )

    # ------------------------------------------------------------------
    # One-shot requests
    # ------------------------------------------------------------------

    async def request(self, options: AIRequestOptions) -> AIResponse:
        """Send one request and return the parsed response.

        Raises:
            ConfigurationError: missing provider, model, key or endpoint.
            InvalidReasoningEffortError: bad effort on a responses model.
            RequestTimeoutError: no response within ``timeout`` seconds.
            RequestCancelledError: :meth:`cancel` was called.
            NetworkError: transport-level failure.
            HTTPRequestError: non-2xx status (see
                :func:`classify_http_error`).
            InvalidResponseError: 2xx with an unusable body.
        """
        self.validate_options(options)
        api_format = ApiFormat(self.model.api_format)
        body = RequestBuilder.build(
            self.model,
            options.prompt,
            options.system_prompt,
            api_format,
        )
        url = EndpointNormalizer.normalize(self.provider.endpoint, api_format)
        self._log_request(url, api_format)

        response = await self._send(
            TransportRequest(
                method="POST",
                url=url,
                headers=self._headers(),
                body=body,
            ),
        )
        if not response.ok:
            error = classify_http_error(
                response,
                api_format,
                url,
                self.model.reasoning_effort,
            )
            logger.warning(
                "AI request to %s failed: %s",
                url,
                error.message,
            )
            raise error
        if response.body is None:
            raise InvalidResponseError(
                "Response body is not valid JSON",
                raw=response.text,
                endpoint=url,
            )

        try:
            parsed = ResponseParser.parse(
                response.body,
                api_format,
                clean=options.clean,
            )
        except AIError as exc:
            exc.endpoint = exc.endpoint or url
            raise
        except (AttributeError, TypeError, ValueError) as exc:
            raise InvalidResponseError(
                f"Malformed response body: {exc}",
                raw=response.body,
                endpoint=url,
                cause=exc,
            ) from exc
        return AIResponse(
            content=parsed.content,
            reasoning_summary=parsed.reasoning_summary,
            usage=parsed.usage,
            api_format=parsed.api_format,
            model=self.model.name,
            endpoint=url,
        )

    async def _send(self, request: TransportRequest) -> TransportResponse:
        task = asyncio.ensure_future(self._transport.send(request))
        self._tasks.add(task)
        try:
            done, _ = await asyncio.wait({task}, timeout=self.timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            self._tasks.discard(task)

        if task not in done:
            task.cancel()
            raise RequestTimeoutError(self.timeout, endpoint=request.url)
        if task.cancelled():
            raise RequestCancelledError()

        exc = task.exception()
        if exc is None:
            return task.result()
        if isinstance(exc, AIError):
            raise exc
        if isinstance(exc, (TransportError, OSError)):
            raise NetworkError(
                str(exc),
                getattr(exc, "cause", None) or exc,
                endpoint=request.url,
            ) from exc
        raise AIError(
            AIErrorCode.REQUEST_FAILED,
            f"Request failed: {exc}",
            retryable=True,
            endpoint=request.url,
            cause=exc,
        ) from exc

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    async def request_stream(
        self,
        options: AIRequestOptions,
        callbacks: Optional[StreamCallbacks] = None,
    ) -> AIResponse:
        """Stream one request through the streaming transport.

        Chunks are forwarded to *callbacks* as they arrive. Exactly one of
        ``on_complete`` / ``on_error`` fires; after :meth:`cancel` no more
        chunks are delivered and ``on_error`` receives a
        :class:`RequestCancelledError`. The final content has reasoning
        markup removed but is not passed through :func:`clean_output`
        unless ``options.clean`` is set.
        """
        if self._streaming is None:
            raise ConfigurationError(
                AIErrorCode.INVALID_PARAMETER,
                "No streaming transport configured",
            )
        self.validate_options(options)
        callbacks = callbacks or StreamCallbacks()
        api_format = ApiFormat(self.model.api_format)
        body = RequestBuilder.build(
            self.model,
            options.prompt,
            options.system_prompt,
            api_format,
            stream=True,
        )
        url = EndpointNormalizer.normalize(self.provider.endpoint, api_format)
        self._log_request(url, api_format)

        loop = asyncio.get_running_loop()
        done: asyncio.Future = loop.create_future()
        chunks: List[str] = []
        thinking: List[str] = []

        def settle(error: Optional[AIError] = None) -> None:
            if done.done():
                return
            if error is None:
                done.set_result(None)
            else:
                done.set_exception(error)

        def handle_chunk(text: str) -> None:
            if done.done():
                return
            chunks.append(text)
            if callbacks.on_chunk:
                callbacks.on_chunk(text)

        def handle_thinking(text: str) -> None:
            if done.done():
                return
            thinking.append(text)
            if callbacks.on_thinking:
                callbacks.on_thinking(text)

        def handle_error(message: str) -> None:
            settle(
                AIError(
                    AIErrorCode.REQUEST_FAILED,
                    f"Stream failed: {message}",
                    retryable=True,
                    endpoint=url,
                ),
            )

        def on_started(task: asyncio.Task) -> None:
            if task.cancelled():
                return
            exc = task.exception()
            if exc is None:
                return
            if isinstance(exc, AIError):
                settle(exc)
            elif isinstance(exc, (TransportError, OSError)):
                settle(NetworkError(str(exc), exc, endpoint=url))
            else:
                handle_error(str(exc))

        unsubscribes = [
            self._streaming.on_chunk(handle_chunk),
            self._streaming.on_thinking(handle_thinking),
            self._streaming.on_complete(lambda: settle()),
            self._streaming.on_error(handle_error),
        ]
        self._streams.add(done)
        start_task = asyncio.ensure_future(
            self._streaming.start_stream(
                StreamRequest(
                    endpoint=url,
                    headers=self._headers(),
                    body=body,
                    api_format=api_format,
                ),
            ),
        )
        start_task.add_done_callback(on_started)
        try:
            try:
                await done
            except asyncio.CancelledError:
                if not done.done():
                    done.cancel()
                await self._cancel_stream_transport()
                raise
        except AIError as exc:
            if callbacks.on_error:
                callbacks.on_error(exc)
            raise
        finally:
            self._streams.discard(done)
            for unsubscribe in unsubscribes:
                try:
                    unsubscribe()
                except Exception:  # pylint: disable=broad-except
                    logger.warning(
                        "Failed to remove stream listener",
                        exc_info=True,
                    )
            if not start_task.done():
                start_task.cancel()

        try:
            response = self._stream_response(
                "".join(chunks),
                thinking,
                api_format,
                url,
                options.clean,
            )
        except AIError as exc:
            if callbacks.on_error:
                callbacks.on_error(exc)
            raise
        if callbacks.on_complete:
            callbacks.on_complete(response)
        return response

    def _stream_response(
        self,
        text: str,
        thinking: List[str],
        api_format: ApiFormat,
        url: str,
        clean: bool,
    ) -> AIResponse:
        result = ThinkingProcessor.process(text)
        content = clean_output(result.content) if clean else result.content
        if not content:
            raise InvalidResponseError(
                "Stream completed without content",
                raw=text,
                endpoint=url,
            )
        summary = [
            part for part in ("".join(thinking), result.thinking) if part
        ]
        return AIResponse(
            content=content,
            reasoning_summary="\n".join(summary) or None,
            api_format=api_format,
            model=self.model.name,
            endpoint=url,
        )

    async def stream(
        self,
        options: AIRequestOptions,
    ) -> AsyncIterator[StreamEvent]:
        """Async-iterator form of :meth:`request_stream`.

        Yields ``chunk`` / ``thinking`` events and ends with a single
        ``complete`` event carrying the full content, or raises the
        :class:`AIError` that ended the stream. Closing the iterator early
        cancels the stream.
        """
        queue: asyncio.Queue = asyncio.Queue()
        callbacks = StreamCallbacks(
            on_chunk=lambda text: queue.put_nowait(
                StreamEvent("chunk", text),
            ),
            on_thinking=lambda text: queue.put_nowait(
                StreamEvent("thinking", text),
            ),
        )
        task = asyncio.ensure_future(self.request_stream(options, callbacks))
        task.add_done_callback(lambda _: queue.put_nowait(None))
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event
            if task.cancelled():
                raise RequestCancelledError()
            response = task.result()
            yield StreamEvent("complete", response.content)
        finally:
            if not task.done():
                task.cancel()
                try:
                    await task
                except (asyncio.CancelledError, AIError):
                    pass

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    async def cancel(self) -> None:
        """Abort every in-flight call. Safe to call at any time."""
        for task in list(self._tasks):
            task.cancel()
        pending = [fut for fut in self._streams if not fut.done()]
        for fut in pending:
            fut.set_exception(RequestCancelledError())
        if pending:
            await self._cancel_stream_transport()

    async def _cancel_stream_transport(self) -> None:
        if self._streaming is None:
            return
        try:
            await self._streaming.cancel_stream()
        except Exception:  # pylint: disable=broad-except
            logger.warning("Failed to cancel stream transport", exc_info=True)
