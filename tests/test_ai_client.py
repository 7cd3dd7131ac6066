# -*- coding: utf-8 -*-
import asyncio

import pytest

from smartflow.ai import (
    AIClient,
    AIError,
    AIErrorCode,
    AIRequestOptions,
    ConfigurationError,
    HTTPRequestError,
    InvalidReasoningEffortError,
    InvalidResponseError,
    NetworkError,
    RateLimitError,
    RequestCancelledError,
    RequestTimeoutError,
    ResponsesAPIError,
    TransportError,
    TransportResponse,
    UnsupportedAPIFormatError,
    classify_http_error,
)
from smartflow.providers import ApiFormat

from .conftest import (
    FakeTransport,
    HangingTransport,
    chat_body,
    error,
    ok,
    responses_body,
)

OPTIONS = AIRequestOptions(prompt="Name this note")
CHAT_URL = "https://api.openai.com/v1/chat/completions"
RESPONSES_URL = "https://api.openai.com/v1/responses"


def _client(provider, model, transport, **kwargs):
    kwargs.setdefault("api_key", "sk-live")
    return AIClient(provider, model, transport=transport, **kwargs)


class TestValidation:
    @pytest.mark.asyncio
    async def test_missing_provider(self, model):
        client = AIClient(None, model, "sk", transport=FakeTransport())
        with pytest.raises(ConfigurationError) as exc_info:
            await client.request(OPTIONS)
        assert exc_info.value.code is AIErrorCode.NO_PROVIDER_CONFIGURED

    @pytest.mark.asyncio
    async def test_missing_model(self, provider):
        client = AIClient(provider, None, "sk", transport=FakeTransport())
        with pytest.raises(ConfigurationError) as exc_info:
            await client.request(OPTIONS)
        assert exc_info.value.code is AIErrorCode.NO_MODEL_CONFIGURED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("api_key", [None, "", "   "])
    async def test_missing_key_never_sends(self, provider, model, api_key):
        transport = FakeTransport()
        client = _client(provider, model, transport, api_key=api_key)
        with pytest.raises(ConfigurationError) as exc_info:
            await client.request(OPTIONS)
        assert exc_info.value.code is AIErrorCode.INVALID_API_KEY
        assert exc_info.value.status_code is None
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_empty_endpoint(self, provider, model):
        provider.endpoint = " "
        client = _client(provider, model, FakeTransport())
        with pytest.raises(ConfigurationError) as exc_info:
            await client.request(OPTIONS)
        assert exc_info.value.code is AIErrorCode.INVALID_ENDPOINT

    @pytest.mark.asyncio
    async def test_empty_prompt(self, provider, model):
        client = _client(provider, model, FakeTransport())
        with pytest.raises(ConfigurationError) as exc_info:
            await client.request(AIRequestOptions(prompt=""))
        assert exc_info.value.code is AIErrorCode.INVALID_PARAMETER

    @pytest.mark.asyncio
    async def test_invalid_effort_never_sends(self, provider, responses_model):
        responses_model.reasoning_effort = "max"
        transport = FakeTransport()
        client = _client(provider, responses_model, transport)
        with pytest.raises(InvalidReasoningEffortError):
            await client.request(OPTIONS)
        assert transport.requests == []


class TestRequest:
    @pytest.mark.asyncio
    async def test_chat_completions_round_trip(self, provider, model):
        transport = FakeTransport(
            ok(chat_body('"Weekly Sync.md"', usage={"prompt_tokens": 5})),
        )
        client = _client(provider, model, transport)

        response = await client.request(OPTIONS)

        assert response.content == "Weekly Sync"
        assert response.model == "gpt-4o-mini"
        assert response.endpoint == CHAT_URL
        assert response.usage.input_tokens == 5
        request = transport.last
        assert request.method == "POST"
        assert request.url == CHAT_URL
        assert request.headers["Authorization"] == "Bearer sk-live"
        assert request.body["model"] == "gpt-4o-mini"
        assert request.body["temperature"] == 0.3

    @pytest.mark.asyncio
    async def test_responses_round_trip(self, provider, responses_model):
        transport = FakeTransport(ok(responses_body("Plan", summary="why")))
        client = _client(provider, responses_model, transport)

        response = await client.request(OPTIONS)

        assert response.content == "Plan"
        assert response.reasoning_summary == "why"
        assert response.api_format is ApiFormat.RESPONSES
        assert transport.last.url == RESPONSES_URL
        assert transport.last.body["reasoning"] == {"effort": "high"}

    @pytest.mark.asyncio
    async def test_unclean_request_keeps_full_text(self, provider, model):
        text = "Paragraph one.\n\nParagraph two."
        client = _client(provider, model, FakeTransport(ok(chat_body(text))))
        response = await client.request(
            AIRequestOptions(prompt="Rewrite", clean=False),
        )
        assert response.content == text

    @pytest.mark.asyncio
    async def test_non_json_body(self, provider, model):
        transport = FakeTransport(
            TransportResponse(status_code=200, body=None, text="<html>"),
        )
        client = _client(provider, model, transport)
        with pytest.raises(InvalidResponseError) as exc_info:
            await client.request(OPTIONS)
        assert exc_info.value.endpoint == CHAT_URL

    @pytest.mark.asyncio
    async def test_unknown_shape_carries_endpoint(self, provider, model):
        client = _client(provider, model, FakeTransport(ok({"id": "x"})))
        with pytest.raises(InvalidResponseError) as exc_info:
            await client.request(OPTIONS)
        assert exc_info.value.endpoint == CHAT_URL

    @pytest.mark.asyncio
    async def test_malformed_message_raises_invalid_response(
        self,
        provider,
        model,
    ):
        transport = FakeTransport(ok({"choices": [{"message": ["x"]}]}))
        client = _client(provider, model, transport)
        with pytest.raises(InvalidResponseError) as exc_info:
            await client.request(OPTIONS)
        assert exc_info.value.endpoint == CHAT_URL

    @pytest.mark.asyncio
    async def test_concurrent_requests_are_independent(self, provider, model):
        transport = FakeTransport(
            ok(chat_body("First")),
            ok(chat_body("Second")),
        )
        client = _client(provider, model, transport)
        results = await asyncio.gather(
            client.request(OPTIONS),
            client.request(OPTIONS),
        )
        assert sorted(r.content for r in results) == ["First", "Second"]
        assert not client.is_request_in_progress


class TestFailures:
    @pytest.mark.asyncio
    async def test_rate_limit(self, provider, model):
        transport = FakeTransport(error(429, "slow down"))
        client = _client(provider, model, transport)
        with pytest.raises(RateLimitError) as exc_info:
            await client.request(OPTIONS)
        assert exc_info.value.retryable is True
        assert exc_info.value.status_code == 429
        assert exc_info.value.endpoint == CHAT_URL

    @pytest.mark.asyncio
    async def test_network_error(self, provider, model):
        transport = FakeTransport(TransportError("connection refused"))
        client = _client(provider, model, transport)
        with pytest.raises(NetworkError) as exc_info:
            await client.request(OPTIONS)
        assert exc_info.value.retryable is True
        assert exc_info.value.code is AIErrorCode.NETWORK_ERROR
        assert "connection refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_wrapped(self, provider, model):
        transport = FakeTransport(ValueError("boom"))
        client = _client(provider, model, transport)
        with pytest.raises(AIError) as exc_info:
            await client.request(OPTIONS)
        assert exc_info.value.code is AIErrorCode.REQUEST_FAILED
        assert isinstance(exc_info.value.cause, ValueError)

    @pytest.mark.asyncio
    async def test_timeout(self, provider, model):
        transport = HangingTransport()
        client = _client(provider, model, transport, timeout=0.05)
        with pytest.raises(RequestTimeoutError) as exc_info:
            await client.request(OPTIONS)
        assert exc_info.value.code is AIErrorCode.TIMEOUT
        assert exc_info.value.retryable is True
        await asyncio.sleep(0.01)
        assert transport.cancelled
        assert not client.is_request_in_progress

    @pytest.mark.asyncio
    async def test_cancel_in_flight_request(self, provider, model):
        transport = HangingTransport()
        client = _client(provider, model, transport)
        task = asyncio.ensure_future(client.request(OPTIONS))
        await transport.started.wait()
        assert client.is_request_in_progress

        await client.cancel()

        with pytest.raises(RequestCancelledError):
            await task
        assert transport.cancelled

    @pytest.mark.asyncio
    async def test_cancel_with_nothing_in_flight(self, provider, model):
        client = _client(provider, model, FakeTransport())
        await client.cancel()
        await client.cancel()
        assert not client.is_request_in_progress


def _classify(status, body=None, fmt=ApiFormat.CHAT_COMPLETIONS, **kw):
    response = TransportResponse(status_code=status, body=body)
    return classify_http_error(response, fmt, "https://x/v1", **kw)


class TestClassifyHttpError:
    @pytest.mark.parametrize("status", [401, 403])
    def test_auth(self, status):
        err = _classify(status, {"error": {"message": "bad key"}})
        assert isinstance(err, HTTPRequestError)
        assert err.code is AIErrorCode.INVALID_API_KEY
        assert err.status_code == status
        assert err.retryable is False
        assert "bad key" in err.message

    def test_404_chat_is_invalid_endpoint(self):
        err = _classify(404)
        assert err.code is AIErrorCode.INVALID_ENDPOINT
        assert err.endpoint == "https://x/v1"

    def test_404_responses_is_unsupported_format(self):
        err = _classify(404, fmt=ApiFormat.RESPONSES)
        assert isinstance(err, UnsupportedAPIFormatError)
        assert err.suggested_format == "chat-completions"

    @pytest.mark.parametrize(
        "message",
        ["Endpoint not supported", "Unsupported API", "invalid endpoint"],
    )
    def test_400_responses_unsupported(self, message):
        err = _classify(
            400,
            {"error": {"message": message}},
            fmt=ApiFormat.RESPONSES,
        )
        assert isinstance(err, UnsupportedAPIFormatError)

    def test_400_responses_effort(self):
        err = _classify(
            400,
            {"error": {"message": "reasoning.effort is invalid"}},
            fmt=ApiFormat.RESPONSES,
            reasoning_effort="extreme",
        )
        assert isinstance(err, InvalidReasoningEffortError)
        assert err.provided_value == "extreme"

    def test_other_responses_4xx(self):
        err = _classify(
            422,
            {"error": {"message": "bad input", "type": "invalid_request"}},
            fmt=ApiFormat.RESPONSES,
        )
        assert isinstance(err, ResponsesAPIError)
        assert err.error_type == "invalid_request"
        assert err.original_message == "bad input"

    def test_server_error_is_retryable(self):
        err = _classify(503, {"message": "overloaded"})
        assert err.code is AIErrorCode.REQUEST_FAILED
        assert err.retryable is True
        assert "overloaded" in err.message

    def test_400_chat_is_invalid_parameter(self):
        err = _classify(400, {"error": {"message": "temperature too high"}})
        assert err.code is AIErrorCode.INVALID_PARAMETER
        assert err.retryable is False

    def test_details_keep_provider_body(self):
        body = {"error": {"message": "x", "code": "quota"}}
        assert _classify(402, body).details == body

    def test_hint_and_dict(self):
        err = _classify(429)
        data = err.to_dict()
        assert data["code"] == "RATE_LIMITED"
        assert data["hint"]
        assert data["status_code"] == 429
