# -*- coding: utf-8 -*-
import pytest

from smartflow.ai import (
    AIErrorCode,
    AIService,
    ConfigurationError,
    HTTPRequestError,
    RateLimitError,
)
from smartflow.providers import FeatureBinding, LocalKeyConfig

from .conftest import FakeTransport, chat_body, error, ok


@pytest.fixture
def pooled(manager):
    provider = manager.add_provider(
        "Pool",
        "https://api.example.com/v1",
        key_configs=[
            LocalKeyConfig(value="key-a"),
            LocalKeyConfig(value="key-b"),
        ],
    )
    model = manager.add_model(provider.id, name="gpt-4o-mini")
    manager.set_feature_binding(
        "naming",
        FeatureBinding(provider_id=provider.id, model_id=model.id),
    )
    return provider, model


def _auth_header(request):
    return request.headers["Authorization"]


class TestGenerate:
    @pytest.mark.asyncio
    async def test_renders_default_template_and_cleans(
        self,
        manager,
        pooled,
    ):
        transport = FakeTransport(ok(chat_body("Title: Budget Review.md")))
        service = AIService(manager, transport=transport)

        response = await service.generate(
            "naming",
            {"content": "Q3 numbers...", "currentFileName": "Untitled"},
        )

        assert response.content == "Budget Review"
        prompt = transport.last.body["messages"][-1]["content"]
        assert "Q3 numbers..." in prompt
        assert "Current file name: Untitled" in prompt
        assert "{{" not in prompt

    @pytest.mark.asyncio
    async def test_custom_template_and_long_content(self, manager, pooled):
        provider, model = pooled
        manager.set_feature_binding(
            "writing",
            FeatureBinding(
                provider_id=provider.id,
                model_id=model.id,
                prompt_template="Polish:\n{{content}}",
            ),
        )
        text = "Para one.\n\nPara two."
        transport = FakeTransport(ok(chat_body(text)))
        service = AIService(manager, transport=transport)

        response = await service.generate(
            "writing",
            {"content": "x" * 5000},
            system_prompt="You are an editor.",
        )

        # long-form features keep the whole answer
        assert response.content == text
        messages = transport.last.body["messages"]
        assert messages[0] == {
            "role": "system",
            "content": "You are an editor.",
        }
        assert messages[1]["content"].startswith("Polish:\n")
        assert "Content truncated" in messages[1]["content"]

    @pytest.mark.asyncio
    async def test_unbound_feature(self, manager):
        service = AIService(manager, transport=FakeTransport())
        with pytest.raises(ConfigurationError) as exc_info:
            await service.generate("naming", {"content": "x"})
        assert exc_info.value.code is AIErrorCode.NO_PROVIDER_CONFIGURED


class TestRotation:
    @pytest.mark.asyncio
    async def test_rate_limit_rotates_to_next_key(self, manager, pooled):
        provider, _ = pooled
        transport = FakeTransport(error(429), ok(chat_body("Fine")))
        service = AIService(manager, transport=transport)

        response = await service.generate("naming", {"content": "x"})

        assert response.content == "Fine"
        assert [_auth_header(r) for r in transport.requests] == [
            "Bearer key-a",
            "Bearer key-b",
        ]
        assert provider.current_key_index == 1

    @pytest.mark.asyncio
    async def test_auth_failure_rotates(self, manager, pooled):
        transport = FakeTransport(error(401, "revoked"), ok(chat_body("Ok")))
        service = AIService(manager, transport=transport)
        response = await service.generate("naming", {"content": "x"})
        assert response.content == "Ok"
        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_every_key(self, manager, pooled):
        transport = FakeTransport(error(429), error(429))
        service = AIService(manager, transport=transport)
        with pytest.raises(RateLimitError):
            await service.generate("naming", {"content": "x"})
        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_other_errors_do_not_rotate(self, manager, pooled):
        provider, _ = pooled
        transport = FakeTransport(error(500, "down"))
        service = AIService(manager, transport=transport)
        with pytest.raises(HTTPRequestError):
            await service.generate("naming", {"content": "x"})
        assert len(transport.requests) == 1
        assert provider.current_key_index == 0

    @pytest.mark.asyncio
    async def test_rotation_disabled(self, manager, pooled):
        transport = FakeTransport(error(429))
        service = AIService(
            manager,
            transport=transport,
            rotate_on_rate_limit=False,
        )
        with pytest.raises(RateLimitError):
            await service.generate("naming", {"content": "x"})
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_single_key_is_not_retried(self, manager, provider, model):
        transport = FakeTransport(error(429))
        service = AIService(manager, transport=transport)
        with pytest.raises(RateLimitError):
            await service.complete(provider.id, model.id, "hello")
        assert len(transport.requests) == 1


class TestHelpers:
    @pytest.mark.asyncio
    async def test_complete_returns_raw_text(self, manager, provider, model):
        transport = FakeTransport(ok(chat_body("Line 1\nLine 2")))
        service = AIService(manager, transport=transport)
        response = await service.complete(provider.id, model.id, "hello")
        assert response.content == "Line 1\nLine 2"

    @pytest.mark.asyncio
    async def test_test_connection(self, manager, provider, model):
        transport = FakeTransport(ok(chat_body("Hello!")))
        service = AIService(manager, transport=transport)
        assert await service.test_connection(provider.id, model.id) is True
        assert transport.last.body["messages"][-1]["content"] == "Hi"

    @pytest.mark.asyncio
    async def test_unknown_model(self, manager, provider):
        service = AIService(manager, transport=FakeTransport())
        with pytest.raises(ConfigurationError) as exc_info:
            await service.test_connection(provider.id, "nope")
        assert exc_info.value.code is AIErrorCode.NO_MODEL_CONFIGURED

    def test_timeout_falls_back_to_settings(self, manager):
        manager.settings.timeout = 42
        assert AIService(manager, transport=FakeTransport()).timeout == 42
        service = AIService(manager, transport=FakeTransport(), timeout=3)
        assert service.timeout == 3

    def test_create_feature_client_uses_current_key(self, manager, pooled):
        service = AIService(manager, transport=FakeTransport())
        client = service.create_feature_client("naming")
        assert client.api_key == "key-a"
        assert client.model.name == "gpt-4o-mini"

    def test_should_rotate(self):
        assert AIService.should_rotate(RateLimitError("x"))
        assert not AIService.should_rotate(
            ConfigurationError(AIErrorCode.INVALID_API_KEY, "no key"),
        )
        assert AIService.should_rotate(
            HTTPRequestError(
                AIErrorCode.INVALID_API_KEY,
                "bad",
                status_code=401,
            ),
        )
