# -*- coding: utf-8 -*-
import pytest

from smartflow.ai.endpoint import EndpointNormalizer
from smartflow.providers import ApiFormat

OPENAI_CHAT = "https://api.openai.com/v1/chat/completions"


@pytest.mark.parametrize(
    "base, expected",
    [
        ("https://api.openai.com", OPENAI_CHAT),
        ("https://api.openai.com/", OPENAI_CHAT),
        ("api.openai.com", OPENAI_CHAT),
        (
            "https://api.openai.com/v1",
            "https://api.openai.com/v1/chat/completions",
        ),
        (
            "https://open.bigmodel.cn/api/paas/v4",
            "https://open.bigmodel.cn/api/paas/v4/chat/completions",
        ),
        (
            "https://proxy.example.com/openai/chat",
            "https://proxy.example.com/openai/chat/completions",
        ),
        (
            "https://api.openai.com/v1/chat/completions",
            "https://api.openai.com/v1/chat/completions",
        ),
        (
            "https://api.openai.com//v1//chat/completions",
            "https://api.openai.com/v1/chat/completions",
        ),
        (
            "  https://api.deepseek.com  ",
            "https://api.deepseek.com/v1/chat/completions",
        ),
    ],
)
def test_chat_completions_url(base, expected):
    assert EndpointNormalizer.normalize_chat_completions(base) == expected


def test_unknown_path_is_left_alone():
    url = "https://gateway.example.com/custom/llm"
    assert EndpointNormalizer.normalize(url) == url


def test_empty_input_stays_empty():
    assert EndpointNormalizer.normalize("") == ""
    assert EndpointNormalizer.normalize("   ", ApiFormat.RESPONSES) == ""


@pytest.mark.parametrize(
    "base",
    [
        "https://api.openai.com",
        "https://api.openai.com/v1",
        "https://api.openai.com/v1/",
        "https://api.openai.com/v1/chat/completions",
        "https://api.openai.com/v1/responses",
    ],
)
def test_responses_url(base):
    assert (
        EndpointNormalizer.normalize(base, ApiFormat.RESPONSES)
        == "https://api.openai.com/v1/responses"
    )


def test_target_accepts_plain_strings():
    assert (
        EndpointNormalizer.normalize("https://x.ai/v1", "responses")
        == "https://x.ai/v1/responses"
    )
    assert (
        EndpointNormalizer.normalize("https://x.ai/v1", "models")
        == "https://x.ai/v1/models"
    )


def test_models_url_from_chat_endpoint():
    assert (
        EndpointNormalizer.normalize_models(
            "https://api.openai.com/v1/chat/completions",
        )
        == "https://api.openai.com/v1/models"
    )


def test_normalize_is_idempotent():
    once = EndpointNormalizer.normalize("api.moonshot.cn/v1")
    assert EndpointNormalizer.normalize(once) == once
