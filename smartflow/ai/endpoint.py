# -*- coding: utf-8 -*-
"""Complete a user-entered base URL into the exact request URL."""

from __future__ import annotations

import logging
import re
from typing import Union
from urllib.parse import urlsplit

from ..providers.models import ApiFormat

logger = logging.getLogger(__name__)

MODELS_TARGET = "models"

EndpointTarget = Union[ApiFormat, str]

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_DOUBLE_SLASH_RE = re.compile(r"([^:])//+")
# /v1, /v4, /api/paas/v4 ...
_VERSION_PATH_RE = re.compile(r"/v\d+$")

CHAT_COMPLETE_PATHS = (
    "/v1/chat/completions",
    "/chat/completions",
    "/v1/completions",
    "/completions",
)

# Stripped (first match wins) to recover the provider base URL.
_BASE_SUFFIXES = (
    "/v1/chat/completions",
    "/chat/completions",
    "/v1/completions",
    "/completions",
    "/v1/responses",
    "/responses",
    "/v1/models",
    "/models",
    "/v1",
)


def _collapse_slashes(url: str) -> str:
    return _DOUBLE_SLASH_RE.sub(r"\1/", url)


def _target_value(target: EndpointTarget) -> str:
    return target.value if isinstance(target, ApiFormat) else str(target)


class EndpointNormalizer:
    """Pure URL completion; never raises."""

    @staticmethod
    def prepare(base_url: str) -> str:
        """Trim, add a scheme if missing and drop trailing slashes."""
        url = (base_url or "").strip()
        if not url:
            return ""
        if not _SCHEME_RE.match(url):
            if url.startswith("//"):
                url = "https:" + url
            elif "://" not in url:
                url = "https://" + url
        return url.rstrip("/")

    @classmethod
    def normalize(
        cls,
        base_url: str,
        target: EndpointTarget = ApiFormat.CHAT_COMPLETIONS,
    ) -> str:
        value = _target_value(target)
        if value == ApiFormat.RESPONSES.value:
            return cls.normalize_responses(base_url)
        if value == MODELS_TARGET:
            return cls.normalize_models(base_url)
        return cls.normalize_chat_completions(base_url)

    @classmethod
    def normalize_chat_completions(cls, base_url: str) -> str:
        url = cls.prepare(base_url)
        if not url:
            return url
        if url.endswith(CHAT_COMPLETE_PATHS):
            return _collapse_slashes(url)

        try:
            path = urlsplit(url).path
        except ValueError:
            logger.debug("Unparseable endpoint left as-is: %s", url)
            return _collapse_slashes(url)

        if path in ("", "/"):
            url = url + "/v1/chat/completions"
        elif _VERSION_PATH_RE.search(path):
            url = url + "/chat/completions"
        elif path.endswith("/chat"):
            url = url + "/completions"
        return _collapse_slashes(url)

    @classmethod
    def base_url(cls, base_url: str) -> str:
        """Provider base with any known API suffix removed."""
        url = cls.prepare(base_url)
        for suffix in _BASE_SUFFIXES:
            if url.endswith(suffix):
                return url[: -len(suffix)]
        return url

    @classmethod
    def normalize_responses(cls, base_url: str) -> str:
        url = cls.prepare(base_url)
        if not url:
            return url
        if url.endswith("/v1/responses"):
            return _collapse_slashes(url)
        return _collapse_slashes(cls.base_url(url) + "/v1/responses")

    @classmethod
    def normalize_models(cls, base_url: str) -> str:
        url = cls.prepare(base_url)
        if not url:
            return url
        if url.endswith("/v1/models"):
            return _collapse_slashes(url)
        return _collapse_slashes(cls.base_url(url) + "/v1/models")
