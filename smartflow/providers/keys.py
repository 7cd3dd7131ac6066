# -*- coding: utf-8 -*-
"""Resolve stored key configs to usable API key strings."""

from __future__ import annotations

import logging
from typing import Optional

from .models import KeyConfig, LocalKeyConfig, SharedKeyConfig
from ..secret import SecretService

logger = logging.getLogger(__name__)


class KeyResolver:
    """Turn a ``KeyConfig`` into a secret string without side effects.

    Local keys return their inline value; shared keys are looked up in the
    injected secret service. Anything unavailable resolves to ``None``.
    """

    def __init__(self, secret_service: Optional[SecretService] = None):
        self.secret_service = secret_service

    def resolve(self, key_config: Optional[KeyConfig]) -> Optional[str]:
        if key_config is None:
            return None
        if isinstance(key_config, LocalKeyConfig):
            return key_config.value or None
        if isinstance(key_config, SharedKeyConfig):
            return self._resolve_shared(key_config.secret_id)
        raise TypeError(f"Unknown key config: {key_config!r}")

    def _resolve_shared(self, secret_id: str) -> Optional[str]:
        if not secret_id:
            return None
        if self.secret_service is None:
            logger.debug(
                "Secret service not wired; shared key '%s' unavailable",
                secret_id,
            )
            return None
        value = self.secret_service.get_secret(secret_id)
        if not value:
            logger.warning("Shared secret '%s' did not resolve", secret_id)
            return None
        return value

    def is_configured(self, key_config: Optional[KeyConfig]) -> bool:
        """Cheap structural check: does the config name a key at all?"""
        if isinstance(key_config, LocalKeyConfig):
            return bool(key_config.value.strip())
        if isinstance(key_config, SharedKeyConfig):
            return bool(key_config.secret_id)
        return False


def mask_api_key(api_key: Optional[str], visible_chars: int = 4) -> str:
    """Mask an API key for safe display.

    Example: ``"sk-abcdefghijk"`` -> ``"sk-*******hijk"``
    """
    if not api_key:
        return ""
    if len(api_key) <= visible_chars:
        return "*" * len(api_key)
    prefix = api_key[:3] if len(api_key) > 3 else ""
    suffix = api_key[-visible_chars:]
    hidden_len = len(api_key) - len(prefix) - visible_chars
    return f"{prefix}{'*' * max(hidden_len, 4)}{suffix}"


def describe_key_config(key_config: Optional[KeyConfig]) -> str:
    """Short display form: masked local value or ``shared:<id>``."""
    if isinstance(key_config, LocalKeyConfig):
        return mask_api_key(key_config.value) or "(empty)"
    if isinstance(key_config, SharedKeyConfig):
        return f"shared:{key_config.secret_id or '(none)'}"
    return "(not set)"
