# -*- coding: utf-8 -*-
"""Reading and writing settings.json."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import ValidationError

from .models import (
    FeatureBinding,
    LocalKeyConfig,
    Provider,
    Settings,
)
from ..constant import SETTINGS_FILE, WORKING_DIR

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# JSON file path
# ---------------------------------------------------------------------------


def get_settings_json_path() -> Path:
    """Return the default settings.json path."""
    return WORKING_DIR / SETTINGS_FILE


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _migrate_legacy_provider(raw: dict) -> dict:
    """Turn plain ``api_key`` / ``api_keys`` strings into local key configs."""
    raw = dict(raw)
    api_key = raw.pop("api_key", None)
    api_keys = raw.pop("api_keys", None)
    if raw.get("key_config") is None and isinstance(api_key, str) and api_key:
        raw["key_config"] = LocalKeyConfig(value=api_key).model_dump()
    if not raw.get("key_configs") and isinstance(api_keys, list):
        raw["key_configs"] = [
            LocalKeyConfig(value=k).model_dump()
            for k in api_keys
            if isinstance(k, str) and k
        ]
    return raw


def _parse_providers(raw_providers: Any) -> list[Provider]:
    providers: list[Provider] = []
    if not isinstance(raw_providers, list):
        return providers
    for item in raw_providers:
        if not isinstance(item, dict):
            continue
        try:
            providers.append(
                Provider.model_validate(_migrate_legacy_provider(item)),
            )
        except ValidationError as exc:
            logger.warning(
                "Skipping invalid provider entry %r: %s",
                item.get("id"),
                exc,
            )
    return providers


def _parse_bindings(raw_bindings: Any) -> dict[str, FeatureBinding]:
    bindings: dict[str, FeatureBinding] = {}
    if not isinstance(raw_bindings, dict):
        return bindings
    for feature, value in raw_bindings.items():
        if not isinstance(value, dict):
            continue
        try:
            bindings[feature] = FeatureBinding.model_validate(value)
        except ValidationError:
            logger.warning("Skipping invalid binding for '%s'", feature)
    return bindings


def _drop_dangling_bindings(settings: Settings) -> None:
    """Remove bindings whose provider or model no longer exists."""
    models = {
        (p.id, m.id) for p in settings.providers for m in p.models
    }
    for feature, binding in list(settings.feature_bindings.items()):
        if (binding.provider_id, binding.model_id) not in models:
            logger.info("Dropping dangling '%s' binding", feature)
            del settings.feature_bindings[feature]


def _parse_settings(raw: dict) -> Settings:
    data = {k: v for k, v in raw.items() if k in Settings.model_fields}
    data["providers"] = _parse_providers(raw.get("providers"))
    data["feature_bindings"] = _parse_bindings(raw.get("feature_bindings"))
    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        logger.warning("Settings partially invalid, using defaults: %s", exc)
        return Settings(
            providers=data["providers"],
            feature_bindings=data["feature_bindings"],
        )


# ---------------------------------------------------------------------------
# Load / Save
# ---------------------------------------------------------------------------


def load_settings_json(path: Optional[Path] = None) -> Settings:
    """Load settings.json, creating/repairing as needed."""
    if path is None:
        path = get_settings_json_path()

    settings = Settings()
    if path.is_file():
        try:
            with open(path, "r", encoding="utf-8") as fh:
                raw = json.load(fh)
            if isinstance(raw, dict):
                settings = _parse_settings(raw)
        except (json.JSONDecodeError, ValueError):
            logger.warning("Could not parse %s; starting fresh", path)
            settings = Settings()

    _drop_dangling_bindings(settings)
    save_settings_json(settings, path)
    return settings


def save_settings_json(
    settings: Settings,
    path: Optional[Path] = None,
) -> None:
    """Write settings to settings.json."""
    if path is None:
        path = get_settings_json_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as fh:
        json.dump(
            settings.model_dump(mode="json"),
            fh,
            indent=2,
            ensure_ascii=False,
        )


def make_json_persister(
    path: Optional[Path] = None,
) -> Callable[[Settings], None]:
    """Return a ConfigManager persistence callback bound to *path*."""

    def _persist(settings: Settings) -> None:
        save_settings_json(settings, path)

    return _persist
