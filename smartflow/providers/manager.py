# -*- coding: utf-8 -*-
"""ConfigManager: single writer for provider / model / binding settings."""

from __future__ import annotations

import asyncio
import inspect
import logging
import secrets
import string
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError

from .keys import KeyResolver
from .models import (
    VALID_REASONING_EFFORTS,
    ApiFormat,
    FeatureBinding,
    KeyConfig,
    ModelConfig,
    Provider,
    ProviderModelOption,
    ResolvedConfig,
    Settings,
)
from ..secret import SecretService

logger = logging.getLogger(__name__)

# Called after every mutation with the settings object. May return an
# awaitable; it is scheduled but never awaited by the manager.
PersistSettings = Callable[[Settings], Any]

_PROVIDER_FIELDS = {"name", "endpoint", "key_config", "key_configs"}
_MODEL_FIELDS = set(ModelConfig.model_fields) - {"id"}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ConfigError(Exception):
    """Base for configuration CRUD failures."""


class ProviderNotFoundError(ConfigError, LookupError):
    def __init__(self, provider_id: str):
        self.provider_id = provider_id
        super().__init__(f"Provider not found: {provider_id}")


class ModelNotFoundError(ConfigError, LookupError):
    def __init__(self, provider_id: str, model_id: str):
        self.provider_id = provider_id
        self.model_id = model_id
        super().__init__(f"Model not found: {provider_id}/{model_id}")


class ConfigValidationError(ConfigError, ValueError):
    """Rejected input; the settings were not modified."""


def _base36(n: int) -> str:
    chars = string.digits + string.ascii_lowercase
    out = ""
    while n:
        n, r = divmod(n, 36)
        out = chars[r] + out
    return out or "0"


class ConfigManager:
    """Owns a ``Settings`` object and funnels every mutation through
    validated methods.

    Args:
        settings: the settings object to manage (mutated in place).
        on_settings_change: persistence callback, invoked after each
            mutation. Fire-and-forget: failures are logged, not raised.
            A coroutine callback is scheduled as a task when an event
            loop is running (see :meth:`flush`); without one it is run
            to completion with ``asyncio.run`` before the mutating call
            returns, so sync hosts such as the CLI block on the save.
        secret_service: store used for shared-mode keys. Can be injected
            later with :meth:`set_secret_service`.
    """

    def __init__(
        self,
        settings: Settings,
        on_settings_change: Optional[PersistSettings] = None,
        secret_service: Optional[SecretService] = None,
    ):
        self.settings = settings
        self._on_settings_change = on_settings_change
        self._key_resolver = KeyResolver(secret_service)
        # Guards the read-then-write of current_key_index and all CRUD.
        self._lock = threading.RLock()
        self._pending_saves: set[asyncio.Task] = set()

    @property
    def key_resolver(self) -> KeyResolver:
        return self._key_resolver

    def set_secret_service(self, secret_service: SecretService) -> None:
        """Late injection of the shared secret store."""
        self._key_resolver.secret_service = secret_service

    @staticmethod
    def generate_id() -> str:
        """Timestamp + random suffix, both base36."""
        timestamp = _base36(int(time.time() * 1000))
        alphabet = string.digits + string.ascii_lowercase
        random_part = "".join(secrets.choice(alphabet) for _ in range(6))
        return f"{timestamp}-{random_part}"

    # -----------------------------------------------------------------------
    # Providers
    # -----------------------------------------------------------------------

    def get_providers(self) -> List[Provider]:
        return self.settings.providers

    def get_provider(self, provider_id: str) -> Optional[Provider]:
        for provider in self.settings.providers:
            if provider.id == provider_id:
                return provider
        return None

    def _require_provider(self, provider_id: str) -> Provider:
        provider = self.get_provider(provider_id)
        if provider is None:
            raise ProviderNotFoundError(provider_id)
        return provider

    def add_provider(
        self,
        name: str,
        endpoint: str,
        key_config: Optional[KeyConfig] = None,
        key_configs: Optional[List[KeyConfig]] = None,
    ) -> Provider:
        if not name or not name.strip():
            raise ConfigValidationError("Provider name is required")
        if not endpoint or not endpoint.strip():
            raise ConfigValidationError("Provider endpoint is required")

        with self._lock:
            provider = Provider(
                id=self.generate_id(),
                name=name.strip(),
                endpoint=endpoint.strip(),
                key_config=key_config,
                key_configs=list(key_configs or []),
            )
            self.settings.providers.append(provider)
        logger.info("Added provider %s (%s)", provider.name, provider.id)
        self._save_settings()
        return provider

    def update_provider(self, provider_id: str, **updates: Any) -> Provider:
        """Partially update a provider (name, endpoint, key configs)."""
        unknown = set(updates) - _PROVIDER_FIELDS
        if unknown:
            raise ConfigValidationError(
                f"Unknown provider field(s): {', '.join(sorted(unknown))}",
            )
        with self._lock:
            provider = self._require_provider(provider_id)
            name = updates.get("name")
            if name is not None and not name.strip():
                raise ConfigValidationError("Provider name cannot be empty")
            endpoint = updates.get("endpoint")
            if endpoint is not None and not endpoint.strip():
                raise ConfigValidationError(
                    "Provider endpoint cannot be empty",
                )

            merged = provider.model_dump()
            merged.update(
                {
                    k: v.model_dump() if hasattr(v, "model_dump") else v
                    for k, v in updates.items()
                },
            )
            if "key_configs" in updates:
                merged["key_configs"] = [
                    kc.model_dump() if hasattr(kc, "model_dump") else kc
                    for kc in updates["key_configs"] or []
                ]
            try:
                candidate = Provider.model_validate(merged)
            except ValidationError as exc:
                raise ConfigValidationError(str(exc)) from exc

            provider.name = candidate.name.strip()
            provider.endpoint = candidate.endpoint.strip()
            provider.key_config = candidate.key_config
            provider.key_configs = candidate.key_configs
            if provider.current_key_index >= max(len(provider.key_configs), 1):
                provider.current_key_index = 0
        self._save_settings()
        return provider

    def delete_provider(self, provider_id: str) -> None:
        """Delete a provider and its models; clear references to it first."""
        with self._lock:
            index = next(
                (
                    i
                    for i, p in enumerate(self.settings.providers)
                    if p.id == provider_id
                ),
                None,
            )
            if index is None:
                raise ProviderNotFoundError(provider_id)

            self._reset_bindings_for_provider(provider_id)
            removed = self.settings.providers.pop(index)
        logger.info(
            "Deleted provider %s with %d model(s)",
            removed.name,
            len(removed.models),
        )
        self._save_settings()

    def find_provider_by_host(
        self,
        patterns: Iterable[str],
    ) -> Optional[Provider]:
        """First provider whose endpoint contains any of *patterns*."""
        lowered = [p.lower() for p in patterns]
        for provider in self.settings.providers:
            endpoint = provider.endpoint.lower()
            if any(p in endpoint for p in lowered):
                return provider
        return None

    # -----------------------------------------------------------------------
    # Models
    # -----------------------------------------------------------------------

    def get_models(self, provider_id: str) -> List[ModelConfig]:
        provider = self.get_provider(provider_id)
        return provider.models if provider else []

    def get_model(
        self,
        provider_id: str,
        model_id: str,
    ) -> Optional[ModelConfig]:
        provider = self.get_provider(provider_id)
        if provider is None:
            return None
        for model in provider.models:
            if model.id == model_id:
                return model
        return None

    def _require_model(self, provider: Provider, model_id: str) -> ModelConfig:
        for model in provider.models:
            if model.id == model_id:
                return model
        raise ModelNotFoundError(provider.id, model_id)

    def add_model(self, provider_id: str, **fields: Any) -> ModelConfig:
        """Add a model. ``name`` is required; other fields default."""
        with self._lock:
            provider = self._require_provider(provider_id)
            fields.pop("id", None)
            model = self._build_model(self.generate_id(), fields)
            provider.models.append(model)
        logger.info("Added model %s to provider %s", model.name, provider.name)
        self._save_settings()
        return model

    def update_model(
        self,
        provider_id: str,
        model_id: str,
        **updates: Any,
    ) -> ModelConfig:
        with self._lock:
            provider = self._require_provider(provider_id)
            model = self._require_model(provider, model_id)
            updates.pop("id", None)
            merged = model.model_dump()
            merged.update(updates)
            candidate = self._build_model(model_id, merged)
            for field in _MODEL_FIELDS:
                setattr(model, field, getattr(candidate, field))
        self._save_settings()
        return model

    def delete_model(self, provider_id: str, model_id: str) -> None:
        with self._lock:
            provider = self._require_provider(provider_id)
            model = self._require_model(provider, model_id)
            self._reset_bindings_for_model(provider_id, model_id)
            provider.models.remove(model)
        self._save_settings()

    def reorder_model(
        self,
        provider_id: str,
        from_index: int,
        to_index: int,
    ) -> None:
        with self._lock:
            provider = self._require_provider(provider_id)
            count = len(provider.models)
            if not (0 <= from_index < count and 0 <= to_index < count):
                raise ConfigValidationError("Invalid index for reorder")
            if from_index == to_index:
                return
            model = provider.models.pop(from_index)
            provider.models.insert(to_index, model)
        self._save_settings()

    def _build_model(
        self,
        model_id: str,
        fields: Dict[str, Any],
    ) -> ModelConfig:
        unknown = set(fields) - _MODEL_FIELDS - {"id"}
        if unknown:
            raise ConfigValidationError(
                f"Unknown model field(s): {', '.join(sorted(unknown))}",
            )
        data = {k: v for k, v in fields.items() if k != "id"}
        try:
            model = ModelConfig(id=model_id, **data)
        except ValidationError as exc:
            raise ConfigValidationError(
                f"Invalid model configuration: {exc}",
            ) from exc
        self.validate_model_config(model)
        return model

    @staticmethod
    def validate_model_config(model: ModelConfig) -> None:
        """Reject out-of-range parameters. Values are never clamped."""
        if not model.name or not model.name.strip():
            raise ConfigValidationError("Model name is required")
        if not 0 <= model.temperature <= 2:
            raise ConfigValidationError(
                "Invalid parameter: temperature must be between 0 and 2",
            )
        if not 0 <= model.top_p <= 1:
            raise ConfigValidationError(
                "Invalid parameter: top_p must be between 0 and 1",
            )
        if model.max_output_tokens < 0:
            raise ConfigValidationError(
                "Invalid parameter: max_output_tokens must be a "
                "non-negative integer",
            )
        if (
            model.reasoning_effort is not None
            and model.reasoning_effort not in VALID_REASONING_EFFORTS
        ):
            raise ConfigValidationError(
                "Invalid parameter: reasoning_effort must be one of "
                f"{', '.join(VALID_REASONING_EFFORTS)}",
            )

    # -----------------------------------------------------------------------
    # Feature bindings
    # -----------------------------------------------------------------------

    def get_feature_binding(self, feature: str) -> Optional[FeatureBinding]:
        return self.settings.feature_bindings.get(feature)

    def set_feature_binding(
        self,
        feature: str,
        binding: FeatureBinding,
    ) -> None:
        if not feature or not feature.strip():
            raise ConfigValidationError("Feature name is required")
        with self._lock:
            provider = self._require_provider(binding.provider_id)
            self._require_model(provider, binding.model_id)
            self.settings.feature_bindings[feature] = binding.model_copy()
        self._save_settings()

    def remove_feature_binding(self, feature: str) -> bool:
        """Remove a binding. Returns False if there was none."""
        with self._lock:
            removed = self.settings.feature_bindings.pop(feature, None)
        if removed is None:
            return False
        self._save_settings()
        return True

    def resolve_feature_config(self, feature: str) -> Optional[ResolvedConfig]:
        """Dereference a binding, or None when the feature is unconfigured.

        Missing bindings and bindings whose provider/model have gone are
        both the normal "needs setup" state; this never raises.
        """
        binding = self.get_feature_binding(feature)
        if binding is None:
            return None
        provider = self.get_provider(binding.provider_id)
        if provider is None:
            return None
        model = self.get_model(binding.provider_id, binding.model_id)
        if model is None:
            return None
        return ResolvedConfig(
            provider=provider,
            model=model,
            prompt_template=binding.prompt_template,
        )

    def get_provider_model_options(self) -> List[ProviderModelOption]:
        return [
            ProviderModelOption(
                label=f"{provider.name} / {model.label}",
                provider_id=provider.id,
                model_id=model.id,
            )
            for provider in self.settings.providers
            for model in provider.models
        ]

    def _reset_bindings_for_provider(self, provider_id: str) -> None:
        for feature, binding in list(self.settings.feature_bindings.items()):
            if binding.provider_id == provider_id:
                del self.settings.feature_bindings[feature]
                logger.info(
                    "Cleared '%s' binding (provider %s deleted)",
                    feature,
                    provider_id,
                )

        voice = self.settings.voice
        if voice.post_processing_provider_id == provider_id:
            voice.post_processing_provider_id = None
            voice.post_processing_model_id = None
        if voice.assistant.provider_id == provider_id:
            voice.assistant.provider_id = None
            voice.assistant.model_id = None

    def _reset_bindings_for_model(
        self,
        provider_id: str,
        model_id: str,
    ) -> None:
        for feature, binding in list(self.settings.feature_bindings.items()):
            if (
                binding.provider_id == provider_id
                and binding.model_id == model_id
            ):
                del self.settings.feature_bindings[feature]
                logger.info(
                    "Cleared '%s' binding (model %s/%s deleted)",
                    feature,
                    provider_id,
                    model_id,
                )

        voice = self.settings.voice
        if (
            voice.post_processing_provider_id == provider_id
            and voice.post_processing_model_id == model_id
        ):
            voice.post_processing_model_id = None
        if (
            voice.assistant.provider_id == provider_id
            and voice.assistant.model_id == model_id
        ):
            voice.assistant.model_id = None

    # -----------------------------------------------------------------------
    # API keys
    # -----------------------------------------------------------------------

    def resolve_key_value(
        self,
        key_config: Optional[KeyConfig],
    ) -> Optional[str]:
        return self._key_resolver.resolve(key_config)

    def get_api_key(self, provider_id: str) -> Optional[str]:
        """Current usable key for a provider, or None.

        With a rotation list, the key at ``current_key_index`` is tried
        first; if it does not resolve the next resolvable one (wrapping) is
        returned and its index committed.
        """
        with self._lock:
            provider = self.get_provider(provider_id)
            if provider is None:
                return None
            if not provider.key_configs:
                return self.resolve_key_value(provider.key_config)

            start = self._current_index(provider)
            total = len(provider.key_configs)
            for offset in range(total):
                index = (start + offset) % total
                value = self.resolve_key_value(provider.key_configs[index])
                if value:
                    break
            else:
                return None
            changed = index != provider.current_key_index
            provider.current_key_index = index
        if changed:
            self._save_settings()
        return value

    def rotate_api_key(self, provider_id: str) -> Optional[str]:
        """Advance to the next resolvable key after the current one.

        With fewer than two configured keys this just returns the current
        key and never moves the cursor.
        """
        with self._lock:
            provider = self.get_provider(provider_id)
            if provider is None:
                return None
            if len(provider.key_configs) <= 1:
                return self.get_api_key(provider_id)

            current = self._current_index(provider)
            total = len(provider.key_configs)
            for step in range(1, total + 1):
                index = (current + step) % total
                value = self.resolve_key_value(provider.key_configs[index])
                if value:
                    provider.current_key_index = index
                    break
            else:
                logger.warning(
                    "No usable API key left for provider %s",
                    provider.name,
                )
                return None
        logger.info(
            "Rotated API key for provider %s to index %d",
            provider.name,
            index,
        )
        self._save_settings()
        return value

    def get_api_keys(self, provider_id: str) -> List[str]:
        """All resolvable keys of a provider, rotation list first."""
        provider = self.get_provider(provider_id)
        if provider is None:
            return []
        keys = [
            value
            for value in map(self.resolve_key_value, provider.key_configs)
            if value
        ]
        if keys:
            return keys
        value = self.resolve_key_value(provider.key_config)
        return [value] if value else []

    def get_api_key_count(self, provider_id: str) -> int:
        provider = self.get_provider(provider_id)
        if provider is None:
            return 0
        if provider.key_configs:
            return len(provider.key_configs)
        return 1 if provider.key_config else 0

    def has_api_key(self, provider_id: str) -> bool:
        """True if the provider names at least one key (not resolved)."""
        provider = self.get_provider(provider_id)
        if provider is None:
            return False
        configs = list(provider.key_configs) or [provider.key_config]
        return any(self._key_resolver.is_configured(kc) for kc in configs)

    def add_api_key(self, provider_id: str, key_config: KeyConfig) -> int:
        """Append a key to the rotation list. Returns its index.

        A provider that only had a single ``key_config`` has it moved to
        the head of the list first so rotation covers both.
        """
        with self._lock:
            provider = self._require_provider(provider_id)
            if not provider.key_configs and provider.key_config is not None:
                provider.key_configs.append(provider.key_config)
            provider.key_configs.append(key_config)
            index = len(provider.key_configs) - 1
        self._save_settings()
        return index

    def remove_api_key(self, provider_id: str, index: int) -> None:
        with self._lock:
            provider = self._require_provider(provider_id)
            if not 0 <= index < len(provider.key_configs):
                raise ConfigValidationError(
                    f"Invalid key index {index} for provider {provider.name}",
                )
            provider.key_configs.pop(index)
            if provider.current_key_index > index:
                provider.current_key_index -= 1
            elif provider.current_key_index >= len(provider.key_configs):
                provider.current_key_index = 0
        self._save_settings()

    @staticmethod
    def _current_index(provider: Provider) -> int:
        index = provider.current_key_index
        if 0 <= index < len(provider.key_configs):
            return index
        return 0

    # -----------------------------------------------------------------------
    # Persistence
    # -----------------------------------------------------------------------

    def _save_settings(self) -> None:
        """Hand the settings to the persistence callback without waiting."""
        if self._on_settings_change is None:
            return
        try:
            result = self._on_settings_change(self.settings)
        except Exception:
            logger.exception("Persisting settings failed")
            return
        if not inspect.isawaitable(result):
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is None:
            try:
                asyncio.run(_await(result))
            except Exception:
                logger.exception("Persisting settings failed")
            return

        task = loop.create_task(_await(result))
        self._pending_saves.add(task)
        task.add_done_callback(self._on_save_done)

    def _on_save_done(self, task: asyncio.Task) -> None:
        self._pending_saves.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Persisting settings failed: %s", exc)

    async def flush(self) -> None:
        """Wait for scheduled async saves (tests, shutdown)."""
        if self._pending_saves:
            await asyncio.gather(
                *list(self._pending_saves),
                return_exceptions=True,
            )


async def _await(awaitable: Any) -> Any:
    return await awaitable
