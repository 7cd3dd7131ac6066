# -*- coding: utf-8 -*-
from __future__ import annotations

import asyncio
import functools
import json
from pathlib import Path
from typing import (
    Any,
    Awaitable,
    Callable,
    List,
    Optional,
    Sequence,
    TypeVar,
)

import click

from ..ai import AIError, AIService
from ..constant import SECRETS_FILE, WORKING_DIR
from ..providers import (
    ConfigError,
    ConfigManager,
    KeyConfig,
    LocalKeyConfig,
    SharedKeyConfig,
    get_settings_json_path,
    load_settings_json,
    make_json_persister,
)
from ..secret import (
    EnvSecretStore,
    FileSecretStore,
    SecretService,
    SecretServiceError,
)

T = TypeVar("T")

# Errors that end a command with a red message instead of a traceback.
USER_ERRORS = (ConfigError, AIError, SecretServiceError)


def print_json(data: Any) -> None:
    click.echo(json.dumps(data, ensure_ascii=False, indent=2))


def fail(message: str) -> None:
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    raise SystemExit(1)


def handle_errors(func: Callable) -> Callable:
    """Report configuration, AI and secret errors without a traceback."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except USER_ERRORS as exc:
            message = str(exc)
            hint = getattr(exc, "hint", "")
            if hint:
                message = f"{message}\n  Hint: {hint}"
            fail(message)

    return wrapper


def _obj(ctx: click.Context) -> dict:
    return ctx.find_root().obj or {}


def settings_path(ctx: click.Context) -> Path:
    return _obj(ctx).get("settings_path") or get_settings_json_path()


def secret_store(ctx: click.Context) -> SecretService:
    obj = _obj(ctx)
    if obj.get("env_secrets"):
        dotenv = Path(".env")
        return EnvSecretStore(dotenv if dotenv.is_file() else None)
    return FileSecretStore(
        obj.get("secrets_path") or WORKING_DIR / SECRETS_FILE,
    )


def load_manager(ctx: click.Context) -> ConfigManager:
    """ConfigManager over the settings file, saving after every change."""
    path = settings_path(ctx)
    return ConfigManager(
        load_settings_json(path),
        on_settings_change=make_json_persister(path),
        secret_service=secret_store(ctx),
    )


def load_service(ctx: click.Context) -> AIService:
    return AIService(load_manager(ctx))


def run(coro: Awaitable[T]) -> T:
    return asyncio.run(coro)


def build_key_configs(
    api_keys: Sequence[str],
    secret_ids: Sequence[str],
) -> List[KeyConfig]:
    configs: List[KeyConfig] = [LocalKeyConfig(value=k) for k in api_keys]
    configs.extend(SharedKeyConfig(secret_id=s) for s in secret_ids)
    return configs


def single_key_config(
    api_key: Optional[str],
    secret_id: Optional[str],
) -> KeyConfig:
    if bool(api_key) == bool(secret_id):
        fail("Pass exactly one of --api-key or --secret-id.")
    if api_key:
        return LocalKeyConfig(value=api_key)
    return SharedKeyConfig(secret_id=secret_id)
