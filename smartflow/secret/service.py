# -*- coding: utf-8 -*-
"""Shared secret stores.

A shared secret is an API key kept outside settings.json and referenced
from a provider by id only. ``ConfigManager`` talks to whichever store is
injected through the :class:`SecretService` protocol; when no store is
wired, or a store returns ``None``, the key is simply unavailable.
"""
from __future__ import annotations

import json
import logging
import os
import re
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Protocol, runtime_checkable

from dotenv import dotenv_values

from ..constant import SECRET_ENV_PREFIX

logger = logging.getLogger(__name__)

# lowercase alphanumerics, single dashes between groups
SECRET_ID_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


class SecretErrorCode(str, Enum):
    INVALID_SECRET_ID = "INVALID_SECRET_ID"
    SECRET_NOT_FOUND = "SECRET_NOT_FOUND"
    EMPTY_SECRET_VALUE = "EMPTY_SECRET_VALUE"


class SecretServiceError(Exception):
    def __init__(
        self,
        message: str,
        code: SecretErrorCode,
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        self.code = code
        self.cause = cause
        super().__init__(message)


def validate_secret_id(secret_id: str) -> bool:
    """Return True if *secret_id* is lowercase alphanumeric with dashes."""
    if not secret_id or not isinstance(secret_id, str):
        return False
    return SECRET_ID_PATTERN.match(secret_id) is not None


@runtime_checkable
class SecretService(Protocol):
    def get_secret(self, secret_id: str) -> Optional[str]:
        """Return the secret value, or None if it does not exist."""

    def set_secret(self, secret_id: str, value: str) -> None:
        """Store a secret; raises SecretServiceError on a bad id."""

    def list_secrets(self) -> List[str]:
        """Return all known secret ids."""

    def validate_secret_id(self, secret_id: str) -> bool:
        """Return True if the id is well-formed."""

    def clear_cache(self) -> None:
        """Drop cached values so the next read hits the backing store."""


class FileSecretStore:
    """Secrets kept in a JSON file (``{id: value}``), read-through cached."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._cache: Dict[str, Optional[str]] = {}

    def _read_all(self) -> Dict[str, str]:
        if not self.path.is_file():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                raw = json.load(fh)
        except (json.JSONDecodeError, ValueError):
            logger.warning("Secret file %s is not valid JSON", self.path)
            return {}
        if not isinstance(raw, dict):
            return {}
        return {k: v for k, v in raw.items() if isinstance(v, str)}

    def _write_all(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2, ensure_ascii=False)
        try:
            os.chmod(self.path, 0o600)
        except OSError:
            logger.debug("Could not restrict permissions on %s", self.path)

    def validate_secret_id(self, secret_id: str) -> bool:
        return validate_secret_id(secret_id)

    def get_secret(self, secret_id: str) -> Optional[str]:
        if secret_id in self._cache:
            return self._cache[secret_id]
        value = self._read_all().get(secret_id)
        self._cache[secret_id] = value
        return value

    def set_secret(self, secret_id: str, value: str) -> None:
        if not self.validate_secret_id(secret_id):
            raise SecretServiceError(
                f'Invalid secret ID: "{secret_id}". ID must be lowercase '
                "alphanumeric with optional dashes.",
                SecretErrorCode.INVALID_SECRET_ID,
            )
        if not value:
            raise SecretServiceError(
                f"Secret value for '{secret_id}' is empty",
                SecretErrorCode.EMPTY_SECRET_VALUE,
            )
        data = self._read_all()
        data[secret_id] = value
        self._write_all(data)
        self._cache[secret_id] = value

    def delete_secret(self, secret_id: str) -> None:
        data = self._read_all()
        if secret_id not in data:
            raise SecretServiceError(
                f"Secret not found: {secret_id}",
                SecretErrorCode.SECRET_NOT_FOUND,
            )
        del data[secret_id]
        self._write_all(data)
        self._cache.pop(secret_id, None)

    def list_secrets(self) -> List[str]:
        return sorted(self._read_all())

    def clear_cache(self) -> None:
        self._cache.clear()


class EnvSecretStore:
    """Read-only secrets from the environment and an optional .env file.

    Secret ``openai-key`` is read from ``SMARTFLOW_SECRET_OPENAI_KEY``.
    """

    def __init__(
        self,
        dotenv_path: Optional[Path] = None,
        prefix: str = SECRET_ENV_PREFIX,
    ):
        self.dotenv_path = dotenv_path
        self.prefix = prefix
        self._cache: Optional[Dict[str, str]] = None

    def _env_name(self, secret_id: str) -> str:
        return self.prefix + secret_id.upper().replace("-", "_")

    def _load(self) -> Dict[str, str]:
        if self._cache is None:
            values: Dict[str, str] = {}
            if self.dotenv_path is not None:
                for k, v in dotenv_values(self.dotenv_path).items():
                    if v is not None:
                        values[k] = v
            # real environment wins over .env
            values.update(os.environ)
            self._cache = {
                k: v for k, v in values.items() if k.startswith(self.prefix)
            }
        return self._cache

    def validate_secret_id(self, secret_id: str) -> bool:
        return validate_secret_id(secret_id)

    def get_secret(self, secret_id: str) -> Optional[str]:
        if not self.validate_secret_id(secret_id):
            return None
        return self._load().get(self._env_name(secret_id)) or None

    def set_secret(self, secret_id: str, value: str) -> None:
        raise SecretServiceError(
            "Environment secrets are read-only; export "
            f"{self._env_name(secret_id)} instead",
            SecretErrorCode.INVALID_SECRET_ID,
        )

    def list_secrets(self) -> List[str]:
        return sorted(
            k[len(self.prefix):].lower().replace("_", "-")
            for k in self._load()
        )

    def clear_cache(self) -> None:
        self._cache = None
