# -*- coding: utf-8 -*-
"""Shared secret storage."""

from .service import (
    EnvSecretStore,
    FileSecretStore,
    SecretErrorCode,
    SecretService,
    SecretServiceError,
    validate_secret_id,
)

__all__ = [
    "EnvSecretStore",
    "FileSecretStore",
    "SecretErrorCode",
    "SecretService",
    "SecretServiceError",
    "validate_secret_id",
]
