# -*- coding: utf-8 -*-
import os
from pathlib import Path

WORKING_DIR = (
    Path(os.environ.get("SMARTFLOW_WORKING_DIR", "~/.smartflow"))
    .expanduser()
    .resolve()
)

SETTINGS_FILE = os.environ.get("SMARTFLOW_SETTINGS_FILE", "settings.json")

SECRETS_FILE = os.environ.get("SMARTFLOW_SECRETS_FILE", "secrets.json")

# Env key for app log level (used by CLI).
LOG_LEVEL_ENV = "SMARTFLOW_LOG_LEVEL"

# Prefix for env-backed shared secrets, e.g. SMARTFLOW_SECRET_OPENAI_KEY
SECRET_ENV_PREFIX = "SMARTFLOW_SECRET_"

# Seconds before a non-streaming request is abandoned.
DEFAULT_REQUEST_TIMEOUT = float(
    os.environ.get("SMARTFLOW_REQUEST_TIMEOUT", "15"),
)

# Upper bound on cleaned response content returned to features.
MAX_OUTPUT_LENGTH = 200

# Prompt content longer than this is truncated head/tail before rendering.
MAX_PROMPT_CONTENT_CHARS = 3000
