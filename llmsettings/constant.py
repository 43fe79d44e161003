# -*- coding: utf-8 -*-
import os
from pathlib import Path

WORKING_DIR = (
    Path(os.environ.get("LLMSETTINGS_WORKING_DIR", "~/.llmsettings"))
    .expanduser()
    .resolve()
)

CONFIG_FILE = os.environ.get("LLMSETTINGS_CONFIG_FILE", "config.json")

PROVIDERS_FILE = os.environ.get(
    "LLMSETTINGS_PROVIDERS_FILE",
    "providers.json",
)

# Env key for app log level (used by CLI and the backend app).
LOG_LEVEL_ENV = "LLMSETTINGS_LOG_LEVEL"

# Base URL of the settings backend consumed by the CLI / client.
DEFAULT_API_URL = os.environ.get(
    "LLMSETTINGS_API_URL",
    "http://127.0.0.1:8090",
)

DEFAULT_REQUEST_TIMEOUT = float(
    os.environ.get("LLMSETTINGS_REQUEST_TIMEOUT", "30"),
)

# Provider calls fall back to this timeout when parameters.timeout_ms is unset.
DEFAULT_PROVIDER_TIMEOUT_MS = 30000

# Test results for a probe without an explicit model are stored under this key.
DEFAULT_MODEL_KEY = "default"

# Anthropic API version header sent by the backend clients.
ANTHROPIC_API_VERSION = "2023-06-01"

# Azure OpenAI api-version used when a provider does not set one.
AZURE_DEFAULT_API_VERSION = "2024-02-01"

# Fernet key for credentials stored in providers.json; when unset a key file
# is generated next to the store.
SECRET_KEY_ENV = "LLMSETTINGS_SECRET_KEY"
SECRET_KEY_FILE = "providers.key"
