# -*- coding: utf-8 -*-
"""Reading and writing provider configuration (providers.json)."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from ..constant import PROVIDERS_FILE, WORKING_DIR
from ..errors import ProviderNotFoundError
from .keystore import CredentialCipher, is_encrypted
from .models import (
    ConfigExport,
    Provider,
    ProviderCreateRequest,
    ProvidersData,
    ProviderUpdateRequest,
    TaskConfig,
    TaskName,
    validate_provider_draft,
    validate_provider_patch,
)

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"


def get_providers_json_path() -> Path:
    """Return the default providers.json path."""
    return WORKING_DIR / PROVIDERS_FILE


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clean_models(models: List[str]) -> List[str]:
    """Strip blanks and duplicates, keeping first-seen order."""
    seen: dict[str, None] = {}
    for model in models:
        model = model.strip()
        if model:
            seen.setdefault(model, None)
    return list(seen)


def _find(data: ProvidersData, provider_id: str) -> Optional[int]:
    for idx, provider in enumerate(data.providers):
        if provider.provider_id == provider_id:
            return idx
    return None


def _apply_default(data: ProvidersData, provider_id: str) -> None:
    """Point the default at *provider_id* ("" clears it) and sync flags."""
    data.default_provider_id = provider_id
    for provider in data.providers:
        provider.is_default = bool(provider_id) and (
            provider.provider_id == provider_id
        )


def _sorted(providers: List[Provider]) -> List[Provider]:
    return sorted(providers, key=lambda p: (p.sort_order, p.created_at))


# ---------------------------------------------------------------------------
# Load / Save
# ---------------------------------------------------------------------------


def load_providers_json(path: Optional[Path] = None) -> ProvidersData:
    """Load providers.json; a missing or unreadable file is an empty store.

    Stored API keys are decrypted, so records carry the raw credential.
    """
    if path is None:
        path = get_providers_json_path()

    if not path.is_file():
        return ProvidersData()
    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw = json.load(fh)
        data = ProvidersData.model_validate(raw)
    except (json.JSONDecodeError, ValueError) as exc:
        logger.error("Failed to read %s: %s", path, exc)
        return ProvidersData()

    if any(is_encrypted(p.api_key) for p in data.providers):
        cipher = CredentialCipher.for_store(path)
        for provider in data.providers:
            provider.api_key = cipher.decrypt(provider.api_key)
            provider.has_api_key = bool(provider.api_key)

    if _find(data, data.default_provider_id) is None:
        data.default_provider_id = ""
    _apply_default(data, data.default_provider_id)
    return data


def save_providers_json(
    data: ProvidersData,
    path: Optional[Path] = None,
) -> None:
    """Write provider settings to providers.json, API keys encrypted."""
    if path is None:
        path = get_providers_json_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = data.model_dump(mode="json")
    if any(p["api_key"] for p in payload["providers"]):
        cipher = CredentialCipher.for_store(path)
        for provider in payload["providers"]:
            provider["api_key"] = cipher.encrypt(provider["api_key"])

    with open(path, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Provider queries
# ---------------------------------------------------------------------------


def list_provider_records(path: Optional[Path] = None) -> List[Provider]:
    """Return all stored providers (raw credentials included)."""
    return _sorted(load_providers_json(path).providers)


def get_provider_record(
    provider_id: str,
    path: Optional[Path] = None,
) -> Optional[Provider]:
    data = load_providers_json(path)
    idx = _find(data, provider_id)
    return data.providers[idx] if idx is not None else None


def get_default_provider_record(
    path: Optional[Path] = None,
) -> Optional[Provider]:
    data = load_providers_json(path)
    idx = _find(data, data.default_provider_id)
    return data.providers[idx] if idx is not None else None


# ---------------------------------------------------------------------------
# Provider mutators (load → modify → save → return record)
# ---------------------------------------------------------------------------


def create_provider_record(
    draft: ProviderCreateRequest,
    path: Optional[Path] = None,
) -> Provider:
    """Validate and persist a new provider. Returns the stored record."""
    validate_provider_draft(draft)
    data = load_providers_json(path)

    now = _now()
    provider = Provider(
        provider_id=uuid.uuid4().hex,
        name=draft.name.strip(),
        type=draft.type,
        base_url=draft.base_url.strip(),
        api_key=draft.api_key or "",
        has_api_key=bool(draft.api_key),
        models=_clean_models(draft.models),
        is_enabled=draft.is_enabled,
        parameters=draft.parameters,
        sort_order=max((p.sort_order for p in data.providers), default=-1)
        + 1,
        created_at=now,
        updated_at=now,
    )
    data.providers.append(provider)
    if draft.is_default:
        _apply_default(data, provider.provider_id)

    save_providers_json(data, path)
    logger.info("Created provider %s (%s)", provider.name, provider.type.value)
    return provider


def update_provider_record(
    provider_id: str,
    patch: ProviderUpdateRequest,
    path: Optional[Path] = None,
) -> Optional[Provider]:
    """Partially update a provider. Returns None if it does not exist.

    A blank ``api_key`` keeps the stored credential.
    """
    validate_provider_patch(patch)
    data = load_providers_json(path)
    idx = _find(data, provider_id)
    if idx is None:
        return None

    changes = patch.model_dump(exclude_none=True, exclude={"is_default"})
    if not (patch.api_key or "").strip():
        changes.pop("api_key", None)
    if "models" in changes:
        changes["models"] = _clean_models(changes["models"])
    if "name" in changes:
        changes["name"] = changes["name"].strip()
    if "parameters" in changes:
        changes["parameters"] = patch.parameters

    provider = data.providers[idx].model_copy(update=changes)
    provider.has_api_key = bool(provider.api_key)
    provider.updated_at = _now()
    data.providers[idx] = provider

    if patch.is_default is True:
        _apply_default(data, provider_id)
    elif patch.is_default is False and data.default_provider_id == provider_id:
        _apply_default(data, "")

    save_providers_json(data, path)
    logger.info("Updated provider %s", provider_id)
    return data.providers[idx]


def delete_provider_record(
    provider_id: str,
    path: Optional[Path] = None,
) -> None:
    """Delete a provider; deleting the default leaves no default."""
    data = load_providers_json(path)
    idx = _find(data, provider_id)
    if idx is None:
        raise ProviderNotFoundError(provider_id)
    del data.providers[idx]
    if data.default_provider_id == provider_id:
        _apply_default(data, "")
    save_providers_json(data, path)
    logger.info("Deleted provider %s", provider_id)


def set_default_provider_id(
    provider_id: str,
    path: Optional[Path] = None,
) -> Provider:
    data = load_providers_json(path)
    idx = _find(data, provider_id)
    if idx is None:
        raise ProviderNotFoundError(provider_id)
    _apply_default(data, provider_id)
    save_providers_json(data, path)
    logger.info("Default provider set to %s", provider_id)
    return data.providers[idx]


def set_provider_models(
    provider_id: str,
    models: List[str],
    path: Optional[Path] = None,
) -> Provider:
    """Replace the stored model set of a provider with *models*."""
    data = load_providers_json(path)
    idx = _find(data, provider_id)
    if idx is None:
        raise ProviderNotFoundError(provider_id)
    provider = data.providers[idx]
    provider.models = _clean_models(models)
    provider.updated_at = _now()
    save_providers_json(data, path)
    return provider


# ---------------------------------------------------------------------------
# Task configs
# ---------------------------------------------------------------------------


def list_task_configs(path: Optional[Path] = None) -> List[TaskConfig]:
    data = load_providers_json(path)
    return [
        data.task_configs[t.value]
        for t in TaskName
        if t.value in data.task_configs
    ]


def get_task_config(
    task_name: TaskName,
    path: Optional[Path] = None,
) -> Optional[TaskConfig]:
    data = load_providers_json(path)
    return data.task_configs.get(TaskName(task_name).value)


def update_task_config(
    config: TaskConfig,
    path: Optional[Path] = None,
) -> TaskConfig:
    """Overwrite the stored binding of ``config.task_name``."""
    data = load_providers_json(path)
    data.task_configs[config.task_name.value] = config
    save_providers_json(data, path)
    logger.info("Updated task config %s", config.task_name.value)
    return config


# ---------------------------------------------------------------------------
# Utilities
# ---------------------------------------------------------------------------


def mask_api_key(api_key: str, visible_chars: int = 4) -> str:
    """Mask an API key for safe display.

    Example: ``"sk-abcdefghijk"`` → ``"sk-*******hijk"``
    """
    if not api_key:
        return ""
    if len(api_key) <= visible_chars:
        return "*" * len(api_key)
    prefix = api_key[:3] if len(api_key) > 3 else ""
    suffix = api_key[-visible_chars:]
    hidden_len = len(api_key) - len(prefix) - visible_chars
    return f"{prefix}{'*' * max(hidden_len, 4)}{suffix}"


def to_public(provider: Provider) -> Provider:
    """Copy of *provider* safe to return from read operations."""
    return provider.model_copy(
        update={
            "api_key": mask_api_key(provider.api_key),
            "has_api_key": bool(provider.api_key),
        },
    )


def export_config(path: Optional[Path] = None) -> ConfigExport:
    """Snapshot of all providers (masked keys) and task configs."""
    return ConfigExport(
        version=EXPORT_VERSION,
        exported_at=_now(),
        providers=[to_public(p) for p in list_provider_records(path)],
        task_configs=list_task_configs(path),
    )
