# -*- coding: utf-8 -*-
"""Provider models, registry, task bindings and the persistent store."""

from .models import (
    ChatReply,
    ChatRequest,
    ConfigExport,
    DefaultProviderRequest,
    LLMParameters,
    ModelsSyncResult,
    Provider,
    ProviderCreateRequest,
    ProvidersData,
    ProviderTestRequest,
    ProviderTestResult,
    ProviderType,
    ProviderUpdateRequest,
    ResolvedTaskBinding,
    TaskConfig,
    TaskName,
    probe_result_key,
    validate_provider_draft,
    validate_provider_patch,
)
from .registry import (
    PRESETS,
    ProviderPreset,
    ProviderRegistry,
    get_preset,
    list_presets,
)
from .tasks import TaskBindingTable, resolve_task_binding
from .store import (
    load_providers_json,
    mask_api_key,
    save_providers_json,
)

__all__ = [
    # models
    "ChatReply",
    "ChatRequest",
    "ConfigExport",
    "DefaultProviderRequest",
    "LLMParameters",
    "ModelsSyncResult",
    "Provider",
    "ProviderCreateRequest",
    "ProvidersData",
    "ProviderTestRequest",
    "ProviderTestResult",
    "ProviderType",
    "ProviderUpdateRequest",
    "ResolvedTaskBinding",
    "TaskConfig",
    "TaskName",
    "probe_result_key",
    "validate_provider_draft",
    "validate_provider_patch",
    # registry
    "PRESETS",
    "ProviderPreset",
    "ProviderRegistry",
    "get_preset",
    "list_presets",
    # tasks
    "TaskBindingTable",
    "resolve_task_binding",
    # store
    "load_providers_json",
    "mask_api_key",
    "save_providers_json",
]
