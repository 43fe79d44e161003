# -*- coding: utf-8 -*-
"""Pydantic data models for providers, task configs and probe results."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from ..constant import DEFAULT_MODEL_KEY
from ..errors import InvalidConfigError


class ProviderType(str, Enum):
    OPENAI = "openai"
    GLM = "glm"
    OLLAMA = "ollama"
    ANTHROPIC = "anthropic"
    AZURE = "azure"
    CUSTOM = "custom"


class TaskName(str, Enum):
    RESUME_ANALYSIS = "resume_analysis"
    RESUME_OPTIMIZATION = "resume_optimization"
    QUESTION_GENERATION = "question_generation"


class LLMParameters(BaseModel):
    """Generation parameters. Unset fields mean "inherit"."""

    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, gt=0)
    timeout_ms: Optional[int] = Field(default=None, gt=0)
    top_p: Optional[float] = Field(default=None, ge=0, le=1)
    frequency_penalty: Optional[float] = Field(default=None, ge=-2, le=2)
    presence_penalty: Optional[float] = Field(default=None, ge=-2, le=2)
    # Azure specific
    api_version: Optional[str] = None

    def merged_with(self, override: "LLMParameters") -> "LLMParameters":
        """Return a copy where every field set on *override* wins."""
        return self.model_copy(
            update=override.model_dump(exclude_none=True),
        )


class Provider(BaseModel):
    """A configured LLM backend.

    ``api_key`` holds the raw credential inside the backend store only;
    every read that leaves the store carries the masked value instead.
    """

    provider_id: str = Field(..., description="Unique provider identifier")
    name: str = Field(..., description="Display name")
    type: ProviderType = Field(..., description="Provider kind")
    base_url: str = Field(default="", description="API base URL")
    api_key: str = Field(default="", description="API key (masked on read)")
    has_api_key: bool = Field(
        default=False,
        description="Whether an api_key is stored",
    )
    models: List[str] = Field(default_factory=list)
    is_enabled: bool = True
    is_default: bool = False
    parameters: LLMParameters = Field(default_factory=LLMParameters)
    sort_order: int = 0
    created_at: str = ""
    updated_at: str = ""


class ProviderCreateRequest(BaseModel):
    name: str
    type: ProviderType
    base_url: str
    api_key: Optional[str] = None
    models: List[str] = Field(default_factory=list)
    is_enabled: bool = True
    is_default: bool = False
    parameters: LLMParameters = Field(default_factory=LLMParameters)


class ProviderUpdateRequest(BaseModel):
    """Partial update; ``None`` fields are left untouched.

    A blank ``api_key`` also means "keep the stored credential".
    """

    name: Optional[str] = None
    type: Optional[ProviderType] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    models: Optional[List[str]] = None
    is_enabled: Optional[bool] = None
    is_default: Optional[bool] = None
    parameters: Optional[LLMParameters] = None


class ProviderTestRequest(BaseModel):
    model: Optional[str] = None


class ProviderTestResult(BaseModel):
    success: bool
    message: str = ""
    latency_ms: Optional[int] = None
    available_models: List[str] = Field(default_factory=list)


class ModelsSyncResult(BaseModel):
    success: bool
    models: List[str] = Field(default_factory=list)
    message: str = ""


class DefaultProviderRequest(BaseModel):
    provider_id: str


class ChatRequest(BaseModel):
    provider_id: str
    message: str
    model: Optional[str] = None


class ChatReply(BaseModel):
    content: str


class TaskConfig(BaseModel):
    """Binding of a task to a provider/model/parameter triple."""

    task_name: TaskName
    provider_id: Optional[str] = Field(
        default=None,
        description="Provider to use; None means the default provider",
    )
    model: Optional[str] = None
    parameters: LLMParameters = Field(default_factory=LLMParameters)


class ResolvedTaskBinding(BaseModel):
    """Effective provider/model/parameters of a task at read time."""

    task_name: TaskName
    provider: Optional[Provider] = None
    model: Optional[str] = None
    parameters: LLMParameters = Field(default_factory=LLMParameters)

    @property
    def resolved(self) -> bool:
        return self.provider is not None


class ProvidersData(BaseModel):
    """Top-level structure of providers.json."""

    providers: List[Provider] = Field(default_factory=list)
    default_provider_id: str = ""
    task_configs: Dict[str, TaskConfig] = Field(default_factory=dict)


class ConfigExport(BaseModel):
    version: str
    exported_at: str
    providers: List[Provider]
    task_configs: List[TaskConfig]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _validate_base_url(base_url: str) -> None:
    if not base_url or not base_url.strip():
        raise InvalidConfigError("base_url must not be empty")
    parsed = urlparse(base_url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidConfigError(f"Invalid base_url: {base_url}")


def _validate_models(models: List[str]) -> None:
    if not [m for m in models if m.strip()]:
        raise InvalidConfigError("At least one model is required")


def validate_provider_draft(draft: ProviderCreateRequest) -> None:
    """Reject drafts with a blank name, bad URL or empty model set."""
    if not draft.name.strip():
        raise InvalidConfigError("Provider name must not be empty")
    _validate_base_url(draft.base_url)
    _validate_models(draft.models)


def validate_provider_patch(patch: ProviderUpdateRequest) -> None:
    """Like :func:`validate_provider_draft` but only for fields present."""
    if patch.name is not None and not patch.name.strip():
        raise InvalidConfigError("Provider name must not be empty")
    if patch.base_url is not None:
        _validate_base_url(patch.base_url)
    if patch.models is not None:
        _validate_models(patch.models)


def probe_result_key(provider_id: str, model: Optional[str] = None) -> str:
    """Cache key of a probe result: ``<provider_id>:<model|default>``."""
    return f"{provider_id}:{model or DEFAULT_MODEL_KEY}"
