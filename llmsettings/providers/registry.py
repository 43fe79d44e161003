# -*- coding: utf-8 -*-
"""Provider presets and the in-memory provider registry."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field

from ..errors import DuplicateProviderError, ProviderNotFoundError
from .models import Provider, ProviderType


class ProviderPreset(BaseModel):
    """Template used to pre-fill a new provider of a given type."""

    type: ProviderType
    name: str
    base_url: str = ""
    default_models: List[str] = Field(default_factory=list)
    description: str = ""


# ---------------------------------------------------------------------------
# Built-in presets
# ---------------------------------------------------------------------------

PRESET_OPENAI = ProviderPreset(
    type=ProviderType.OPENAI,
    name="OpenAI",
    base_url="https://api.openai.com/v1",
    default_models=["gpt-4", "gpt-4-turbo", "gpt-3.5-turbo", "o1", "o1-mini"],
    description="OpenAI official API",
)

PRESET_GLM = ProviderPreset(
    type=ProviderType.GLM,
    name="GLM (Zhipu AI)",
    base_url="https://open.bigmodel.cn/api/paas/v4",
    default_models=["glm-4", "glm-4-flash", "glm-3-turbo"],
    description="Zhipu AI GLM models",
)

PRESET_OLLAMA = ProviderPreset(
    type=ProviderType.OLLAMA,
    name="Ollama (local)",
    base_url="http://localhost:11434/v1",
    default_models=["llama2", "mistral", "codellama", "phi"],
    description="Local Ollama server",
)

PRESET_ANTHROPIC = ProviderPreset(
    type=ProviderType.ANTHROPIC,
    name="Anthropic (Claude)",
    base_url="https://api.anthropic.com/v1",
    default_models=[
        "claude-3-opus-20240229",
        "claude-3-sonnet-20240229",
        "claude-3-haiku-20240307",
    ],
    description="Anthropic Claude models",
)

PRESET_AZURE = ProviderPreset(
    type=ProviderType.AZURE,
    name="Azure OpenAI",
    base_url="https://{resource}.openai.azure.com/openai/deployments/"
    "{deployment}/chat/completions",
    default_models=["gpt-4", "gpt-35-turbo"],
    description="Azure OpenAI service",
)

PRESET_CUSTOM = ProviderPreset(
    type=ProviderType.CUSTOM,
    name="Custom",
    description="Any OpenAI-compatible endpoint",
)

# Presets: provider type -> ProviderPreset
PRESETS: Dict[ProviderType, ProviderPreset] = {
    p.type: p
    for p in (
        PRESET_OPENAI,
        PRESET_GLM,
        PRESET_OLLAMA,
        PRESET_ANTHROPIC,
        PRESET_AZURE,
        PRESET_CUSTOM,
    )
}


def get_preset(provider_type: ProviderType) -> Optional[ProviderPreset]:
    """Return the preset for a provider type, or None if not found."""
    return PRESETS.get(provider_type)


def list_presets() -> List[ProviderPreset]:
    """Return all built-in presets."""
    return list(PRESETS.values())


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class ProviderRegistry:
    """Configured providers keyed by id, plus the default-provider pointer.

    Invariants: ids are unique, and at most one provider carries
    ``is_default=True``; when one does, it is the one the pointer names.
    Every mutator runs synchronously, so with asyncio no reader can see a
    half-applied transition. Stored records are never mutated in place;
    updates swap in copies, so snapshots handed out stay stable.
    """

    def __init__(self, providers: Iterable[Provider] = ()):
        self._providers: Dict[str, Provider] = {}
        self._default_id: Optional[str] = None
        self.replace_all(providers)

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._providers

    @property
    def providers(self) -> Tuple[Provider, ...]:
        return tuple(self._providers.values())

    @property
    def default_id(self) -> Optional[str]:
        return self._default_id

    @property
    def default_provider(self) -> Optional[Provider]:
        if self._default_id is None:
            return None
        return self._providers.get(self._default_id)

    def get(self, provider_id: str) -> Optional[Provider]:
        return self._providers.get(provider_id)

    def replace_all(
        self,
        providers: Iterable[Provider],
        default_id: Optional[str] = None,
    ) -> None:
        """Swap in a fresh snapshot.

        *default_id* wins over the records' own flags; without it the first
        record flagged ``is_default`` becomes the default.
        """
        fresh: Dict[str, Provider] = {}
        for provider in providers:
            if provider.provider_id in fresh:
                raise DuplicateProviderError(provider.provider_id)
            fresh[provider.provider_id] = provider

        if default_id is None or default_id not in fresh:
            default_id = next(
                (p.provider_id for p in fresh.values() if p.is_default),
                None,
            )
        self._providers = fresh
        self._mark_default(default_id)

    def add(self, provider: Provider) -> None:
        if provider.provider_id in self._providers:
            raise DuplicateProviderError(provider.provider_id)
        self._providers[provider.provider_id] = provider.model_copy(
            update={"is_default": False},
        )
        if provider.is_default:
            self._mark_default(provider.provider_id)

    def replace(self, provider: Provider) -> bool:
        """Replace a record in place; returns False if it is unknown."""
        pid = provider.provider_id
        if pid not in self._providers:
            return False
        self._providers[pid] = provider.model_copy(
            update={"is_default": False},
        )
        if provider.is_default:
            self._mark_default(pid)
        elif pid == self._default_id:
            self._mark_default(None)
        return True

    def remove(self, provider_id: str) -> Optional[Provider]:
        """Drop a record. Removing the default clears the pointer; no other
        provider is promoted."""
        removed = self._providers.pop(provider_id, None)
        if removed is not None and provider_id == self._default_id:
            self._default_id = None
        return removed

    def set_default(self, provider_id: str) -> Provider:
        if provider_id not in self._providers:
            raise ProviderNotFoundError(provider_id)
        self._mark_default(provider_id)
        return self._providers[provider_id]

    def set_models(self, provider_id: str, models: List[str]) -> Provider:
        """Replace (never merge) the model set of a provider."""
        provider = self._providers.get(provider_id)
        if provider is None:
            raise ProviderNotFoundError(provider_id)
        updated = provider.model_copy(update={"models": list(models)})
        self._providers[provider_id] = updated
        return updated

    def _mark_default(self, provider_id: Optional[str]) -> None:
        for pid, provider in self._providers.items():
            flag = pid == provider_id
            if provider.is_default != flag:
                self._providers[pid] = provider.model_copy(
                    update={"is_default": flag},
                )
        self._default_id = provider_id
