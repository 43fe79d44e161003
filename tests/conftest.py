"""Shared fixtures: an in-memory settings backend and provider factories."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

import pytest

from llmsettings.errors import RemoteCallError
from llmsettings.providers import (
    ModelsSyncResult,
    Provider,
    ProviderCreateRequest,
    ProviderTestResult,
    ProviderType,
    ProviderUpdateRequest,
    TaskConfig,
    TaskName,
    probe_result_key,
)
from llmsettings.client import SettingsFacade


def build_provider(
    provider_id: str,
    models=("m1", "m2"),
    **kwargs,
) -> Provider:
    kwargs.setdefault("name", provider_id.upper())
    kwargs.setdefault("type", ProviderType.OPENAI)
    kwargs.setdefault("base_url", "https://api.example.com/v1")
    return Provider(provider_id=provider_id, models=list(models), **kwargs)


class FakeTransport:
    """Settings backend kept in memory.

    ``fail[op]`` makes the named operation raise; ``test_gates[key]`` holds a
    probe until the event is set; every call is appended to ``calls``.
    """

    def __init__(self, providers=(), default_id: Optional[str] = None):
        self.providers: Dict[str, Provider] = {
            p.provider_id: p for p in providers
        }
        self.default_id = default_id
        self.task_configs: Dict[TaskName, TaskConfig] = {}
        self.calls: List[tuple] = []
        self.fail: Dict[str, Exception] = {}
        self.test_results: Dict[str, List[ProviderTestResult]] = {}
        self.test_gates: Dict[str, List[asyncio.Event]] = {}
        self.sync_results: Dict[str, ModelsSyncResult] = {}
        self.closed = False
        self._counter = 0

    def _record(self, name: str, *args) -> None:
        self.calls.append((name,) + args)
        exc = self.fail.get(name)
        if exc is not None:
            raise exc

    def call_names(self) -> List[str]:
        return [c[0] for c in self.calls]

    def _public(self, provider: Provider) -> Provider:
        return provider.model_copy(
            update={"is_default": provider.provider_id == self.default_id},
        )

    async def aclose(self) -> None:
        self.closed = True

    async def list_providers(self) -> List[Provider]:
        self._record("list_providers")
        return [self._public(p) for p in self.providers.values()]

    async def get_provider(self, provider_id: str) -> Optional[Provider]:
        self._record("get_provider", provider_id)
        provider = self.providers.get(provider_id)
        return self._public(provider) if provider else None

    async def create_provider(self, draft: ProviderCreateRequest) -> Provider:
        self._record("create_provider", draft)
        self._counter += 1
        provider = Provider(
            provider_id=f"new{self._counter}",
            name=draft.name,
            type=draft.type,
            base_url=draft.base_url,
            has_api_key=bool(draft.api_key),
            models=list(draft.models),
            is_enabled=draft.is_enabled,
            parameters=draft.parameters,
        )
        self.providers[provider.provider_id] = provider
        if draft.is_default:
            self.default_id = provider.provider_id
        return self._public(provider)

    async def update_provider(
        self,
        provider_id: str,
        patch: ProviderUpdateRequest,
    ) -> Optional[Provider]:
        self._record("update_provider", provider_id, patch)
        provider = self.providers.get(provider_id)
        if provider is None:
            return None
        changes = patch.model_dump(exclude_none=True, exclude={"is_default"})
        if "parameters" in changes:
            changes["parameters"] = patch.parameters
        if "api_key" in changes:
            changes["has_api_key"] = True
            del changes["api_key"]
        provider = provider.model_copy(update=changes)
        self.providers[provider_id] = provider
        return self._public(provider)

    async def delete_provider(self, provider_id: str) -> None:
        self._record("delete_provider", provider_id)
        if provider_id not in self.providers:
            raise RemoteCallError("not found", status_code=404)
        del self.providers[provider_id]
        if self.default_id == provider_id:
            self.default_id = None

    async def test_provider(
        self,
        provider_id: str,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ProviderTestResult:
        self._record("test_provider", provider_id, model, timeout)
        key = probe_result_key(provider_id, model)
        gates = self.test_gates.get(key)
        results = self.test_results.get(key)
        result = (
            results.pop(0)
            if results
            else ProviderTestResult(success=True, message="ok", latency_ms=5)
        )
        if gates:
            await gates.pop(0).wait()
        return result

    async def set_default_provider(self, provider_id: str) -> None:
        self._record("set_default_provider", provider_id)
        if provider_id not in self.providers:
            raise RemoteCallError("not found", status_code=404)
        self.default_id = provider_id

    async def get_default_provider(self) -> Optional[Provider]:
        self._record("get_default_provider")
        provider = self.providers.get(self.default_id or "")
        return self._public(provider) if provider else None

    async def chat(
        self,
        provider_id: str,
        message: str,
        model: Optional[str] = None,
    ) -> str:
        self._record("chat", provider_id, message, model)
        return f"echo[{model}]: {message}"

    async def sync_models(self, provider_id: str) -> ModelsSyncResult:
        self._record("sync_models", provider_id)
        result = self.sync_results.get(
            provider_id,
            ModelsSyncResult(success=False, message="no catalog"),
        )
        if result.success and provider_id in self.providers:
            self.providers[provider_id] = self.providers[
                provider_id
            ].model_copy(update={"models": list(result.models)})
        return result

    async def get_task_config(
        self,
        task_name: TaskName,
    ) -> Optional[TaskConfig]:
        self._record("get_task_config", task_name)
        return self.task_configs.get(TaskName(task_name))

    async def list_task_configs(self) -> List[TaskConfig]:
        self._record("list_task_configs")
        return list(self.task_configs.values())

    async def update_task_config(self, config: TaskConfig) -> None:
        self._record("update_task_config", config)
        self.task_configs[config.task_name] = config


@pytest.fixture
def make_provider():
    return build_provider


@pytest.fixture
def transport():
    return FakeTransport(
        providers=[
            build_provider("a", ["m1", "m2"]),
            build_provider("b", ["m3"]),
        ],
        default_id="a",
    )


@pytest.fixture
def facade(transport):
    return SettingsFacade(transport)
