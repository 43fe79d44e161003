# -*- coding: utf-8 -*-
"""Configuration facade: the single entry point for every mutation.

Each operation issues a remote call and, once it succeeds, applies the
matching local transition on :class:`SettingsState`, so that a second read
observes the change before any background refetch completes. Failures are
raised to the caller and recorded as the last error of their concern.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    FrozenSet,
    List,
    Optional,
    Tuple,
)

from ..config import ClientConfig
from ..errors import InvalidConfigError, ProviderNotFoundError, SettingsError
from ..providers import (
    Provider,
    ProviderCreateRequest,
    ProviderTestResult,
    ProviderUpdateRequest,
    ResolvedTaskBinding,
    TaskConfig,
    TaskName,
    probe_result_key,
    validate_provider_draft,
    validate_provider_patch,
)
from .prober import ConnectivityProber
from .state import (
    PROVIDERS,
    TASK_CONFIGS,
    RequestSequencer,
    SettingsState,
    StateListener,
)
from .synchronizer import ModelSynchronizer
from .transport import SettingsTransport

logger = logging.getLogger(__name__)


class SettingsFacade:
    def __init__(
        self,
        transport: SettingsTransport,
        state: Optional[SettingsState] = None,
        config: Optional[ClientConfig] = None,
    ):
        self._transport = transport
        self.state = state if state is not None else SettingsState()
        self.config = config if config is not None else ClientConfig()
        self._prober = ConnectivityProber(transport)
        self._synchronizer = ModelSynchronizer(transport)
        self._sequencer = RequestSequencer()

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def __aenter__(self) -> "SettingsFacade":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def providers(self) -> Tuple[Provider, ...]:
        return self.state.providers

    @property
    def default_provider(self) -> Optional[Provider]:
        return self.state.default_provider

    def get_provider(self, provider_id: str) -> Optional[Provider]:
        return self.state.get_provider(provider_id)

    def get_test_result(
        self,
        provider_id: str,
        model: Optional[str] = None,
    ) -> Optional[ProviderTestResult]:
        return self.state.get_test_result(probe_result_key(provider_id, model))

    @property
    def testing_keys(self) -> FrozenSet[str]:
        return self._prober.in_flight

    def is_testing(self, provider_id: str) -> bool:
        return self._prober.is_testing(provider_id)

    @property
    def task_configs(self) -> Dict[TaskName, TaskConfig]:
        return self.state.task_configs

    def get_task_config(self, task_name: TaskName) -> TaskConfig:
        return self.state.get_task_config(task_name)

    def resolve_task(self, task_name: TaskName) -> ResolvedTaskBinding:
        return self.state.resolve_task(task_name)

    @property
    def providers_loading(self) -> bool:
        return self.state.is_loading(PROVIDERS)

    @property
    def task_configs_loading(self) -> bool:
        return self.state.is_loading(TASK_CONFIGS)

    @property
    def providers_error(self) -> Optional[str]:
        return self.state.providers_error

    @property
    def task_configs_error(self) -> Optional[str]:
        return self.state.task_configs_error

    def clear_error(self, concern: Optional[str] = None) -> None:
        self.state.clear_error(concern)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        return self.state.subscribe(listener)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _operation(
        self,
        concern: str,
        name: str,
        *,
        loading: bool = True,
        clears_error: bool = True,
    ) -> AsyncIterator[None]:
        if loading:
            self.state.begin_loading(concern)
        try:
            yield
        except SettingsError as exc:
            logger.error("%s failed: %s", name, exc)
            self.state.record_error(concern, str(exc))
            raise
        else:
            if clears_error:
                self.state.clear_error(concern)
        finally:
            if loading:
                self.state.end_loading(concern)

    def _is_stale(self, key: str, seq: int) -> bool:
        if not self.config.discard_stale_results:
            return False
        if self._sequencer.is_latest(key, seq):
            return False
        logger.debug("Discarding stale completion for %s", key)
        return True

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    async def list_providers(self) -> Tuple[Provider, ...]:
        """Replace the registry snapshot and re-resolve the default."""
        seq = self._sequencer.issue(PROVIDERS)
        async with self._operation(PROVIDERS, "list_providers"):
            providers = await self._transport.list_providers()
            default = await self._transport.get_default_provider()
            if not self._is_stale(PROVIDERS, seq):
                self.state.apply_provider_list(providers, default)
        return self.state.providers

    async def create_provider(self, draft: ProviderCreateRequest) -> Provider:
        validate_provider_draft(draft)
        async with self._operation(PROVIDERS, "create_provider"):
            provider = await self._transport.create_provider(draft)
            self.state.apply_created(provider, draft.is_default)
        logger.info("Created provider %s", provider.name)
        return self.state.get_provider(provider.provider_id) or provider

    async def update_provider(
        self,
        provider_id: str,
        patch: ProviderUpdateRequest,
    ) -> Optional[Provider]:
        """Update a provider. A blank api_key is never sent."""
        validate_provider_patch(patch)
        if patch.api_key is not None and not patch.api_key.strip():
            patch = patch.model_copy(update={"api_key": None})

        async with self._operation(PROVIDERS, "update_provider"):
            provider = await self._transport.update_provider(
                provider_id,
                patch,
            )
            if provider is not None:
                self.state.apply_updated(provider)
        if provider is None:
            return None
        return self.state.get_provider(provider_id) or provider

    async def delete_provider(self, provider_id: str) -> None:
        async with self._operation(PROVIDERS, "delete_provider"):
            await self._transport.delete_provider(provider_id)
            self.state.apply_deleted(provider_id)
        logger.info("Deleted provider %s", provider_id)

    async def set_default_provider(self, provider_id: str) -> Provider:
        if self.state.get_provider(provider_id) is None:
            raise ProviderNotFoundError(provider_id)
        async with self._operation(PROVIDERS, "set_default_provider"):
            await self._transport.set_default_provider(provider_id)
            provider = self.state.apply_default(provider_id)
        return provider

    async def test_provider(
        self,
        provider_id: str,
        model: Optional[str] = None,
    ) -> ProviderTestResult:
        """Probe a provider/model pair.

        Structured results (success or "connection failed") are cached under
        ``<provider_id>:<model|default>``; a rejected call is not cached and
        propagates.
        """
        key = probe_result_key(provider_id, model)
        seq_key = f"test:{key}"
        seq = self._sequencer.issue(seq_key)
        async with self._operation(
            PROVIDERS,
            "test_provider",
            loading=False,
            clears_error=False,
        ):
            result = await self._prober.probe(
                provider_id,
                model,
                self.state.get_provider(provider_id),
            )
        if not self._is_stale(seq_key, seq):
            self.state.apply_test_result(key, result)
        return result

    async def sync_models(self, provider_id: str) -> List[str]:
        """Fetch the provider's model catalog; on success refresh the
        registry so the fetched list replaces the old one."""
        async with self._operation(
            PROVIDERS,
            "sync_models",
            loading=False,
            clears_error=False,
        ):
            result = await self._synchronizer.sync(provider_id)
            if result.success and provider_id in self.state.registry:
                self.state.apply_models(provider_id, result.models)
        if result.success:
            await self.list_providers()
        return list(result.models)

    async def chat(
        self,
        provider_id: str,
        message: str,
        model: Optional[str] = None,
    ) -> str:
        """Stateless pass-through to the backend chat endpoint."""
        return await self._transport.chat(provider_id, message, model)

    # ------------------------------------------------------------------
    # Task configs
    # ------------------------------------------------------------------

    async def fetch_task_configs(self) -> Dict[TaskName, TaskConfig]:
        seq = self._sequencer.issue(TASK_CONFIGS)
        async with self._operation(TASK_CONFIGS, "fetch_task_configs"):
            configs = await self._transport.list_task_configs()
            if not self._is_stale(TASK_CONFIGS, seq):
                self.state.apply_task_configs(configs)
        return self.state.task_configs

    async def fetch_task_config(self, task_name: TaskName) -> TaskConfig:
        """Refresh one task's binding from the backend."""
        async with self._operation(
            TASK_CONFIGS,
            "fetch_task_config",
            loading=False,
        ):
            config = await self._transport.get_task_config(task_name)
            if config is not None:
                self.state.apply_task_config(config)
        return self.state.get_task_config(task_name)

    async def update_task_config(self, config: TaskConfig) -> TaskConfig:
        self._validate_task_config(config)
        async with self._operation(TASK_CONFIGS, "update_task_config"):
            await self._transport.update_task_config(config)
            self.state.apply_task_config(config)
        logger.info("Updated task config %s", config.task_name.value)
        return config

    def _validate_task_config(self, config: TaskConfig) -> None:
        registry = self.state.registry
        if (
            config.provider_id
            and self.state.providers_loaded
            and config.provider_id not in registry
        ):
            raise InvalidConfigError(
                f"Task '{config.task_name.value}' references unknown "
                f"provider '{config.provider_id}'",
            )
        if not config.model:
            return
        provider = (
            registry.get(config.provider_id)
            if config.provider_id
            else registry.default_provider
        )
        if provider is not None and config.model not in provider.models:
            raise InvalidConfigError(
                f"Model '{config.model}' is not offered by "
                f"provider '{provider.name}'",
            )
