# -*- coding: utf-8 -*-
"""Shared settings state and the local "apply" transitions.

The facade performs a remote request, then calls one of the ``apply_*``
methods here. Apply steps are synchronous and never await, so under asyncio
each one is atomic with respect to every other operation, and they can be
exercised against fixed fixtures without any transport.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..providers import (
    Provider,
    ProviderRegistry,
    ProviderTestResult,
    ResolvedTaskBinding,
    TaskBindingTable,
    TaskConfig,
    TaskName,
    resolve_task_binding,
)

logger = logging.getLogger(__name__)

# Called with the name of the concern that changed ("providers",
# "task_configs" or "test_results").
StateListener = Callable[[str], None]

PROVIDERS = "providers"
TASK_CONFIGS = "task_configs"
TEST_RESULTS = "test_results"


class RequestSequencer:
    """Per-key monotonic request counter.

    ``issue(key)`` tags a request; ``is_latest(key, seq)`` tells whether a
    completion still belongs to the newest request for that key.
    """

    def __init__(self) -> None:
        self._latest: Dict[str, int] = defaultdict(int)

    def issue(self, key: str) -> int:
        self._latest[key] += 1
        return self._latest[key]

    def is_latest(self, key: str, seq: int) -> bool:
        return self._latest[key] == seq


class SettingsState:
    """Provider registry, task bindings and probe results of one app run.

    Created at application start and handed to the facade that owns it;
    observers read through the accessors below and may subscribe to change
    notifications.
    """

    def __init__(
        self,
        providers: Iterable[Provider] = (),
        task_configs: Iterable[TaskConfig] = (),
    ):
        self.registry = ProviderRegistry(providers)
        self.tasks = TaskBindingTable(task_configs)
        self._test_results: Dict[str, ProviderTestResult] = {}
        self._listeners: List[StateListener] = []

        # False until the first successful fetch of that concern.
        self.providers_loaded = False
        self.task_configs_loaded = False

        self.providers_error: Optional[str] = None
        self.task_configs_error: Optional[str] = None
        self._loading: Dict[str, int] = defaultdict(int)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, concern: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(concern)
            except Exception:  # pylint: disable=broad-except
                logger.exception("State listener failed for %s", concern)

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def providers(self) -> Tuple[Provider, ...]:
        return self.registry.providers

    @property
    def default_provider(self) -> Optional[Provider]:
        return self.registry.default_provider

    def get_provider(self, provider_id: str) -> Optional[Provider]:
        return self.registry.get(provider_id)

    def get_test_result(self, key: str) -> Optional[ProviderTestResult]:
        return self._test_results.get(key)

    @property
    def test_results(self) -> Dict[str, ProviderTestResult]:
        return dict(self._test_results)

    @property
    def task_configs(self) -> Dict[TaskName, TaskConfig]:
        return self.tasks.configs

    def get_task_config(self, task_name: TaskName) -> TaskConfig:
        return self.tasks.get(task_name)

    def resolve_task(self, task_name: TaskName) -> ResolvedTaskBinding:
        return resolve_task_binding(self.tasks.get(task_name), self.registry)

    # ------------------------------------------------------------------
    # Loading / error flags
    # ------------------------------------------------------------------

    def is_loading(self, concern: str) -> bool:
        return self._loading[concern] > 0

    def begin_loading(self, concern: str) -> None:
        self._loading[concern] += 1

    def end_loading(self, concern: str) -> None:
        self._loading[concern] = max(self._loading[concern] - 1, 0)

    def record_error(self, concern: str, message: str) -> None:
        if concern == PROVIDERS:
            self.providers_error = message
        elif concern == TASK_CONFIGS:
            self.task_configs_error = message
        self._notify(concern)

    def clear_error(self, concern: Optional[str] = None) -> None:
        """Clear one concern's last error, or all of them."""
        if concern in (None, PROVIDERS):
            self.providers_error = None
        if concern in (None, TASK_CONFIGS):
            self.task_configs_error = None

    # ------------------------------------------------------------------
    # Apply steps: providers
    # ------------------------------------------------------------------

    def apply_provider_list(
        self,
        providers: List[Provider],
        default: Optional[Provider],
    ) -> None:
        self.registry.replace_all(
            providers,
            default.provider_id if default else None,
        )
        self.providers_loaded = True
        self._notify(PROVIDERS)

    def apply_created(self, provider: Provider, make_default: bool) -> None:
        if make_default and not provider.is_default:
            provider = provider.model_copy(update={"is_default": True})
        self.registry.add(provider)
        self._notify(PROVIDERS)

    def apply_updated(self, provider: Provider) -> None:
        if self.registry.replace(provider):
            self._notify(PROVIDERS)

    def apply_deleted(self, provider_id: str) -> None:
        if self.registry.remove(provider_id) is not None:
            self._notify(PROVIDERS)

    def apply_default(self, provider_id: str) -> Provider:
        provider = self.registry.set_default(provider_id)
        self._notify(PROVIDERS)
        return provider

    def apply_models(self, provider_id: str, models: List[str]) -> None:
        self.registry.set_models(provider_id, models)
        self._notify(PROVIDERS)

    def apply_test_result(self, key: str, result: ProviderTestResult) -> None:
        self._test_results[key] = result
        self._notify(TEST_RESULTS)

    # ------------------------------------------------------------------
    # Apply steps: task configs
    # ------------------------------------------------------------------

    def apply_task_configs(self, configs: List[TaskConfig]) -> None:
        self.tasks.replace_all(configs)
        self.task_configs_loaded = True
        self._notify(TASK_CONFIGS)

    def apply_task_config(self, config: TaskConfig) -> None:
        self.tasks.put(config)
        self._notify(TASK_CONFIGS)
