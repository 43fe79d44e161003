# -*- coding: utf-8 -*-
"""Task binding table and read-time resolution of task bindings."""

from __future__ import annotations

from typing import Dict, Iterable

from .models import (
    LLMParameters,
    ResolvedTaskBinding,
    TaskConfig,
    TaskName,
)
from .registry import ProviderRegistry


class TaskBindingTable:
    """Stored task bindings keyed by task name.

    A task without a stored binding behaves as "default provider, no model,
    no overrides"; bindings are only ever overwritten, never deleted.
    """

    def __init__(self, configs: Iterable[TaskConfig] = ()):
        self._configs: Dict[TaskName, TaskConfig] = {}
        self.replace_all(configs)

    @property
    def configs(self) -> Dict[TaskName, TaskConfig]:
        return dict(self._configs)

    def replace_all(self, configs: Iterable[TaskConfig]) -> None:
        self._configs = {
            c.task_name: c.model_copy(deep=True) for c in configs
        }

    def put(self, config: TaskConfig) -> None:
        self._configs[config.task_name] = config.model_copy(deep=True)

    def has(self, task_name: TaskName) -> bool:
        return TaskName(task_name) in self._configs

    def get(self, task_name: TaskName) -> TaskConfig:
        task_name = TaskName(task_name)
        config = self._configs.get(task_name)
        if config is None:
            return TaskConfig(task_name=task_name)
        return config


def resolve_task_binding(
    config: TaskConfig,
    registry: ProviderRegistry,
) -> ResolvedTaskBinding:
    """Resolve a binding against the current registry snapshot.

    Provider: the stored reference if it still exists, else the default,
    else unresolved. Model: the stored one if the effective provider offers
    it, else unspecified. Parameters: task overrides win field by field.
    A stale reference never raises.
    """
    provider = None
    if config.provider_id:
        provider = registry.get(config.provider_id)
    if provider is None:
        provider = registry.default_provider
    if provider is None:
        return ResolvedTaskBinding(
            task_name=config.task_name,
            parameters=config.parameters.model_copy(),
        )

    model = config.model if config.model in provider.models else None
    base = provider.parameters or LLMParameters()
    return ResolvedTaskBinding(
        task_name=config.task_name,
        provider=provider,
        model=model,
        parameters=base.merged_with(config.parameters),
    )
