# -*- coding: utf-8 -*-
"""CLI commands for binding tasks to providers."""
from __future__ import annotations

from typing import Dict, Optional

import click

from ..client import SettingsFacade
from ..providers import (
    LLMParameters,
    ResolvedTaskBinding,
    TaskConfig,
    TaskName,
)
from .http import POSITIVE_INT, TEMPERATURE, print_json, run_with_facade

_TASK_CHOICE = click.Choice([t.value for t in TaskName])


def _binding_summary(resolved: ResolvedTaskBinding) -> Dict[str, object]:
    provider = resolved.provider
    return {
        "task_name": resolved.task_name.value,
        "resolved": resolved.resolved,
        "provider_id": provider.provider_id if provider else None,
        "provider_name": provider.name if provider else None,
        "model": resolved.model,
        "parameters": resolved.parameters.model_dump(exclude_none=True),
    }


@click.group("tasks")
def tasks_group() -> None:
    """Bind application tasks to a provider / model / parameters."""


@tasks_group.command("list")
@click.pass_context
def list_cmd(ctx: click.Context) -> None:
    """Show every task with its stored and effective binding."""

    async def _run(facade: SettingsFacade) -> None:
        await facade.list_providers()
        await facade.fetch_task_configs()
        for task in TaskName:
            stored = facade.get_task_config(task)
            resolved = facade.resolve_task(task)
            click.echo(f"\n{task.value}")
            click.echo(
                f"  {'provider':12s}: {stored.provider_id or '(default)'}",
            )
            click.echo(f"  {'model':12s}: {stored.model or '(unspecified)'}")
            if resolved.provider is None:
                click.echo(f"  {'effective':12s}: (unresolved)")
            else:
                click.echo(
                    f"  {'effective':12s}: {resolved.provider.name}"
                    f" / {resolved.model or '(provider default)'}",
                )
        click.echo()

    run_with_facade(ctx, _run)


@tasks_group.command("show")
@click.argument("task_name", type=_TASK_CHOICE)
@click.pass_context
def show_cmd(ctx: click.Context, task_name: str) -> None:
    """Print the effective binding of a task as JSON."""

    async def _run(facade: SettingsFacade) -> ResolvedTaskBinding:
        await facade.list_providers()
        await facade.fetch_task_config(TaskName(task_name))
        return facade.resolve_task(TaskName(task_name))

    print_json(_binding_summary(run_with_facade(ctx, _run)))


@tasks_group.command("set")
@click.argument("task_name", type=_TASK_CHOICE)
@click.option(
    "--provider",
    "provider_id",
    default=None,
    help="Provider id; omit to follow the default provider",
)
@click.option("--model", default=None)
@click.option("--temperature", type=TEMPERATURE, default=None)
@click.option("--max-tokens", type=POSITIVE_INT, default=None)
@click.option("--timeout-ms", type=POSITIVE_INT, default=None)
@click.pass_context
def set_cmd(
    ctx: click.Context,
    task_name: str,
    provider_id: Optional[str],
    model: Optional[str],
    temperature: Optional[float],
    max_tokens: Optional[int],
    timeout_ms: Optional[int],
) -> None:
    """Overwrite the binding of a task."""
    config = TaskConfig(
        task_name=TaskName(task_name),
        provider_id=provider_id,
        model=model,
        parameters=LLMParameters(
            temperature=temperature,
            max_tokens=max_tokens,
            timeout_ms=timeout_ms,
        ),
    )

    async def _run(facade: SettingsFacade) -> ResolvedTaskBinding:
        await facade.list_providers()
        await facade.update_task_config(config)
        return facade.resolve_task(config.task_name)

    resolved = run_with_facade(ctx, _run)
    target = resolved.provider.name if resolved.provider else "(unresolved)"
    click.echo(f"✓ {task_name} → {target}")
