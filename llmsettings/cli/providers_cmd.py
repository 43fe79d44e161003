# -*- coding: utf-8 -*-
"""CLI commands for managing LLM providers."""
from __future__ import annotations

from typing import Optional, Tuple

import click

from ..client import SettingsFacade
from ..providers import (
    LLMParameters,
    Provider,
    ProviderCreateRequest,
    ProviderTestResult,
    ProviderType,
    ProviderUpdateRequest,
    get_preset,
    list_presets,
)
from .http import POSITIVE_INT, TEMPERATURE, run_with_facade

_TYPE_CHOICE = click.Choice([t.value for t in ProviderType])


def _echo_provider(provider: Provider, facade: SettingsFacade) -> None:
    mark = " [default]" if provider.is_default else ""
    state = "enabled" if provider.is_enabled else "disabled"
    click.echo(f"\n{'─' * 44}")
    click.echo(f"  {provider.name} ({provider.provider_id}){mark}")
    click.echo(f"{'─' * 44}")
    click.echo(f"  {'type':16s}: {provider.type.value}")
    click.echo(f"  {'base_url':16s}: {provider.base_url or '(not set)'}")
    click.echo(f"  {'api_key':16s}: {provider.api_key or '(not set)'}")
    click.echo(f"  {'models':16s}: {', '.join(provider.models) or '-'}")
    click.echo(f"  {'status':16s}: {state}")
    params = provider.parameters.model_dump(exclude_none=True)
    if params:
        rendered = ", ".join(f"{k}={v}" for k, v in params.items())
        click.echo(f"  {'parameters':16s}: {rendered}")
    result = facade.get_test_result(provider.provider_id)
    if result is not None:
        click.echo(f"  {'last test':16s}: {_format_result(result)}")


def _format_result(result: ProviderTestResult) -> str:
    if result.success:
        return f"✓ ok ({result.latency_ms} ms)"
    return f"✗ {result.message}"


def _parameters(
    temperature: Optional[float],
    max_tokens: Optional[int],
    timeout_ms: Optional[int],
    api_version: Optional[str],
) -> Optional[LLMParameters]:
    values = {
        "temperature": temperature,
        "max_tokens": max_tokens,
        "timeout_ms": timeout_ms,
        "api_version": api_version,
    }
    values = {k: v for k, v in values.items() if v is not None}
    return LLMParameters(**values) if values else None


def _parameter_options(fn):
    fn = click.option("--api-version", default=None, help="Azure only")(fn)
    fn = click.option("--timeout-ms", type=POSITIVE_INT, default=None)(fn)
    fn = click.option("--max-tokens", type=POSITIVE_INT, default=None)(fn)
    fn = click.option("--temperature", type=TEMPERATURE, default=None)(fn)
    return fn


# ---------------------------------------------------------------------------
# Group
# ---------------------------------------------------------------------------


@click.group("providers")
def providers_group() -> None:
    """Manage LLM providers (list / add / update / test / sync ...)."""


@providers_group.command("list")
@click.pass_context
def list_cmd(ctx: click.Context) -> None:
    """Show all providers and the default provider."""

    async def _run(facade: SettingsFacade) -> None:
        await facade.list_providers()
        click.echo("\n=== Providers ===")
        if not facade.providers:
            click.echo("  (no providers configured)")
        for provider in facade.providers:
            _echo_provider(provider, facade)

        default = facade.default_provider
        click.echo(f"\n{'═' * 44}")
        label = (
            f"{default.name} ({default.provider_id})"
            if default
            else "(not configured)"
        )
        click.echo(f"  {'Default':16s}: {label}")
        click.echo()

    run_with_facade(ctx, _run)


@providers_group.command("presets")
def presets_cmd() -> None:
    """Show built-in provider templates."""
    for preset in list_presets():
        models = ", ".join(preset.default_models) or "-"
        click.echo(f"{preset.type.value:10s} {preset.name}")
        click.echo(f"{'':10s} url: {preset.base_url or '(custom)'}")
        click.echo(f"{'':10s} models: {models}")


@providers_group.command("add")
@click.option("--type", "type_", type=_TYPE_CHOICE, required=True)
@click.option("--name", default=None, help="Defaults to the preset name")
@click.option("--base-url", default=None, help="Defaults to the preset URL")
@click.option("--model", "models", multiple=True, help="Repeatable")
@click.option("--api-key", default=None, help="Prompted when omitted")
@click.option("--default", "is_default", is_flag=True, default=False)
@click.option("--disabled", is_flag=True, default=False)
@_parameter_options
@click.pass_context
def add_cmd(
    ctx: click.Context,
    type_: str,
    name: Optional[str],
    base_url: Optional[str],
    models: Tuple[str, ...],
    api_key: Optional[str],
    is_default: bool,
    disabled: bool,
    temperature: Optional[float],
    max_tokens: Optional[int],
    timeout_ms: Optional[int],
    api_version: Optional[str],
) -> None:
    """Create a provider, pre-filled from the preset of its type."""
    provider_type = ProviderType(type_)
    preset = get_preset(provider_type)
    name = name or (preset.name if preset else "")
    base_url = base_url or (preset.base_url if preset else "")
    if not base_url:
        base_url = click.prompt("Base URL (OpenAI-compatible endpoint)")
    model_list = list(models) or (list(preset.default_models) if preset else [])
    if api_key is None:
        api_key = click.prompt(
            "API key (empty for none)",
            default="",
            hide_input=True,
            show_default=False,
        )

    draft = ProviderCreateRequest(
        name=name,
        type=provider_type,
        base_url=base_url,
        api_key=api_key or None,
        models=model_list,
        is_enabled=not disabled,
        is_default=is_default,
        parameters=_parameters(temperature, max_tokens, timeout_ms, api_version)
        or LLMParameters(),
    )

    async def _run(facade: SettingsFacade) -> Provider:
        return await facade.create_provider(draft)

    provider = run_with_facade(ctx, _run)
    click.echo(f"✓ Created {provider.name} ({provider.provider_id})")


@providers_group.command("update")
@click.argument("provider_id")
@click.option("--name", default=None)
@click.option("--base-url", default=None)
@click.option("--model", "models", multiple=True, help="Replaces the list")
@click.option(
    "--api-key",
    default=None,
    help="New API key; an empty value keeps the stored key",
)
@click.option("--enable/--disable", "is_enabled", default=None)
@_parameter_options
@click.pass_context
def update_cmd(
    ctx: click.Context,
    provider_id: str,
    name: Optional[str],
    base_url: Optional[str],
    models: Tuple[str, ...],
    api_key: Optional[str],
    is_enabled: Optional[bool],
    temperature: Optional[float],
    max_tokens: Optional[int],
    timeout_ms: Optional[int],
    api_version: Optional[str],
) -> None:
    """Update fields of a provider."""

    async def _run(facade: SettingsFacade) -> Optional[Provider]:
        await facade.list_providers()
        current = facade.get_provider(provider_id)
        parameters = _parameters(temperature, max_tokens, timeout_ms, api_version)
        if parameters is not None and current is not None:
            parameters = current.parameters.merged_with(parameters)
        patch = ProviderUpdateRequest(
            name=name,
            base_url=base_url,
            models=list(models) or None,
            api_key=api_key,
            is_enabled=is_enabled,
            parameters=parameters,
        )
        return await facade.update_provider(provider_id, patch)

    provider = run_with_facade(ctx, _run)
    if provider is None:
        raise click.ClickException(f"Provider not found: {provider_id}")
    click.echo(f"✓ Updated {provider.name} ({provider.provider_id})")


@providers_group.command("remove")
@click.argument("provider_id")
@click.option("--yes", is_flag=True, default=False, help="Skip confirmation")
@click.pass_context
def remove_cmd(ctx: click.Context, provider_id: str, yes: bool) -> None:
    """Delete a provider."""
    if not yes:
        click.confirm(f"Delete provider {provider_id}?", abort=True)

    async def _run(facade: SettingsFacade) -> None:
        await facade.delete_provider(provider_id)

    run_with_facade(ctx, _run)
    click.echo(f"✓ Deleted {provider_id}")


@providers_group.command("set-default")
@click.argument("provider_id")
@click.pass_context
def set_default_cmd(ctx: click.Context, provider_id: str) -> None:
    """Make a provider the default for tasks without a binding."""

    async def _run(facade: SettingsFacade) -> Provider:
        await facade.list_providers()
        return await facade.set_default_provider(provider_id)

    provider = run_with_facade(ctx, _run)
    click.echo(f"✓ Default provider: {provider.name}")


@providers_group.command("test")
@click.argument("provider_id")
@click.option("--model", default=None, help="Model to check")
@click.pass_context
def test_cmd(
    ctx: click.Context,
    provider_id: str,
    model: Optional[str],
) -> None:
    """Test connectivity of a provider."""

    async def _run(facade: SettingsFacade) -> ProviderTestResult:
        await facade.list_providers()
        return await facade.test_provider(provider_id, model)

    result = run_with_facade(ctx, _run)
    click.echo(_format_result(result))
    if result.available_models:
        click.echo(f"  available: {', '.join(result.available_models)}")
    if not result.success:
        raise SystemExit(1)


@providers_group.command("sync")
@click.argument("provider_id")
@click.pass_context
def sync_cmd(ctx: click.Context, provider_id: str) -> None:
    """Replace the provider's models with the list the backend reports."""

    async def _run(facade: SettingsFacade) -> list:
        await facade.list_providers()
        return await facade.sync_models(provider_id)

    models = run_with_facade(ctx, _run)
    click.echo(f"Models ({len(models)}): {', '.join(models) or '-'}")
