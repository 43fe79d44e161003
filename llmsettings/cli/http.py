# -*- coding: utf-8 -*-
from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable, TypeVar

import click

from ..client import HttpSettingsTransport, SettingsFacade
from ..config import ClientConfig
from ..errors import SettingsError

T = TypeVar("T")

# Option types mirroring the bounds of LLMParameters.
TEMPERATURE = click.FloatRange(0, 2)
POSITIVE_INT = click.IntRange(min=1)


def build_facade(ctx: click.Context) -> SettingsFacade:
    """Facade for the backend configured on the root command.

    Tests may put a ``facade_factory`` callable into ``ctx.obj``.
    """
    obj = ctx.obj or {}
    factory = obj.get("facade_factory")
    if factory is not None:
        return factory()
    config: ClientConfig = obj.get("config") or ClientConfig()
    transport = HttpSettingsTransport(
        base_url=config.api_base_url,
        timeout=config.request_timeout,
    )
    return SettingsFacade(transport, config=config)


def run_with_facade(
    ctx: click.Context,
    fn: Callable[[SettingsFacade], Awaitable[T]],
) -> T:
    """Run *fn* with a fresh facade; settings errors become CLI errors."""

    async def _main() -> T:
        async with build_facade(ctx) as facade:
            return await fn(facade)

    try:
        return asyncio.run(_main())
    except SettingsError as exc:
        raise click.ClickException(str(exc)) from exc


def print_json(data: Any) -> None:
    click.echo(json.dumps(data, ensure_ascii=False, indent=2))
