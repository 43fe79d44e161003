# -*- coding: utf-8 -*-
"""Interactive chat test against one provider."""
from __future__ import annotations

from typing import Optional

import click

from ..client import ChatSession, SettingsFacade
from ..errors import ProviderNotFoundError, SettingsError
from .http import run_with_facade

EXIT_COMMANDS = ("/exit", "/quit")


@click.command("chat")
@click.argument("provider_id")
@click.option("--model", default=None, help="Defaults to the first model")
@click.pass_context
def chat_cmd(
    ctx: click.Context,
    provider_id: str,
    model: Optional[str],
) -> None:
    """Chat with a provider to check it answers. Type /exit to quit."""

    async def _run(facade: SettingsFacade) -> None:
        await facade.list_providers()
        provider = facade.get_provider(provider_id)
        if provider is None:
            raise ProviderNotFoundError(provider_id)
        session = ChatSession(facade, provider_id, model)
        click.echo(f"Chatting with {provider.name}. Type /exit to quit.")
        try:
            while True:
                text = click.prompt("you", default="", show_default=False)
                if text.strip() in EXIT_COMMANDS:
                    break
                if not text.strip():
                    continue
                try:
                    reply = await session.submit(text)
                except SettingsError as exc:
                    click.echo(click.style(f"✗ {exc}", fg="red"))
                    continue
                click.echo(f"{provider.name}: {reply}")
        except click.Abort:
            click.echo()
        finally:
            session.close()

    run_with_facade(ctx, _run)
