# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv

from .. import __version__
from ..config import load_config
from ..constant import LOG_LEVEL_ENV, WORKING_DIR
from .chat_cmd import chat_cmd
from .providers_cmd import providers_group
from .tasks_cmd import tasks_group

logger = logging.getLogger(__name__)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.version_option(__version__, prog_name="llmsettings")
@click.option(
    "--api-url",
    default=None,
    help="Settings backend URL, e.g. http://127.0.0.1:8090",
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(
        ["debug", "info", "warning", "error"],
        case_sensitive=False,
    ),
    help=f"Log level (default: ${LOG_LEVEL_ENV} or warning)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    api_url: Optional[str],
    log_level: Optional[str],
) -> None:
    """Manage LLM providers and task bindings."""
    env_path = WORKING_DIR / ".env"
    if env_path.is_file():
        load_dotenv(env_path)
    _setup_logging(log_level or os.environ.get(LOG_LEVEL_ENV, "warning"))

    ctx.ensure_object(dict)
    config = ctx.obj.get("config") or load_config()
    if api_url:
        config = config.model_copy(update={"api_base_url": api_url})
    ctx.obj["config"] = config


@cli.command("app")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8090, show_default=True, type=int)
@click.option(
    "--providers-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="providers.json location (default: under the working directory)",
)
def app_cmd(host: str, port: int, providers_file: Optional[Path]) -> None:
    """Run the settings backend."""
    import uvicorn

    from ..app import create_app

    level = os.environ.get(LOG_LEVEL_ENV, "info").lower()
    logger.info("Starting settings backend on %s:%d", host, port)
    uvicorn.run(
        create_app(providers_file),
        host=host,
        port=port,
        log_level=level,
    )


cli.add_command(providers_group)
cli.add_command(tasks_group)
cli.add_command(chat_cmd)


if __name__ == "__main__":
    cli()  # pylint: disable=no-value-for-parameter
