# -*- coding: utf-8 -*-
"""``smartflow`` command line entry point."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import click

from .. import __version__
from ..constant import LOG_LEVEL_ENV
from .features_cmd import ask_cmd, features_group, test_cmd
from .models_cmd import models_group
from .providers_cmd import providers_group
from .secrets_cmd import secrets_group

LOG_LEVELS = ["critical", "error", "warning", "info", "debug"]


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.version_option(__version__, prog_name="smartflow")
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="settings.json to use (default: ~/.smartflow/settings.json)",
)
@click.option(
    "--secrets-file",
    "secrets_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="JSON secrets file (default: ~/.smartflow/secrets.json)",
)
@click.option(
    "--env-secrets",
    is_flag=True,
    help="Read shared secrets from SMARTFLOW_SECRET_* variables / .env",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help=f"Log level (env {LOG_LEVEL_ENV}, default warning)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    settings_path: Optional[Path],
    secrets_path: Optional[Path],
    env_secrets: bool,
    log_level: Optional[str],
) -> None:
    """Configure OpenAI-compatible providers and run AI features."""
    setup_logging(log_level or os.environ.get(LOG_LEVEL_ENV, "warning"))
    ctx.ensure_object(dict)
    ctx.obj.update(
        settings_path=settings_path,
        secrets_path=secrets_path,
        env_secrets=env_secrets,
    )


cli.add_command(providers_group)
cli.add_command(models_group)
cli.add_command(features_group)
cli.add_command(secrets_group)
cli.add_command(ask_cmd)
cli.add_command(test_cmd)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
