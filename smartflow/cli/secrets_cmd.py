# -*- coding: utf-8 -*-
"""CLI commands for shared secrets (API keys referenced by id)."""
from __future__ import annotations

import click

from ..secret import FileSecretStore
from .utils import fail, handle_errors, secret_store


@click.group("secrets")
def secrets_group() -> None:
    """Manage shared secrets used by 'shared' API keys.

    \b
    Examples:
      smartflow secrets set openai-main
      smartflow providers add-key <provider_id> --secret-id openai-main
    """


@secrets_group.command("set")
@click.argument("secret_id")
@click.option(
    "--value",
    prompt=True,
    hide_input=True,
    help="Secret value (prompted when omitted)",
)
@click.pass_context
@handle_errors
def set_cmd(ctx: click.Context, secret_id: str, value: str) -> None:
    """Store SECRET_ID."""
    secret_store(ctx).set_secret(secret_id, value)
    click.echo(f"✓ Stored secret {secret_id}")


@secrets_group.command("list")
@click.pass_context
def list_cmd(ctx: click.Context) -> None:
    """List secret ids (values are never shown)."""
    ids = secret_store(ctx).list_secrets()
    if not ids:
        click.echo("No secrets stored.")
    for secret_id in ids:
        click.echo(f"  {secret_id}")


@secrets_group.command("delete")
@click.argument("secret_id")
@click.pass_context
@handle_errors
def delete_cmd(ctx: click.Context, secret_id: str) -> None:
    """Delete SECRET_ID from the secrets file."""
    store = secret_store(ctx)
    if not isinstance(store, FileSecretStore):
        fail("Environment secrets are read-only.")
    store.delete_secret(secret_id)
    click.echo(f"✓ Deleted secret {secret_id}")
