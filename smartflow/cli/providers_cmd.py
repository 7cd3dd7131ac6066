# -*- coding: utf-8 -*-
"""CLI commands for managing providers and their API keys."""
from __future__ import annotations

from typing import Optional, Tuple

import click

from ..providers import (
    describe_key_config,
    get_preset,
    list_presets,
    mask_api_key,
)
from .utils import (
    build_key_configs,
    fail,
    handle_errors,
    load_manager,
    single_key_config,
)


@click.group("providers")
def providers_group() -> None:
    """Manage AI providers (endpoint + API keys).

    \b
    Examples:
      smartflow providers presets
      smartflow providers add --preset deepseek --api-key sk-...
      smartflow providers add "My Proxy" --endpoint https://proxy/v1
      smartflow providers add-key <provider_id> --secret-id openai-backup
      smartflow providers rotate-key <provider_id>
    """


# ---------------------------------------------------------------------------
# list / presets
# ---------------------------------------------------------------------------


@providers_group.command("list")
@click.pass_context
def list_cmd(ctx: click.Context) -> None:
    """Show configured providers with masked keys."""
    manager = load_manager(ctx)
    providers = manager.get_providers()
    if not providers:
        click.echo("No providers configured. Run 'smartflow providers add'.")
        return

    for provider in providers:
        click.echo(f"\n{'─' * 44}")
        click.echo(f"  {provider.name} ({provider.id})")
        click.echo(f"{'─' * 44}")
        click.echo(f"  {'endpoint':16s}: {provider.endpoint}")
        if provider.key_configs:
            for i, kc in enumerate(provider.key_configs):
                mark = "*" if i == provider.current_key_index else " "
                label = f"key #{i}"
                click.echo(f"  {label:16s}:{mark}{describe_key_config(kc)}")
        else:
            key = describe_key_config(provider.key_config)
            click.echo(f"  {'api_key':16s}: {key}")
        names = ", ".join(m.label for m in provider.models) or "(none)"
        click.echo(f"  {'models':16s}: {names}")
    click.echo()


@providers_group.command("presets")
def presets_cmd() -> None:
    """List built-in provider presets."""
    for preset in list_presets():
        endpoint = preset.endpoint or "(enter your own)"
        click.echo(f"  {preset.id:12s} {preset.name:16s} {endpoint}")


# ---------------------------------------------------------------------------
# add / update / delete
# ---------------------------------------------------------------------------


@providers_group.command("add")
@click.argument("name", required=False, default=None)
@click.option("--endpoint", default=None, help="Base API URL")
@click.option("--preset", "preset_id", default=None, help="Preset id")
@click.option(
    "--api-key",
    "api_keys",
    multiple=True,
    help="Inline API key (repeat for rotation)",
)
@click.option(
    "--secret-id",
    "secret_ids",
    multiple=True,
    help="Shared secret id (repeat for rotation)",
)
@click.option(
    "--with-models",
    is_flag=True,
    help="Also add the preset's suggested models",
)
@click.pass_context
@handle_errors
def add_cmd(
    ctx: click.Context,
    name: Optional[str],
    endpoint: Optional[str],
    preset_id: Optional[str],
    api_keys: Tuple[str, ...],
    secret_ids: Tuple[str, ...],
    with_models: bool,
) -> None:
    """Add a provider, optionally starting from a preset."""
    preset = None
    if preset_id:
        preset = get_preset(preset_id)
        if preset is None:
            fail(f"Unknown preset: {preset_id}")
    name = name or (preset.name if preset else None)
    endpoint = endpoint or (preset.endpoint if preset else None)
    if not name:
        fail("Provider name is required.")
    if not endpoint:
        fail("--endpoint is required.")

    configs = build_key_configs(api_keys, secret_ids)
    manager = load_manager(ctx)
    if len(configs) == 1:
        provider = manager.add_provider(name, endpoint, key_config=configs[0])
    else:
        provider = manager.add_provider(name, endpoint, key_configs=configs)
    if with_models and preset:
        for model_name in preset.models:
            manager.add_model(provider.id, name=model_name)
    click.echo(f"✓ Added provider {provider.name} ({provider.id})")


@providers_group.command("update")
@click.argument("provider_id")
@click.option("--name", default=None)
@click.option("--endpoint", default=None)
@click.option("--api-key", default=None, help="Replace the single key")
@click.option("--secret-id", default=None, help="Replace with shared key")
@click.pass_context
@handle_errors
def update_cmd(
    ctx: click.Context,
    provider_id: str,
    name: Optional[str],
    endpoint: Optional[str],
    api_key: Optional[str],
    secret_id: Optional[str],
) -> None:
    """Update a provider's name, endpoint or single API key."""
    updates = {}
    if name is not None:
        updates["name"] = name
    if endpoint is not None:
        updates["endpoint"] = endpoint
    if api_key or secret_id:
        updates["key_config"] = single_key_config(api_key, secret_id)
    if not updates:
        fail("Nothing to update.")
    provider = load_manager(ctx).update_provider(provider_id, **updates)
    click.echo(f"✓ Updated provider {provider.name} ({provider.id})")


@providers_group.command("delete")
@click.argument("provider_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
@handle_errors
def delete_cmd(ctx: click.Context, provider_id: str, yes: bool) -> None:
    """Delete a provider and every binding that uses it."""
    manager = load_manager(ctx)
    provider = manager.get_provider(provider_id)
    if provider is None:
        fail(f"Provider not found: {provider_id}")
    if not yes and not click.confirm(
        f"Delete provider {provider.name} and its models?",
        default=False,
    ):
        return
    manager.delete_provider(provider_id)
    click.echo(f"✓ Deleted provider {provider.name}")


# ---------------------------------------------------------------------------
# keys
# ---------------------------------------------------------------------------


@providers_group.command("add-key")
@click.argument("provider_id")
@click.option("--api-key", default=None)
@click.option("--secret-id", default=None)
@click.pass_context
@handle_errors
def add_key_cmd(
    ctx: click.Context,
    provider_id: str,
    api_key: Optional[str],
    secret_id: Optional[str],
) -> None:
    """Append a key to the provider's rotation list."""
    index = load_manager(ctx).add_api_key(
        provider_id,
        single_key_config(api_key, secret_id),
    )
    click.echo(f"✓ Added key #{index}")


@providers_group.command("remove-key")
@click.argument("provider_id")
@click.argument("index", type=int)
@click.pass_context
@handle_errors
def remove_key_cmd(ctx: click.Context, provider_id: str, index: int) -> None:
    """Remove a key from the rotation list by index."""
    load_manager(ctx).remove_api_key(provider_id, index)
    click.echo(f"✓ Removed key #{index}")


@providers_group.command("rotate-key")
@click.argument("provider_id")
@click.pass_context
@handle_errors
def rotate_key_cmd(ctx: click.Context, provider_id: str) -> None:
    """Switch the provider to its next usable API key."""
    manager = load_manager(ctx)
    if manager.get_provider(provider_id) is None:
        fail(f"Provider not found: {provider_id}")
    key = manager.rotate_api_key(provider_id)
    if key is None:
        fail("No usable API key.")
    provider = manager.get_provider(provider_id)
    click.echo(
        f"✓ Current key #{provider.current_key_index}: {mask_api_key(key)}",
    )
