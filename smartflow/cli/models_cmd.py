# -*- coding: utf-8 -*-
"""CLI commands for managing the models of a provider."""
from __future__ import annotations

from typing import Any, Dict, Optional

import click

from ..providers import VALID_REASONING_EFFORTS, ApiFormat
from .utils import fail, handle_errors, load_manager, load_service, run


def _model_options(func):
    """Shared sampling / format options for add and update."""
    options = [
        click.option("--display-name", default=None),
        click.option("--temperature", type=float, default=None),
        click.option("--top-p", type=float, default=None),
        click.option("--max-output-tokens", type=int, default=None),
        click.option(
            "--api-format",
            type=click.Choice([f.value for f in ApiFormat]),
            default=None,
        ),
        click.option(
            "--reasoning-effort",
            type=click.Choice(list(VALID_REASONING_EFFORTS)),
            default=None,
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _collect(**values: Any) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


@click.group("models")
def models_group() -> None:
    """Manage the models offered by a provider.

    \b
    Examples:
      smartflow models list <provider_id>
      smartflow models add <provider_id> gpt-4o-mini --temperature 0.3
      smartflow models add <provider_id> o3-mini --api-format responses
      smartflow models fetch <provider_id> --add
    """


@models_group.command("list")
@click.argument("provider_id")
@click.pass_context
@handle_errors
def list_cmd(ctx: click.Context, provider_id: str) -> None:
    """List the models of a provider."""
    manager = load_manager(ctx)
    if manager.get_provider(provider_id) is None:
        fail(f"Provider not found: {provider_id}")
    models = manager.get_models(provider_id)
    if not models:
        click.echo("No models. Run 'smartflow models add' or 'fetch'.")
        return
    for model in models:
        fmt = model.api_format.value
        extra = ""
        if model.reasoning_effort:
            extra = f" effort={model.reasoning_effort}"
        click.echo(
            f"  {model.id}  {model.label:28s} {fmt:16s} "
            f"t={model.temperature:g} top_p={model.top_p:g}{extra}",
        )


@models_group.command("add")
@click.argument("provider_id")
@click.argument("name")
@_model_options
@click.pass_context
@handle_errors
def add_cmd(
    ctx: click.Context,
    provider_id: str,
    name: str,
    display_name: Optional[str],
    temperature: Optional[float],
    top_p: Optional[float],
    max_output_tokens: Optional[int],
    api_format: Optional[str],
    reasoning_effort: Optional[str],
) -> None:
    """Add model NAME to a provider."""
    model = load_manager(ctx).add_model(
        provider_id,
        name=name,
        **_collect(
            display_name=display_name,
            temperature=temperature,
            top_p=top_p,
            max_output_tokens=max_output_tokens,
            api_format=api_format,
            reasoning_effort=reasoning_effort,
        ),
    )
    click.echo(f"✓ Added model {model.label} ({model.id})")


@models_group.command("update")
@click.argument("provider_id")
@click.argument("model_id")
@click.option("--name", default=None)
@_model_options
@click.pass_context
@handle_errors
def update_cmd(
    ctx: click.Context,
    provider_id: str,
    model_id: str,
    name: Optional[str],
    display_name: Optional[str],
    temperature: Optional[float],
    top_p: Optional[float],
    max_output_tokens: Optional[int],
    api_format: Optional[str],
    reasoning_effort: Optional[str],
) -> None:
    """Update fields of a model; unspecified fields are kept."""
    updates = _collect(
        name=name,
        display_name=display_name,
        temperature=temperature,
        top_p=top_p,
        max_output_tokens=max_output_tokens,
        api_format=api_format,
        reasoning_effort=reasoning_effort,
    )
    if not updates:
        fail("Nothing to update.")
    model = load_manager(ctx).update_model(provider_id, model_id, **updates)
    click.echo(f"✓ Updated model {model.label}")


@models_group.command("delete")
@click.argument("provider_id")
@click.argument("model_id")
@click.pass_context
@handle_errors
def delete_cmd(ctx: click.Context, provider_id: str, model_id: str) -> None:
    """Delete a model and every binding that uses it."""
    load_manager(ctx).delete_model(provider_id, model_id)
    click.echo(f"✓ Deleted model {model_id}")


@models_group.command("fetch")
@click.argument("provider_id")
@click.option(
    "--add",
    "add_missing",
    is_flag=True,
    help="Add remote models not yet configured",
)
@click.option(
    "--type",
    "model_type",
    default="chat",
    show_default=True,
    help="Only models of this inferred type ('all' for every type)",
)
@click.pass_context
@handle_errors
def fetch_cmd(
    ctx: click.Context,
    provider_id: str,
    add_missing: bool,
    model_type: str,
) -> None:
    """Fetch the provider's remote model list (/v1/models)."""
    service = load_service(ctx)
    remote = run(service.fetch_models(provider_id))
    if model_type != "all":
        remote = [m for m in remote if m.model_type == model_type]

    known = {m.name for m in service.manager.get_models(provider_id)}
    added = 0
    for info in remote:
        mark = "✓" if info.name in known else " "
        ctx_len = f"{info.context_length:,}" if info.context_length else "-"
        click.echo(f"  [{mark}] {info.id:40s} {info.model_type:10s} {ctx_len}")
        if add_missing and info.name not in known:
            service.manager.add_model(provider_id, **info.to_model_fields())
            added += 1
    summary = f"\n{len(remote)} model(s)"
    if added:
        summary += f", {added} added"
    click.echo(summary)
