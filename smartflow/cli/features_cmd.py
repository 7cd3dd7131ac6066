# -*- coding: utf-8 -*-
"""CLI commands for binding features to a provider/model and running them."""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

import click

from ..providers import FeatureBinding, KNOWN_FEATURES
from .utils import (
    fail,
    handle_errors,
    load_manager,
    load_service,
    print_json,
    run,
)


@click.group("features")
def features_group() -> None:
    """Bind features (naming, tagging, ...) to a provider and model.

    \b
    Examples:
      smartflow features list
      smartflow features bind naming <provider_id> <model_id>
      smartflow features resolve naming
    """


@features_group.command("list")
@click.pass_context
def list_cmd(ctx: click.Context) -> None:
    """Show every known or bound feature and what it resolves to."""
    manager = load_manager(ctx)
    bound = manager.settings.feature_bindings
    for feature in list(KNOWN_FEATURES) + sorted(
        set(bound) - set(KNOWN_FEATURES),
    ):
        resolved = manager.resolve_feature_config(feature)
        if resolved is None:
            target = "(not bound)"
        else:
            target = f"{resolved.provider.name} / {resolved.model.label}"
        click.echo(f"  {feature:16s}: {target}")


@features_group.command("bind")
@click.argument("feature")
@click.argument("provider_id")
@click.argument("model_id")
@click.option(
    "--prompt-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Custom prompt template ({{var}}, {{#if var}}...{{/if}})",
)
@click.pass_context
@handle_errors
def bind_cmd(
    ctx: click.Context,
    feature: str,
    provider_id: str,
    model_id: str,
    prompt_file: Optional[Path],
) -> None:
    """Bind FEATURE to a provider and model."""
    template = prompt_file.read_text(encoding="utf-8") if prompt_file else ""
    load_manager(ctx).set_feature_binding(
        feature,
        FeatureBinding(
            provider_id=provider_id,
            model_id=model_id,
            prompt_template=template,
        ),
    )
    click.echo(f"✓ Bound {feature}")


@features_group.command("unbind")
@click.argument("feature")
@click.pass_context
def unbind_cmd(ctx: click.Context, feature: str) -> None:
    """Remove the binding of FEATURE."""
    if load_manager(ctx).remove_feature_binding(feature):
        click.echo(f"✓ Unbound {feature}")
    else:
        click.echo(f"{feature} was not bound")


@features_group.command("resolve")
@click.argument("feature")
@click.pass_context
def resolve_cmd(ctx: click.Context, feature: str) -> None:
    """Print the provider/model FEATURE resolves to (keys excluded)."""
    resolved = load_manager(ctx).resolve_feature_config(feature)
    if resolved is None:
        fail(f"Feature '{feature}' is not bound")
    print_json(
        {
            "feature": feature,
            "provider": {
                "id": resolved.provider.id,
                "name": resolved.provider.name,
                "endpoint": resolved.provider.endpoint,
            },
            "model": resolved.model.model_dump(mode="json"),
            "prompt_template": resolved.prompt_template,
        },
    )


# ---------------------------------------------------------------------------
# Running
# ---------------------------------------------------------------------------


def _parse_vars(pairs: Tuple[str, ...]) -> dict:
    variables = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            fail(f"Expected KEY=VALUE, got: {pair}")
        variables[key] = value
    return variables


@click.command("ask")
@click.argument("feature")
@click.option(
    "--var",
    "pairs",
    multiple=True,
    help="Prompt variable KEY=VALUE (repeatable)",
)
@click.option(
    "--content-file",
    type=click.File("r", encoding="utf-8"),
    default=None,
    help="Read {{content}} from a file ('-' for stdin)",
)
@click.option("--system", "system_prompt", default=None)
@click.option(
    "--raw/--clean",
    default=None,
    help="Skip / force answer cleanup (default depends on the feature)",
)
@click.option("--json", "as_json", is_flag=True, help="Print full response")
@click.pass_context
@handle_errors
def ask_cmd(
    ctx: click.Context,
    feature: str,
    pairs: Tuple[str, ...],
    content_file,
    system_prompt: Optional[str],
    raw: Optional[bool],
    as_json: bool,
) -> None:
    """Run FEATURE through its bound provider/model and print the answer."""
    variables = _parse_vars(pairs)
    if content_file is not None:
        variables["content"] = content_file.read()
    response = run(
        load_service(ctx).generate(
            feature,
            variables,
            system_prompt=system_prompt,
            clean=None if raw is None else not raw,
        ),
    )
    if as_json:
        print_json(response.model_dump(mode="json"))
    else:
        click.echo(response.content)


@click.command("test")
@click.argument("provider_id")
@click.argument("model_id")
@click.pass_context
@handle_errors
def test_cmd(ctx: click.Context, provider_id: str, model_id: str) -> None:
    """Send a minimal request to check endpoint, key and model."""
    run(load_service(ctx).test_connection(provider_id, model_id))
    click.echo("✓ Connection OK")
