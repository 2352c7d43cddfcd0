"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics
and configuration summaries.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .config import ConfigStore, SlugFieldConfig
from .errors import SluggableError


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, SluggableError):
        typer.secho(f"{command_name} failed: {exc.detail}", fg=typer.colors.RED, err=True)
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def _describe_slug(slug_config: SlugFieldConfig) -> str:
    parts = [
        f"fields={','.join(slug_config.fields)}",
        f"separator={slug_config.separator}",
        f"style={slug_config.style}",
        f"unique={'yes' if slug_config.unique else 'no'}",
        f"updatable={'yes' if slug_config.updatable else 'no'}",
    ]
    if slug_config.unique_groups:
        parts.append(f"groups={','.join(slug_config.unique_groups)}")
    if slug_config.length is not None:
        parts.append(f"length={slug_config.length}")
    if slug_config.handlers:
        parts.append(f"handlers={','.join(handler.identifier for handler in slug_config.handlers)}")
    return " ".join(parts)


def echo_config_summary(store: ConfigStore) -> None:
    """Print one deterministic row per configured slug field."""

    for record_config in sorted(store, key=lambda item: item.record_type):
        history = "on" if record_config.history else "off"
        for slug_config in record_config.slugs:
            typer.echo(
                f"{record_config.record_type}.{slug_config.slug}: "
                f"{_describe_slug(slug_config)} history={history}"
            )
