"""Command-line interface for sluggable.

Responsibilities:
- Preview slugs composed from text with the same pipeline used on records.
- Validate YAML slug mappings and summarize the configured fields.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Annotated

import typer

from .cli_rendering import echo_config_summary, exit_with_command_error
from .config import ConfigLoader, SlugFieldConfig
from .engine import compose_slug
from .errors import ConfigurationError
from .text.styles import STYLE_NONE, SUPPORTED_STYLES
from .text.transliteration import transliterate
from .text.urlizer import DEFAULT_ALLOWED, DEFAULT_SEPARATOR, validate_allowed

app = typer.Typer(
    name="sluggable",
    no_args_is_help=True,
    help="Sluggable CLI.",
)


def _preview_field_config(
    separator: str,
    style: str,
    max_length: int | None,
    allowed: str,
) -> SlugFieldConfig:
    """Build an ad-hoc slug field configuration from command options."""

    if not separator:
        raise ConfigurationError(
            detail="Separator must be a non-empty string.",
            hint="Pass `--separator -` or another token.",
        )
    normalized_style = STYLE_NONE if style == "default" else style
    if normalized_style not in SUPPORTED_STYLES:
        raise ConfigurationError(
            detail=f"Unsupported style `{style}`.",
            hint=f"Use one of: {', '.join(sorted(SUPPORTED_STYLES))}.",
        )
    if max_length is not None and max_length < 1:
        raise ConfigurationError(detail="`--max-length` must be a positive integer.")
    try:
        validate_allowed(allowed)
    except re.error as exc:
        raise ConfigurationError(
            detail=f"Allowed characters `{allowed}` are not a valid character class: {exc}",
        ) from exc
    return SlugFieldConfig(
        slug="slug",
        fields=("text",),
        separator=separator,
        allowed=allowed,
        style=normalized_style,
        length=max_length,
    )


@app.command("preview")
def preview_command(
    text: Annotated[str, typer.Argument(help="Source text to turn into a slug.")],
    separator: Annotated[
        str, typer.Option("--separator", help="Token separator.")
    ] = DEFAULT_SEPARATOR,
    style: Annotated[
        str,
        typer.Option("--style", help="Case style: `none`, `lower`, `upper`, or `camel`."),
    ] = STYLE_NONE,
    max_length: Annotated[
        int | None,
        typer.Option("--max-length", help="Truncate the slug to this many characters."),
    ] = None,
    allowed: Annotated[
        str,
        typer.Option("--allowed", help="Regular expression character class of kept characters."),
    ] = DEFAULT_ALLOWED,
) -> None:
    """Print the slug composed from TEXT."""

    try:
        field_config = _preview_field_config(separator, style, max_length, allowed)
        slug = compose_slug(text, field_config, None, transliterate)
    except Exception as exc:
        exit_with_command_error("preview", exc)

    typer.echo(slug)


@app.command("check-config")
def check_config_command(
    config_path: Annotated[Path, typer.Argument(help="Path to a YAML slug mapping.")],
) -> None:
    """Validate a YAML slug mapping and summarize its slug fields."""

    try:
        if not config_path.exists():
            raise ConfigurationError(
                detail=f"Config file not found: `{config_path}`.",
                hint="Provide an existing YAML mapping path.",
            )
        store = ConfigLoader.from_yaml(config_path)
    except Exception as exc:
        exit_with_command_error("check-config", exc)

    typer.echo(f"Record types: {len(store)}")
    echo_config_summary(store)


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
