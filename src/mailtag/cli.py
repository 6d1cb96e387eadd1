"""Command-line interface for mailtag.

Provides commands for configuration validation, tag reconciliation and
prompt preview. Results go to stdout; log lines and notes go to stderr, so
the output of 'prompt' can be piped straight to a classifier.

Usage:
    python -m mailtag validate-config
    python -m mailtag tags
    python -m mailtag ensure-tags
    python -m mailtag prompt message.json --max-chars 4000
"""

from __future__ import annotations

import asyncio
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from mailtag.config import get_config_path, load_config, validate_config_file
from mailtag.config_schema import AppConfig
from mailtag.core.errors import (
    ConfigLoadError,
    ConfigValidationError,
    TagStoreError,
    TagStoreShapeError,
)
from mailtag.core.logging import configure_logging

console = Console()
err_console = Console(stderr=True)

_config_option = click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file (default: config/config.yaml)",
)


@dataclass(frozen=True, slots=True)
class CLIConfig:
    """Config resolved for a CLI command.

    path is None when no config file exists and defaults are in use.
    """

    config: AppConfig
    path: Path | None


def _debug_requested() -> bool:
    ctx = click.get_current_context(silent=True)
    if ctx is None:
        return False
    obj = ctx.find_root().obj or {}
    return bool(obj.get("debug"))


def _apply_logging_config(config: AppConfig) -> None:
    """Configure logging from the config's logging section. --debug overrides the level."""
    configure_logging(
        log_level="DEBUG" if _debug_requested() else config.logging.level,
        json_output=config.logging.json_output,
        stream=sys.stderr,
    )


def _load_cli_config(config_path: Path | None) -> CLIConfig:
    """Load config for a command, falling back to defaults if no file exists.

    An explicitly passed path must exist. Prints an actionable error and
    calls sys.exit(1) on invalid config. Logging is reconfigured from the
    loaded (or default) config before returning.
    """
    path = config_path or get_config_path()

    if config_path is None and not path.exists():
        err_console.print(
            f"[yellow]No config file at {path}, using built-in defaults.[/yellow]",
        )
        resolved = CLIConfig(config=AppConfig(), path=None)
    else:
        try:
            resolved = CLIConfig(config=load_config(path), path=path)
        except (ConfigLoadError, ConfigValidationError) as e:
            err_console.print(f"[red]Config error:[/red] {e}")
            sys.exit(1)

    _apply_logging_config(resolved.config)
    return resolved


def _build_reconciler(resolved: CLIConfig):
    """Create the SQLite tag store and a reconciler wired to the config."""
    from mailtag.tags import ConfigFileTagSource, SqliteTagStore, TagReconciler

    store = SqliteTagStore(resolved.config.tags.store_path)
    config_store = ConfigFileTagSource(resolved.path) if resolved.path else None
    reconciler = TagReconciler(
        store,
        config_store,
        key_prefix=resolved.config.tags.key_prefix,
        name_prefix=resolved.config.tags.name_prefix,
    )
    return store, reconciler


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """mailtag - email content extraction and tag management for AI tagging."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    # Until a command loads its config
    configure_logging(
        log_level="DEBUG" if debug else "INFO",
        json_output=False,
        stream=sys.stderr,
        cache_loggers=False,
    )


@cli.command("validate-config")
@_config_option
def validate_config(config_path: Path | None) -> None:
    """Validate the configuration file.

    Checks that config.yaml exists and passes Pydantic schema validation.
    Reports specific errors for invalid fields.
    """
    console.print(f"Validating config: [cyan]{config_path or get_config_path()}[/cyan]")

    is_valid, message = validate_config_file(config_path)

    if is_valid:
        console.print(f"\n[green]✓[/green] {message}")
        sys.exit(0)
    else:
        console.print(f"\n[red]✗[/red] {message}")
        sys.exit(1)


@cli.command("tags")
@_config_option
def tags(config_path: Path | None) -> None:
    """List configured tags and whether each exists in the tag store."""
    from mailtag.tags import parse_stored_tags

    resolved = _load_cli_config(config_path)
    store, reconciler = _build_reconciler(resolved)

    async def _collect():
        await store.initialize()
        configured = await reconciler.get_all_tag_configs()
        stored = parse_stored_tags(await store.get_all_tags())
        return configured, stored

    try:
        configured, stored = asyncio.run(_collect())
    except (TagStoreError, TagStoreShapeError) as e:
        err_console.print(f"[red]Tag store error:[/red] {e}")
        sys.exit(1)

    builtin_keys = {tag.key for tag in reconciler.builtin_tags}

    table = Table(title="Configured tags")
    table.add_column("Key", style="cyan")
    table.add_column("Name")
    table.add_column("Color")
    table.add_column("Kind")
    table.add_column("Store key")

    for tag in configured:
        match = reconciler.find_stored_tag(stored, tag)
        table.add_row(
            tag.key,
            tag.name,
            tag.color,
            "built-in" if tag.key in builtin_keys else "custom",
            match.key if match else "[yellow]missing[/yellow]",
        )

    console.print(table)


@cli.command("ensure-tags")
@_config_option
def ensure_tags(config_path: Path | None) -> None:
    """Create any configured tags missing from the tag store.

    Exits 1 if tags are still missing afterwards; the reconciler itself
    only logs failures.
    """
    from mailtag.tags import parse_stored_tags

    resolved = _load_cli_config(config_path)
    store, reconciler = _build_reconciler(resolved)

    async def _run():
        await store.initialize()
        before = len(await store.get_all_tags())
        await reconciler.ensure_tags_exist()

        configured = await reconciler.get_all_tag_configs()
        stored = parse_stored_tags(await store.get_all_tags())
        missing = [tag for tag in configured if not reconciler.check_tag_exists(stored, tag)]
        return len(stored) - before, missing

    try:
        created, missing = asyncio.run(_run())
    except (TagStoreError, TagStoreShapeError) as e:
        err_console.print(f"[red]Tag store error:[/red] {e}")
        sys.exit(1)

    created_desc = f"{created} tag{'s' if created != 1 else ''} created"
    if missing:
        console.print(
            f"[red]✗[/red] Tag store [cyan]{store.db_path}[/cyan] not reconciled "
            f"({created_desc}, {len(missing)} still missing: "
            f"{', '.join(tag.key for tag in missing)})",
            soft_wrap=True,
        )
        sys.exit(1)

    console.print(
        f"[green]✓[/green] Tag store [cyan]{store.db_path}[/cyan] reconciled ({created_desc})",
        soft_wrap=True,
    )


def _read_message_file(path: Path) -> dict[str, Any]:
    """Read a message JSON file: either a list of parts or {headers, parts, body}."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise click.BadParameter(f"Cannot read {path}: {e}") from e

    if isinstance(data, list):
        return {"parts": data}
    if isinstance(data, dict):
        return data
    raise click.BadParameter(f"{path} must contain a JSON list of parts or an object")


@cli.command("prompt")
@click.argument("message_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_config_option
@click.option("--max-chars", type=int, default=None, help="Override the prompt character limit")
def prompt(message_file: Path, config_path: Path | None, max_chars: int | None) -> None:
    """Print the analysis prompt for a message stored as JSON.

    MESSAGE_FILE holds either a list of email parts or an object with
    'headers', 'parts' and optionally 'body'.
    """
    from mailtag.analysis import ContentExtractor, EmailPart
    from mailtag.tags import DEFAULT_CUSTOM_TAGS

    resolved = _load_cli_config(config_path)
    config = resolved.config
    message = _read_message_file(message_file)

    parts = [EmailPart.from_dict(part) for part in message.get("parts") or []]
    headers = {str(k): str(v) for k, v in (message.get("headers") or {}).items()}

    extractor = ContentExtractor(word_wrap_column=config.prompt.word_wrap_column)
    data = extractor.extract_email_content(
        headers=headers,
        parts=parts,
        body=str(message.get("body") or ""),
    )

    custom_tags = config.tags.custom_tags
    if custom_tags is None:
        custom_tags = list(DEFAULT_CUSTOM_TAGS)

    text = extractor.build_prompt(
        data,
        custom_tags,
        template=config.prompt.template,
        max_chars=max_chars if max_chars is not None else config.prompt.context_char_limit,
    )
    click.echo(text)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
