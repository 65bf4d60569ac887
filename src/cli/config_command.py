"""Config command implementation."""
import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer

from ..lib.config_loader import ConfigLoader
from ..lib.config_store import ConfigStore
from ..lib.console import safe_echo
from ..models.config import DEFAULT_CONFIG
from .context import global_config

logger = logging.getLogger(__name__)

config = typer.Typer(help="Show and change techblog configuration")


@config.command()
def show(key: Optional[str] = typer.Argument(None, help="Configuration key, e.g. lint.strict")):
    """Show the effective configuration; '*' marks values that differ from the default."""
    try:
        config_data, sources = asyncio.run(_async_load_config())
    except (ValueError, OSError) as e:
        safe_echo(f"[ERROR] Cannot load configuration: {e!s}")
        logger.error(f"Config show command failed: {e}")
        raise typer.Exit(1)

    if key:
        if key not in config_data:
            safe_echo(f"[WARNING] Unknown configuration key: {key}")
            safe_echo("Available keys:")
            for name in sorted(config_data):
                safe_echo(f"  - {name}")
            raise typer.Exit(1)
        safe_echo(f"{key} = {config_data[key]}")
        return

    safe_echo("[CONFIG] Effective configuration")
    section = None
    for name, value in sorted(config_data.items()):
        current = name.partition(".")[0]
        if current != section:
            section = current
            safe_echo(f"\n[{section.upper()}]")
        marker = "*" if str(DEFAULT_CONFIG.get(name)) != value else " "
        safe_echo(f" {marker} {name} = {value}")

    safe_echo(f"\nSources: {', '.join(sources)}")


@config.command("set")
def set_(
    key: str = typer.Argument(..., help="Configuration key"),
    value: str = typer.Argument(..., help="New value"),
):
    """Persist a configuration value in the config store."""
    store = ConfigStore()
    try:
        asyncio.run(store.set_config(key, value))
    except ValueError as e:
        safe_echo(f"[ERROR] {e!s}")
        raise typer.Exit(1)
    except OSError as e:
        safe_echo(f"[ERROR] Cannot write {store.path}: {e!s}")
        logger.error(f"Config set command failed: {e}")
        raise typer.Exit(1)

    safe_echo(f"[SUCCESS] {key} = {value} (saved to {store.path})")


@config.command()
def reset(
    key: Optional[str] = typer.Argument(None, help="Key to reset (default: every stored value)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Drop stored values so the defaults apply again."""
    target = f"'{key}'" if key else "ALL stored configuration values"
    if not yes and not typer.confirm(f"Reset {target} to the default?"):
        safe_echo("[CANCELLED] Nothing was reset")
        return

    store = ConfigStore()
    try:
        asyncio.run(store.reset_config(key) if key else store.reset_all_config())
    except ValueError as e:
        safe_echo(f"[ERROR] {e!s}")
        raise typer.Exit(1)
    except OSError as e:
        safe_echo(f"[ERROR] Cannot update {store.path}: {e!s}")
        logger.error(f"Config reset command failed: {e}")
        raise typer.Exit(1)

    safe_echo(f"[SUCCESS] Reset {target}")


@config.command()
def export(
    output_file: Path = typer.Argument(..., help="Output file path"),
    format: str = typer.Option("env", "--format", help="Output format [env|json]"),
):
    """Write the effective configuration to a file usable with --config-file."""
    if format not in ("env", "json"):
        safe_echo(f"[ERROR] Unsupported format: {format}")
        raise typer.Exit(2)

    try:
        asyncio.run(_async_export_config(output_file, format))
    except (ValueError, OSError) as e:
        safe_echo(f"[ERROR] Export failed: {e!s}")
        logger.error(f"Config export command failed: {e}")
        raise typer.Exit(1)

    safe_echo(f"[OUTPUT] Configuration saved to: {output_file}")


async def _async_load_config() -> tuple[dict[str, str], list[str]]:
    config_loader = ConfigLoader(config_store=ConfigStore())
    config_data = await config_loader.load_config(config_file=global_config["config_file"])
    return config_data, config_loader.get_config_sources()


async def _async_export_config(output_file: Path, format: str) -> None:
    config_loader = ConfigLoader(config_store=ConfigStore())
    await config_loader.load_config(config_file=global_config["config_file"])
    await config_loader.export_config_to_file(output_file, format=format)
