"""New article command implementation."""
import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from ..lib.console import safe_echo
from ..models.config import ConfigKey
from ..services.scaffold_service import ScaffoldService
from .context import load_cli_config

logger = logging.getLogger(__name__)


def new(
    title: str = typer.Argument(..., help="Article title"),
    tag: Optional[list[str]] = typer.Option(None, "--tag", "-t", help="Tag (repeatable)"),
    summary: Optional[str] = typer.Option(None, "--summary", help="Short description"),
    date: Optional[datetime] = typer.Option(
        None, "--date", formats=["%Y-%m-%d"], help="Publication date (default: today)"
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
):
    """Create a new article with a front-matter block."""
    safe_echo(f"[NEW] Create new article: {title}")

    try:
        path = asyncio.run(_async_new(title, tag or [], summary, date, force))
    except FileExistsError as e:
        safe_echo(f"[ERROR] {e!s} (use --force to overwrite)")
        raise typer.Exit(1)
    except ValueError as e:
        safe_echo(f"[ERROR] Invalid article: {e!s}")
        raise typer.Exit(1)

    safe_echo(f"[SUCCESS] Article created: {path}")


async def _async_new(
    title: str, tags: list[str], summary: Optional[str], date: Optional[datetime], force: bool
) -> Path:
    """Async helper function to scaffold an article."""
    config = await load_cli_config()

    scaffold_service = ScaffoldService(
        content_dir=config[ConfigKey.CONTENT_DIR],
        extension=config.get(ConfigKey.SCAFFOLD_EXTENSION, ".mdx"),
    )
    return scaffold_service.create_article(
        title=title,
        tags=tags,
        summary=summary,
        published=date.date() if date else None,
        force=force,
    )
