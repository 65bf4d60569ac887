"""Tags command implementation."""
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer

from ..lib.console import safe_echo
from ..models.config import ConfigKey, split_list_value
from ..services.content_service import ContentService
from .context import load_cli_config

logger = logging.getLogger(__name__)


def tags(
    tag: Optional[str] = typer.Option(None, "--tag", help="List the articles carrying this tag"),
    format: str = typer.Option("table", "--format", help="Output format [table|json]"),
):
    """List tags and their article counts."""
    if format not in ("table", "json"):
        safe_echo(f"[ERROR] Unsupported format: {format}")
        raise typer.Exit(2)

    try:
        data = asyncio.run(_async_tags(tag))
    except (FileNotFoundError, ValueError) as e:
        safe_echo(f"[ERROR] Tag query failed: {e!s}")
        logger.error(f"Tags command failed: {e}")
        raise typer.Exit(1)

    if format == "json":
        safe_echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    if tag:
        safe_echo(f"[TAGS] Articles tagged '{tag}': {len(data['articles'])}")
        for entry in data["articles"]:
            safe_echo(f"  {entry['date']}  {entry['title']}  ({entry['path']})")
        return

    safe_echo(f"[TAGS] {len(data['tags'])} tags")
    width = max((len(name) for name in data["tags"]), default=0)
    for name, count in data["tags"].items():
        safe_echo(f"  {name:<{width}}  {count}")


async def _async_tags(tag: Optional[str]) -> dict[str, Any]:
    """Async helper function to build the tag index."""
    config = await load_cli_config()

    content_service = ContentService(
        extensions=split_list_value(config.get(ConfigKey.CONTENT_EXTENSIONS, ".md,.mdx"))
    )
    result = await content_service.load_directory(Path(config[ConfigKey.CONTENT_DIR]))

    if tag:
        articles = content_service.sort_by_date(content_service.filter_by_tag(result.valid_articles, tag))
        return {
            "tag": tag,
            "articles": [
                {"date": a.date.isoformat(), "title": a.title, "path": str(a.path)} for a in articles
            ],
        }

    return {"tags": dict(content_service.tag_counts(result.valid_articles))}
