"""Status command implementation."""
import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import typer
import yaml

from ..lib.console import safe_echo
from ..models.config import ConfigKey, split_list_value
from ..services.content_service import ContentService
from .context import load_cli_config

logger = logging.getLogger(__name__)


def status(
    format: str = typer.Option("table", "--format", help="Output format [table|json|yaml]"),
    detailed: bool = typer.Option(False, "--detailed", help="Show detailed status information"),
    recent: int = typer.Option(5, "--recent", min=0, max=100, help="Number of recent articles to list"),
):
    """View article collection status."""
    if format not in ("table", "json", "yaml"):
        safe_echo(f"[ERROR] Unsupported format: {format}")
        raise typer.Exit(2)

    if format == "table":
        safe_echo("[STATUS] Query collection status")

    try:
        status_data = asyncio.run(_async_status(detailed, recent))
    except (FileNotFoundError, ValueError) as e:
        safe_echo(f"[ERROR] Status query failed: {e!s}")
        logger.error(f"Status command failed: {e}")
        raise typer.Exit(1)

    if format == "json":
        safe_echo(json.dumps(status_data, indent=2, ensure_ascii=False, default=str))
    elif format == "yaml":
        _display_yaml_status(status_data)
    else:  # table format (default)
        _display_table_status(status_data, detailed)


async def _async_status(detailed: bool, recent: int) -> dict[str, Any]:
    """Async helper function to gather collection status information."""
    config = await load_cli_config()

    content_dir = Path(config[ConfigKey.CONTENT_DIR])
    content_service = ContentService(
        extensions=split_list_value(config.get(ConfigKey.CONTENT_EXTENSIONS, ".md,.mdx"))
    )
    result = await content_service.load_directory(content_dir)
    articles = content_service.sort_by_date(result.articles)

    status_data: dict[str, Any] = {
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        "content_dir": str(content_dir),
        "collection": content_service.collection_stats(result.articles),
        "top_tags": dict(content_service.tag_counts(result.valid_articles)[:10]),
        "recent": [
            {
                "date": article.date.isoformat() if article.date else None,
                "title": article.title,
                "path": str(article.path),
            }
            for article in articles[:recent]
            if article.front_matter
        ],
        "failures": result.failures,
    }

    if detailed:
        status_data["details"] = {
            "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
            "per_year": content_service.articles_per_year(result.valid_articles),
            "invalid": [str(article.path) for article in result.invalid_articles],
            "configuration": dict(sorted(config.items())),
        }

    return status_data


def _display_table_status(status_data: dict[str, Any], detailed: bool):
    """Display status in table format."""
    collection = status_data["collection"]

    safe_echo("\n" + "=" * 60)
    safe_echo("Article collection status")
    safe_echo("=" * 60)
    safe_echo(f"Checked at: {status_data['timestamp']}")
    safe_echo(f"Content dir: {status_data['content_dir']}")

    safe_echo("\n📊 Collection:")
    safe_echo(f"  Articles: {collection['total_articles']} (valid: {collection['valid_articles']})")
    safe_echo(
        f"  Published: {collection['first_published'] or '-'} .. {collection['last_published'] or '-'}"
    )
    safe_echo(f"  Tags: {collection['total_tags']}")
    safe_echo(f"  Words: {collection['total_words']}")
    safe_echo(f"  Code blocks: {collection['total_code_blocks']}")
    safe_echo(f"  Without summary: {collection['without_summary']}")

    if status_data["top_tags"]:
        safe_echo("\n🏷  Top tags:")
        for tag, count in status_data["top_tags"].items():
            safe_echo(f"  {tag}: {count}")

    if status_data["recent"]:
        safe_echo("\n🕒 Recent articles:")
        for entry in status_data["recent"]:
            safe_echo(f"  {entry['date']}  {entry['title']}")

    if status_data["failures"]:
        safe_echo("\n❌ Failed to load:")
        for path, error in status_data["failures"].items():
            safe_echo(f"  {path}: {error}")

    if detailed and "details" in status_data:
        details = status_data["details"]
        safe_echo("\n🔍 Details:")
        safe_echo(f"  Python version: {details['python_version']}")
        if collection["languages"]:
            safe_echo("  Code languages:")
            for language, count in collection["languages"].items():
                safe_echo(f"    - {language}: {count}")
        if details["per_year"]:
            safe_echo("  Articles per year:")
            for year, count in details["per_year"].items():
                safe_echo(f"    - {year}: {count}")
        if details["invalid"]:
            safe_echo("  Incomplete front-matter:")
            for path in details["invalid"]:
                safe_echo(f"    - {path}")

    safe_echo("=" * 60)


def _display_yaml_status(status_data: dict[str, Any]):
    """Display status in YAML format."""
    safe_echo(
        yaml.safe_dump(status_data, allow_unicode=True, sort_keys=False, default_flow_style=False).rstrip()
    )
