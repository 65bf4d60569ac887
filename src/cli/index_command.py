"""Index command implementation."""
import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer

from ..lib.console import safe_echo
from ..models.config import EXPORT_FORMATS, ConfigKey, split_list_value
from ..services.content_service import ContentService
from ..services.export_service import write_index
from .context import load_cli_config

logger = logging.getLogger(__name__)


def index(
    output_file: Path = typer.Option(..., "--output-file", "-o", help="Output file path"),
    format: Optional[str] = typer.Option(
        None, "--format", help="Output format [json|yaml|csv] (default: export.format)"
    ),
    tag: Optional[str] = typer.Option(None, "--tag", help="Only export articles with this tag"),
    include_invalid: bool = typer.Option(
        False, "--include-invalid", help="Also export articles with incomplete front-matter"
    ),
):
    """Export the article index."""
    safe_echo("[INDEX] Export article index")

    if format and format.lower() not in EXPORT_FORMATS:
        safe_echo(f"[ERROR] Unsupported format: {format}")
        raise typer.Exit(2)

    try:
        result = asyncio.run(_async_index(output_file, format, tag, include_invalid))
    except (FileNotFoundError, ValueError, OSError) as e:
        safe_echo(f"[ERROR] Export failed: {e!s}")
        logger.error(f"Index command failed: {e}")
        raise typer.Exit(1)

    safe_echo(f"[STATS] Articles exported: {result['exported']}")
    if result["failures"]:
        safe_echo(f"[WARNING] Files skipped: {result['failures']}")
    safe_echo(f"[OUTPUT] Results saved to: {result['output_file']}")


async def _async_index(
    output_file: Path, format: Optional[str], tag: Optional[str], include_invalid: bool
) -> dict:
    """Async helper function to load articles and write the index."""
    config = await load_cli_config()
    format = (format or config.get(ConfigKey.EXPORT_FORMAT, "json")).lower()

    content_dir = Path(config[ConfigKey.CONTENT_DIR])
    content_service = ContentService(
        extensions=split_list_value(config.get(ConfigKey.CONTENT_EXTENSIONS, ".md,.mdx"))
    )
    result = await content_service.load_directory(content_dir)

    articles = result.articles if include_invalid else result.valid_articles
    if tag:
        articles = content_service.filter_by_tag(articles, tag)
    articles = content_service.sort_by_date(articles)

    path = await asyncio.to_thread(write_index, articles, output_file, format, content_dir)
    return {"exported": len(articles), "failures": len(result.failures), "output_file": str(path)}
