"""Lint command implementation."""
import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer

from ..lib.console import safe_echo
from ..models.config import ConfigKey, split_list_value
from ..models.lint_result import LintReport, Severity
from ..services.content_service import ContentService
from ..services.lint_service import LintService
from .context import load_cli_config

logger = logging.getLogger(__name__)


def lint(
    paths: Optional[list[Path]] = typer.Argument(
        None, help="Article files or directories (default: content.dir)"
    ),
    format: str = typer.Option("text", "--format", help="Output format [text|json]"),
    strict: Optional[bool] = typer.Option(
        None, "--strict/--no-strict", help="Treat warnings as errors"
    ),
    disable: Optional[list[str]] = typer.Option(
        None, "--disable", help="Disable a rule (repeatable), e.g. --disable CB002"
    ),
    show_info: bool = typer.Option(False, "--show-info", help="Also show info-level findings"),
):
    """Check article front-matter and code fences."""
    if format not in ("text", "json"):
        safe_echo(f"[ERROR] Unsupported format: {format}")
        raise typer.Exit(2)

    if format == "text":
        safe_echo("[LINT] Linting articles")

    try:
        report, strict_mode = asyncio.run(_async_lint(paths or [], strict, disable or []))
    except (FileNotFoundError, ValueError) as e:
        safe_echo(f"[ERROR] Lint failed: {e!s}")
        logger.error(f"Lint command failed: {e}")
        raise typer.Exit(2)

    if format == "json":
        data = report.to_dict()
        data["strict"] = strict_mode
        data["passed"] = not report.failed(strict_mode)
        safe_echo(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        _display_text_report(report, show_info)

    if report.failed(strict_mode):
        raise typer.Exit(1)


async def _async_lint(
    paths: list[Path], strict: Optional[bool], disable: list[str]
) -> tuple[LintReport, bool]:
    """Async helper function to lint article files."""
    config = await load_cli_config()

    if disable:
        disabled = split_list_value(config.get(ConfigKey.LINT_DISABLED_RULES, "")) + disable
        config[ConfigKey.LINT_DISABLED_RULES] = ",".join(disabled)

    if strict is None:
        strict = config.get(ConfigKey.LINT_STRICT, "false").lower() == "true"

    content_service = ContentService(
        extensions=split_list_value(config.get(ConfigKey.CONTENT_EXTENSIONS, ".md,.mdx"))
    )
    lint_service = LintService.from_config(config, parser_service=content_service.parser_service)

    roots = paths or [Path(config[ConfigKey.CONTENT_DIR])]
    files = content_service.discover_all(roots)
    if not files:
        logger.warning(f"找不到文章檔案: {', '.join(str(r) for r in roots)}")

    report = await lint_service.lint_paths(files)
    return report, strict


def _display_text_report(report: LintReport, show_info: bool) -> None:
    """Display lint findings grouped per file."""
    for path, issues in report.by_path().items():
        visible = [i for i in issues if show_info or i.severity is not Severity.INFO]
        if not visible:
            continue
        safe_echo(f"\n{path}")
        for issue in visible:
            location = f"{issue.line}" if issue.line else "-"
            safe_echo(f"  {location:>5}  {issue.severity.value:<7} {issue.rule}  {issue.message}")

    safe_echo("")
    safe_echo(f"[STATS] Files checked: {report.files_checked}")
    safe_echo(f"[STATS] Errors: {report.errors}")
    safe_echo(f"[STATS] Warnings: {report.warnings}")

    if not report.errors and not report.warnings:
        safe_echo("[SUCCESS] All articles passed")
