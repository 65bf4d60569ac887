"""Lint service implementation.

This module implements the structural checks run against article files:
front-matter presence and schema, fenced code block balance and language
tags, and a few body sanity checks.
"""
import asyncio
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from ..models.article import Article
from ..models.config import ConfigKey, split_list_value
from ..models.lint_result import LintIssue, LintReport, Severity
from .parser_service import FrontMatterError, ParserService

logger = logging.getLogger(__name__)

# 規則代碼 -> (嚴重程度, 說明)
RULES: dict[str, tuple[Severity, str]] = {
    "FM001": (Severity.ERROR, "missing front-matter block"),
    "FM002": (Severity.ERROR, "missing or blank title"),
    "FM003": (Severity.ERROR, "missing date"),
    "FM004": (Severity.ERROR, "date cannot be parsed"),
    "FM005": (Severity.ERROR, "tags must be a list"),
    "FM006": (Severity.ERROR, "tag must be a non-empty string"),
    "FM007": (Severity.ERROR, "summary must be a string"),
    "FM008": (Severity.ERROR, "front-matter cannot be parsed"),
    "FM009": (Severity.WARNING, "duplicate tag"),
    "FM010": (Severity.WARNING, "unknown front-matter key"),
    "FM011": (Severity.WARNING, "date is in the future"),
    "CB001": (Severity.ERROR, "unclosed code fence"),
    "CB002": (Severity.WARNING, "code fence without language tag"),
    "CB003": (Severity.WARNING, "code fence language not allowed"),
    "MD001": (Severity.WARNING, "empty body"),
    "MD002": (Severity.INFO, "H1 heading duplicates front-matter title"),
    "IO001": (Severity.ERROR, "file cannot be read"),
}


class LintService:
    """文章結構檢查服務."""

    def __init__(
        self,
        parser_service: Optional[ParserService] = None,
        disabled_rules: Iterable[str] = (),
        allowed_languages: Iterable[str] = (),
        allowed_keys: Iterable[str] = (),
        warn_future_dates: bool = True,
        today: Optional[date] = None,
    ):
        self.parser_service = parser_service or ParserService()
        self.disabled_rules = {rule.upper() for rule in disabled_rules}
        self.allowed_languages = {lang.lower() for lang in allowed_languages}
        self.allowed_keys = set(allowed_keys)
        self.warn_future_dates = warn_future_dates
        self.today = today

        unknown = self.disabled_rules - set(RULES)
        if unknown:
            raise ValueError(f"未知的檢查規則: {', '.join(sorted(unknown))}")

        logger.debug(f"檢查服務初始化完成，停用規則: {sorted(self.disabled_rules)}")

    @classmethod
    def from_config(cls, config: dict[str, str], parser_service: Optional[ParserService] = None) -> "LintService":
        """Create a lint service from loaded configuration."""
        return cls(
            parser_service=parser_service,
            disabled_rules=split_list_value(config.get(ConfigKey.LINT_DISABLED_RULES, "")),
            allowed_languages=split_list_value(config.get(ConfigKey.LINT_ALLOWED_LANGUAGES, "")),
            allowed_keys=split_list_value(config.get(ConfigKey.LINT_ALLOWED_KEYS, "")),
            warn_future_dates=config.get(ConfigKey.LINT_FUTURE_DATES, "warn").lower() == "warn",
        )

    def _issue(self, path: Path, rule: str, message: str, line: Optional[int] = None) -> Optional[LintIssue]:
        if rule in self.disabled_rules:
            return None
        severity, _ = RULES[rule]
        return LintIssue(path=path, rule=rule, severity=severity, message=message, line=line)

    def lint_text(self, text: str, path: Union[str, Path] = "<string>") -> list[LintIssue]:
        """檢查文章文字內容."""
        article = self.parser_service.parse_text(text, path)
        return self.lint_article(article)

    async def lint_file(self, path: Union[str, Path]) -> list[LintIssue]:
        """讀取並檢查單一文章檔案."""
        path = Path(path)
        try:
            article = await self.parser_service.parse_file(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"讀取文章失敗 ({path}): {e}")
            issue = self._issue(path, "IO001", f"cannot read file: {e}")
            return [issue] if issue else []

        return self.lint_article(article)

    async def lint_paths(self, paths: Iterable[Union[str, Path]]) -> LintReport:
        """並行檢查多個文章檔案."""
        paths = [Path(p) for p in paths]
        report = LintReport(files_checked=len(paths))

        results = await asyncio.gather(*(self.lint_file(path) for path in paths))
        for issues in results:
            report.extend(issues)

        logger.info(
            f"檢查完成: {report.files_checked} 個檔案, {report.errors} 個錯誤, {report.warnings} 個警告"
        )
        return report

    def lint_article(self, article: Article) -> list[LintIssue]:
        """Run every enabled rule against a parsed article."""
        issues: list[Optional[LintIssue]] = []
        issues.extend(self._check_front_matter(article))
        issues.extend(self._check_code_blocks(article))
        issues.extend(self._check_body(article))

        return sorted(
            (issue for issue in issues if issue is not None),
            key=lambda i: (i.line or 0, i.rule),
        )

    def _check_front_matter(self, article: Article) -> list[Optional[LintIssue]]:
        path = article.path

        if article.front_matter_error:
            return [self._issue(path, "FM008", article.front_matter_error, article.front_matter_error_line)]

        if not article.has_front_matter:
            return [self._issue(path, "FM001", "article must start with a '---' front-matter block", 1)]

        raw = article.raw_front_matter
        issues: list[Optional[LintIssue]] = []

        title = raw.get("title")
        if title is None or (isinstance(title, str) and not title.strip()):
            issues.append(
                self._issue(path, "FM002", "front-matter must define a non-blank 'title'", _key_line(article, "title"))
            )

        if raw.get("date") is None:
            issues.append(self._issue(path, "FM003", "front-matter must define 'date'", _key_line(article, "date")))
        else:
            issues.extend(self._check_date(path, raw["date"], _key_line(article, "date")))

        if "tags" in raw:
            issues.extend(self._check_tags(path, raw["tags"], _key_line(article, "tags")))

        summary = raw.get("summary")
        if summary is not None and not isinstance(summary, str):
            issues.append(
                self._issue(
                    path,
                    "FM007",
                    f"'summary' must be a string, got {type(summary).__name__}",
                    _key_line(article, "summary"),
                )
            )

        if self.allowed_keys:
            for key in raw:
                if key not in self.allowed_keys:
                    issues.append(
                        self._issue(path, "FM010", f"unknown front-matter key '{key}'", _key_line(article, key))
                    )

        return issues

    def _check_date(self, path: Path, value: Any, line: int) -> list[Optional[LintIssue]]:
        try:
            parsed = self.parser_service.parse_date(value)
        except FrontMatterError:
            return [self._issue(path, "FM004", f"cannot parse date {value!r}", line)]

        if not self.warn_future_dates:
            return []

        today = self.today or date.today()
        published = parsed.date() if isinstance(parsed, datetime) else parsed
        if published > today:
            return [self._issue(path, "FM011", f"date {published.isoformat()} is in the future", line)]
        return []

    def _check_tags(self, path: Path, value: Any, line: int) -> list[Optional[LintIssue]]:
        if value is None:
            return []

        try:
            tags = self.parser_service.normalize_tags(value)
        except FrontMatterError:
            return [self._issue(path, "FM005", f"'tags' must be a list, got {type(value).__name__}", line)]

        issues: list[Optional[LintIssue]] = []
        seen: set[str] = set()
        for index, tag in enumerate(tags):
            if not isinstance(tag, str) or not tag.strip():
                issues.append(self._issue(path, "FM006", f"tag #{index + 1} must be a non-empty string", line))
                continue
            key = tag.strip().lower()
            if key in seen:
                issues.append(self._issue(path, "FM009", f"duplicate tag '{tag}'", line))
            seen.add(key)

        return issues

    def _check_code_blocks(self, article: Article) -> list[Optional[LintIssue]]:
        issues: list[Optional[LintIssue]] = []

        for block in article.code_blocks:
            if not block.is_closed:
                issues.append(
                    self._issue(
                        article.path,
                        "CB001",
                        f"code fence '{block.fence}' opened here is never closed",
                        block.start_line,
                    )
                )

            language = block.language
            if not language:
                issues.append(
                    self._issue(article.path, "CB002", "code fence has no language tag", block.start_line)
                )
            elif self.allowed_languages and language.lower() not in self.allowed_languages:
                issues.append(
                    self._issue(
                        article.path, "CB003", f"language '{language}' is not allowed", block.start_line
                    )
                )

        return issues

    def _check_body(self, article: Article) -> list[Optional[LintIssue]]:
        issues: list[Optional[LintIssue]] = []

        if not article.body.strip():
            issues.append(self._issue(article.path, "MD001", "article body is empty", article.body_start_line))

        title = article.raw_front_matter.get("title")
        if isinstance(title, str) and title.strip():
            for heading in article.headings:
                if heading.level == 1:
                    issues.append(
                        self._issue(
                            article.path,
                            "MD002",
                            "H1 heading in body; the title comes from front-matter",
                            heading.line,
                        )
                    )
                    break

        return issues


def _key_line(article: Article, key: str) -> int:
    """Line of a front-matter key, else the opening delimiter."""
    return article.front_matter_lines.get(key, 1)
