"""Content service implementation.

This module implements article discovery and collection-level queries:
loading, sorting, tag indexing and statistics.
"""
import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from ..models.article import Article
from .parser_service import FrontMatterError, ParserService

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".md", ".mdx")
SKIPPED_DIRECTORIES = {"node_modules"}


@dataclass
class LoadResult:
    """Articles loaded from disk plus the files that failed."""

    articles: list[Article] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def valid_articles(self) -> list[Article]:
        return [article for article in self.articles if article.is_valid()]

    @property
    def invalid_articles(self) -> list[Article]:
        return [article for article in self.articles if not article.is_valid()]


class ContentService:
    """文章集合服務."""

    def __init__(
        self,
        parser_service: Optional[ParserService] = None,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    ):
        self.parser_service = parser_service or ParserService()
        self.extensions = tuple(ext.lower() for ext in extensions)

        if not self.extensions:
            raise ValueError("至少需要一個文章副檔名")

    def discover(self, root: Union[str, Path]) -> list[Path]:
        """
        搜尋目錄下的文章檔案.

        Args:
            root: 文章根目錄或單一檔案

        Returns:
            List[Path]: 排序後的文章檔案路徑
        """
        root = Path(root)

        if root.is_file():
            return [root] if root.suffix.lower() in self.extensions else []

        if not root.is_dir():
            raise FileNotFoundError(f"文章目錄不存在: {root}")

        paths = []
        for path in root.rglob("*"):
            if not path.is_file() or path.suffix.lower() not in self.extensions:
                continue
            relative_parts = path.relative_to(root).parts[:-1]
            if any(part.startswith(".") or part in SKIPPED_DIRECTORIES for part in relative_parts):
                continue
            paths.append(path)

        paths.sort()
        logger.debug(f"在 {root} 找到 {len(paths)} 篇文章")
        return paths

    def discover_all(self, roots: Iterable[Union[str, Path]]) -> list[Path]:
        """搜尋多個路徑並去除重複."""
        seen = set()
        paths = []
        for root in roots:
            for path in self.discover(root):
                resolved = path.resolve()
                if resolved not in seen:
                    seen.add(resolved)
                    paths.append(path)
        return paths

    async def load_articles(self, paths: Iterable[Union[str, Path]]) -> LoadResult:
        """並行載入文章，解析失敗的檔案記錄於 failures."""
        paths = [Path(p) for p in paths]
        result = LoadResult()

        outcomes = await asyncio.gather(
            *(self.parser_service.parse_file(path, strict=True) for path in paths),
            return_exceptions=True,
        )

        for path, outcome in zip(paths, outcomes):
            if isinstance(outcome, Article):
                result.articles.append(outcome)
            elif isinstance(outcome, (FrontMatterError, OSError, UnicodeDecodeError)):
                logger.warning(f"文章載入失敗 ({path}): {outcome}")
                result.failures[str(path)] = str(outcome)
            else:
                raise outcome

        logger.info(f"載入 {len(result.articles)} 篇文章，失敗 {len(result.failures)} 篇")
        return result

    async def load_directory(self, root: Union[str, Path]) -> LoadResult:
        return await self.load_articles(self.discover(root))

    @staticmethod
    def sort_by_date(articles: Iterable[Article], newest_first: bool = True) -> list[Article]:
        """依發表日期排序，無日期的文章排在最後."""
        dated = [a for a in articles if a.front_matter is not None]
        undated = [a for a in articles if a.front_matter is None]

        dated.sort(key=lambda a: (a.front_matter.publish_datetime, a.slug), reverse=newest_first)
        undated.sort(key=lambda a: str(a.path))
        return dated + undated

    @staticmethod
    def filter_by_tag(articles: Iterable[Article], tag: str) -> list[Article]:
        """篩選含指定標籤的文章（不分大小寫）."""
        wanted = tag.strip().lower()
        return [a for a in articles if any(t.lower() == wanted for t in a.tags)]

    @staticmethod
    def tag_index(articles: Iterable[Article]) -> dict[str, list[Article]]:
        """
        建立標籤索引.

        Tags are grouped case-insensitively under the spelling seen first.
        """
        index: dict[str, list[Article]] = {}
        spelling: dict[str, str] = {}

        for article in articles:
            for tag in dict.fromkeys(t.lower() for t in article.tags):
                original = next(t for t in article.tags if t.lower() == tag)
                name = spelling.setdefault(tag, original)
                index.setdefault(name, []).append(article)

        return index

    @classmethod
    def tag_counts(cls, articles: Iterable[Article]) -> list[tuple[str, int]]:
        """標籤使用次數，依次數遞減、名稱遞增排序."""
        index = cls.tag_index(articles)
        return sorted(
            ((tag, len(items)) for tag, items in index.items()),
            key=lambda item: (-item[1], item[0].lower()),
        )

    @classmethod
    def collection_stats(cls, articles: Iterable[Article]) -> dict[str, Any]:
        """統計文章集合."""
        articles = list(articles)
        valid = [a for a in articles if a.front_matter is not None]
        dates = sorted(a.front_matter.publish_datetime for a in valid)

        languages: Counter = Counter()
        for article in articles:
            languages.update(block.language for block in article.code_blocks if block.language)

        return {
            "total_articles": len(articles),
            "valid_articles": len(valid),
            "invalid_articles": len(articles) - len(valid),
            "first_published": _format_date(dates[0]) if dates else None,
            "last_published": _format_date(dates[-1]) if dates else None,
            "total_tags": len(cls.tag_index(valid)),
            "total_words": sum(a.word_count() for a in articles),
            "total_code_blocks": sum(len(a.code_blocks) for a in articles),
            "languages": dict(languages.most_common()),
            "without_summary": sum(
                1 for a in valid if not (a.front_matter.summary or "").strip()
            ),
        }

    @staticmethod
    def articles_per_year(articles: Iterable[Article]) -> dict[int, int]:
        counts: Counter = Counter(a.front_matter.date.year for a in articles if a.front_matter)
        return dict(sorted(counts.items()))


def _format_date(value: datetime) -> str:
    if value.hour or value.minute or value.second:
        return value.isoformat()
    return value.date().isoformat()
