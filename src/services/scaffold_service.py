"""Scaffold service implementation.

This module creates new article files with a front-matter block.
"""
import logging
import re
import unicodedata
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from ..models.article import ArticleDate, FrontMatter

logger = logging.getLogger(__name__)

MAX_SLUG_LENGTH = 80


def slugify(title: str, fallback: Optional[str] = None) -> str:
    """
    將標題轉為網址代稱.

    Non-ASCII characters are transliterated where possible and dropped
    otherwise; a title with nothing left uses ``fallback``.
    """
    s = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    s = s.lower()
    s = re.sub(r"[^a-z0-9\s-]", "", s)
    s = re.sub(r"[\s-]+", "-", s).strip("-")
    s = s[:MAX_SLUG_LENGTH].rstrip("-")

    if not s:
        if fallback is None:
            raise ValueError(f"無法由標題產生代稱: {title!r}")
        return fallback
    return s


def build_front_matter_dict(
    *,
    title: str,
    date: Optional[ArticleDate] = None,
    tags: Optional[Iterable[str]] = None,
    summary: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
) -> tuple[FrontMatter, str]:
    """Build the front-matter for a new article and its slug."""
    published = date or datetime.now().date()
    tags = [str(t).strip() for t in (tags or []) if str(t).strip()]

    front_matter = FrontMatter(
        title=title.strip(),
        date=published,
        tags=list(dict.fromkeys(tags)),
        summary=summary.strip() if summary else None,
        extra=dict(extra or {}),
    )
    slug = slugify(title, fallback=f"post-{published.strftime('%Y%m%d')}")
    return front_matter, slug


def article_text(front_matter: FrontMatter, body: Optional[str] = None) -> str:
    """Render a complete article file."""
    if body is None:
        body = "\n".join([
            "## Introduction",
            "",
            "",
        ])
    return front_matter.to_yaml() + "\n" + body


class ScaffoldService:
    """新文章建立服務."""

    def __init__(self, content_dir: Union[str, Path], extension: str = ".mdx"):
        self.content_dir = Path(content_dir)
        if not extension.startswith("."):
            raise ValueError(f"副檔名必須以 '.' 開頭: {extension}")
        self.extension = extension

    def article_path(self, slug: str) -> Path:
        return self.content_dir / f"{slug}{self.extension}"

    def create_article(
        self,
        title: str,
        tags: Optional[Iterable[str]] = None,
        summary: Optional[str] = None,
        published: Optional[Union[date, datetime]] = None,
        body: Optional[str] = None,
        force: bool = False,
    ) -> Path:
        """
        建立新文章檔案.

        Raises:
            FileExistsError: 檔案已存在且未指定 force
            ValueError: 標題為空
        """
        if not title or not title.strip():
            raise ValueError("文章標題不可為空")

        front_matter, slug = build_front_matter_dict(
            title=title, date=published, tags=tags, summary=summary
        )
        path = self.article_path(slug)

        if path.exists() and not force:
            raise FileExistsError(f"文章已存在: {path}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(article_text(front_matter, body), encoding="utf-8")

        logger.info(f"建立文章: {path}")
        return path
