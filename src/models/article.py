"""Article data model.

This module defines the FrontMatter, CodeBlock, Heading and Article data classes.
"""
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional, Union

import yaml

ArticleDate = Union[date, datetime]

FRONT_MATTER_KEYS = ("title", "date", "tags", "summary")


@dataclass
class FrontMatter:
    """文章前置資料 (front-matter) 模型."""

    title: str
    date: ArticleDate
    tags: list[str] = field(default_factory=list)
    summary: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate front-matter data after initialization."""
        self._validate_title()
        self._validate_date()
        self._validate_tags()
        self._validate_summary()

    def _validate_title(self) -> None:
        """Validate article title."""
        if not isinstance(self.title, str) or not self.title.strip():
            raise ValueError("文章標題不可為空")

    def _validate_date(self) -> None:
        """Validate publication date."""
        if not isinstance(self.date, (date, datetime)):
            raise ValueError("發表日期必須為日期格式")

    def _validate_tags(self) -> None:
        """Validate tag list."""
        if not isinstance(self.tags, list):
            raise ValueError("標籤必須為列表")

        for tag in self.tags:
            if not isinstance(tag, str) or not tag.strip():
                raise ValueError("標籤必須為非空字串")

    def _validate_summary(self) -> None:
        """Validate optional summary."""
        if self.summary is not None and not isinstance(self.summary, str):
            raise ValueError("摘要必須為字串")

    @property
    def publish_datetime(self) -> datetime:
        """Publication date as a naive datetime, for sorting."""
        if isinstance(self.date, datetime):
            return self.date.replace(tzinfo=None)
        return datetime(self.date.year, self.date.month, self.date.day)

    def to_dict(self) -> dict:
        """Convert front-matter to dictionary."""
        data: dict[str, Any] = {
            "title": self.title,
            "date": self.date.isoformat(),
            "tags": list(self.tags),
        }
        if self.summary is not None:
            data["summary"] = self.summary
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "FrontMatter":
        """Create front-matter from dictionary."""
        raw_date = data["date"]
        if isinstance(raw_date, str):
            raw_date = (
                datetime.fromisoformat(raw_date) if "T" in raw_date or " " in raw_date
                else date.fromisoformat(raw_date)
            )
        return cls(
            title=data["title"],
            date=raw_date,
            tags=list(data.get("tags") or []),
            summary=data.get("summary"),
            extra={k: v for k, v in data.items() if k not in FRONT_MATTER_KEYS},
        )

    def to_yaml(self) -> str:
        """Render the front-matter block, delimiters included."""
        data: dict[str, Any] = {"title": self.title, "date": self.date, "tags": list(self.tags)}
        if self.summary is not None:
            data["summary"] = self.summary
        data.update(self.extra)

        yaml_txt = yaml.safe_dump(
            data, allow_unicode=True, sort_keys=False, default_flow_style=False, width=1000
        )
        return f"---\n{yaml_txt}---\n"


@dataclass
class CodeBlock:
    """Fenced code block found in an article body."""

    fence: str
    info: str
    start_line: int
    end_line: Optional[int]
    content: str = ""

    @property
    def language(self) -> Optional[str]:
        """First word of the info string."""
        words = self.info.split()
        return words[0] if words else None

    @property
    def is_closed(self) -> bool:
        return self.end_line is not None


@dataclass
class Heading:
    """ATX heading found in an article body."""

    level: int
    text: str
    line: int


@dataclass
class Article:
    """部落格文章資料模型."""

    path: Path
    front_matter: Optional[FrontMatter]
    body: str
    raw_front_matter: dict[str, Any] = field(default_factory=dict)
    has_front_matter: bool = True
    body_start_line: int = 1
    code_blocks: list[CodeBlock] = field(default_factory=list)
    headings: list[Heading] = field(default_factory=list)
    front_matter_error: Optional[str] = None
    front_matter_error_line: Optional[int] = None
    front_matter_lines: dict[str, int] = field(default_factory=dict)

    @property
    def slug(self) -> str:
        """File stem without a leading ``YYYY-MM-DD-`` prefix."""
        stem = Path(self.path).stem
        if stem == "index":
            stem = Path(self.path).parent.name or stem
        return re.sub(r"^\d{4}-\d{2}-\d{2}-", "", stem)

    @property
    def title(self) -> str:
        if self.front_matter:
            return self.front_matter.title

        raw_title = self.raw_front_matter.get("title")
        if isinstance(raw_title, str) and raw_title.strip():
            return raw_title.strip()

        for heading in self.headings:
            if heading.level == 1:
                return heading.text
        return self.slug

    @property
    def tags(self) -> list[str]:
        return list(self.front_matter.tags) if self.front_matter else []

    @property
    def date(self) -> Optional[ArticleDate]:
        return self.front_matter.date if self.front_matter else None

    def is_valid(self) -> bool:
        """Check if the article carries a complete front-matter block."""
        return self.front_matter is not None

    def get_summary(self, max_length: int = 200) -> str:
        """Get article summary."""
        if self.front_matter and self.front_matter.summary and self.front_matter.summary.strip():
            summary = self.front_matter.summary.strip()
            if len(summary) <= max_length:
                return summary
            return summary[:max_length].rstrip() + "..."

        paragraph = self._first_paragraph()
        if len(paragraph) <= max_length:
            return paragraph

        # 在句號、問號、驚嘆號處截斷
        for i in range(max_length - 1, max_length // 2, -1):
            if paragraph[i] in "。？！.?!":
                return paragraph[: i + 1]

        return paragraph[:max_length].rstrip() + "..."

    def _first_paragraph(self) -> str:
        """First prose paragraph with Markdown markup stripped."""
        text = _strip_code_blocks(self.body, self.code_blocks, self.body_start_line)

        for block in re.split(r"\n\s*\n", text):
            lines = [
                line for line in block.strip().splitlines()
                if not re.match(r"^\s*(#{1,6}\s|import\s|export\s|<|>|\||!\[)", line)
            ]
            if not lines:
                continue
            clean = " ".join(line.strip() for line in lines)
            clean = re.sub(r"!\[[^\]]*\]\([^)]*\)", "", clean)
            clean = re.sub(r"\[([^\]]+)\]\([^)]*\)", r"\1", clean)
            clean = re.sub(r"`([^`]*)`", r"\1", clean)
            clean = re.sub(r"(\*\*|__|\*|_)(\S.*?\S|\S)\1", r"\2", clean)
            clean = re.sub(r"^[-*+]\s+|^\d+\.\s+", "", clean)
            clean = re.sub(r"\s+", " ", clean).strip()
            if clean:
                return clean
        return ""

    def word_count(self) -> int:
        """Count words in prose; CJK characters count one each."""
        text = _strip_code_blocks(self.body, self.code_blocks, self.body_start_line)
        cjk = re.findall(r"[\u4e00-\u9fff\u3040-\u30ff\uac00-\ud7af]", text)
        latin = re.findall(r"[A-Za-z0-9]+(?:['’-][A-Za-z0-9]+)*", text)
        return len(cjk) + len(latin)

    def reading_time_minutes(self, words_per_minute: int = 200) -> int:
        """Estimated reading time, at least one minute."""
        if words_per_minute <= 0:
            raise ValueError("每分鐘字數必須為正數")
        return max(1, round(self.word_count() / words_per_minute))

    def languages(self) -> list[str]:
        """Distinct code block languages in order of first use."""
        seen: list[str] = []
        for block in self.code_blocks:
            if block.language and block.language not in seen:
                seen.append(block.language)
        return seen

    def to_dict(self, include_body: bool = False) -> dict:
        """Convert article to dictionary."""
        data: dict[str, Any] = {
            "path": str(self.path),
            "slug": self.slug,
            "title": self.title,
            "date": self.date.isoformat() if self.date else None,
            "tags": self.tags,
            "summary": self.get_summary(),
            "reading_time": self.reading_time_minutes(),
            "languages": self.languages(),
        }
        if include_body:
            data["body"] = self.body
        return data


def _strip_code_blocks(body: str, code_blocks: list[CodeBlock], body_start_line: int) -> str:
    """Remove fenced code block lines from a body."""
    if not code_blocks:
        return body

    lines = body.splitlines()
    skip = set()
    for block in code_blocks:
        start = block.start_line - body_start_line
        end = (block.end_line - body_start_line) if block.end_line else len(lines) - 1
        skip.update(range(start, end + 1))

    return "\n".join(line for i, line in enumerate(lines) if i not in skip)
