"""Parser service implementation.

This module implements article file parsing: front-matter splitting, YAML
decoding, date and tag normalisation, and fenced code block / heading
extraction from the Markdown body.
"""
import asyncio
import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from ..models.article import Article, ArticleDate, CodeBlock, FrontMatter, Heading

logger = logging.getLogger(__name__)

FRONT_MATTER_DELIMITER = "---"
TOML_DELIMITER = "+++"


class FrontMatterLoader(yaml.SafeLoader):
    """SafeLoader that keeps calendar-invalid timestamps such as 2024-02-30 as strings."""

    def construct_yaml_timestamp(self, node):
        try:
            return super().construct_yaml_timestamp(node)
        except ValueError:
            return self.construct_scalar(node)


FrontMatterLoader.add_constructor("tag:yaml.org,2002:timestamp", FrontMatterLoader.construct_yaml_timestamp)


class FrontMatterError(ValueError):
    """Front-matter block cannot be read."""

    def __init__(self, message: str, line: Optional[int] = None):
        super().__init__(message)
        self.line = line


class ParserService:
    """文章內容解析服務."""

    def __init__(self):
        # CommonMark 程式碼區塊圍欄
        self.fence_open_pattern = re.compile(r"^(?P<indent>[ \t]*)(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
        self.key_pattern = re.compile(r"^(?P<key>[^\s#:\-][^:]*):(?:\s|$)")
        self.heading_pattern = re.compile(r"^ {0,3}(?P<marks>#{1,6})(?:[ \t]+(?P<text>.*?))?[ \t]*$")

        self.date_formats = [
            "%Y-%m-%d",  # 2024-01-01
            "%Y/%m/%d",  # 2024/01/01
            "%Y-%m-%d %H:%M:%S",  # 2024-01-01 12:00:00
            "%Y-%m-%d %H:%M",  # 2024-01-01 12:00
            "%Y/%m/%d %H:%M:%S",  # 2024/01/01 12:00:00
            "%Y/%m/%d %H:%M",  # 2024/01/01 12:00
            "%Y-%m-%dT%H:%M:%S%z",  # 2024-01-01T12:00:00+0800
            "%d %B %Y",  # 01 January 2024
            "%B %d, %Y",  # January 01, 2024
        ]

        logger.debug("文章解析服務初始化完成")

    async def parse_file(self, path: Union[str, Path], strict: bool = False) -> Article:
        """
        讀取並解析文章檔案.

        Args:
            path: 文章檔案路徑
            strict: 前置資料無法解析時是否拋出 FrontMatterError

        Returns:
            Article: 解析後的文章
        """
        path = Path(path)
        text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        return self.parse_text(text, path, strict=strict)

    def parse_text(self, text: str, path: Union[str, Path] = "<string>", strict: bool = False) -> Article:
        """
        解析文章文字內容.

        Problems with individual front-matter fields never raise here: the
        article is returned with ``front_matter=None`` and the raw mapping
        kept, so every problem can be reported by the linter. An unreadable
        block raises only when ``strict`` is set.
        """
        path = Path(path)
        front_matter_error: Optional[FrontMatterError] = None
        raw: dict[str, Any] = {}

        try:
            block, body, body_start_line = self.split_front_matter(text)
        except FrontMatterError as e:
            if strict:
                raise
            front_matter_error = e
            block, body, body_start_line = None, _strip_bom(text), 1

        if block is not None:
            try:
                raw = self.parse_front_matter(block)
            except FrontMatterError as e:
                if strict:
                    raise
                front_matter_error = e

        front_matter = None
        if block is not None and front_matter_error is None:
            try:
                front_matter = self.build_front_matter(raw)
            except ValueError as e:
                logger.debug(f"前置資料不完整 ({path}): {e}")

        article = Article(
            path=path,
            front_matter=front_matter,
            body=body,
            raw_front_matter=raw,
            has_front_matter=block is not None,
            body_start_line=body_start_line,
            code_blocks=self.extract_code_blocks(body, body_start_line),
            front_matter_error=str(front_matter_error) if front_matter_error else None,
            front_matter_error_line=front_matter_error.line if front_matter_error else None,
            front_matter_lines=self.front_matter_key_lines(block) if block else {},
        )
        article.headings = self.extract_headings(body, body_start_line, article.code_blocks)

        logger.debug(f"文章解析完成: {path}")
        return article

    def split_front_matter(self, text: str) -> tuple[Optional[str], str, int]:
        """
        分離前置資料區塊與內文.

        Returns:
            (block, body, body_start_line): block is None when the file has
            no front-matter; body_start_line is the 1-based line of the body.
        """
        text = _strip_bom(text)
        lines = text.splitlines(keepends=True)

        if not lines:
            return None, text, 1

        first = lines[0].rstrip()
        if first == TOML_DELIMITER:
            raise FrontMatterError("不支援 TOML 前置資料 (+++)", line=1)
        if first != FRONT_MATTER_DELIMITER:
            return None, text, 1

        for index in range(1, len(lines)):
            if lines[index].rstrip() in (FRONT_MATTER_DELIMITER, "..."):
                block = "".join(lines[1:index])
                body = "".join(lines[index + 1:])
                return block, body, index + 2

        raise FrontMatterError("前置資料區塊未關閉", line=1)

    def parse_front_matter(self, block: str) -> dict[str, Any]:
        """解析 YAML 前置資料為字典."""
        if not block.strip():
            return {}

        try:
            data = yaml.load(block, Loader=FrontMatterLoader)
        except yaml.YAMLError as e:
            mark = getattr(e, "problem_mark", None)
            # 區塊從檔案第 2 行開始
            line = mark.line + 2 if mark is not None else None
            problem = getattr(e, "problem", None) or str(e)
            raise FrontMatterError(f"前置資料 YAML 格式錯誤: {problem}", line=line) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise FrontMatterError("前置資料必須為鍵值對映射", line=2)

        return {str(key): value for key, value in data.items()}

    def front_matter_key_lines(self, block: str) -> dict[str, int]:
        """Map each top-level key to its 1-based line in the file."""
        lines = {}
        for index, line in enumerate(block.splitlines()):
            match = self.key_pattern.match(line)
            if match:
                lines.setdefault(match.group("key").strip().strip("'\""), index + 2)
        return lines

    def build_front_matter(self, data: dict[str, Any]) -> FrontMatter:
        """由原始字典建立 FrontMatter，欄位無效時拋出 ValueError."""
        if "title" not in data or data["title"] is None:
            raise FrontMatterError("缺少 title 欄位")
        if "date" not in data or data["date"] is None:
            raise FrontMatterError("缺少 date 欄位")

        title = data["title"]
        if not isinstance(title, str):
            title = str(title)

        return FrontMatter(
            title=title.strip(),
            date=self.parse_date(data["date"]),
            tags=self.normalize_tags(data.get("tags")),
            summary=data.get("summary"),
            extra={k: v for k, v in data.items() if k not in ("title", "date", "tags", "summary")},
        )

    def parse_date(self, value: Any) -> ArticleDate:
        """解析發表日期."""
        if isinstance(value, (datetime, date)):
            return value

        if not isinstance(value, str) or not value.strip():
            raise FrontMatterError(f"無法解析日期: {value!r}")

        value = value.strip()
        if re.fullmatch(r"\d{4}-\d{2}-\d{2}", value):
            try:
                return date.fromisoformat(value)
            except ValueError as e:
                raise FrontMatterError(f"無法解析日期: {value!r}") from e

        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass

        for fmt in self.date_formats:
            try:
                parsed = datetime.strptime(value, fmt)
            except ValueError:
                continue
            if "%H" not in fmt:
                return parsed.date()
            return parsed

        raise FrontMatterError(f"無法解析日期: {value!r}")

    def normalize_tags(self, value: Any) -> list[str]:
        """正規化標籤：接受列表或逗號分隔字串."""
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",")]
        if isinstance(value, (list, tuple)):
            return [tag.strip() if isinstance(tag, str) else tag for tag in value]
        raise FrontMatterError("tags 必須為列表")

    def extract_code_blocks(self, body: str, line_offset: int = 1) -> list[CodeBlock]:
        """
        擷取內文中的圍欄程式碼區塊.

        A closing fence uses the opening fence's character, is at least as
        long, and carries no info string. A fence still open at end of input
        is returned with ``end_line=None``.
        """
        blocks: list[CodeBlock] = []
        current: Optional[CodeBlock] = None
        content_lines: list[str] = []

        for index, line in enumerate(body.splitlines()):
            line_number = line_offset + index

            if current is None:
                match = self.fence_open_pattern.match(line)
                if not match:
                    continue
                fence = match.group("fence")
                info = match.group("info").strip()
                # 反引號圍欄的資訊字串不可包含反引號
                if fence[0] == "`" and "`" in info:
                    continue
                current = CodeBlock(fence=fence, info=info, start_line=line_number, end_line=None)
                content_lines = []
                continue

            stripped = line.strip()
            if (
                stripped
                and set(stripped) == {current.fence[0]}
                and len(stripped) >= len(current.fence)
            ):
                current.end_line = line_number
                current.content = "\n".join(content_lines)
                blocks.append(current)
                current = None
                continue

            content_lines.append(line)

        if current is not None:
            current.content = "\n".join(content_lines)
            blocks.append(current)
            logger.debug(f"程式碼區塊未關閉，起始行: {current.start_line}")

        return blocks

    def extract_headings(
        self,
        body: str,
        line_offset: int = 1,
        code_blocks: Optional[list[CodeBlock]] = None,
    ) -> list[Heading]:
        """擷取程式碼區塊以外的 ATX 標題."""
        if code_blocks is None:
            code_blocks = self.extract_code_blocks(body, line_offset)

        fenced_lines = set()
        total = len(body.splitlines())
        for block in code_blocks:
            end = block.end_line if block.end_line is not None else line_offset + total - 1
            fenced_lines.update(range(block.start_line, end + 1))

        headings = []
        for index, line in enumerate(body.splitlines()):
            line_number = line_offset + index
            if line_number in fenced_lines:
                continue
            match = self.heading_pattern.match(line)
            if not match:
                continue
            text = re.sub(r"[ \t]+#+$", "", match.group("text") or "").strip()
            headings.append(Heading(level=len(match.group("marks")), text=text, line=line_number))

        return headings


def _strip_bom(text: str) -> str:
    return text[1:] if text.startswith("\ufeff") else text
