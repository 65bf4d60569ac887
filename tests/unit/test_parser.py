"""Unit tests for ParserService."""
from datetime import date, datetime, timedelta, timezone

import pytest

from src.services.parser_service import FrontMatterError, ParserService
from tests.conftest import BROKEN_ARTICLE, VALID_ARTICLE


class TestParserService:
    """Test ParserService functionality."""

    @pytest.fixture
    def parser_service(self) -> ParserService:
        """Create ParserService instance."""
        return ParserService()

    def test_parse_valid_article(self, parser_service: ParserService):
        """Test parsing a complete article."""
        article = parser_service.parse_text(VALID_ARTICLE, "content/blog/spring-mvc.mdx")

        assert article.is_valid()
        assert article.title == "Spring MVC 參數綁定"
        assert article.date == date(2021, 3, 14)
        assert article.tags == ["Spring", "Java"]
        assert article.front_matter.summary == "自訂 HandlerMethodArgumentResolver。"
        assert article.body_start_line == 9
        assert article.front_matter_lines == {"title": 2, "date": 3, "tags": 4, "summary": 7}

        assert len(article.code_blocks) == 1
        block = article.code_blocks[0]
        assert block.language == "java"
        assert (block.start_line, block.end_line) == (14, 17)
        assert block.content.startswith("public class CurrentUserArgumentResolver")

        assert [(h.level, h.text, h.line) for h in article.headings] == [(2, "實作", 12)]

    async def test_parse_file(self, parser_service: ParserService, tmp_path):
        """Test reading an article from disk."""
        path = tmp_path / "spring-mvc.mdx"
        path.write_text(VALID_ARTICLE, encoding="utf-8")

        article = await parser_service.parse_file(path)

        assert article.path == path
        assert article.slug == "spring-mvc"

    async def test_parse_file_missing(self, parser_service: ParserService, tmp_path):
        """Test missing files raise OSError."""
        with pytest.raises(FileNotFoundError):
            await parser_service.parse_file(tmp_path / "missing.mdx")

    def test_parse_broken_article_is_lenient(self, parser_service: ParserService):
        """Test invalid fields leave front_matter unset without raising."""
        article = parser_service.parse_text(BROKEN_ARTICLE)

        assert article.front_matter is None
        assert article.has_front_matter is True
        assert article.front_matter_error is None
        assert article.raw_front_matter["tags"] == ["Java", ""]
        assert article.code_blocks[0].is_closed is False

    def test_parse_text_strict(self, parser_service: ParserService):
        """Test strict mode raises on unreadable front-matter."""
        text = "---\ntitle: [unclosed\n---\nbody\n"

        lenient = parser_service.parse_text(text)
        assert lenient.front_matter_error is not None
        assert lenient.front_matter_error_line is not None

        with pytest.raises(FrontMatterError):
            parser_service.parse_text(text, strict=True)

    def test_split_without_front_matter(self, parser_service: ParserService):
        """Test files without a leading delimiter."""
        block, body, start = parser_service.split_front_matter("# Title\n\nText\n")

        assert block is None
        assert body == "# Title\n\nText\n"
        assert start == 1

    def test_split_empty_text(self, parser_service: ParserService):
        """Test empty input."""
        assert parser_service.split_front_matter("") == (None, "", 1)

    def test_split_strips_bom(self, parser_service: ParserService):
        """Test a byte order mark before the delimiter."""
        block, body, start = parser_service.split_front_matter("\ufeff---\ntitle: A\n---\nBody\n")

        assert block == "title: A\n"
        assert body == "Body\n"
        assert start == 4

    def test_split_dots_closer(self, parser_service: ParserService):
        """Test '...' closes the block like '---'."""
        block, body, _ = parser_service.split_front_matter("---\ntitle: A\n...\nBody\n")

        assert block == "title: A\n"
        assert body == "Body\n"

    def test_split_unclosed_block(self, parser_service: ParserService):
        """Test missing closing delimiter."""
        with pytest.raises(FrontMatterError) as exc_info:
            parser_service.split_front_matter("---\ntitle: A\n\nBody\n")
        assert exc_info.value.line == 1

    def test_split_toml_rejected(self, parser_service: ParserService):
        """Test TOML front-matter is reported, not ignored."""
        with pytest.raises(FrontMatterError):
            parser_service.split_front_matter('+++\ntitle = "A"\n+++\n')

    def test_parse_front_matter(self, parser_service: ParserService):
        """Test YAML decoding."""
        data = parser_service.parse_front_matter("title: A\ndate: 2024-01-02\ndraft: true\n")

        assert data == {"title": "A", "date": date(2024, 1, 2), "draft": True}
        assert parser_service.parse_front_matter("   \n") == {}

    def test_parse_front_matter_impossible_date(self, parser_service: ParserService):
        """Test a date YAML cannot build is kept as a string."""
        data = parser_service.parse_front_matter("title: A\ndate: 2024-02-30\n")
        assert data == {"title": "A", "date": "2024-02-30"}

        article = parser_service.parse_text("---\ntitle: A\ndate: 2024-02-30\n---\n\nBody\n", strict=True)
        assert article.front_matter_error is None
        assert article.front_matter is None
        assert article.raw_front_matter["date"] == "2024-02-30"

    def test_parse_front_matter_not_mapping(self, parser_service: ParserService):
        """Test a YAML list is rejected."""
        with pytest.raises(FrontMatterError):
            parser_service.parse_front_matter("- a\n- b\n")

    def test_parse_front_matter_syntax_error_line(self, parser_service: ParserService):
        """Test YAML error line is reported in file coordinates."""
        with pytest.raises(FrontMatterError) as exc_info:
            parser_service.parse_front_matter("title: A\ntags: [a, b\nsummary: x\n")

        assert exc_info.value.line is not None
        assert exc_info.value.line >= 3

    def test_build_front_matter_missing_fields(self, parser_service: ParserService):
        """Test missing title or date."""
        with pytest.raises(ValueError):
            parser_service.build_front_matter({"date": date(2024, 1, 1)})
        with pytest.raises(ValueError):
            parser_service.build_front_matter({"title": "A"})

    def test_build_front_matter_extra_keys(self, parser_service: ParserService):
        """Test unknown keys are kept in extra."""
        front_matter = parser_service.build_front_matter(
            {"title": 2024, "date": "2024-01-01", "tags": "a, b", "draft": True}
        )

        assert front_matter.title == "2024"
        assert front_matter.tags == ["a", "b"]
        assert front_matter.extra == {"draft": True}

    def test_parse_date_formats(self, parser_service: ParserService):
        """Test supported date formats."""
        assert parser_service.parse_date(date(2024, 1, 1)) == date(2024, 1, 1)
        assert parser_service.parse_date("2024-01-01") == date(2024, 1, 1)
        assert parser_service.parse_date("2024/01/01") == date(2024, 1, 1)
        assert parser_service.parse_date("January 05, 2024") == date(2024, 1, 5)
        assert parser_service.parse_date("2024-01-01 12:30") == datetime(2024, 1, 1, 12, 30)
        assert parser_service.parse_date("2024-01-01T12:00:00Z") == datetime(
            2024, 1, 1, 12, 0, tzinfo=timezone.utc
        )
        assert parser_service.parse_date("2024-01-01T12:00:00+08:00").utcoffset() == timedelta(hours=8)

    def test_parse_date_invalid(self, parser_service: ParserService):
        """Test unparseable dates."""
        for value in ["", "yesterday", "2024-13-01", 20240101, None]:
            with pytest.raises(FrontMatterError):
                parser_service.parse_date(value)

    def test_normalize_tags(self, parser_service: ParserService):
        """Test list and comma separated tags."""
        assert parser_service.normalize_tags(None) == []
        assert parser_service.normalize_tags("Spring, Java") == ["Spring", "Java"]
        assert parser_service.normalize_tags([" Spring ", 3]) == ["Spring", 3]

        with pytest.raises(FrontMatterError):
            parser_service.normalize_tags({"a": 1})

    def test_extract_code_blocks(self, parser_service: ParserService):
        """Test backtick and tilde fences."""
        body = "\n".join([
            "```java",
            "class A {}",
            "```",
            "",
            "~~~~",
            "```",
            "not a close",
            "~~~~",
            "",
            "````md",
            "```js",
            "```",
            "````",
        ])

        blocks = parser_service.extract_code_blocks(body, line_offset=10)

        assert [(b.fence, b.language, b.start_line, b.end_line) for b in blocks] == [
            ("```", "java", 10, 12),
            ("~~~~", None, 14, 17),
            ("````", "md", 19, 22),
        ]
        assert blocks[1].content == "```\nnot a close"
        assert blocks[2].content == "```js\n```"

    def test_extract_code_blocks_closing_rules(self, parser_service: ParserService):
        """Test closers must be long enough and carry no info string."""
        body = "````python\n```\n```` python\n`````\n"

        blocks = parser_service.extract_code_blocks(body)

        assert len(blocks) == 1
        assert blocks[0].end_line == 4

    def test_extract_code_blocks_unclosed(self, parser_service: ParserService):
        """Test a fence open at end of input."""
        blocks = parser_service.extract_code_blocks("text\n```bash\necho hi\n")

        assert len(blocks) == 1
        assert blocks[0].start_line == 2
        assert blocks[0].end_line is None
        assert blocks[0].content == "echo hi"

    def test_extract_code_blocks_inline_backticks(self, parser_service: ParserService):
        """Test a backtick info string cannot contain backticks."""
        blocks = parser_service.extract_code_blocks("```inline``` text\nplain\n")

        assert blocks == []

    def test_extract_code_blocks_indented(self, parser_service: ParserService):
        """Test fences inside list items."""
        body = "1. Step\n\n    ```bash\n    make\n    ```\n"

        blocks = parser_service.extract_code_blocks(body)

        assert len(blocks) == 1
        assert blocks[0].language == "bash"
        assert blocks[0].is_closed

    def test_extract_headings_skips_code(self, parser_service: ParserService):
        """Test headings inside code blocks are ignored."""
        body = "# Title #\n\n```bash\n# comment\n```\n\n### Section\n#not-a-heading\n"

        headings = parser_service.extract_headings(body, line_offset=5)

        assert [(h.level, h.text, h.line) for h in headings] == [(1, "Title", 5), (3, "Section", 11)]

    def test_front_matter_key_lines(self, parser_service: ParserService):
        """Test key line numbers ignore nested items and comments."""
        block = "# comment\ntitle: A\ntags:\n  - x\n  nested: y\n'quoted': 1\n"

        assert parser_service.front_matter_key_lines(block) == {"title": 3, "tags": 4, "quoted": 7}
