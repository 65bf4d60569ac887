"""Configuration Management Integration Tests

These tests verify configuration loading, validation, and management
across config files, the config store and environment variables.
"""
import json
import logging
from pathlib import Path

import pytest

from src.cli.context import setup_logging
from src.lib.config_loader import ConfigLoader
from src.lib.config_store import ConfigStore, default_store_path


@pytest.fixture()
def config_store(tmp_path) -> ConfigStore:
    """Config store backed by a temporary file."""
    return ConfigStore(tmp_path / "store.json")


@pytest.fixture()
def config_loader(config_store: ConfigStore) -> ConfigLoader:
    """Config loader instance for testing."""
    return ConfigLoader(config_store=config_store)


@pytest.fixture()
def sample_config_file(tmp_path) -> Path:
    """Sample configuration file for testing."""
    config_content = """
# Content
CONTENT_DIR=posts
content.extensions=".md"

# Lint
LINT_DISABLED_RULES=CB002,MD002
LINT_STRICT='true'

# Logging
LOG_LEVEL=DEBUG
LOG_FILE_PATH=logs/techblog.log
this line is ignored
"""
    config_file = tmp_path / "techblog.env"
    config_file.write_text(config_content.strip(), encoding="utf-8")
    return config_file


class TestConfigLoading:
    """Test configuration loading from various sources."""

    @pytest.mark.asyncio()
    async def test_load_config_from_file(self, config_loader: ConfigLoader, sample_config_file: Path):
        """Test loading configuration from file."""
        config = await config_loader.load_from_file(sample_config_file)

        assert config == {
            "content.dir": "posts",
            "content.extensions": ".md",
            "lint.disabled_rules": "CB002,MD002",
            "lint.strict": "true",
            "logging.level": "DEBUG",
            "logging.file_path": "logs/techblog.log",
        }

    @pytest.mark.asyncio()
    async def test_load_config_from_json_file(self, config_loader: ConfigLoader, tmp_path):
        """Test JSON config files with native lists and booleans."""
        config_file = tmp_path / "techblog.json"
        config_file.write_text(
            json.dumps({"lint.strict": True, "lint.allowed_languages": ["java", "bash"]}), encoding="utf-8"
        )

        config = await config_loader.load_from_file(config_file)

        assert config == {"lint.strict": "true", "lint.allowed_languages": "java,bash"}

    @pytest.mark.asyncio()
    async def test_load_config_missing_file(self, config_loader: ConfigLoader, tmp_path):
        """Test a missing config file contributes nothing."""
        assert await config_loader.load_from_file(tmp_path / "missing.env") == {}

    @pytest.mark.asyncio()
    async def test_load_config_from_environment(self, config_loader: ConfigLoader, monkeypatch):
        """Test loading configuration from environment variables."""
        monkeypatch.setenv("TECHBLOG_CONTENT_DIR", "env-posts")
        monkeypatch.setenv("TECHBLOG_LINT_ALLOWED_LANGUAGES", "java,bash")
        monkeypatch.setenv("TECHBLOG_LOG_LEVEL", "WARNING")

        config = await config_loader.load_from_environment()

        assert config == {
            "content.dir": "env-posts",
            "lint.allowed_languages": "java,bash",
            "logging.level": "WARNING",
        }

    async def test_priority_order(
        self, config_loader: ConfigLoader, config_store: ConfigStore, sample_config_file: Path, monkeypatch
    ):
        """Test environment > store > file > defaults."""
        await config_store.set_config("content.dir", "store-posts")
        await config_store.set_config("export.format", "csv")
        monkeypatch.setenv("TECHBLOG_CONTENT_DIR", "env-posts")

        config = await config_loader.load_config(config_file=sample_config_file)

        assert config["content.dir"] == "env-posts"
        assert config["export.format"] == "csv"
        assert config["logging.level"] == "DEBUG"
        assert config["scaffold.extension"] == ".mdx"
        assert config_loader.get_config_sources() == [
            "defaults",
            f"file:{sample_config_file}",
            "store",
            "environment",
        ]

    async def test_invalid_value_rejected(self, config_loader: ConfigLoader, monkeypatch):
        """Test validation errors name every bad key."""
        monkeypatch.setenv("TECHBLOG_EXPORT_FORMAT", "xml")
        monkeypatch.setenv("TECHBLOG_LINT_STRICT", "maybe")

        with pytest.raises(ValueError) as exc_info:
            await config_loader.load_config()

        assert "export.format" in str(exc_info.value)
        assert "lint.strict" in str(exc_info.value)
        assert config_loader.get_cached_config() is None

    async def test_corrupt_store_is_skipped(self, config_loader: ConfigLoader, config_store: ConfigStore):
        """Test a corrupt store file does not block loading."""
        config_store.path.write_text("{not json", encoding="utf-8")

        config = await config_loader.load_config()

        assert config["content.dir"] == "content"
        assert "store" not in config_loader.get_config_sources()

    async def test_typed_accessors(self, config_loader: ConfigLoader, monkeypatch):
        """Test list and boolean helpers over the cached config."""
        monkeypatch.setenv("TECHBLOG_CONTENT_EXTENSIONS", ".md, .mdx, .markdown")
        monkeypatch.setenv("TECHBLOG_LINT_STRICT", "TRUE")

        await config_loader.load_config()

        assert config_loader.get_list("content.extensions") == [".md", ".mdx", ".markdown"]
        assert config_loader.get_bool("lint.strict") is True
        assert await config_loader.get_config_value("export.format") == "json"
        assert await config_loader.get_config_value("no.such.key", "x") == "x"

    async def test_reload_config(self, config_loader: ConfigLoader, monkeypatch):
        """Test reload picks up new environment values."""
        await config_loader.load_config()
        monkeypatch.setenv("TECHBLOG_EXPORT_FORMAT", "yaml")

        config = await config_loader.reload_config()

        assert config["export.format"] == "yaml"

    async def test_export_round_trip(self, config_loader: ConfigLoader, tmp_path, monkeypatch):
        """Test an exported env file loads back to the same values."""
        assert await config_loader.export_config_to_file(tmp_path / "empty.env") is False

        monkeypatch.setenv("TECHBLOG_LINT_DISABLED_RULES", "CB002")
        original = await config_loader.load_config()
        output = tmp_path / "exported.env"

        assert await config_loader.export_config_to_file(output) is True
        assert "TECHBLOG_LINT_DISABLED_RULES=CB002" in output.read_text(encoding="utf-8")
        assert await ConfigLoader().load_from_file(output) == original

        json_output = tmp_path / "exported.json"
        await config_loader.export_config_to_file(json_output, format="json")
        assert json.loads(json_output.read_text(encoding="utf-8")) == original


class TestConfigStore:
    """Test persisted configuration overrides."""

    def test_default_store_path(self, tmp_path, monkeypatch):
        """Test the store path honours TECHBLOG_CONFIG_STORE."""
        monkeypatch.setenv("TECHBLOG_CONFIG_STORE", str(tmp_path / "custom.json"))
        assert default_store_path() == tmp_path / "custom.json"

        monkeypatch.delenv("TECHBLOG_CONFIG_STORE")
        assert default_store_path() == Path(".techblog.json")

    async def test_set_and_get(self, config_store: ConfigStore):
        """Test storing and reading a value."""
        assert await config_store.get_config("lint.strict") == "false"

        await config_store.set_config("lint.strict", "true", "CI 使用嚴格模式")

        assert await config_store.get_config("lint.strict") == "true"
        assert await config_store.get_all_configs() == {"lint.strict": "true"}
        metadata = await config_store.get_config_with_metadata("lint.strict")
        assert metadata["description"] == "CI 使用嚴格模式"

    async def test_update_keeps_created_at(self, config_store: ConfigStore):
        """Test updates keep the creation time and description."""
        await config_store.set_config("export.format", "csv", "索引格式")
        first = await config_store.get_config_with_metadata("export.format")

        await config_store.set_config("export.format", "yaml")
        second = await config_store.get_config_with_metadata("export.format")

        assert second["value"] == "yaml"
        assert second["created_at"] == first["created_at"]
        assert second["description"] == "索引格式"

    async def test_set_rejects_invalid(self, config_store: ConfigStore):
        """Test unknown keys and invalid values."""
        with pytest.raises(ValueError):
            await config_store.set_config("no.such.key", "x")
        with pytest.raises(ValueError):
            await config_store.set_config("lint.future_dates", "explode")

        assert not config_store.path.exists()

    async def test_include_defaults(self, config_store: ConfigStore):
        """Test merging stored values over defaults."""
        await config_store.set_config("content.dir", "posts")

        configs = await config_store.get_all_configs(include_defaults=True)

        assert configs["content.dir"] == "posts"
        assert configs["export.format"] == "json"

    async def test_delete_and_reset(self, config_store: ConfigStore):
        """Test removing stored values."""
        await config_store.set_config("content.dir", "posts")
        await config_store.set_config("export.format", "csv")

        assert await config_store.delete_config("content.dir") is True
        assert await config_store.delete_config("content.dir") is False

        await config_store.reset_config("export.format")
        assert await config_store.get_all_configs() == {}

        with pytest.raises(ValueError):
            await config_store.reset_config("no.such.key")

        await config_store.set_config("content.dir", "posts")
        await config_store.reset_all_config()
        assert not config_store.path.exists()


class TestLoggingSetup:
    """Test log file configuration."""

    def test_file_handler_added_once(self, tmp_path):
        """Test repeated setup does not duplicate the file handler."""
        log_file = tmp_path / "logs" / "techblog.log"
        root = logging.getLogger()

        try:
            setup_logging("INFO", str(log_file))
            setup_logging("INFO", str(log_file))

            handlers = [
                h for h in root.handlers
                if isinstance(h, logging.FileHandler) and Path(h.baseFilename) == log_file.resolve()
            ]
            assert len(handlers) == 1

            logging.getLogger("src.test").info("寫入日誌")
            handlers[0].flush()
            assert "寫入日誌" in log_file.read_text(encoding="utf-8")
        finally:
            for handler in list(root.handlers):
                if isinstance(handler, logging.FileHandler):
                    root.removeHandler(handler)
                    handler.close()

    def test_console_handler_uses_configured_format(self):
        """Test the format is applied to an existing console handler."""
        root = logging.getLogger()
        console = logging.StreamHandler()
        root.addHandler(console)
        level = root.level

        try:
            setup_logging("WARNING", fmt="%(levelname)s|%(message)s")

            assert root.level == logging.WARNING
            assert console.formatter._fmt == "%(levelname)s|%(message)s"
        finally:
            root.removeHandler(console)
            root.setLevel(level)
