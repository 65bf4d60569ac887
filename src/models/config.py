"""Config data model.

This module defines the Config data class and default configuration values.
"""
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

KEY_PATTERN = re.compile(r"^[a-z]+(?:\.[a-z][a-z0-9_]*)+$")


@dataclass
class Config:
    """配置管理資料模型."""

    key: str
    value: str
    description: Optional[str]
    created_at: datetime
    updated_at: datetime

    def __post_init__(self) -> None:
        """Validate config data after initialization."""
        self._validate_key()
        self._validate_value()

    def _validate_key(self) -> None:
        """Keys are dotted lowercase names such as ``lint.allowed_keys``."""
        if not isinstance(self.key, str) or not KEY_PATTERN.match(self.key):
            raise ValueError(f"配置鍵名格式無效: {self.key!r}")

    def _validate_value(self) -> None:
        if not isinstance(self.value, str):
            raise ValueError("配置值必須為字串")
        if len(self.value) > 1000:
            raise ValueError("配置值長度不可超過 1000 字元")

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "key": self.key,
            "value": self.value,
            "description": self.description,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Create config from dictionary."""
        return cls(
            key=data["key"],
            value=data["value"],
            description=data.get("description"),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )

    def get_list_value(self) -> list[str]:
        """Split a comma separated value, dropping blanks."""
        return split_list_value(self.value)

    def set_value(self, value: Any) -> None:
        """Replace the value; lists are stored comma separated."""
        if isinstance(value, bool):
            value = "true" if value else "false"
        elif isinstance(value, (list, tuple)):
            value = ",".join(str(v) for v in value)

        self.value = str(value)
        self._validate_value()
        self.updated_at = datetime.now()


# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "content.dir": "content",  # 文章根目錄
    "content.extensions": ".md,.mdx",  # 文章副檔名
    "lint.disabled_rules": "",  # 停用的檢查規則
    "lint.allowed_languages": "",  # 允許的程式碼語言（空白表示不限）
    "lint.allowed_keys": "title,date,tags,summary,draft,authors,images,layout,lastmod,canonicalUrl",
    "lint.strict": "false",  # 警告視為錯誤
    "lint.future_dates": "warn",  # 未來日期處理 [warn|ignore]
    "scaffold.extension": ".mdx",  # 新文章副檔名
    "export.format": "json",  # 索引匯出格式
    "logging.level": "INFO",  # 日誌級別
    "logging.file_path": "",  # 日誌檔案路徑（空白表示不寫檔）
    "logging.format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",  # 日誌格式
}


class ConfigKey:
    """Configuration key constants."""

    # Content settings
    CONTENT_DIR = "content.dir"
    CONTENT_EXTENSIONS = "content.extensions"

    # Lint settings
    LINT_DISABLED_RULES = "lint.disabled_rules"
    LINT_ALLOWED_LANGUAGES = "lint.allowed_languages"
    LINT_ALLOWED_KEYS = "lint.allowed_keys"
    LINT_STRICT = "lint.strict"
    LINT_FUTURE_DATES = "lint.future_dates"

    # Scaffold / export settings
    SCAFFOLD_EXTENSION = "scaffold.extension"
    EXPORT_FORMAT = "export.format"

    # Logging settings
    LOGGING_LEVEL = "logging.level"
    LOGGING_FILE_PATH = "logging.file_path"
    LOGGING_FORMAT = "logging.format"


EXPORT_FORMATS = {"json", "yaml", "csv"}


def split_list_value(value: Any) -> list[str]:
    """Split a comma separated config value."""
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    if not value:
        return []
    return [part.strip() for part in str(value).split(",") if part.strip()]


def is_known_key(key: str) -> bool:
    """Check if configuration key is one of the defaults."""
    return key in DEFAULT_CONFIG


def validate_config_value(key: str, value: Any) -> bool:
    """Validate configuration value for specific key.

    Raises ValueError on invalid values; returns True otherwise.
    """
    if key == ConfigKey.CONTENT_DIR:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("content.dir 不可為空")

    elif key in (ConfigKey.CONTENT_EXTENSIONS, ConfigKey.SCAFFOLD_EXTENSION):
        extensions = split_list_value(value)
        if not extensions:
            raise ValueError(f"{key} 不可為空")
        for ext in extensions:
            if not ext.startswith(".") or len(ext) < 2:
                raise ValueError(f"{key} 副檔名必須以 '.' 開頭: {ext}")
        if key == ConfigKey.SCAFFOLD_EXTENSION and len(extensions) != 1:
            raise ValueError("scaffold.extension 只能指定一個副檔名")

    elif key == ConfigKey.LINT_STRICT:
        if str(value).lower().strip() not in ("true", "false"):
            raise ValueError("lint.strict 必須為 true 或 false")

    elif key == ConfigKey.LINT_FUTURE_DATES:
        if str(value).lower().strip() not in ("warn", "ignore"):
            raise ValueError("lint.future_dates 必須為 warn 或 ignore")

    elif key == ConfigKey.EXPORT_FORMAT:
        if str(value).lower().strip() not in EXPORT_FORMATS:
            raise ValueError(f"export.format 必須為以下值之一: {sorted(EXPORT_FORMATS)}")

    elif key == ConfigKey.LOGGING_LEVEL:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if str(value).upper() not in valid_levels:
            raise ValueError(f"logging.level 必須為以下值之一: {sorted(valid_levels)}")

    return True


CONFIG_DESCRIPTIONS = {
    ConfigKey.CONTENT_DIR: "文章根目錄",
    ConfigKey.CONTENT_EXTENSIONS: "文章副檔名（逗號分隔）",
    ConfigKey.LINT_DISABLED_RULES: "停用的檢查規則（逗號分隔）",
    ConfigKey.LINT_ALLOWED_LANGUAGES: "允許的程式碼語言（逗號分隔）",
    ConfigKey.LINT_ALLOWED_KEYS: "允許的前置資料欄位（逗號分隔）",
    ConfigKey.LINT_STRICT: "警告視為錯誤",
    ConfigKey.LINT_FUTURE_DATES: "未來日期處理方式",
    ConfigKey.SCAFFOLD_EXTENSION: "新文章副檔名",
    ConfigKey.EXPORT_FORMAT: "索引匯出格式",
    ConfigKey.LOGGING_LEVEL: "日誌級別",
    ConfigKey.LOGGING_FILE_PATH: "日誌檔案路徑",
}
