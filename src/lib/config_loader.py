"""Configuration loader implementation.

Configuration is merged from four layers, lowest first: built-in defaults,
an optional config file (``.json`` or ``KEY=VALUE``), the persisted config
store, and ``TECHBLOG_*`` environment variables.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..models.config import DEFAULT_CONFIG, split_list_value, validate_config_value
from .config_store import STORE_PATH_ENV, ConfigStore

logger = logging.getLogger(__name__)

ENV_PREFIX = "TECHBLOG_"

# 短名稱別名: LOG_LEVEL -> logging.level
SECTION_ALIASES = {"log": "logging"}


def _stringify(value: Any) -> str:
    """Flatten a JSON value to the string form stored in config."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


class ConfigLoader:
    """配置載入器，依序合併預設值、配置檔案、儲存檔與環境變數."""

    def __init__(self, config_store: Optional[ConfigStore] = None, env_prefix: str = ENV_PREFIX):
        self.config_store = config_store
        self.env_prefix = env_prefix
        self._cached_config: Optional[Dict[str, str]] = None
        self._config_sources: List[str] = []

    async def load_config(
        self,
        config_file: Optional[Path] = None,
        use_environment: bool = True,
        use_store: bool = True,
        use_defaults: bool = True,
    ) -> Dict[str, str]:
        """
        載入並驗證配置.

        優先順序: 環境變數 > 儲存檔 > 配置檔案 > 預設值

        Raises:
            ValueError: 任一配置值驗證失敗（錯誤訊息列出所有無效的鍵）
        """
        layers: List[tuple] = []
        if use_defaults:
            layers.append(("defaults", {key: str(value) for key, value in DEFAULT_CONFIG.items()}))
        if config_file:
            layers.append((f"file:{config_file}", await self.load_from_file(config_file)))
        if use_store and self.config_store:
            try:
                layers.append(("store", await self.load_from_store()))
            except ValueError as e:
                logger.warning(f"略過儲存檔配置: {e}")
        if use_environment:
            layers.append(("environment", await self.load_from_environment()))

        merged: Dict[str, str] = {}
        for _, values in layers:
            merged.update(values)

        self._config_sources = [name for name, _ in layers]
        self._cached_config = await self.validate_config(merged)

        logger.debug(f"配置載入完成，來源: {', '.join(self._config_sources)}")
        return dict(self._cached_config)

    async def load_from_file(self, config_file: Path) -> Dict[str, str]:
        """
        讀取配置檔案.

        ``.json`` files hold a flat object of dotted keys; lists and booleans
        are flattened. Any other file is read as ``KEY=VALUE`` lines where
        ``KEY`` is either a dotted key or an environment style name with or
        without the ``TECHBLOG_`` prefix.
        """
        config_file = Path(config_file)
        if not config_file.exists():
            logger.warning(f"配置檔案不存在: {config_file}")
            return {}

        try:
            text = config_file.read_text(encoding="utf-8")
            if config_file.suffix.lower() == ".json":
                config = {key: _stringify(value) for key, value in json.loads(text).items()}
            else:
                config = self._parse_env_text(text, config_file)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"載入配置檔案失敗 ({config_file}): {e}")
            raise

        logger.debug(f"從 {config_file} 載入 {len(config)} 項配置")
        return config

    def _parse_env_text(self, text: str, source: Path) -> Dict[str, str]:
        config = {}
        for line_num, line in enumerate(text.splitlines(), 1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                logger.warning(f"無效的配置格式 ({source}:{line_num}): {line}")
                continue

            key, value = (part.strip() for part in line.split("=", 1))
            config_key = key if "." in key else self._env_to_config_key(key)
            config[config_key] = _unquote(value)
        return config

    async def load_from_environment(self) -> Dict[str, str]:
        """讀取 TECHBLOG_* 環境變數（儲存檔路徑變數除外）."""
        config = {
            self._env_to_config_key(name): value
            for name, value in os.environ.items()
            if name.startswith(self.env_prefix) and name != STORE_PATH_ENV
        }
        logger.debug(f"從環境變數載入 {len(config)} 項配置")
        return config

    async def load_from_store(self) -> Dict[str, str]:
        if not self.config_store:
            return {}
        return await self.config_store.get_all_configs()

    def _env_to_config_key(self, env_key: str) -> str:
        """
        轉換環境變數名稱為配置鍵.

        The first underscore separates the section: ``TECHBLOG_LINT_ALLOWED_KEYS``
        becomes ``lint.allowed_keys``.
        """
        name = env_key[len(self.env_prefix):] if env_key.startswith(self.env_prefix) else env_key
        section, _, rest = name.lower().partition("_")
        section = SECTION_ALIASES.get(section, section)
        return f"{section}.{rest}" if rest else section

    def _config_to_env_key(self, config_key: str) -> str:
        return self.env_prefix + config_key.upper().replace(".", "_")

    async def validate_config(self, config: Dict[str, str]) -> Dict[str, str]:
        """驗證所有配置值，收集全部錯誤後一次拋出."""
        errors = []
        for key, value in config.items():
            try:
                validate_config_value(key, value)
            except ValueError as e:
                errors.append(f"  {key}: {e}")

        if errors:
            message = "配置驗證失敗:\n" + "\n".join(errors)
            logger.error(message)
            raise ValueError(message)

        return dict(config)

    async def get_config_value(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """取得單一配置值，尚未載入時查詢儲存檔."""
        if self._cached_config is not None:
            return self._cached_config.get(key, default)
        if self.config_store:
            return await self.config_store.get_config(key, default)
        return default

    def get_list(self, key: str) -> List[str]:
        config = self._cached_config or {}
        return split_list_value(config.get(key, DEFAULT_CONFIG.get(key, "")))

    def get_bool(self, key: str) -> bool:
        config = self._cached_config or {}
        return str(config.get(key, DEFAULT_CONFIG.get(key, "false"))).lower().strip() == "true"

    async def reload_config(self) -> Dict[str, str]:
        logger.info("重新載入配置")
        self._cached_config = None
        return await self.load_config()

    def get_config_sources(self) -> List[str]:
        return list(self._config_sources)

    def get_cached_config(self) -> Optional[Dict[str, str]]:
        return dict(self._cached_config) if self._cached_config is not None else None

    async def export_config_to_file(self, output_file: Path, format: str = "env") -> bool:
        """
        匯出目前配置.

        Args:
            output_file: 輸出檔案路徑
            format: ``env`` (TECHBLOG_* lines, loadable with --config-file) 或 ``json``

        Returns:
            bool: 尚未載入配置時回傳 False
        """
        if self._cached_config is None:
            logger.warning("無快取配置可匯出")
            return False

        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        if format.lower() == "json":
            text = json.dumps(self._cached_config, indent=2, ensure_ascii=False) + "\n"
        else:
            lines = ["# techblog 配置檔案", ""]
            lines += [f"{self._config_to_env_key(k)}={v}" for k, v in sorted(self._cached_config.items())]
            text = "\n".join(lines) + "\n"

        output_file.write_text(text, encoding="utf-8")
        logger.info(f"配置已匯出到: {output_file}")
        return True
