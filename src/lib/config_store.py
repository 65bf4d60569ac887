"""Persisted configuration store.

This module keeps configuration overrides set through ``config set`` in a
JSON file.
"""
import asyncio
import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from ..models.config import CONFIG_DESCRIPTIONS, DEFAULT_CONFIG, Config, is_known_key, validate_config_value

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = ".techblog.json"
STORE_PATH_ENV = "TECHBLOG_CONFIG_STORE"


def default_store_path() -> Path:
    """Store path from the environment, else the working directory default."""
    return Path(os.environ.get(STORE_PATH_ENV) or DEFAULT_STORE_PATH)


class ConfigStore:
    """配置檔案儲存類別."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else default_store_path()

    async def _read(self) -> dict[str, dict]:
        if not self.path.exists():
            return {}

        text = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        if not text.strip():
            return {}

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"配置儲存檔格式錯誤 ({self.path}): {e}")
            raise ValueError(f"配置儲存檔格式錯誤: {self.path}") from e

        if not isinstance(data, dict):
            raise ValueError(f"配置儲存檔格式錯誤: {self.path}")
        return data

    async def _write(self, data: dict[str, dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        text = json.dumps(data, indent=2, ensure_ascii=False, sort_keys=True)
        await asyncio.to_thread(self.path.write_text, text + "\n", encoding="utf-8")

    async def get_config(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        取得配置值.

        Args:
            key: 配置鍵名
            default: 預設值

        Returns:
            Optional[str]: 配置值
        """
        data = await self._read()
        if key in data:
            return data[key]["value"]

        if default is not None:
            return default

        return str(DEFAULT_CONFIG[key]) if key in DEFAULT_CONFIG else None

    async def set_config(self, key: str, value: str, description: Optional[str] = None) -> bool:
        """
        設定配置值.

        Raises:
            ValueError: 未知的鍵名或配置值驗證失敗
        """
        if not is_known_key(key):
            raise ValueError(f"未知的配置鍵名: {key}")

        try:
            validate_config_value(key, value)
        except ValueError as e:
            logger.error(f"配置值驗證失敗: {key} = {value}, 錯誤: {e}")
            raise

        data = await self._read()
        if key in data:
            config = Config.from_dict(data[key])
            config.set_value(value)
            if description:
                config.description = description
        else:
            now = datetime.now()
            config = Config(
                key=key,
                value=str(value),
                description=description or CONFIG_DESCRIPTIONS.get(key),
                created_at=now,
                updated_at=now,
            )
        data[key] = config.to_dict()
        await self._write(data)

        logger.info(f"設定配置: {key} = {value}")
        return True

    async def delete_config(self, key: str) -> bool:
        """刪除配置值."""
        data = await self._read()
        if key not in data:
            logger.warning(f"未找到要刪除的配置: {key}")
            return False

        del data[key]
        await self._write(data)
        logger.info(f"刪除配置: {key}")
        return True

    async def get_all_configs(self, include_defaults: bool = False) -> dict[str, str]:
        """
        取得所有已儲存的配置值.

        Args:
            include_defaults: 是否合併系統預設值
        """
        data = await self._read()
        configs = {key: entry["value"] for key, entry in sorted(data.items())}

        if include_defaults:
            for key, default_value in DEFAULT_CONFIG.items():
                configs.setdefault(key, str(default_value))

        return configs

    async def get_config_with_metadata(self, key: str) -> Optional[dict]:
        """取得配置值及其元資料."""
        data = await self._read()
        entry = data.get(key)
        return Config.from_dict(entry).to_dict() if entry else None

    async def reset_config(self, key: str) -> bool:
        """重置單一配置為預設值."""
        if not is_known_key(key):
            raise ValueError(f"未知的配置鍵名: {key}")

        data = await self._read()
        data.pop(key, None)
        await self._write(data)
        logger.info(f"重置配置: {key}")
        return True

    async def reset_all_config(self) -> bool:
        """重置所有配置為預設值."""
        if self.path.exists():
            await asyncio.to_thread(self.path.unlink)
        logger.info("重置所有配置")
        return True
