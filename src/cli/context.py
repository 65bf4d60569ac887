"""Shared CLI state and helpers.

Global options are stored by the main callback and read by every command.
"""
import logging
from pathlib import Path
from typing import Any, Optional

from ..lib.config_loader import ConfigLoader
from ..lib.config_store import ConfigStore
from ..models.config import ConfigKey

logger = logging.getLogger(__name__)

# Global context storage
global_config: dict[str, Any] = {
    "config_file": None,
    "log_level": None,
    "content_dir": None,
}

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(log_level: str = "INFO", file_path: Optional[str] = None, fmt: str = LOG_FORMAT) -> None:
    """設定日誌級別與格式，指定檔案路徑時同時寫入檔案."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=fmt)

    root = logging.getLogger()
    root.setLevel(level)

    # basicConfig 只在第一次呼叫時生效，之後的格式變更套用到既有的主控台 handler
    for handler in root.handlers:
        if type(handler) is logging.StreamHandler:
            handler.setFormatter(logging.Formatter(fmt))

    if file_path:
        target = Path(file_path).resolve()
        for handler in root.handlers:
            if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == target:
                return

        target.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(target, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(fmt))
        root.addHandler(file_handler)


async def load_cli_config() -> dict[str, str]:
    """Load configuration honouring the global CLI options.

    ``--log-level`` wins over ``logging.level``; the configured format and
    file path are applied once the configuration is known.
    """
    config_loader = ConfigLoader(config_store=ConfigStore())
    config = await config_loader.load_config(
        config_file=global_config["config_file"], use_defaults=True, use_environment=True
    )

    if global_config["content_dir"]:
        config[ConfigKey.CONTENT_DIR] = str(global_config["content_dir"])

    setup_logging(
        global_config["log_level"] or config.get(ConfigKey.LOGGING_LEVEL, "INFO"),
        config.get(ConfigKey.LOGGING_FILE_PATH) or None,
        config.get(ConfigKey.LOGGING_FORMAT) or LOG_FORMAT,
    )

    return config
