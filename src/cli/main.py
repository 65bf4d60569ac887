"""techblog CLI main entry point.

This module provides the main CLI application using Typer.
"""
from pathlib import Path
from typing import Optional

import typer

from .config_command import config
from .context import global_config, setup_logging
from .index_command import index
from .lint_command import lint
from .new_command import new
from .status_command import status
from .tags_command import tags

# Create main app
app = typer.Typer(
    name="techblog",
    help="techblog - 技術部落格文章工具：檢查前置資料與程式碼區塊、統計標籤、匯出索引、建立新文章",
    no_args_is_help=True,
)

# Add subcommands
app.add_typer(config, name="config", help="配置管理")
app.command()(lint)
app.command()(status)
app.command()(tags)
app.command()(index)
app.command()(new)


# Global options
@app.callback()
def main(
    config_file: Optional[Path] = typer.Option(None, "--config-file", help="配置檔案路徑"),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="日誌級別 [DEBUG|INFO|WARNING|ERROR]（預設使用 logging.level）"
    ),
    content_dir: Optional[Path] = typer.Option(
        None, "--content-dir", help="文章根目錄（覆寫 content.dir）"
    ),
):
    """techblog - 技術部落格文章工具."""
    setup_logging(log_level or "INFO")

    # Store global options
    global_config["config_file"] = config_file
    global_config["log_level"] = log_level
    global_config["content_dir"] = content_dir


if __name__ == "__main__":
    app()
