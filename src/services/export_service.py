"""Export service implementation.

This module writes the article index to JSON, YAML or CSV files.
"""
import csv
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Union

import yaml

from ..models.article import Article
from ..models.config import EXPORT_FORMATS

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["Slug", "Title", "Date", "Tags", "Summary", "Reading Time", "Languages", "Path"]


def build_index(articles: Iterable[Article], root: Union[str, Path, None] = None) -> dict[str, Any]:
    """建立文章索引資料."""
    entries = []
    for article in articles:
        entry = article.to_dict()
        if root is not None:
            try:
                entry["path"] = Path(article.path).relative_to(root).as_posix()
            except ValueError:
                entry["path"] = Path(article.path).as_posix()
        entries.append(entry)

    return {
        "generated_at": datetime.now().isoformat(timespec="seconds"),
        "total": len(entries),
        "articles": entries,
    }


def write_index(
    articles: Iterable[Article],
    output_file: Union[str, Path],
    format: str = "json",
    root: Union[str, Path, None] = None,
) -> Path:
    """
    匯出文章索引到檔案.

    Args:
        articles: 要匯出的文章（依給定順序）
        output_file: 輸出檔案路徑
        format: 輸出格式 [json|yaml|csv]
        root: 路徑欄位以此目錄為基準輸出相對路徑

    Returns:
        Path: 輸出檔案路徑
    """
    format = format.lower()
    if format not in EXPORT_FORMATS:
        raise ValueError(f"不支援的匯出格式: {format}")

    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    index = build_index(articles, root=root)

    if format == "json":
        _export_to_json(index, output_file)
    elif format == "yaml":
        _export_to_yaml(index, output_file)
    else:
        _export_to_csv(index, output_file)

    logger.info(f"索引已匯出 ({format}): {output_file}，共 {index['total']} 篇")
    return output_file


def _export_to_json(index: dict[str, Any], output_file: Path) -> None:
    """Export index to JSON file."""
    with open(output_file, "w", encoding="utf-8") as f:
        json.dump(index, f, ensure_ascii=False, indent=2)


def _export_to_yaml(index: dict[str, Any], output_file: Path) -> None:
    """Export index to YAML file."""
    with open(output_file, "w", encoding="utf-8") as f:
        yaml.safe_dump(index, f, allow_unicode=True, sort_keys=False, default_flow_style=False)


def _export_to_csv(index: dict[str, Any], output_file: Path) -> None:
    """Export index to CSV file."""
    with open(output_file, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_COLUMNS)

        for entry in index["articles"]:
            writer.writerow([
                entry["slug"],
                entry["title"],
                entry["date"] or "",
                ";".join(entry["tags"]),
                entry["summary"],
                entry["reading_time"],
                ";".join(entry["languages"]),
                entry["path"],
            ])
