"""Shared test fixtures."""
import os
from pathlib import Path

import pytest

VALID_ARTICLE = """---
title: Spring MVC 參數綁定
date: 2021-03-14
tags:
  - Spring
  - Java
summary: 自訂 HandlerMethodArgumentResolver。
---

Spring MVC 提供了 `HandlerMethodArgumentResolver` 擴充點。

## 實作

```java
public class CurrentUserArgumentResolver implements HandlerMethodArgumentResolver {
}
```
"""

ARTICLE_WITHOUT_SUMMARY = """---
title: Docker 與 Firewalld
date: 2022-01-08
tags: [Docker, Linux]
---

Docker 會直接寫入 iptables 規則。

```bash
sudo firewall-cmd --reload
```
"""

BROKEN_ARTICLE = """---
title: ""
tags:
  - Java
  - ""
---

```java
public class Unclosed {
"""


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path_factory, monkeypatch):
    """Keep every test away from real config stores and TECHBLOG_* variables."""
    for key in list(os.environ):
        if key.startswith("TECHBLOG_"):
            monkeypatch.delenv(key)

    store_dir = tmp_path_factory.mktemp("store")
    monkeypatch.setenv("TECHBLOG_CONFIG_STORE", str(store_dir / "store.json"))


@pytest.fixture
def content_dir(tmp_path) -> Path:
    """Content directory with two valid articles and one broken article."""
    root = tmp_path / "content"
    (root / "blog").mkdir(parents=True)
    (root / "blog" / "spring-mvc.mdx").write_text(VALID_ARTICLE, encoding="utf-8")
    (root / "blog" / "docker-firewalld.md").write_text(ARTICLE_WITHOUT_SUMMARY, encoding="utf-8")
    (root / "drafts").mkdir()
    (root / "drafts" / "broken.mdx").write_text(BROKEN_ARTICLE, encoding="utf-8")
    (root / "blog" / "notes.txt").write_text("not an article", encoding="utf-8")
    return root


@pytest.fixture
def valid_content_dir(tmp_path) -> Path:
    """Content directory whose articles all pass lint."""
    root = tmp_path / "valid"
    root.mkdir()
    (root / "spring-mvc.mdx").write_text(VALID_ARTICLE, encoding="utf-8")
    (root / "docker-firewalld.md").write_text(ARTICLE_WITHOUT_SUMMARY, encoding="utf-8")
    return root
