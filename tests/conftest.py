"""
共通フィクスチャと収集設定。

- テスト向けの環境変数を毎テスト自動設定（autouse）
- 設定キャッシュを毎テストでリセット
- ルートを `sys.path` に追加して `import src.*` を解決
"""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# プロジェクトルート（このファイルの親の親）をパスに追加
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

FIXTURES = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch):
    """テスト用の環境変数を毎テストで設定。

    各テスト終了時に `monkeypatch` により自動で復元されます。
    ログファイルは書き出しません。
    """
    from src.config import clear_settings_cache

    env: dict[str, str] = {
        "ENVIRONMENT": "testing",
        "LOG_LEVEL": "DEBUG",
        "OBSIDIAN_VAULT": "",
        "SILENT_OPEN": "false",
    }
    for k, v in env.items():
        monkeypatch.setenv(k, v)
    monkeypatch.delenv("LOG_DIR", raising=False)

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def article_html() -> str:
    """schema.org と meta タグを含む記事ページ"""
    return (FIXTURES / "article.html").read_text(encoding="utf-8")


@pytest.fixture
def snapshot(article_html: str):
    """固定時刻で取得した記事ページのスナップショット"""
    from src.page import PageSnapshot

    captured_at = datetime(2024, 12, 1, 9, 30, 0, tzinfo=timezone(timedelta(hours=9)))
    return PageSnapshot(
        "https://www.example.com/posts/hello-world",
        article_html,
        captured_at=captured_at,
    )


@pytest.fixture
def context():
    """Build a RenderContext from plain values."""
    from src.templating import RenderContext

    def build(values=None, meta=None, resolve_selector=None, selector_timeout=None):
        return RenderContext(
            values=values or {},
            meta=meta or {},
            resolve_selector=resolve_selector,
            selector_timeout=selector_timeout,
        )

    return build
