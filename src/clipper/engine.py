"""Main clipper engine combining page capture, template matching and note generation"""

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from src.config import Settings, get_settings
from src.page import PageFetcher, PageSnapshot
from src.templating.renderer import TemplateRenderer
from src.utils.mixins import LoggerMixin

from .base import ClipResult
from .generator import NoteGenerator
from .models import ClipTemplate, default_template
from .triggers import find_matching_template
from .uri import build_obsidian_uri


class ClipperEngine(LoggerMixin):
    """統合クリッパーエンジン - ページ取得からノート生成まで"""

    def __init__(
        self,
        templates: Iterable[ClipTemplate] = (),
        settings: Settings | None = None,
        renderer: TemplateRenderer | None = None,
        fetcher: PageFetcher | None = None,
    ):
        self.settings = settings or get_settings()
        self.templates = list(templates)
        self.fetcher = fetcher or PageFetcher(self.settings)
        self.generator = NoteGenerator(renderer)

    def load_templates(self, paths: Iterable[Path]) -> list[ClipTemplate]:
        """テンプレートファイルを読み込んで登録"""
        loaded = [ClipTemplate.from_file(path) for path in paths]
        self.templates.extend(loaded)
        self.logger.info(
            "Templates loaded",
            count=len(loaded),
            names=[template.name for template in loaded],
        )
        return loaded

    def select_template(self, snapshot: PageSnapshot) -> ClipTemplate:
        """
        ページに使うテンプレートを選択

        トリガーが一致するテンプレート、なければ最初のテンプレート、
        テンプレートが無ければ既定テンプレートを返す。
        """
        matched = find_matching_template(
            snapshot.url, self.templates, snapshot.schema_data
        )
        if matched is not None:
            return matched
        if self.templates:
            return self.templates[0]
        return default_template()

    async def clip(
        self,
        url: str,
        template: ClipTemplate | None = None,
        extra: dict[str, Any] | None = None,
    ) -> ClipResult | None:
        """URL を取得してノートを生成（取得失敗時は None）"""
        snapshot = await self.fetcher.fetch(url)
        if snapshot is None:
            self.logger.warning("Could not clip page", url=url)
            return None
        return await self.clip_snapshot(snapshot, template, extra)

    async def clip_snapshot(
        self,
        snapshot: PageSnapshot,
        template: ClipTemplate | None = None,
        extra: dict[str, Any] | None = None,
    ) -> ClipResult:
        """取得済みページからノートを生成"""
        template = template or self.select_template(snapshot)
        ctx = snapshot.render_context(
            extra, selector_timeout=self.settings.selector_timeout_seconds
        )
        note = await self.generator.generate(template, ctx)
        uri = build_obsidian_uri(
            note,
            template.behavior,
            template.vault or self.settings.obsidian_vault or None,
            self.settings.silent_open,
        )

        self.logger.info(
            "Page clipped",
            url=snapshot.url,
            template=template.name,
            file=note.file_path,
        )
        return ClipResult(note=note, template_name=template.name, uri=uri)
