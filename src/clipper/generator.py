"""Note generator using clip templates"""

from collections.abc import Iterable

from src.templating.filters.text import safe_name
from src.templating.renderer import TemplateRenderer
from src.templating.resolver import RenderContext
from src.templating.validator import ValidationReport, validate_template
from src.utils.mixins import LoggerMixin

from .base import GeneratedNote
from .frontmatter import generate_frontmatter
from .models import ClipTemplate


class NoteGenerator(LoggerMixin):
    """ノート生成エンジン"""

    def __init__(self, renderer: TemplateRenderer | None = None):
        self.renderer = renderer or TemplateRenderer()

    async def generate(self, template: ClipTemplate, ctx: RenderContext) -> GeneratedNote:
        """
        テンプレートとページからノートを生成

        Args:
            template: クリップテンプレート
            ctx: ページのレンダリングコンテキスト

        Returns:
            ファイル名・保存先・フロントマター・本文を持つノート
        """
        rendered_name = await self.renderer.render_template(
            template.note_name_format, ctx
        )
        filename = safe_name(rendered_name, None)

        rendered_properties: dict[str, str] = {}
        typed_properties = []
        for prop in template.properties:
            value = await self.renderer.render_template(prop.value, ctx)
            rendered_properties[prop.name] = value
            typed_properties.append((prop.name, value, prop.type))

        content = await self.renderer.render_template(template.note_content_format, ctx)
        frontmatter = generate_frontmatter(typed_properties)

        self.logger.info(
            "Note generated",
            template=template.name,
            filename=filename,
            property_count=len(rendered_properties),
            content_length=len(content),
        )
        return GeneratedNote(
            filename=filename,
            path=template.path,
            content=content,
            frontmatter=frontmatter,
            properties=rendered_properties,
        )

    def validate(
        self, template: ClipTemplate, known: Iterable[str] | None = None
    ) -> dict[str, ValidationReport]:
        """テンプレートの各文字列を検証（問題のあるものだけを返す）"""
        reports: dict[str, ValidationReport] = {}
        for location, source in template.templates().items():
            report = validate_template(source, known, self.renderer.registry)
            if not report.ok:
                reports[location] = report
        if reports:
            self.logger.warning(
                "Template has validation issues",
                template=template.name,
                locations=sorted(reports),
            )
        return reports
