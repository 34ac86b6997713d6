"""
Clip template data models
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = "0.1.0"


class NoteBehavior(Enum):
    """クリップしたノートの書き込み方法"""

    CREATE = "create"
    APPEND_SPECIFIC = "append-specific"
    APPEND_DAILY = "append-daily"
    PREPEND_SPECIFIC = "prepend-specific"
    PREPEND_DAILY = "prepend-daily"
    OVERWRITE = "overwrite"

    @property
    def is_daily(self) -> bool:
        return self in (NoteBehavior.APPEND_DAILY, NoteBehavior.PREPEND_DAILY)

    @property
    def is_append(self) -> bool:
        return self in (NoteBehavior.APPEND_SPECIFIC, NoteBehavior.APPEND_DAILY)

    @property
    def is_prepend(self) -> bool:
        return self in (NoteBehavior.PREPEND_SPECIFIC, NoteBehavior.PREPEND_DAILY)


class PropertyType(Enum):
    """Obsidian のプロパティ型"""

    TEXT = "text"
    MULTITEXT = "multitext"
    NUMBER = "number"
    CHECKBOX = "checkbox"
    DATE = "date"
    DATETIME = "datetime"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Property(_CamelModel):
    """フロントマターの 1 プロパティ（値はテンプレート）"""

    name: str
    value: str = ""
    type: PropertyType = PropertyType.TEXT

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """プロパティ名の検証"""
        v = v.strip()
        if not v:
            raise ValueError("Property name must not be empty")
        return v


class ClipTemplate(_CamelModel):
    """クリップテンプレート

    Field names serialize in camelCase, matching exported ``*-clipper.json``
    template files.
    """

    name: str = "Default"
    behavior: NoteBehavior = NoteBehavior.CREATE
    note_name_format: str = "{{title}}"
    path: str = "Clippings"
    note_content_format: str = "{{content}}"
    properties: list[Property] = Field(default_factory=list)
    triggers: list[str] = Field(default_factory=list)
    vault: str | None = None
    schema_version: str = SCHEMA_VERSION

    @field_validator("triggers")
    @classmethod
    def validate_triggers(cls, v: list[str]) -> list[str]:
        """空のトリガーを除去"""
        return [trigger.strip() for trigger in v if trigger and trigger.strip()]

    @classmethod
    def from_file(cls, path: Path) -> "ClipTemplate":
        """JSON テンプレートファイルを読み込む"""
        return cls.model_validate_json(path.read_text(encoding="utf-8"))

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2, exclude_none=True)

    def templates(self) -> dict[str, str]:
        """Every template string of this clip template, by location."""
        sources = {
            "noteNameFormat": self.note_name_format,
            "noteContentFormat": self.note_content_format,
        }
        for prop in self.properties:
            sources[f"properties.{prop.name}"] = prop.value
        return sources


def default_template() -> ClipTemplate:
    """The template used when none is given"""
    return ClipTemplate(
        properties=[
            Property(name="title", value="{{title}}"),
            Property(name="source", value="{{url}}"),
            Property(name="author", value="{{author|wikilink}}"),
            Property(name="published", value="{{published}}", type=PropertyType.DATE),
            Property(name="created", value="{{date}}", type=PropertyType.DATE),
            Property(name="description", value="{{description}}"),
            Property(name="tags", value="clippings", type=PropertyType.MULTITEXT),
        ]
    )
