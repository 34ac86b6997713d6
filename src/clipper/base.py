"""Clipper base classes"""

from dataclasses import dataclass, field


@dataclass
class GeneratedNote:
    """生成されたノートを表すクラス"""

    filename: str
    path: str
    content: str
    frontmatter: str = ""
    properties: dict[str, str] = field(default_factory=dict)

    @property
    def file_path(self) -> str:
        """Vault-relative path of the note file, with the ``.md`` suffix."""
        folder = self.path.strip("/")
        name = f"{self.filename}.md"
        return f"{folder}/{name}" if folder else name

    @property
    def text(self) -> str:
        """Frontmatter followed by the body, as written to disk."""
        return f"{self.frontmatter}{self.content}"


@dataclass
class ClipResult:
    """1 回のクリップの結果"""

    note: GeneratedNote
    template_name: str
    uri: str
