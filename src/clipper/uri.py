"""obsidian:// URI builder"""

from urllib.parse import quote

from .base import GeneratedNote
from .models import NoteBehavior

# characters encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_uri_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def build_obsidian_uri(
    note: GeneratedNote,
    behavior: NoteBehavior = NoteBehavior.CREATE,
    vault: str | None = None,
    silent: bool = False,
    *,
    clipboard: bool = False,
) -> str:
    """
    ノートを Obsidian に渡す URI を作成

    Args:
        note: 生成済みノート
        behavior: 新規作成・追記・上書きなどの書き込み方法
        vault: 保存先 Vault 名（省略時は Obsidian 側の既定）
        silent: Obsidian でノートを開かない
        clipboard: 本文を URI に含めず、クリップボードから読ませる

    Returns:
        ``obsidian://new`` または ``obsidian://daily`` URI
    """
    if behavior.is_daily:
        uri = "obsidian://daily?"
    else:
        path = note.path
        if path and not path.endswith("/"):
            path += "/"
        uri = f"obsidian://new?file={encode_uri_component(path + note.filename)}"

    if behavior.is_append:
        uri += "&append=true"
    elif behavior.is_prepend:
        uri += "&prepend=true"
    elif behavior is NoteBehavior.OVERWRITE:
        uri += "&overwrite=true"

    if vault:
        uri += f"&vault={encode_uri_component(vault)}"
    if silent:
        uri += "&silent=true"

    if clipboard:
        return uri + "&clipboard"
    return uri + f"&content={encode_uri_component(note.text)}"
