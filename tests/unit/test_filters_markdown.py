"""Test Markdown filters"""

import json

import pytest

from src.templating import lookup
from src.templating.filters import markdown


class TestLinks:
    """Test wikilink, link and image"""

    def test_wikilink_string(self) -> None:
        assert markdown.wikilink("Page", None) == "[[Page]]"
        assert markdown.wikilink("Page", "alias") == "[[Page|alias]]"

    def test_wikilink_array(self) -> None:
        assert markdown.wikilink('["a","b"]', None) == '["[[a]]","[[b]]"]'

    def test_wikilink_object(self) -> None:
        assert markdown.wikilink('{"k":"v"}', None) == '["[[k|v]]"]'

    def test_wikilink_empty(self) -> None:
        assert markdown.wikilink("", None) == ""

    def test_link(self) -> None:
        assert markdown.link("https://x.com/a b", None) == "[link](https://x.com/a%20b)"
        assert markdown.link("https://x.com", "Home") == "[Home](https://x.com)"

    def test_link_array(self) -> None:
        assert markdown.link('["https://a","https://b"]', None) == (
            "[link](https://a)\n[link](https://b)"
        )

    def test_image(self) -> None:
        assert markdown.image("https://img.png", "Alt") == "![Alt](https://img.png)"
        assert markdown.image("https://img.png", None) == "![](https://img.png)"


class TestBlocks:
    """Test blockquote, callout, list, table and footnote"""

    def test_blockquote(self) -> None:
        assert markdown.blockquote("a\nb") == "> a\n> b"

    def test_callout(self) -> None:
        assert markdown.callout("Body", ["warning", "Careful", "true"]) == (
            "> [!warning]- Careful\n> Body"
        )
        assert markdown.callout("Body", []) == "> [!info]\n> Body"

    def test_callout_through_registry(self) -> None:
        result = lookup("callout")("Body", '("tip", "Hint, really")')
        assert result == "> [!tip] Hint, really\n> Body"

    @pytest.mark.parametrize(
        "style, expected",
        [
            (None, "- a\n- b"),
            ("numbered", "1. a\n2. b"),
            ("task", "- [ ] a\n- [ ] b"),
            ("numbered-task", "1. [ ] a\n2. [ ] b"),
        ],
    )
    def test_list_styles(self, style, expected) -> None:
        assert markdown.list_('["a","b"]', style) == expected

    def test_nested_list_is_indented(self) -> None:
        assert markdown.list_('["a",["b","c"],"d"]', None) == "- a\n\t- b\n\t- c\n- d"

    def test_list_of_plain_text(self) -> None:
        assert markdown.list_("single", None) == "- single"

    def test_table_from_objects(self) -> None:
        value = '[{"a":1,"b":2},{"a":3}]'
        assert markdown.table(value, []) == "| a | b |\n| - | - |\n| 1 | 2 |\n| 3 |  |"

    def test_table_from_object(self) -> None:
        assert markdown.table('{"k":"v","x":"y"}', []) == (
            "| k | v |\n| - | - |\n| x | y |"
        )

    def test_table_flat_array_with_headers(self) -> None:
        assert markdown.table('["a","b","c"]', ["H1", "H2"]) == (
            "| H1 | H2 |\n| - | - |\n| a | b |\n| c |  |"
        )

    def test_table_flat_array_without_headers(self) -> None:
        assert markdown.table('["a","b"]', []) == "| Value |\n| - |\n| a |\n| b |"

    def test_table_escapes_pipes(self) -> None:
        assert markdown.table('[["a|b"]]', []) == "|  |\n| - |\n| a\\|b |"

    def test_table_non_json_returns_input(self) -> None:
        assert markdown.table("plain", []) == "plain"

    def test_footnote(self) -> None:
        assert markdown.footnote('["a","b"]') == "[^1]: a\n\n[^2]: b"
        assert markdown.footnote('{"firstNote":"x"}') == "[^first-note]: x"


class TestStripMarkdown:
    """Test strip_md"""

    def test_formatting_removed(self) -> None:
        assert markdown.strip_md("# Title\n\n**bold** and [link](http://x)") == (
            "Title\n\nbold and link"
        )

    def test_wikilinks_keep_alias(self) -> None:
        assert markdown.strip_md("[[Page|Alias]] and [[Other]]") == "Alias and Other"


class TestFragmentLink:
    """Test fragment_link and text fragments"""

    URL = "https://example.com/post"

    def test_links_each_item(self) -> None:
        result = markdown.fragment_link('["Hello world"]', self.URL)
        assert json.loads(result) == [
            "Hello world [link](https://example.com/post#:~:text=Hello%20world)"
        ]

    def test_custom_label(self) -> None:
        result = lookup("fragment_link")("Some text", f'("Source":{self.URL})')
        assert json.loads(result) == [
            "Some text [Source](https://example.com/post#:~:text=Some%20text)"
        ]

    def test_highlight_objects_keep_their_fields(self) -> None:
        value = '[{"text":"Hi there","timestamp":"t1"}]'
        result = json.loads(markdown.fragment_link(value, self.URL))
        assert result == [
            {
                "text": "Hi there [link](https://example.com/post#:~:text=Hi%20there)",
                "timestamp": "t1",
            }
        ]

    def test_without_url(self) -> None:
        assert markdown.fragment_link("x", None) == '["x"]'

    def test_short_text_fragment(self) -> None:
        assert markdown.text_fragment("**Bold** claim, really?") == (
            "#:~:text=Bold%20claim%2C%20really%3F"
        )

    def test_long_text_fragment_uses_start_and_end(self) -> None:
        text = "one two three four five six seven eight nine ten eleven twelve"
        assert markdown.text_fragment(text) == (
            "#:~:text=one%20two%20three%20four%20five,"
            "eight%20nine%20ten%20eleven%20twelve"
        )
