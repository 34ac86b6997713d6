"""Test HTML filters"""

import json

from src.templating import lookup
from src.templating.filters import html


class TestStripTags:
    """Test strip_tags"""

    def test_removes_all_tags(self) -> None:
        assert html.strip_tags("<p>Hello <b>world</b></p>", None) == "Hello world"

    def test_decodes_entities(self) -> None:
        assert html.strip_tags("<p>a &amp; b&nbsp;c</p>", None) == "a & b c"

    def test_keeps_listed_tags(self) -> None:
        value = "<p>Keep <b>bold</b> <i>it</i></p>"
        assert html.strip_tags(value, "b") == "Keep <b>bold</b> it"

    def test_collapses_blank_lines(self) -> None:
        assert html.strip_tags("<p>a</p>\n\n\n\n<p>b</p>", None) == "a\n\nb"


class TestElementFilters:
    """Test remove_tags, strip_attr and remove_html"""

    def test_remove_tags_keeps_content(self) -> None:
        value = '<p>a <span class="x">b</span></p>'
        assert html.remove_tags(value, "span") == "<p>a b</p>"

    def test_remove_tags_without_param(self) -> None:
        assert html.remove_tags("<p>x</p>", None) == "<p>x</p>"

    def test_strip_attr(self) -> None:
        value = '<a href="u" class="c" id="i">t</a>'
        assert html.strip_attr(value, None) == "<a>t</a>"
        assert html.strip_attr(value, "href") == '<a href="u">t</a>'

    def test_strip_attr_keeps_several(self) -> None:
        value = '<img src="s.png" alt="A" width="10">'
        assert lookup("strip_attr")(value, '("src, alt")') == '<img src="s.png" alt="A">'

    def test_remove_html_by_class_and_tag(self) -> None:
        value = '<div><p class="ad banner">x</p><p id="keep">y</p><aside>z</aside></div>'
        result = lookup("remove_html")(value, '(".ad, aside")')
        assert result == '<div><p id="keep">y</p></div>'

    def test_remove_html_by_id(self) -> None:
        value = '<div><p id="gone">x</p><p>y</p></div>'
        assert html.remove_html(value, "#gone") == "<div><p>y</p></div>"

    def test_remove_html_nested_matches(self) -> None:
        value = '<div class="ad"><div class="ad-inner">x</div></div><p>y</p>'
        assert html.remove_html(value, ".ad") == "<p>y</p>"


class TestAttributeAndTagRewrites:
    """Test remove_attr and replace_tags"""

    def test_remove_attr(self) -> None:
        value = '<p class="a" style="b" id="c">x <span CLASS="d">y</span></p>'
        result = lookup("remove_attr")(value, '("class, style")')
        assert result == '<p id="c">x <span>y</span></p>'

    def test_remove_attr_without_names(self) -> None:
        assert html.remove_attr('<p class="a">x</p>', None) == '<p class="a">x</p>'

    def test_replace_tags(self) -> None:
        value = "<h1>T</h1><b>x</b>"
        result = lookup("replace_tags")(value, '("h1":"h2","b":"strong")')
        assert result == "<h2>T</h2><strong>x</strong>"

    def test_replace_tags_with_empty_target_unwraps(self) -> None:
        value = '<p>a <span class="x">b</span></p>'
        assert html.replace_tags(value, '"span":""') == "<p>a b</p>"

    def test_replace_tags_without_pairs(self) -> None:
        assert html.replace_tags("<b>x</b>", None) == "<b>x</b>"


class TestHtmlToJson:
    """Test html_to_json"""

    def test_single_element(self) -> None:
        value = '<p class="lead big">Hi <b>there</b></p>'
        result = json.loads(html.html_to_json(value))
        assert result == {
            "type": "element",
            "tag": "p",
            "attributes": {"class": "lead big"},
            "children": [
                {"type": "text", "content": "Hi"},
                {
                    "type": "element",
                    "tag": "b",
                    "children": [{"type": "text", "content": "there"}],
                },
            ],
        }

    def test_several_top_level_nodes(self) -> None:
        result = json.loads(html.html_to_json("<p>a</p>\n<p>b</p><!-- note -->"))
        assert [node["tag"] for node in result] == ["p", "p"]

    def test_empty_input(self) -> None:
        assert html.html_to_json("") == "[]"


class TestMarkdown:
    """Test HTML to Markdown conversion"""

    def test_blocks_inline_and_lists(self) -> None:
        value = (
            "<h2>Title</h2>"
            '<p>Some <strong>bold</strong> and <a href="/x">link</a>.</p>'
            "<ul><li>one</li><li>two<ul><li>nested</li></ul></li></ul>"
        )
        result = lookup("markdown")(value, '"https://example.com/post"')
        assert result == (
            "## Title\n\n"
            "Some **bold** and [link](https://example.com/x).\n\n"
            "- one\n- two\n\t- nested"
        )

    def test_ordered_list(self) -> None:
        assert html.markdown("<ol><li>a</li><li>b</li></ol>", None) == "1. a\n2. b"

    def test_code_block_keeps_language_and_whitespace(self) -> None:
        value = '<pre><code class="language-py">if x:\n    y = 1\n</code></pre>'
        assert html.markdown(value, None) == "```py\nif x:\n    y = 1\n```"

    def test_table(self) -> None:
        value = (
            "<table><tr><th>A</th><th>B</th></tr>"
            "<tr><td>1</td><td>2</td></tr></table>"
        )
        assert html.markdown(value, None) == "| A | B |\n| --- | --- |\n| 1 | 2 |"

    def test_blockquote_image_and_dropped_script(self) -> None:
        value = (
            "<blockquote><p>Quote</p></blockquote>"
            '<p><img src="a.png" alt="A"></p>'
            "<script>track()</script>"
        )
        assert html.markdown(value, None) == "> Quote\n\n![A](a.png)"
