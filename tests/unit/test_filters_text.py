"""Test text filters"""

import pytest

from src.templating.filters import text


def apply(name: str, value: str, param: str | None = None) -> str:
    """Runs a filter through its registry definition, as the renderer does."""
    from src.templating import lookup

    return lookup(name)(value, param)


class TestCaseFilters:
    """Test case conversion filters"""

    def test_lower_upper_trim(self) -> None:
        assert text.lower("HeLLo") == "hello"
        assert text.upper("HeLLo") == "HELLO"
        assert text.trim("  padded \n") == "padded"

    def test_capitalize_string(self) -> None:
        assert text.capitalize("hELLO wORLD") == "Hello world"

    def test_capitalize_json(self) -> None:
        assert text.capitalize('["one","TWO"]') == '["One","Two"]'
        assert text.capitalize('{"key":"value"}') == '{"Key":"Value"}'

    def test_title(self) -> None:
        assert text.title("the quick brown fox") == "The Quick Brown Fox"

    @pytest.mark.parametrize(
        "func, expected",
        [
            (text.camel, "helloWorldAgain"),
            (text.pascal, "HelloWorldAgain"),
            (text.kebab, "hello-world-again"),
            (text.snake, "hello_world_again"),
        ],
    )
    def test_case_styles(self, func, expected) -> None:
        assert func("hello world again") == expected

    def test_kebab_and_snake_split_camel_case(self) -> None:
        assert text.kebab("someVariable name") == "some-variable-name"
        assert text.snake("someVariable-name") == "some_variable_name"

    def test_uncamel(self) -> None:
        assert text.uncamel("someHTMLParser") == "some html parser"


class TestReplace:
    """Test the replace filter"""

    def test_single_pair(self) -> None:
        assert apply("replace", "Hello world", '"world":"there"') == "Hello there"

    def test_multiple_pairs(self) -> None:
        assert apply("replace", "a-b-c", '("a":"x","c":"z")') == "x-b-z"

    def test_missing_replacement_deletes(self) -> None:
        assert apply("replace", "a-b-c", '"-b"') == "a-c"

    def test_escaped_characters(self) -> None:
        assert apply("replace", "a:b", r'"\:":"-"') == "a-b"

    def test_without_param_is_identity(self) -> None:
        assert text.replace("same", None) == "same"


class TestSafeName:
    """Test file name sanitising"""

    def test_default_removes_reserved_characters(self) -> None:
        assert text.safe_name('What? A "quote": #1 [draft]', None) == "What A quote 1 draft"

    def test_windows_reserved_names(self) -> None:
        assert text.safe_name("con", "windows") == "_con"

    def test_trailing_dots_and_spaces(self) -> None:
        assert text.safe_name("name. . ", None) == "name"

    def test_mac_keeps_question_mark(self) -> None:
        assert text.safe_name("why?/how", "mac") == "why?how"

    def test_length_is_capped(self) -> None:
        assert len(text.safe_name("x" * 300, None)) == text.MAX_FILENAME_LENGTH

    def test_empty_becomes_untitled(self) -> None:
        assert text.safe_name("???", None) == "Untitled"


class TestEscaping:
    """Test unescape and decode_uri"""

    def test_unescape(self) -> None:
        assert text.unescape(r"say \"hi\"\nbye") == 'say "hi"\nbye'

    def test_decode_uri(self) -> None:
        assert (
            text.decode_uri("%E4%BD%A0%E5%A5%BD%E4%B8%96%E7%95%8C") == "你好世界"
        )

    def test_decode_uri_plain_text(self) -> None:
        assert text.decode_uri("hello%20world") == "hello world"

    @pytest.mark.parametrize(
        "value", ["%E4%BD", "100%", "%ZZ", "%ZZ%41", "%E8%BF%99%", "a%20b%"]
    )
    def test_decode_uri_malformed_returns_input(self, value) -> None:
        assert apply("decode_uri", value) == value
