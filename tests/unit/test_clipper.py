"""Test clip templates, note generation and the clipper engine"""

import json

import pytest
from pydantic import ValidationError

from src.clipper import (
    ClipperEngine,
    ClipTemplate,
    GeneratedNote,
    NoteBehavior,
    NoteGenerator,
    Property,
    PropertyType,
    build_obsidian_uri,
    default_template,
    find_matching_template,
    generate_frontmatter,
    matches_trigger,
)
from src.clipper.frontmatter import split_multitext
from src.clipper.uri import encode_uri_component
from src.config import Settings

EXPECTED_FRONTMATTER = (
    "---\n"
    'title: "Hello World"\n'
    'source: "https://www.example.com/posts/hello-world"\n'
    'author: "[[Jane Doe]]"\n'
    "published: 2024-11-28\n"
    "created: 2024-12-01T09:30:00+09:00\n"
    'description: "A first post about templates."\n'
    "tags:\n"
    '  - "clippings"\n'
    "---\n"
)


class TestClipTemplateModel:
    """Test the template model and its JSON form"""

    def test_camel_case_fields(self) -> None:
        template = ClipTemplate.model_validate(
            {
                "name": "Recipe",
                "behavior": "append-daily",
                "noteNameFormat": "{{title}} recipe",
                "noteContentFormat": "{{content}}",
                "properties": [{"name": "tags", "value": "food", "type": "multitext"}],
                "triggers": ["", "  https://cooking.example.com  "],
                "unknownField": True,
            }
        )
        assert template.behavior is NoteBehavior.APPEND_DAILY
        assert template.note_name_format == "{{title}} recipe"
        assert template.properties[0].type is PropertyType.MULTITEXT
        assert template.triggers == ["https://cooking.example.com"]
        assert template.path == "Clippings"

    def test_empty_property_name_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Property(name="  ")

    def test_to_json_uses_aliases(self) -> None:
        data = json.loads(ClipTemplate(name="X").to_json())
        assert data["noteNameFormat"] == "{{title}}"
        assert data["schemaVersion"] == "0.1.0"
        assert "vault" not in data

    def test_from_file(self, tmp_path) -> None:
        path = tmp_path / "template.json"
        path.write_text(ClipTemplate(name="Saved", vault="Notes").to_json(), encoding="utf-8")
        loaded = ClipTemplate.from_file(path)
        assert loaded.name == "Saved"
        assert loaded.vault == "Notes"

    def test_template_locations(self) -> None:
        template = ClipTemplate(properties=[Property(name="source", value="{{url}}")])
        assert template.templates() == {
            "noteNameFormat": "{{title}}",
            "noteContentFormat": "{{content}}",
            "properties.source": "{{url}}",
        }

    def test_behavior_flags(self) -> None:
        assert NoteBehavior.PREPEND_DAILY.is_daily
        assert NoteBehavior.PREPEND_DAILY.is_prepend
        assert NoteBehavior.APPEND_SPECIFIC.is_append
        assert not NoteBehavior.CREATE.is_daily
        assert not NoteBehavior.OVERWRITE.is_append

    def test_default_template(self) -> None:
        template = default_template()
        assert template.name == "Default"
        assert [prop.name for prop in template.properties] == [
            "title",
            "source",
            "author",
            "published",
            "created",
            "description",
            "tags",
        ]


class TestFrontmatter:
    """Test YAML frontmatter generation"""

    def test_no_properties(self) -> None:
        assert generate_frontmatter([]) == ""

    def test_text_is_quoted_and_escaped(self) -> None:
        result = generate_frontmatter(
            [("quote", 'say "hi" \\ bye', PropertyType.TEXT), ("empty", " ", PropertyType.TEXT)]
        )
        assert result == '---\nquote: "say \\"hi\\" \\\\ bye"\nempty:\n---\n'

    @pytest.mark.parametrize(
        "value, expected",
        [("1,234.5 kg", "1234.5"), ("42", "42"), ("", ""), ("n/a", "")],
    )
    def test_number(self, value, expected) -> None:
        result = generate_frontmatter([("n", value, PropertyType.NUMBER)])
        line = f"n: {expected}\n" if expected else "n:\n"
        assert result == f"---\n{line}---\n"

    def test_checkbox(self) -> None:
        result = generate_frontmatter(
            [("a", "true", PropertyType.CHECKBOX), ("b", "yes", PropertyType.CHECKBOX)]
        )
        assert result == "---\na: true\nb: false\n---\n"

    def test_dates_are_unquoted(self) -> None:
        result = generate_frontmatter(
            [
                ("d", "2024-11-28", PropertyType.DATE),
                ("dt", "2024-11-28T08:00", PropertyType.DATETIME),
            ]
        )
        assert result == "---\nd: 2024-11-28\ndt: 2024-11-28T08:00\n---\n"

    def test_multitext(self) -> None:
        result = generate_frontmatter([("tags", 'a, b "c"', PropertyType.MULTITEXT)])
        assert result == '---\ntags:\n  - "a"\n  - "b \\"c\\""\n---\n'

    def test_split_multitext(self) -> None:
        assert split_multitext('["a","b, c"]') == ["a", "b, c"]
        assert split_multitext("x, [[A, B]], y") == ["x", "[[A, B]]", "y"]
        assert split_multitext(" , ") == []


class TestTriggers:
    """Test template trigger matching"""

    SCHEMA = [
        {"@type": "Recipe", "name": "Pie", "recipeCategory": ["Dessert", "Baking"]},
        {"@type": ["Article", "NewsArticle"], "headline": "News"},
    ]

    def test_url_prefix(self) -> None:
        assert matches_trigger("https://example.com/blog", "https://example.com/blog/a")
        assert not matches_trigger("https://example.com/blog", "https://example.com/shop")

    def test_regex(self) -> None:
        assert matches_trigger(r"/\/posts\/\d+/", "https://x.com/posts/12")
        assert not matches_trigger(r"/\/posts\/\d+/", "https://x.com/posts/new")

    def test_invalid_regex_does_not_match(self) -> None:
        assert not matches_trigger("/[/", "https://x.com/[")

    @pytest.mark.parametrize(
        "pattern, expected",
        [
            ("schema:@Recipe", True),
            ("schema:@NewsArticle", True),
            ("schema:@Event", False),
            ("schema:@Recipe.name=Pie", True),
            ("schema:@Recipe.name=Cake", False),
            ("schema:recipeCategory=Baking", True),
            ("schema:headline", True),
            ("schema:@Recipe.headline", False),
        ],
    )
    def test_schema(self, pattern, expected) -> None:
        assert matches_trigger(pattern, "https://x.com", self.SCHEMA) is expected

    def test_first_matching_template_wins(self) -> None:
        templates = [
            ClipTemplate(name="none", triggers=["https://other.com"]),
            ClipTemplate(name="first", triggers=["https://x.com"]),
            ClipTemplate(name="second", triggers=["schema:@Recipe"]),
        ]
        matched = find_matching_template("https://x.com/a", templates, self.SCHEMA)
        assert matched.name == "first"
        assert find_matching_template("https://y.com", templates[:2]) is None


class TestObsidianUri:
    """Test obsidian:// URI building"""

    NOTE = GeneratedNote(filename="My Note", path="Inbox", content="Hi there")

    def test_encode_uri_component(self) -> None:
        assert encode_uri_component("a b&c=d/é(x)!") == "a%20b%26c%3Dd%2F%C3%A9(x)!"

    def test_create(self) -> None:
        assert build_obsidian_uri(self.NOTE) == (
            "obsidian://new?file=Inbox%2FMy%20Note&content=Hi%20there"
        )

    def test_daily_append_with_vault(self) -> None:
        uri = build_obsidian_uri(self.NOTE, NoteBehavior.APPEND_DAILY, "My Vault", True)
        assert uri == (
            "obsidian://daily?&append=true&vault=My%20Vault&silent=true&content=Hi%20there"
        )

    def test_prepend_and_overwrite(self) -> None:
        prepend = build_obsidian_uri(self.NOTE, NoteBehavior.PREPEND_SPECIFIC)
        overwrite = build_obsidian_uri(self.NOTE, NoteBehavior.OVERWRITE, clipboard=True)
        assert "&prepend=true&content=" in prepend
        assert overwrite == "obsidian://new?file=Inbox%2FMy%20Note&overwrite=true&clipboard"

    def test_note_without_folder(self) -> None:
        note = GeneratedNote(filename="Top", path="", content="x", frontmatter="---\n---\n")
        assert build_obsidian_uri(note) == (
            "obsidian://new?file=Top&content=---%0A---%0Ax"
        )
        assert note.file_path == "Top.md"


@pytest.mark.asyncio
class TestNoteGenerator:
    """Test note generation from a page"""

    async def test_default_template(self, snapshot) -> None:
        ctx = snapshot.render_context({"content": "Body text"})
        note = await NoteGenerator().generate(default_template(), ctx)

        assert note.filename == "Hello World"
        assert note.file_path == "Clippings/Hello World.md"
        assert note.frontmatter == EXPECTED_FRONTMATTER
        assert note.content == "Body text"
        assert note.text == EXPECTED_FRONTMATTER + "Body text"
        assert note.properties["author"] == "[[Jane Doe]]"

    async def test_file_name_is_sanitized(self, context) -> None:
        template = ClipTemplate(note_name_format="{{title}}", properties=[])
        note = await NoteGenerator().generate(template, context({"title": "a/b: [c]?"}))
        assert note.filename == "ab c"
        assert note.frontmatter == ""

    async def test_empty_name_becomes_untitled(self, context) -> None:
        note = await NoteGenerator().generate(ClipTemplate(), context())
        assert note.filename == "Untitled"


class TestTemplateValidation:
    """Test validating every string of a template"""

    def test_default_template_is_valid(self) -> None:
        assert NoteGenerator().validate(default_template()) == {}

    def test_issues_are_reported_by_location(self) -> None:
        template = ClipTemplate(
            note_content_format="{{bogus}}",
            properties=[Property(name="tags", value="{{title|frobnicate}}")],
        )
        reports = NoteGenerator().validate(template)
        assert sorted(reports) == ["noteContentFormat", "properties.tags"]
        assert reports["properties.tags"].issues[0].message == 'Unknown filter "frobnicate"'

    def test_known_variables(self) -> None:
        template = ClipTemplate(note_content_format="{{custom}}")
        assert NoteGenerator().validate(template, known={"title", "custom"}) == {}


class FakeFetcher:
    def __init__(self, snapshot=None):
        self.snapshot = snapshot
        self.urls = []

    async def fetch(self, url):
        self.urls.append(url)
        return self.snapshot


class TestClipperEngine:
    """Test template selection and clipping"""

    def test_select_matching_template(self, snapshot) -> None:
        engine = ClipperEngine(
            [
                ClipTemplate(name="Other", triggers=["https://other.com"]),
                ClipTemplate(name="Posts", triggers=["schema:@BlogPosting"]),
            ]
        )
        assert engine.select_template(snapshot).name == "Posts"

    def test_select_falls_back_to_first_then_default(self, snapshot) -> None:
        engine = ClipperEngine([ClipTemplate(name="Only", triggers=["https://other.com"])])
        assert engine.select_template(snapshot).name == "Only"
        assert ClipperEngine().select_template(snapshot).name == "Default"

    def test_load_templates(self, tmp_path) -> None:
        path = tmp_path / "t.json"
        path.write_text(ClipTemplate(name="FromFile").to_json(), encoding="utf-8")
        engine = ClipperEngine()
        engine.load_templates([path])
        assert [template.name for template in engine.templates] == ["FromFile"]

    @pytest.mark.asyncio
    async def test_clip_snapshot(self, snapshot) -> None:
        settings = Settings(obsidian_vault="Research", silent_open=True)
        engine = ClipperEngine(settings=settings)
        result = await engine.clip_snapshot(snapshot, extra={"content": "Body"})

        assert result.template_name == "Default"
        assert result.note.file_path == "Clippings/Hello World.md"
        assert result.uri.startswith(
            "obsidian://new?file=Clippings%2FHello%20World&vault=Research&silent=true&content="
        )

    @pytest.mark.asyncio
    async def test_template_vault_wins(self, snapshot) -> None:
        engine = ClipperEngine(settings=Settings(obsidian_vault="Research"))
        result = await engine.clip_snapshot(snapshot, ClipTemplate(vault="Personal"))
        assert "&vault=Personal&" in result.uri

    @pytest.mark.asyncio
    async def test_clip_uses_fetcher(self, snapshot) -> None:
        fetcher = FakeFetcher(snapshot)
        engine = ClipperEngine(fetcher=fetcher)
        result = await engine.clip("https://www.example.com/posts/hello-world")
        assert result is not None
        assert result.note.filename == "Hello World"
        assert fetcher.urls == ["https://www.example.com/posts/hello-world"]

    @pytest.mark.asyncio
    async def test_clip_returns_none_when_fetch_fails(self) -> None:
        engine = ClipperEngine(fetcher=FakeFetcher(None))
        assert await engine.clip("https://unreachable.example.com") is None
