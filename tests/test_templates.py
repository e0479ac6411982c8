"""Tests for perch.templating — loading, rendering, fragments, streaming."""

from dataclasses import dataclass

import pytest

from perch.errors import RenderError, StartupError, TemplateLoadError
from perch.templating.context import build_context
from perch.templating.loader import TemplateDirectoryLoader
from perch.templating.templates import TemplateSet


class TestLoad:
    def test_loads_every_template_recursively(self, templates: TemplateSet) -> None:
        assert templates.names == {
            "base",
            "guarded",
            "list",
            "pages/home",
            "partials/nav",
            "strict",
        }
        assert len(templates) == 6

    def test_reachable_by_logical_and_file_name(self, templates: TemplateSet) -> None:
        assert "pages/home" in templates
        assert "pages/home.html" in templates
        assert templates.get("pages/home") is templates.get("pages/home.html")

    def test_missing_root_is_fatal(self, tmp_path) -> None:
        with pytest.raises(TemplateLoadError, match="not found"):
            TemplateSet.load(tmp_path / "nope")

    def test_empty_tree_is_fatal(self, tmp_path) -> None:
        (tmp_path / "notes.txt").write_text("not a template")
        with pytest.raises(TemplateLoadError, match="No templates"):
            TemplateSet.load(tmp_path)

    def test_syntax_error_is_fatal(self, tmp_path) -> None:
        (tmp_path / "ok.html").write_text("<p>{{ fine }}</p>")
        (tmp_path / "broken.html").write_text("{% if x %}<p>never closed</p>")

        with pytest.raises(TemplateLoadError) as exc_info:
            TemplateSet.load(tmp_path)

        assert exc_info.value.template_name == "broken"
        assert exc_info.value.__cause__ is not None

    def test_load_error_is_a_startup_error(self) -> None:
        assert issubclass(TemplateLoadError, StartupError)

    def test_filters_and_globals_registered(self, tmp_path) -> None:
        (tmp_path / "page.html").write_text("{{ name | shout }} {{ site }}")
        tpl = TemplateSet.load(
            tmp_path,
            filters={"shout": lambda s: s.upper() + "!"},
            globals_={"site": "perch"},
        )
        html = tpl.render("page", {"name": "hi"})
        assert "HI!" in html
        assert "perch" in html

    def test_logical_name_collision_rejected(self, tmp_path) -> None:
        (tmp_path / "page.html").write_text("a")
        (tmp_path / "page.htm").write_text("b")
        with pytest.raises(TemplateLoadError, match="logical name"):
            TemplateDirectoryLoader(tmp_path, suffixes=(".html", ".htm"))

    def test_repr(self, templates: TemplateSet) -> None:
        assert "6 templates" in repr(templates)


class TestRender:
    def test_full_page(self, templates: TemplateSet) -> None:
        html = templates.render("base", {"title": "Home"})
        assert "<title>Home</title>" in html
        assert "<nav>" in html
        assert "default content" in html

    def test_child_overrides_block(self, templates: TemplateSet) -> None:
        html = templates.render("pages/home", {"title": "Welcome"})
        assert "<h1>Welcome</h1>" in html
        assert "default content" not in html

    def test_autoescape(self, templates: TemplateSet) -> None:
        html = templates.render("base", {"title": "<script>x</script>"})
        assert "<script>x</script>" not in html
        assert "&lt;script&gt;" in html

    def test_missing_required_field_fails(self, templates: TemplateSet) -> None:
        with pytest.raises(RenderError) as exc_info:
            templates.render("strict", {})
        assert exc_info.value.template_name == "strict"
        assert exc_info.value.__cause__ is not None

    def test_guarded_optional_fields_render(self, templates: TemplateSet) -> None:
        html = templates.render("guarded", {"name": "Ada"})
        assert "<p>Ada</p>" in html
        assert "<em>" not in html
        assert "no tagline" in html

    def test_guarded_fields_present(self, templates: TemplateSet) -> None:
        html = templates.render("guarded", {"name": "Ada", "note": "hi", "tagline": "yo"})
        assert "<em>hi</em>" in html
        assert "yo" in html

    def test_unknown_template(self, templates: TemplateSet) -> None:
        with pytest.raises(RenderError, match="not in the template set"):
            templates.render("nope", {})

    def test_context_not_mutated(self, templates: TemplateSet) -> None:
        context = {"title": "Home"}
        templates.render("base", context)
        assert context == {"title": "Home"}

    def test_dataclass_context(self, templates: TemplateSet) -> None:
        @dataclass
        class HomeContext:
            title: str

        html = templates.render("base", build_context(HomeContext(title="From dataclass")))
        assert "From dataclass" in html


class TestFragments:
    def test_render_block(self, templates: TemplateSet) -> None:
        html = templates.render_block("list", "items", {"items": ["a", "b"]})
        assert "<li>a</li>" in html
        assert "<li>b</li>" in html
        assert "<section>" not in html

    def test_block_does_not_need_page_fields(self, templates: TemplateSet) -> None:
        # heading is only used outside the block
        html = templates.render_block("list", "items", {"items": ["x"]})
        assert "<li>x</li>" in html

    def test_unknown_block(self, templates: TemplateSet) -> None:
        with pytest.raises(RenderError, match="has no block"):
            templates.render_block("list", "missing", {"items": []})

    def test_blocks_listed(self, templates: TemplateSet) -> None:
        assert "items" in templates.blocks("list")


class TestStream:
    def test_stream_yields_page(self, templates: TemplateSet) -> None:
        context = {"heading": "Things", "items": ["a", "b"]}
        streamed = "".join(templates.render_stream("list", context))
        assert "<h2>Things</h2>" in streamed
        assert "<li>b</li>" in streamed

    def test_unknown_template_fails_eagerly(self, templates: TemplateSet) -> None:
        with pytest.raises(RenderError):
            templates.render_stream("nope", {})

    def test_failure_surfaces_while_iterating(self, templates: TemplateSet) -> None:
        chunks = templates.render_stream("strict", {})
        with pytest.raises(RenderError):
            list(chunks)


class TestBuildContext:
    def test_kwargs(self) -> None:
        assert build_context(title="x") == {"title": "x"}

    def test_mapping_copied(self) -> None:
        source = {"a": 1}
        context = build_context(source, b=2)
        assert context == {"a": 1, "b": 2}
        assert source == {"a": 1}

    def test_overrides_win(self) -> None:
        assert build_context({"a": 1}, a=2) == {"a": 2}

    def test_non_string_key_rejected(self) -> None:
        with pytest.raises(TypeError, match="strings"):
            build_context({1: "x"})

    def test_unsupported_source_rejected(self) -> None:
        with pytest.raises(TypeError, match="mapping or dataclass"):
            build_context(["not", "a", "mapping"])

    def test_dataclass_class_rejected(self) -> None:
        @dataclass
        class Ctx:
            a: int = 1

        with pytest.raises(TypeError):
            build_context(Ctx)
