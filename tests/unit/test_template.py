"""Tests for the mustache-style template resolver."""

import pytest

from talentpage.render.template import is_truthy, parse_template, render_template


class TestIsTruthy:
    @pytest.mark.parametrize("value", ["x", " x ", True, ["<li>a</li>"]])
    def test_truthy(self, value: object) -> None:
        assert is_truthy(value)  # type: ignore[arg-type]

    @pytest.mark.parametrize("value", ["", "   ", False, [], None])
    def test_falsy(self, value: object) -> None:
        assert not is_truthy(value)  # type: ignore[arg-type]


class TestSubstitution:
    def test_variable(self) -> None:
        assert render_template("Hi {{name}}!", {"name": "Ada"}) == "Hi Ada!"

    def test_whitespace_inside_tag(self) -> None:
        assert render_template("{{ name }}", {"name": "Ada"}) == "Ada"

    def test_unknown_variable_is_empty(self) -> None:
        assert render_template("[{{missing}}]", {}) == "[]"

    def test_list_joined_by_newlines(self) -> None:
        assert render_template("{{items}}", {"items": ["<li>a</li>", "<li>b</li>"]}) == "<li>a</li>\n<li>b</li>"

    def test_values_not_reparsed(self) -> None:
        assert render_template("{{a}}", {"a": "{{b}}", "b": "oops"}) == "{{b}}"


class TestSections:
    def test_truthy_section_kept(self) -> None:
        assert render_template("{{#x}}yes{{/x}}", {"x": "1"}) == "yes"

    def test_falsy_section_removed(self) -> None:
        assert render_template("a{{#x}}yes{{/x}}b", {"x": ""}) == "ab"

    def test_whitespace_only_is_falsy(self) -> None:
        assert render_template("{{#x}}yes{{/x}}", {"x": "  "}) == ""

    def test_inverted(self) -> None:
        template = "{{#items}}{{items}}{{/items}}{{^items}}<li>To be determined</li>{{/items}}"
        assert render_template(template, {"items": []}) == "<li>To be determined</li>"
        assert render_template(template, {"items": ["<li>Lead</li>"]}) == "<li>Lead</li>"

    def test_legacy_inverted_close(self) -> None:
        template = '<div class="hero{{^img}} full{{/^img}}">'
        assert render_template(template, {"img": ""}) == '<div class="hero full">'
        assert render_template(template, {"img": "/a.jpg"}) == '<div class="hero">'

    def test_nested(self) -> None:
        template = "{{#a}}A{{#b}}B{{/b}}{{/a}}"
        assert render_template(template, {"a": "1", "b": "1"}) == "AB"
        assert render_template(template, {"a": "1", "b": ""}) == "A"
        assert render_template(template, {"a": "", "b": "1"}) == ""

    def test_same_field_nested_and_adjacent(self) -> None:
        template = "{{#x}}<{{#x}}{{x}}{{/x}}>{{/x}}|{{#x}}again{{/x}}"
        assert render_template(template, {"x": "v"}) == "<v>|again"

    def test_multiline_block(self) -> None:
        template = "{{#desc}}\n<section>\n  <p>{{desc}}</p>\n</section>\n{{/desc}}"
        assert render_template(template, {"desc": "Hello"}) == "\n<section>\n  <p>Hello</p>\n</section>\n"


class TestMalformedMarkers:
    def test_stray_close_dropped(self) -> None:
        assert render_template("a{{/x}}b", {}) == "ab"

    def test_unclosed_open_keeps_contents(self) -> None:
        assert render_template("a{{#x}}b{{y}}", {"y": "Y"}) == "abY"

    def test_mismatched_close_flattens_inner(self) -> None:
        template = "{{#a}}1{{#b}}2{{/a}}3"
        assert render_template(template, {"a": "yes"}) == "123"
        assert render_template(template, {"a": ""}) == "3"

    def test_no_markers_left(self) -> None:
        template = "{{#a}}{{^b}}{{c}}{{/^b}}{{/a}}{{/z}}{{#q}}"
        assert "{{" not in render_template(template, {"a": "1", "c": "C"})

    def test_parse_is_structural(self) -> None:
        nodes = parse_template("x{{#a}}y{{/a}}")
        assert len(nodes) == 2
