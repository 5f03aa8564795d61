"""Tests for the placeholder template parser and renderer."""

from __future__ import annotations

import pytest

from hpx.engine.template import (
    Line,
    Malformed,
    MalformedLine,
    Slot,
    UnknownPlaceholder,
    UnknownSlotError,
    parse_template,
    render,
)


def _render(text: str, values: dict, **kwargs) -> list[str]:
    return render(parse_template(text), values.__getitem__, values, **kwargs)


def test_parse_slots_and_text():
    template = parse_template("int {{ name }}(void) {{x}}")
    (node,) = template.nodes
    assert isinstance(node, Line)
    assert node.parts == ("int ", Slot("name"), "(void) ", Slot("x"))
    assert template.slot_names == {"name", "x"}


def test_parse_plain_line():
    (node,) = parse_template("return 0;").nodes
    assert node == Line("return 0;", ("return 0;",))


def test_unterminated_marker_is_malformed():
    (node,) = parse_template("broken {{name").nodes
    assert isinstance(node, Malformed)


def test_parse_is_cached():
    assert parse_template("a {{b}}") is parse_template("a {{b}}")


def test_render_substitutes():
    assert _render("x = {{a}} + {{b}};", {"a": "1", "b": "2"}) == ["x = 1 + 2;"]


def test_none_drops_line():
    assert _render("keep\n{{gone}}\nkeep", {"gone": None}) == ["keep", "keep"]


def test_multiline_value_is_indented():
    lines = _render("\t{{body}}", {"body": "if (x) {\n\treturn 1;\n}"})
    assert lines == ["\tif (x) {", "\t\treturn 1;", "\t}"]


def test_unknown_placeholder_passes_through_by_default():
    lines = _render("a {{known}}\nb {{mystery}}", {"known": "1"})
    assert lines == ["a 1", "b {{mystery}}"]


def test_unknown_placeholder_drop_and_error():
    assert _render("{{mystery}}", {}, unknown=UnknownPlaceholder.DROP) == []
    with pytest.raises(UnknownSlotError) as exc:
        _render("x {{mystery}}", {}, unknown=UnknownPlaceholder.ERROR)
    assert exc.value.name == "mystery"


def test_malformed_line_dropped_by_default():
    assert _render("before\nbad {{oops\nafter", {}) == ["before", "after"]


def test_malformed_line_pass_through():
    lines = _render("bad {{oops", {}, malformed=MalformedLine.PASS_THROUGH)
    assert lines == ["bad {{oops"]


def test_resolver_only_called_for_known_names():
    calls: list[str] = []

    def resolve(name: str) -> str:
        calls.append(name)
        return "v"

    render(parse_template("{{a}} {{b}}\n{{a}}"), resolve, {"a"})
    assert calls == ["a"]
