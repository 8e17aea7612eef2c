"""
Tests for the Span Mapper - locations, snippets and context extraction.
"""

from solguard.core.dsl.node import AstNode
from solguard.core.dsl.query import AstQuery
from solguard.core.span_mapper import (
    CONTEXT_UNAVAILABLE,
    SNIPPET_OUT_OF_BOUNDS,
    SNIPPET_UNAVAILABLE,
    Span,
    SpanMapper,
    split_lines,
)

SOURCE = "fn main() {\n    let x = 10;\n    let y = x / 2;\n}\n"


def test_location_from_span_is_one_indexed():
    mapper = SpanMapper(SOURCE, "main.rs")
    location = mapper.extract_location(Span(2, 4, 2, 15))
    assert location.file == "main.rs"
    assert location.line == 2
    assert location.column == 5
    assert location.end_line == 2
    assert location.end_column == 16
    assert str(location) == "main.rs:2:5-16"


def test_location_without_position_falls_back_to_first_line():
    mapper = SpanMapper(SOURCE, "main.rs")
    location = mapper.extract_location(Span.unknown())
    assert location.line == 1
    assert location.column is None
    assert str(location) == "main.rs:1"


def test_location_for_none_target():
    mapper = SpanMapper(SOURCE, "main.rs")
    assert mapper.extract_location(None).line == 1


def test_single_line_snippet_is_exact_substring():
    mapper = SpanMapper(SOURCE, "main.rs")
    assert mapper.extract_snippet(Span(2, 4, 2, 15)) == "let x = 10;"


def test_single_line_snippet_clamps_columns():
    mapper = SpanMapper(SOURCE, "main.rs")
    assert mapper.extract_snippet(Span(2, 8, 2, 500)) == "x = 10;"
    assert mapper.extract_snippet(Span(2, 500, 2, 600)) == ""


def test_multi_line_snippet_keeps_line_count():
    mapper = SpanMapper(SOURCE, "main.rs")
    snippet = mapper.extract_snippet(Span(1, 10, 3, 9))
    assert snippet == "{\n    let x = 10;\n    let y"
    assert len(snippet.split("\n")) == 3


def test_snippet_out_of_bounds_returns_sentinel():
    mapper = SpanMapper(SOURCE, "main.rs")
    assert mapper.extract_snippet(Span(3, 0, 40, 1)) == SNIPPET_OUT_OF_BOUNDS


def test_snippet_unknown_span_returns_sentinel():
    mapper = SpanMapper(SOURCE, "main.rs")
    assert mapper.extract_snippet(Span.unknown()) == SNIPPET_UNAVAILABLE


def test_context_marks_span_lines():
    mapper = SpanMapper(SOURCE, "main.rs")
    context = mapper.extract_context(Span(3, 4, 3, 18), context_lines=1)
    lines = context.splitlines()
    assert len(lines) == 3
    assert lines[0].startswith("    2 |")
    assert lines[1].startswith("→   3 |")
    assert lines[2].startswith("    4 |")


def test_context_unknown_span():
    mapper = SpanMapper(SOURCE, "main.rs")
    assert mapper.extract_context(Span.unknown()) == CONTEXT_UNAVAILABLE


def test_snippet_from_parsed_node_matches_source(parse):
    code = "pub fn transfer(amount: u64) -> u64 {\n    amount * 2\n}\n"
    ast = parse(code)
    func = AstQuery.new(ast).functions().collect()[0]
    mapper = SpanMapper(code, "lib.rs")
    assert mapper.extract_snippet(func) == code.rstrip("\n")
    assert str(mapper.extract_location(func)) == "lib.rs:1:1-3:2"


def test_columns_count_characters_not_bytes(parse):
    code = 'fn a() { let s = "é"; let t = 1; }\n'
    ast = parse(code)
    func = AstNode.from_function(ast.root.named_children[0], ast.source)
    body = func.body()
    second_let = [c for c in body.named_children if c.type == "let_declaration"][1]
    span = Span.from_node(second_let, ast.source)
    mapper = SpanMapper(code, "lib.rs")
    assert mapper.extract_snippet(span) == "let t = 1;"


def test_definition_signature_strips_body():
    code = "pub fn transfer(\n    amount: u64,\n) -> Result<()> {\n    Ok(())\n}\n"
    mapper = SpanMapper(code, "lib.rs")
    assert mapper.extract_definition_signature(Span(1, 0, 5, 1)) == "pub fn transfer( amount: u64, ) -> Result<()>"


def test_split_lines_handles_crlf():
    assert split_lines("a\r\nb\r\n") == ["a", "b"]
    assert split_lines("a\n\n") == ["a", ""]
