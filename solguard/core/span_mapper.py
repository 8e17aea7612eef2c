"""
Span Mapper - Converts tree spans into text locations and snippets.

Span data comes from a parser outside our control, so every operation here
degrades to a fallback value instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union

from tree_sitter import Node

from solguard.models.finding_models import Location

SNIPPET_UNAVAILABLE = "// Code snippet unavailable"
SNIPPET_OUT_OF_BOUNDS = "// Code snippet out of bounds"
CONTEXT_UNAVAILABLE = "// Context unavailable"
SIGNATURE_UNAVAILABLE = "// Signature unavailable"
SIGNATURE_OUT_OF_BOUNDS = "// Signature out of bounds"


@dataclass(frozen=True)
class Span:
    """Start/end position of a node.

    Lines are 1-indexed, columns are 0-indexed character offsets.
    A start line of 0 means the parser reported no position.
    """

    start_line: int
    start_column: int
    end_line: int
    end_column: int

    @classmethod
    def unknown(cls) -> Span:
        return cls(0, 0, 0, 0)

    @classmethod
    def from_node(cls, node: Node, source: bytes) -> Span:
        """Build a span from a tree-sitter node.

        tree-sitter columns are byte offsets; they are converted to
        character offsets so that they can index decoded lines.
        """
        start_row, start_byte_col = node.start_point
        end_row, end_byte_col = node.end_point
        return cls(
            start_line=start_row + 1,
            start_column=_char_column(source, node.start_byte, start_byte_col),
            end_line=end_row + 1,
            end_column=_char_column(source, node.end_byte, end_byte_col),
        )

    @property
    def is_known(self) -> bool:
        return self.start_line > 0 and self.end_line > 0


def _char_column(source: bytes, offset: int, byte_column: int) -> int:
    line_start = max(offset - byte_column, 0)
    return len(source[line_start:offset].decode("utf-8", errors="replace"))


class Spanned(Protocol):
    def span(self) -> Span | None: ...


SpanTarget = Union[Span, Spanned, None]


def split_lines(text: str) -> list[str]:
    """Split on newlines the way the parser counts rows."""
    lines = [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]
    if lines and lines[-1] == "" and text.endswith("\n"):
        lines.pop()
    return lines


class SpanMapper:
    """Maps spans of one file onto that file's source text."""

    def __init__(self, source_code: str, file_path: str) -> None:
        self.source_code = source_code
        self.file_path = file_path
        self._lines = split_lines(source_code)

    @staticmethod
    def _resolve(target: SpanTarget) -> Span:
        if isinstance(target, Span):
            return target
        if target is None:
            return Span.unknown()
        span = target.span()
        return span if span is not None else Span.unknown()

    # ── Locations ──

    def extract_location(self, target: SpanTarget) -> Location:
        return self.span_to_location(self._resolve(target))

    def span_to_location(self, span: Span) -> Location:
        if span.start_line > 0:
            return Location(
                file=self.file_path,
                line=span.start_line,
                column=span.start_column + 1,
                end_line=span.end_line,
                end_column=span.end_column + 1,
            )
        return Location.fallback(self.file_path)

    # ── Snippets ──

    def extract_snippet(self, target: SpanTarget) -> str:
        return self.span_to_snippet(self._resolve(target))

    def span_to_snippet(self, span: Span) -> str:
        if not span.is_known:
            return SNIPPET_UNAVAILABLE

        lines = self._lines
        if span.start_line > len(lines) or span.end_line > len(lines):
            return SNIPPET_OUT_OF_BOUNDS

        start_idx = span.start_line - 1
        end_idx = span.end_line - 1

        if start_idx >= end_idx:
            line = lines[start_idx]
            start = min(span.start_column, len(line))
            end = min(max(span.end_column, start), len(line))
            return line[start:end]

        parts: list[str] = []
        first_line = lines[start_idx]
        parts.append(first_line[min(span.start_column, len(first_line)):])
        parts.extend(lines[start_idx + 1:end_idx])
        last_line = lines[end_idx]
        parts.append(last_line[:min(span.end_column, len(last_line))])
        return "\n".join(parts)

    def extract_context(self, target: SpanTarget, context_lines: int = 2) -> str:
        """Snippet with surrounding lines; span lines are marked with an arrow."""
        span = self._resolve(target)
        if not span.is_known:
            return CONTEXT_UNAVAILABLE

        first = max(span.start_line - context_lines, 1)
        last = min(span.end_line + context_lines, len(self._lines))

        context: list[str] = []
        for number in range(first, last + 1):
            line = self._lines[number - 1]
            marker = "→" if span.start_line <= number <= span.end_line else " "
            context.append(f"{marker} {number:3} | {line}\n")
        return "".join(context)

    def extract_definition_signature(self, target: SpanTarget) -> str:
        """Declaration header of a function or struct, without its body."""
        span = self._resolve(target)
        if span.start_line == 0:
            return SIGNATURE_UNAVAILABLE
        if span.start_line > len(self._lines):
            return SIGNATURE_OUT_OF_BOUNDS

        def_line = self._lines[span.start_line - 1]
        stripped = def_line.strip()

        if stripped.startswith(("pub fn", "fn", "pub(crate) fn", "unsafe fn", "pub unsafe fn")):
            signature = stripped
            if not signature.endswith(("{", ";")):
                # Signatures may wrap; join up to three continuation lines.
                for next_line in self._lines[span.start_line:span.start_line + 3]:
                    signature = f"{signature} {next_line.strip()}"
                    if "{" in next_line or ";" in next_line:
                        break
            return signature.split("{", 1)[0].strip()

        if stripped.startswith(("struct", "pub struct")):
            return stripped.split("{", 1)[0].strip()

        return stripped
