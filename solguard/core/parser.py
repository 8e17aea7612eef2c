"""
SolGuard - Rust source parser using tree-sitter.

Produces SyntaxTree values: the tree-sitter tree together with the exact
source bytes it was parsed from. Everything downstream only borrows them.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import tree_sitter_rust as tsrust
from tree_sitter import Language, Node, Parser, Tree

from solguard.core.errors import ParseError

logger = logging.getLogger("solguard.parser")

RUST_LANGUAGE = Language(tsrust.language())

RUST_EXTENSION = ".rs"


@dataclass(frozen=True)
class SyntaxTree:
    """A parsed Rust file."""

    tree: Tree
    source: bytes
    path: str = "<memory>"

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def text(self) -> str:
        return self.source.decode("utf-8", errors="replace")


def _first_error(node: Node) -> Node | None:
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error:
            found = _first_error(child)
            if found is not None:
                return found
    return None


class RustParser:
    """Thin wrapper around tree-sitter for Rust source code."""

    def __init__(self, extension: str = RUST_EXTENSION) -> None:
        self._parser = Parser(RUST_LANGUAGE)
        self.extension = extension

    def parse_text(self, content: str, path: str = "<memory>") -> SyntaxTree:
        """Parse Rust source text.

        Raises ParseError if the source contains syntax errors.
        """
        source = content.encode("utf-8")
        tree = self._parser.parse(source)
        if tree.root_node.has_error:
            error = _first_error(tree.root_node)
            where = f"line {error.start_point[0] + 1}" if error is not None else "unknown position"
            raise ParseError(path, f"syntax error near {where}")
        return SyntaxTree(tree=tree, source=source, path=path)

    def parse(self, path: str | os.PathLike[str]) -> SyntaxTree:
        """Read and parse a Rust file."""
        file_path = Path(path)
        try:
            content = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ParseError(str(file_path), f"could not read file: {e}") from e
        return self.parse_text(content, str(file_path))

    def walk(self, directory: str | os.PathLike[str]) -> list[tuple[Path, SyntaxTree]]:
        """Parse every Rust file below a directory.

        Unparsable files are logged and skipped.
        """
        results, _errors = self.walk_with_errors(directory)
        return results

    def walk_with_errors(
        self, directory: str | os.PathLike[str]
    ) -> tuple[list[tuple[Path, SyntaxTree]], list[ParseError]]:
        """Like walk, but also return the errors of the files that were skipped."""
        results: list[tuple[Path, SyntaxTree]] = []
        errors: list[ParseError] = []
        for root, dirs, files in os.walk(directory, followlinks=True):
            dirs.sort()
            for name in sorted(files):
                path = Path(root) / name
                if path.suffix != self.extension or not path.is_file():
                    continue
                try:
                    results.append((path, self.parse(path)))
                    logger.info(f"Successfully parsed file {path}")
                except ParseError as e:
                    logger.error(str(e))
                    errors.append(e)

        logger.info(f"Processed {len(results)} Rust files, {len(errors)} failed")
        return results, errors
