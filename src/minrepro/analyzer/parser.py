"""Tree-sitter parser for Java sources."""
from pathlib import Path
from typing import Iterator, Optional

import tree_sitter_java as tsjava
from tree_sitter import Language, Node, Parser, Tree

JAVA_LANGUAGE = Language(tsjava.language())

COMMENT_TYPES = frozenset({'line_comment', 'block_comment'})


class JavaSourceParser:
    """Java parser using the tree-sitter v0.23+ API."""

    SUFFIX = '.java'

    def __init__(self):
        self.parser = Parser(JAVA_LANGUAGE)

    def parse_source(self, source_code: bytes) -> Tree:
        """Parse raw bytes.

        tree-sitter always produces a tree; syntax errors show up as ERROR
        nodes (see SourceUnit.has_syntax_errors).
        """
        return self.parser.parse(source_code)

    def parse_file(self, file_path: str | Path) -> tuple[Tree, bytes]:
        """Parse a file and return the tree with the bytes it was parsed from.

        Raises:
            FileNotFoundError: If the file does not exist
            OSError: If the file cannot be read
        """
        file_path = Path(file_path)
        with open(file_path, 'rb') as f:
            source_code = f.read()
        return self.parse_source(source_code), source_code

    @classmethod
    def accepts(cls, file_path: str | Path) -> bool:
        return Path(file_path).suffix.lower() == cls.SUFFIX


def node_text(node: Optional[Node]) -> str:
    """Decode a node's source text ('' for None)."""
    if node is None or node.text is None:
        return ''
    return node.text.decode('utf-8', errors='replace')


def named_children(node: Node) -> list[Node]:
    """Named children without comments (comments are extras and appear anywhere)."""
    return [child for child in node.named_children if child.type not in COMMENT_TYPES]


def same_node(a: Optional[Node], b: Optional[Node]) -> bool:
    if a is None or b is None:
        return False
    return (a.start_byte, a.end_byte, a.type) == (b.start_byte, b.end_byte, b.type)


def walk(node: Node) -> Iterator[Node]:
    """Iteratively traverse a tree in document order.

    Yields:
        Every node under (and including) the given node
    """
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def ancestors(node: Node) -> Iterator[Node]:
    current = node.parent
    while current is not None:
        yield current
        current = current.parent
