"""Render edited units back to text.

Only removed members and their attached comments are cut out of the
original bytes, and synthesized members are spliced in before the closing
brace of their type. Everything else is copied byte for byte, so retained
code keeps its formatting, comments and line endings.
"""
from typing import List, Tuple

from tree_sitter import Node

from ..analyzer.extractor import Span, SourceUnit, TypeDecl
from ..analyzer.parser import COMMENT_TYPES

Edit = Tuple[int, int, bytes]

INDENT_UNIT = b'    '


def _line_start(source: bytes, offset: int) -> int:
    return source.rfind(b'\n', 0, offset) + 1


def _is_blank(chunk: bytes) -> bool:
    return chunk.strip(b' \t') == b''


def _attached_comment_start(source: bytes, node: Node) -> int:
    """Start of the comments directly above ``node`` (no blank line between)."""
    start = node.start_byte
    previous = node.prev_sibling
    while previous is not None and previous.type in COMMENT_TYPES:
        gap = source[previous.end_byte:start]
        if gap.strip() or gap.count(b'\n') > 1:
            break
        # A comment trailing code on its own line belongs to that code.
        if not _is_blank(source[_line_start(source, previous.start_byte):previous.start_byte]):
            break
        start = previous.start_byte
        previous = previous.prev_sibling
    return start


def _trailing_comment_end(source: bytes, node: Node) -> int:
    end = node.end_byte
    following = node.next_sibling
    if (following is not None and following.type in COMMENT_TYPES
            and b'\n' not in source[end:following.start_byte]
            and b'\n' not in source[following.start_byte:following.end_byte]):
        return following.end_byte
    return end


def _extend_range_for_newline(source: bytes, start: int, end: int) -> Tuple[int, int]:
    """Widen [start, end) to whole lines when the range has nothing else on them."""
    length = len(source)
    line_start = _line_start(source, start)
    if not _is_blank(source[line_start:start]):
        return start, end

    current = end
    while current < length and source[current] in b' \t':
        current += 1
    if current < length and source[current] == 13:  # \r
        current += 1
    if current < length and source[current] == 10:  # \n
        return line_start, current + 1
    if current == length:
        return line_start, current
    return start, end


def removal_span(source: bytes, node: Node) -> Span:
    """Bytes to cut for a removed member, comments and its line included."""
    start = _attached_comment_start(source, node)
    end = _trailing_comment_end(source, node)
    return Span(*_extend_range_for_newline(source, start, end))


def merge_spans(spans: List[Span]) -> List[Span]:
    """Union of overlapping or touching spans, ascending."""
    merged: List[Span] = []
    for span in sorted(spans, key=lambda s: s.start):
        if merged and span.start <= merged[-1].end:
            merged[-1] = Span(merged[-1].start, max(merged[-1].end, span.end))
        else:
            merged.append(span)
    return merged


class SourceRewriter:
    """Serialize a SourceUnit, applying the edits recorded on its types."""

    def render_bytes(self, unit: SourceUnit) -> bytes:
        source = unit.source
        edits: List[Edit] = []
        removed_spans: List[Span] = []
        for type_decl in unit.all_types():
            removed_spans.extend(removal_span(source, member.node) for member in type_decl.removed)
            insertion = self._insertion(source, type_decl)
            if insertion is not None:
                edits.append(insertion)
        edits.extend((span.start, span.end, b'') for span in merge_spans(removed_spans))

        if not edits:
            return source

        # Apply in descending order so earlier offsets stay valid.
        edits.sort(key=lambda e: (e[0], e[1]), reverse=True)
        buffer = bytearray(source)
        for start, end, replacement in edits:
            buffer[start:end] = replacement
        return bytes(buffer)

    def render(self, unit: SourceUnit) -> str:
        return self.render_bytes(unit).decode('utf-8', errors='surrogateescape')

    def _insertion(self, source: bytes, type_decl: TypeDecl):
        synthesized = [m for m in type_decl.members if m.is_synthesized]
        if not synthesized or type_decl.body is None:
            return None

        closing = type_decl.body.end_byte - 1
        brace_line = _line_start(source, closing)
        brace_indent = source[brace_line:closing]
        on_own_line = _is_blank(brace_indent)
        if not on_own_line:
            brace_indent = b''
        indent = self._member_indent(source, type_decl) or brace_indent + INDENT_UNIT

        lines = []
        for member in synthesized:
            for line in member.origin.text.splitlines():
                lines.append(indent + line.encode('utf-8') if line.strip() else b'')
        text = b'\n'.join(lines) + b'\n'

        if on_own_line:
            return brace_line, brace_line, text
        return closing, closing, b'\n' + text + brace_indent

    @staticmethod
    def _member_indent(source: bytes, type_decl: TypeDecl) -> bytes:
        for member in type_decl.members:
            if member.node is not None:
                line_start = _line_start(source, member.node.start_byte)
                prefix = source[line_start:member.node.start_byte]
                if _is_blank(prefix):
                    return prefix
        return b''
