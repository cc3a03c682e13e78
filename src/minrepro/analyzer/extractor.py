"""Editable declaration model built from parsed Java syntax trees.

Every member carries its origin: a ``Span`` of original bytes, or
``Synthesized`` text added after parsing. Removing or adding members only
edits this model; the rewriter turns the edits into text, copying every
untouched byte from the original source.
"""
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Iterator, List, Optional, Union

from tree_sitter import Node, Tree

from .parser import named_children, node_text


class TypeKind(Enum):
    CLASS = auto()
    INTERFACE = auto()
    ENUM = auto()
    RECORD = auto()
    ANNOTATION = auto()


class MemberKind(Enum):
    METHOD = auto()
    CONSTRUCTOR = auto()
    FIELD = auto()
    TYPE = auto()
    INITIALIZER = auto()
    OTHER = auto()


class ItemKind(Enum):
    PACKAGE = auto()
    IMPORT = auto()
    TYPE = auto()
    OTHER = auto()


TYPE_KINDS = {
    'class_declaration': TypeKind.CLASS,
    'interface_declaration': TypeKind.INTERFACE,
    'enum_declaration': TypeKind.ENUM,
    'record_declaration': TypeKind.RECORD,
    'annotation_type_declaration': TypeKind.ANNOTATION,
}

MEMBER_KINDS = {
    'method_declaration': MemberKind.METHOD,
    'constructor_declaration': MemberKind.CONSTRUCTOR,
    'field_declaration': MemberKind.FIELD,
    'constant_declaration': MemberKind.FIELD,
    'block': MemberKind.INITIALIZER,
    'static_initializer': MemberKind.INITIALIZER,
    'compact_constructor_declaration': MemberKind.OTHER,
    'annotation_type_element_declaration': MemberKind.OTHER,
    **{node_type: MemberKind.TYPE for node_type in TYPE_KINDS},
}

# Members that carry a resolvable identity and may be pruned.
PRUNABLE_KINDS = frozenset({MemberKind.METHOD, MemberKind.CONSTRUCTOR, MemberKind.FIELD})


@dataclass(frozen=True)
class Span:
    """Half-open byte range [start, end) of the original source."""
    start: int
    end: int


@dataclass(frozen=True)
class Synthesized:
    """Member text that has no counterpart in the original source."""
    text: str


Origin = Union[Span, Synthesized]


@dataclass(frozen=True)
class ImportDecl:
    name: str  # 'java.util.List', 'com.example.Util.helper', 'java.util'
    is_static: bool
    on_demand: bool  # import x.y.*;


@dataclass(eq=False)
class MemberDecl:
    """A member of a type body: method, constructor, field, nested type, ..."""
    kind: MemberKind
    name: str
    origin: Origin
    node: Optional[Node] = None
    nested: Optional['TypeDecl'] = None

    @property
    def prunable(self) -> bool:
        return self.kind in PRUNABLE_KINDS and self.node is not None

    @property
    def is_synthesized(self) -> bool:
        return isinstance(self.origin, Synthesized)


@dataclass(eq=False)
class TypeDecl:
    kind: TypeKind
    name: str
    qualified_name: str
    node: Node
    body: Node
    members: List[MemberDecl] = field(default_factory=list)
    enum_constants: int = 0
    removed: List[MemberDecl] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when nothing is left in the body (enum constants count)."""
        return not self.members and not self.enum_constants

    def remove(self, member: MemberDecl):
        """Delete a member from the type."""
        self.members.remove(member)
        if not member.is_synthesized:
            self.removed.append(member)

    def add_member(self, text: str, kind: MemberKind = MemberKind.OTHER, name: str = '') -> MemberDecl:
        """Append a synthesized member; it is rendered before the closing brace."""
        member = MemberDecl(kind=kind, name=name, origin=Synthesized(text))
        self.members.append(member)
        return member

    def walk(self) -> Iterator['TypeDecl']:
        """This type followed by every member type, depth first."""
        yield self
        for member in list(self.members):
            if member.nested is not None:
                yield from member.nested.walk()


@dataclass(eq=False)
class TopLevelItem:
    kind: ItemKind
    span: Span
    type_decl: Optional[TypeDecl] = None


@dataclass(eq=False)
class SourceUnit:
    """One parsed Java file: package, imports and top-level types."""
    relative_path: Path
    source: bytes
    tree: Tree
    package: str = ''
    imports: List[ImportDecl] = field(default_factory=list)
    items: List[TopLevelItem] = field(default_factory=list)

    @property
    def types(self) -> List[TypeDecl]:
        return [item.type_decl for item in self.items if item.kind is ItemKind.TYPE]

    def all_types(self) -> Iterator[TypeDecl]:
        for type_decl in self.types:
            yield from type_decl.walk()

    @property
    def has_syntax_errors(self) -> bool:
        return self.tree.root_node.has_error


def package_of(root: Node) -> str:
    for child in named_children(root):
        if child.type == 'package_declaration':
            for part in named_children(child):
                if part.type in ('identifier', 'scoped_identifier'):
                    return node_text(part)
    return ''


def parse_import(node: Node) -> ImportDecl:
    name = ''
    for child in named_children(node):
        if child.type in ('identifier', 'scoped_identifier'):
            name = node_text(child)
    kinds = {child.type for child in node.children}
    return ImportDecl(name=name, is_static='static' in kinds, on_demand='asterisk' in kinds)


def type_body_members(body: Node) -> List[Node]:
    """Member nodes of a class/interface/enum/annotation body, in order."""
    if body.type == 'enum_body':
        for child in named_children(body):
            if child.type == 'enum_body_declarations':
                return [c for c in named_children(child) if c.type in MEMBER_KINDS]
        return []
    return [c for c in named_children(body) if c.type in MEMBER_KINDS]


def field_names(node: Node) -> List[str]:
    return [node_text(d.child_by_field_name('name')) for d in node.children_by_field_name('declarator')]


class DeclarationExtractor:
    """Build the editable SourceUnit model from a tree-sitter tree."""

    def extract(self, tree: Tree, source_code: bytes, relative_path: str | Path) -> SourceUnit:
        root = tree.root_node
        unit = SourceUnit(relative_path=Path(relative_path), source=source_code,
                          tree=tree, package=package_of(root))

        for child in named_children(root):
            span = Span(child.start_byte, child.end_byte)
            if child.type == 'package_declaration':
                unit.items.append(TopLevelItem(ItemKind.PACKAGE, span))
            elif child.type == 'import_declaration':
                unit.imports.append(parse_import(child))
                unit.items.append(TopLevelItem(ItemKind.IMPORT, span))
            elif child.type in TYPE_KINDS:
                name = node_text(child.child_by_field_name('name'))
                qualified = f"{unit.package}.{name}" if unit.package else name
                type_decl = self._extract_type(child, qualified)
                unit.items.append(TopLevelItem(ItemKind.TYPE, span, type_decl))
            else:
                unit.items.append(TopLevelItem(ItemKind.OTHER, span))
        return unit

    def _extract_type(self, node: Node, qualified_name: str) -> TypeDecl:
        body = node.child_by_field_name('body')
        type_decl = TypeDecl(
            kind=TYPE_KINDS[node.type],
            name=node_text(node.child_by_field_name('name')),
            qualified_name=qualified_name,
            node=node,
            body=body,
        )
        if body is None:
            return type_decl

        if body.type == 'enum_body':
            type_decl.enum_constants = sum(1 for c in named_children(body) if c.type == 'enum_constant')

        for member_node in type_body_members(body):
            type_decl.members.append(self._extract_member(member_node, qualified_name))
        return type_decl

    def _extract_member(self, node: Node, owner: str) -> MemberDecl:
        kind = MEMBER_KINDS[node.type]
        span = Span(node.start_byte, node.end_byte)
        if kind is MemberKind.TYPE:
            name = node_text(node.child_by_field_name('name'))
            nested = self._extract_type(node, f"{owner}.{name}")
            return MemberDecl(kind, name, span, node, nested=nested)
        if kind is MemberKind.FIELD:
            return MemberDecl(kind, ','.join(field_names(node)), span, node)
        if kind is MemberKind.INITIALIZER:
            return MemberDecl(kind, 'static' if node.type == 'static_initializer' else '', span, node)
        return MemberDecl(kind, node_text(node.child_by_field_name('name')), span, node)
