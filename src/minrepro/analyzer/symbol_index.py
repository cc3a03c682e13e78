"""Index of every type declared under the source root.

The index is what makes member identities canonical: declaration parameter
types are qualified here (imports, package, nested types, java.lang), and
the type hierarchy (a NetworkX DiGraph, edge ``sub -> super``) is used to
find inherited members and to compare argument types during overload
selection.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import networkx as nx
from tree_sitter import Node

from .extractor import (
    TYPE_KINDS, ImportDecl, SourceUnit, TypeKind, field_names, type_body_members,
)
from .names import compact_type_text, declaration_name, spread_parameter_type
from .parser import ancestors, named_children, node_text, walk

PRIMITIVES = frozenset({'byte', 'short', 'int', 'long', 'float', 'double', 'boolean', 'char', 'void'})

BOXES = {
    'byte': 'java.lang.Byte', 'short': 'java.lang.Short', 'int': 'java.lang.Integer',
    'long': 'java.lang.Long', 'float': 'java.lang.Float', 'double': 'java.lang.Double',
    'boolean': 'java.lang.Boolean', 'char': 'java.lang.Character',
}
UNBOXES = {box: primitive for primitive, box in BOXES.items()}

OBJECT = 'java.lang.Object'
STRING = 'java.lang.String'

# Simple names that resolve without an import.
JAVA_LANG = frozenset({
    'Object', 'String', 'Integer', 'Long', 'Short', 'Byte', 'Character', 'Boolean',
    'Double', 'Float', 'Number', 'Math', 'StrictMath', 'System', 'Thread', 'Runnable',
    'Iterable', 'Comparable', 'CharSequence', 'StringBuilder', 'StringBuffer', 'Class',
    'Enum', 'Record', 'Void', 'Throwable', 'Exception', 'RuntimeException', 'Error',
    'AutoCloseable', 'Cloneable', 'Process', 'Runtime', 'ThreadLocal',
    'IllegalArgumentException', 'IllegalStateException', 'NullPointerException',
    'UnsupportedOperationException', 'IndexOutOfBoundsException', 'ArithmeticException',
    'ClassCastException', 'InterruptedException', 'CloneNotSupportedException',
    'ArrayIndexOutOfBoundsException', 'NumberFormatException', 'AssertionError',
    'Override', 'Deprecated', 'SuppressWarnings', 'FunctionalInterface', 'SafeVarargs',
})


@dataclass
class UnitScope:
    """The file-level names visible to every type in one unit."""
    path: str
    package: str
    imports: List[ImportDecl]


@dataclass
class MethodInfo:
    owner: str
    name: str
    params: List[str]
    return_type: Optional[str] = None
    varargs: bool = False
    is_constructor: bool = False
    type_params: Tuple[str, ...] = ()

    @property
    def signature(self) -> str:
        return f"{self.owner}#{self.name}({','.join(self.params)})"


@dataclass
class FieldInfo:
    owner: str
    name: str
    type: Optional[str]

    @property
    def signature(self) -> str:
        return f"{self.owner}.{self.name}"


@dataclass
class TypeInfo:
    qualified_name: str
    simple_name: str
    kind: TypeKind
    scope: UnitScope
    node: Node
    enclosing: Optional[str] = None
    type_params: Tuple[str, ...] = ()
    methods: List[MethodInfo] = field(default_factory=list)
    constructors: List[MethodInfo] = field(default_factory=list)
    fields: Dict[str, FieldInfo] = field(default_factory=dict)

    @property
    def default_constructor(self) -> MethodInfo:
        return MethodInfo(owner=self.qualified_name, name=self.simple_name, params=[], is_constructor=True)


def split_type(text: str) -> Tuple[str, str]:
    """Split written type text into (erased base, array/varargs suffix).

    ``Map<String, List<Integer>>[]`` -> ``('Map', '[]')``
    """
    compact = compact_type_text(text)
    base, depth = [], 0
    for char in compact:
        if char == '<':
            depth += 1
        elif char == '>':
            depth -= 1
        elif depth == 0:
            base.append(char)
    base = ''.join(base)
    suffix_start = len(base)
    while suffix_start > 0 and base[suffix_start - 1] in '[].':
        suffix_start -= 1
    return base[:suffix_start], base[suffix_start:]


def type_parameter_names(node: Node) -> Tuple[str, ...]:
    params = node.child_by_field_name('type_parameters')
    if params is None:
        return ()
    names = []
    for param in named_children(params):
        for child in named_children(param):
            if child.type in ('type_identifier', 'identifier'):
                names.append(node_text(child))
                break
    return tuple(names)


def enclosing_type_node(node: Node) -> Optional[Node]:
    for parent in ancestors(node):
        if parent.type in TYPE_KINDS:
            return parent
    return None


def type_chain_names(node: Node) -> List[str]:
    """Simple names of the type declarations from the outermost to ``node``."""
    names = [declaration_name(n) for n in [node, *ancestors(node)] if n.type in TYPE_KINDS]
    return list(reversed(names))


def node_key(path: str, node: Node) -> Tuple[str, int, int]:
    return (path, node.start_byte, node.end_byte)


class SymbolIndex:
    """Types, members and the type hierarchy of a source tree."""

    def __init__(self):
        self.types: Dict[str, TypeInfo] = {}
        self.hierarchy = nx.DiGraph()
        self._by_node: Dict[Tuple[str, int, int], str] = {}
        self._declarations: Dict[Tuple[str, int, int], List[str]] = {}
        self._shadowed: List[TypeInfo] = []

    @classmethod
    def from_units(cls, units: Iterable[SourceUnit]) -> 'SymbolIndex':
        index = cls()
        for unit in units:
            index.register_unit(unit)
        index.link()
        return index

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def register_unit(self, unit: SourceUnit):
        """Pass 1: record every named type (member and local types included)."""
        scope = UnitScope(path=str(unit.relative_path), package=unit.package, imports=list(unit.imports))
        for node in walk(unit.tree.root_node):
            if node.type not in TYPE_KINDS or node.child_by_field_name('name') is None:
                continue
            chain = type_chain_names(node)
            qualified = '.'.join([unit.package, *chain]) if unit.package else '.'.join(chain)
            outer = enclosing_type_node(node)
            info = TypeInfo(
                qualified_name=qualified,
                simple_name=chain[-1],
                kind=TYPE_KINDS[node.type],
                scope=scope,
                node=node,
                enclosing=qualified[:qualified.rfind('.')] if outer is not None else None,
                type_params=type_parameter_names(node),
            )
            self._by_node[node_key(scope.path, node)] = qualified
            if qualified in self.types:
                # First declaration wins lookups; later copies still get member signatures.
                self._shadowed.append(info)
                continue
            self.types[qualified] = info
            self.hierarchy.add_node(qualified)

    def link(self):
        """Pass 2: supertype edges, then qualified members."""
        for info in self.types.values():
            for relation, text in self._supertype_texts(info):
                parent = self.qualify(text, info)
                if parent != info.qualified_name:
                    self.hierarchy.add_edge(info.qualified_name, parent, relation=relation)

        for info in [*self.types.values(), *self._shadowed]:
            self._index_members(info)

    def _supertype_texts(self, info: TypeInfo) -> List[Tuple[str, str]]:
        """(relation, written type) pairs, the superclass first."""
        texts = []
        for child in named_children(info.node):
            if child.type == 'superclass':
                texts.extend(('extends', node_text(t)) for t in named_children(child))
            elif child.type in ('super_interfaces', 'extends_interfaces'):
                for type_list in named_children(child):
                    texts.extend(('implements', node_text(t)) for t in named_children(type_list))
        return texts

    def _index_members(self, info: TypeInfo):
        body = info.node.child_by_field_name('body')
        path = info.scope.path

        if info.kind is TypeKind.RECORD:
            self._index_record_components(info)

        if body is not None and body.type == 'enum_body':
            for constant in named_children(body):
                if constant.type == 'enum_constant':
                    name = declaration_name(constant)
                    info.fields[name] = FieldInfo(info.qualified_name, name, info.qualified_name)

        for member in type_body_members(body) if body is not None else []:
            if member.type in ('method_declaration', 'constructor_declaration'):
                method = self._method_info(member, info)
                (info.constructors if method.is_constructor else info.methods).append(method)
                self._declarations[node_key(path, member)] = [method.signature]
            elif member.type in ('field_declaration', 'constant_declaration'):
                field_type = self.qualify(node_text(member.child_by_field_name('type')), info)
                signatures = []
                for declarator, name in zip(member.children_by_field_name('declarator'), field_names(member)):
                    dims = node_text(declarator.child_by_field_name('dimensions'))
                    info.fields[name] = FieldInfo(info.qualified_name, name, field_type + compact_type_text(dims))
                    signatures.append(info.fields[name].signature)
                self._declarations[node_key(path, member)] = signatures

    def _index_record_components(self, info: TypeInfo):
        params = info.node.child_by_field_name('parameters')
        if params is None:
            return
        component_types = []
        for param in named_children(params):
            name = node_text(param.child_by_field_name('name'))
            qualified = self.qualify(node_text(param.child_by_field_name('type')), info)
            component_types.append(qualified)
            info.fields[name] = FieldInfo(info.qualified_name, name, qualified)
            info.methods.append(MethodInfo(info.qualified_name, name, [], return_type=qualified))
        info.constructors.append(MethodInfo(
            info.qualified_name, info.simple_name, component_types, is_constructor=True,
        ))

    def _method_info(self, node: Node, owner: TypeInfo) -> MethodInfo:
        type_params = type_parameter_names(node)
        params, varargs = [], False
        parameters = node.child_by_field_name('parameters')
        for param in named_children(parameters) if parameters is not None else []:
            if param.type == 'formal_parameter':
                text = node_text(param.child_by_field_name('type'))
                text += node_text(param.child_by_field_name('dimensions'))
                params.append(self.qualify(text, owner, type_params))
            elif param.type == 'spread_parameter':
                text = node_text(spread_parameter_type(param))
                params.append(self.qualify(text, owner, type_params) + '...')
                varargs = True

        is_constructor = node.type == 'constructor_declaration'
        return_type = None
        if not is_constructor:
            text = node_text(node.child_by_field_name('type'))
            text += node_text(node.child_by_field_name('dimensions'))
            return_type = self.qualify(text, owner, type_params)
        return MethodInfo(
            owner=owner.qualified_name,
            name=owner.simple_name if is_constructor else declaration_name(node),
            params=params,
            return_type=return_type,
            varargs=varargs,
            is_constructor=is_constructor,
            type_params=type_params,
        )

    # ------------------------------------------------------------------
    # Type names
    # ------------------------------------------------------------------

    def qualify(self, text: str, context: Optional[TypeInfo], type_params: Tuple[str, ...] = ()) -> str:
        """Qualify written type text in the scope of ``context``.

        Generics are erased; array and varargs suffixes are kept.
        """
        base, suffix = split_type(text)
        if not base or base in PRIMITIVES:
            return base + suffix
        if '.' not in base:
            return self.resolve_simple_name(base, context, type_params) + suffix
        if base in self.types:
            return base + suffix
        head, _, rest = base.partition('.')
        resolved_head = self.resolve_simple_name(head, context, type_params)
        if resolved_head != head:
            return f"{resolved_head}.{rest}{suffix}"
        return base + suffix

    def resolve_simple_name(self, name: str, context: Optional[TypeInfo], type_params: Tuple[str, ...] = ()) -> str:
        if name in type_params:
            return name

        current = context
        while current is not None:
            if name in current.type_params:
                return name
            if current.simple_name == name:
                return current.qualified_name
            for owner in [current.qualified_name, *self.supertypes(current.qualified_name)]:
                candidate = f"{owner}.{name}"
                if candidate in self.types:
                    return candidate
            current = self.types.get(current.enclosing) if current.enclosing else None

        if context is None:
            return f"java.lang.{name}" if name in JAVA_LANG else name

        scope = context.scope
        for imported in scope.imports:
            if not imported.is_static and not imported.on_demand and imported.name.rsplit('.', 1)[-1] == name:
                return imported.name

        same_package = f"{scope.package}.{name}" if scope.package else name
        if same_package in self.types:
            return same_package

        for imported in scope.imports:
            if imported.on_demand and not imported.is_static and f"{imported.name}.{name}" in self.types:
                return f"{imported.name}.{name}"

        if name in JAVA_LANG:
            return f"java.lang.{name}"
        return name

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def type_of_node(self, path: str, node: Node) -> Optional[TypeInfo]:
        qualified = self._by_node.get(node_key(path, node))
        return self.types.get(qualified) if qualified else None

    def declaration_signatures(self, path: str, node: Node) -> List[str]:
        """Canonical signatures of a method, constructor or field declaration."""
        return list(self._declarations.get(node_key(path, node), []))

    def supertypes(self, qualified_name: str) -> List[str]:
        """All supertypes, breadth first, superclass before interfaces."""
        if qualified_name not in self.hierarchy:
            return []
        return list(nx.bfs_tree(self.hierarchy, qualified_name))[1:]

    def superclass(self, qualified_name: str) -> Optional[str]:
        if qualified_name not in self.hierarchy:
            return None
        for parent, relation in self.hierarchy[qualified_name].items():
            if relation.get('relation') == 'extends' and self.types[qualified_name].kind is not TypeKind.INTERFACE:
                return parent
        return None

    def is_subtype(self, sub: str, sup: str) -> bool:
        if sub == sup:
            return True
        if sup == OBJECT:
            return sub not in PRIMITIVES
        if sub in self.hierarchy and sup in self.hierarchy:
            return nx.has_path(self.hierarchy, sub, sup)
        return False

    def lookup_methods(self, qualified_name: str, name: str) -> List[MethodInfo]:
        """Methods named ``name`` visible on a type; overridden ones are hidden."""
        found, seen = [], set()
        for owner in [qualified_name, *self.supertypes(qualified_name)]:
            info = self.types.get(owner)
            if info is None:
                continue
            for method in info.methods:
                if method.name == name and tuple(method.params) not in seen:
                    seen.add(tuple(method.params))
                    found.append(method)
        return found

    def lookup_field(self, qualified_name: str, name: str) -> Optional[FieldInfo]:
        for owner in [qualified_name, *self.supertypes(qualified_name)]:
            info = self.types.get(owner)
            if info is not None and name in info.fields:
                return info.fields[name]
        return None
