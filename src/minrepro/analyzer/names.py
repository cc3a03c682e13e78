"""Qualified-name tracking and target specifier text.

Target specifiers are compared against declarations *before* resolution,
so both sides go through the same normalisation here:
``com.example.Simple#bar(Map<String, Integer>, int[])`` and
``com.example.Simple#bar(Map<String,Integer>,int[])`` are the same target.
"""
import re
from typing import List, Optional

from tree_sitter import Node

from ..errors import InternalConsistencyError
from .parser import named_children, node_text

_WHITESPACE = re.compile(r'\s+')
_ANNOTATION = re.compile(r'@[\w.]+(\([^()]*\))?')


def compact_type_text(text: str) -> str:
    """Type text as written, minus annotations and whitespace."""
    return _WHITESPACE.sub('', _ANNOTATION.sub('', text))


def normalize_specifier(specifier: str) -> str:
    return _WHITESPACE.sub('', specifier)


def declared_parameter_types(callable_node: Node) -> List[str]:
    """Parameter types of a method/constructor declaration, as written.

    C-style dimensions (``int a[]``) are folded onto the type and varargs keep
    their ``...``. Receiver parameters (``Foo this``) are not parameters.
    """
    params = callable_node.child_by_field_name('parameters')
    if params is None:
        return []

    types = []
    for param in named_children(params):
        if param.type == 'formal_parameter':
            dims = param.child_by_field_name('dimensions')
            types.append(compact_type_text(
                node_text(param.child_by_field_name('type')) + node_text(dims)
            ))
        elif param.type == 'spread_parameter':
            type_node = spread_parameter_type(param)
            types.append(compact_type_text(node_text(type_node)) + '...')
    return types


def spread_parameter_type(param: Node) -> Optional[Node]:
    for child in named_children(param):
        if child.type not in ('modifiers', 'variable_declarator', 'annotation', 'marker_annotation'):
            return child
    return None


def declaration_name(node: Node) -> str:
    return node_text(node.child_by_field_name('name'))


def derive_specifier(qualified_type: str, callable_node: Node) -> str:
    """Specifier string for a declaration: ``Type#name(T1,T2)``."""
    params = ','.join(declared_parameter_types(callable_node))
    return f"{qualified_type}#{declaration_name(callable_node)}({params})"


class QualifiedNameTracker:
    """Tracks the qualified name of the type currently being visited.

    Every enter_* must be matched by exactly one exit(); the name after an
    exit is the name before the matching enter.
    """

    def __init__(self, package: str = ''):
        self.package = package
        self._names: List[str] = []

    @property
    def current(self) -> str:
        return self._names[-1] if self._names else ''

    @property
    def active(self) -> bool:
        return bool(self._names)

    def enter_top_level(self, simple_name: str):
        if self._names:
            raise InternalConsistencyError(
                f"Attempted to enter top-level type {simple_name} "
                f"while already inside {self.current}"
            )
        self._names.append(f"{self.package}.{simple_name}" if self.package else simple_name)

    def enter_nested(self, simple_name: str):
        if not self._names:
            raise InternalConsistencyError(
                f"Attempted to enter nested type {simple_name} outside of any type"
            )
        self._names.append(f"{self.current}.{simple_name}")

    def exit(self):
        if not self._names:
            raise InternalConsistencyError("Exited a type that was never entered")
        self._names.pop()
