"""Target location and Root/Used signature collection.

The collector walks every target unit once. When it enters a method or
constructor whose derived specifier matches a requested target, the
resolved signature goes into Root and every call, construction, method
reference and field reference inside that declaration (nested, local and
anonymous classes included) is resolved into Used. Methods declared in
anonymous class bodies and enum constant bodies are never targets.
"""
from collections import Counter
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import AbstractSet, Dict, Iterable, List, Optional, Tuple

from tree_sitter import Node

from ..errors import AmbiguousTargetError, InternalConsistencyError, ResolutionError, TargetNotFoundError
from .extractor import TYPE_KINDS, MemberKind, SourceUnit
from .names import QualifiedNameTracker, declaration_name, derive_specifier, normalize_specifier
from .resolver import CALL_NODE_TYPES, MemberResolver, UnitResolver, describe, is_anonymous_body

CALLABLE_TYPES = frozenset({'method_declaration', 'constructor_declaration'})


@dataclass(frozen=True)
class UnresolvedReference:
    """A reference inside a target that could not be bound to a declaration."""
    path: str
    line: int
    column: int
    text: str
    reason: str

    @classmethod
    def from_node(cls, unit: SourceUnit, node: Node, reason: str) -> 'UnresolvedReference':
        return cls(
            path=unit.relative_path.as_posix(),
            line=node.start_point[0] + 1,
            column=node.start_point[1] + 1,
            text=describe(node),
            reason=reason,
        )


@dataclass
class CollectionResult:
    """Outcome of a collection run.

    ``unmatched`` and ``duplicated`` hold specifiers as the caller wrote them,
    in the order they were given.
    """
    root: AbstractSet[str] = field(default_factory=set)
    used: AbstractSet[str] = field(default_factory=set)
    unmatched: List[str] = field(default_factory=list)
    duplicated: List[str] = field(default_factory=list)
    unresolved: List[UnresolvedReference] = field(default_factory=list)
    matches: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.unmatched and not self.duplicated

    @property
    def retained(self) -> AbstractSet[str]:
        return frozenset(self.root) | frozenset(self.used)

    def freeze(self) -> 'CollectionResult':
        """Copy with read-only sets, handed to the pruner."""
        return replace(
            self,
            root=frozenset(self.root),
            used=frozenset(self.used),
            unmatched=list(self.unmatched),
            duplicated=list(self.duplicated),
            unresolved=list(self.unresolved),
            matches=dict(self.matches),
        )

    def raise_for_unmatched(self):
        """Raise for missing or ambiguous targets, all reported together."""
        if self.unmatched:
            raise TargetNotFoundError(self.unmatched)
        if self.duplicated:
            raise AmbiguousTargetError(self.duplicated)


class _FrameKind(Enum):
    TYPE = auto()
    ANONYMOUS = auto()
    CALLABLE = auto()


@dataclass
class _Frame:
    """State to restore when the traversal leaves a declaration."""
    kind: _FrameKind
    inside_target: bool


class TargetCollector:
    """Collects Root and Used signatures across target units.

    Use one collector per run: matches are counted across every unit
    visited, and a specifier matched twice is reported as ambiguous.
    """

    def __init__(self, specifiers: Iterable[str], resolver: MemberResolver):
        self.specifiers = list(dict.fromkeys(specifiers))
        self.resolver = resolver
        self.root: set = set()
        self.used: set = set()
        self.unresolved: List[UnresolvedReference] = []
        self.matches: Dict[str, str] = {}
        self._wanted = {normalize_specifier(s): s for s in self.specifiers}
        self._match_counts: Counter = Counter()

    def visit_unit(self, unit: SourceUnit):
        _UnitTraversal(self, unit, self.resolver.for_unit(unit)).run()

    def collect(self, units: Iterable[SourceUnit]) -> CollectionResult:
        for unit in units:
            self.visit_unit(unit)
        return self.result()

    def result(self) -> CollectionResult:
        counts = {s: self._match_counts[normalize_specifier(s)] for s in self.specifiers}
        return CollectionResult(
            root=set(self.root),
            used=set(self.used),
            unmatched=[s for s, count in counts.items() if count == 0],
            duplicated=[s for s, count in counts.items() if count > 1],
            unresolved=list(self.unresolved),
            matches=dict(self.matches),
        )

    def match(self, specifier: str) -> Optional[str]:
        """The caller's spelling of ``specifier`` if it was requested."""
        return self._wanted.get(specifier)

    def record_target(self, specifier: str, signature: Optional[str]):
        self._match_counts[specifier] += 1
        if signature is not None:
            self.matches[self._wanted[specifier]] = signature
            self.root.add(signature)


def collect_targets(units: Iterable[SourceUnit], specifiers: Iterable[str],
                    resolver: MemberResolver) -> CollectionResult:
    """Run a fresh collector over ``units``."""
    return TargetCollector(specifiers, resolver).collect(units)


class _UnitTraversal:
    """One pass over a unit's tree with explicit enter/leave events."""

    def __init__(self, collector: TargetCollector, unit: SourceUnit, resolver: UnitResolver):
        self.collector = collector
        self.unit = unit
        self.resolver = resolver
        self.tracker = QualifiedNameTracker(unit.package)
        self.inside_target = False
        self.anonymous_depth = 0

    def run(self):
        stack: List[Tuple[Node, Optional[_Frame]]] = [(self.unit.tree.root_node, None)]
        while stack:
            node, frame = stack.pop()
            if frame is not None:
                self._leave(frame)
                continue
            frame = self._enter(node)
            if frame is not None:
                stack.append((node, frame))
            stack.extend((child, None) for child in reversed(node.children))

        if self.tracker.active:
            raise InternalConsistencyError(f"Unbalanced type traversal in {self.unit.relative_path}")

    def _enter(self, node: Node) -> Optional[_Frame]:
        node_type = node.type
        if node_type in TYPE_KINDS:
            frame = _Frame(_FrameKind.TYPE, self.inside_target)
            if self.tracker.active:
                self.tracker.enter_nested(declaration_name(node))
            else:
                self.tracker.enter_top_level(declaration_name(node))
            return frame

        if is_anonymous_body(node):
            self.anonymous_depth += 1
            return _Frame(_FrameKind.ANONYMOUS, self.inside_target)

        if node_type in CALLABLE_TYPES:
            frame = _Frame(_FrameKind.CALLABLE, self.inside_target)
            if not self.anonymous_depth and self._is_target(node):
                self.inside_target = True
            return frame

        if self.inside_target:
            if node_type in CALL_NODE_TYPES:
                self._record_call(node)
            elif node_type in ('field_access', 'identifier'):
                self._record_field(node)
        return None

    def _leave(self, frame: _Frame):
        if frame.kind is _FrameKind.TYPE:
            self.tracker.exit()
        elif frame.kind is _FrameKind.ANONYMOUS:
            self.anonymous_depth -= 1
        self.inside_target = frame.inside_target

    def _is_target(self, node: Node) -> bool:
        specifier = derive_specifier(self.tracker.current, node)
        if self.collector.match(specifier) is None:
            return False
        try:
            signature = self.resolver.resolve_declaration(node)[0]
        except ResolutionError as error:
            # Declared in a type the index could not name.
            self.collector.record_target(specifier, None)
            self.collector.unresolved.append(UnresolvedReference.from_node(self.unit, node, error.reason))
        else:
            self.collector.record_target(specifier, signature)
        return True

    def _record_call(self, node: Node):
        try:
            self.collector.used.add(self.resolver.resolve(node))
        except ResolutionError as error:
            self.collector.unresolved.append(UnresolvedReference.from_node(self.unit, node, error.reason))

    def _record_field(self, node: Node):
        signature = self.resolver.resolve_field_reference(node)
        if signature is not None:
            self.collector.used.add(signature)


def declared_specifiers(unit: SourceUnit) -> List[str]:
    """Specifiers of every method and constructor declared in named types of a unit."""
    specifiers = []
    for type_decl in unit.all_types():
        for member in type_decl.members:
            if member.kind in (MemberKind.METHOD, MemberKind.CONSTRUCTOR):
                specifiers.append(derive_specifier(type_decl.qualified_name, member.node))
    return specifiers
