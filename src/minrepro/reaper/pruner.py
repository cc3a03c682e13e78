"""Remove every member whose identity is outside Root and Used."""
from dataclasses import dataclass, field
from pathlib import Path
from typing import AbstractSet, List

from ..analyzer.extractor import SourceUnit, TypeDecl
from ..analyzer.resolver import MemberResolver


@dataclass
class RemovedMember:
    owner: str
    kind: str
    signatures: List[str]


@dataclass
class PruneReport:
    relative_path: Path
    removed: List[RemovedMember] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.removed)


class DeclarationPruner:
    """Prunes methods, constructors and fields of target units.

    Nested types are always descended into and never removed themselves;
    initializers, enum constants and other members without an identity are
    kept. A field declaration with several variables is kept when any of
    them is referenced.
    """

    def __init__(self, root: AbstractSet[str], used: AbstractSet[str], resolver: MemberResolver):
        self.retained = frozenset(root) | frozenset(used)
        self.resolver = resolver

    def prune_unit(self, unit: SourceUnit) -> PruneReport:
        unit_resolver = self.resolver.for_unit(unit)
        report = PruneReport(unit.relative_path)
        for type_decl in unit.types:
            self._prune_type(type_decl, unit_resolver, report)
        return report

    def prune_units(self, units: List[SourceUnit]) -> List[PruneReport]:
        return [self.prune_unit(unit) for unit in units]

    def _prune_type(self, type_decl: TypeDecl, unit_resolver, report: PruneReport):
        for member in list(type_decl.members):
            if member.nested is not None:
                self._prune_type(member.nested, unit_resolver, report)
                continue
            if not member.prunable:
                continue
            signatures = unit_resolver.resolve_declaration(member.node)
            if not self._is_retained(signatures):
                type_decl.remove(member)
                report.removed.append(RemovedMember(type_decl.qualified_name, member.kind.name.lower(), signatures))

    def _is_retained(self, signatures: List[str]) -> bool:
        return any(signature in self.retained for signature in signatures)
