"""Write pruned units under the output directory."""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from ..analyzer.extractor import ItemKind, SourceUnit
from ..utils.safe_console import SafeConsole, quiet_console
from .rewriter import SourceRewriter


def is_empty_unit(unit: SourceUnit) -> bool:
    """True when a unit holds nothing but a package declaration and empty types.

    Imports and any other top-level content keep the unit. Comments are not
    content.
    """
    for item in unit.items:
        if item.kind is ItemKind.PACKAGE:
            continue
        if item.kind is ItemKind.TYPE and item.type_decl.is_empty:
            continue
        return False
    return True


@dataclass
class WriteFailure:
    relative_path: Path
    output_path: Path
    error: str


@dataclass
class EmitReport:
    written: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    failures: List[WriteFailure] = field(default_factory=list)


class UnitEmitter:
    """Mirror each non-empty unit at ``output_dir / relative_path``."""

    def __init__(self, output_dir: str | Path, rewriter: Optional[SourceRewriter] = None,
                 console: Optional[SafeConsole] = None):
        self.output_dir = Path(output_dir)
        self.rewriter = rewriter or SourceRewriter()
        self.console = console or quiet_console()

    def output_path(self, unit: SourceUnit) -> Path:
        return self.output_dir / unit.relative_path

    def emit(self, units: Iterable[SourceUnit]) -> EmitReport:
        """Write every non-empty unit; a failed write is reported and skipped.

        Returns:
            EmitReport with written paths, units dropped as empty and failures
        """
        report = EmitReport()
        for unit in units:
            if is_empty_unit(unit):
                report.skipped.append(unit.relative_path)
                continue

            target = self.output_path(unit)
            try:
                content = self.rewriter.render_bytes(unit)
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(content)
            except (OSError, UnicodeError) as e:
                self.console.warn(f"Failed to write {target}: {e}")
                report.failures.append(WriteFailure(unit.relative_path, target, str(e)))
                continue
            report.written.append(target)
        return report
