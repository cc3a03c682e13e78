"""The two-phase slicing run.

Phase 1 parses the source tree, builds the symbol index and collects Root
and Used from the target units. Phase 2 prunes the target units and emits
the non-empty ones. Phase 2 starts only once Phase 1 has found every target.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from .analyzer.collector import CollectionResult, collect_targets
from .analyzer.extractor import DeclarationExtractor, SourceUnit
from .analyzer.parser import JavaSourceParser
from .analyzer.resolver import MemberResolver
from .analyzer.symbol_index import SymbolIndex
from .reaper.emitter import EmitReport, UnitEmitter
from .reaper.manifest import SliceManifest
from .reaper.pruner import DeclarationPruner, PruneReport
from .utils.safe_console import SafeConsole, quiet_console

ABORT_UNMATCHED = "unmatched-targets"
ABORT_UNRESOLVED = "unresolved-references"


@dataclass
class SliceRequest:
    root: Path
    target_files: List[str]
    target_methods: List[str]
    output_dir: Path
    strict: bool = False
    write_manifest: bool = False
    source_glob: str = "**/*.java"


@dataclass
class SliceResult:
    collection: CollectionResult
    prune_reports: List[PruneReport] = field(default_factory=list)
    emitted: Optional[EmitReport] = None
    manifest_path: Optional[Path] = None
    abort_reason: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self.abort_reason is not None


class SourceTreeLoader:
    """Parses target files and the rest of the source root into units."""

    def __init__(self, root: Path, parser: Optional[JavaSourceParser] = None,
                 console: Optional[SafeConsole] = None):
        self.root = Path(root)
        self.parser = parser or JavaSourceParser()
        self.extractor = DeclarationExtractor()
        self.console = console or quiet_console()

    def load_unit(self, relative_path: str | Path) -> SourceUnit:
        """Parse one file under the root.

        Raises:
            FileNotFoundError: If the file does not exist under the root
        """
        path = self.root / relative_path
        if not path.is_file():
            raise FileNotFoundError(f"Target file not found: {path}")
        tree, source = self.parser.parse_file(path)
        unit = self.extractor.extract(tree, source, Path(relative_path))
        if unit.has_syntax_errors:
            self.console.warn(f"Syntax errors in {relative_path}; parsing recovered")
        return unit

    def load(self, target_files: List[str], source_glob: str,
             exclude: Optional[Path] = None) -> Tuple[List[SourceUnit], List[SourceUnit]]:
        """Target units in the order given, then every other source file.

        Non-target files that cannot be read are skipped with a warning;
        they only feed resolution.
        """
        targets = [self.load_unit(relative) for relative in target_files]
        target_paths = {unit.relative_path.as_posix() for unit in targets}

        others = []
        for path in sorted(self.root.glob(source_glob)):
            if not path.is_file() or not self.parser.accepts(path):
                continue
            if exclude is not None and exclude in path.resolve().parents:
                continue
            relative = path.relative_to(self.root)
            if relative.as_posix() in target_paths:
                continue
            try:
                others.append(self.load_unit(relative))
            except OSError as e:
                self.console.warn(f"Skipping unreadable file {relative}: {e}")
        return targets, others


def run_slice(request: SliceRequest, console: Optional[SafeConsole] = None) -> SliceResult:
    """Slice the target files of ``request`` down to their targets.

    Args:
        request: What to slice and where to write it
        console: Receives progress and warnings (quiet by default)

    Returns:
        SliceResult; ``aborted`` is set when targets are missing, ambiguous,
        or (in strict mode) references are unresolved. Nothing is written then.

    Raises:
        FileNotFoundError: If the root or a target file does not exist
    """
    console = console or quiet_console()
    root = Path(request.root)
    if not root.is_dir():
        raise FileNotFoundError(f"Source root not found: {root}")

    output_dir = Path(request.output_dir)
    loader = SourceTreeLoader(root, console=console)
    targets, others = loader.load(request.target_files, request.source_glob, exclude=output_dir.resolve())
    console.print(f"[cyan]→[/cyan] Parsed {len(targets)} target file(s) and {len(others)} other file(s)")

    index = SymbolIndex.from_units([*targets, *others])
    resolver = MemberResolver(index)
    collection = collect_targets(targets, request.target_methods, resolver)

    for ref in collection.unresolved:
        console.warn(f"{ref.path}:{ref.line}:{ref.column} cannot resolve '{ref.text}': {ref.reason}")

    if not collection.ok:
        return SliceResult(collection, abort_reason=ABORT_UNMATCHED)
    if request.strict and collection.unresolved:
        return SliceResult(collection, abort_reason=ABORT_UNRESOLVED)

    collection = collection.freeze()
    console.print(f"[cyan]→[/cyan] Root: {len(collection.root)}, Used: {len(collection.used)}")

    pruner = DeclarationPruner(collection.root, collection.used, resolver)
    prune_reports = pruner.prune_units(targets)

    output_dir.mkdir(parents=True, exist_ok=True)
    emitted = UnitEmitter(output_dir, console=console).emit(targets)

    result = SliceResult(collection, prune_reports, emitted)
    if request.write_manifest:
        manifest = SliceManifest(output_dir)
        data = manifest.build(root, request.target_methods, collection, prune_reports, emitted)
        result.manifest_path = manifest.write(data)
    return result
