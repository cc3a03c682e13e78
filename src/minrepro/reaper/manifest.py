"""Slice manifest: a JSON record of what a run kept and removed."""
import json
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from ..analyzer.collector import CollectionResult
from ..config import __version__
from .emitter import EmitReport
from .pruner import PruneReport

MANIFEST_VERSION = "1.0"


class SliceManifest:
    """Manage the JSON manifest written next to the sliced files."""

    FILENAME = "slice-manifest.json"

    def __init__(self, output_dir: str | Path):
        """Initialize manifest.

        Args:
            output_dir: Directory that receives the sliced files
        """
        self.output_dir = Path(output_dir)
        self.manifest_path = self.output_dir / self.FILENAME

    def build(self, source_root: Path, targets: List[str], collection: CollectionResult,
              prune_reports: List[PruneReport], emit_report: EmitReport) -> Dict:
        """Assemble the manifest dictionary for one run."""
        written = {self._relative(p) for p in emit_report.written}
        failed = {f.relative_path.as_posix(): f.error for f in emit_report.failures}
        units = []
        for report in prune_reports:
            path = report.relative_path.as_posix()
            if path in written:
                status = "written"
            elif path in failed:
                status = "failed"
            else:
                status = "empty"
            record = {
                "path": path,
                "status": status,
                "removed": [asdict(member) for member in report.removed],
            }
            if status == "failed":
                record["error"] = failed[path]
            units.append(record)

        return {
            "version": MANIFEST_VERSION,
            "tool_version": __version__,
            "created_at": datetime.now().isoformat(),
            "source_root": str(source_root),
            "targets": list(targets),
            "matches": dict(collection.matches),
            "root": sorted(collection.root),
            "used": sorted(collection.used),
            "unresolved": [asdict(ref) for ref in collection.unresolved],
            "units": units,
        }

    def write(self, data: Dict) -> Path:
        """Write manifest to disk atomically.

        Args:
            data: Manifest dictionary to write

        Returns:
            Path of the manifest file
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        temp_path = self.manifest_path.with_suffix('.tmp')
        with open(temp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        temp_path.replace(self.manifest_path)
        return self.manifest_path

    def read(self) -> Optional[Dict]:
        """Read the manifest, or None when it is missing or unreadable."""
        try:
            with open(self.manifest_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError):
            return None

    def _relative(self, path: Path) -> str:
        return Path(path).relative_to(self.output_dir).as_posix()
