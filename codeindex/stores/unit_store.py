"""JSON output for extraction runs."""

from __future__ import annotations

import hashlib
import json
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, List

from ..logging import get_logger
from ..models import Unit
from ..pipeline import ExtractionRun

INDEX_FILENAME = "_index.json"
MANIFEST_FILENAME = "manifest.json"
DEPENDENCY_GRAPH_FILENAME = "dependency_graph.json"

_UNSAFE_CHARACTERS = re.compile(r"[^a-zA-Z0-9_-]")


def collision_safe_filename(identifier: str) -> str:
    """``Admin::UsersController`` -> ``Admin__UsersController_<sha8>.json``.

    The digest suffix keeps identifiers that sanitise to the same stem apart.
    """
    stem = _UNSAFE_CHARACTERS.sub("_", identifier.replace("::", "__"))
    digest = hashlib.sha256(identifier.encode("utf-8")).hexdigest()[:8]
    return f"{stem}_{digest}.json"


class UnitStore:
    """Writes one JSON document per unit plus per-kind indexes and a run manifest."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = output_dir
        self.logger = get_logger("stores")

    def write(self, run: ExtractionRun) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        for kind, units in run.by_kind().items():
            self._write_kind(kind, units)
        self._write_json(self.output_dir / DEPENDENCY_GRAPH_FILENAME, run.dependents)
        self._write_json(self.output_dir / MANIFEST_FILENAME, self.manifest(run))
        self.logger.info("Wrote %d units to %s", len(run.units), self.output_dir)
        return self.output_dir

    def unit_path(self, unit: Unit) -> Path:
        return self.output_dir / unit.kind / collision_safe_filename(unit.identifier)

    @staticmethod
    def manifest(run: ExtractionRun) -> Dict[str, Any]:
        return {
            "root": str(run.root),
            "extracted_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "counts": run.counts,
            "total_units": len(run.units),
            "failures": [
                {"kind": error.kind, "subject": error.subject, "error": str(error.cause)}
                for error in run.failures
            ],
        }

    # ------------------------------------------------------------------
    # Internal helpers

    def _write_kind(self, kind: str, units: List[Unit]) -> None:
        kind_dir = self.output_dir / kind
        kind_dir.mkdir(parents=True, exist_ok=True)
        for unit in units:
            self._write_json(self.unit_path(unit), unit.to_dict())
        index = [
            {
                "identifier": unit.identifier,
                "file_path": unit.file_path,
                "namespace": unit.namespace,
                "estimated_tokens": unit.estimated_tokens,
            }
            for unit in units
        ]
        self._write_json(kind_dir / INDEX_FILENAME, index)

    @staticmethod
    def _write_json(path: Path, payload: object) -> None:
        path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")


__all__ = ["UnitStore", "collision_safe_filename"]
