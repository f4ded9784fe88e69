"""Extraction pipeline: runs extractors and assembles a flat unit list."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import CodeIndexConfig, load_config
from .extractors import ExtractionContext, Extractor, discover_extractors
from .logging import get_logger
from .model_names import ModelNameDirectory
from .models import ExtractionError, Unit
from .registry import ComponentRegistry, StaticComponentRegistry


@dataclass
class ExtractorReport:
    """What one extractor produced during a run."""

    name: str
    kind: str
    units: List[Unit] = field(default_factory=list)
    failures: List[ExtractionError] = field(default_factory=list)
    elapsed: float = 0.0


@dataclass
class ExtractionRun:
    """Merged output of a pipeline run."""

    root: Path
    units: List[Unit] = field(default_factory=list)
    failures: List[ExtractionError] = field(default_factory=list)
    dependents: Dict[str, List[Dict[str, str]]] = field(default_factory=dict)
    timings: Dict[str, float] = field(default_factory=dict)

    @property
    def counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for unit in self.units:
            counts[unit.kind] = counts.get(unit.kind, 0) + 1
        return counts

    def units_of(self, kind: str) -> List[Unit]:
        return [unit for unit in self.units if unit.kind == kind]

    def by_kind(self) -> Dict[str, List[Unit]]:
        grouped: Dict[str, List[Unit]] = {}
        for unit in self.units:
            grouped.setdefault(unit.kind, []).append(unit)
        return grouped


class ExtractionPipeline:
    """Coordinates extractors for one application root."""

    def __init__(
        self,
        extractors: Optional[Iterable[Extractor]] = None,
        *,
        registry: ComponentRegistry | None = None,
        concurrent: bool | None = None,
    ) -> None:
        self._extractor_overrides = list(extractors) if extractors is not None else None
        self._registry_override = registry
        self._concurrent_override = concurrent
        self.logger = get_logger("pipeline")

    def run(
        self,
        path: str | Path,
        *,
        enabled: Sequence[str] | None = None,
        config: CodeIndexConfig | None = None,
    ) -> ExtractionRun:
        """Extract every unit under ``path``."""
        root = Path(path).expanduser().resolve()
        config = config if config is not None else load_config(root)
        self.logger.info("Starting extraction for %s", root)

        extractors = self.select_extractors(root, config, enabled)
        concurrent = (
            self._concurrent_override if self._concurrent_override is not None else config.concurrent
        )
        if concurrent and len(extractors) > 1:
            reports = self._run_concurrent(extractors)
        else:
            reports = [self._run_extractor(extractor) for extractor in extractors]

        run = ExtractionRun(root=root)
        for report in reports:
            run.units.extend(report.units)
            run.failures.extend(report.failures)
            run.timings[report.name] = report.elapsed
        run.units = self._deduplicate(run.units)
        run.dependents = resolve_dependents(run.units)
        self.logger.info(
            "Extracted %d units (%d failures) from %s", len(run.units), len(run.failures), root
        )
        return run

    def select_extractors(
        self, root: Path, config: CodeIndexConfig, enabled: Sequence[str] | None = None
    ) -> List[Extractor]:
        if self._extractor_overrides is not None:
            return list(self._extractor_overrides)
        context = self.build_context(root, config)
        requested = enabled if enabled else (config.extractors.enabled or None)
        return discover_extractors(context, requested)

    def build_context(self, root: Path, config: CodeIndexConfig) -> ExtractionContext:
        registry = self._registry_override or build_registry(root, config)
        models = ModelNameDirectory.from_registry(registry)
        self.logger.debug("Model name directory holds %d names", len(models))
        return ExtractionContext(
            root=root,
            registry=registry,
            models=models,
            logger=get_logger("extractors"),
            service_directories=config.services.directories or None,
        )

    # ------------------------------------------------------------------
    # Internal helpers

    def _run_extractor(self, extractor: Extractor) -> ExtractorReport:
        report = ExtractorReport(name=extractor.name, kind=extractor.kind)
        started = time.perf_counter()
        try:
            self._collect(extractor, report)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("Extractor %s failed: %s", extractor.name, exc)
            report.units = []
            report.failures.append(ExtractionError(extractor.kind, extractor.name, exc))
        report.elapsed = time.perf_counter() - started
        self.logger.info(
            "Extracted %d %s units in %.2fs", len(report.units), extractor.name, report.elapsed
        )
        return report

    def _collect(self, extractor: Extractor, report: ExtractorReport) -> None:
        if not extractor.supports():
            self.logger.debug("Skipping %s: required component types are unavailable", extractor.name)
            return
        for outcome in extractor.iter_outcomes():
            if outcome.ok:
                report.units.extend(outcome.units)
            else:
                extractor.log_failure(outcome)
                if outcome.error is not None:
                    report.failures.append(outcome.error)

    def _run_concurrent(self, extractors: Sequence[Extractor]) -> List[ExtractorReport]:
        # Results are collected in submission order, never arrival order.
        with ThreadPoolExecutor(max_workers=len(extractors)) as executor:
            futures = [executor.submit(self._run_extractor, extractor) for extractor in extractors]
            return [future.result() for future in futures]

    def _deduplicate(self, units: Sequence[Unit]) -> List[Unit]:
        kept: List[Unit] = []
        seen: set[Tuple[str, str]] = set()
        dropped: Dict[str, int] = {}
        for unit in units:
            key = (unit.kind, unit.identifier)
            if key in seen:
                dropped[unit.kind] = dropped.get(unit.kind, 0) + 1
                continue
            seen.add(key)
            kept.append(unit)
        for kind, count in dropped.items():
            self.logger.warning("Deduplicated %s: dropped %d duplicate(s)", kind, count)
        return kept


def build_registry(root: Path, config: CodeIndexConfig) -> StaticComponentRegistry:
    """Registry from the configured manifest, else from a source pre-scan."""
    manifest = config.registry.manifest
    if manifest is not None:
        return StaticComponentRegistry.from_manifest(manifest, root=root)
    return StaticComponentRegistry.from_source_tree(root, config.registry.scan_directories)


def resolve_dependents(units: Sequence[Unit]) -> Dict[str, List[Dict[str, str]]]:
    """Reverse edges: target identifier -> units that depend on it."""
    known = {unit.identifier for unit in units}
    dependents: Dict[str, List[Dict[str, str]]] = {}
    for unit in units:
        for edge in unit.dependencies:
            if edge.target not in known:
                continue
            entry = {"type": unit.kind, "identifier": unit.identifier}
            bucket = dependents.setdefault(edge.target, [])
            if entry not in bucket:
                bucket.append(entry)
    return dependents


__all__ = [
    "ExtractionPipeline",
    "ExtractionRun",
    "ExtractorReport",
    "build_registry",
    "resolve_dependents",
]
