"""Base classes for extractor plugins."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Sequence

from ..logging import extractor_logger, get_logger
from ..model_names import ModelNameDirectory
from ..models import ExtractionOutcome, Unit
from ..registry import ComponentRegistry
from .patterns import DependencyScanner


@dataclass
class ExtractionContext:
    """Capabilities handed to every extractor at construction."""

    root: Path
    registry: Optional[ComponentRegistry] = None
    models: ModelNameDirectory = field(default_factory=ModelNameDirectory)
    logger: logging.Logger = field(default_factory=lambda: get_logger("extractors"))
    service_directories: Optional[Sequence[str]] = None

    def scanner(self) -> DependencyScanner:
        return DependencyScanner(self.models)


class Extractor(ABC):
    """Contract for extractors that turn component definitions into units."""

    name: str = ""
    kind: str = ""
    # Used in failure messages: "Failed to extract <label> <subject>".
    label: str = "unit"

    def __init__(self, context: ExtractionContext) -> None:
        self.context = context
        self.root = context.root
        self.logger = extractor_logger(context.logger, self.name)
        self.scanner = context.scanner()

    def supports(self) -> bool:
        """Return False when the collaborators this extractor needs are absent."""
        return True

    @abstractmethod
    def iter_outcomes(self) -> Iterator[ExtractionOutcome]:
        """Yield one outcome per candidate, in a stable order."""

    def extract_all(self) -> List[Unit]:
        """Successful units only; failures are logged and dropped."""
        units: List[Unit] = []
        for outcome in self.iter_outcomes():
            if outcome.ok:
                units.extend(outcome.units)
            else:
                self.log_failure(outcome)
        return units

    def log_failure(self, outcome: ExtractionOutcome) -> None:
        cause = outcome.error.cause if outcome.error is not None else None
        self.logger.error("Failed to extract %s %s: %s", self.label, outcome.subject, cause)

    def attempt(self, subject: str, build: Callable[[], Iterable[Unit]]) -> ExtractionOutcome:
        """Run ``build`` and capture any exception as a failed outcome."""
        try:
            units = list(build())
        except Exception as exc:  # noqa: BLE001
            return ExtractionOutcome.failure(self.kind, subject, exc)
        return ExtractionOutcome.success(self.kind, subject, units)

    def relative(self, path: Path) -> str:
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return path.as_posix()


__all__ = ["ExtractionContext", "Extractor"]
