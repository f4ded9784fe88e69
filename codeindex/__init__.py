"""Structural index of a Rails application's components."""

from .models import DependencyEdge, ExtractionError, ExtractionOutcome, Unit, UnitKind
from .pipeline import ExtractionPipeline, ExtractionRun

__all__ = [
    "DependencyEdge",
    "ExtractionError",
    "ExtractionOutcome",
    "ExtractionPipeline",
    "ExtractionRun",
    "Unit",
    "UnitKind",
]
