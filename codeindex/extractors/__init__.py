"""Extractor plugin implementations and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Iterable, List, Sequence, Set

from .base import ExtractionContext, Extractor
from .channels import ChannelExtractor
from .scheduled_jobs import ScheduledJobExtractor
from .services import ServiceExtractor
from .view_components import ViewComponentExtractor

_ENTRY_POINT_GROUP = "codeindex.extractors"

ExtractorFactory = Callable[[ExtractionContext], Extractor]

_BUILTIN_FACTORIES: dict[str, ExtractorFactory] = {
    "channels": ChannelExtractor,
    "scheduled_jobs": ScheduledJobExtractor,
    "services": ServiceExtractor,
    "view_components": ViewComponentExtractor,
}

BUILTIN_EXTRACTORS = tuple(_BUILTIN_FACTORIES)


def discover_extractors(
    context: ExtractionContext, enabled: Sequence[str] | None = None
) -> List[Extractor]:
    """Return instantiated extractors in a fixed order, honoring optional enabled names."""

    enabled_set: Set[str] | None = None
    if enabled is not None:
        enabled_set = {name.lower() for name in enabled}

    extractors: List[Extractor] = []
    seen: Set[str] = set()

    def _add(name: str, factory: ExtractorFactory) -> None:
        key = name.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in seen:
            return
        instance = factory(context)
        if not isinstance(instance, Extractor):
            raise TypeError(f"Extractor factory for '{name}' did not return an Extractor instance")
        extractors.append(instance)
        seen.add(key)
        if enabled_set is not None:
            enabled_set.discard(key)

    for name, factory in _BUILTIN_FACTORIES.items():
        _add(name, factory)

    for entry in _iter_entry_points():
        name = entry.name
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - depends on installed plugins
            raise RuntimeError(f"Failed to load extractor entry point '{name}': {exc}") from exc

        def _factory(ctx: ExtractionContext, obj: object = loaded) -> Extractor:
            return _coerce_extractor(obj, ctx)

        _add(name, _factory)

    if enabled_set:
        missing = ", ".join(sorted(enabled_set))
        raise ValueError(f"Unknown extractors requested: {missing}")

    return extractors


def _coerce_extractor(obj: object, context: ExtractionContext) -> Extractor:
    if isinstance(obj, Extractor):
        return obj
    if callable(obj):
        instance = obj(context)
        if isinstance(instance, Extractor):
            return instance
    raise TypeError("Extractor entry point must be an Extractor subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    entry_points = metadata.entry_points()
    if hasattr(entry_points, "select"):
        return entry_points.select(group=_ENTRY_POINT_GROUP)  # type: ignore[return-value]
    return entry_points.get(_ENTRY_POINT_GROUP, [])  # type: ignore[return-value]


__all__ = [
    "BUILTIN_EXTRACTORS",
    "ChannelExtractor",
    "ExtractionContext",
    "Extractor",
    "ScheduledJobExtractor",
    "ServiceExtractor",
    "ViewComponentExtractor",
    "discover_extractors",
]
