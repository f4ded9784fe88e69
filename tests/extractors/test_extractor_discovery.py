"""Tests for extractor discovery utilities."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from codeindex.extractors import (
    ChannelExtractor,
    ExtractionContext,
    Extractor,
    ScheduledJobExtractor,
    ServiceExtractor,
    ViewComponentExtractor,
    discover_extractors,
)


class DummyExtractor(Extractor):
    """Test extractor used for plugin discovery validation."""

    name = "dummy"
    kind = "dummy"

    def iter_outcomes(self):  # pragma: no cover - unused
        return iter(())


def test_discover_extractors_returns_builtins_in_fixed_order(tmp_path: Path) -> None:
    extractors = discover_extractors(ExtractionContext(root=tmp_path))

    assert [type(extractor) for extractor in extractors][:4] == [
        ChannelExtractor,
        ScheduledJobExtractor,
        ServiceExtractor,
        ViewComponentExtractor,
    ]


def test_discover_extractors_respects_enabled_filter(tmp_path: Path) -> None:
    extractors = discover_extractors(ExtractionContext(root=tmp_path), ["Services"])

    assert len(extractors) == 1
    assert isinstance(extractors[0], ServiceExtractor)


def test_discover_extractors_loads_entry_points(tmp_path: Path, monkeypatch) -> None:
    dummy_entry = SimpleNamespace(name="dummy", load=lambda: DummyExtractor)

    class DummyEntryPoints(list):
        def select(self, **kwargs):
            if kwargs.get("group") == "codeindex.extractors":
                return self
            return []

    monkeypatch.setattr(
        "codeindex.extractors.metadata.entry_points",
        lambda: DummyEntryPoints([dummy_entry]),
        raising=False,
    )

    context = ExtractionContext(root=tmp_path)
    extractors = discover_extractors(context, ["dummy"])

    assert len(extractors) == 1
    assert isinstance(extractors[0], DummyExtractor)
    assert extractors[0].context is context


def test_discover_extractors_raises_for_unknown_name(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        discover_extractors(ExtractionContext(root=tmp_path), ["routes"])
