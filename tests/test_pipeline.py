"""Tests for the extraction pipeline."""

from __future__ import annotations

import logging
from typing import Iterator, List

import pytest

from codeindex.extractors.base import ExtractionContext, Extractor
from codeindex.extractors.scheduled_jobs import ScheduledJobExtractor
from codeindex.models import DependencyEdge, ExtractionOutcome, Unit
from codeindex.pipeline import ExtractionPipeline, resolve_dependents
from tests._fixtures.rails_app import RailsAppBuilder


class StaticExtractor(Extractor):
    """Yields pre-built outcomes."""

    def __init__(self, context: ExtractionContext, name: str, outcomes: List[ExtractionOutcome]) -> None:
        super().__init__(context)
        self.name = name
        self.kind = name
        self._outcomes = outcomes

    def iter_outcomes(self) -> Iterator[ExtractionOutcome]:
        return iter(self._outcomes)


def _write_app(rails_app: RailsAppBuilder) -> None:
    rails_app.write(
        {
            "app/channels/application_cable/channel.rb": """
            module ApplicationCable
              class Channel < ActionCable::Channel::Base
              end
            end
            """,
            "app/channels/chat_channel.rb": """
            class ChatChannel < ApplicationCable::Channel
              def speak(data)
                ModerationService.call(data)
              end
            end
            """,
            "app/services/moderation_service.rb": """
            class ModerationService
              def self.call(data)
                new.call(data)
              end

              def call(data)
                CleanupJob.perform_later(data)
              end
            end
            """,
            "app/services/audit_service.rb": "class AuditService\nend\n",
            "config/recurring.yml": """
            cleanup:
              class: CleanupJob
              schedule: every hour
            """,
        }
    )


def test_pipeline_runs_builtin_extractors(rails_app: RailsAppBuilder) -> None:
    _write_app(rails_app)

    run = ExtractionPipeline().run(rails_app.path())

    assert run.counts == {"channel": 1, "scheduled_job": 1, "service": 2}
    assert [unit.identifier for unit in run.units_of("service")] == [
        "AuditService",
        "ModerationService",
    ]
    assert run.failures == []
    assert run.dependents["ModerationService"] == [{"type": "channel", "identifier": "ChatChannel"}]
    assert set(run.timings) == {"channels", "scheduled_jobs", "services", "view_components"}


def test_pipeline_honours_enabled_extractors(rails_app: RailsAppBuilder) -> None:
    _write_app(rails_app)

    run = ExtractionPipeline().run(rails_app.path(), enabled=["scheduled_jobs"])

    assert [unit.identifier for unit in run.units] == ["scheduled:cleanup"]


def test_pipeline_concurrent_mode_matches_sequential(rails_app: RailsAppBuilder) -> None:
    _write_app(rails_app)

    sequential = ExtractionPipeline(concurrent=False).run(rails_app.path())
    concurrent = ExtractionPipeline(concurrent=True).run(rails_app.path())

    assert [u.identifier for u in concurrent.units] == [u.identifier for u in sequential.units]


def test_pipeline_isolates_failures_and_dedupes(
    rails_app: RailsAppBuilder, caplog: pytest.LogCaptureFixture
) -> None:
    context = ExtractionContext(root=rails_app.path())
    first = Unit(kind="widget", identifier="Shared", metadata={"n": 1})
    shadow = Unit(kind="widget", identifier="Shared", metadata={"n": 2})
    other = Unit(kind="gadget", identifier="Shared")
    extractors = [
        StaticExtractor(
            context,
            "widget",
            [
                ExtractionOutcome.success("widget", "a", [first]),
                ExtractionOutcome.failure("widget", "b", RuntimeError("bad input")),
                ExtractionOutcome.success("widget", "c", [shadow]),
            ],
        ),
        StaticExtractor(context, "gadget", [ExtractionOutcome.success("gadget", "d", [other])]),
    ]

    with caplog.at_level(logging.INFO, logger="codeindex"):
        run = ExtractionPipeline(extractors).run(rails_app.path())

    assert run.units == [first, other]
    assert run.units[0].metadata["n"] == 1
    assert [(error.kind, error.subject) for error in run.failures] == [("widget", "b")]
    assert "Failed to extract unit b: bad input" in caplog.text
    assert "Deduplicated widget: dropped 1 duplicate(s)" in caplog.text


def test_resolve_dependents_ignores_unknown_targets() -> None:
    units = [
        Unit(kind="service", identifier="A", dependencies=[DependencyEdge("service", "B")]),
        Unit(
            kind="channel",
            identifier="C",
            dependencies=[DependencyEdge("service", "B"), DependencyEdge("model", "User")],
        ),
        Unit(kind="service", identifier="B"),
    ]

    assert resolve_dependents(units) == {
        "B": [
            {"type": "service", "identifier": "A"},
            {"type": "channel", "identifier": "C"},
        ]
    }


def test_pipeline_uses_registry_manifest_from_config(rails_app: RailsAppBuilder) -> None:
    rails_app.write(
        {
            ".codeindex.yml": """
            registry:
              manifest: config/components.yml
            extractors:
              enabled: [channels]
            """,
            "config/components.yml": """
            components:
              - name: PresenceChannel
                superclass: ActionCable::Channel::Base
                methods: [appear, away]
            """,
        }
    )

    run = ExtractionPipeline().run(rails_app.path())

    assert [unit.identifier for unit in run.units] == ["PresenceChannel"]
    assert list(run.units[0].metadata["actions"]) == ["appear", "away"]


class EnumerationFailingExtractor(Extractor):
    """Raises before yielding any outcome."""

    name = "exploding"
    kind = "widget"

    def iter_outcomes(self) -> Iterator[ExtractionOutcome]:
        raise RuntimeError("enumeration failed")


@pytest.mark.parametrize("concurrent", [False, True])
def test_extractor_crash_does_not_abort_run(
    rails_app: RailsAppBuilder, caplog: pytest.LogCaptureFixture, concurrent: bool
) -> None:
    rails_app.write({"config/sidekiq_cron.yml": "nightly:\n  class: NightlyJob\n  cron: \"0 0 * * *\"\n"})
    context = ExtractionContext(root=rails_app.path())
    extractors = [EnumerationFailingExtractor(context), ScheduledJobExtractor(context)]

    with caplog.at_level(logging.ERROR, logger="codeindex"):
        run = ExtractionPipeline(extractors, concurrent=concurrent).run(rails_app.path())

    assert [unit.identifier for unit in run.units] == ["scheduled:nightly"]
    assert [(error.kind, error.subject) for error in run.failures] == [("widget", "exploding")]
    assert "Extractor exploding failed: enumeration failed" in caplog.text
    assert set(run.timings) == {"exploding", "scheduled_jobs"}
