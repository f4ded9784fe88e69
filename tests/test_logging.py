"""Tests for codeindex.logging."""

from __future__ import annotations

import logging
from pathlib import Path

from codeindex.extractors.base import ExtractionContext
from codeindex.extractors.services import ServiceExtractor
from codeindex.logging import FailureTally, configure_logging, extractor_logger, get_logger


def test_extractors_log_through_their_own_child_logger(tmp_path: Path) -> None:
    extractor = ServiceExtractor(ExtractionContext(root=tmp_path))

    assert extractor.logger.name == "codeindex.extractors.services"
    assert extractor_logger(get_logger("extractors"), "") is get_logger("extractors")


def test_failure_tally_counts_errors_per_extractor() -> None:
    tally = FailureTally()
    logger = get_logger()
    logger.addHandler(tally)
    try:
        get_logger("extractors.services").error("Failed to extract service a.rb: boom")
        get_logger("extractors.services").error("Failed to extract service b.rb: boom")
        get_logger("extractors.channels").warning("not counted")
        get_logger("pipeline").error("Extractor exploding failed: boom")
    finally:
        logger.removeHandler(tally)

    assert tally.counts == {"services": 2, "pipeline": 1}
    assert tally.summary() == ["pipeline: 1 failure(s)", "services: 2 failure(s)"]


def test_configure_logging_applies_per_logger_levels(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "codeindex.log"

    configure_logging(log_file=log_file, levels={"extractors.services": "WARNING"})
    get_logger("extractors.services").info("hidden")
    get_logger("extractors.channels").info("shown")

    assert get_logger("extractors.services").level == logging.WARNING
    for handler in get_logger().handlers:
        handler.flush()
    text = log_file.read_text(encoding="utf-8")
    assert "shown" in text
    assert "hidden" not in text
