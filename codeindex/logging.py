"""Logger hierarchy for codeindex runs.

Every extractor logs through its own child logger
(``codeindex.extractors.<name>``), so verbosity can be tuned per extractor
from ``.codeindex.yml`` and failures can be tallied per extractor.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Mapping

_LOGGER_NAME = "codeindex"

LEVELS: Dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the codeindex hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def extractor_logger(parent: logging.Logger, extractor_name: str) -> logging.Logger:
    """Child of ``parent`` dedicated to one extractor."""
    return parent.getChild(extractor_name) if extractor_name else parent


class FailureTally(logging.Handler):
    """Counts error records per emitting logger below ``codeindex``."""

    def __init__(self) -> None:
        super().__init__(level=logging.ERROR)
        self.counts: Dict[str, int] = {}

    def emit(self, record: logging.LogRecord) -> None:
        source = record.name
        for prefix in (f"{_LOGGER_NAME}.extractors.", f"{_LOGGER_NAME}."):
            if source.startswith(prefix):
                source = source[len(prefix):]
                break
        self.counts[source] = self.counts.get(source, 0) + 1

    def summary(self) -> list[str]:
        return [f"{source}: {count} failure(s)" for source, count in sorted(self.counts.items())]


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    levels: Mapping[str, str] | None = None,
) -> logging.Logger:
    """Configure the codeindex logger with console output and optional file sink.

    ``levels`` maps logger names relative to ``codeindex`` (for example
    ``extractors.services``) to one of :data:`LEVELS`.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("[codeindex] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    for name, name_level in (levels or {}).items():
        get_logger(name).setLevel(LEVELS[name_level.lower()])

    return logger


__all__ = ["FailureTally", "LEVELS", "configure_logging", "extractor_logger", "get_logger"]
