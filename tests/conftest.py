from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from tests._fixtures.rails_app import RailsAppBuilder


@pytest.fixture
def rails_app(tmp_path: Path) -> RailsAppBuilder:
    """Provide a reusable application builder rooted at the pytest tmp_path."""
    return RailsAppBuilder(tmp_path)


@pytest.fixture(autouse=True)
def _reset_codeindex_logger() -> Iterator[None]:
    """Undo handler and propagation changes made by ``configure_logging``."""
    yield
    logger = logging.getLogger("codeindex")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    for name, child in logging.root.manager.loggerDict.items():
        if name.startswith("codeindex.") and isinstance(child, logging.Logger):
            child.setLevel(logging.NOTSET)
