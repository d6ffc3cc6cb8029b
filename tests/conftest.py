from __future__ import annotations

import logging
from pathlib import Path

import pytest

from pdfdocs.config import BuildConfig, load_config


@pytest.fixture(autouse=True)
def _reset_pdfdocs_logger():
    """Undo configure_logging so caplog sees pdfdocs records in every test."""
    yield
    logger = logging.getLogger("pdfdocs")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def config(tmp_path: Path) -> BuildConfig:
    """Provide a configuration rooted at the pytest tmp_path."""
    build_root = tmp_path / "build"
    build_root.mkdir()
    (build_root / "docs.julialang.org").mkdir()
    (build_root / "julia").mkdir()
    return load_config(
        tmp_path, environ={"BUILDROOT": str(build_root), "TRAVIS_PULL_REQUEST": "false"}
    )
