"""Shared test configuration and fixtures."""

import logging
from pathlib import Path

import pytest

from releasepack.cli import cleanup_logging
from releasepack.config import ReleasePackConfig, TrackerConfig


@pytest.fixture(scope="function", autouse=True)
def cleanup_logging_handlers():
    """Automatically cleanup logging handlers after each test to prevent ResourceWarnings."""
    yield
    cleanup_logging()


@pytest.fixture(scope="function", autouse=True)
def reset_logging():
    """Reset logging configuration after each test."""
    yield
    # Clear all handlers and reset to default
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)
    # Reset logging level
    root_logger.setLevel(logging.WARNING)


@pytest.fixture
def config(tmp_path):
    """Configuration rooted in a temporary base directory."""
    return ReleasePackConfig(base_dir=tmp_path / "base", concurrency_limit=2, spectrograms=False)


@pytest.fixture
def tracker():
    """A default tracker with no filters."""
    return TrackerConfig(name="ex", tracker="https://tracker.example.org/announce")


@pytest.fixture
def make_files():
    """Factory creating files (and parents) under a root directory."""

    def create(root: Path, *relative_paths: str, content: bytes = b"data") -> list[Path]:
        created = []
        for relative in relative_paths:
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
            created.append(path)
        return created

    return create
