"""Pytest configuration and shared fixtures for the epub2txt test suite."""

import logging
import os
from pathlib import Path
from typing import Generator

import pytest
from hypothesis import Phase, Verbosity, settings

# Register custom Hypothesis profiles
settings.register_profile("ci", max_examples=100, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=20)
settings.register_profile(
    "debug", max_examples=10, verbosity=Verbosity.verbose, phases=[Phase.explicit, Phase.reuse, Phase.generate]
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests - fast, isolated component tests")
    config.addinivalue_line("markers", "integration: Integration tests - component interaction tests")
    config.addinivalue_line("markers", "security: Security-focused tests (path traversal, archive limits)")
    config.addinivalue_line("markers", "fuzzing: Property-based tests using Hypothesis")
    config.addinivalue_line("markers", "cli: Tests related to command-line interface")


@pytest.fixture
def temp_dir(tmp_path: Path) -> Generator[Path, None, None]:
    """Provide a canonical temporary directory for test files.

    Yields
    ------
    Path
        Resolved temporary directory path, removed by pytest afterwards.

    """
    yield tmp_path.resolve()


@pytest.fixture
def sandbox_base(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point sandbox creation at a private directory so leftovers can be detected."""
    base = temp_dir / "sandboxes"
    base.mkdir()
    monkeypatch.setenv("EPUB2TXT_TMPDIR", str(base))
    return base


@pytest.fixture(autouse=True)
def _reset_root_logger() -> Generator[None, None, None]:
    """Restore root logger handlers replaced by CLI tests."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
