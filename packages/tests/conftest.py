"""Pytest configuration and shared fixtures."""

import pytest

# The watchrate testing plugin is registered via a ``pytest11`` entry
# point (pyproject.toml) for external consumers.  In our own test
# suite we disable it (``-p no:watchrate``) and load it explicitly
# here instead, so the watchrate import chain happens after
# ``pytest-cov`` starts tracing.
pytest_plugins = ["watchrate.testing._plugin"]


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (real database files, CLI end to end)"
    )
