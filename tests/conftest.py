"""Pytest configuration for subagent tests."""

import pytest

from subagent.logging_config import configure_logging

configure_logging("DEBUG")


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path):
    """Keep tests away from the user's ~/.subagent config and env files."""
    monkeypatch.setenv("SUBAGENT_CONFIG_PATH", str(tmp_path / "no-config.yml"))
    monkeypatch.setenv("SUBAGENT_ENV_PATH", str(tmp_path / "no.env"))
    monkeypatch.setenv("SUBAGENT_LOG_LEVEL", "DEBUG")
    yield
    # The CLI rebinds handlers to whatever stderr capsys installed
    configure_logging("DEBUG")


def pytest_collection_modifyitems(config, items):
    """Set per-marker timeouts: unit=1s, integration=5s."""
    for item in items:
        if "unit" in item.keywords:
            item.add_marker(pytest.mark.timeout(1))
        elif "integration" in item.keywords:
            item.add_marker(pytest.mark.timeout(5))
