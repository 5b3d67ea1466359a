"""Shared fixtures for CLI execution tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Isolate the CLI from the developer's gateway config, env, and .env file."""
    for name in (
        "OPENCLAW_GATEWAY_HOST",
        "OPENCLAW_GATEWAY_PORT",
        "OPENCLAW_GATEWAY_TOKEN",
        "OPENCLAW_TESCMD_VIN",
        "OPENCLAW_TESCMD_DEBUG",
        "OPENCLAW_TESCMD_TRIGGER_POLL_INTERVAL_MS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    return tmp_path
