from __future__ import annotations

import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.append(ROOT)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    """Point every test at an empty settings file and clear env overrides."""

    settings = tmp_path / "settings.toml"
    monkeypatch.setenv("AYUSKEY_SETTINGS_PATH", str(settings))
    for name in ("AYUSKEY_ORIGIN", "AYUSKEY_TOKEN", "AYUSKEY_TIMEOUT", "AYUSKEY_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return settings
