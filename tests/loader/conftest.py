"""Fixtures shared by the configuration loader tests."""

from pathlib import Path

import pytest


@pytest.fixture
def fixtures_dir():
    """Path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Keep a stray ./submitsync.yaml out of the merged result."""
    monkeypatch.chdir(tmp_path)
