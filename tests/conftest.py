"""Shared pytest fixtures for lexsync tests."""

from __future__ import annotations

import pytest
from helpers import FakeBackend

from lexsync.config import Config


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def project_config(tmp_path):
    """A validated-looking Config rooted at a temporary directory."""
    return Config(project_root=str(tmp_path), user="Tester")
