# tests/conftest.py
import logging
import os
from unittest.mock import MagicMock

import pytest

from installer.config_models import AppSettings


@pytest.fixture(autouse=True)
def clean_installer_environment(monkeypatch):
    """Keep NEXTCLOUD_* variables of the test host out of the settings."""
    for key in list(os.environ):
        if key.startswith("NEXTCLOUD_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def app_settings():
    """AppSettings with the installer defaults and a short prompt timeout."""
    return AppSettings(prompt_timeout=1)


@pytest.fixture
def quiet_settings():
    return AppSettings(verbose=False, prompt_timeout=1)


@pytest.fixture
def mock_logger():
    """Fixture to create a mock logger for testing."""
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def completed_process():
    """Factory for fake subprocess.CompletedProcess results."""

    def _make(returncode=0, stdout="", stderr=""):
        return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)

    return _make
