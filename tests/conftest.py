from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from marlin import build_info  # noqa: E402
from marlin.config import get_settings, get_viewer_settings  # noqa: E402

build_info.BUILD_FLAVOR = os.environ.get("MARLIN_TEST_BUILD_FLAVOR", "test")


@pytest.fixture(autouse=True)
def reset_settings_env(monkeypatch, tmp_path):
    # Keep a developer's .env out of the suite.
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    get_viewer_settings.cache_clear()
    yield
    get_settings.cache_clear()
    get_viewer_settings.cache_clear()


@pytest.fixture
def anyio_backend():
    return "asyncio"
