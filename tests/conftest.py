"""Root test configuration: isolate each test from local config and environment"""

import os

import pytest

from atlasdoc.config import ENV_PREFIX


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Run every test in an empty directory with no ATLASDOC_* variables set."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name)
    yield tmp_path
