import pytest

from src.core import config_manager


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the process-wide configuration at an empty directory"""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    monkeypatch.setenv("CONFIG_DIR", str(config_dir))
    monkeypatch.delenv("TEST_RUNNER_CODE", raising=False)
    monkeypatch.delenv("TEST_RUNNER_TESTS", raising=False)
    monkeypatch.delenv("TEST_RUNNER_MAX_BLOCK_MS", raising=False)
    monkeypatch.setattr(config_manager, "_config_manager", None)
    return config_dir
