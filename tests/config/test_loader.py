from __future__ import annotations

from pathlib import Path

import pytest

from subharvest.config.loader import ConfigLocator, ConfigRepository
from subharvest.config.models import GlobalConfig
from subharvest.errors import ConfigurationError


def test_config_locator_uses_env_and_creates_directories(isolated_home: Path) -> None:
    locator = ConfigLocator()
    assert locator.project_root == isolated_home.resolve()
    assert locator.data_dir.is_dir()
    assert locator.logs_dir.is_dir()
    assert locator.global_config_path() == locator.data_dir / "global_config.yaml"


def test_config_locator_falls_back_to_project_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SUBHARVEST_HOME", raising=False)
    locator = ConfigLocator(project_root=tmp_path)
    assert locator.data_dir == (tmp_path / "data").resolve()


def test_repository_creates_defaults_on_first_load() -> None:
    repo = ConfigRepository()
    config = repo.load_global_config()
    assert config == GlobalConfig()
    assert repo.locator.global_config_path().exists()


def test_repository_roundtrip() -> None:
    repo = ConfigRepository()
    config = GlobalConfig(default_workers=7, user_agent="Clash/1.0", proxy="http://127.0.0.1:7890")
    repo.save_global_config(config)

    fresh = ConfigRepository().load_global_config()
    assert fresh == config


def test_repository_database_path_is_under_home(isolated_home: Path) -> None:
    repo = ConfigRepository()
    assert repo.database_path() == (isolated_home / "data" / "subharvest.db").resolve()


def test_repository_rejects_invalid_file() -> None:
    locator = ConfigLocator()
    locator.global_config_path().write_text("default_workers: 99\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        ConfigRepository(locator).load_global_config()

    locator.global_config_path().write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        ConfigRepository(locator).load_global_config()
