from __future__ import annotations

from pathlib import Path

from subharvest.logging_conf import (
    APP_LOGGER,
    _dict_config,
    configure_logging,
    default_log_path,
    tail_log,
)


def test_configure_logging_creates_log_files(isolated_home: Path) -> None:
    logger = configure_logging()

    assert default_log_path() == isolated_home.resolve() / "logs" / "subharvest.log"
    assert default_log_path().exists()
    assert (isolated_home / "logs" / "error.log").exists()
    assert hasattr(logger, "bind")


def test_tail_log_returns_last_lines(tmp_path: Path) -> None:
    path = tmp_path / "app.log"
    path.write_text("".join(f"line {i}\n" for i in range(10)), encoding="utf-8")

    assert tail_log(path, 3) == ["line 7\n", "line 8\n", "line 9\n"]
    assert tail_log(tmp_path / "missing.log") == []


def test_file_handlers_keep_their_levels_when_verbose(isolated_home: Path) -> None:
    config = _dict_config("DEBUG")

    handlers = config["handlers"]
    assert handlers["console"]["level"] == "DEBUG"
    assert handlers["runs"]["level"] == "INFO"
    assert handlers["runs"]["filename"] == str(default_log_path())
    assert handlers["errors"]["level"] == "ERROR"
    assert handlers["errors"]["filename"].endswith("error.log")
    assert config["loggers"][APP_LOGGER]["propagate"] is False
