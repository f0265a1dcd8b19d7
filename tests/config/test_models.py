from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from subharvest.config import FetchMode, GlobalConfig, build_fetch_options
from subharvest.errors import ConfigurationError


def test_global_config_defaults() -> None:
    config = GlobalConfig()
    assert config.database_path == Path("data/subharvest.db")
    assert config.default_workers == 3
    assert config.request_timeout == 30
    assert config.request_method == "GET"
    assert config.default_output == Path("configs.txt")
    assert config.user_agent is None
    assert config.proxy is None


def test_global_config_normalises_values() -> None:
    config = GlobalConfig(request_method=" post ", default_output="", database_path="db/x.db")
    assert config.request_method == "POST"
    assert config.default_output is None
    assert config.database_path == Path("db/x.db")


@pytest.mark.parametrize("field, value", [("default_workers", 0), ("default_workers", 21), ("request_timeout", 0)])
def test_global_config_rejects_out_of_range(field: str, value: int) -> None:
    with pytest.raises(ValidationError):
        GlobalConfig(**{field: value})


def test_resolved_database_path(tmp_path: Path) -> None:
    relative = GlobalConfig()
    absolute = GlobalConfig(database_path=tmp_path / "abs.db")
    assert relative.resolved_database_path(tmp_path) == (tmp_path / "data" / "subharvest.db").resolve()
    assert absolute.resolved_database_path(Path("/elsewhere")) == tmp_path / "abs.db"


@pytest.mark.parametrize(
    "values, mode",
    [
        ({"subscription_id": 3}, FetchMode.BY_ID),
        ({"url": "https://sub.example.com"}, FetchMode.BY_URL),
        ({"fetch_all": True}, FetchMode.ALL_ENABLED),
        ({"file_input": "urls.txt"}, FetchMode.BY_FILE),
    ],
)
def test_fetch_options_mode(values: dict, mode: FetchMode) -> None:
    assert build_fetch_options(**values).mode is mode


def test_fetch_options_require_exactly_one_selector() -> None:
    with pytest.raises(ConfigurationError, match="must be provided"):
        build_fetch_options()
    with pytest.raises(ConfigurationError, match="mutually exclusive"):
        build_fetch_options(fetch_all=True, url="https://sub.example.com")


def test_fetch_options_treat_blank_values_as_absent() -> None:
    options = build_fetch_options(fetch_all=True, url="  ", user_agent="", proxy=" ", subscription_id=0)
    assert options.mode is FetchMode.ALL_ENABLED
    assert options.user_agent is None
    assert options.proxy is None


def test_fetch_options_are_immutable() -> None:
    options = build_fetch_options(fetch_all=True, output_path="out.txt")
    assert options.output_path == Path("out.txt")
    with pytest.raises(ValidationError):
        options.workers = 5


@pytest.mark.parametrize("proxy", ["ftp://proxy.example.com:21", "not-a-url", "127.0.0.1:8080", "http://"])
def test_fetch_options_reject_unusable_proxy(proxy: str) -> None:
    with pytest.raises(ConfigurationError, match="proxy must be an absolute URL"):
        build_fetch_options(fetch_all=True, proxy=proxy)


@pytest.mark.parametrize(
    "proxy",
    ["http://127.0.0.1:8080", "https://user:pw@proxy.example.com:443", "socks5://127.0.0.1:1080", "SOCKS5H://h:1080"],
)
def test_fetch_options_accept_supported_proxy_schemes(proxy: str) -> None:
    assert build_fetch_options(fetch_all=True, proxy=f" {proxy} ").proxy == proxy


def test_global_config_validates_proxy() -> None:
    assert GlobalConfig(proxy="").proxy is None
    assert GlobalConfig(proxy="socks5://127.0.0.1:1080").proxy == "socks5://127.0.0.1:1080"
    with pytest.raises(ValidationError, match="proxy must be an absolute URL"):
        GlobalConfig(proxy="gopher://old.example.com")
