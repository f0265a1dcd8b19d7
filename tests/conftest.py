"""Shared fixtures: isolated project home, temporary store, mocked HTTP."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, Mapping

import httpx
import pytest
import structlog

from subharvest.config import build_fetch_options
from subharvest.engine import Fetcher
from subharvest.infra import SubscriptionStore

Route = tuple[int, bytes | str]


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "home"
    monkeypatch.setenv("SUBHARVEST_HOME", str(home))
    return home


@pytest.fixture
def store(tmp_path: Path) -> Iterable[SubscriptionStore]:
    manager = SubscriptionStore(tmp_path / "subharvest.db")
    yield manager
    manager.close()


@pytest.fixture
def quiet_logger() -> structlog.BoundLogger:
    return structlog.get_logger("subharvest.tests")


@pytest.fixture
def routed_fetcher(quiet_logger) -> Iterable[Callable[[Mapping[str, Route]], Fetcher]]:
    """Build a fetcher whose transport answers from a url -> (status, body) table.

    Unknown URLs answer 404. Every request is recorded on ``fetcher.requests``.
    """

    created: list[Fetcher] = []

    def _factory(routes: Mapping[str, Route]) -> Fetcher:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            status, body = routes.get(str(request.url), (404, b"not found"))
            content = body.encode("utf-8") if isinstance(body, str) else body
            return httpx.Response(status, content=content)

        fetcher = Fetcher(transport=httpx.MockTransport(handler), logger=quiet_logger)
        fetcher.requests = requests  # type: ignore[attr-defined]
        created.append(fetcher)
        return fetcher

    yield _factory
    for fetcher in created:
        fetcher.close()


@pytest.fixture
def fetch_options():
    return build_fetch_options
