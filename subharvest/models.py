"""Records passed between the store, the decoder layer and the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .errors import SubharvestError


@dataclass(slots=True)
class Subscription:
    """A registered source of proxy links."""

    id: int
    url: str
    remark: str | None = None
    user_agent: str | None = None
    enabled: bool = True
    created_at: datetime | None = None
    last_fetched_at: datetime | None = None

    @property
    def label(self) -> str:
        return self.remark or f"#{self.id}"


@dataclass(slots=True)
class SubscriptionConfig:
    """One raw proxy link plus whatever the decoder could tell about it.

    ``config_link`` is the natural key: upserting the same link twice refreshes
    ``last_seen_at`` on the existing row instead of adding a second one.
    """

    config_link: str
    subscription_id: int | None = None
    protocol: str | None = None
    remark: str | None = None
    last_seen_at: datetime | None = None
    id: int | None = None
    added_at: datetime | None = None


@dataclass(slots=True)
class FetchOutcome:
    """Result of fetching a single source during one run."""

    url: str
    label: str
    subscription_id: int | None = None
    configs: list[SubscriptionConfig] = field(default_factory=list)
    raw_count: int = 0
    error: SubharvestError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class BatchResult:
    """Aggregate over every outcome of a run."""

    total_sources: int = 0
    total_links: int = 0
    total_configs: int = 0
    failed_sources: int = 0
    outcomes: list[FetchOutcome] = field(default_factory=list)
    configs: list[SubscriptionConfig] = field(default_factory=list)
    output_path: str | None = None

    @property
    def ok(self) -> bool:
        return self.failed_sources == 0

    @property
    def succeeded_sources(self) -> int:
        return self.total_sources - self.failed_sources


__all__ = ["BatchResult", "FetchOutcome", "Subscription", "SubscriptionConfig"]
