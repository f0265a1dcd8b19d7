"""Fetch orchestrator wiring together retrieval, dedup, decoding, storage and export."""

from __future__ import annotations

from concurrent.futures import Future, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Callable, Sequence

import structlog

from .config import FetchMode, FetchOptions
from .engine import DecoderRegistry, Fetcher, ThreadPoolManager, dedupe, split_lines
from .engine.decoders import CanonicalSummary
from .engine.exporter import LinkFileExporter
from .errors import ConfigurationError, FetchError, StoreError
from .infra.storage import StoreAdapter
from .logging_conf import configure_logging
from .models import BatchResult, FetchOutcome, Subscription, SubscriptionConfig


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class SourceTarget:
    """One source queued for a run: a stored subscription or an ad-hoc URL."""

    url: str
    label: str
    subscription_id: int | None = None
    user_agent: str | None = None

    @classmethod
    def from_subscription(cls, subscription: Subscription) -> "SourceTarget":
        return cls(
            url=subscription.url,
            label=subscription.label,
            subscription_id=subscription.id,
            user_agent=subscription.user_agent,
        )

    @classmethod
    def from_url(cls, url: str) -> "SourceTarget":
        return cls(url=url, label=url)


@dataclass
class _BatchAccumulator:
    """Collects one outcome per source from the worker threads."""

    total: int
    _outcomes: dict[int, FetchOutcome] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock)

    def add(self, index: int, outcome: FetchOutcome) -> None:
        with self._lock:
            self._outcomes[index] = outcome

    def result(self) -> BatchResult:
        with self._lock:
            outcomes = [self._outcomes[index] for index in sorted(self._outcomes)]
        batch = BatchResult(total_sources=self.total, outcomes=outcomes)
        for outcome in outcomes:
            if not outcome.ok:
                batch.failed_sources += 1
                continue
            batch.total_links += outcome.raw_count
            batch.total_configs += len(outcome.configs)
            batch.configs.extend(outcome.configs)
        return batch


class FetchOrchestrator:
    """Run one fetch according to an immutable set of ``FetchOptions``."""

    def __init__(
        self,
        store: StoreAdapter,
        fetcher: Fetcher,
        registry: DecoderRegistry | None = None,
        *,
        verbose: bool = False,
        clock: Callable[[], datetime] = _utcnow,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.registry = registry or DecoderRegistry()
        self.verbose = verbose
        self.clock = clock
        self.logger = logger or configure_logging(verbose).bind(component="orchestrator")

    # ------------------------------------------------------------------
    def run(self, options: FetchOptions) -> BatchResult:
        mode = options.mode
        if mode is FetchMode.BY_ID:
            result = self.fetch_by_id(options.subscription_id, options)
        elif mode is FetchMode.BY_URL:
            result = self.fetch_by_url(options.url, options)
        elif mode is FetchMode.ALL_ENABLED:
            result = self.fetch_all_enabled(options)
        else:
            result = self.fetch_from_file(options.file_input, options)

        self.logger.info(
            "batch_finished",
            mode=mode.value,
            sources=result.total_sources,
            links=result.total_links,
            configs=result.total_configs,
            failed=result.failed_sources,
        )
        if options.output_path is not None and result.total_configs > 0:
            self.export(result, options.output_path)
        return result

    def fetch_by_id(self, subscription_id: int, options: FetchOptions) -> BatchResult:
        """Fetch one stored subscription; its error is raised to the caller."""

        subscription = self.store.get_subscription(subscription_id)
        return self._run_single(SourceTarget.from_subscription(subscription), options)

    def fetch_by_url(self, url: str, options: FetchOptions) -> BatchResult:
        return self._run_single(SourceTarget.from_url(url), options)

    def fetch_all_enabled(self, options: FetchOptions) -> BatchResult:
        subscriptions = [sub for sub in self.store.list_subscriptions() if sub.enabled]
        if not subscriptions:
            self.logger.info("no_enabled_subscriptions")
            return BatchResult()
        return self._fan_out(
            [SourceTarget.from_subscription(sub) for sub in subscriptions], options
        )

    def fetch_from_file(self, path: Path, options: FetchOptions) -> BatchResult:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(f"cannot read URL file {path}: {exc}") from exc
        urls = split_lines(text)
        if not urls:
            raise ConfigurationError(f"no URLs found in file {path}")
        self.logger.info("url_file_loaded", path=str(path), urls=len(urls))
        return self._fan_out([SourceTarget.from_url(url) for url in urls], options)

    # ------------------------------------------------------------------
    def process_source(
        self,
        source: SourceTarget,
        options: FetchOptions,
        position: str = "1/1",
    ) -> FetchOutcome:
        """Fetch, decode and persist one source; failures land on the outcome."""

        outcome = FetchOutcome(
            url=source.url, label=source.label, subscription_id=source.subscription_id
        )
        user_agent = options.user_agent or source.user_agent
        self.logger.info(
            "source_fetch_started", position=position, label=source.label, url=source.url
        )
        try:
            links = self.fetcher.fetch(source.url, user_agent=user_agent, proxy=options.proxy)
            outcome.raw_count = len(links)
            configs = self.decode_links(dedupe(links, verbose=self.verbose), source.subscription_id)
            if configs:
                self.store.upsert_configs(configs)
            outcome.configs = configs
        except (FetchError, StoreError) as exc:
            outcome.error = exc
            self.logger.error(
                "source_fetch_failed",
                position=position,
                label=source.label,
                url=source.url,
                error=str(exc),
            )
            return outcome

        self.logger.info(
            "source_fetched",
            position=position,
            label=source.label,
            links=outcome.raw_count,
            configs=len(outcome.configs),
        )
        if source.subscription_id is not None and outcome.configs:
            self._mark_fetched(source.subscription_id)
        return outcome

    def decode_links(
        self, links: Sequence[str], subscription_id: int | None
    ) -> list[SubscriptionConfig]:
        """Turn raw links into store records; undecodable links keep no protocol."""

        seen_at = self.clock()
        configs: list[SubscriptionConfig] = []
        for link in links:
            decoded = self.registry.decode(link)
            if isinstance(decoded, CanonicalSummary):
                protocol, remark = decoded.protocol, decoded.remark or None
            else:
                self.logger.debug(
                    "link_decode_failed",
                    reason=decoded.reason,
                    protocol_hint=decoded.protocol_hint,
                )
                protocol, remark = None, None
            configs.append(
                SubscriptionConfig(
                    config_link=link,
                    subscription_id=subscription_id,
                    protocol=protocol,
                    remark=remark,
                    last_seen_at=seen_at,
                )
            )
        return configs

    def export(self, result: BatchResult, output_path: Path) -> None:
        with LinkFileExporter(output_path) as exporter:
            written = exporter.export_many(result.configs)
            exporter.flush()
        result.output_path = str(output_path)
        self.logger.info("links_exported", path=str(output_path), count=written)

    # ------------------------------------------------------------------
    def _run_single(self, source: SourceTarget, options: FetchOptions) -> BatchResult:
        accumulator = _BatchAccumulator(total=1)
        outcome = self.process_source(source, options)
        if outcome.error is not None:
            raise outcome.error
        accumulator.add(0, outcome)
        return accumulator.result()

    def _fan_out(self, sources: Sequence[SourceTarget], options: FetchOptions) -> BatchResult:
        total = len(sources)
        accumulator = _BatchAccumulator(total=total)
        pool = ThreadPoolManager(options.workers)
        self.logger.info("batch_started", sources=total, workers=pool.workers_for(total))
        with pool.executor_for(total) as executor:
            futures: dict[Future[FetchOutcome], int] = {
                executor.submit(self.process_source, source, options, f"{index + 1}/{total}"): index
                for index, source in enumerate(sources)
            }
            for future in as_completed(futures):
                accumulator.add(futures[future], future.result())
        return accumulator.result()

    def _mark_fetched(self, subscription_id: int) -> None:
        try:
            self.store.update_subscription_fetched(subscription_id, self.clock())
        except StoreError as exc:
            self.logger.warning(
                "fetch_timestamp_not_updated", subscription_id=subscription_id, error=str(exc)
            )


__all__ = ["FetchOrchestrator", "SourceTarget"]
