"""Bounded thread pool used to fan fetches out across sources."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from ..config.models import MAX_WORKERS, MIN_WORKERS
from ..errors import ConfigurationError


def bounded_workers(requested: int, job_count: int) -> int:
    """Clamp the worker count down to the number of jobs (never below one)."""

    if requested < MIN_WORKERS or requested > MAX_WORKERS:
        raise ConfigurationError(
            f"workers must be between {MIN_WORKERS} and {MAX_WORKERS}, got {requested}"
        )
    return max(MIN_WORKERS, min(requested, job_count))


class ThreadPoolManager:
    """Hand out executors sized for a given batch of sources."""

    def __init__(self, max_workers: int = 3, thread_name_prefix: str = "subharvest") -> None:
        bounded_workers(max_workers, max_workers)
        self.max_workers = max_workers
        self.thread_name_prefix = thread_name_prefix

    def workers_for(self, job_count: int) -> int:
        return bounded_workers(self.max_workers, job_count)

    def executor_for(self, job_count: int) -> ThreadPoolExecutor:
        """Return a fresh executor; leaving its ``with`` block drains every job."""

        return ThreadPoolExecutor(
            max_workers=self.workers_for(job_count),
            thread_name_prefix=self.thread_name_prefix,
        )


__all__ = ["ThreadPoolManager", "bounded_workers"]
