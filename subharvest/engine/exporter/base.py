"""Exporter contract for persisted subscription configs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from ...models import SubscriptionConfig


class BaseExporter(ABC):
    """Uniform exporter contract enabling plug-and-play outputs."""

    @abstractmethod
    def export(self, config: SubscriptionConfig) -> None:
        """Write a single config."""

    def export_many(self, configs: Iterable[SubscriptionConfig]) -> int:
        count = 0
        for config in configs:
            self.export(config)
            count += 1
        return count

    @abstractmethod
    def flush(self) -> None:
        """Flush buffered data to destination."""

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources."""

    def __enter__(self) -> "BaseExporter":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()


__all__ = ["BaseExporter"]
