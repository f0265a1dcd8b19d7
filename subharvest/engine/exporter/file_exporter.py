"""Flat-file export: one raw link per line, trailing newline."""

from __future__ import annotations

from pathlib import Path

from ...errors import ExportError
from ...models import SubscriptionConfig
from .base import BaseExporter


class LinkFileExporter(BaseExporter):
    """Overwrite ``path`` with the raw link of every exported config."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        try:
            if self.path.parent and not self.path.parent.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = self.path.open("w", encoding="utf-8", newline="\n")
        except OSError as exc:
            raise ExportError(f"cannot open output file {self.path}: {exc}") from exc
        self.count = 0

    def export(self, config: SubscriptionConfig) -> None:
        try:
            self._file.write(config.config_link)
            self._file.write("\n")
        except OSError as exc:
            raise ExportError(f"cannot write output file {self.path}: {exc}") from exc
        self.count += 1

    def flush(self) -> None:
        self._file.flush()

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()


__all__ = ["LinkFileExporter"]
