"""Stable removal of repeated raw links within one retrieval batch."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import structlog


@dataclass
class DeduplicationResult:
    links: list[str]
    removed: int

    @property
    def had_duplicates(self) -> bool:
        return self.removed > 0


def deduplicate(links: Iterable[str]) -> DeduplicationResult:
    """Keep the first occurrence of each exact string, in order."""

    seen: set[str] = set()
    unique: list[str] = []
    total = 0
    for link in links:
        total += 1
        if link in seen:
            continue
        seen.add(link)
        unique.append(link)
    return DeduplicationResult(links=unique, removed=total - len(unique))


def dedupe(links: Iterable[str], verbose: bool = False) -> list[str]:
    result = deduplicate(links)
    if verbose:
        structlog.get_logger("subharvest.dedup").info(
            "duplicates_removed", removed=result.removed, kept=len(result.links)
        )
    return result.links


__all__ = ["DeduplicationResult", "dedupe", "deduplicate"]
