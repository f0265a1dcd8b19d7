"""Prefix-dispatched registry over the protocol decoders."""

from __future__ import annotations

from threading import Lock
from typing import Iterable

from .base import CanonicalSummary, DecodeFailure, LinkDecoder
from .protocols import DEFAULT_DECODERS


class DecoderRegistry:
    """Pick the decoder whose identifier prefixes a link and run it."""

    def __init__(self, decoders: Iterable[LinkDecoder] | None = None) -> None:
        self._lock = Lock()
        self._by_identifier: dict[str, LinkDecoder] = {}
        for decoder in decoders if decoders is not None else (cls() for cls in DEFAULT_DECODERS):
            self.register(decoder)

    def register(self, decoder: LinkDecoder) -> None:
        with self._lock:
            for identifier in decoder.identifiers:
                self._by_identifier[identifier.lower()] = decoder

    @property
    def protocols(self) -> list[str]:
        return sorted({decoder.protocol for decoder in self._by_identifier.values()})

    def find(self, link: str) -> LinkDecoder | None:
        lowered = link.lstrip().lower()
        best: tuple[int, LinkDecoder] | None = None
        for identifier, decoder in self._by_identifier.items():
            if lowered.startswith(identifier) and (best is None or len(identifier) > best[0]):
                best = (len(identifier), decoder)
        return best[1] if best else None

    def decode(self, link: str) -> CanonicalSummary | DecodeFailure:
        text = link.strip()
        decoder = self.find(text)
        if decoder is None:
            scheme = text.partition("://")[0] if "://" in text else None
            return DecodeFailure(link=link, reason="unsupported protocol", protocol_hint=scheme)
        return decoder.decode(text)


__all__ = ["DecoderRegistry"]
