"""Decoder contract shared by every proxy link grammar."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping
from urllib.parse import parse_qs, unquote, urlsplit

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class LinkDecodeError(ValueError):
    """A link does not follow its protocol grammar."""


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Optional field read from a link: source key, target attribute and scalar type."""

    name: str
    target: str | None = None
    kind: type = str

    @property
    def attribute(self) -> str:
        return self.target or self.name

    def read(self, values: Mapping[str, Any]) -> str | int | None:
        """Return the typed value for this field, or None when absent or malformed."""

        if self.name not in values:
            return None
        raw = values[self.name]
        if isinstance(raw, list):
            if not raw:
                return None
            raw = raw[0]
        if raw is None:
            return None
        if self.kind is int:
            try:
                return int(str(raw).strip())
            except ValueError:
                return None
        return str(raw)


@dataclass(slots=True)
class CanonicalSummary:
    """Protocol-agnostic view of a decoded link."""

    protocol: str
    remark: str
    address: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class DecodeFailure:
    """A link that could not be decoded; it is still kept, just untyped."""

    link: str
    reason: str
    protocol_hint: str | None = None


def unescape(text: str) -> str:
    """Percent-decode ``text``; malformed escapes give back the raw text."""

    if _BAD_ESCAPE.search(text):
        return text
    try:
        return unquote(text, errors="strict")
    except UnicodeDecodeError:
        return text


def read_fields(specs: tuple[FieldSpec, ...], values: Mapping[str, Any]) -> dict[str, Any]:
    details: dict[str, Any] = {}
    for spec in specs:
        value = spec.read(values)
        if value is not None:
            details[spec.attribute] = value
    return details


def format_address(host: str, port: int | None) -> str:
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    return f"{host}:{port}" if port is not None else host


class LinkDecoder(ABC):
    """One protocol grammar, selected by the link's leading identifier."""

    protocol: ClassVar[str]
    identifiers: ClassVar[tuple[str, ...]]

    def matches(self, link: str) -> bool:
        lowered = link[: max(len(ident) for ident in self.identifiers)].lower()
        return any(lowered.startswith(ident) for ident in self.identifiers)

    def decode(self, link: str) -> CanonicalSummary | DecodeFailure:
        """Parse ``link`` without ever raising."""

        try:
            return self.parse(link)
        except (LinkDecodeError, ValueError, KeyError, TypeError) as exc:
            return DecodeFailure(link=link, reason=str(exc) or type(exc).__name__, protocol_hint=self.protocol)

    @abstractmethod
    def parse(self, link: str) -> CanonicalSummary:
        """Parse ``link`` or raise ``LinkDecodeError``."""

    def strip_identifier(self, link: str) -> str:
        lowered = link.lower()
        for ident in sorted(self.identifiers, key=len, reverse=True):
            if lowered.startswith(ident):
                return link[len(ident):]
        raise LinkDecodeError(f"{self.protocol} unrecognised: {link}")


class UriLinkDecoder(LinkDecoder):
    """Decoder for ``scheme://credential@host:port?query#remark`` grammars.

    Subclasses declare the credential attribute and the optional query fields;
    parsing is otherwise identical for every URI-shaped protocol.
    """

    credential: ClassVar[str | None] = None
    credential_required: ClassVar[bool] = True
    fields: ClassVar[tuple[FieldSpec, ...]] = ()

    def parse(self, link: str) -> CanonicalSummary:
        if not self.matches(link):
            raise LinkDecodeError(f"{self.protocol} unrecognised: {link}")
        parts = urlsplit(link)
        host = parts.hostname
        if not host:
            raise LinkDecodeError("missing host")
        port = parts.port

        details: dict[str, Any] = {}
        userinfo = parts.netloc.rpartition("@")[0] if "@" in parts.netloc else ""
        if userinfo:
            details.update(self.parse_credential(unescape(userinfo)))
        elif self.credential_required:
            raise LinkDecodeError(f"missing {self.credential or 'credential'}")

        query = parse_qs(parts.query, keep_blank_values=True)
        details.update(read_fields(self.fields, query))
        return CanonicalSummary(
            protocol=self.protocol,
            remark=unescape(parts.fragment),
            address=format_address(host, port),
            details=details,
        )

    def parse_credential(self, userinfo: str) -> dict[str, Any]:
        return {self.credential or "credential": userinfo}


__all__ = [
    "CanonicalSummary",
    "DecodeFailure",
    "FieldSpec",
    "LinkDecodeError",
    "LinkDecoder",
    "UriLinkDecoder",
    "format_address",
    "read_fields",
    "unescape",
]
