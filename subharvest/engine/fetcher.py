"""HTTP retrieval of subscription bodies and their decoding into link lists."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from threading import Lock
from typing import Dict
from urllib.parse import urlparse

import httpx
import structlog

from ..errors import InvalidURL, RemoteError

_NO_PROXY = ""


@dataclass(slots=True)
class FetchRequest:
    """Input for the fetcher."""

    url: str
    user_agent: str | None = None
    proxy: str | None = None
    method: str = "GET"
    timeout: float | None = None


@dataclass(slots=True)
class FetchResponse:
    """Standardised response wrapper."""

    url: str
    status_code: int
    body: bytes
    links: list[str] = field(default_factory=list)
    base64_encoded: bool = False


def validate_url(url: str) -> str:
    """Return ``url`` stripped if it is absolute, raise ``InvalidURL`` otherwise."""

    candidate = (url or "").strip()
    try:
        parsed = urlparse(candidate)
    except ValueError as exc:
        raise InvalidURL(f"invalid subscription URL {url!r}: {exc}", url=url) from exc
    if not parsed.scheme or not parsed.netloc:
        raise InvalidURL(f"invalid subscription URL {url!r}: not an absolute URL", url=url)
    return candidate


def split_lines(text: str) -> list[str]:
    """Split on newlines, trim, and drop blank lines while keeping order."""

    return [line.strip() for line in text.split("\n") if line.strip()]


def try_base64_decode(payload: bytes | str) -> str | None:
    """Decode a base64 payload to text, or return None when it is not base64.

    Embedded line breaks and missing padding are tolerated; the standard
    alphabet is tried before the URL-safe one and the result must be UTF-8.
    """

    if isinstance(payload, bytes):
        try:
            payload = payload.decode("ascii")
        except UnicodeDecodeError:
            return None
    compact = payload.strip().replace("\r", "").replace("\n", "")
    if not compact:
        return None
    compact += "=" * (-len(compact) % 4)
    for altchars in (None, b"-_"):
        try:
            raw = base64.b64decode(compact, altchars=altchars, validate=True)
        except (binascii.Error, ValueError):
            continue
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            return None
    return None


def decode_body(body: bytes) -> tuple[list[str], bool]:
    """Turn a subscription body into links; the flag tells whether it was base64."""

    decoded = try_base64_decode(body)
    if decoded is not None:
        return split_lines(decoded), True
    return split_lines(body.decode("utf-8", errors="replace")), False


class Fetcher:
    """Retrieve subscription bodies with optional user agent and outbound proxy."""

    def __init__(
        self,
        timeout: float = 30.0,
        method: str = "GET",
        transport: httpx.BaseTransport | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.timeout = timeout
        self.method = method
        self.transport = transport
        self.logger = logger or structlog.get_logger("subharvest.fetcher")
        self._clients: Dict[str, httpx.Client] = {}
        self._lock = Lock()

    def close(self) -> None:
        with self._lock:
            for client in self._clients.values():
                client.close()
            self._clients.clear()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def fetch(
        self, url: str, user_agent: str | None = None, proxy: str | None = None
    ) -> list[str]:
        """Return the non-empty, trimmed links served at ``url``."""

        return self.fetch_response(
            FetchRequest(url=url, user_agent=user_agent, proxy=proxy, method=self.method)
        ).links

    def fetch_response(self, request: FetchRequest) -> FetchResponse:
        url = validate_url(request.url)
        try:
            headers = {"User-Agent": request.user_agent} if request.user_agent else None
            client = self._client_for(request.proxy)
            response = client.request(
                request.method or self.method,
                url,
                headers=headers,
                timeout=request.timeout or self.timeout,
            )
            body = response.read()
        except httpx.InvalidURL as exc:
            raise InvalidURL(f"invalid subscription URL {url!r}: {exc}", url=url) from exc
        except httpx.HTTPError as exc:
            self.logger.warning("fetch_transport_error", url=url, error=str(exc))
            raise RemoteError(
                f"failed to fetch subscription {url}: {exc}", url=url, detail=str(exc)
            ) from exc
        except ValueError as exc:
            # non-ASCII header values and unusable proxy URLs surface here
            self.logger.warning("fetch_request_rejected", url=url, error=str(exc))
            raise RemoteError(
                f"cannot build request for {url}: {exc}", url=url, detail=str(exc)
            ) from exc

        if not 200 <= response.status_code < 300:
            raise RemoteError(
                f"server returned HTTP {response.status_code} for {url}",
                url=url,
                status=response.status_code,
                detail=response.reason_phrase,
            )

        links, encoded = decode_body(body)
        if not encoded:
            self.logger.debug("body_not_base64", url=url)
        self.logger.debug("fetch_complete", url=url, links=len(links), base64=encoded)
        return FetchResponse(
            url=str(response.url),
            status_code=response.status_code,
            body=body,
            links=links,
            base64_encoded=encoded,
        )

    # ------------------------------------------------------------------
    def _client_for(self, proxy: str | None) -> httpx.Client:
        key = proxy or _NO_PROXY
        with self._lock:
            client = self._clients.get(key)
            if client is None:
                client = self._build_client(proxy)
                self._clients[key] = client
            return client

    def _build_client(self, proxy: str | None) -> httpx.Client:
        kwargs: dict = {"follow_redirects": True, "timeout": self.timeout}
        if self.transport is not None:
            kwargs["transport"] = self.transport
        if proxy:
            kwargs["proxy"] = proxy
        return httpx.Client(**kwargs)


__all__ = [
    "FetchRequest",
    "FetchResponse",
    "Fetcher",
    "decode_body",
    "split_lines",
    "try_base64_decode",
    "validate_url",
]
