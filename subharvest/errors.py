"""Exception hierarchy shared by retrieval, storage and orchestration."""

from __future__ import annotations


class SubharvestError(Exception):
    """Base class for every error surfaced by subharvest."""


class ConfigurationError(SubharvestError):
    """Invalid run options; raised before any network activity."""


class FetchError(SubharvestError):
    """A subscription source could not be retrieved."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class InvalidURL(FetchError):
    """The subscription URL is not an absolute URL."""


class RemoteError(FetchError):
    """Non-2xx response or transport failure."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status: int | None = None,
        detail: str | None = None,
    ) -> None:
        super().__init__(message, url=url)
        self.status = status
        self.detail = detail


class StoreError(SubharvestError):
    """Persistence failure in the store adapter."""


class NotFound(StoreError):
    """Requested record does not exist."""


class ExportError(SubharvestError):
    """Writing the flat-file link export failed."""


__all__ = [
    "ConfigurationError",
    "ExportError",
    "FetchError",
    "InvalidURL",
    "NotFound",
    "RemoteError",
    "StoreError",
    "SubharvestError",
]
