"""Pydantic models used across subharvest configuration flow."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..errors import ConfigurationError

MIN_WORKERS = 1
MAX_WORKERS = 20
DEFAULT_WORKERS = 3
PROXY_SCHEMES = ("http", "https", "socks5", "socks5h")


class FetchMode(str, Enum):
    """Mutually exclusive source selectors for a fetch run."""

    BY_ID = "by_id"
    BY_URL = "by_url"
    ALL_ENABLED = "all_enabled"
    BY_FILE = "by_file"


def _check_workers(value: int) -> int:
    if value < MIN_WORKERS:
        raise ValueError(f"workers must be at least {MIN_WORKERS}, got {value}")
    if value > MAX_WORKERS:
        raise ValueError(f"workers must be at most {MAX_WORKERS}, got {value}")
    return value


def _check_proxy(value: str | None) -> str | None:
    if value is None:
        return None
    parsed = urlparse(value.strip())
    if parsed.scheme.lower() not in PROXY_SCHEMES or not parsed.netloc:
        raise ValueError(
            f"proxy must be an absolute URL with scheme {', '.join(PROXY_SCHEMES)}, got {value!r}"
        )
    return value.strip()


class GlobalConfig(BaseModel):
    """Global controls shared by every fetch run."""

    database_path: Path = Field(default=Path("data/subharvest.db"))
    default_workers: int = DEFAULT_WORKERS
    user_agent: str | None = None
    proxy: str | None = None
    request_timeout: float = 30.0
    request_method: str = "GET"
    default_output: Path | None = Field(default=Path("configs.txt"))

    @field_validator("database_path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("default_output", mode="before")
    @classmethod
    def _coerce_output(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(value)

    @field_validator("default_workers")
    @classmethod
    def _validate_workers(cls, value: int) -> int:
        return _check_workers(value)

    @field_validator("proxy", mode="before")
    @classmethod
    def _validate_proxy(cls, value: Any) -> str | None:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return _check_proxy(str(value))

    @field_validator("request_timeout")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("request_timeout must be > 0")
        return value

    @field_validator("request_method", mode="before")
    @classmethod
    def _normalise_method(cls, value: Any) -> str:
        method = str(value or "GET").strip().upper()
        return method or "GET"

    def resolved_database_path(self, base_dir: Path) -> Path:
        """Return the database path relative to the project home."""

        if not self.database_path.is_absolute():
            return (base_dir / self.database_path).resolve()
        return self.database_path


class FetchOptions(BaseModel):
    """Immutable options for one fetch run, built once and handed to the orchestrator."""

    model_config = ConfigDict(frozen=True)

    subscription_id: int | None = None
    url: str | None = None
    fetch_all: bool = False
    file_input: Path | None = None
    user_agent: str | None = None
    proxy: str | None = None
    workers: int = DEFAULT_WORKERS
    output_path: Path | None = None

    @field_validator("url", "user_agent", "proxy", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("proxy")
    @classmethod
    def _validate_proxy(cls, value: str | None) -> str | None:
        return _check_proxy(value)

    @field_validator("subscription_id", mode="before")
    @classmethod
    def _zero_id_to_none(cls, value: Any) -> Any:
        # 0 is never a valid row id
        if value in (0, "0"):
            return None
        return value

    @field_validator("file_input", "output_path", mode="before")
    @classmethod
    def _coerce_optional_path(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(value)

    @field_validator("workers")
    @classmethod
    def _validate_workers(cls, value: int) -> int:
        return _check_workers(value)

    @model_validator(mode="after")
    def _validate_selector(self) -> "FetchOptions":
        selected = [
            self.subscription_id is not None,
            self.url is not None,
            self.fetch_all,
            self.file_input is not None,
        ]
        if not any(selected):
            raise ValueError("one of subscription id, url, all or file must be provided")
        if sum(selected) > 1:
            raise ValueError("subscription id, url, all and file are mutually exclusive")
        return self

    @property
    def mode(self) -> FetchMode:
        if self.subscription_id is not None:
            return FetchMode.BY_ID
        if self.url is not None:
            return FetchMode.BY_URL
        if self.fetch_all:
            return FetchMode.ALL_ENABLED
        return FetchMode.BY_FILE


def build_fetch_options(**values: Any) -> FetchOptions:
    """Validate raw option values, reporting problems as ``ConfigurationError``."""

    try:
        return FetchOptions.model_validate(values)
    except ValidationError as exc:
        messages = "; ".join(error["msg"] for error in exc.errors())
        raise ConfigurationError(messages) from exc


__all__ = [
    "DEFAULT_WORKERS",
    "FetchMode",
    "FetchOptions",
    "GlobalConfig",
    "MAX_WORKERS",
    "MIN_WORKERS",
    "build_fetch_options",
]
