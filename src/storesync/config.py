"""Configuration for a ``StoreSync`` instance.

Values come from ``STORESYNC_*`` environment variables, after a ``.env`` file
in ``base_dir`` (if any) has been loaded. Durations accept the same grammar as
everywhere else in the package ("500ms", "30s", "5m") or plain milliseconds.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from storesync.duration import parse_duration, to_seconds
from storesync.executor import RetryPolicy
from storesync.types import Duration

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


@dataclass(frozen=True, slots=True)
class SyncConfig:
    """Strongly typed settings for the synchronization layer."""

    base_url: str = "http://localhost:8080/api"
    max_retries: int = 3
    base_delay: Duration = "500ms"
    max_delay: Duration = "8s"
    request_timeout: Duration = "45s"
    retry_jitter: float = 0.0
    page_ttl: Duration = "5m"
    page_max_entries: int = 20
    detail_ttl: Duration = "10m"
    detail_max_entries: int = 50
    persist_caches: bool = True
    storage_path: Path | None = None
    redis_url: str | None = None

    def __post_init__(self) -> None:
        # Fail at load time rather than on first request.
        for value in (self.base_delay, self.max_delay, self.request_timeout,
                      self.page_ttl, self.detail_ttl):
            parse_duration(value)
        if self.page_max_entries < 1 or self.detail_max_entries < 1:
            raise ValueError("cache sizes must be at least 1")

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            timeout=self.request_timeout,
            jitter=self.retry_jitter,
        )

    @property
    def http_timeout(self) -> float:
        """Transport-level timeout; the executor enforces the same bound per attempt."""
        return to_seconds(self.request_timeout)


def _flag(raw: str, name: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _duration(raw: str) -> Duration:
    raw = raw.strip()
    return int(raw) if raw.isdigit() else raw


def load_config(base_dir: Path, env: Mapping[str, str] | None = None) -> SyncConfig:
    """Load configuration from ``base_dir/.env`` and the given env mapping."""

    load_dotenv(base_dir / ".env")
    env_map = dict(env or os.environ)
    defaults = SyncConfig()

    def get(name: str) -> str | None:
        value = env_map.get(f"STORESYNC_{name}")
        return value if value is None else value.strip()

    storage_path = get("STORAGE_PATH")
    return SyncConfig(
        base_url=(get("BASE_URL") or defaults.base_url).rstrip("/"),
        max_retries=int(get("MAX_RETRIES") or defaults.max_retries),
        base_delay=_duration(get("BASE_DELAY") or str(defaults.base_delay)),
        max_delay=_duration(get("MAX_DELAY") or str(defaults.max_delay)),
        request_timeout=_duration(get("REQUEST_TIMEOUT") or str(defaults.request_timeout)),
        retry_jitter=float(get("RETRY_JITTER") or defaults.retry_jitter),
        page_ttl=_duration(get("PAGE_TTL") or str(defaults.page_ttl)),
        page_max_entries=int(get("PAGE_MAX_ENTRIES") or defaults.page_max_entries),
        detail_ttl=_duration(get("DETAIL_TTL") or str(defaults.detail_ttl)),
        detail_max_entries=int(get("DETAIL_MAX_ENTRIES") or defaults.detail_max_entries),
        persist_caches=_flag(get("PERSIST_CACHES") or "true", "STORESYNC_PERSIST_CACHES"),
        storage_path=(Path(base_dir) / storage_path) if storage_path else None,
        redis_url=get("REDIS_URL") or None,
    )
