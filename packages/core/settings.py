from __future__ import annotations

import datetime as dt
import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar


T = TypeVar("T")

logger = logging.getLogger("remind_ops.settings")

DEFAULT_DB_PATH = os.path.join("apps", "api", "data", "reminders.db")
DEFAULT_BACKUP_DIR = os.path.join("apps", "api", "data", "backups")

BACKUP_INTERVAL_HOURS = {
    "daily": 24,
    "weekly": 168,
    "monthly": 720,
}


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def parse_backup_interval(value: Optional[str]) -> int:
    """Backup interval setting to hours, defaulting to daily."""
    return BACKUP_INTERVAL_HOURS.get((value or "").lower(), 24)


@dataclass(frozen=True)
class Settings:
    db_path: str
    scheduler_enabled: bool
    restart_delay_seconds: int
    daily_digest_enabled: bool
    backup_interval: str
    backup_dir: str
    operator_webhook_url: Optional[str]
    operator_email: Optional[str]

    @property
    def backup_interval_hours(self) -> int:
        return parse_backup_interval(self.backup_interval)


def load_settings() -> Settings:
    return Settings(
        db_path=os.getenv("REMINDERS_DB_PATH", DEFAULT_DB_PATH),
        scheduler_enabled=_env_bool("REMINDERS_SCHEDULER_ENABLED", "true"),
        restart_delay_seconds=int(os.getenv("REMINDERS_RESTART_DELAY_SECONDS", "10")),
        daily_digest_enabled=_env_bool("REMINDERS_DAILY_DIGEST_ENABLED", "true"),
        backup_interval=os.getenv("REMINDERS_BACKUP_INTERVAL", "daily"),
        backup_dir=os.getenv("REMINDERS_BACKUP_DIR", DEFAULT_BACKUP_DIR),
        operator_webhook_url=os.getenv("REMINDERS_OPERATOR_WEBHOOK_URL") or None,
        operator_email=os.getenv("REMINDERS_OPERATOR_EMAIL") or None,
    )


@dataclass
class CachedValue(Generic[T]):
    value: T
    expires_at: dt.datetime


class SettingsCache:
    """Per-key value cache with expiry, refreshed lazily on miss.

    Loaders are registered per key together with a TTL. A read past the
    expiry calls the loader again; if the loader fails the registered
    fallback is cached instead.
    """

    def __init__(self, clock: Optional[Callable[[], dt.datetime]] = None) -> None:
        self._clock = clock or (lambda: dt.datetime.now(dt.timezone.utc))
        self._loaders: Dict[str, Callable[[], Any]] = {}
        self._ttls: Dict[str, dt.timedelta] = {}
        self._fallbacks: Dict[str, Any] = {}
        self._values: Dict[str, CachedValue[Any]] = {}
        self._lock = threading.Lock()

    def register(
        self,
        key: str,
        loader: Callable[[], Any],
        ttl: dt.timedelta,
        fallback: Any = None,
    ) -> None:
        self._loaders[key] = loader
        self._ttls[key] = ttl
        self._fallbacks[key] = fallback

    def get(self, key: str) -> Any:
        if key not in self._loaders:
            raise KeyError(f"No cached value registered for {key}")
        now = self._clock()
        with self._lock:
            cached = self._values.get(key)
            if cached is not None and cached.expires_at > now:
                return cached.value
        try:
            value = self._loaders[key]()
        except Exception:
            logger.exception(
                "settings_cache_load_failed key=%s fallback=%s", key, self._fallbacks[key]
            )
            value = self._fallbacks[key]
        with self._lock:
            self._values[key] = CachedValue(value=value, expires_at=now + self._ttls[key])
        return value

    def clear(self) -> None:
        with self._lock:
            self._values = {}


DAILY_DIGEST_ENABLED = "daily_digest_enabled"


def build_settings_cache(
    loader: Callable[[], Settings] = load_settings,
    clock: Optional[Callable[[], dt.datetime]] = None,
) -> SettingsCache:
    cache = SettingsCache(clock=clock)
    cache.register(
        DAILY_DIGEST_ENABLED,
        lambda: loader().daily_digest_enabled,
        ttl=dt.timedelta(minutes=60),
        fallback=False,
    )
    return cache
