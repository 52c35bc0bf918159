"""
=============================================================================
PORTFOLIO CONTACT API - RATE LIMITER MODULE
=============================================================================
Fixed-window request counter keyed by an opaque string (IP, email).

Algorithm:
- A window of `window_ms` starts at the first request for a key
- Once `now - first_request > window_ms` the whole window resets
- A key is limited while `count >= max_requests` inside its window

This is a fixed window, not a sliding one: a burst straddling the window
boundary can pass up to 2 x max_requests in quick succession. Counters are
per process (best effort, no cross-instance coordination).

Storage:
- In-memory map (default)
- Redis, one JSON entry per key with the window as TTL, so counters survive
  restarts. Storage errors are logged and never fail a request.

Usage:
    limiter = build_rate_limiter(settings)
    status = limiter.check("ip:203.0.113.10")
    if not status.is_limited:
        limiter.increment("ip:203.0.113.10")
=============================================================================
"""

import ipaddress
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Dict, Iterable, List, Optional

from fastapi import Request

logger = logging.getLogger(__name__)

TrustedNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network


@dataclass
class RateLimitEntry:
    count: int
    first_request: int  # epoch ms
    last_request: int  # epoch ms

    def to_json(self) -> str:
        return json.dumps(
            {
                "count": self.count,
                "firstRequest": self.first_request,
                "lastRequest": self.last_request,
            }
        )

    @classmethod
    def from_json(cls, raw: str) -> "RateLimitEntry":
        data = json.loads(raw)
        return cls(
            count=int(data["count"]),
            first_request=int(data["firstRequest"]),
            last_request=int(data["lastRequest"]),
        )


@dataclass(frozen=True)
class RateLimitStatus:
    is_limited: bool
    remaining: int
    reset_time: datetime
    ms_before_next: int

    @property
    def retry_after_seconds(self) -> int:
        return max(0, -(-self.ms_before_next // 1000))

    def as_dict(self) -> dict:
        return {
            "isLimited": self.is_limited,
            "remaining": self.remaining,
            "resetTime": self.reset_time.isoformat(),
            "msBeforeNext": self.ms_before_next,
        }


# =============================================================================
# BACKEND ABSTRACTION
# =============================================================================


class RateLimitBackend(ABC):
    """Abstract rate-limit entry storage."""

    name = "abstract"

    @abstractmethod
    def load(self, key: str) -> Optional[RateLimitEntry]:
        """Return the stored entry for key, if any."""

    @abstractmethod
    def save(self, key: str, entry: RateLimitEntry, ttl_ms: int) -> None:
        """Persist entry for key."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the entry for key."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry (for tests and admin resets)."""

    @abstractmethod
    def keys(self) -> List[str]:
        """Return every tracked key."""

    def ping(self) -> bool:
        return True


class InMemoryBackend(RateLimitBackend):
    """Thread-safe in-memory backend (single-instance only)."""

    name = "in_memory"

    def __init__(self) -> None:
        self._lock = Lock()
        self._entries: Dict[str, RateLimitEntry] = {}

    def load(self, key: str) -> Optional[RateLimitEntry]:
        with self._lock:
            entry = self._entries.get(key)
            return None if entry is None else RateLimitEntry(**asdict(entry))

    def save(self, key: str, entry: RateLimitEntry, ttl_ms: int) -> None:
        with self._lock:
            self._entries[key] = RateLimitEntry(**asdict(entry))

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._entries)


class RedisBackend(RateLimitBackend):
    """Redis-backed entry storage so counters outlive the process."""

    name = "redis"

    def __init__(self, redis_client, key_prefix: str) -> None:  # type: ignore[type-arg]
        self._redis = redis_client
        self._key_prefix = key_prefix

    def load(self, key: str) -> Optional[RateLimitEntry]:
        raw = self._redis.get(key)
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode()
        try:
            return RateLimitEntry.from_json(raw)
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding malformed rate limit entry for %s", key)
            return None

    def save(self, key: str, entry: RateLimitEntry, ttl_ms: int) -> None:
        self._redis.set(key, entry.to_json(), px=ttl_ms)

    def ping(self) -> bool:
        return bool(self._redis.ping())

    def delete(self, key: str) -> None:
        self._redis.delete(key)

    def clear(self) -> None:
        cursor = 0
        while True:
            cursor, keys = self._redis.scan(cursor, match=f"{self._key_prefix}*", count=500)
            if keys:
                self._redis.delete(*keys)
            if cursor == 0:
                break

    def keys(self) -> List[str]:
        found = []
        cursor = 0
        while True:
            cursor, keys = self._redis.scan(cursor, match=f"{self._key_prefix}*", count=500)
            found.extend(k if isinstance(k, str) else k.decode() for k in keys)
            if cursor == 0:
                break
        return found


# =============================================================================
# LIMITER
# =============================================================================


def _epoch_ms(clock: Callable[[], float]) -> int:
    return int(round(clock() * 1000))


class FixedWindowRateLimiter:
    """Fixed-window counter. One instance per process, injected into handlers."""

    def __init__(
        self,
        window_ms: int = 60 * 60 * 1000,
        max_requests: int = 10,
        key_prefix: str = "rate_limit_",
        backend: Optional[RateLimitBackend] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.window_ms = window_ms
        self.max_requests = max_requests
        self.key_prefix = key_prefix
        self.backend = backend or InMemoryBackend()
        self._clock = clock
        self._lock = Lock()

    def _limit_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def _load(self, limit_key: str) -> Optional[RateLimitEntry]:
        try:
            return self.backend.load(limit_key)
        except Exception as exc:
            logger.error("Error loading rate limit entry %s: %s", limit_key, exc)
            return None

    def _status(self, entry: RateLimitEntry, now: int, is_limited: bool) -> RateLimitStatus:
        reset_at = entry.first_request + self.window_ms
        ms_before_next = reset_at - now if entry.count >= self.max_requests else 0
        return RateLimitStatus(
            is_limited=is_limited,
            remaining=max(0, self.max_requests - entry.count),
            reset_time=datetime.fromtimestamp(reset_at / 1000, tz=timezone.utc),
            ms_before_next=max(0, ms_before_next),
        )

    def check(self, key: str) -> RateLimitStatus:
        """Report the limit state for key without counting a request."""
        now = _epoch_ms(self._clock)
        entry = self._load(self._limit_key(key))
        if entry is None:
            entry = RateLimitEntry(count=0, first_request=now, last_request=now)

        window_expired = now - entry.first_request > self.window_ms
        if window_expired:
            entry = RateLimitEntry(count=0, first_request=now, last_request=entry.last_request)

        return self._status(
            entry, now, entry.count >= self.max_requests and not window_expired
        )

    def increment(self, key: str) -> RateLimitStatus:
        """Count a request for key and return the updated state."""
        now = _epoch_ms(self._clock)
        limit_key = self._limit_key(key)

        with self._lock:
            entry = self._load(limit_key)
            if entry is None or now - entry.first_request > self.window_ms:
                entry = RateLimitEntry(count=1, first_request=now, last_request=now)
            else:
                entry.count += 1
                entry.last_request = now

            try:
                self.backend.save(limit_key, entry, self.window_ms)
            except Exception as exc:
                logger.error("Error saving rate limit entry %s: %s", limit_key, exc)

        status = self._status(entry, now, entry.count >= self.max_requests)
        logger.info(
            "Rate limit updated key=%s count=%s remaining=%s limited=%s",
            limit_key,
            entry.count,
            status.remaining,
            status.is_limited,
        )
        return status

    def reset(self, key: str) -> None:
        limit_key = self._limit_key(key)
        self.backend.delete(limit_key)
        logger.info("Rate limit reset key=%s", limit_key)

    def reset_all(self) -> None:
        self.backend.clear()
        logger.info("All rate limits reset")

    def stats(self) -> dict:
        """Get current rate limiting statistics (for admin/debugging)."""
        keys = self.backend.keys()
        return {
            "backend": self.backend.name,
            "window_ms": self.window_ms,
            "max_requests": self.max_requests,
            "tracked_keys": len(keys),
        }


# =============================================================================
# BACKEND INITIALIZATION
# =============================================================================


def _init_backend(settings) -> RateLimitBackend:
    """Use Redis when configured and reachable, fall back to in-memory."""
    if settings.RATE_LIMIT_BACKEND != "redis":
        return InMemoryBackend()
    try:
        import redis as _redis_lib

        client = _redis_lib.Redis.from_url(
            settings.REDIS_URL, decode_responses=True, socket_connect_timeout=2
        )
        client.ping()
        logger.info("Rate limiter using Redis backend (%s)", settings.REDIS_URL)
        return RedisBackend(client, settings.RATE_LIMIT_KEY_PREFIX)
    except Exception as exc:
        logger.warning(
            "Redis unavailable for rate limiter, using in-memory fallback: %s", exc
        )
        return InMemoryBackend()


def build_rate_limiter(settings) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(
        window_ms=settings.RATE_LIMIT_WINDOW_MS,
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        key_prefix=settings.RATE_LIMIT_KEY_PREFIX,
        backend=_init_backend(settings),
    )


# =============================================================================
# IP EXTRACTION
# =============================================================================


def parse_trusted_networks(entries: Iterable[str]) -> List[TrustedNetwork]:
    """Parse TRUSTED_PROXIES entries into network objects."""
    nets: List[TrustedNetwork] = []
    for entry in entries:
        try:
            nets.append(ipaddress.ip_network(entry, strict=False))
        except ValueError:
            logger.warning("Invalid TRUSTED_PROXIES entry ignored: %s", entry)
    return nets


def _is_trusted_proxy(ip_str: str, networks: List[TrustedNetwork]) -> bool:
    try:
        addr = ipaddress.ip_address(ip_str)
    except ValueError:
        return False
    return any(addr in net for net in networks)


def get_client_ip(request: Request, trusted_networks: List[TrustedNetwork]) -> str:
    """Extract client IP, trusting proxy headers only from trusted proxies."""
    direct_ip = request.client.host if request.client else "unknown"
    if not _is_trusted_proxy(direct_ip, trusted_networks):
        return direct_ip

    # Cloudflare sets the original client address explicitly
    cf_ip = request.headers.get("CF-Connecting-IP")
    if cf_ip:
        return cf_ip.strip()

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        parts = [p.strip() for p in forwarded.split(",") if p.strip()]
        # Rightmost untrusted IP is the real client
        for ip in reversed(parts):
            if not _is_trusted_proxy(ip, trusted_networks):
                return ip
        if parts:
            return parts[0]

    return direct_ip
