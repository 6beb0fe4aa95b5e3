"""In-memory LRU cache with TTL for parsed certificates and keys."""
import hashlib
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class CacheEntry(Generic[T]):
    """A parsed value with its expiry timestamp."""
    data: T
    expires_at: float


def fingerprint(key: Any) -> str:
    """Short digest of a cache key, safe to log (keys hold PEM content)."""
    return hashlib.sha256(repr(key).encode("utf-8")).hexdigest()[:16]


class ParsedObjectCache:
    """
    Content-keyed cache with LRU eviction and TTL expiry.

    Keys are the raw PEM (or stored key) text, so material shared by
    several server names is parsed once. Only map updates are locked;
    concurrent misses on one key may both parse, last write wins.
    """

    def __init__(
        self,
        name: str,
        ttl: int = 3600,
        count: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cache.

        Args:
            name: Label used in logs and stats
            ttl: Time-to-live in seconds (default: 1 hour)
            count: Maximum number of entries before LRU eviction
            clock: Monotonic time source
        """
        self.name = name
        self._ttl = ttl
        self._count = count
        self._clock = clock
        self._cache: OrderedDict[Any, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: Any) -> Optional[Any]:
        """
        Get a value from cache if not expired.

        Returns:
            Cached value or None if not found or expired
        """
        now = self._clock()
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None

            if now >= entry.expires_at:
                del self._cache[key]
                self._misses += 1
                logger.debug("[SSL-CACHE] %s entry %s expired", self.name, fingerprint(key))
                return None

            self._cache.move_to_end(key)
            self._hits += 1
            return entry.data

    def set(self, key: Any, value: Any) -> None:
        """Store a value with a fresh expiry, evicting the least recently used."""
        expires_at = self._clock() + self._ttl
        with self._lock:
            self._cache[key] = CacheEntry(data=value, expires_at=expires_at)
            self._cache.move_to_end(key)
            while len(self._cache) > self._count:
                evicted, _ = self._cache.popitem(last=False)
                logger.debug("[SSL-CACHE] %s evicted %s", self.name, fingerprint(evicted))

    def get_or_parse(self, key: Any, parse_fn: Callable[..., T], *args: Any) -> T:
        """
        Return the cached value for key, parsing and storing it on a miss.

        Exceptions from parse_fn propagate and nothing is cached, so the
        next call parses again.
        """
        value = self.get(key)
        if value is not None:
            return value

        value = parse_fn(*args)
        self.set(key, value)
        return value

    def invalidate(self, key: Any) -> bool:
        """
        Remove a specific key from cache.

        Returns:
            True if key was found and removed, False otherwise
        """
        with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
        return False

    def clear(self) -> int:
        """
        Clear all cached values.

        Returns:
            Number of entries cleared
        """
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
        logger.info("[SSL-CACHE] Cleared %s cache (%d entries)", self.name, count)
        return count

    def __len__(self) -> int:
        """Number of stored entries, expired ones included until looked up."""
        with self._lock:
            return len(self._cache)

    def stats(self) -> dict:
        """
        Get cache statistics.

        Entries are listed by fingerprint, never by their PEM content.
        """
        now = self._clock()
        with self._lock:
            entries = [
                {
                    "key": fingerprint(key),
                    "expires_in_seconds": round(entry.expires_at - now, 1),
                }
                for key, entry in self._cache.items()
            ]
            hits, misses = self._hits, self._misses
        total = hits + misses
        return {
            "name": self.name,
            "entry_count": len(entries),
            "capacity": self._count,
            "ttl_seconds": self._ttl,
            "hits": hits,
            "misses": misses,
            "hit_rate_percent": round(hits * 100 / total, 1) if total else 0.0,
            "entries": entries,
        }


# Global cache instances, sized from settings on first use
_caches: dict[str, ParsedObjectCache] = {}
_caches_lock = threading.Lock()


def _get_named_cache(name: str) -> ParsedObjectCache:
    cache = _caches.get(name)
    if cache is not None:
        return cache

    from tls_identity.settings import get_ssl_settings

    with _caches_lock:
        if name not in _caches:
            settings = get_ssl_settings()
            _caches[name] = ParsedObjectCache(
                name, ttl=settings.cache_ttl, count=settings.cache_count
            )
        return _caches[name]


def get_cert_cache() -> ParsedObjectCache:
    """Get the global parsed certificate cache."""
    return _get_named_cache("cert")


def get_pkey_cache() -> ParsedObjectCache:
    """Get the global parsed private key cache."""
    return _get_named_cache("pkey")


def get_context_cache() -> ParsedObjectCache:
    """Get the global cache of SSL contexts built for the handshake."""
    return _get_named_cache("context")


def all_caches() -> list[ParsedObjectCache]:
    """Get the global caches that exist so far."""
    return list(_caches.values())


def reset_caches() -> None:
    """Discard the global caches (they are rebuilt from settings on next use)."""
    with _caches_lock:
        _caches.clear()
