"""
Freshness classification for cached entries.

Pure function of an entry's timestamps and the cache configuration:

- stale: older than refresh_after_write_ms since the last write. Still
  returnable, but a reload should be triggered.
- expired: past an access or write expiry bound. Must not be returned.
- fresh: everything else.

The refresh check runs first, so with both refresh and expire-after-write
set, an entry is served stale rather than dropped as long as the refresh
interval is the smaller of the two.
"""

from __future__ import annotations

from loadcache.config import CacheConfig
from loadcache.models import CacheEntry, Freshness


def classify(entry: CacheEntry, config: CacheConfig, now: float) -> Freshness:
    access_age = entry.access_age_ms(now)
    write_age = entry.write_age_ms(now)

    if config.refresh_after_write_ms > 0 and write_age > config.refresh_after_write_ms:
        return Freshness.stale

    if config.expire_after_access_ms > 0 and access_age >= config.expire_after_access_ms:
        return Freshness.expired
    if config.expire_after_write_ms > 0 and write_age >= config.expire_after_write_ms:
        return Freshness.expired
    # Sliding idle window chosen by LoadingCache.set(). Under a config this
    # entry was stored with, rule 3 already covers it: the window is
    # max(access, write) bound and access_age never exceeds write_age.
    if entry.idle_ttl_ms is not None and access_age >= entry.idle_ttl_ms:
        return Freshness.expired

    return Freshness.fresh


def idle_ttl_for_set(config: CacheConfig) -> int | None:
    """
    Expiry policy applied to values stored with set().

    With refresh-ahead configured, entries never expire on their own and
    staleness is reported through classify() instead. Otherwise a sliding
    idle window of max(expire_after_access, expire_after_write) applies.
    """
    if config.refresh_after_write_ms > 0:
        return None
    window = max(config.expire_after_access_ms, config.expire_after_write_ms)
    return window if window > 0 else None
