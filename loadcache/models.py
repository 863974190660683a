"""
Value types shared by the store, the freshness evaluator and the cache.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class Freshness(str, Enum):
    fresh = "fresh"
    stale = "stale"
    expired = "expired"


class RemovalCause(str, Enum):
    explicit = "explicit"
    size = "size"
    expired = "expired"


@dataclass(frozen=True)
class CacheEntry:
    """Point-in-time copy of a stored entry."""

    key: str
    value: Any
    last_access_time: float  # time.monotonic() of the last served read
    last_write_time: float  # time.monotonic() of the last store
    idle_ttl_ms: Optional[int] = None  # None means non-expiring

    def access_age_ms(self, now: float) -> float:
        return (now - self.last_access_time) * 1000.0

    def write_age_ms(self, now: float) -> float:
        return (now - self.last_write_time) * 1000.0


class CacheStats(BaseModel):
    """Counters accumulated by a LoadingCache since construction."""

    hit_count: int = Field(default=0, ge=0)
    stale_hit_count: int = Field(default=0, ge=0)
    miss_count: int = Field(default=0, ge=0)
    load_success_count: int = Field(default=0, ge=0)
    load_failure_count: int = Field(default=0, ge=0)
    eviction_count: int = Field(default=0, ge=0)
    size: int = Field(default=0, ge=0)
    capacity: int = Field(default=0, ge=0)

    @property
    def request_count(self) -> int:
        return self.hit_count + self.stale_hit_count + self.miss_count

    @property
    def hit_rate(self) -> float:
        total = self.request_count
        if total == 0:
            return 1.0
        return (self.hit_count + self.stale_hit_count) / total
