"""
Configuration for loading caches.

CacheConfig is the resolved, immutable settings object a LoadingCache is
built from. It can be assembled in code through CacheBuilder or loaded from
a YAML file with load_config().
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)

LoadLockMode = Literal["global", "per_key"]

DEFAULT_INITIAL_CAPACITY = 16
DEFAULT_RESIZE_INTERVAL_MS = 60 * 1000


class CacheConfig(BaseModel):
    """Resolved cache settings. A duration of 0 disables that bound."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Capacity
    initial_capacity: int = Field(default=DEFAULT_INITIAL_CAPACITY, ge=1)
    max_capacity: Optional[int] = Field(default=None, ge=1)

    # Time bounds (milliseconds)
    expire_after_access_ms: int = Field(default=0, ge=0)
    expire_after_write_ms: int = Field(default=0, ge=0)
    refresh_after_write_ms: int = Field(default=0, ge=0)

    # Background behavior
    auto_resize: bool = False
    auto_refresh: bool = False
    resize_interval_ms: int = Field(default=DEFAULT_RESIZE_INTERVAL_MS, ge=1)
    refresh_workers: int = Field(default=4, ge=1)

    # "global": one load at a time across all keys.
    # "per_key": one load at a time per key; callers for the same key share it.
    load_lock: LoadLockMode = "global"

    @model_validator(mode="after")
    def warn_unreachable_refresh(self) -> "CacheConfig":
        refresh = self.refresh_after_write_ms
        if refresh <= 0:
            return self
        for name in ("expire_after_access_ms", "expire_after_write_ms"):
            bound = getattr(self, name)
            if 0 < bound <= refresh:
                logger.warning(
                    "refresh_after_write_ms=%d is not below %s=%d; "
                    "entries may expire before they are refreshed",
                    refresh,
                    name,
                    bound,
                )
        return self

    @property
    def starting_capacity(self) -> int:
        """Capacity the store starts with: initial_capacity, capped by max_capacity."""
        if self.max_capacity is not None:
            return min(self.initial_capacity, self.max_capacity)
        return self.initial_capacity


def load_config(config_path: str | None = None) -> CacheConfig:
    """
    Load cache settings from a YAML file.

    Args:
        config_path: Path to the YAML file. If None, reads the
                     LOADCACHE_CONFIG env var (default: loadcache.yaml in
                     the current directory).

    Returns:
        Validated CacheConfig instance.
    """
    if config_path is None:
        config_path = os.environ.get("LOADCACHE_CONFIG", "loadcache.yaml")

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    return CacheConfig(**raw)
