"""Errors raised by the loading cache."""

from __future__ import annotations

from typing import Optional


class LoadingCacheError(Exception):
    """Base error for the loading cache."""


class CacheLoadError(LoadingCacheError):
    """Raised when the loader fails for a key.

    The loader's own exception is chained as ``__cause__``.
    """

    def __init__(self, key: str, message: Optional[str] = None):
        super().__init__(message or f"Loading key {key!r} failed")
        self.key = key
