"""Protocol for read-through caches.

LoadingCache implements it; callers that only look up, load, store and
invalidate can depend on this instead of the concrete class.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol, runtime_checkable


@runtime_checkable
class ReadThroughCache(Protocol):
    """Contract for a cache that can fill itself from a loader."""

    def get_if_present(self, key: str) -> Optional[Any]:
        ...

    def get(self, key: str) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def get_all_present(self, keys: Iterable[str]) -> dict[str, Any]:
        ...

    def invalidate(self, key: str) -> None:
        ...
