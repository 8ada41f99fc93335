"""TTL cache for resolved effective permission sets.

Permission checks may read slightly stale data; role mutations clear the
whole cache because a change to one role affects every descendant.
"""

import asyncio
import time
from dataclasses import dataclass, field

from rolegraph.rbac.models import ResolvedPermissions


@dataclass
class CacheEntry:
    """A cached resolution with expiration metadata."""

    resolved: ResolvedPermissions
    expires_at: float
    created_at: float = field(default_factory=time.time)

    @property
    def is_expired(self) -> bool:
        return time.time() > self.expires_at


class EffectivePermissionCache:
    """Role id -> resolved effective permissions, with TTL and size bound.

    A ``ttl_seconds`` of 0 disables caching entirely.

    Example:
        cache = EffectivePermissionCache(ttl_seconds=30)
        resolved = await cache.get(role_id)
        if resolved is None:
            resolved = await resolve(role_id)
            await cache.set(resolved)
    """

    def __init__(self, ttl_seconds: int = 0, max_size: int = 1000) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    @property
    def size(self) -> int:
        return len(self._entries)

    async def get(self, role_id: str) -> ResolvedPermissions | None:
        """Return the cached resolution, or None if absent or expired."""
        if not self.enabled:
            return None
        entry = self._entries.get(role_id)
        if entry is None:
            return None
        if entry.is_expired:
            self._entries.pop(role_id, None)
            return None
        return entry.resolved

    async def set(self, resolved: ResolvedPermissions) -> None:
        if not self.enabled:
            return
        async with self._lock:
            if len(self._entries) >= self.max_size and resolved.role_id not in self._entries:
                self._evict_oldest()
            self._entries[resolved.role_id] = CacheEntry(
                resolved=resolved,
                expires_at=time.time() + self.ttl_seconds,
            )

    def _evict_oldest(self) -> None:
        # Oldest 10%, at least one
        ordered = sorted(self._entries, key=lambda k: self._entries[k].created_at)
        for key in ordered[: max(1, len(ordered) // 10)]:
            del self._entries[key]

    async def invalidate_all(self) -> None:
        """Drop every entry."""
        async with self._lock:
            self._entries.clear()
