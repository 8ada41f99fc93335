"""Tests for the effective-permission cache."""

import time

import pytest

from rolegraph.rbac.cache import CacheEntry, EffectivePermissionCache
from rolegraph.rbac.models import ResolvedPermissions
from rolegraph.rbac.permissions import RoleScope


def resolved(role_id: str, *keys: str) -> ResolvedPermissions:
    return ResolvedPermissions(role_id=role_id, scope=RoleScope.PLATFORM, permissions=frozenset(keys))


class TestCacheEntry:
    """Tests for CacheEntry."""

    def test_is_expired_false_when_fresh(self) -> None:
        """Entry is not expired when TTL hasn't passed."""
        entry = CacheEntry(resolved=resolved("r1"), expires_at=time.time() + 100)
        assert not entry.is_expired

    def test_is_expired_true_when_stale(self) -> None:
        """Entry is expired when TTL has passed."""
        entry = CacheEntry(resolved=resolved("r1"), expires_at=time.time() - 1)
        assert entry.is_expired


class TestEffectivePermissionCache:
    """Tests for EffectivePermissionCache."""

    @pytest.mark.asyncio
    async def test_disabled_by_default(self) -> None:
        """A zero TTL stores nothing."""
        cache = EffectivePermissionCache()
        await cache.set(resolved("r1", "users:read"))

        assert cache.enabled is False
        assert await cache.get("r1") is None
        assert cache.size == 0

    @pytest.mark.asyncio
    async def test_set_and_get(self) -> None:
        """Set and get work correctly."""
        cache = EffectivePermissionCache(ttl_seconds=60)
        value = resolved("r1", "users:read")
        await cache.set(value)

        assert await cache.get("r1") == value
        assert await cache.get("missing") is None

    @pytest.mark.asyncio
    async def test_expired_entries_are_dropped(self) -> None:
        """Expired entries return None and leave the cache."""
        cache = EffectivePermissionCache(ttl_seconds=60)
        await cache.set(resolved("r1"))
        cache._entries["r1"].expires_at = time.time() - 1

        assert await cache.get("r1") is None
        assert cache.size == 0

    @pytest.mark.asyncio
    async def test_eviction_when_full(self) -> None:
        """The oldest entries make room for new ones."""
        cache = EffectivePermissionCache(ttl_seconds=60, max_size=3)
        for role_id in ("a", "b", "c"):
            await cache.set(resolved(role_id))
            cache._entries[role_id].created_at = {"a": 1.0, "b": 2.0, "c": 3.0}[role_id]

        await cache.set(resolved("d"))

        assert cache.size == 3
        assert await cache.get("a") is None
        assert await cache.get("d") is not None

    @pytest.mark.asyncio
    async def test_overwrite_does_not_evict(self) -> None:
        """Refreshing an existing key keeps other entries."""
        cache = EffectivePermissionCache(ttl_seconds=60, max_size=2)
        await cache.set(resolved("a"))
        await cache.set(resolved("b"))
        await cache.set(resolved("a", "users:read"))

        assert cache.size == 2
        assert (await cache.get("a")).permissions == frozenset({"users:read"})

    @pytest.mark.asyncio
    async def test_invalidate_all(self) -> None:
        """Invalidation drops every entry."""
        cache = EffectivePermissionCache(ttl_seconds=60)
        await cache.set(resolved("a"))
        await cache.set(resolved("b"))

        await cache.invalidate_all()

        assert cache.size == 0
