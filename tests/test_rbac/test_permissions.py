"""Tests for the permission registry."""

import logging

import pytest

from rolegraph.rbac.permissions import (
    ADMIN_WILDCARD,
    PLATFORM_CATEGORIES,
    PLATFORM_PERMISSIONS,
    SUPER_WILDCARD,
    TENANT_CATEGORIES,
    TENANT_PERMISSIONS,
    RoleScope,
    filter_valid_permissions,
    get_permission,
    get_permission_categories,
    get_registry,
    group_by_category,
    is_valid_key,
    list_permissions,
    wildcard_for,
)


class TestRegistry:
    """Tests for the compiled-in catalog."""

    def test_catalog_sizes(self):
        """Both registries carry the full catalog."""
        assert len(PLATFORM_PERMISSIONS) == 127
        assert len(TENANT_PERMISSIONS) == 77
        assert len(PLATFORM_CATEGORIES) == 16
        assert len(TENANT_CATEGORIES) == 12

    def test_registries_are_read_only(self):
        """Registries can't be mutated at runtime."""
        with pytest.raises(TypeError):
            PLATFORM_PERMISSIONS["bogus:key"] = None  # type: ignore[index]

    def test_wildcards_live_in_their_own_scope(self):
        """super:* is platform-only and admin:* is tenant-only."""
        assert is_valid_key(RoleScope.PLATFORM, SUPER_WILDCARD)
        assert not is_valid_key(RoleScope.TENANT, SUPER_WILDCARD)
        assert is_valid_key(RoleScope.TENANT, ADMIN_WILDCARD)
        assert not is_valid_key(RoleScope.PLATFORM, ADMIN_WILDCARD)
        assert wildcard_for("PLATFORM") == SUPER_WILDCARD
        assert wildcard_for(RoleScope.TENANT) == ADMIN_WILDCARD

    def test_entries_carry_their_scope(self):
        """Every entry's scope matches its registry."""
        for scope in RoleScope:
            assert all(p.scope == scope for p in get_registry(scope).values())

    def test_every_category_is_declared(self):
        """Entries only use declared categories."""
        for scope in RoleScope:
            declared = set(get_permission_categories(scope))
            assert {p.category for p in list_permissions(scope)} <= declared

    def test_get_permission(self):
        """Single lookups return the entry or None."""
        permission = get_permission(RoleScope.PLATFORM, "billing:refunds")
        assert permission is not None
        assert permission.category == "Billing"
        assert permission.to_dict()["scope"] == "PLATFORM"
        assert get_permission(RoleScope.PLATFORM, "agents:list") is None

    def test_scopes_are_separate_namespaces(self):
        """A tenant key is unknown to the platform registry."""
        assert is_valid_key(RoleScope.TENANT, "agents:execute")
        assert not is_valid_key(RoleScope.PLATFORM, "agents:execute")


class TestListPermissions:
    """Tests for ordering and grouping."""

    def test_ordered_by_category_then_sort_order(self):
        """Category order follows the catalog, then sort order, then key."""
        for scope in RoleScope:
            categories = get_permission_categories(scope)
            keys = [
                (categories.index(p.category), p.sort_order, p.key)
                for p in list_permissions(scope)
            ]
            assert keys == sorted(keys)

    def test_first_platform_permission(self):
        """Organizations come first on the platform side."""
        assert list_permissions(RoleScope.PLATFORM)[0].category == "Organizations"

    def test_group_by_category(self):
        """Groups follow catalog order and cover every key."""
        grouped = group_by_category(RoleScope.TENANT)

        assert list(grouped) == [c for c in TENANT_CATEGORIES if c in grouped]
        assert sum(len(v) for v in grouped.values()) == len(TENANT_PERMISSIONS)


class TestFilterValidPermissions:
    """Tests for dropping unknown keys."""

    def test_drops_unknown_keys(self, caplog):
        """Unknown keys are removed and reported as a warning."""
        with caplog.at_level(logging.WARNING, logger="rolegraph.rbac.permissions"):
            result = filter_valid_permissions(
                ["users:read", "bogus:key", "audit:read"], RoleScope.PLATFORM
            )

        assert result == ["users:read", "audit:read"]
        assert caplog.records[0].message == "Invalid permissions ignored"
        assert caplog.records[0].context["invalid"] == ["bogus:key"]

    def test_collapses_duplicates(self):
        """Duplicates keep their first position."""
        result = filter_valid_permissions(
            ["team:read", "team:list", "team:read"], RoleScope.TENANT
        )
        assert result == ["team:read", "team:list"]

    def test_cross_scope_keys_are_dropped(self):
        """A key from the other registry is unknown."""
        assert filter_valid_permissions(["super:*"], RoleScope.TENANT) == []

    def test_no_warning_when_all_valid(self, caplog):
        """Nothing is logged when every key is valid."""
        with caplog.at_level(logging.WARNING, logger="rolegraph.rbac.permissions"):
            filter_valid_permissions(["admin:*"], RoleScope.TENANT)

        assert caplog.records == []
