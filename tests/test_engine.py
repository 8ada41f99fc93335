"""Tests for the RoleEngine facade and backend discovery."""

import pytest

from rolegraph import RoleEngine
from rolegraph.backends.database.sqlite import SQLiteDatabase
from rolegraph.exceptions import ConfigError
from rolegraph.plugins import create_database, discover_backends, get_backend


class TestPlugins:
    """Tests for entry-point backend discovery."""

    def test_sqlite_is_registered(self):
        """The built-in SQLite backend is discoverable."""
        assert discover_backends("database")["sqlite"] is SQLiteDatabase
        assert get_backend("database", "sqlite") is SQLiteDatabase

    def test_unknown_backend(self):
        """Unknown backends name the available ones."""
        with pytest.raises(ConfigError, match="sqlite"):
            get_backend("database", "oracle")

    @pytest.mark.asyncio
    async def test_create_database(self):
        """Backends are constructed with their keyword options."""
        db = create_database("sqlite", path=":memory:")
        assert isinstance(db, SQLiteDatabase)
        await db.close()


class TestRoleEngine:
    """Tests for RoleEngine."""

    @pytest.mark.asyncio
    async def test_from_dict(self, sample_config_dict):
        """Configured settings reach the components."""
        engine = RoleEngine.from_dict(sample_config_dict)
        try:
            assert isinstance(engine.database, SQLiteDatabase)
            assert engine.resolver.max_depth == 16
            assert engine.roles.system_actor_id == "bootstrap"
            assert engine.audit.page_size == 20
            assert engine.roles.page_size == 10
        finally:
            await engine.close()

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, sample_config_dict):
        """Initialization can run twice."""
        async with RoleEngine.from_dict(sample_config_dict) as engine:
            await engine.initialize()
            keys = await engine.store.list_persisted_permission_keys("PLATFORM")
            assert len(keys) == 127
            assert (await engine.roles.get_roles()).total == 0

    @pytest.mark.asyncio
    async def test_seed_on_init(self, sample_config_dict):
        """Default roles can be seeded at startup."""
        sample_config_dict["rbac"]["seed_defaults_on_init"] = True

        async with RoleEngine.from_dict(sample_config_dict) as engine:
            page = await engine.roles.get_roles()
            assert page.total == 8
            logs = await engine.audit.get_role_audit_logs(performed_by_id="bootstrap")
            assert logs.total == 8

    @pytest.mark.asyncio
    async def test_from_config_file(self, tmp_path):
        """Engines can be built from a YAML file."""
        path = tmp_path / "rolegraph.yaml"
        db_path = tmp_path / "data" / "roles.db"
        path.write_text(
            "storage:\n"
            "  database:\n"
            "    backend: sqlite\n"
            f"    path: {db_path}\n"
            "logging:\n"
            "  level: WARNING\n"
        )

        engine = RoleEngine.from_config(path)
        await engine.initialize()
        await engine.roles.seed_default_roles()
        await engine.close()

        reopened = RoleEngine.from_config(path)
        await reopened.initialize()
        try:
            assert (await reopened.roles.get_roles()).total == 8
        finally:
            await reopened.close()

    @pytest.mark.asyncio
    async def test_end_to_end(self, seeded, actor_id):
        """Role CRUD, assignment and checks through the facade."""
        org_member = await seeded.roles.get_role_by_name("org-member")
        child = await seeded.roles.create_role(
            {
                "name": "child",
                "display_name": "Child",
                "scope": "TENANT",
                "parent_role_id": org_member.id,
                "permissions": ["bogus:key"],
            },
            actor_id,
        )
        assert child.permissions == []
        assert await seeded.effective_permissions(child.id) == await seeded.effective_permissions(org_member.id)
        assert await seeded.role_has_permission(child.id, "agents:execute") is True

        admin = await seeded.store.create_admin("a@example.com", role="SUPPORT")
        assert await seeded.principal_has_permission(admin.id, "support:tickets:read") is True
        assert await seeded.principal_has_permission(admin.id, "billing:refunds") is False

        platform_admin = await seeded.roles.get_role_by_name("platform-admin")
        await seeded.assignments.assign_role_to_admin(admin.id, platform_admin.id, actor_id)
        assert await seeded.principal_has_permission(admin.id, "organizations:suspend") is True
        assert await seeded.principal_has_permission(admin.id, "billing:refunds") is False
        assert "organizations:suspend" in await seeded.principal_permissions(admin.id)
