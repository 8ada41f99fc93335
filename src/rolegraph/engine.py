"""RoleEngine: one object wiring every RBAC component to a database."""

import asyncio
from pathlib import Path
from typing import Any

from rolegraph.config import Config
from rolegraph.observability import Timer, configure_logging, emit_timer, get_logger
from rolegraph.plugins import create_database
from rolegraph.protocols import Database
from rolegraph.rbac.assignments import AssignmentManager
from rolegraph.rbac.audit import AuditTrail
from rolegraph.rbac.cache import EffectivePermissionCache
from rolegraph.rbac.legacy import MigrationReport, migrate_admins_to_new_role_system
from rolegraph.rbac.manager import RoleManager
from rolegraph.rbac.resolver import PermissionResolver
from rolegraph.rbac.store import RoleStore

logger = get_logger(__name__)


class RoleEngine:
    """Entry point to the RBAC engine.

    Example usage:
        engine = RoleEngine.from_config("rolegraph.yaml")
        await engine.initialize()

        role = await engine.roles.create_role(
            {"name": "billing-ops", "display_name": "Billing Ops",
             "scope": "PLATFORM", "permissions": ["billing:read"]},
            performed_by_id=admin_id,
        )
        await engine.assignments.assign_role_to_admin(other_id, role.id, admin_id)
        allowed = await engine.principal_has_permission(other_id, "billing:read")

        await engine.close()
    """

    def __init__(self, config: Config | None = None, database: Database | None = None) -> None:
        """Initialize the engine.

        Args:
            config: Engine configuration; defaults apply when omitted
            database: Database to use instead of the configured backend
        """
        self.config = config or Config()
        rbac = self.config.rbac

        if database is None:
            db_config = self.config.storage.database
            database = create_database(db_config.backend, path=db_config.path)
        self.database = database

        self.store = RoleStore(database)
        self.cache = EffectivePermissionCache(
            ttl_seconds=rbac.cache_ttl_seconds,
            max_size=rbac.cache_max_size,
        )
        self.audit = AuditTrail(
            self.store,
            page_size=rbac.audit_page_size,
            max_page_size=rbac.max_page_size,
        )
        self.resolver = PermissionResolver(
            self.store,
            cache=self.cache,
            max_depth=rbac.max_hierarchy_depth,
        )
        self.roles = RoleManager(
            self.store,
            self.audit,
            cache=self.cache,
            system_actor_id=rbac.system_actor_id,
            page_size=rbac.role_page_size,
            max_page_size=rbac.max_page_size,
        )
        self.assignments = AssignmentManager(self.store, self.audit)

        self._initialized = False
        self._init_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, path: str | Path) -> "RoleEngine":
        """Create an engine from a YAML or JSON configuration file.

        Also applies the file's logging settings.
        """
        config = Config.from_file(path)
        configure_logging(config.logging.level, config.logging.format)
        return cls(config)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "RoleEngine":
        """Create an engine from a configuration dictionary."""
        return cls(Config.from_dict(config_dict))

    async def initialize(self) -> None:
        """Create the schema, sync the permission catalog and, if configured,
        seed the default roles. Safe to call more than once.
        """
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return
            with Timer() as timer:
                await self.store.initialize_schema()
                await self.roles.sync_permissions()
                if self.config.rbac.seed_defaults_on_init:
                    await self.roles.seed_default_roles()
                self._initialized = True

        logger.info("Role engine initialized", duration_ms=timer.duration_ms)
        emit_timer("rolegraph.init", timer.duration_ms)

    async def __aenter__(self) -> "RoleEngine":
        await self.initialize()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # Permission checks

    async def effective_permissions(self, role_id: str) -> set[str]:
        return await self.resolver.effective_permissions(role_id)

    async def role_has_permission(self, role_id: str, permission: str) -> bool:
        return await self.resolver.role_has_permission(role_id, permission)

    async def principal_has_permission(self, admin_id: str, permission: str) -> bool:
        return await self.resolver.principal_has_permission(admin_id, permission)

    async def principal_permissions(self, admin_id: str) -> set[str]:
        return await self.resolver.principal_permissions(admin_id)

    # Migration

    async def migrate_admins(
        self,
        performed_by_id: str | None = None,
        dry_run: bool = False,
    ) -> MigrationReport:
        """Move admins still on legacy roles onto the seeded dynamic roles."""
        return await migrate_admins_to_new_role_system(
            self.roles,
            self.assignments,
            performed_by_id or self.config.rbac.system_actor_id,
            dry_run=dry_run,
        )

    async def close(self) -> None:
        """Close the database connection."""
        await self.database.close()
        self._initialized = False
