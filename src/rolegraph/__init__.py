"""Rolegraph - hierarchical role-based access control for admin platforms."""

from rolegraph.config import Config
from rolegraph.engine import RoleEngine
from rolegraph.exceptions import (
    CircularHierarchyError,
    ConflictError,
    NotFoundError,
    PerformerRequiredError,
    RolegraphError,
)
from rolegraph.observability import (
    AuditContext,
    LogLevel,
    StructuredLogger,
    Timer,
    configure_logging,
    emit_counter,
    emit_metric,
    emit_timer,
    get_logger,
    register_metric_callback,
)
from rolegraph.rbac import (
    Admin,
    CreateRoleInput,
    Provenance,
    Role,
    RoleScope,
    UpdateRoleInput,
)

__version__ = "0.1.0"
__all__ = [
    # Core
    "Config",
    "RoleEngine",
    # Errors
    "CircularHierarchyError",
    "ConflictError",
    "NotFoundError",
    "PerformerRequiredError",
    "RolegraphError",
    # RBAC
    "Admin",
    "CreateRoleInput",
    "Provenance",
    "Role",
    "RoleScope",
    "UpdateRoleInput",
    # Observability
    "AuditContext",
    "LogLevel",
    "StructuredLogger",
    "Timer",
    "configure_logging",
    "emit_counter",
    "emit_metric",
    "emit_timer",
    "get_logger",
    "register_metric_callback",
]
