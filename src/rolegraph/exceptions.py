"""Rolegraph exceptions."""


class RolegraphError(Exception):
    """Base exception for rolegraph."""

    pass


class ConfigError(RolegraphError):
    """Configuration error."""

    pass


class NotFoundError(RolegraphError):
    """Resource not found."""

    pass


class RoleNotFoundError(NotFoundError):
    """Role not found."""

    pass


class AdminNotFoundError(NotFoundError):
    """Admin principal not found."""

    pass


class ConflictError(RolegraphError):
    """The operation conflicts with the current state and was rejected.

    Raised before any write, so a rejected operation never leaves a
    partial change behind.
    """

    pass


class DuplicateRoleError(ConflictError):
    """A role with the same name already exists."""

    pass


class RoleInUseError(ConflictError):
    """Role still has admins assigned."""

    pass


class SystemRoleError(ConflictError):
    """Operation not allowed on a system role."""

    pass


class CircularHierarchyError(ConflictError):
    """Parent change would create a cycle in the role hierarchy."""

    pass


class ScopeMismatchError(ConflictError):
    """Roles or assignments across permission scopes."""

    pass


class PerformerRequiredError(RolegraphError):
    """A mutation was called with no performer to record."""

    pass


class AuditWriteError(RolegraphError):
    """Failed to write an audit log entry.

    Never propagated out of a mutating operation.
    """

    pass
