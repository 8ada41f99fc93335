"""Default system roles seeded at bootstrap."""

from rolegraph.rbac.models import CreateRoleInput
from rolegraph.rbac.permissions import RoleScope

DEFAULT_PLATFORM_ROLES: tuple[CreateRoleInput, ...] = (
    CreateRoleInput(
        name="super-admin",
        display_name="Super Admin",
        description="Full platform access with all permissions",
        scope=RoleScope.PLATFORM,
        is_system=True,
        priority=100,
        color="#8B5CF6",
        icon="Shield",
        permissions=["super:*"],
    ),
    CreateRoleInput(
        name="platform-admin",
        display_name="Platform Admin",
        description="Standard admin with most management capabilities",
        scope=RoleScope.PLATFORM,
        is_system=True,
        priority=80,
        color="#3B82F6",
        icon="UserCog",
        permissions=[
            "organizations:list", "organizations:read", "organizations:create",
            "organizations:update", "organizations:suspend", "organizations:restore",
            "organizations:export",
            "users:list", "users:read", "users:create", "users:update",
            "users:ban", "users:unban", "users:reset-password", "users:export",
            "admins:list", "admins:read",
            "roles:list", "roles:read", "roles:create", "roles:update", "roles:assign",
            "security:dashboard", "security:policies:read", "security:threats:read",
            "security:violations:read", "security:violations:manage",
            "audit:read", "audit:export",
            "analytics:dashboard", "analytics:usage:read", "analytics:revenue:read",
            "analytics:growth:read", "analytics:export", "analytics:reports:create",
            "features:list", "features:read", "features:create", "features:update",
            "features:toggle", "features:rollout",
            "billing:dashboard", "billing:plans:read", "billing:subscriptions:read",
            "billing:subscriptions:write", "billing:invoices:read",
            "support:tickets:list", "support:tickets:read", "support:tickets:create",
            "support:tickets:respond", "support:tickets:assign", "support:tickets:close",
            "support:tickets:escalate", "support:knowledge:read", "support:knowledge:write",
            "system:config:read", "system:rules:read", "system:rules:write",
            "system:health:read", "system:logs:read", "system:jobs:read",
            "notifications:list", "notifications:create", "notifications:broadcast",
            "notifications:templates:read", "notifications:templates:write",
            "integrations:list", "integrations:read", "integrations:create",
            "integrations:update", "integrations:webhooks:read", "integrations:webhooks:write",
            "integrations:api-clients:read", "integrations:api-clients:write",
            "compliance:dashboard", "compliance:frameworks:read", "compliance:audits:read",
            "compliance:legal-holds:read", "compliance:data-retention:read",
            "identity:domains:read", "identity:sso:read", "identity:scim:read",
            "identity:devices:read",
            "operations:incidents:read", "operations:releases:read",
            "operations:capacity:read",
        ],
    ),
    CreateRoleInput(
        name="support-agent",
        display_name="Support Agent",
        description="Customer support with limited write access",
        scope=RoleScope.PLATFORM,
        is_system=True,
        priority=60,
        color="#10B981",
        icon="HeadphonesIcon",
        permissions=[
            "organizations:list", "organizations:read",
            "users:list", "users:read", "users:reset-password",
            "audit:read",
            "analytics:dashboard", "analytics:usage:read",
            "features:list", "features:read",
            "billing:dashboard", "billing:subscriptions:read", "billing:invoices:read",
            "support:tickets:list", "support:tickets:read", "support:tickets:create",
            "support:tickets:respond", "support:tickets:close",
            "support:knowledge:read",
            "notifications:list", "notifications:create",
        ],
    ),
    CreateRoleInput(
        name="analyst",
        display_name="Analyst",
        description="Read-only analytics access",
        scope=RoleScope.PLATFORM,
        is_system=True,
        priority=40,
        color="#F59E0B",
        icon="BarChart",
        permissions=[
            "organizations:list", "organizations:read",
            "users:list", "users:read",
            "audit:read",
            "analytics:dashboard", "analytics:usage:read", "analytics:revenue:read",
            "analytics:growth:read", "analytics:export", "analytics:reports:create",
            "analytics:reports:schedule",
            "features:list", "features:read",
        ],
    ),
)

DEFAULT_TENANT_ROLES: tuple[CreateRoleInput, ...] = (
    CreateRoleInput(
        name="org-owner",
        display_name="Owner",
        description="Full organization access",
        scope=RoleScope.TENANT,
        is_system=True,
        priority=100,
        color="#8B5CF6",
        icon="Crown",
        permissions=["admin:*"],
    ),
    CreateRoleInput(
        name="org-admin",
        display_name="Admin",
        description="Full feature access, limited billing/team management",
        scope=RoleScope.TENANT,
        is_system=True,
        priority=80,
        color="#3B82F6",
        icon="UserCog",
        permissions=[
            "agents:list", "agents:read", "agents:create", "agents:update",
            "agents:delete", "agents:execute", "agents:publish",
            "workflows:list", "workflows:read", "workflows:create", "workflows:update",
            "workflows:delete", "workflows:execute", "workflows:schedule",
            "reports:list", "reports:read", "reports:create", "reports:update",
            "reports:delete", "reports:export", "reports:share",
            "dashboards:list", "dashboards:read", "dashboards:create", "dashboards:update",
            "dashboards:delete", "dashboards:share",
            "datasources:list", "datasources:read", "datasources:create",
            "datasources:update", "datasources:delete", "datasources:sync",
            "team:list", "team:read", "team:invite", "team:update", "team:roles:assign",
            "org:settings:read", "org:settings:write", "org:branding:read",
            "org:branding:write", "org:billing:read", "org:api-keys:read",
            "org:api-keys:write", "org:integrations:read", "org:integrations:write",
            "org:audit:read",
            "audiences:list", "audiences:read", "audiences:create", "audiences:update",
            "audiences:delete",
            "charts:list", "charts:read", "charts:create", "charts:update", "charts:delete",
            "brand-tracking:list", "brand-tracking:read", "brand-tracking:create",
            "brand-tracking:update", "brand-tracking:delete",
            "memory:list", "memory:read", "memory:create", "memory:update", "memory:delete",
            "hierarchy:read", "hierarchy:write", "hierarchy:relationships:read",
            "hierarchy:relationships:write", "hierarchy:sharing:read",
            "hierarchy:sharing:write",
        ],
    ),
    CreateRoleInput(
        name="org-member",
        display_name="Member",
        description="Standard feature access",
        scope=RoleScope.TENANT,
        is_system=True,
        priority=60,
        color="#10B981",
        icon="User",
        permissions=[
            "agents:list", "agents:read", "agents:create", "agents:update", "agents:execute",
            "workflows:list", "workflows:read", "workflows:create", "workflows:update",
            "workflows:execute",
            "reports:list", "reports:read", "reports:create", "reports:update",
            "reports:export",
            "dashboards:list", "dashboards:read", "dashboards:create", "dashboards:update",
            "datasources:list", "datasources:read",
            "team:list", "team:read",
            "org:settings:read", "org:api-keys:read",
            "audiences:list", "audiences:read", "audiences:create", "audiences:update",
            "charts:list", "charts:read", "charts:create", "charts:update",
            "brand-tracking:list", "brand-tracking:read", "brand-tracking:create",
            "brand-tracking:update",
            "memory:list", "memory:read", "memory:create", "memory:update",
            "hierarchy:read", "hierarchy:relationships:read", "hierarchy:sharing:read",
        ],
    ),
    CreateRoleInput(
        name="org-viewer",
        display_name="Viewer",
        description="Read-only access",
        scope=RoleScope.TENANT,
        is_system=True,
        priority=40,
        color="#6B7280",
        icon="Eye",
        permissions=[
            "agents:list", "agents:read",
            "workflows:list", "workflows:read",
            "reports:list", "reports:read",
            "dashboards:list", "dashboards:read",
            "datasources:list", "datasources:read",
            "team:list", "team:read",
            "org:settings:read",
            "audiences:list", "audiences:read",
            "charts:list", "charts:read",
            "brand-tracking:list", "brand-tracking:read",
            "memory:list", "memory:read",
            "hierarchy:read", "hierarchy:sharing:read",
        ],
    ),
)


def get_default_roles(scope: RoleScope | str | None = None) -> list[CreateRoleInput]:
    """Fresh copies of the default role definitions, optionally for one scope."""
    roles = DEFAULT_PLATFORM_ROLES + DEFAULT_TENANT_ROLES
    if scope is not None:
        roles = tuple(r for r in roles if r.scope == RoleScope(scope))
    return [r.model_copy(deep=True) for r in roles]
