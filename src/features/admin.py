"""Administration feature: users, permissions, feature flags, sessions."""

from enum import Enum

from rbac.features import FeatureDefinition
from rbac.roles import Role


class AdminPermission(str, Enum):
    VIEW = "admin:view"
    MANAGE_USERS = "admin:users:manage"
    VIEW_PERMISSIONS = "admin:permissions:view"
    MANAGE_FEATURES = "admin:features:manage"
    MONITOR_SESSIONS = "admin:sessions:monitor"


class AdminFlag(str, Enum):
    SESSION_MONITORING = "session_monitoring"


ADMIN_FEATURE = FeatureDefinition.build(
    id="admin",
    name="Administration",
    description="User administration, permission overview and feature toggles",
    permissions=AdminPermission,
    required_roles=[Role.ADMIN],
    flags=AdminFlag,
    flag_defaults={
        AdminFlag.SESSION_MONITORING.value: {
            "name": "Session monitoring",
            "description": "Live view of active user sessions",
        },
    },
)
