"""Dashboard feature: landing page and summary widgets."""

from enum import Enum

from rbac.features import FeatureDefinition
from rbac.roles import Role


class DashboardPermission(str, Enum):
    VIEW = "dashboard:view"
    VIEW_SUMMARY = "dashboard:summary:view"


class DashboardFlag(str, Enum):
    PERFORMANCE_CHARTS = "performance_charts"


DASHBOARD_FEATURE = FeatureDefinition.build(
    id="dashboard",
    name="Dashboard",
    description="Personal dashboard and progress summary",
    permissions=DashboardPermission,
    required_roles=[Role.USER],
    flags=DashboardFlag,
    flag_defaults={
        DashboardFlag.PERFORMANCE_CHARTS.value: {
            "name": "Performance charts",
            "description": "Charts of recent exam performance on the dashboard",
            "default_enabled": True,
        },
    },
)
