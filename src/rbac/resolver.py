"""
Permission Resolver - builds the Role → permission matrix.

Resolution Algorithm:
1. Reset every role to an empty set
2. Seed SUPER_ADMIN with the entire permission catalog
3. Grant each feature's permissions to the feature's required roles
4. Union in the step-3 grants of every role in the hierarchy closure
5. Freeze (set union already deduplicated)

The wildcard in step 2 does not depend on features listing SUPER_ADMIN in
their required roles.
"""

from typing import Any, Dict, FrozenSet, List, Optional, Set
import logging

from .features import FeatureRegistry
from .roles import Role, RoleHierarchy

logger = logging.getLogger(__name__)


RolePermissionMap = Dict[Role, FrozenSet[str]]


def _empty_map() -> RolePermissionMap:
    return {role: frozenset() for role in Role}


class PermissionResolver:
    """
    Derives the RolePermissionMap from a FeatureRegistry and a RoleHierarchy.

    Reads never recompute; the owner calls update() after every registration
    event.
    """

    def __init__(
        self,
        features: FeatureRegistry,
        hierarchy: Optional[RoleHierarchy] = None,
        super_role: Role = Role.SUPER_ADMIN,
    ):
        self.features = features
        self.hierarchy = hierarchy or RoleHierarchy()
        self.super_role = super_role
        self._role_permissions: RolePermissionMap = _empty_map()

    def initialize(self) -> RolePermissionMap:
        """Rebuild the RolePermissionMap from the current registry contents."""
        granted: Dict[Role, Set[str]] = {role: set() for role in Role}

        granted[self.super_role].update(self.features.get_all_permission_values())

        for feature in self.features.get_all_features().values():
            values = feature.permission_values
            for role in feature.required_roles:
                granted[role].update(values)

        resolved: Dict[Role, Set[str]] = {}
        for role in Role:
            permissions = set(granted[role])
            for inherited in self.hierarchy.closure(role):
                permissions |= granted[inherited]
            resolved[role] = permissions

        self._role_permissions = {role: frozenset(perms) for role, perms in resolved.items()}

        logger.debug(
            "RBAC matrix rebuilt: "
            + ", ".join(f"{role.value}={len(perms)}" for role, perms in self._role_permissions.items())
        )
        return dict(self._role_permissions)

    def update(self) -> None:
        """Re-run resolution. Idempotent."""
        self.initialize()

    def reset(self) -> None:
        """Drop the resolved map (every role → empty set)."""
        self._role_permissions = _empty_map()

    # =========================================================================
    # QUERIES (fail closed, never raise)
    # =========================================================================

    def get_permissions_for_role(self, role: Any) -> FrozenSet[str]:
        known = Role.lookup(role)
        if known is None:
            return frozenset()
        return self._role_permissions.get(known, frozenset())

    def role_has_permission(self, role: Any, permission: str) -> bool:
        return permission in self.get_permissions_for_role(role)

    def get_roles_with_permission(self, permission: str) -> List[Role]:
        return [role for role in Role if permission in self._role_permissions[role]]

    def get_role_permissions(self) -> RolePermissionMap:
        return dict(self._role_permissions)

    def snapshot(self) -> Dict[str, List[str]]:
        """Serializable copy of the matrix (sorted permission lists)."""
        return {role.value: sorted(perms) for role, perms in self._role_permissions.items()}
