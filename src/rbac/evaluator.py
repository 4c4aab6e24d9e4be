"""
Access Evaluator

Synchronous, side-effect-free access decisions for an Actor:
- permission / role checks (single, ALL, ANY)
- combined permission + role requirements (has_access)
- feature-scoped checks honoring runtime flags (can_access)

Every check fails closed: unknown roles, unknown permissions, unknown
features and a missing actor yield False, never an exception. Decisions are
advisory; the backend re-validates privileged operations.

Emergency override:
    Actors holding one of RbacSettings.admin_override_roles (ADMIN by
    default) pass every has_permission() check regardless of the resolved
    role matrix. Disable with RBAC_ADMIN_OVERRIDE_ENABLED=false.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Iterable, Mapping, Optional, Union
import logging

from config.settings import RbacSettings, get_rbac_settings

from .features import FeatureRegistry
from .flags import FeatureFlagStore
from .resolver import PermissionResolver
from .roles import ADMIN_ROLES, MANAGER_ROLES, Role

logger = logging.getLogger(__name__)


def normalize_role(role: Any) -> str:
    """Canonical (upper-case) spelling of a role name."""
    if isinstance(role, Enum):
        role = role.value
    if not isinstance(role, str):
        return ""
    return role.strip().upper()


def _as_items(value: Any) -> Iterable[Any]:
    """A lone string or enum member is one item, not a sequence of characters."""
    if isinstance(value, (str, Enum)):
        return (value,)
    return value or ()


@dataclass(frozen=True)
class Actor:
    """
    The caller, as seen by the evaluator.

    Roles are normalized to upper case on construction. Both fields accept
    any iterable, or a single string.
    """
    roles: FrozenSet[str] = frozenset()
    permissions: FrozenSet[str] = frozenset()

    def __post_init__(self):
        roles = frozenset(r for r in (normalize_role(role) for role in _as_items(self.roles)) if r)
        object.__setattr__(self, "roles", roles)
        object.__setattr__(self, "permissions", frozenset(_as_items(self.permissions)))

    @classmethod
    def from_session(cls, data: Optional[Mapping[str, Any]]) -> "Actor":
        """Build an actor from session data ({"roles": [...], "permissions": [...]})."""
        if not data:
            return cls()
        return cls(
            roles=_as_items(data.get("roles")),
            permissions=_as_items(data.get("permissions")),
        )


@dataclass(frozen=True)
class AccessRequirement:
    """Permissions and/or roles required for access."""
    permissions: FrozenSet[str] = field(default_factory=frozenset)
    roles: FrozenSet[str] = field(default_factory=frozenset)
    require_all: bool = True

    @classmethod
    def coerce(cls, value: Union["AccessRequirement", Mapping[str, Any]]) -> "AccessRequirement":
        if isinstance(value, cls):
            return value
        return cls(
            permissions=frozenset(_as_items(value.get("permissions"))),
            roles=frozenset(_as_items(value.get("roles"))),
            require_all=bool(value.get("require_all", True)),
        )

    @property
    def is_empty(self) -> bool:
        return not self.permissions and not self.roles


class AccessEvaluator:
    """
    Decides ALL/ANY-quantified access for an actor.

    Composes with FeatureFlagStore for feature-scoped checks and with the
    PermissionResolver for role-derived permissions and hierarchy lookups.
    """

    def __init__(
        self,
        features: FeatureRegistry,
        resolver: PermissionResolver,
        flags: FeatureFlagStore,
        settings: Optional[RbacSettings] = None,
    ):
        self.features = features
        self.resolver = resolver
        self.flags = flags

        settings = settings or get_rbac_settings()
        self.override_roles: FrozenSet[str] = (
            frozenset(normalize_role(r) for r in settings.admin_override_roles)
            if settings.admin_override_enabled
            else frozenset()
        )

    @property
    def hierarchy(self):
        return self.resolver.hierarchy

    # =========================================================================
    # PERMISSIONS
    # =========================================================================

    def has_permission(self, actor: Optional[Actor], permission: str) -> bool:
        """True if the actor holds the permission or an override role."""
        if actor is None:
            return False

        if permission in actor.permissions:
            return True

        if actor.roles & self.override_roles:
            logger.debug(f"Override role grants permission: {permission}")
            return True

        logger.debug(f"Actor lacks permission: {permission}")
        return False

    def has_all_permissions(self, actor: Optional[Actor], permissions: Iterable[str]) -> bool:
        return all(self.has_permission(actor, p) for p in permissions)

    def has_any_permission(self, actor: Optional[Actor], permissions: Iterable[str]) -> bool:
        return any(self.has_permission(actor, p) for p in permissions)

    # =========================================================================
    # ROLES
    # =========================================================================

    def has_role(self, actor: Optional[Actor], role: Any, include_inherited: bool = False) -> bool:
        """
        Case-insensitive role check.

        With include_inherited, a held role that inherits `role` through the
        hierarchy also matches (ADMIN satisfies a MANAGER check).
        """
        if actor is None:
            return False

        wanted = normalize_role(role)
        if not wanted:
            return False
        if wanted in actor.roles:
            return True
        if not include_inherited:
            return False

        return any(self.hierarchy.inherits_from(held, wanted) for held in actor.roles)

    def has_all_roles(self, actor: Optional[Actor], roles: Iterable[Any], include_inherited: bool = False) -> bool:
        return all(self.has_role(actor, r, include_inherited) for r in roles)

    def has_any_role(self, actor: Optional[Actor], roles: Iterable[Any], include_inherited: bool = False) -> bool:
        return any(self.has_role(actor, r, include_inherited) for r in roles)

    def is_admin(self, actor: Optional[Actor]) -> bool:
        return self.has_any_role(actor, ADMIN_ROLES)

    def is_manager(self, actor: Optional[Actor]) -> bool:
        return self.has_any_role(actor, MANAGER_ROLES)

    # =========================================================================
    # COMBINED
    # =========================================================================

    def has_access(
        self,
        actor: Optional[Actor],
        permissions: Optional[Iterable[str]] = None,
        roles: Optional[Iterable[Any]] = None,
        require_all: bool = True,
    ) -> bool:
        """
        Check permissions, roles, or both.

        No requirements at all grants access. With require_all, both the
        permission check and the role check must pass (an empty side passes)
        and each is ALL-quantified. Otherwise each non-empty side is
        ANY-quantified and either may pass.
        """
        required_permissions = list(_as_items(permissions))
        required_roles = list(_as_items(roles))

        if not required_permissions and not required_roles:
            return True

        if require_all:
            permissions_ok = self.has_all_permissions(actor, required_permissions)
            roles_ok = self.has_all_roles(actor, required_roles)
            result = permissions_ok and roles_ok
        else:
            # An empty side never grants in OR mode. Treating an empty list as
            # satisfied failed open: roles=[] let any actor through.
            permissions_ok = bool(required_permissions) and self.has_any_permission(actor, required_permissions)
            roles_ok = bool(required_roles) and self.has_any_role(actor, required_roles)
            result = permissions_ok or roles_ok

        logger.debug(
            f"Access check: permissions={required_permissions} roles={required_roles} "
            f"require_all={require_all} -> {result}"
        )
        return result

    def check(self, actor: Optional[Actor], requirement: Union[AccessRequirement, Mapping[str, Any]]) -> bool:
        requirement = AccessRequirement.coerce(requirement)
        return self.has_access(
            actor,
            permissions=requirement.permissions,
            roles=requirement.roles,
            require_all=requirement.require_all,
        )

    def can_access(
        self,
        feature_id: str,
        actor: Optional[Actor],
        overrides: Optional[Union[AccessRequirement, Mapping[str, Any]]] = None,
        flag_id: Optional[str] = None,
    ) -> bool:
        """
        Feature-scoped access check.

        A disabled feature (or sub-flag) denies. Otherwise `overrides`, when
        given, decide. Without overrides the feature's required roles
        decide: any required role, any role inheriting one, or the super
        role. A feature without required roles is open to everyone.
        """
        if not self.flags.is_feature_enabled(feature_id):
            logger.debug(f"Feature '{feature_id}' disabled")
            return False

        if flag_id and not self.flags.is_feature_flag_enabled(feature_id, flag_id):
            logger.debug(f"Feature flag '{feature_id}:{flag_id}' disabled")
            return False

        if overrides is not None:
            return self.check(actor, overrides)

        feature = self.features.get_feature(feature_id)
        if feature is None:
            return False
        if not feature.required_roles:
            return True

        qualifying = set(feature.required_roles)
        for role in feature.required_roles:
            qualifying |= self.hierarchy.roles_inheriting(role)
        qualifying.add(self.resolver.super_role)

        return self.has_access(actor, roles=[r.value for r in qualifying], require_all=False)

    # =========================================================================
    # ACTOR EXPANSION
    # =========================================================================

    def expand_actor(self, actor: Optional[Actor]) -> Actor:
        """
        Return a copy of the actor carrying the resolved permissions of every
        recognized role it holds. Unknown roles contribute nothing.
        """
        if actor is None:
            return Actor()

        permissions = set(actor.permissions)
        for held in actor.roles:
            role = Role.lookup(held)
            if role is not None:
                permissions |= self.resolver.get_permissions_for_role(role)

        return Actor(roles=actor.roles, permissions=frozenset(permissions))
