"""
Feature-scoped Role-Based Access Control (RBAC)

Feature modules declare their permissions, the roles that receive them and
their runtime flags. The registry resolves a Role → permission matrix
through the role hierarchy and answers access questions for an Actor.

Hierarchy:
    SUPER_ADMIN - full permission catalog, always
    ADMIN       - inherits MANAGER and PROPRIETOR
    PROPRIETOR  - inherits MANAGER
    MANAGER     - inherits PHARMACIST and TECHNICIAN
    PHARMACIST  - inherits USER
    TECHNICIAN  - inherits USER
    USER        - base role

Usage:
    from rbac import Actor, FeatureDefinition, get_registry

    registry = get_registry()
    registry.register_feature(FeatureDefinition.build(
        id="exams",
        name="Exams",
        permissions={"VIEW": "exam:view"},
        required_roles=["PHARMACIST"],
    ))
    registry.initialize_features()

    registry.can_access("exams", Actor(roles={"technician"}))
"""

from .errors import (
    ConfigurationError,
    DuplicateFeatureError,
    FeatureNotRegisteredError,
    HierarchyCycleError,
    RbacError,
    UnknownRoleError,
)
from .roles import (
    ADMIN_ROLES,
    MANAGER_ROLES,
    ROLE_INHERITANCE,
    ROLES,
    Role,
    RoleHierarchy,
    RoleInfo,
    get_role_info,
)
from .features import Feature, FeatureDefinition, FeatureFlagDefinition, FeatureRegistry
from .resolver import PermissionResolver, RolePermissionMap
from .flags import FeatureFlagStore, flag_key
from .evaluator import AccessEvaluator, AccessRequirement, Actor, normalize_role
from .registry import RBAC_REGISTRY_SERVICE, RegistryService, RegistryState, get_registry

__all__ = [
    # Errors
    "RbacError",
    "ConfigurationError",
    "DuplicateFeatureError",
    "FeatureNotRegisteredError",
    "HierarchyCycleError",
    "UnknownRoleError",
    # Roles
    "Role",
    "RoleInfo",
    "ROLES",
    "ROLE_INHERITANCE",
    "RoleHierarchy",
    "ADMIN_ROLES",
    "MANAGER_ROLES",
    "get_role_info",
    # Features
    "Feature",
    "FeatureDefinition",
    "FeatureFlagDefinition",
    "FeatureRegistry",
    # Resolution
    "PermissionResolver",
    "RolePermissionMap",
    # Flags
    "FeatureFlagStore",
    "flag_key",
    # Evaluation
    "AccessEvaluator",
    "AccessRequirement",
    "Actor",
    "normalize_role",
    # Registry
    "RBAC_REGISTRY_SERVICE",
    "RegistryService",
    "RegistryState",
    "get_registry",
]
