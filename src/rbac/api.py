"""
RBAC Introspection API

Read-side view of the feature registry and runtime flag toggles.

Endpoints:
- GET  /api/rbac/features                         - All features
- GET  /api/rbac/features/{feature_id}            - One feature
- GET  /api/rbac/roles                            - Roles with inheritance
- GET  /api/rbac/roles/{role}/permissions         - Resolved permissions of a role
- GET  /api/rbac/permissions/{permission}/roles   - Roles holding a permission
- GET  /api/rbac/flags                            - Flag states
- PUT  /api/rbac/flags/{feature_id}               - Toggle a feature
- PUT  /api/rbac/flags/{feature_id}/{flag_id}     - Toggle a sub-flag
- POST /api/rbac/access/check                     - Advisory access decision

Decisions returned here are advisory. The backend that owns a privileged
operation re-validates it.
"""

from typing import Dict, List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from .evaluator import Actor
from .registry import RegistryService, get_registry
from .roles import ROLES, Role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rbac", tags=["rbac"])


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class FeatureFlagResponse(BaseModel):
    """Sub-flag definition"""
    id: str
    name: str
    description: str
    default_enabled: bool


class FeatureResponse(BaseModel):
    """Feature with its permission set"""
    id: str
    name: str
    description: str
    default_enabled: bool
    enabled: bool
    permissions: Dict[str, str]
    required_roles: List[str]
    feature_flags: Dict[str, FeatureFlagResponse]


class FeatureListResponse(BaseModel):
    features: List[FeatureResponse]
    total: int
    permission_count: int


class RoleResponse(BaseModel):
    role: str
    name: str
    description: str
    inherits: List[str]
    closure: List[str]
    permission_count: int


class RolePermissionsResponse(BaseModel):
    role: str
    permissions: List[str]


class PermissionRolesResponse(BaseModel):
    permission: str
    roles: List[str]


class FlagUpdateRequest(BaseModel):
    enabled: bool


class AccessCheckRequest(BaseModel):
    """Actor data plus the requirement to evaluate"""
    roles: List[str] = Field(default_factory=list)
    permissions: List[str] = Field(default_factory=list)
    feature_id: Optional[str] = None
    flag_id: Optional[str] = None
    required_permissions: List[str] = Field(default_factory=list)
    required_roles: List[str] = Field(default_factory=list)
    require_all: bool = True


class AccessCheckResponse(BaseModel):
    allowed: bool
    advisory: bool = True


# =============================================================================
# HELPERS
# =============================================================================

def _feature_response(registry: RegistryService, feature_id: str) -> FeatureResponse:
    feature = registry.get_feature(feature_id)
    if feature is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Feature '{feature_id}' not registered",
        )
    data = feature.to_dict()
    return FeatureResponse(enabled=registry.is_feature_enabled(feature_id), **data)


def _require_role(role: str) -> Role:
    known = Role.lookup(role)
    if known is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown role '{role}'",
        )
    return known


def _require_feature(registry: RegistryService, feature_id: str) -> None:
    if not registry.is_feature_registered(feature_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Feature '{feature_id}' not registered",
        )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/features", response_model=FeatureListResponse)
async def list_features(registry: RegistryService = Depends(get_registry)):
    """List every registered feature with its permission set."""
    features = [_feature_response(registry, feature_id) for feature_id in registry.get_all_features()]
    return FeatureListResponse(
        features=features,
        total=len(features),
        permission_count=len(registry.get_all_permission_values()),
    )


@router.get("/features/{feature_id}", response_model=FeatureResponse)
async def get_feature(feature_id: str, registry: RegistryService = Depends(get_registry)):
    return _feature_response(registry, feature_id)


@router.get("/roles", response_model=List[RoleResponse])
async def list_roles(registry: RegistryService = Depends(get_registry)):
    """List roles with their direct parents and full inheritance closure."""
    hierarchy = registry.hierarchy
    return [
        RoleResponse(
            role=role.value,
            name=ROLES[role].name,
            description=ROLES[role].description,
            inherits=sorted(r.value for r in hierarchy.direct(role)),
            closure=sorted(r.value for r in hierarchy.closure(role)),
            permission_count=len(registry.get_permissions_for_role(role)),
        )
        for role in Role
    ]


@router.get("/roles/{role}/permissions", response_model=RolePermissionsResponse)
async def get_role_permissions(role: str, registry: RegistryService = Depends(get_registry)):
    known = _require_role(role)
    return RolePermissionsResponse(
        role=known.value,
        permissions=sorted(registry.get_permissions_for_role(known)),
    )


@router.get("/permissions/{permission}/roles", response_model=PermissionRolesResponse)
async def get_permission_roles(permission: str, registry: RegistryService = Depends(get_registry)):
    return PermissionRolesResponse(
        permission=permission,
        roles=[role.value for role in registry.get_roles_with_permission(permission)],
    )


@router.get("/flags", response_model=Dict[str, bool])
async def list_flags(registry: RegistryService = Depends(get_registry)):
    return registry.get_all_flags()


@router.put("/flags/{feature_id}", response_model=Dict[str, bool])
async def set_feature_flag(
    feature_id: str,
    body: FlagUpdateRequest,
    registry: RegistryService = Depends(get_registry),
):
    """Enable or disable a whole feature at runtime."""
    _require_feature(registry, feature_id)
    if body.enabled:
        registry.enable_feature(feature_id)
    else:
        registry.disable_feature(feature_id)
    logger.info(f"Feature '{feature_id}' {'enabled' if body.enabled else 'disabled'} via API")
    return {feature_id: registry.is_feature_enabled(feature_id)}


@router.put("/flags/{feature_id}/{flag_id}", response_model=Dict[str, bool])
async def set_feature_sub_flag(
    feature_id: str,
    flag_id: str,
    body: FlagUpdateRequest,
    registry: RegistryService = Depends(get_registry),
):
    """Enable or disable one declared sub-flag of a feature."""
    _require_feature(registry, feature_id)
    if flag_id not in registry.get_feature_flags(feature_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Feature '{feature_id}' has no flag '{flag_id}'",
        )
    if body.enabled:
        registry.enable_feature_flag(feature_id, flag_id)
    else:
        registry.disable_feature_flag(feature_id, flag_id)
    logger.info(f"Feature flag '{feature_id}:{flag_id}' {'enabled' if body.enabled else 'disabled'} via API")
    return {f"{feature_id}:{flag_id}": registry.is_feature_flag_enabled(feature_id, flag_id)}


@router.post("/access/check", response_model=AccessCheckResponse)
async def check_access(body: AccessCheckRequest, registry: RegistryService = Depends(get_registry)):
    """
    Evaluate an access requirement for the supplied actor data.

    With feature_id, the feature's flags and (absent explicit requirements)
    its required roles decide.
    """
    actor = Actor(roles=frozenset(body.roles), permissions=frozenset(body.permissions))
    has_requirement = bool(body.required_permissions or body.required_roles)

    if body.feature_id:
        overrides = None
        if has_requirement:
            overrides = {
                "permissions": body.required_permissions,
                "roles": body.required_roles,
                "require_all": body.require_all,
            }
        allowed = registry.can_access(body.feature_id, actor, overrides, body.flag_id)
    else:
        allowed = registry.has_access(
            actor,
            permissions=body.required_permissions,
            roles=body.required_roles,
            require_all=body.require_all,
        )

    return AccessCheckResponse(allowed=allowed)
