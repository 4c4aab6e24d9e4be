"""
Registry Service - registration pipeline for features, roles and flags.

Owns one FeatureRegistry, PermissionResolver, FeatureFlagStore and
AccessEvaluator, and drives them through a two-state lifecycle:

    UNINITIALIZED ── initialize_features() ──> INITIALIZED
          ^                                        │
          └──────────── clear_registry() ──────────┘

- register_feature() while UNINITIALIZED only buffers the definition.
- initialize_features() applies the buffer in order and resolves.
- register_feature() while INITIALIZED applies immediately and resolves
  again, so the next read sees the new permissions.
- initialize_features() again logs a warning and recomputes everything.
- reinitialize_features() wipes derived state and replays the buffer.
- clear_registry() wipes everything, buffer included (tests only).

Mutation and resolution run under one re-entrant lock.

Usage:
    registry = RegistryService()
    registry.register_feature(EXAMS_FEATURE)
    registry.initialize_features()

    actor = Actor(roles={"manager"}, permissions={"exam:view"})
    registry.can_access("exams", actor)
"""

from enum import Enum
from threading import RLock
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Union
import logging

from config.settings import RbacSettings, get_rbac_settings
from core.service_registry import services

from .errors import ConfigurationError, DuplicateFeatureError
from .evaluator import AccessEvaluator, AccessRequirement, Actor
from .features import Feature, FeatureDefinition, FeatureFlagDefinition, FeatureRegistry, PermissionMap
from .flags import FeatureFlagStore
from .resolver import PermissionResolver, RolePermissionMap
from .roles import Role, RoleHierarchy

logger = logging.getLogger(__name__)


class RegistryState(str, Enum):
    """Lifecycle state of a RegistryService."""
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"


class RegistryService:
    """
    Explicit, injectable registry for feature access control.

    Construct one per application (see core.service_registry) or one per
    test. Nothing here is a module-level singleton.
    """

    def __init__(
        self,
        settings: Optional[RbacSettings] = None,
        hierarchy: Optional[RoleHierarchy] = None,
    ):
        self.settings = settings or get_rbac_settings()
        self._lock = RLock()

        self.features = FeatureRegistry(allow_redefinition=self.settings.allow_feature_redefinition)
        self.resolver = PermissionResolver(self.features, hierarchy or RoleHierarchy())
        self.flags = FeatureFlagStore(overrides=self.settings.flag_overrides)
        self.evaluator = AccessEvaluator(self.features, self.resolver, self.flags, self.settings)

        self._buffer: List[FeatureDefinition] = []
        self._state = RegistryState.UNINITIALIZED

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state == RegistryState.INITIALIZED

    @property
    def hierarchy(self) -> RoleHierarchy:
        return self.resolver.hierarchy

    @property
    def pending(self) -> List[FeatureDefinition]:
        """Every definition registered so far, in registration order."""
        with self._lock:
            return list(self._buffer)

    # =========================================================================
    # REGISTRATION PIPELINE
    # =========================================================================

    def register_feature(self, definition: FeatureDefinition) -> None:
        """
        Register a feature definition.

        Raises:
            UnknownRoleError: the definition names a role outside the role set
            DuplicateFeatureError: the id is already registered or buffered
                while redefinition is disabled
        """
        definition.validate()

        with self._lock:
            if not self.is_initialized:
                self._check_redefinition(definition.id)
                self._buffer.append(definition)
                logger.debug(f"Buffered feature '{definition.id}'")
                return

            self._apply(definition)
            self._buffer.append(definition)
            self.resolver.update()
            logger.info(f"Late-registered feature '{definition.id}'")

    def register_features(self, definitions: Iterable[FeatureDefinition]) -> None:
        for definition in definitions:
            self.register_feature(definition)

    def initialize_features(self) -> RolePermissionMap:
        """
        Apply buffered definitions and build the role/permission matrix.

        Safe to call again: a repeated call logs a warning and runs a full
        recomputation instead of silently doing nothing.
        """
        with self._lock:
            if self.is_initialized:
                logger.warning("Feature registry already initialized; recomputing")
                self._seed_all_flags()
                return self.resolver.initialize()

            # All or nothing: a failing definition leaves the registry as it was
            saved_features = self.features.get_all_features()
            saved_flags = self.flags.get_all_flags()
            try:
                for definition in self._buffer:
                    self._apply(definition)
            except ConfigurationError:
                self.features.restore(saved_features)
                self.flags.restore(saved_flags)
                logger.error("Feature registry initialization failed; buffered features not applied")
                raise

            matrix = self.resolver.initialize()
            self._state = RegistryState.INITIALIZED
            logger.info(
                f"Feature registry initialized: {len(self.features)} features, "
                f"{len(self.features.get_all_permission_values())} permissions"
            )
            return matrix

    def reinitialize_features(self) -> RolePermissionMap:
        """Wipe derived state and replay every registered definition."""
        with self._lock:
            self.features.clear()
            self.flags.clear()
            self.resolver.reset()
            self._state = RegistryState.UNINITIALIZED
            logger.info(f"Reinitializing feature registry ({len(self._buffer)} definitions)")
            return self.initialize_features()

    def clear_registry(self) -> None:
        """Wipe all state, including the buffer. Reserved for test isolation."""
        with self._lock:
            self._buffer.clear()
            self.features.clear()
            self.flags.clear()
            self.resolver.reset()
            self._state = RegistryState.UNINITIALIZED
            logger.info("Feature registry cleared")

    def update_rbac_registry(self) -> RolePermissionMap:
        """Re-run resolution against the current registry contents."""
        with self._lock:
            return self.resolver.initialize()

    def _apply(self, definition: FeatureDefinition) -> None:
        redefined = self.features.is_feature_registered(definition.id)
        feature = definition.apply(self.features)
        if redefined:
            self.flags.remove_feature(definition.id)
        self.flags.seed_defaults(feature)

    def _check_redefinition(self, feature_id: str) -> None:
        if self.features.allow_redefinition:
            return
        buffered = any(definition.id == feature_id for definition in self._buffer)
        if buffered or self.features.is_feature_registered(feature_id):
            raise DuplicateFeatureError(feature_id)

    def _seed_all_flags(self) -> None:
        for feature in self.features.get_all_features().values():
            self.flags.seed_defaults(feature)

    def _after_declaration(self, feature_id: str) -> None:
        feature = self.features.get_feature(feature_id)
        if feature is not None:
            self.flags.seed_defaults(feature)
        if self.is_initialized:
            self.resolver.update()

    # =========================================================================
    # REGISTRATION API (direct declarations)
    # =========================================================================

    def define_feature(
        self,
        feature_id: str,
        name: str,
        description: str,
        default_enabled: bool = True,
    ) -> Feature:
        with self._lock:
            if not self.is_initialized:
                self._check_redefinition(feature_id)
            redefined = self.features.is_feature_registered(feature_id)
            feature = self.features.define_feature(feature_id, name, description, default_enabled)
            if redefined:
                self.flags.remove_feature(feature_id)
            self._after_declaration(feature_id)
            return feature

    def define_permissions(self, feature_id: str, permissions: PermissionMap) -> None:
        with self._lock:
            self.features.define_permissions(feature_id, permissions)
            self._after_declaration(feature_id)

    def define_required_roles(self, feature_id: str, roles: Iterable[Any]) -> None:
        with self._lock:
            self.features.define_required_roles(feature_id, roles)
            self._after_declaration(feature_id)

    def define_feature_flags(
        self,
        feature_id: str,
        flags: PermissionMap,
        defaults: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> None:
        with self._lock:
            self.features.define_feature_flags(feature_id, flags, defaults)
            self._after_declaration(feature_id)

    # =========================================================================
    # FEATURE QUERIES
    # =========================================================================

    def get_all_features(self) -> Dict[str, Feature]:
        with self._lock:
            return self.features.get_all_features()

    def get_feature(self, feature_id: str) -> Optional[Feature]:
        with self._lock:
            return self.features.get_feature(feature_id)

    def get_feature_permissions(self, feature_id: str) -> Dict[str, str]:
        with self._lock:
            return self.features.get_feature_permissions(feature_id)

    def get_all_permission_values(self) -> List[str]:
        with self._lock:
            return self.features.get_all_permission_values()

    def is_feature_registered(self, feature_id: str) -> bool:
        with self._lock:
            return self.features.is_feature_registered(feature_id)

    def get_feature_flags(self, feature_id: str) -> Dict[str, FeatureFlagDefinition]:
        with self._lock:
            return self.features.get_feature_flags(feature_id)

    # =========================================================================
    # ROLE QUERIES
    # =========================================================================

    def get_permissions_for_role(self, role: Any) -> FrozenSet[str]:
        with self._lock:
            return self.resolver.get_permissions_for_role(role)

    def role_has_permission(self, role: Any, permission: str) -> bool:
        with self._lock:
            return self.resolver.role_has_permission(role, permission)

    def get_roles_with_permission(self, permission: str) -> List[Role]:
        with self._lock:
            return self.resolver.get_roles_with_permission(permission)

    def get_role_permissions(self) -> RolePermissionMap:
        with self._lock:
            return self.resolver.get_role_permissions()

    # =========================================================================
    # FLAGS
    # =========================================================================

    def is_feature_enabled(self, feature_id: str) -> bool:
        with self._lock:
            return self.flags.is_feature_enabled(feature_id)

    def is_feature_flag_enabled(self, feature_id: str, flag_id: str) -> bool:
        with self._lock:
            return self.flags.is_feature_flag_enabled(feature_id, flag_id)

    def enable_feature(self, feature_id: str) -> None:
        with self._lock:
            self.flags.enable_feature(feature_id)

    def disable_feature(self, feature_id: str) -> None:
        with self._lock:
            self.flags.disable_feature(feature_id)

    def enable_feature_flag(self, feature_id: str, flag_id: str) -> None:
        with self._lock:
            self.flags.enable_feature_flag(feature_id, flag_id)

    def disable_feature_flag(self, feature_id: str, flag_id: str) -> None:
        with self._lock:
            self.flags.disable_feature_flag(feature_id, flag_id)

    def get_all_flags(self) -> Dict[str, bool]:
        with self._lock:
            return self.flags.get_all_flags()

    # =========================================================================
    # ACCESS DECISIONS
    # =========================================================================

    def has_permission(self, actor: Optional[Actor], permission: str) -> bool:
        return self.evaluator.has_permission(actor, permission)

    def has_role(self, actor: Optional[Actor], role: Any, include_inherited: bool = False) -> bool:
        return self.evaluator.has_role(actor, role, include_inherited)

    def has_access(
        self,
        actor: Optional[Actor],
        permissions: Optional[Iterable[str]] = None,
        roles: Optional[Iterable[Any]] = None,
        require_all: bool = True,
    ) -> bool:
        return self.evaluator.has_access(actor, permissions, roles, require_all)

    def can_access(
        self,
        feature_id: str,
        actor: Optional[Actor],
        overrides: Optional[Union[AccessRequirement, Mapping[str, Any]]] = None,
        flag_id: Optional[str] = None,
    ) -> bool:
        with self._lock:
            return self.evaluator.can_access(feature_id, actor, overrides, flag_id)

    def actor_for(self, roles: Iterable[Any], permissions: Iterable[str] = ()) -> Actor:
        """Build an actor carrying the resolved permissions of its roles."""
        with self._lock:
            return self.evaluator.expand_actor(Actor(roles=roles, permissions=permissions))


# =============================================================================
# PROCESS-WIDE HANDLE
# =============================================================================

RBAC_REGISTRY_SERVICE = "rbac_registry"


def get_registry() -> RegistryService:
    """
    The application's RegistryService, created on first use.

    Usable as a FastAPI dependency. Tests reset it through
    services.reset_all().
    """
    if not services.has(RBAC_REGISTRY_SERVICE):
        services.register_factory(RBAC_REGISTRY_SERVICE, RegistryService)
    return services.get(RBAC_REGISTRY_SERVICE)
