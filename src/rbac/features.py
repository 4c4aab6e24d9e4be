"""
Feature Registry

Holds every application feature together with:
- its permission set (permission key → permission string)
- the roles that receive those permissions
- its runtime sub-flags and their defaults

Feature modules declare themselves at load time. Declarations on an unknown
feature id raise FeatureNotRegisteredError so misconfiguration surfaces at
startup, not at request time.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Union
import logging

from .errors import DuplicateFeatureError, FeatureNotRegisteredError
from .roles import Role

logger = logging.getLogger(__name__)


PermissionMap = Union[Mapping[str, str], type]


@dataclass(frozen=True)
class FeatureFlagDefinition:
    """A named runtime toggle scoped to one feature."""
    id: str
    name: str
    description: str = ""
    default_enabled: bool = True


@dataclass
class Feature:
    """
    A named, independently registrable unit.

    Instances handed out by FeatureRegistry are copies; mutating them does
    not change registry state.
    """
    id: str
    name: str
    description: str
    default_enabled: bool = True
    permissions: Dict[str, str] = field(default_factory=dict)
    required_roles: FrozenSet[Role] = frozenset()
    feature_flags: Dict[str, FeatureFlagDefinition] = field(default_factory=dict)

    @property
    def permission_values(self) -> List[str]:
        return list(self.permissions.values())

    def copy(self) -> "Feature":
        return replace(
            self,
            permissions=dict(self.permissions),
            feature_flags=dict(self.feature_flags),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "default_enabled": self.default_enabled,
            "permissions": dict(self.permissions),
            "required_roles": sorted(role.value for role in self.required_roles),
            "feature_flags": {
                flag_id: {
                    "id": flag.id,
                    "name": flag.name,
                    "description": flag.description,
                    "default_enabled": flag.default_enabled,
                }
                for flag_id, flag in self.feature_flags.items()
            },
        }


def _as_mapping(values: PermissionMap) -> Dict[str, str]:
    """Accept a plain mapping or an Enum class (member name → value)."""
    if isinstance(values, type) and issubclass(values, Enum):
        return {member.name: str(member.value) for member in values}
    return {str(key): str(value) for key, value in dict(values).items()}


class FeatureRegistry:
    """
    Registry of feature metadata and per-feature permission sets.

    Not thread-safe on its own; RegistryService serializes access.
    """

    def __init__(self, allow_redefinition: bool = True):
        self.allow_redefinition = allow_redefinition
        self._features: Dict[str, Feature] = {}

    # =========================================================================
    # DECLARATION
    # =========================================================================

    def define_feature(
        self,
        feature_id: str,
        name: str,
        description: str,
        default_enabled: bool = True,
    ) -> Feature:
        """
        Define a new feature.

        Redefining an existing id replaces it with a fresh, empty feature.
        When redefinition is disabled this raises DuplicateFeatureError.
        """
        if feature_id in self._features:
            if not self.allow_redefinition:
                raise DuplicateFeatureError(feature_id)
            logger.warning(f"Feature '{feature_id}' redefined; previous definition discarded")

        feature = Feature(
            id=feature_id,
            name=name,
            description=description,
            default_enabled=default_enabled,
        )
        self._features[feature_id] = feature
        return feature.copy()

    def define_permissions(self, feature_id: str, permissions: PermissionMap) -> None:
        """Attach the permission set of a feature (replaces any previous set)."""
        feature = self._require(feature_id)
        feature.permissions = _as_mapping(permissions)

    def define_required_roles(self, feature_id: str, roles: Iterable[Any]) -> None:
        """
        Attach the roles that receive this feature's permissions.

        Raises:
            FeatureNotRegisteredError: unknown feature id
            UnknownRoleError: a role outside the closed role set
        """
        feature = self._require(feature_id)
        feature.required_roles = frozenset(Role.parse(role) for role in roles)

    def define_feature_flags(
        self,
        feature_id: str,
        flags: PermissionMap,
        defaults: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> None:
        """
        Attach named runtime toggles to a feature.

        Args:
            feature_id: Owning feature
            flags: Mapping or Enum of flag key → flag id
            defaults: flag id → {name, description, default_enabled}
        """
        feature = self._require(feature_id)
        defaults = defaults or {}

        for key, flag_id in _as_mapping(flags).items():
            flag_defaults = defaults.get(flag_id) or {}
            feature.feature_flags[flag_id] = FeatureFlagDefinition(
                id=flag_id,
                name=flag_defaults.get("name", key),
                description=flag_defaults.get("description", ""),
                default_enabled=bool(flag_defaults.get("default_enabled", True)),
            )

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_all_features(self) -> Dict[str, Feature]:
        return {feature_id: feature.copy() for feature_id, feature in self._features.items()}

    def get_feature(self, feature_id: str) -> Optional[Feature]:
        feature = self._features.get(feature_id)
        return feature.copy() if feature else None

    def get_feature_permissions(self, feature_id: str) -> Dict[str, str]:
        feature = self._features.get(feature_id)
        return dict(feature.permissions) if feature else {}

    def get_all_permissions(self) -> Dict[str, Dict[str, str]]:
        """Permission maps of every feature, keyed by feature id."""
        return {
            feature_id: dict(feature.permissions)
            for feature_id, feature in self._features.items()
        }

    def get_all_permission_values(self) -> List[str]:
        """The permission catalog: every permission string, deduplicated."""
        values = set()
        for feature in self._features.values():
            values.update(feature.permissions.values())
        return sorted(values)

    def get_feature_by_permission(self, permission: str) -> Optional[Feature]:
        """Find the feature owning a `feature:action` permission string."""
        for feature in self._features.values():
            if permission in feature.permissions.values():
                return feature.copy()
        return self.get_feature(permission.split(":", 1)[0])

    def is_feature_registered(self, feature_id: str) -> bool:
        return feature_id in self._features

    def get_feature_flags(self, feature_id: str) -> Dict[str, FeatureFlagDefinition]:
        feature = self._features.get(feature_id)
        return dict(feature.feature_flags) if feature else {}

    def __len__(self) -> int:
        return len(self._features)

    # =========================================================================
    # RESET
    # =========================================================================

    def clear(self) -> None:
        """Wipe all features. Reserved for test isolation and reinitialization."""
        self._features.clear()

    def restore(self, features: Mapping[str, Feature]) -> None:
        """Replace all state with `features` (as returned by get_all_features)."""
        self._features = {feature_id: feature.copy() for feature_id, feature in features.items()}

    def _require(self, feature_id: str) -> Feature:
        feature = self._features.get(feature_id)
        if feature is None:
            raise FeatureNotRegisteredError(feature_id)
        return feature


@dataclass(frozen=True)
class FeatureDefinition:
    """
    Everything a feature module declares, bundled for register_feature().

    `flags` maps flag key → flag id; `flag_defaults` maps flag id →
    {name, description, default_enabled}.
    """
    id: str
    name: str
    description: str = ""
    default_enabled: bool = True
    permissions: Mapping[str, str] = field(default_factory=dict)
    required_roles: FrozenSet[Any] = frozenset()
    flags: Mapping[str, str] = field(default_factory=dict)
    flag_defaults: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        id: str,
        name: str,
        description: str = "",
        default_enabled: bool = True,
        permissions: Optional[PermissionMap] = None,
        required_roles: Iterable[Any] = (),
        flags: Optional[PermissionMap] = None,
        flag_defaults: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> "FeatureDefinition":
        """Build a definition, accepting Enum classes for permissions and flags."""
        return cls(
            id=id,
            name=name,
            description=description,
            default_enabled=default_enabled,
            permissions=_as_mapping(permissions) if permissions is not None else {},
            required_roles=frozenset(Role.parse(role) for role in required_roles),
            flags=_as_mapping(flags) if flags is not None else {},
            flag_defaults=dict(flag_defaults or {}),
        )

    def validate(self) -> None:
        """Raise UnknownRoleError now rather than when the buffer is flushed."""
        for role in self.required_roles:
            Role.parse(role)

    def apply(self, registry: FeatureRegistry) -> Feature:
        """Replay this declaration through the registry's define_* operations."""
        registry.define_feature(self.id, self.name, self.description, self.default_enabled)
        registry.define_permissions(self.id, self.permissions)
        registry.define_required_roles(self.id, self.required_roles)
        if self.flags:
            registry.define_feature_flags(self.id, self.flags, self.flag_defaults)
        return registry.get_feature(self.id)
