"""
Feature Flag Store

Runtime on/off state for features and their named sub-flags, independent of
permission resolution.

Keys:
    "<feature_id>"            - the feature itself
    "<feature_id>:<flag_id>"  - a sub-flag of the feature

Defaults come from the feature declarations. Configured overrides
(RBAC_FLAG_OVERRIDES) are applied on top of defaults. Persistence is the
caller's concern.
"""

from typing import Dict, Mapping, Optional
import logging

from .features import Feature

logger = logging.getLogger(__name__)


def flag_key(feature_id: str, flag_id: Optional[str] = None) -> str:
    """Storage key for a feature or one of its sub-flags."""
    return f"{feature_id}:{flag_id}" if flag_id else feature_id


class FeatureFlagStore:
    """In-memory flag state. Unknown keys read as disabled."""

    def __init__(self, overrides: Optional[Mapping[str, bool]] = None):
        self._flags: Dict[str, bool] = {}
        self._overrides: Dict[str, bool] = dict(overrides or {})

    def seed_defaults(self, feature: Feature) -> None:
        """
        Set defaults for a feature and its sub-flags.

        Only missing keys are set, so runtime toggles survive a
        recomputation.
        """
        key = flag_key(feature.id)
        if key not in self._flags:
            self._flags[key] = self._overrides.get(key, feature.default_enabled)

        for flag_id, definition in feature.feature_flags.items():
            key = flag_key(feature.id, flag_id)
            if key not in self._flags:
                self._flags[key] = self._overrides.get(key, definition.default_enabled)

    def apply_overrides(self, overrides: Mapping[str, bool]) -> None:
        """Force flag states (also remembered for features seeded later)."""
        for key, enabled in overrides.items():
            self._overrides[key] = bool(enabled)
            self._flags[key] = bool(enabled)
        if overrides:
            logger.info(f"Applied {len(overrides)} feature flag override(s)")

    # =========================================================================
    # QUERIES
    # =========================================================================

    def is_feature_enabled(self, feature_id: str) -> bool:
        return self._flags.get(flag_key(feature_id), False)

    def is_feature_flag_enabled(self, feature_id: str, flag_id: str) -> bool:
        return self._flags.get(flag_key(feature_id, flag_id), False)

    def get_all_flags(self) -> Dict[str, bool]:
        return dict(self._flags)

    def get_feature_flag_states(self, feature_id: str) -> Dict[str, bool]:
        """The feature-level flag plus every sub-flag of one feature."""
        prefix = f"{feature_id}:"
        states = {feature_id: self.is_feature_enabled(feature_id)}
        for key, enabled in self._flags.items():
            if key.startswith(prefix):
                states[key] = enabled
        return states

    # =========================================================================
    # SETTERS
    # =========================================================================

    def set_enabled(self, feature_id: str, enabled: bool, flag_id: Optional[str] = None) -> None:
        key = flag_key(feature_id, flag_id)
        self._flags[key] = bool(enabled)
        logger.debug(f"Feature flag '{key}' set to {bool(enabled)}")

    def enable_feature(self, feature_id: str) -> None:
        self.set_enabled(feature_id, True)

    def disable_feature(self, feature_id: str) -> None:
        self.set_enabled(feature_id, False)

    def enable_feature_flag(self, feature_id: str, flag_id: str) -> None:
        self.set_enabled(feature_id, True, flag_id)

    def disable_feature_flag(self, feature_id: str, flag_id: str) -> None:
        self.set_enabled(feature_id, False, flag_id)

    def remove_feature(self, feature_id: str) -> None:
        """Forget the state of a feature and all of its sub-flags."""
        prefix = f"{feature_id}:"
        for key in [k for k in self._flags if k == feature_id or k.startswith(prefix)]:
            del self._flags[key]

    def restore(self, flags: Mapping[str, bool]) -> None:
        """Replace all runtime state with `flags` (as returned by get_all_flags)."""
        self._flags = dict(flags)

    def clear(self) -> None:
        """Forget every runtime state. Configured overrides are kept."""
        self._flags.clear()
