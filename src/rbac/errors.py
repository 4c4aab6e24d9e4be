"""
RBAC Errors

Configuration errors are raised while feature modules declare themselves and
are meant to abort the offending module's load. Query-side problems (unknown
role, unknown permission, unknown feature) never raise; they fail closed.
"""

from typing import Any


class RbacError(Exception):
    """Base class for all access-registry errors."""
    pass


class ConfigurationError(RbacError):
    """Raised when a feature, role or hierarchy declaration is invalid."""
    pass


class FeatureNotRegisteredError(ConfigurationError):
    """Raised when operating on a feature id that was never defined."""

    def __init__(self, feature_id: str):
        self.feature_id = feature_id
        super().__init__(f"Feature {feature_id} not registered")


class DuplicateFeatureError(ConfigurationError):
    """Raised when a feature id is defined twice and redefinition is disabled."""

    def __init__(self, feature_id: str):
        self.feature_id = feature_id
        super().__init__(f"Feature {feature_id} is already registered")


class UnknownRoleError(ConfigurationError):
    """Raised when a declaration names a role outside the closed role set."""

    def __init__(self, role: Any):
        self.role = role
        super().__init__(f"Unknown role: {role!r}")


class HierarchyCycleError(ConfigurationError):
    """Raised when the role inheritance edges contain a cycle."""

    def __init__(self, path):
        self.path = list(path)
        chain = " -> ".join(str(getattr(r, "value", r)) for r in self.path)
        super().__init__(f"Circular role inheritance: {chain}")
