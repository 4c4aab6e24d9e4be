"""
Builtin feature declarations.

Each module declares its permission and flag enums and one or more
FeatureDefinitions. register_builtin_features() hands all of them to a
RegistryService; call initialize_features() afterwards.
"""

import logging
from typing import List

from rbac.features import FeatureDefinition
from rbac.registry import RegistryService

from .admin import ADMIN_FEATURE
from .dashboard import DASHBOARD_FEATURE
from .exams import EXAM_AUTHORING_FEATURE, EXAMS_FEATURE
from .payments import PAYMENT_APPROVALS_FEATURE, PAYMENTS_FEATURE

logger = logging.getLogger(__name__)


BUILTIN_FEATURES: List[FeatureDefinition] = [
    DASHBOARD_FEATURE,
    EXAMS_FEATURE,
    EXAM_AUTHORING_FEATURE,
    PAYMENTS_FEATURE,
    PAYMENT_APPROVALS_FEATURE,
    ADMIN_FEATURE,
]


def register_builtin_features(registry: RegistryService) -> None:
    """Register every builtin feature with `registry`."""
    registry.register_features(BUILTIN_FEATURES)
    logger.info(f"Registered {len(BUILTIN_FEATURES)} builtin features")


__all__ = [
    "BUILTIN_FEATURES",
    "register_builtin_features",
]
