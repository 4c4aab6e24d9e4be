"""Configuration module for the feature access registry."""

from .settings import RbacSettings, configure_logging, get_rbac_settings

__all__ = [
    "RbacSettings",
    "configure_logging",
    "get_rbac_settings",
]
