"""Access registry settings using Pydantic Settings.

All values can be set through environment variables with the RBAC_ prefix
(or a .env file). Complex values are JSON:

    RBAC_ADMIN_OVERRIDE_ROLES='["ADMIN", "SUPER_ADMIN"]'
    RBAC_FLAG_OVERRIDES='{"exams": false, "exams:timer": true}'
    RBAC_ALLOW_FEATURE_REDEFINITION=false
"""

import logging
from functools import lru_cache
from typing import Dict, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class RbacSettings(BaseSettings):
    """Feature access registry configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RBAC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Emergency override layered on top of the resolved role matrix
    admin_override_enabled: bool = Field(
        default=True,
        description="Actors holding an override role pass every permission check",
    )
    admin_override_roles: List[str] = Field(
        default=["ADMIN"],
        description="Roles that bypass permission checks when the override is enabled",
    )

    # Registration
    allow_feature_redefinition: bool = Field(
        default=True,
        description="Redefining a feature id overwrites it (False: raise DuplicateFeatureError)",
    )
    load_builtin_features: bool = Field(
        default=True,
        description="Register the builtin feature modules on web app startup",
    )

    # Runtime flags
    flag_overrides: Dict[str, bool] = Field(
        default_factory=dict,
        description="Flag state overrides keyed by 'feature' or 'feature:flag'",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level for the rbac loggers")

    @field_validator("admin_override_roles")
    @classmethod
    def normalize_roles(cls, value: List[str]) -> List[str]:
        return [role.strip().upper() for role in value if role and role.strip()]

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


@lru_cache
def get_rbac_settings() -> RbacSettings:
    """
    Get cached settings instance.

    Returns:
        RbacSettings: Cached settings loaded from environment.
    """
    return RbacSettings()


def configure_logging(settings: RbacSettings) -> None:
    """Apply the configured level to the rbac package loggers."""
    for name in ("rbac", "features", "web"):
        logging.getLogger(name).setLevel(settings.log_level)
    logger.debug(f"RBAC log level set to {settings.log_level}")
