"""
FastAPI application for the feature access registry.

Routes:
- /api/rbac/*  : registry introspection, flag toggles, access checks
- GET /health  : liveness check

On startup the builtin features are registered (RBAC_LOAD_BUILTIN_FEATURES)
and the registry is initialized.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config.settings import RbacSettings, configure_logging, get_rbac_settings
from core.service_registry import services
from rbac.api import router as rbac_router
from rbac.errors import ConfigurationError
from rbac.registry import RBAC_REGISTRY_SERVICE, RegistryService, get_registry

logger = logging.getLogger(__name__)


def initialize_registry(settings: RbacSettings) -> RegistryService:
    """Register builtin features and resolve the role matrix."""
    registry = get_registry()
    if registry.is_initialized:
        logger.info("Feature registry already initialized at startup")
        return registry

    if settings.load_builtin_features:
        from features import register_builtin_features
        register_builtin_features(registry)

    registry.initialize_features()
    return registry


def create_app(
    settings: Optional[RbacSettings] = None,
    registry: Optional[RegistryService] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        registry: Pre-built registry to serve instead of the process default
    """
    settings = settings or get_rbac_settings()
    configure_logging(settings)

    if registry is not None:
        services.register(RBAC_REGISTRY_SERVICE, registry)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        initialize_registry(settings)
        yield

    app = FastAPI(title="Feature Access Registry", lifespan=lifespan)
    app.include_router(rbac_router)

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(request: Request, exc: ConfigurationError):
        """Invalid declarations reported through the API are client errors."""
        logger.warning(f"Configuration error: {exc}")
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.get("/health")
    async def health():
        current = get_registry()
        return {
            "status": "ok",
            "registry_state": current.state.value,
            "features": len(current.get_all_features()),
        }

    return app


app = create_app()
