"""Pytest configuration and fixtures for the access registry test suite."""

import os
import sys
from pathlib import Path

import pytest

# Keep a developer's .env or shell overrides out of the tests
for _name in [key for key in os.environ if key.startswith("RBAC_")]:
    del os.environ[_name]

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

# Scripts are imported as modules by their tests
scripts_path = Path(__file__).parent.parent / "scripts"
if str(scripts_path) not in sys.path:
    sys.path.append(str(scripts_path))

from config.settings import RbacSettings  # noqa: E402
from rbac.evaluator import Actor  # noqa: E402
from rbac.features import FeatureDefinition  # noqa: E402
from rbac.registry import RegistryService  # noqa: E402
from rbac.roles import Role  # noqa: E402


def make_settings(**overrides) -> RbacSettings:
    """Settings isolated from the environment and any .env file."""
    return RbacSettings(_env_file=None, **overrides)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def registry(settings):
    """A fresh, uninitialized registry."""
    return RegistryService(settings=settings)


@pytest.fixture
def f1_definition():
    """Feature f1: read/write permissions granted to MANAGER."""
    return FeatureDefinition.build(
        id="f1",
        name="Feature One",
        description="Test feature",
        permissions={"READ": "f1:read", "WRITE": "f1:write"},
        required_roles=[Role.MANAGER],
        flags={"BETA": "beta"},
        flag_defaults={"beta": {"name": "Beta", "default_enabled": False}},
    )


@pytest.fixture
def f1_registry(registry, f1_definition):
    """Registry with feature f1 registered and initialized."""
    registry.register_feature(f1_definition)
    registry.initialize_features()
    return registry


@pytest.fixture
def make_actor():
    """Factory for actors: make_actor(roles=[...], permissions=[...])."""
    def _make(roles=(), permissions=()):
        return Actor(roles=frozenset(roles), permissions=frozenset(permissions))
    return _make
