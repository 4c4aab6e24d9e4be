#!/usr/bin/env python3
"""
Audit the resolved role/permission matrix of the builtin features.

Checks:
- Every role's permission set contains the sets of the roles it inherits
- SUPER_ADMIN holds the full permission catalog

Usage:
    python scripts/audit_permissions.py
    python scripts/audit_permissions.py --json
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from config.settings import RbacSettings  # noqa: E402
from features import register_builtin_features  # noqa: E402
from rbac.registry import RegistryService  # noqa: E402
from rbac.roles import Role  # noqa: E402


def find_violations(registry: RegistryService) -> List[str]:
    """Describe every broken inheritance or catalog guarantee."""
    violations = []
    for role in Role:
        held = registry.get_permissions_for_role(role)
        for inherited in registry.hierarchy.closure(role):
            missing = registry.get_permissions_for_role(inherited) - held
            if missing:
                violations.append(
                    f"{role.value} inherits {inherited.value} but lacks: {', '.join(sorted(missing))}"
                )

    catalog = set(registry.get_all_permission_values())
    super_admin = registry.get_permissions_for_role(Role.SUPER_ADMIN)
    if super_admin != catalog:
        violations.append(
            f"SUPER_ADMIN holds {len(super_admin)} permissions, catalog has {len(catalog)}"
        )
    return violations


def build_registry() -> RegistryService:
    registry = RegistryService(settings=RbacSettings(_env_file=None))
    register_builtin_features(registry)
    registry.initialize_features()
    return registry


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Audit the RBAC permission matrix")
    parser.add_argument("--json", action="store_true", help="Print the full matrix as JSON")
    args = parser.parse_args(argv)

    registry = build_registry()
    violations = find_violations(registry)

    if args.json:
        print(json.dumps({
            "features": sorted(registry.get_all_features()),
            "catalog": registry.get_all_permission_values(),
            "matrix": registry.resolver.snapshot(),
            "violations": violations,
        }, indent=2))
    else:
        print(f"Features:            {len(registry.get_all_features())}")
        print(f"Permission catalog:  {len(registry.get_all_permission_values())}")
        for role in Role:
            print(f"  {role.value:<12} {len(registry.get_permissions_for_role(role))}")

        if violations:
            print(f"\nFAIL: {len(violations)} violation(s):")
            for violation in violations:
                print(f"  - {violation}")
        else:
            print("\nPASS: Every role holds the permissions of the roles it inherits")

    return 1 if violations else 0


if __name__ == "__main__":
    sys.exit(main())
