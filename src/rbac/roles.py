"""
Role Definitions and Inheritance Hierarchy

7 roles in a closed set. A role inherits the permissions of every role
below it in the tree:

    SUPER_ADMIN
    └── ADMIN
        ├── PROPRIETOR
        │   └── MANAGER
        └── MANAGER
            ├── PHARMACIST
            │   └── USER
            └── TECHNICIAN
                └── USER

Only DIRECT edges are declared in ROLE_INHERITANCE. RoleHierarchy computes
the transitive closure itself, so adding an intermediate role never requires
editing the rows of its ancestors.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Set

from .errors import HierarchyCycleError, UnknownRoleError


class Role(str, Enum):
    """
    All roles in the system.

    Values are the canonical (upper-case) spelling used for comparisons.
    """

    SUPER_ADMIN = "SUPER_ADMIN"
    """Omnipotent role. Always holds the full permission catalog."""

    ADMIN = "ADMIN"
    """Application administrator."""

    MANAGER = "MANAGER"
    """Pharmacy manager. Runs staff, exams and payments for a site."""

    PROPRIETOR = "PROPRIETOR"
    """Pharmacy owner. Everything a manager can do plus ownership tasks."""

    PHARMACIST = "PHARMACIST"
    """Licensed pharmacist."""

    TECHNICIAN = "TECHNICIAN"
    """Pharmacy technician."""

    USER = "USER"
    """Base role. Inherits nothing."""

    @classmethod
    def lookup(cls, value: Any) -> Optional["Role"]:
        """Case-insensitive lookup. Returns None for values outside the set."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                return None
        return None

    @classmethod
    def parse(cls, value: Any) -> "Role":
        """Case-insensitive lookup that raises UnknownRoleError."""
        role = cls.lookup(value)
        if role is None:
            raise UnknownRoleError(value)
        return role


@dataclass(frozen=True)
class RoleInfo:
    """Display information about a role."""
    role: Role
    name: str
    description: str
    is_administrative: bool


# =============================================================================
# ROLE REGISTRY
# =============================================================================

ROLES: Dict[Role, RoleInfo] = {
    Role.SUPER_ADMIN: RoleInfo(
        role=Role.SUPER_ADMIN,
        name="Super Admin",
        description="Full access to every registered feature",
        is_administrative=True,
    ),
    Role.ADMIN: RoleInfo(
        role=Role.ADMIN,
        name="Admin",
        description="Application administration",
        is_administrative=True,
    ),
    Role.MANAGER: RoleInfo(
        role=Role.MANAGER,
        name="Manager",
        description="Pharmacy manager",
        is_administrative=False,
    ),
    Role.PROPRIETOR: RoleInfo(
        role=Role.PROPRIETOR,
        name="Proprietor",
        description="Pharmacy owner",
        is_administrative=False,
    ),
    Role.PHARMACIST: RoleInfo(
        role=Role.PHARMACIST,
        name="Pharmacist",
        description="Licensed pharmacist",
        is_administrative=False,
    ),
    Role.TECHNICIAN: RoleInfo(
        role=Role.TECHNICIAN,
        name="Technician",
        description="Pharmacy technician",
        is_administrative=False,
    ),
    Role.USER: RoleInfo(
        role=Role.USER,
        name="User",
        description="Any authenticated user",
        is_administrative=False,
    ),
}


def get_role_info(role: Role) -> RoleInfo:
    """Get information about a role."""
    return ROLES[role]


# =============================================================================
# INHERITANCE EDGES (direct parents only)
# =============================================================================

ROLE_INHERITANCE: Dict[Role, FrozenSet[Role]] = {
    Role.SUPER_ADMIN: frozenset({Role.ADMIN}),
    Role.ADMIN: frozenset({Role.MANAGER, Role.PROPRIETOR}),
    Role.PROPRIETOR: frozenset({Role.MANAGER}),
    Role.MANAGER: frozenset({Role.PHARMACIST, Role.TECHNICIAN}),
    Role.PHARMACIST: frozenset({Role.USER}),
    Role.TECHNICIAN: frozenset({Role.USER}),
    Role.USER: frozenset(),
}


class RoleHierarchy:
    """
    Role inheritance graph with an explicitly computed closure.

    `edges` maps a role to the roles whose permissions it directly inherits.
    Roles missing from `edges` inherit nothing. The closure is computed once,
    at construction, by depth-first traversal; a cycle raises
    HierarchyCycleError.
    """

    def __init__(self, edges: Optional[Mapping[Any, Iterable[Any]]] = None):
        source = ROLE_INHERITANCE if edges is None else edges

        self._edges: Dict[Role, FrozenSet[Role]] = {role: frozenset() for role in Role}
        for role, parents in source.items():
            self._edges[Role.parse(role)] = frozenset(Role.parse(p) for p in parents)

        self._closure = self._compute_closure()

    def _compute_closure(self) -> Dict[Role, FrozenSet[Role]]:
        resolved: Dict[Role, FrozenSet[Role]] = {}

        def visit(role: Role, path: List[Role]) -> FrozenSet[Role]:
            if role in resolved:
                return resolved[role]
            if role in path:
                raise HierarchyCycleError(path[path.index(role):] + [role])

            path.append(role)
            inherited: Set[Role] = set()
            for parent in self._edges[role]:
                inherited.add(parent)
                inherited |= visit(parent, path)
            path.pop()

            resolved[role] = frozenset(inherited)
            return resolved[role]

        for role in Role:
            visit(role, [])
        return resolved

    def direct(self, role: Any) -> FrozenSet[Role]:
        """Roles directly inherited by `role`. Unknown role → empty set."""
        known = Role.lookup(role)
        return self._edges[known] if known else frozenset()

    def closure(self, role: Any) -> FrozenSet[Role]:
        """Every role whose permissions `role` inherits, transitively."""
        known = Role.lookup(role)
        return self._closure[known] if known else frozenset()

    def inherits_from(self, role: Any, ancestor: Any) -> bool:
        """True if `role` inherits (directly or not) the permissions of `ancestor`."""
        known = Role.lookup(ancestor)
        return known is not None and known in self.closure(role)

    def roles_inheriting(self, role: Any) -> FrozenSet[Role]:
        """Every role whose closure contains `role`."""
        known = Role.lookup(role)
        if known is None:
            return frozenset()
        return frozenset(r for r, inherited in self._closure.items() if known in inherited)

    def edges(self) -> Dict[Role, FrozenSet[Role]]:
        return dict(self._edges)


# =============================================================================
# ROLE SETS (for quick checks)
# =============================================================================

ADMIN_ROLES = frozenset({
    Role.SUPER_ADMIN,
    Role.ADMIN,
})

MANAGER_ROLES = frozenset({
    Role.SUPER_ADMIN,
    Role.ADMIN,
    Role.MANAGER,
    Role.PROPRIETOR,
})
