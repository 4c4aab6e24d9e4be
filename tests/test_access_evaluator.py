"""
Access Evaluator Tests

Permission, role and combined checks for an Actor, plus feature-scoped
checks that honor runtime flags.
"""

import pytest

from config.settings import RbacSettings
from rbac.evaluator import AccessRequirement, Actor, normalize_role
from rbac.registry import RegistryService
from rbac.roles import Role


@pytest.fixture
def evaluator(f1_registry):
    return f1_registry.evaluator


class TestActor:
    """Test actor construction"""

    def test_roles_normalized_to_upper_case(self):
        actor = Actor(roles={"admin", "Manager", Role.USER})
        assert actor.roles == frozenset({"ADMIN", "MANAGER", "USER"})

    def test_blank_and_non_string_roles_dropped(self):
        actor = Actor(roles=["", None, 3, "user"])
        assert actor.roles == frozenset({"USER"})

    def test_single_string_is_one_item(self):
        actor = Actor(roles="admin", permissions="exam:view")
        assert actor.roles == frozenset({"ADMIN"})
        assert actor.permissions == frozenset({"exam:view"})

    def test_single_enum_role(self):
        assert Actor(roles=Role.MANAGER).roles == frozenset({"MANAGER"})

    def test_from_session_with_string_role(self):
        assert Actor.from_session({"roles": "manager"}).roles == frozenset({"MANAGER"})

    def test_from_session(self):
        actor = Actor.from_session({"roles": ["pharmacist"], "permissions": ["exam:view"]})
        assert actor.roles == frozenset({"PHARMACIST"})
        assert actor.permissions == frozenset({"exam:view"})

    def test_from_empty_session(self):
        assert Actor.from_session(None) == Actor()
        assert Actor.from_session({"roles": None}) == Actor()

    def test_normalize_role(self):
        assert normalize_role(Role.ADMIN) == "ADMIN"
        assert normalize_role(" technician ") == "TECHNICIAN"
        assert normalize_role(None) == ""


class TestHasPermission:
    """Test single and quantified permission checks"""

    def test_held_permission(self, evaluator, make_actor):
        assert evaluator.has_permission(make_actor(permissions=["f1:read"]), "f1:read")

    def test_missing_permission(self, evaluator, make_actor):
        assert not evaluator.has_permission(make_actor(roles=["MANAGER"]), "f1:read")

    def test_none_actor(self, evaluator):
        assert not evaluator.has_permission(None, "f1:read")

    def test_admin_override(self, evaluator, make_actor):
        """ADMIN passes every permission check, even unknown permissions"""
        admin = make_actor(roles=["admin"])
        assert evaluator.has_permission(admin, "f1:write")
        assert evaluator.has_permission(admin, "ghost:anything")

    def test_super_admin_not_an_override_role_by_default(self, evaluator, make_actor):
        """SUPER_ADMIN relies on the resolved matrix, not the override"""
        assert not evaluator.has_permission(make_actor(roles=["SUPER_ADMIN"]), "f1:read")
        expanded = evaluator.expand_actor(make_actor(roles=["SUPER_ADMIN"]))
        assert evaluator.has_permission(expanded, "f1:read")

    def test_override_disabled(self, f1_definition, make_actor):
        registry = RegistryService(settings=RbacSettings(_env_file=None, admin_override_enabled=False))
        registry.register_feature(f1_definition)
        registry.initialize_features()

        admin = make_actor(roles=["ADMIN"])
        assert not registry.has_permission(admin, "f1:read")
        assert registry.has_permission(registry.actor_for(["ADMIN"]), "f1:read")

    def test_custom_override_roles(self, make_actor):
        registry = RegistryService(
            settings=RbacSettings(_env_file=None, admin_override_roles=["super_admin"])
        )
        assert registry.has_permission(make_actor(roles=["SUPER_ADMIN"]), "anything")
        assert not registry.has_permission(make_actor(roles=["ADMIN"]), "anything")

    def test_all_and_any(self, evaluator, make_actor):
        actor = make_actor(permissions=["f1:read"])
        assert evaluator.has_all_permissions(actor, ["f1:read"])
        assert not evaluator.has_all_permissions(actor, ["f1:read", "f1:write"])
        assert evaluator.has_any_permission(actor, ["f1:read", "f1:write"])
        assert not evaluator.has_any_permission(actor, ["f1:write"])

    def test_empty_lists(self, evaluator, make_actor):
        actor = make_actor()
        assert evaluator.has_all_permissions(actor, [])
        assert not evaluator.has_any_permission(actor, [])


class TestHasRole:
    """Test role checks"""

    def test_case_insensitive(self, evaluator, make_actor):
        assert evaluator.has_role(make_actor(roles=["admin"]), "ADMIN")
        assert evaluator.has_role(make_actor(roles=["ADMIN"]), "admin")
        assert evaluator.has_role(make_actor(roles=["ADMIN"]), Role.ADMIN)

    def test_missing_role(self, evaluator, make_actor):
        assert not evaluator.has_role(make_actor(roles=["USER"]), "ADMIN")
        assert not evaluator.has_role(None, "USER")
        assert not evaluator.has_role(make_actor(roles=["USER"]), "")

    def test_inherited_role(self, evaluator, make_actor):
        """ADMIN satisfies a MANAGER check only when inheritance is requested"""
        admin = make_actor(roles=["ADMIN"])
        assert not evaluator.has_role(admin, Role.MANAGER)
        assert evaluator.has_role(admin, Role.MANAGER, include_inherited=True)
        assert not evaluator.has_role(make_actor(roles=["USER"]), Role.MANAGER, include_inherited=True)

    def test_unknown_actor_role_never_inherits(self, evaluator, make_actor):
        assert not evaluator.has_role(make_actor(roles=["GUEST"]), Role.USER, include_inherited=True)

    def test_all_and_any(self, evaluator, make_actor):
        actor = make_actor(roles=["PHARMACIST", "USER"])
        assert evaluator.has_all_roles(actor, ["pharmacist", "user"])
        assert not evaluator.has_all_roles(actor, ["pharmacist", "manager"])
        assert evaluator.has_any_role(actor, ["manager", "user"])
        assert not evaluator.has_any_role(actor, ["manager"])

    def test_is_admin_and_is_manager(self, evaluator, make_actor):
        assert evaluator.is_admin(make_actor(roles=["super_admin"]))
        assert not evaluator.is_admin(make_actor(roles=["MANAGER"]))
        assert evaluator.is_manager(make_actor(roles=["PROPRIETOR"]))
        assert not evaluator.is_manager(make_actor(roles=["PHARMACIST"]))


class TestHasAccess:
    """Test combined permission and role requirements"""

    def test_no_requirements_grants(self, evaluator, make_actor):
        assert evaluator.has_access(make_actor(), permissions=[], roles=[], require_all=True)
        assert evaluator.has_access(make_actor(), require_all=False)
        assert evaluator.has_access(None)

    def test_single_permission_matches_membership(self, evaluator, make_actor):
        """Without ADMIN, the decision equals membership in actor.permissions"""
        assert evaluator.has_access(make_actor(permissions=["X"]), permissions=["X"])
        assert not evaluator.has_access(make_actor(permissions=["Y"]), permissions=["X"])

    def test_require_all_needs_both_sides(self, evaluator, make_actor):
        actor = make_actor(roles=["MANAGER"], permissions=["f1:read"])
        assert evaluator.has_access(actor, permissions=["f1:read"], roles=["MANAGER"])
        assert not evaluator.has_access(actor, permissions=["f1:read", "f1:write"], roles=["MANAGER"])
        assert not evaluator.has_access(actor, permissions=["f1:read"], roles=["MANAGER", "USER"])

    def test_require_all_empty_side_passes(self, evaluator, make_actor):
        actor = make_actor(roles=["MANAGER"])
        assert evaluator.has_access(actor, roles=["MANAGER"])

    def test_require_any_either_side(self, evaluator, make_actor):
        by_permission = make_actor(permissions=["f1:read"])
        by_role = make_actor(roles=["MANAGER"])
        neither = make_actor(roles=["USER"])

        kwargs = dict(permissions=["f1:read", "f1:write"], roles=["MANAGER"], require_all=False)
        assert evaluator.has_access(by_permission, **kwargs)
        assert evaluator.has_access(by_role, **kwargs)
        assert not evaluator.has_access(neither, **kwargs)

    def test_require_any_empty_side_never_grants(self, evaluator, make_actor):
        """An empty requirement list on one side does not satisfy an OR check"""
        actor = make_actor(roles=["USER"])
        assert not evaluator.has_access(actor, permissions=["f1:read"], roles=[], require_all=False)
        assert not evaluator.has_access(actor, permissions=[], roles=["MANAGER"], require_all=False)

    def test_none_actor_with_requirements(self, evaluator):
        assert not evaluator.has_access(None, permissions=["f1:read"])
        assert not evaluator.has_access(None, roles=["USER"], require_all=False)

    def test_check_with_requirement(self, evaluator, make_actor):
        requirement = AccessRequirement(permissions=frozenset({"f1:read"}), roles=frozenset({"MANAGER"}))
        assert evaluator.check(make_actor(roles=["MANAGER"], permissions=["f1:read"]), requirement)
        assert not evaluator.check(make_actor(roles=["MANAGER"]), requirement)

    def test_check_with_mapping(self, evaluator, make_actor):
        requirement = {"roles": ["USER", "MANAGER"], "require_all": False}
        assert evaluator.check(make_actor(roles=["user"]), requirement)

    def test_requirement_is_empty(self):
        assert AccessRequirement().is_empty
        assert not AccessRequirement.coerce({"roles": ["USER"]}).is_empty


class TestCanAccess:
    """Test feature-scoped access"""

    def test_required_role(self, evaluator, make_actor):
        assert evaluator.can_access("f1", make_actor(roles=["manager"]))

    def test_role_inheriting_required_role(self, evaluator, make_actor):
        assert evaluator.can_access("f1", make_actor(roles=["PROPRIETOR"]))
        assert evaluator.can_access("f1", make_actor(roles=["SUPER_ADMIN"]))

    def test_role_below_required_role(self, evaluator, make_actor):
        assert not evaluator.can_access("f1", make_actor(roles=["PHARMACIST"]))
        assert not evaluator.can_access("f1", make_actor())
        assert not evaluator.can_access("f1", None)

    def test_unknown_feature(self, evaluator, make_actor):
        assert not evaluator.can_access("ghost", make_actor(roles=["SUPER_ADMIN"]))

    def test_disabled_feature_denies(self, f1_registry, make_actor):
        f1_registry.disable_feature("f1")
        assert not f1_registry.can_access("f1", make_actor(roles=["SUPER_ADMIN"]))

    def test_disabled_sub_flag_denies(self, f1_registry, make_actor):
        manager = make_actor(roles=["MANAGER"])
        assert not f1_registry.can_access("f1", manager, flag_id="beta")

        f1_registry.enable_feature_flag("f1", "beta")
        assert f1_registry.can_access("f1", manager, flag_id="beta")

    def test_overrides_replace_required_roles(self, evaluator, make_actor):
        pharmacist = make_actor(roles=["PHARMACIST"], permissions=["f1:read"])
        assert evaluator.can_access("f1", pharmacist, {"permissions": ["f1:read"]})
        assert not evaluator.can_access("f1", make_actor(roles=["MANAGER"]), {"permissions": ["f1:write"]})

    def test_feature_without_required_roles_is_open(self, registry, make_actor):
        registry.define_feature("open", "Open", "")
        registry.initialize_features()
        assert registry.can_access("open", make_actor())


class TestExpandActor:
    """Test attaching resolved permissions to an actor"""

    def test_expand_actor(self, evaluator, make_actor):
        expanded = evaluator.expand_actor(make_actor(roles=["admin"], permissions=["extra"]))
        assert {"f1:read", "f1:write", "extra"} <= expanded.permissions
        assert expanded.roles == frozenset({"ADMIN"})

    def test_unknown_roles_contribute_nothing(self, evaluator, make_actor):
        assert evaluator.expand_actor(make_actor(roles=["GUEST"])).permissions == frozenset()

    def test_expand_none(self, evaluator):
        assert evaluator.expand_actor(None) == Actor()

    def test_actor_for_single_role(self, f1_registry):
        actor = f1_registry.actor_for("manager")
        assert actor.roles == frozenset({"MANAGER"})
        assert {"f1:read", "f1:write"} <= actor.permissions
