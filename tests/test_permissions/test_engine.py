"""Tests for PermissionEngine."""
from __future__ import annotations

import http.client
import pathlib
from collections.abc import Collection
from unittest.mock import patch

import pytest

from conftest import World

from buildservice_access.config.loader import AccessConfig, DirectoryConfig, HomeProjectConfig
from buildservice_access.lookup.base import LookupStrategy
from buildservice_access.lookup.basic import DatabaseLookupStrategy
from buildservice_access.lookup.client import DirectoryClient, DirectoryUnavailableError, HttpDirectoryClient
from buildservice_access.lookup.directory import DirectoryLookupStrategy
from buildservice_access.permissions.engine import InvalidResourceTypeError, PermissionEngine
from buildservice_access.permissions.relationships import RelationshipIndex
from buildservice_access.permissions.roles import Role, RoleRegistry
from buildservice_access.resources.models import Group, Package, Project, Resource, User
from buildservice_access.resources.store import ResourceStore


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class RecordingStrategy(LookupStrategy):
    """Grants every role on the resources in *granted*; records calls."""

    def __init__(self, granted: Collection[tuple[str, str]] = ()) -> None:
        self.granted = set(granted)
        self.calls: list[tuple[str, str, tuple[str, str]]] = []

    @property
    def name(self) -> str:
        return "recording"

    def is_in_group(self, user: User, group: Group) -> bool:
        self.calls.append(("is_in_group", user.login, ("group", group.title)))
        return False

    def local_role_check(self, user: User, role: str, resource: Resource) -> bool:
        self.calls.append(("local_role_check", user.login, resource.key))
        return resource.key in self.granted

    def local_permission_check(self, user: User, roles: Collection[str], resource: Resource) -> bool:
        self.calls.append(("local_permission_check", user.login, resource.key))
        return resource.key in self.granted


class DownDirectory(DirectoryClient):
    def is_member(self, login: str, group: str) -> bool:
        raise DirectoryUnavailableError(group, login, "timed out")


class CyclicStore(ResourceStore):
    """Resolves the parent of ``a:b`` to ``a:b`` itself."""

    def find_project(self, name: str) -> Project | None:
        if name == "a":
            return Project(id=99, name="a:b")
        return super().find_project(name)


# ---------------------------------------------------------------------------
# Principal queries
# ---------------------------------------------------------------------------


class TestPrincipalQueries:
    def test_admin_detected_from_global_role(self, engine: PermissionEngine, world: World) -> None:
        assert engine.is_admin(world.admin) is True
        assert engine.is_admin(world.alice) is False

    def test_staff_detected_from_global_role(self, engine: PermissionEngine, world: World) -> None:
        assert engine.is_staff(world.staff) is True
        assert engine.is_staff(world.admin) is False

    def test_custom_admin_role_title(self, world: World) -> None:
        engine = PermissionEngine(
            world.roles, world.relationships, world.store, admin_role="Staff"
        )
        assert engine.is_admin(world.staff) is True
        assert engine.is_admin(world.admin) is False

    def test_has_role_any_title(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_role(world.staff, "Admin", "Staff") is True
        assert engine.has_role(world.alice, "Admin", "Staff") is False

    def test_home_and_branch_project_names(self, engine: PermissionEngine, world: World) -> None:
        assert engine.home_project_name(world.alice) == "home:alice"
        assert engine.branch_project_name(world.alice, "foo") == "home:alice:branches:foo"


class TestIsInGroup:
    def test_group_object(self, engine: PermissionEngine, world: World) -> None:
        assert engine.is_in_group(world.carol, world.packagers) is True
        assert engine.is_in_group(world.dave, world.packagers) is False

    def test_group_title(self, engine: PermissionEngine, world: World) -> None:
        assert engine.is_in_group(world.carol, "packagers") is True

    def test_group_id(self, engine: PermissionEngine, world: World) -> None:
        assert engine.is_in_group(world.carol, world.packagers.id) is True

    def test_unknown_title_and_id_are_false(self, engine: PermissionEngine, world: World) -> None:
        assert engine.is_in_group(world.carol, "no-such-group") is False
        assert engine.is_in_group(world.carol, 999) is False

    def test_none_is_false(self, engine: PermissionEngine, world: World) -> None:
        assert engine.is_in_group(world.carol, None) is False

    @pytest.mark.parametrize("bad", [1.5, True, ["packagers"]])
    def test_illegal_type_raises(self, engine: PermissionEngine, world: World, bad: object) -> None:
        with pytest.raises(TypeError):
            engine.is_in_group(world.carol, bad)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Global permissions
# ---------------------------------------------------------------------------


class TestHasGlobalPermission:
    def test_admin_satisfies_every_permission(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_global_permission(world.admin, "change_project") is True
        assert engine.has_global_permission(world.admin, "made_up_permission") is True

    def test_global_role_grants_its_permissions(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_global_permission(world.staff, "source_access") is True
        assert engine.has_global_permission(world.staff, "change_project") is False

    def test_user_without_global_roles(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_global_permission(world.alice, "source_access") is False

    def test_local_grant_is_not_global(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_global_permission(world.carol, "change_project") is False

    def test_unknown_global_role_grants_nothing(self, engine: PermissionEngine) -> None:
        user = User(id=50, login="ghost", global_roles=frozenset({"NoSuchRole"}))
        assert engine.has_global_permission(user, "change_project") is False


# ---------------------------------------------------------------------------
# Local permissions
# ---------------------------------------------------------------------------


class TestHasLocalPermission:
    def test_group_grant_counts(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_local_permission(world.carol, "change_project", world.foo) is True

    def test_non_member_denied(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_local_permission(world.dave, "change_project", world.foo) is False

    def test_direct_user_grant(self, engine: PermissionEngine, world: World) -> None:
        world.relationships.grant(world.foo_sub, world.dave, "maintainer")
        assert engine.has_local_permission(world.dave, "change_project", world.foo_sub) is True

    def test_role_without_the_permission(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_local_permission(world.grace, "change_project", world.devel) is False

    def test_unknown_permission_grants_nothing(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_local_permission(world.carol, "fly_to_the_moon", world.foo) is False

    def test_none_resource_is_global_check(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_local_permission(world.staff, "source_access", None) is True
        assert engine.has_local_permission(world.carol, "change_project", None) is False

    def test_package_inherits_from_project(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_local_permission(world.carol, "change_package", world.baz) is True

    def test_whole_ancestor_chain_is_searched(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_local_permission(world.carol, "change_package", world.tool) is True
        assert engine.has_local_permission(world.carol, "change_project", world.foo_sub_deep) is True

    def test_grant_does_not_flow_upwards(self, engine: PermissionEngine, world: World) -> None:
        world.relationships.grant(world.foo_sub, world.dave, "maintainer")
        assert engine.has_local_permission(world.dave, "change_project", world.foo) is False

    def test_unrelated_tree_denied(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_local_permission(world.carol, "change_project", world.devel_tools) is False

    def test_unsupported_resource_is_false(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_local_permission(world.carol, "change_project", "foo") is False  # type: ignore[arg-type]

    def test_revoked_grant_no_longer_counts(self, engine: PermissionEngine, world: World) -> None:
        world.relationships.revoke(world.foo, world.packagers, "maintainer")
        assert engine.has_local_permission(world.carol, "change_project", world.foo) is False

    def test_monotonic_along_ancestor_chain(self, engine: PermissionEngine, world: World) -> None:
        below_foo = [world.foo_sub, world.foo_sub_deep, world.bar, world.baz, world.tool]
        for resource in below_foo:
            assert engine.has_local_permission(world.carol, "change_project", resource) is True


class TestLookupDelegation:
    def test_lookup_grants_missing_fact(self, world: World) -> None:
        strategy = RecordingStrategy(granted={world.foo_sub_deep.key})
        engine = PermissionEngine(world.roles, world.relationships, world.store, strategy)
        assert engine.has_local_permission(world.dave, "change_package", world.tool) is True

    def test_lookup_consulted_for_each_level(self, world: World) -> None:
        strategy = RecordingStrategy()
        engine = PermissionEngine(world.roles, world.relationships, world.store, strategy)
        assert engine.has_local_permission(world.dave, "change_package", world.tool) is False
        visited = [key for call, _, key in strategy.calls if call == "local_permission_check"]
        assert visited == [
            world.tool.key,
            world.foo_sub_deep.key,
            world.foo_sub.key,
            world.foo.key,
        ]

    def test_lookup_skipped_when_local_index_answers(self, world: World) -> None:
        strategy = RecordingStrategy()
        engine = PermissionEngine(world.roles, world.relationships, world.store, strategy)
        assert engine.has_local_permission(world.carol, "change_project", world.foo) is True
        assert strategy.calls == []

    def test_lookup_skipped_for_unknown_permission(self, world: World) -> None:
        strategy = RecordingStrategy(granted={world.foo.key})
        engine = PermissionEngine(world.roles, world.relationships, world.store, strategy)
        assert engine.has_local_permission(world.dave, "nope", world.foo) is False
        assert strategy.calls == []

    def test_directory_failure_is_false_not_error(self, world: World) -> None:
        strategy = DirectoryLookupStrategy(DownDirectory(), world.relationships)
        engine = PermissionEngine(world.roles, world.relationships, world.store, strategy)
        assert engine.has_local_permission(world.dave, "change_project", world.foo) is False

    def test_malformed_directory_response_is_false(self, world: World) -> None:
        client = HttpDirectoryClient("https://directory.example.com")
        strategy = DirectoryLookupStrategy(client, world.relationships)
        engine = PermissionEngine(world.roles, world.relationships, world.store, strategy)
        with patch("urllib.request.urlopen", side_effect=http.client.BadStatusLine("NOT-HTTP garbage")):
            assert engine.has_local_permission(world.dave, "change_project", world.foo) is False


class TestRecursionGuards:
    def test_cycle_in_store_terminates(self, world: World) -> None:
        store = CyclicStore()
        child = Project(id=98, name="a:b")
        store.add_project(child)
        engine = PermissionEngine(world.roles, RelationshipIndex(), store)
        assert engine.has_local_permission(world.dave, "change_project", child) is False

    def test_depth_bound_stops_the_walk(self, world: World) -> None:
        engine = PermissionEngine(world.roles, world.relationships, world.store, max_depth=2)
        # tool -> foo:sub:deep -> foo:sub; foo is three levels up
        assert engine.has_local_permission(world.carol, "change_package", world.tool) is False
        assert engine.has_local_permission(world.carol, "change_package", world.baz) is True


# ---------------------------------------------------------------------------
# Local roles
# ---------------------------------------------------------------------------


class TestHasLocalRole:
    def test_direct_role_on_project(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_local_role(world.grace, "bugowner", world.devel) is True

    def test_role_via_group(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_local_role(world.carol, "maintainer", world.foo) is True

    def test_role_object_accepted(self, engine: PermissionEngine, world: World) -> None:
        role = world.roles.get("maintainer")
        assert role is not None
        assert engine.has_local_role(world.carol, role, world.foo) is True

    def test_other_role_not_held(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_local_role(world.carol, "bugowner", world.foo) is False

    def test_package_falls_back_to_project(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_local_role(world.carol, "maintainer", world.baz) is True

    def test_project_does_not_fall_back_to_parent(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_local_role(world.grace, "bugowner", world.devel_tools) is False

    def test_package_fallback_is_one_level_only(self, engine: PermissionEngine, world: World) -> None:
        world.relationships.grant(world.devel, world.grace, "maintainer")
        # devel:tools/make -> devel:tools, never devel
        assert engine.has_local_role(world.grace, "maintainer", world.make) is False
        # the permission check walks the full chain
        assert engine.has_local_permission(world.grace, "change_package", world.make) is True

    def test_none_resource_is_false(self, engine: PermissionEngine, world: World) -> None:
        assert engine.has_local_role(world.carol, "maintainer", None) is False

    def test_lookup_role_check_used(self, world: World) -> None:
        strategy = RecordingStrategy(granted={world.devel_tools.key})
        engine = PermissionEngine(world.roles, world.relationships, world.store, strategy)
        assert engine.has_local_role(world.dave, "reviewer", world.make) is True
        checked = [key for call, _, key in strategy.calls if call == "local_role_check"]
        assert checked == [world.make.key, world.devel_tools.key]


# ---------------------------------------------------------------------------
# can_modify
# ---------------------------------------------------------------------------


class TestCanModifyProject:
    def test_home_project_escape_hatch(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_modify(world.alice, world.home_alice) is True

    def test_other_users_home_project(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_modify(world.bob, world.home_alice) is False

    def test_group_maintainer(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_modify(world.carol, world.foo) is True
        assert engine.can_modify(world.carol, world.foo_sub) is True

    def test_stranger(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_modify(world.dave, world.foo) is False

    def test_admin(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_modify(world.admin, world.foo) is True

    def test_locked_project_denies_maintainer(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_modify(world.erin, world.frozen, ignore_lock=False) is False
        assert engine.can_modify(world.erin, world.frozen, ignore_lock=True) is True

    def test_locked_project_binds_admin(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_modify(world.admin, world.frozen, ignore_lock=False) is False
        assert engine.can_modify(world.admin, world.frozen, ignore_lock=True) is True

    def test_ignore_lock_does_not_grant(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_modify(world.dave, world.frozen, ignore_lock=True) is False

    def test_locked_home_project(self, world: World) -> None:
        locked_home = Project(id=40, name="home:bob", locked=True)
        world.store.add_project(locked_home)
        engine = PermissionEngine(world.roles, world.relationships, world.store)
        assert engine.can_modify(world.bob, locked_home) is False
        assert engine.can_modify(world.bob, locked_home, ignore_lock=True) is True

    def test_global_change_project(self, world: World) -> None:
        roles = RoleRegistry(
            world.roles.roles()
            + [Role(title="project-admin", global_role=True, permissions=frozenset({"change_project"}))]
        )
        engine = PermissionEngine(roles, world.relationships, world.store)
        user = User(id=60, login="pa", global_roles=frozenset({"project-admin"}))
        assert engine.can_modify(user, world.devel) is True
        assert engine.can_modify(user, world.make) is False

    def test_can_modify_project_rejects_package(self, engine: PermissionEngine, world: World) -> None:
        with pytest.raises(InvalidResourceTypeError):
            engine.can_modify_project(world.carol, world.baz)  # type: ignore[arg-type]


class TestCanModifyPackage:
    def test_locked_package_in_unlocked_project(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_modify(world.carol, world.bar, ignore_lock=False) is False
        assert engine.can_modify(world.carol, world.bar, ignore_lock=True) is True

    def test_unlocked_package(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_modify(world.carol, world.baz) is True
        assert engine.can_modify(world.dave, world.baz) is False

    def test_admin(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_modify(world.admin, world.baz) is True
        assert engine.can_modify(world.admin, world.bar) is False

    def test_deep_package_via_ancestor(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_modify(world.carol, world.tool) is True

    def test_package_grant(self, engine: PermissionEngine, world: World) -> None:
        world.relationships.grant(world.make, world.dave, "maintainer")
        assert engine.can_modify(world.dave, world.make) is True
        assert engine.can_modify(world.dave, world.devel_tools) is False

    def test_home_escape_hatch_is_project_only(self, engine: PermissionEngine, world: World) -> None:
        home_pkg = Package(id=70, name="hello", project=world.home_alice)
        world.store.add_package(home_pkg)
        assert engine.can_modify(world.alice, home_pkg) is False

    def test_remote_package_none(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_modify(world.admin, None) is False
        assert engine.can_modify_package(world.admin, None) is False

    def test_can_modify_package_rejects_project(self, engine: PermissionEngine, world: World) -> None:
        with pytest.raises(InvalidResourceTypeError):
            engine.can_modify_package(world.carol, world.foo)  # type: ignore[arg-type]


class TestCanModifyInvalidType:
    @pytest.mark.parametrize("bad", ["foo", 42, object()])
    def test_raises(self, engine: PermissionEngine, world: World, bad: object) -> None:
        with pytest.raises(InvalidResourceTypeError) as exc_info:
            engine.can_modify(world.admin, bad)  # type: ignore[arg-type]
        assert exc_info.value.operation == "can_modify"
        assert exc_info.value.resource_type == type(bad).__name__

    def test_is_a_type_error(self, engine: PermissionEngine, world: World) -> None:
        with pytest.raises(TypeError):
            engine.can_modify(world.admin, world.packagers)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Other policies
# ---------------------------------------------------------------------------


class TestCanCreateProject:
    def test_own_home_project(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_create_project(world.alice, "home:alice") is True

    def test_below_own_home_project(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_create_project(world.alice, "home:alice:test") is True
        assert engine.can_create_project(world.alice, "home:alice:branches:foo") is True

    def test_home_prefix_is_not_enough(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_create_project(world.alice, "home:alicex") is False
        assert engine.can_create_project(world.bob, "home:alice:test") is False

    def test_home_creation_disabled(self, world: World) -> None:
        engine = PermissionEngine(
            world.roles, world.relationships, world.store, allow_home_project_creation=False
        )
        assert engine.can_create_project(world.bob, "home:bob") is False
        # home:alice exists, and alice holds no create_project grant on it
        assert engine.can_create_project(world.alice, "home:alice:test") is False

    def test_local_create_permission_on_parent(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_create_project(world.carol, "foo:new") is True
        assert engine.can_create_project(world.carol, "foo:sub:new") is True

    def test_no_local_permission(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_create_project(world.dave, "foo:new") is False

    def test_missing_parent(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_create_project(world.carol, "nosuch:child") is False
        assert engine.can_create_project(world.carol, "foo:missing:child") is False
        assert engine.can_create_project(world.carol, "toplevel") is False

    def test_admin(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_create_project(world.admin, "toplevel") is True
        assert engine.can_create_project(world.admin, "devel:new") is True

    def test_global_create_project(self, world: World) -> None:
        roles = RoleRegistry(
            world.roles.roles()
            + [Role(title="creator", global_role=True, permissions=frozenset({"create_project"}))]
        )
        engine = PermissionEngine(roles, world.relationships, world.store)
        user = User(id=61, login="creator", global_roles=frozenset({"creator"}))
        assert engine.can_create_project(user, "anything") is True


class TestCanModifyUser:
    def test_self(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_modify_user(world.bob, world.bob) is True

    def test_other(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_modify_user(world.alice, world.bob) is False

    def test_admin(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_modify_user(world.admin, world.bob) is True


class TestCan:
    def test_global_permission(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_source_access(world.staff, world.make) is True

    def test_local_permission(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_download_binaries(world.carol, world.baz) is True
        assert engine.can_download_binaries(world.dave, world.baz) is False

    def test_admin(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can(world.admin, "anything", world.baz) is True

    def test_none_package_global_only(self, engine: PermissionEngine, world: World) -> None:
        assert engine.can_source_access(world.carol, None) is False


# ---------------------------------------------------------------------------
# from_config
# ---------------------------------------------------------------------------


class TestFromConfig:
    def test_defaults_use_database_strategy(self, world: World) -> None:
        engine = PermissionEngine.from_config(AccessConfig(), world.store, world.relationships)
        assert isinstance(engine.lookup, DatabaseLookupStrategy)
        assert "maintainer" in engine.roles

    def test_directory_enabled(self, world: World) -> None:
        config = AccessConfig(
            directory=DirectoryConfig(enabled=True, base_url="http://directory.invalid")
        )
        engine = PermissionEngine.from_config(
            config, world.store, world.relationships, directory_client=DownDirectory()
        )
        assert isinstance(engine.lookup, DirectoryLookupStrategy)
        assert engine.has_local_permission(world.dave, "change_project", world.foo) is False

    def test_home_project_flag(self, world: World) -> None:
        config = AccessConfig(home_project=HomeProjectConfig(allow_user_to_create=False))
        engine = PermissionEngine.from_config(config, world.store, world.relationships)
        assert engine.can_create_project(world.bob, "home:bob") is False

    def test_roles_file(self, world: World, tmp_path: pathlib.Path) -> None:
        roles_file = tmp_path / "roles.yaml"
        roles_file.write_text(
            "roles:\n  - title: maintainer\n    permissions: [change_project]\n",
            encoding="utf-8",
        )
        engine = PermissionEngine.from_config(
            AccessConfig(roles_file=roles_file), world.store, world.relationships
        )
        assert engine.has_local_permission(world.carol, "change_project", world.foo) is True
        assert engine.has_local_permission(world.carol, "change_package", world.baz) is False

    def test_repr(self, engine: PermissionEngine) -> None:
        assert "PermissionEngine" in repr(engine)
