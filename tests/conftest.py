"""Shared fixtures: a small build service world.

Projects::

    foo                  (group packagers: maintainer)
    foo:sub
    foo:sub:deep         package foo:sub:deep/tool
    foo/bar  (locked)    foo/baz
    home:alice
    frozen   (locked)    (erin: maintainer)
    devel                (grace: bugowner)
    devel:tools          package devel:tools/make
"""
from __future__ import annotations

from dataclasses import dataclass

import pytest

from buildservice_access.permissions.engine import PermissionEngine
from buildservice_access.permissions.relationships import RelationshipIndex
from buildservice_access.permissions.roles import RoleRegistry
from buildservice_access.resources.models import Group, Package, Project, User
from buildservice_access.resources.store import ResourceStore


@dataclass
class World:
    store: ResourceStore
    relationships: RelationshipIndex
    roles: RoleRegistry
    packagers: Group
    release_team: Group
    admin: User
    staff: User
    alice: User
    bob: User
    carol: User
    dave: User
    erin: User
    grace: User
    foo: Project
    foo_sub: Project
    foo_sub_deep: Project
    home_alice: Project
    frozen: Project
    devel: Project
    devel_tools: Project
    bar: Package
    baz: Package
    tool: Package
    make: Package


@pytest.fixture()
def world() -> World:
    store = ResourceStore()
    relationships = RelationshipIndex()

    packagers = Group(id=1, title="packagers")
    release_team = Group(id=2, title="release-team")
    for group in (packagers, release_team):
        store.add_group(group)

    admin = User(id=1, login="admin", global_roles=frozenset({"Admin"}))
    staff = User(id=2, login="staffer", global_roles=frozenset({"Staff"}))
    alice = User(id=3, login="alice")
    bob = User(id=4, login="bob")
    carol = User(id=5, login="carol", groups=frozenset({packagers}))
    dave = User(id=6, login="dave")
    erin = User(id=7, login="erin")
    grace = User(id=8, login="grace", groups=frozenset({release_team}))
    for user in (admin, staff, alice, bob, carol, dave, erin, grace):
        store.add_user(user)

    foo = Project(id=1, name="foo")
    foo_sub = Project(id=2, name="foo:sub")
    foo_sub_deep = Project(id=3, name="foo:sub:deep")
    home_alice = Project(id=4, name="home:alice")
    frozen = Project(id=5, name="frozen", locked=True)
    devel = Project(id=6, name="devel")
    devel_tools = Project(id=7, name="devel:tools")
    for project in (foo, foo_sub, foo_sub_deep, home_alice, frozen, devel, devel_tools):
        store.add_project(project)

    bar = Package(id=1, name="bar", project=foo, locked=True)
    baz = Package(id=2, name="baz", project=foo)
    tool = Package(id=3, name="tool", project=foo_sub_deep)
    make = Package(id=4, name="make", project=devel_tools)
    for package in (bar, baz, tool, make):
        store.add_package(package)

    relationships.grant(foo, packagers, "maintainer")
    relationships.grant(frozen, erin, "maintainer")
    relationships.grant(devel, grace, "bugowner")

    return World(
        store=store,
        relationships=relationships,
        roles=RoleRegistry.defaults(),
        packagers=packagers,
        release_team=release_team,
        admin=admin,
        staff=staff,
        alice=alice,
        bob=bob,
        carol=carol,
        dave=dave,
        erin=erin,
        grace=grace,
        foo=foo,
        foo_sub=foo_sub,
        foo_sub_deep=foo_sub_deep,
        home_alice=home_alice,
        frozen=frozen,
        devel=devel,
        devel_tools=devel_tools,
        bar=bar,
        baz=baz,
        tool=tool,
        make=make,
    )


@pytest.fixture()
def engine(world: World) -> PermissionEngine:
    return PermissionEngine(world.roles, world.relationships, world.store)
