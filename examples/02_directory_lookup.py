#!/usr/bin/env python3
"""Example: Directory-backed group lookup

Demonstrates resolving group membership through an external directory,
the fail-closed behaviour when the directory is down, and recording
lookup failures in the audit log.

Usage:
    python examples/02_directory_lookup.py

Requirements:
    pip install buildservice-access
"""
from __future__ import annotations

import tempfile
from pathlib import Path

from buildservice_access import (
    AccessConfig,
    AuditLogger,
    DirectoryClient,
    DirectoryUnavailableError,
    Group,
    PermissionEngine,
    Project,
    RelationshipIndex,
    ResourceStore,
    User,
)
from buildservice_access.config.loader import DirectoryConfig


class StaticDirectory(DirectoryClient):
    """Stand-in for an LDAP-style directory service."""

    def __init__(self, members: dict[str, set[str]], online: bool = True) -> None:
        self.members = members
        self.online = online

    def is_member(self, login: str, group: str) -> bool:
        if not self.online:
            raise DirectoryUnavailableError(group, login, "connection refused")
        return login in self.members.get(group, set())


def main() -> None:
    # Step 1: Local data knows the grant, not the membership
    store = ResourceStore()
    foo = Project(id=1, name="foo")
    store.add_project(foo)
    packagers = Group(id=1, title="packagers")
    store.add_group(packagers)
    carol = User(id=1, login="carol")
    store.add_user(carol)

    relationships = RelationshipIndex()
    relationships.grant(foo, packagers, "maintainer")

    # Step 2: Build an engine that asks the directory
    directory = StaticDirectory({"packagers": {"carol"}})
    audit = AuditLogger(Path(tempfile.mkdtemp()) / "access_audit.jsonl")
    config = AccessConfig(
        directory=DirectoryConfig(enabled=True, base_url="https://directory.example.com", cache_ttl_seconds=0)
    )
    engine = PermissionEngine.from_config(
        config, store, relationships, audit_logger=audit, directory_client=directory
    )
    print(f"Lookup strategy: {engine.lookup!r}")
    print("carol may change foo:", engine.can_modify(carol, foo))

    # Step 3: Directory outage is a denial, not an error
    directory.online = False
    print("carol may change foo (directory down):", engine.can_modify(carol, foo))

    for record in audit.read_all():
        print(f"  audit: {record['event']} group={record['group']} error={record['error']}")


if __name__ == "__main__":
    main()
