#!/usr/bin/env python3
"""Example: Quickstart — buildservice-access

Minimal working example: describe a few users, groups and projects, then
ask the permission engine who may change what.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install buildservice-access
"""
from __future__ import annotations

import buildservice_access as access


def main() -> None:
    print(f"buildservice-access version: {access.__version__}")

    # Step 1: Describe the world
    guard = access.AccessGuard({
        "groups": [{"title": "packagers"}],
        "users": [
            {"login": "admin", "global_roles": ["Admin"]},
            {"login": "alice"},
            {"login": "carol", "groups": ["packagers"]},
            {"login": "dave"},
        ],
        "projects": [
            {"name": "home:alice"},
            {"name": "devel"},
            {"name": "devel:languages"},
            {"name": "released", "locked": True},
        ],
        "packages": [
            {"project": "devel:languages", "name": "python3"},
        ],
        "relationships": [
            {"project": "devel", "group": "packagers", "role": "maintainer"},
        ],
    })
    print(f"Engine ready: {guard.engine!r}")

    # Step 2: Ask questions
    checks = [
        ("alice", "home:alice", None),
        ("dave", "home:alice", None),
        ("carol", "devel:languages", "python3"),
        ("dave", "devel:languages", "python3"),
        ("admin", "released", None),
    ]
    print("\nModification checks:")
    for login, project, package in checks:
        allowed = guard.can_modify(login, project, package)
        target = f"{project}/{package}" if package else project
        print(f"  [{'ALLOW' if allowed else 'DENY '}] {login:<6} modify {target}")

    # Step 3: Locked projects need an explicit override
    print(
        "\nadmin modify released (ignore_lock=True):",
        guard.can_modify("admin", "released", ignore_lock=True),
    )

    # Step 4: Project creation
    for login, name in [("alice", "home:alice:test"), ("carol", "devel:tools"), ("dave", "devel:tools")]:
        print(f"  {login} create {name}: {guard.can_create_project(login, name)}")


if __name__ == "__main__":
    main()
