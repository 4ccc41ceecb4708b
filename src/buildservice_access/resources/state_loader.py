"""Load a snapshot of principals, resources and grants.

Snapshots feed the command line tool and tests; a deployment fills the
store and the relationship index from its own database instead.

Schema
------
::

    roles:                       # optional, RoleLoader schema
      version: "1.0"
      roles: [...]
    groups:
      - title: packagers
    users:
      - login: alice
        global_roles: [Admin]
      - login: carol
        groups: [packagers]
    projects:
      - name: foo
      - name: foo:bar
        locked: true
    packages:
      - project: foo
        name: bar
    relationships:
      - project: foo
        group: packagers
        role: maintainer
      - project: foo
        package: bar
        user: carol
        role: bugowner

``id`` may be given for any entry; missing ids are assigned in order.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

from buildservice_access.permissions.relationships import RelationshipIndex
from buildservice_access.permissions.role_loader import RoleConfigError, RoleLoader
from buildservice_access.permissions.roles import RoleRegistry
from buildservice_access.resources.models import Group, Package, Principal, Project, Resource, User
from buildservice_access.resources.store import ResourceStore

logger = logging.getLogger(__name__)


class StateConfigError(ValueError):
    """Raised when a state snapshot is malformed or references unknown entries."""

    def __init__(self, message: str, config_path: str | None = None) -> None:
        self.config_path = config_path
        prefix = f"[{config_path}] " if config_path else ""
        super().__init__(f"{prefix}{message}")


@dataclass
class State:
    """A loaded snapshot.  ``roles`` is ``None`` when the snapshot has none."""

    store: ResourceStore
    relationships: RelationshipIndex
    roles: RoleRegistry | None = None


class StateLoader:
    """Builds a :class:`State` from YAML files, YAML strings or dicts."""

    def load(self, path: str | Path) -> State:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"State snapshot not found: {path}")
        try:
            with path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise StateConfigError(f"Failed to parse YAML: {exc}", str(path)) from exc
        return self.load_from_dict(raw, config_path=str(path))

    def load_from_yaml_string(self, yaml_string: str) -> State:
        try:
            raw = yaml.safe_load(yaml_string) or {}
        except yaml.YAMLError as exc:
            raise StateConfigError(f"Failed to parse YAML string: {exc}") from exc
        return self.load_from_dict(raw)

    def load_from_dict(self, raw: dict[str, object], config_path: str | None = None) -> State:
        if not isinstance(raw, dict):
            raise StateConfigError("State snapshot must be a mapping.", config_path)
        try:
            return self._build(raw, config_path)
        except (StateConfigError, RoleConfigError):
            raise
        except KeyError as exc:
            raise StateConfigError(f"Missing field {exc}.", config_path) from exc
        except (TypeError, ValueError) as exc:
            raise StateConfigError(f"Invalid state snapshot: {exc}", config_path) from exc

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build(self, raw: dict[str, object], config_path: str | None) -> State:
        roles: RoleRegistry | None = None
        if raw.get("roles") is not None:
            roles = RoleLoader().load_from_dict(raw["roles"], config_path=config_path)  # type: ignore[arg-type]

        store = ResourceStore()
        used_ids: dict[str, set[int]] = {kind: set() for kind in ("group", "user", "project", "package")}

        groups: dict[str, Group] = {}
        for entry in self._entries(raw, "groups", config_path):
            group = Group(
                id=self._assign_id(entry, used_ids["group"], config_path),
                title=str(entry["title"]),
            )
            groups[group.title] = group
            store.add_group(group)

        users: dict[str, User] = {}
        for entry in self._entries(raw, "users", config_path):
            member_of = frozenset(
                self._lookup(groups, str(title), "group", config_path)
                for title in entry.get("groups") or []
            )
            user = User(
                id=self._assign_id(entry, used_ids["user"], config_path),
                login=str(entry["login"]),
                global_roles=frozenset(str(r) for r in entry.get("global_roles") or []),
                groups=member_of,
            )
            users[user.login] = user
            store.add_user(user)

        projects: dict[str, Project] = {}
        for entry in self._entries(raw, "projects", config_path):
            project = Project(
                id=self._assign_id(entry, used_ids["project"], config_path),
                name=str(entry["name"]),
                locked=bool(entry.get("locked", False)),
            )
            projects[project.name] = project
            store.add_project(project)

        packages: dict[tuple[str, str], Package] = {}
        for entry in self._entries(raw, "packages", config_path):
            owner = self._lookup(projects, str(entry["project"]), "project", config_path)
            package = Package(
                id=self._assign_id(entry, used_ids["package"], config_path),
                name=str(entry["name"]),
                project=owner,
                locked=bool(entry.get("locked", False)),
            )
            packages[(owner.name, package.name)] = package
            store.add_package(package)

        relationships = RelationshipIndex()
        for entry in self._entries(raw, "relationships", config_path):
            resource: Resource = self._lookup(projects, str(entry["project"]), "project", config_path)
            if entry.get("package") is not None:
                resource = self._lookup(
                    packages, (resource.name, str(entry["package"])), "package", config_path
                )
            principal: Principal
            if entry.get("user") is not None and entry.get("group") is not None:
                raise StateConfigError(
                    "A relationship names either a user or a group, not both.", config_path
                )
            if entry.get("user") is not None:
                principal = self._lookup(users, str(entry["user"]), "user", config_path)
            elif entry.get("group") is not None:
                principal = self._lookup(groups, str(entry["group"]), "group", config_path)
            else:
                raise StateConfigError("A relationship must name a user or a group.", config_path)
            relationships.grant(resource, principal, str(entry["role"]))

        logger.info(
            "Loaded state from %s: %d users, %d groups, %d projects, %d packages, %d grants",
            config_path or "<dict>",
            len(users),
            len(groups),
            len(projects),
            len(packages),
            len(relationships),
        )
        return State(store=store, relationships=relationships, roles=roles)

    @staticmethod
    def _assign_id(entry: dict[str, object], used: set[int], config_path: str | None) -> int:
        raw_id = entry.get("id")
        assigned = max(used, default=0) + 1 if raw_id is None else int(str(raw_id))
        if assigned in used:
            raise StateConfigError(f"Duplicate id {assigned}.", config_path)
        used.add(assigned)
        return assigned

    @staticmethod
    def _entries(raw: dict[str, object], key: str, config_path: str | None) -> list[dict[str, object]]:
        entries = raw.get(key) or []
        if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
            raise StateConfigError(f"'{key}' must be a list of mappings.", config_path)
        return entries

    @staticmethod
    def _lookup(table: dict, key: object, kind: str, config_path: str | None):  # type: ignore[no-untyped-def]
        try:
            return table[key]
        except KeyError:
            raise StateConfigError(f"Unknown {kind} {key!r}.", config_path) from None
