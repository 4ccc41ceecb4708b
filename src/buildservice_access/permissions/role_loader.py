"""YAML-based role configuration loader.

RoleLoader reads role definitions and builds a :class:`RoleRegistry`.
Roles are configuration-time data: load them once at startup and share the
registry across all permission checks.

Schema
------
::

    version: "1.0"
    roles:
      - title: "Admin"
        global: true
        permissions:
          - "change_project"
          - "change_package"
          - "create_project"
      - title: "maintainer"
        permissions:
          - "change_project"
          - "change_package"
      - title: "reviewer"

Example
-------
::

    loader = RoleLoader()
    registry = loader.load("/etc/obs/roles.yaml")
    assert "maintainer" in registry.ids_with_permission("change_package")
"""
from __future__ import annotations

import logging
from pathlib import Path

import yaml

from buildservice_access.permissions.roles import Role, RoleRegistry

logger = logging.getLogger(__name__)

_SUPPORTED_VERSIONS: frozenset[str] = frozenset(["1.0", "1"])


class RoleConfigError(ValueError):
    """Raised when a role config is malformed or invalid.

    Attributes
    ----------
    config_path:
        The path to the config file that caused the error, if known.
    """

    def __init__(self, message: str, config_path: str | None = None) -> None:
        self.config_path = config_path
        prefix = f"[{config_path}] " if config_path else ""
        super().__init__(f"{prefix}{message}")


def role_from_dict(data: dict[str, object]) -> Role:
    """Build a Role from a plain dictionary.

    Raises
    ------
    ValueError
        If ``title`` is missing or ``permissions`` is not a list of strings.
    """
    title = str(data.get("title", "")).strip()
    if not title:
        raise ValueError("Role.title must not be empty.")

    global_raw = data.get("global", False)
    if not isinstance(global_raw, bool):
        raise ValueError(f"Role.global must be a boolean; got {global_raw!r}.")

    raw_permissions = data.get("permissions") or []
    if not isinstance(raw_permissions, list) or not all(
        isinstance(p, str) and p for p in raw_permissions
    ):
        raise ValueError(
            f"Role.permissions must be a list of non-empty strings; got {raw_permissions!r}."
        )

    return Role(title=title, global_role=global_raw, permissions=frozenset(raw_permissions))


class RoleLoader:
    """Loads RoleRegistry configurations from YAML files or dicts.

    Parameters
    ----------
    strict:
        When ``True``, unknown top-level keys are treated as an error.
    """

    _KNOWN_TOP_KEYS: frozenset[str] = frozenset(["version", "roles", "metadata", "description"])

    def __init__(self, strict: bool = False) -> None:
        self._strict = strict

    def load(self, config_path: str | Path) -> RoleRegistry:
        """Load a RoleRegistry from a YAML file on disk.

        Raises
        ------
        RoleConfigError
            If the file cannot be parsed or is structurally invalid.
        FileNotFoundError
            If the config file does not exist.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Role config not found: {config_path}")

        try:
            with config_path.open("r", encoding="utf-8") as fh:
                raw: dict[str, object] = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise RoleConfigError(f"Failed to parse YAML: {exc}", str(config_path)) from exc

        return self._build_registry(raw, config_path=str(config_path))

    def load_from_dict(
        self,
        config: dict[str, object],
        config_path: str | None = None,
    ) -> RoleRegistry:
        return self._build_registry(config, config_path=config_path)

    def load_from_yaml_string(
        self,
        yaml_string: str,
        config_path: str | None = None,
    ) -> RoleRegistry:
        try:
            raw: dict[str, object] = yaml.safe_load(yaml_string) or {}
        except yaml.YAMLError as exc:
            raise RoleConfigError(f"Failed to parse YAML string: {exc}", config_path) from exc
        return self._build_registry(raw, config_path=config_path)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_registry(
        self,
        raw: dict[str, object],
        config_path: str | None = None,
    ) -> RoleRegistry:
        self._validate_structure(raw, config_path)

        version = str(raw.get("version", "1.0"))
        if version not in _SUPPORTED_VERSIONS:
            raise RoleConfigError(
                f"Unsupported config version {version!r}. "
                f"Supported: {sorted(_SUPPORTED_VERSIONS)}.",
                config_path,
            )

        roles: list[Role] = []
        for index, raw_role in enumerate(raw["roles"]):  # type: ignore[union-attr]
            if not isinstance(raw_role, dict):
                raise RoleConfigError(f"Role at index {index} must be a mapping.", config_path)
            try:
                roles.append(role_from_dict(raw_role))
            except (ValueError, TypeError) as exc:
                raise RoleConfigError(f"Error in role at index {index}: {exc}", config_path) from exc

        try:
            registry = RoleRegistry(roles)
        except ValueError as exc:
            raise RoleConfigError(str(exc), config_path) from exc

        logger.info("Loaded %d roles from %s", len(registry), config_path or "<dict>")
        return registry

    def _validate_structure(self, raw: dict[str, object], config_path: str | None) -> None:
        if not isinstance(raw, dict):
            raise RoleConfigError("Role config must be a YAML mapping (dict).", config_path)

        if "roles" not in raw:
            raise RoleConfigError("Role config must contain a 'roles' list.", config_path)

        if not isinstance(raw["roles"], list):
            raise RoleConfigError("Role config 'roles' must be a list.", config_path)

        if self._strict:
            unknown_keys = set(raw.keys()) - self._KNOWN_TOP_KEYS
            if unknown_keys:
                raise RoleConfigError(
                    f"Unknown top-level keys: {sorted(unknown_keys)}. "
                    f"Known keys: {sorted(self._KNOWN_TOP_KEYS)}.",
                    config_path,
                )
