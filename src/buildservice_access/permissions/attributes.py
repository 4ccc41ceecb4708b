"""Attribute-level modification policies.

Attributes are the third level of the resource hierarchy.  An attribute
*namespace* lists who may define attribute types in it; an attribute
*type* lists who may set values of that type on projects and packages.
Each "modifiable by" rule may name a user, a group and (for types) a
role; every part a rule names must match.

Example
-------
::

    namespace = AttribNamespace(name="OBS", modifiable_by=(ModifiableByRule(group="release-team"),))
    maintained = AttribType(name="Maintained", namespace=namespace)
    policy = AttributePolicy(engine)
    policy.can_create_attribute_in(carol, store.find_project("foo"), maintained)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from buildservice_access.permissions.engine import PermissionEngine
from buildservice_access.resources.models import Package, Project, Resource, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModifiableByRule:
    """One "modifiable by" entry.  ``None`` parts match anyone."""

    user: str | None = None
    group: str | None = None
    role: str | None = None


@dataclass(frozen=True)
class AttribNamespace:
    name: str
    modifiable_by: tuple[ModifiableByRule, ...] = ()


@dataclass(frozen=True)
class AttribType:
    name: str
    namespace: AttribNamespace
    modifiable_by: tuple[ModifiableByRule, ...] = ()

    @property
    def full_name(self) -> str:
        return f"{self.namespace.name}:{self.name}"


class AttributePolicy:
    """Attribute definition and assignment checks built on a PermissionEngine."""

    def __init__(self, engine: PermissionEngine) -> None:
        self._engine = engine

    def can_create_attribute_definition(
        self,
        user: User,
        target: AttribNamespace | AttribType,
    ) -> bool:
        """Return True if *user* may define attribute types in the namespace.

        An attribute type is checked against its namespace.

        Raises
        ------
        TypeError
            If *target* is neither a namespace nor a type.
        """
        namespace = target.namespace if isinstance(target, AttribType) else target
        if not isinstance(namespace, AttribNamespace):
            raise TypeError(
                f"illegal parameter type to can_create_attribute_definition: {type(target).__name__}"
            )
        if self._engine.is_admin(user):
            return True
        return any(self._principal_matches(user, rule) for rule in namespace.modifiable_by)

    can_modify_attribute_definition = can_create_attribute_definition

    def can_create_attribute_in(
        self,
        user: User,
        resource: Resource,
        attrib_type: AttribType,
    ) -> bool:
        """Return True if *user* may set an attribute of *attrib_type* on *resource*.

        Types without rules fall back to ``can_modify`` on the resource.

        Raises
        ------
        TypeError
            If *resource* is neither a Project nor a Package.
        """
        if not isinstance(resource, (Project, Package)):
            raise TypeError(
                f"illegal parameter type to can_create_attribute_in: {type(resource).__name__}"
            )
        if self._engine.is_admin(user):
            return True
        if not attrib_type.modifiable_by:
            return self._engine.can_modify(user, resource)
        return any(
            self._rule_matches(user, rule, resource) for rule in attrib_type.modifiable_by
        )

    def _principal_matches(self, user: User, rule: ModifiableByRule) -> bool:
        if rule.user is not None and rule.user != user.login:
            return False
        if rule.group is not None and not self._engine.is_in_group(user, rule.group):
            return False
        return True

    def _rule_matches(self, user: User, rule: ModifiableByRule, resource: Resource) -> bool:
        if not self._principal_matches(user, rule):
            return False
        if rule.role is not None and not self._engine.has_local_role(user, rule.role, resource):
            logger.debug("attribute rule needs role %r on %s; not held", rule.role, resource)
            return False
        return True
