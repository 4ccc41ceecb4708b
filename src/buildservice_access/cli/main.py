"""CLI entry point for buildservice-access.

Invoked as::

    bs-access [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m buildservice_access.cli.main

Commands
--------
- version               Show version information
- roles list            List roles and the permissions they grant
- check permission      Check a global or local permission
- check modify          Check whether a user may modify a project or package
- check create-project  Check whether a user may create a project

``check`` commands exit with status 0 when the action is allowed and 1
when it is denied.
"""
from __future__ import annotations

import sys
from pathlib import Path

import click
import yaml
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from buildservice_access.audit.logger import AuditLogger
from buildservice_access.config.loader import AccessConfig, ConfigLoader
from buildservice_access.permissions.engine import PermissionEngine
from buildservice_access.permissions.role_loader import RoleConfigError, RoleLoader
from buildservice_access.permissions.roles import RoleRegistry
from buildservice_access.resources.models import Resource, User
from buildservice_access.resources.state_loader import State, StateConfigError, StateLoader

console = Console()
err_console = Console(stderr=True)

_DEFAULT_CONFIG = Path("access.yaml")

_config_option = click.option(
    "--config",
    "-c",
    "config_path",
    default=str(_DEFAULT_CONFIG),
    show_default=True,
    type=click.Path(),
    help="Path to access.yaml (defaults apply when it does not exist).",
)
_state_option = click.option(
    "--state",
    "-s",
    "state_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="YAML snapshot of users, groups, projects, packages and grants.",
)
_user_option = click.option("--user", "-u", "login", required=True, help="Login of the asking user.")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_config(config_path: str) -> AccessConfig:
    loader = ConfigLoader()
    cfg_path = Path(config_path)
    if not cfg_path.exists():
        return loader.defaults()
    try:
        return loader.load(cfg_path)
    except (ValidationError, yaml.YAMLError) as exc:
        err_console.print(f"[red]Invalid config {escape(config_path)}:[/red] {escape(str(exc))}")
        sys.exit(2)


def _build(state_path: str, config_path: str) -> tuple[PermissionEngine, State, AuditLogger | None]:
    config = _load_config(config_path)
    try:
        state = StateLoader().load(state_path)
    except (StateConfigError, RoleConfigError) as exc:
        err_console.print(f"[red]Invalid state snapshot:[/red] {escape(str(exc))}")
        sys.exit(2)

    audit = AuditLogger(log_path=config.audit.log_path) if config.audit.enabled else None
    engine = PermissionEngine.from_config(
        config, state.store, state.relationships, roles=state.roles, audit_logger=audit
    )
    return engine, state, audit


def _user(state: State, login: str) -> User:
    user = state.store.find_user(login)
    if user is None:
        err_console.print(f"[red]Unknown user:[/red] {escape(login)}")
        sys.exit(2)
    return user


def _resource(state: State, project: str | None, package: str | None) -> Resource | None:
    if project is None:
        if package is not None:
            err_console.print("[red]--package requires --project.[/red]")
            sys.exit(2)
        return None
    found = state.store.find_project(project)
    if found is None:
        err_console.print(f"[red]Unknown project:[/red] {escape(project)}")
        sys.exit(2)
    if package is None:
        return found
    pkg = state.store.find_package(project, package)
    if pkg is None:
        err_console.print(f"[red]Unknown package:[/red] {escape(project)}/{escape(package)}")
        sys.exit(2)
    return pkg


def _report(
    check: str,
    allowed: bool,
    user: User,
    resource: str | None,
    audit: AuditLogger | None,
) -> None:
    status_str = "[green]ALLOWED[/green]" if allowed else "[red]DENIED[/red]"
    console.print(Panel(status_str, title=f"Access Check: {escape(check)}", border_style="blue"))
    console.print(f"  User: [cyan]{escape(user.login)}[/cyan]")
    console.print(f"  Resource: [cyan]{escape(resource or '(global)')}[/cyan]")
    if audit is not None:
        audit.log_decision(check, login=user.login, resource=resource, allowed=allowed)
    sys.exit(0 if allowed else 1)


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="buildservice-access")
def cli() -> None:
    """Build service access control — permission checks and role tools."""


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from buildservice_access import __version__

    console.print(
        Panel(
            f"[bold]buildservice-access[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Permission resolution for build service projects and packages.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# roles group
# ---------------------------------------------------------------------------


@cli.group(name="roles")
def roles_group() -> None:
    """Role configuration commands."""


@roles_group.command(name="list")
@_config_option
def roles_list_command(config_path: str) -> None:
    """List roles and the permissions they grant."""
    config = _load_config(config_path)
    try:
        registry = RoleLoader().load(config.roles_file) if config.roles_file else RoleRegistry.defaults()
    except (RoleConfigError, FileNotFoundError) as exc:
        err_console.print(f"[red]Cannot load roles:[/red] {escape(str(exc))}")
        sys.exit(2)

    table = Table(title="Roles", box=box.SIMPLE)
    table.add_column("Role", style="cyan")
    table.add_column("Scope", style="magenta")
    table.add_column("Permissions")
    for role in registry.roles():
        table.add_row(
            escape(role.title),
            "global" if role.global_role else "local",
            escape(", ".join(sorted(role.permissions)) or "-"),
        )
    console.print(table)


# ---------------------------------------------------------------------------
# check group
# ---------------------------------------------------------------------------


@cli.group(name="check")
def check_group() -> None:
    """Evaluate permission checks against a state snapshot."""


@check_group.command(name="permission")
@_state_option
@_user_option
@click.option("--permission", "-p", required=True, help="Permission name, e.g. change_package.")
@click.option("--project", default=None, help="Project name; omit for a global check.")
@click.option("--package", default=None, help="Package name inside --project.")
@_config_option
def check_permission_command(
    state_path: str,
    login: str,
    permission: str,
    project: str | None,
    package: str | None,
    config_path: str,
) -> None:
    """Check a global permission, or a local one when --project is given."""
    engine, state, audit = _build(state_path, config_path)
    user = _user(state, login)
    resource = _resource(state, project, package)
    allowed = engine.has_local_permission(user, permission, resource)
    _report(f"permission {permission}", allowed, user, str(resource) if resource else None, audit)


@check_group.command(name="modify")
@_state_option
@_user_option
@click.option("--project", required=True, help="Project name.")
@click.option("--package", default=None, help="Package name inside --project.")
@click.option("--ignore-lock", is_flag=True, default=False, help="Ignore the lock flag.")
@_config_option
def check_modify_command(
    state_path: str,
    login: str,
    project: str,
    package: str | None,
    ignore_lock: bool,
    config_path: str,
) -> None:
    """Check whether a user may modify a project or package."""
    engine, state, audit = _build(state_path, config_path)
    user = _user(state, login)
    resource = _resource(state, project, package)
    allowed = engine.can_modify(user, resource, ignore_lock=ignore_lock)
    _report("modify", allowed, user, str(resource), audit)


@check_group.command(name="create-project")
@_state_option
@_user_option
@click.option("--name", "-n", "project_name", required=True, help="Name of the project to create.")
@_config_option
def check_create_project_command(
    state_path: str,
    login: str,
    project_name: str,
    config_path: str,
) -> None:
    """Check whether a user may create a project."""
    engine, state, audit = _build(state_path, config_path)
    user = _user(state, login)
    allowed = engine.can_create_project(user, project_name)
    _report("create-project", allowed, user, project_name, audit)


if __name__ == "__main__":
    cli()
