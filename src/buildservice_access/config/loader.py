"""Access-control configuration loader with Pydantic v2 validation.

Loads ``access.yaml`` into a typed :class:`AccessConfig`.  The
configuration is read once at process start; the lookup strategy and the
role registry built from it are shared by every permission check.

Example
-------
>>> config = ConfigLoader().load_string("directory: {enabled: false}")
>>> config.home_project.allow_user_to_create
True
"""
from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator


class DirectoryConfig(BaseModel):
    """External group directory settings."""

    model_config = {"extra": "allow"}

    enabled: bool = Field(default=False)
    base_url: str | None = Field(default=None)
    token: str | None = Field(default=None)
    timeout_seconds: float = Field(default=2.0, gt=0)
    cache_ttl_seconds: float = Field(default=60.0, ge=0)
    cache_size: int = Field(default=1024, ge=0)

    @model_validator(mode="after")
    def require_base_url_when_enabled(self) -> DirectoryConfig:
        if self.enabled and not self.base_url:
            raise ValueError("directory.base_url is required when the directory is enabled")
        return self


class HomeProjectConfig(BaseModel):
    """Self-service home project settings."""

    model_config = {"extra": "allow"}

    allow_user_to_create: bool = Field(default=True)


class AuditConfig(BaseModel):
    """Access event log settings."""

    model_config = {"extra": "allow"}

    enabled: bool = Field(default=False)
    log_path: Path = Field(default=Path("./access_audit.jsonl"))


class AccessConfig(BaseModel):
    """Top-level access-control configuration schema.

    All sections are optional and fall back to defaults.
    """

    model_config = {"extra": "allow"}

    version: str = Field(default="1")
    roles_file: Path | None = Field(default=None)
    admin_role: str = Field(default="Admin", min_length=1)
    staff_role: str = Field(default="Staff", min_length=1)
    max_hierarchy_depth: int = Field(default=32, ge=1, le=1024)
    home_project: HomeProjectConfig = Field(default_factory=HomeProjectConfig)
    directory: DirectoryConfig = Field(default_factory=DirectoryConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)


class ConfigLoader:
    """Loads and validates access-control YAML configuration."""

    def load(self, config_path: Path) -> AccessConfig:
        """Load and validate a config file.

        Raises
        ------
        FileNotFoundError:
            When the config file does not exist.
        pydantic.ValidationError:
            When the content fails validation.
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Access config not found: {config_path}")

        with config_path.open("r", encoding="utf-8") as fh:
            raw: dict[str, object] = yaml.safe_load(fh) or {}

        config = AccessConfig.model_validate(raw)
        if config.roles_file is not None and not config.roles_file.is_absolute():
            config.roles_file = config_path.parent / config.roles_file
        return config

    def load_string(self, yaml_content: str) -> AccessConfig:
        raw: dict[str, object] = yaml.safe_load(yaml_content) or {}
        return AccessConfig.model_validate(raw)

    def defaults(self) -> AccessConfig:
        return AccessConfig()
