"""Configuration loading with environment variable substitution."""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")


def substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR_NAME} patterns with environment variables."""
    if isinstance(value, str):
        def replace(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable {var_name} is not set")
            return env_value

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]
    return value


class RBACConfig(BaseModel):
    """RBAC engine settings."""

    # Upper bound on parent-chain walks, guards against corrupted data
    max_hierarchy_depth: int = Field(default=32, ge=1)
    # 0 disables the effective-permission cache
    cache_ttl_seconds: int = Field(default=0, ge=0)
    cache_max_size: int = Field(default=1000, ge=1)
    role_page_size: int = Field(default=50, ge=1)
    audit_page_size: int = Field(default=50, ge=1)
    max_page_size: int = Field(default=200, ge=1)
    # Recorded as performer for bootstrap seeding
    system_actor_id: str = "system"
    seed_defaults_on_init: bool = False


class DatabaseStorageConfig(BaseModel):
    """Database backend configuration."""

    backend: str = "sqlite"
    path: str | None = None  # For SQLite


class StorageConfig(BaseModel):
    """Storage backends configuration."""

    database: DatabaseStorageConfig = Field(default_factory=DatabaseStorageConfig)


class LoggingConfig(BaseModel):
    """Logging output settings."""

    level: str = "INFO"
    format: str = "json"  # json | text


class Config(BaseModel):
    """Main configuration for rolegraph."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    rbac: RBACConfig = Field(default_factory=RBACConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "Config":
        """Load configuration from a YAML or JSON file."""
        path = Path(path)
        with path.open() as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                import json
                data = json.load(f)

        data = substitute_env_vars(data or {})
        return cls.model_validate(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Load configuration from a dictionary."""
        data = substitute_env_vars(data)
        return cls.model_validate(data)
