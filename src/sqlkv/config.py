"""Configuration management for sqlkv."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import toml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from sqlkv.utils.name_validator import validate_name

DEFAULT_TABLE = "kv_store"
DEFAULT_DATABASE = "sqlkv.db"


class KVOptions(BaseModel):
    """Options for a single ``KVManager``."""

    model_config = ConfigDict(extra="forbid")

    initialize: bool = Field(
        default=False, description="Create the table eagerly instead of on first use"
    )
    table: str = Field(default=DEFAULT_TABLE, description="Namespace table name")

    @field_validator("table")
    @classmethod
    def check_table(cls, v: str) -> str:
        validate_name(v, "table")
        return v


class ProjectConfig(BaseModel):
    """Configuration for a sqlkv project stored in .sqlkv/config.toml."""

    model_config = ConfigDict(
        extra="allow"
    )  # Allow additional fields for extensibility

    database: str = Field(
        default=DEFAULT_DATABASE,
        description="SQLite database file, relative to the project directory",
    )
    table: str = Field(default=DEFAULT_TABLE, description="Namespace table name")

    @field_validator("table")
    @classmethod
    def check_table(cls, v: str) -> str:
        validate_name(v, "table")
        return v


class Config:
    """Manages sqlkv project configuration."""

    def __init__(self, project_dir: Optional[Path] = None):
        """Initialize config manager.

        Args:
            project_dir: Path to project directory. If None, uses SQLKV_PROJECT_DIR env var or current directory.
        """
        if project_dir is None:
            env_dir = os.environ.get("SQLKV_PROJECT_DIR")
            if env_dir:
                project_dir = Path(env_dir)

        self.project_dir = Path(project_dir) if project_dir else Path.cwd()
        self.config_dir = self.project_dir / ".sqlkv"
        self.config_path = self.config_dir / "config.toml"
        self._config: Optional[ProjectConfig] = None

    @property
    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()

    def load(self) -> ProjectConfig:
        """Load configuration from disk, with environment variable overrides."""
        if not self.exists:
            raise FileNotFoundError(f"Config file not found at {self.config_path}")

        with open(self.config_path, "r") as f:
            data = toml.load(f)

        self._apply_env_overrides(data)

        self._config = ProjectConfig(**data)
        return self._config

    def _apply_env_overrides(self, data: Dict[str, Any]) -> None:
        """Apply environment variable overrides to configuration data."""
        if env_db := os.environ.get("SQLKV_DATABASE"):
            data["database"] = env_db

        if env_table := os.environ.get("SQLKV_TABLE"):
            data["table"] = env_table

    def save(self, config: Optional[ProjectConfig] = None) -> None:
        """Save configuration to disk.

        Args:
            config: Configuration to save. If None, saves current config.
        """
        if config:
            self._config = config

        if not self._config:
            raise ValueError("No configuration to save")

        self.config_dir.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, "w") as f:
            toml.dump(self._config.model_dump(), f)

    def init_project(self, table: str = DEFAULT_TABLE) -> ProjectConfig:
        """Write a default configuration for a new project.

        Raises:
            FileExistsError: If the project is already initialized
        """
        if self.exists:
            raise FileExistsError(f"Project already exists at {self.config_dir}")

        config = ProjectConfig(table=table)
        self.save(config)
        return config

    @property
    def database_path(self) -> Path:
        """Absolute path of the configured SQLite database."""
        config = self._config or self.load()
        path = Path(config.database)
        return path if path.is_absolute() else self.project_dir / path
