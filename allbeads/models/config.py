"""
Configuration models for AllBeads.

Supports configuration via YAML file, environment variables, or programmatic setup.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from allbeads.errors import ConfigurationError
from allbeads.models.rig import Rig, SyncMode
from allbeads.utils.validators import validate_remote, validate_rig_name, ValidationError

CONFIG_HOME = Path("~/.config/allbeads").expanduser()


class CollisionPolicy(str, Enum):
    """What to do when two rigs publish the same bead id."""

    LAST_WRITE_WINS = "last_write_wins"
    STRICT = "strict"


class AggregatorConfig(BaseModel):
    """Aggregation pass configuration."""

    concurrency: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Maximum rigs fetched in parallel"
    )
    fetch_timeout: int = Field(
        default=120,
        ge=1,
        description="Per-command git timeout in seconds"
    )
    max_retries: int = Field(
        default=0,
        ge=0,
        le=5,
        description="Extra fetch attempts for unreachable rigs"
    )
    retry_wait_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Initial wait between fetch attempts"
    )
    sync_mode: SyncMode = Field(
        default=SyncMode.FETCH,
        description="How rigs are refreshed before reading"
    )
    collision_policy: CollisionPolicy = Field(
        default=CollisionPolicy.LAST_WRITE_WINS,
        description="Duplicate bead id handling"
    )


class CacheConfig(BaseModel):
    """Snapshot cache configuration."""

    enabled: bool = Field(
        default=True,
        description="Serve reads from the cache when fresh"
    )
    path: str = Field(
        default=str(CONFIG_HOME / "cache.db"),
        description="SQLite cache file"
    )
    ttl_seconds: int = Field(
        default=300,
        ge=0,
        description="Age after which a cached snapshot is stale"
    )

    def get_path(self) -> Path:
        return Path(self.path).expanduser()


class SheriffConfig(BaseModel):
    """Background daemon configuration."""

    poll_interval_seconds: float = Field(
        default=5.0,
        ge=1.0,
        description="Sleep between poll cycles"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level"
    )
    file: str | None = Field(
        default=None,
        description="Log file path (None = console only)"
    )
    json_format: bool = Field(
        default=False,
        description="Use JSON format for logs"
    )


class AllBeadsConfig(BaseSettings):
    """
    Main AllBeads configuration.

    Configuration can be loaded from:
    1. YAML file (allbeads.yaml in the working directory, or ~/.config/allbeads/config.yaml)
    2. Environment variables (ALLBEADS_* prefix, ``__`` for nesting)
    3. Programmatic setup
    """

    model_config = SettingsConfigDict(
        env_prefix="ALLBEADS_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    rigs: list[Rig] = Field(default_factory=list)
    aggregator: AggregatorConfig = Field(default_factory=AggregatorConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    sheriff: SheriffConfig = Field(default_factory=SheriffConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment beats file values passed in as init kwargs.
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> "AllBeadsConfig":
        """
        Load configuration from file and environment.

        Priority (highest to lowest):
        1. Environment variables
        2. Specified config file
        3. Default config files (allbeads.yaml, allbeads.yml, ~/.config/allbeads/config.yaml)
        4. Default values
        """
        config_data: dict = {}

        if config_path:
            config_file = Path(config_path).expanduser()
            if not config_file.exists():
                raise ConfigurationError(f"Config file not found: {config_file}")
            config_data = cls._load_yaml(config_file)
        else:
            for config_file in cls.default_paths():
                if config_file.exists():
                    config_data = cls._load_yaml(config_file)
                    break

        try:
            return cls(**config_data)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @staticmethod
    def default_paths() -> list[Path]:
        return [
            Path("allbeads.yaml"),
            Path("allbeads.yml"),
            CONFIG_HOME / "config.yaml",
        ]

    @staticmethod
    def _load_yaml(path: Path) -> dict:
        """Load YAML configuration file."""
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        return data

    def save(self, path: str | Path) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(mode="json", exclude_none=True),
                f,
                default_flow_style=False,
                sort_keys=False,
            )

    def require_rigs(self, contexts: list[str] | None = None) -> list[Rig]:
        """
        Return the configured rigs, optionally filtered by context.

        Raises:
            ConfigurationError: If no rig remains
        """
        rigs = [r for r in self.rigs if not contexts or r.context in contexts]
        if not rigs:
            scope = f" for contexts {', '.join(contexts)}" if contexts else ""
            raise ConfigurationError(f"No rigs configured{scope}", field="rigs")
        return rigs


def validate_config(config: AllBeadsConfig) -> list[str]:
    """
    Check a configuration for problems pydantic cannot see on its own.

    Returns:
        Human-readable problems; empty when the configuration is usable
    """
    problems: list[str] = []

    if not config.rigs:
        problems.append("rigs: at least one rig must be configured")

    seen: set[str] = set()
    for index, rig in enumerate(config.rigs):
        where = f"rigs[{index}] ({rig.name})"
        try:
            validate_rig_name(rig.name)
        except ValidationError as e:
            problems.append(f"{where}: {e.message}")
        if rig.name in seen:
            problems.append(f"{where}: duplicate rig name")
        seen.add(rig.name)

        if rig.remote:
            try:
                validate_remote(rig.remote)
            except ValidationError as e:
                problems.append(f"{where}: {e.message}")
        elif config.aggregator.sync_mode != SyncMode.LOCAL_ONLY and not rig.path.exists():
            problems.append(f"{where}: no remote and local path {rig.path} does not exist")

        if rig.auth_strategy.uses_token and rig.remote.startswith("git@"):
            problems.append(f"{where}: token auth requires an https remote")

    return problems
