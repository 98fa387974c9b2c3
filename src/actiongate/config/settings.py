"""
Pydantic Settings Configuration
=================================

Type-safe configuration management using Pydantic.
Validates all configuration values at startup and fails fast with clear error messages.
"""

from typing import Optional
from pathlib import Path
from importlib import metadata
from pydantic import BaseModel, Field, field_validator, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml

from actiongate.core.exceptions import ConfigurationError


def _project_version() -> str:
    """Resolve the project version from package metadata."""
    try:
        return metadata.version("actiongate")
    except metadata.PackageNotFoundError:
        return "0.0.0-dev"


DEFAULT_APPROVALS_DIR = Path.home() / ".actiongate" / "approvals"


class StoreConfig(BaseModel):
    """Where approval records and the audit log live"""
    approvals_dir: Path = Field(DEFAULT_APPROVALS_DIR, description="Directory holding <ID>.json records")
    audit_log_name: str = Field("audit.jsonl", description="Audit log file name inside approvals_dir")

    @field_validator('approvals_dir')
    @classmethod
    def expand_user(cls, v: Path) -> Path:
        return Path(v).expanduser()

    @field_validator('audit_log_name')
    @classmethod
    def validate_audit_log_name(cls, v: str) -> str:
        if not v or "/" in v or v.endswith(".json"):
            raise ValueError("audit_log_name must be a bare file name not ending in .json")
        return v

    @property
    def audit_log_path(self) -> Path:
        return self.approvals_dir / self.audit_log_name

    model_config = ConfigDict(extra='allow')


class ApprovalConfig(BaseModel):
    """Approval window and housekeeping defaults"""
    default_ttl_minutes: int = Field(120, ge=1, le=60 * 24 * 30, description="Minutes until a proposal expires")
    history_limit: int = Field(20, ge=1, le=10000, description="Default number of audit entries returned")
    clean_older_than_days: float = Field(7, ge=0, description="Age after which finished records are deleted")

    model_config = ConfigDict(extra='allow')


class ExecutionConfig(BaseModel):
    """Shell execution of approved commands"""
    timeout_seconds: float = Field(60, gt=0, le=3600, description="Per-command time limit")
    shell: str = Field("/bin/bash", description="Shell used to run each command")
    path_prefix: Optional[str] = Field("/opt/homebrew/bin", description="Prepended to PATH for every command")

    @field_validator('shell')
    @classmethod
    def validate_shell(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("shell must not be empty")
        return v

    model_config = ConfigDict(extra='allow')


class CleanupConfig(BaseModel):
    """Periodic removal of old finished approvals"""
    enabled: bool = Field(True, description="Run the cleanup service")
    interval_seconds: int = Field(3600, ge=1, description="Seconds between cleanup runs")
    run_on_startup: bool = Field(True, description="Clean once when the service starts")

    model_config = ConfigDict(extra='allow')


class WebConfig(BaseModel):
    """HTTP gateway configuration"""
    host: str = Field("127.0.0.1", description="Host to bind to")
    port: int = Field(8765, ge=1, le=65535, description="Port to bind to")

    model_config = ConfigDict(extra='allow')


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: str = Field("INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    format: str = Field("json", description="Log format (json, text)")

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level"""
        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(sorted(valid_levels))}")
        return v_upper

    @field_validator('format')
    @classmethod
    def validate_format(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in {'json', 'text'}:
            raise ValueError("Log format must be 'json' or 'text'")
        return v_lower

    model_config = ConfigDict(extra='allow')


class Settings(BaseSettings):
    """
    Main application settings with type validation.

    Configuration is loaded from:
    1. YAML config file (if provided)
    2. Environment variables with ACTIONGATE_ prefix (override)
    3. Default values (fallback)

    Environment variable mapping uses double-underscore nesting:
      ACTIONGATE_STORE__APPROVALS_DIR
      ACTIONGATE_EXECUTION__TIMEOUT_SECONDS
      ACTIONGATE_CLEANUP__INTERVAL_SECONDS
    """

    store: StoreConfig = Field(default_factory=StoreConfig)
    approvals: ApprovalConfig = Field(default_factory=ApprovalConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    cleanup: CleanupConfig = Field(default_factory=CleanupConfig)
    web: WebConfig = Field(default_factory=WebConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    project_name: str = Field("actiongate", description="Project name")
    version: str = Field(default_factory=_project_version, description="Project version")

    model_config = SettingsConfigDict(
        env_prefix='ACTIONGATE_',
        env_nested_delimiter='__',
        extra='allow',
        validate_assignment=True,
    )

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> "Settings":
        """
        Load settings from a YAML file.

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigurationError: If the file is not valid YAML or fails validation
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        try:
            with open(config_path) as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a mapping")

        try:
            return cls(**config_data)
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Configuration validation failed for {config_path}",
                details={"errors": e.errors(include_url=False)},
            ) from e

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables only."""
        try:
            return cls()
        except PydanticValidationError as e:
            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": e.errors(include_url=False)},
            ) from e


def load_settings(config_path: Optional[str | Path] = None) -> Settings:
    """
    Load and validate application settings.

    Args:
        config_path: Optional path to YAML config file

    Raises:
        ConfigurationError: If configuration is invalid
    """
    if config_path:
        return Settings.from_yaml(config_path)
    return Settings.from_env()


__all__ = [
    'Settings',
    'StoreConfig',
    'ApprovalConfig',
    'ExecutionConfig',
    'CleanupConfig',
    'WebConfig',
    'LoggingConfig',
    'load_settings',
]
