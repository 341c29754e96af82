# src/planscope/core/config.py
"""
Configuration schema and loading for planscope.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.

Example settings.yaml:
    capture:
      base_path: shop
      history_size: 500
    plans:
      dialect: mysql
      plan_timeout_seconds: 2.0
    sink:
      kind: file
      path: ./logs/planscope.txt
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from planscope.contracts.enums import Dialect


class CaptureSettings(BaseModel):
    """Statement capture and correlation."""

    model_config = {"frozen": True}

    base_path: str = Field(
        default="",
        description="Module prefix of application code; the innermost matching frame is reported as caller",
    )
    placeholder: str | None = Field(
        default=None,
        description="Positional placeholder token. None derives it from the engine's DBAPI paramstyle",
    )
    history_size: int = Field(
        default=1000,
        gt=0,
        description="Statements retained per correlation scope (oldest evicted first)",
    )
    repeat_threshold: int = Field(
        default=2,
        ge=2,
        description="Executions of one template within a scope that count as repeated (possible N+1)",
    )
    detect_select_before_insert: bool = Field(
        default=True,
        description="Flag an INSERT into a table already read in the same scope (SELECT_BEFORE_INSERT)",
    )
    statement_logger: str | None = Field(
        default=None,
        description="Logger name carrying statement text, for log-based capture",
    )
    bind_logger: str | None = Field(
        default=None,
        description="Logger name carrying bind values, for log-based capture",
    )

    @field_validator("placeholder")
    @classmethod
    def validate_placeholder(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("placeholder must not be blank")
        return v

    @model_validator(mode="after")
    def validate_logger_pair(self) -> "CaptureSettings":
        """Log-based capture needs both logger names or neither."""
        if (self.statement_logger is None) != (self.bind_logger is None):
            raise ValueError("statement_logger and bind_logger must be configured together")
        if self.statement_logger is not None and self.statement_logger == self.bind_logger:
            raise ValueError("statement_logger and bind_logger must be different loggers")
        return self


class PlanSettings(BaseModel):
    """Execution-plan retrieval."""

    model_config = {"frozen": True}

    dialect: Dialect | Literal["auto"] = Field(
        default="auto",
        description="SQL dialect selecting the plan provider; 'auto' derives it from the engine URL",
    )
    plan_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Abandon a plan query after this many seconds (empty plan)",
    )
    max_workers: int = Field(
        default=2,
        gt=0,
        description="Worker threads used for timed plan queries",
    )


class SinkSettings(BaseModel):
    """Durable destination for rendered diagnostics."""

    model_config = {"frozen": True}

    kind: Literal["file", "memory", "none"] = Field(default="none", description="Sink type")
    path: str | None = Field(default=None, description="Target file for kind=file")
    fail_on_error: bool = Field(default=False, description="Raise instead of logging sink write failures")

    @model_validator(mode="after")
    def validate_path(self) -> "SinkSettings":
        if self.kind == "file" and not self.path:
            raise ValueError("sink.path is required when sink.kind is 'file'")
        return self


class LoggingSettings(BaseModel):
    """Structured logging output."""

    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO", description="Root log level")
    json_output: bool = Field(default=False, description="Emit JSON lines instead of console output")
    sql_echo: bool = Field(
        default=False,
        description="Keep SQLAlchemy engine and pool loggers at the configured level instead of WARNING",
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class PlanscopeSettings(BaseModel):
    """Top-level planscope configuration."""

    model_config = {"frozen": True}

    enabled: bool = Field(default=True, description="Master switch; disabled installs nothing")
    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    plans: PlanSettings = Field(default_factory=PlanSettings)
    sink: SinkSettings = Field(default_factory=SinkSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(config_path: Path) -> PlanscopeSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (PLANSCOPE_*) - highest priority
    2. Config file (settings.yaml)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: PLANSCOPE_CAPTURE__BASE_PATH for nested keys.

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="PLANSCOPE",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys and its own bookkeeping entries
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    return PlanscopeSettings(**_lowercase_keys(raw_config))


def _lowercase_keys(config: dict[str, Any]) -> dict[str, Any]:
    """Lowercase nested keys (env overrides arrive upper-cased)."""
    return {
        key.lower(): _lowercase_keys(value) if isinstance(value, dict) else value
        for key, value in config.items()
    }
