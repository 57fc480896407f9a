"""
Run configuration for HashCertify.

Settings come from ``HASHCERTIFY_*`` environment variables and are then
overridden by explicit CLI options or API form fields.

Example usage:
    >>> from core.config import ReconcileConfig
    >>> config = ReconcileConfig.from_env().with_overrides(max_workers=4)
    >>> config.duplicate_policy
    'error'

Environment variables:
    HASHCERTIFY_BASE_DIRECTORY   explicit base directory (default: inferred)
    HASHCERTIFY_MAX_WORKERS      digest worker threads, 1-64 (default: 1)
    HASHCERTIFY_DUPLICATES       error | last_wins (default: error)
    HASHCERTIFY_WORKSPACE_DIR    parent directory for extraction workspaces
    HASHCERTIFY_LOG_LEVEL        logging level (default: INFO)
    HASHCERTIFY_LOG_FORMAT       json | text (default: json)
"""

import os
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from core.errors import ConfigurationError
from core.logging import get_logger
from core.models import DuplicatePolicy

logger = get_logger(__name__)

ENV_PREFIX = "HASHCERTIFY_"
DEFAULT_MAX_WORKERS = 1
MAX_WORKERS_LIMIT = 64


class ReconcileConfig(BaseModel):
    """Options for one reconciliation run."""
    base_directory: Optional[str] = Field(
        None,
        description="Base directory stripped from manifest paths; inferred when omitted"
    )
    max_workers: int = Field(
        DEFAULT_MAX_WORKERS,
        ge=1,
        le=MAX_WORKERS_LIMIT,
        description="Threads used to digest archived files (1 = sequential)"
    )
    duplicate_policy: DuplicatePolicy = Field(
        DuplicatePolicy.ERROR,
        description="Handling of manifest entries that share a key with different digests"
    )
    workspace_dir: Optional[str] = Field(
        None,
        description="Parent directory for extraction workspaces (system temp if omitted)"
    )
    log_level: str = Field("INFO", description="Logging level")
    log_format: Literal["json", "text"] = Field("json", description="Log output format")

    @field_validator('base_directory')
    @classmethod
    def validate_base_directory(cls, v):
        """Treat blank values as 'not supplied'."""
        if v is not None and not v.strip():
            return None
        return v.strip() if v is not None else v

    @field_validator('duplicate_policy', mode='before')
    @classmethod
    def validate_duplicate_policy(cls, v):
        """Accept the CLI spelling last-wins as well as last_wins."""
        if isinstance(v, str):
            return v.strip().lower().replace("-", "_")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Ensure the level is one logging understands."""
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level {v!r}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ReconcileConfig":
        """
        Build a configuration from environment variables.

        Invalid values are logged and replaced by defaults so a bad
        environment never blocks a run; explicit overrides are strict.

        Args:
            environ: Mapping to read instead of os.environ (for testing)

        Returns:
            ReconcileConfig populated from the environment
        """
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        base_directory = env.get(f"{ENV_PREFIX}BASE_DIRECTORY")
        if base_directory:
            values["base_directory"] = base_directory

        workspace_dir = env.get(f"{ENV_PREFIX}WORKSPACE_DIR")
        if workspace_dir:
            values["workspace_dir"] = workspace_dir

        raw_workers = env.get(f"{ENV_PREFIX}MAX_WORKERS")
        if raw_workers:
            try:
                workers = int(raw_workers)
                if not 1 <= workers <= MAX_WORKERS_LIMIT:
                    raise ValueError(raw_workers)
                values["max_workers"] = workers
            except ValueError:
                logger.warning(
                    f"Invalid {ENV_PREFIX}MAX_WORKERS value, using default {DEFAULT_MAX_WORKERS}"
                )

        for env_name, field, default in (
            ("DUPLICATES", "duplicate_policy", DuplicatePolicy.ERROR.value),
            ("LOG_LEVEL", "log_level", "INFO"),
            ("LOG_FORMAT", "log_format", "json"),
        ):
            raw = env.get(f"{ENV_PREFIX}{env_name}")
            if not raw:
                continue
            try:
                cls(**{field: raw.lower() if field == "log_format" else raw})
            except ValidationError:
                logger.warning(f"Invalid {ENV_PREFIX}{env_name} value, using default {default}")
                continue
            values[field] = raw.lower() if field == "log_format" else raw

        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "ReconcileConfig":
        """
        Return a copy with the non-None overrides applied and validated.

        Raises:
            ConfigurationError: If an override is invalid
        """
        data = self.model_dump()
        data.update({key: value for key, value in overrides.items() if value is not None})
        try:
            return type(self)(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    model_config = {
        "extra": "forbid",
        "use_enum_values": True,
        "frozen": True
    }
