"""Configuration loading and validation."""

from .schema import CONFIG_SCHEMA
from .settings import (
    ApiConfig,
    Authentication,
    BaselineConfig,
    Config,
    ConfigurationError,
    Operation,
    SecretRedactionFilter,
    load_config,
    setup_logging_redaction,
    validate_config,
)

__all__ = [
    "CONFIG_SCHEMA",
    "ApiConfig",
    "Authentication",
    "BaselineConfig",
    "Config",
    "ConfigurationError",
    "Operation",
    "SecretRedactionFilter",
    "load_config",
    "setup_logging_redaction",
    "validate_config",
]
