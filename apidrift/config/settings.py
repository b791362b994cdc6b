"""
Configuration loader for apidrift.

Reads a YAML (or JSON) comparison configuration, validates it against
CONFIG_SCHEMA with jsonschema, and builds typed settings objects.
Environment variables override storage location and log level.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import jsonschema
import yaml

from apidrift.config.schema import CONFIG_SCHEMA

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Exception raised for configuration-related errors."""

    pass


STORAGE_DIR_ENV = "APIDRIFT_STORAGE_DIR"
LOG_LEVEL_ENV = "APIDRIFT_LOG_LEVEL"
DEFAULT_STORAGE_DIR = "baselines"
DEFAULT_MAX_ITERATIONS = 100


class SecretRedactionFilter(logging.Filter):
    """
    Logging filter that redacts secret values from log records.
    Replaces secret substrings with ***REDACTED*** to prevent accidental leakage.
    """

    def __init__(self, secrets: Optional[List[str]] = None):
        """
        Initialize filter with secrets to redact.

        Args:
            secrets: Client secrets, passwords, or tokens to mask
        """
        super().__init__()
        self.redacted_values: set[str] = set()
        for secret in secrets or []:
            self.add_secret(secret)

    def add_secret(self, secret: Optional[str]) -> None:
        """Register another value to redact (e.g. a freshly issued token)."""
        if isinstance(secret, str) and len(secret) > 3:
            self.redacted_values.add(secret)

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and redact log record."""
        try:
            record.msg = self._redact_string(str(record.msg))
            if record.args:
                if isinstance(record.args, dict):
                    record.args = {k: self._redact_string(str(v)) for k, v in record.args.items()}
                elif isinstance(record.args, (list, tuple)):
                    record.args = tuple(self._redact_string(str(arg)) for arg in record.args)
        except Exception as e:
            logger.warning(f"Error during secret redaction: {e}")
        return True

    def _redact_string(self, text: str) -> str:
        """Redact all secret values from string."""
        for secret in self.redacted_values:
            if secret in text:
                text = text.replace(secret, "***REDACTED***")
        return text


@dataclass(frozen=True)
class Authentication:
    """OAuth client-credentials or basic-auth settings for one API."""

    token_url: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Authentication"]:
        if not data:
            return None
        return cls(
            token_url=data.get("tokenUrl"),
            client_id=data.get("clientId"),
            client_secret=data.get("clientSecret"),
        )

    def descriptor(self) -> Dict[str, str]:
        """Auth description safe to persist (no secret)."""
        if self.token_url:
            return {"type": "oauth2", "tokenUrl": self.token_url, "clientId": self.client_id or ""}
        if self.client_id:
            return {"type": "basic", "username": self.client_id}
        return {}


@dataclass(frozen=True)
class Operation:
    """One API operation: path, HTTP methods, headers, payload template."""

    name: str
    path: str = ""
    methods: List[str] = field(default_factory=lambda: ["POST"])
    headers: Dict[str, str] = field(default_factory=dict)
    payload_template_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Operation":
        return cls(
            name=data["name"],
            path=data.get("path") or "",
            methods=list(data.get("methods") or ["POST"]),
            headers={k: str(v) for k, v in (data.get("headers") or {}).items()},
            payload_template_path=data.get("payloadTemplatePath"),
        )

    @property
    def method(self) -> str:
        return self.methods[0].upper()


@dataclass(frozen=True)
class ApiConfig:
    """Base URL, authentication and operations for one side of a comparison."""

    base_url: str
    operations: List[Operation]
    authentication: Optional[Authentication] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApiConfig":
        return cls(
            base_url=data["baseUrl"],
            operations=[Operation.from_dict(op) for op in data.get("operations") or []],
            authentication=Authentication.from_dict(data.get("authentication")),
        )

    def find_operation(self, name: str) -> Optional[Operation]:
        for operation in self.operations:
            if operation.name == name:
                return operation
        return None


@dataclass(frozen=True)
class BaselineConfig:
    """Settings for BASELINE mode (CAPTURE or COMPARE)."""

    operation: Optional[str] = None
    storage_dir: str = DEFAULT_STORAGE_DIR
    service_name: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    compare_date: Optional[str] = None
    compare_run_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["BaselineConfig"]:
        if data is None:
            return None
        storage_dir = os.getenv(STORAGE_DIR_ENV) or data.get("storageDir") or DEFAULT_STORAGE_DIR
        return cls(
            operation=(data.get("operation") or "").upper() or None,
            storage_dir=storage_dir,
            service_name=data.get("serviceName"),
            description=data.get("description"),
            tags=list(data.get("tags") or []),
            compare_date=data.get("compareDate"),
            compare_run_id=data.get("compareRunId"),
        )


@dataclass(frozen=True)
class Config:
    """
    Validated comparison configuration.

    Attributes:
        test_type: "REST" or "SOAP"
        rest_apis / soap_apis: "api1"/"api2" -> ApiConfig
        max_iterations: Iteration cap enforced before any API call
        tokens: Token name -> candidate values, in file order
        iteration_controller: Strategy name (ALL_COMBINATIONS / ONE_BY_ONE)
        comparison_mode: "LIVE" or "BASELINE"
        baseline: BaselineConfig for BASELINE mode
        raw: The validated source mapping, used for config snapshots
    """

    test_type: str
    rest_apis: Dict[str, ApiConfig] = field(default_factory=dict)
    soap_apis: Dict[str, ApiConfig] = field(default_factory=dict)
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    tokens: Dict[str, List[Any]] = field(default_factory=dict)
    iteration_controller: Optional[str] = None
    comparison_mode: str = "LIVE"
    baseline: Optional[BaselineConfig] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """
        Validate and build a Config.

        Raises:
            ConfigurationError: If the mapping does not match CONFIG_SCHEMA
        """
        validate_config(data)
        return cls(
            test_type=data["testType"].upper(),
            rest_apis={k: ApiConfig.from_dict(v) for k, v in (data.get("rest") or {}).items()},
            soap_apis={k: ApiConfig.from_dict(v) for k, v in (data.get("soap") or {}).items()},
            max_iterations=int(data.get("maxIterations") or DEFAULT_MAX_ITERATIONS),
            tokens={k: list(v) for k, v in (data.get("tokens") or {}).items()},
            iteration_controller=data.get("iterationController"),
            comparison_mode=(data.get("comparisonMode") or "LIVE").upper(),
            baseline=BaselineConfig.from_dict(data.get("baseline")),
            raw=dict(data),
        )

    @property
    def apis(self) -> Dict[str, ApiConfig]:
        """API pair for the configured test type."""
        return self.soap_apis if self.test_type == "SOAP" else self.rest_apis

    def snapshot(self) -> Dict[str, Any]:
        """Settings recorded into captured baseline metadata."""
        return {
            "maxIterations": self.max_iterations,
            "iterationController": self.iteration_controller,
            "testType": self.test_type,
            "tokens": {k: list(v) for k, v in self.tokens.items()},
        }

    def secrets(self) -> List[str]:
        values = []
        for api in list(self.rest_apis.values()) + list(self.soap_apis.values()):
            if api.authentication and api.authentication.client_secret:
                values.append(api.authentication.client_secret)
        return values


def validate_config(data: Any) -> None:
    """
    Validate a configuration mapping against CONFIG_SCHEMA.

    Raises:
        ConfigurationError: If validation fails
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a mapping")

    try:
        jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        location = "/".join(str(part) for part in e.absolute_path) or "<root>"
        logger.error(f"Configuration failed schema validation at {location}: {e.message}")
        raise ConfigurationError(f"Configuration validation failed at {location}: {e.message}") from e
    except jsonschema.SchemaError as e:
        raise ConfigurationError(f"Configuration schema is invalid: {e.message}") from e


def load_config(config_path: Union[str, Path]) -> Config:
    """
    Load a configuration file.

    YAML is a superset of JSON, so both formats are read with yaml.safe_load.

    Raises:
        ConfigurationError: If the file is missing, unparseable, or invalid
    """
    path = Path(config_path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        logger.error(f"Configuration file not found: {path}")
        raise ConfigurationError(f"Configuration file not found: {path}") from e
    except yaml.YAMLError as e:
        logger.error(f"Invalid YAML in configuration: {e}")
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if not data:
        raise ConfigurationError(f"Empty configuration: {path}")

    config = Config.from_dict(data)
    logger.info(
        f"Loaded {config.test_type} configuration from {path} "
        f"({len(config.tokens)} tokens, mode {config.comparison_mode})"
    )
    return config


def setup_logging_redaction(config: Config, logger_instance: Optional[logging.Logger] = None) -> SecretRedactionFilter:
    """
    Attach a redaction filter for the configured client secrets.

    Filters are attached to the given logger (root by default) and its
    handlers so records from child loggers are redacted too.
    """
    target = logger_instance or logging.getLogger()
    redaction_filter = SecretRedactionFilter(config.secrets())
    target.addFilter(redaction_filter)
    for handler in target.handlers:
        handler.addFilter(redaction_filter)
    return redaction_filter
