"""
Configuration for the ECS exporter

Values come from, in increasing order of precedence: field defaults, an
optional YAML file, environment variables, and explicit overrides (the CLI).
"""
import logging
import os
from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ecs_exporter.errors import ConfigurationError
from ecs_exporter.metadata_client import DEFAULT_TIMEOUT, METADATA_URI_ENV, validate_endpoint

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV = 'ECS_EXPORTER_CONFIG_FILE'

# Field name -> environment variable
ENV_VARS = {
    'metadata_uri': METADATA_URI_ENV,
    'listen_host': 'ECS_EXPORTER_HOST',
    'listen_port': 'ECS_EXPORTER_PORT',
    'request_timeout': 'ECS_EXPORTER_REQUEST_TIMEOUT',
    'log_level': 'ECS_EXPORTER_LOG_LEVEL',
}


class ExporterConfig(BaseModel):
    """Runtime settings for the exporter process"""

    metadata_uri: str
    listen_host: str = '0.0.0.0'
    listen_port: int = Field(9779, ge=1, le=65535)
    request_timeout: float = Field(DEFAULT_TIMEOUT, gt=0)
    log_level: str = 'INFO'

    @field_validator('metadata_uri')
    @classmethod
    def check_metadata_uri(cls, v: str) -> str:
        try:
            return validate_endpoint(v)
        except ConfigurationError as e:
            raise ValueError(str(e)) from e

    @field_validator('log_level')
    @classmethod
    def check_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f"unknown log level: {v}")
        return level


def parse_addr(addr: str) -> Tuple[str, int]:
    """
    Split a ``host:port`` listen address.

    An empty host (``:9779``) means all interfaces.
    """
    host, sep, port = addr.rpartition(':')
    if not sep or not port.isdigit():
        raise ConfigurationError(f"invalid listen address {addr!r}, expected host:port")
    return host.strip('[]') or '0.0.0.0', int(port)


def load_config_file(path: str) -> Dict[str, Any]:
    """Load settings from a YAML file; a missing file yields no settings"""
    if not os.path.exists(path):
        logger.warning(f"Config file not found: {path}, using defaults")
        return {}
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping")
    return data


def load_config(config_file: Optional[str] = None, **overrides: Any) -> ExporterConfig:
    """
    Build the exporter configuration

    Args:
        config_file: Optional YAML file path; defaults to $ECS_EXPORTER_CONFIG_FILE
        **overrides: Explicit values, None entries are ignored

    Returns:
        Validated ExporterConfig

    Raises:
        ConfigurationError: If a required value is missing or invalid
    """
    values: Dict[str, Any] = {}

    config_file = config_file or os.environ.get(CONFIG_FILE_ENV)
    if config_file:
        values.update(load_config_file(config_file))

    for field_name, env_var in ENV_VARS.items():
        if os.environ.get(env_var):
            values[field_name] = os.environ[env_var]

    values.update({k: v for k, v in overrides.items() if v is not None})

    if not values.get('metadata_uri'):
        raise ConfigurationError(f"{METADATA_URI_ENV} is not set; not running on ECS?")

    try:
        return ExporterConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(f"invalid configuration: {e}") from e
