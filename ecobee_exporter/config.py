"""
Configuration module
Defaults, optional YAML file and environment variable overrides
"""
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field, validator

# Exporter metadata
EXPORTER_NAME = "ecobee-exporter"
EXPORTER_VERSION = "1.0.0"

DEFAULT_CONFIG_PATH = Path(os.getenv("ECOBEE_CONFIG_FILE", "/etc/ecobee-exporter/config.yaml"))

# Config key -> environment variable
ENV_VARS = {
    "api_key": "ECOBEE_API_KEY",
    "cache_file": "ECOBEE_CACHE_FILE",
    "metric_prefix": "ECOBEE_METRIC_PREFIX",
    "listen_host": "ECOBEE_LISTEN_HOST",
    "listen_port": "ECOBEE_LISTEN_PORT",
    "telemetry_path": "ECOBEE_TELEMETRY_PATH",
    "request_timeout": "ECOBEE_REQUEST_TIMEOUT",
    "log_level": "ECOBEE_LOG_LEVEL",
    "log_format": "ECOBEE_LOG_FORMAT",
}

METRIC_PREFIX_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ExporterConfig(BaseModel):
    api_key: str = Field("", description="Ecobee developer application key")
    cache_file: Path = Field(Path("/data/ecobee_tokens.json"), description="JSON file holding OAuth tokens")
    metric_prefix: str = Field("ecobee", description="Prefix for every exported metric name")
    listen_host: str = Field("0.0.0.0", description="Address the HTTP server binds to")
    listen_port: int = Field(9098, ge=1, le=65535, description="Port the HTTP server listens on")
    telemetry_path: str = Field("/metrics", description="Path serving the Prometheus exposition")
    request_timeout: float = Field(10.0, gt=0, description="Seconds before an Ecobee API call times out")
    log_level: str = Field("INFO", description="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    log_format: str = Field("text", description="'text' or 'json'")
    path: Optional[Path] = Field(None, description="File the configuration was read from, if any")

    @validator('metric_prefix')
    def metric_prefix_must_be_valid(cls, v):
        if not METRIC_PREFIX_RE.match(v):
            raise ValueError(f'invalid metric prefix {v!r}')
        return v

    @validator('telemetry_path')
    def telemetry_path_must_be_absolute(cls, v):
        if not v.startswith('/'):
            raise ValueError('telemetry_path must start with /')
        return v

    @validator('log_level')
    def log_level_must_be_known(cls, v):
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f'log_level must be one of {", ".join(LOG_LEVELS)}')
        return v

    @validator('log_format')
    def log_format_must_be_known(cls, v):
        if v not in ("text", "json"):
            raise ValueError("log_format must be 'text' or 'json'")
        return v


def _load_file(config_path: Path) -> Dict[str, Any]:
    """Load configuration from YAML file"""
    try:
        with open(config_path, 'r') as file:
            data = yaml.safe_load(file) or {}
    except FileNotFoundError:
        logging.getLogger(__name__).debug(f"No config file at {config_path}, using defaults")
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")
    return data


def load_config(config_path: Optional[Union[str, Path]] = None, environ=None) -> ExporterConfig:
    """Resolve defaults, then the YAML file, then environment variables"""
    environ = os.environ if environ is None else environ
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    values = _load_file(path)
    values.pop("path", None)
    for key, env_var in ENV_VARS.items():
        if env_var in environ:
            values[key] = environ[env_var]

    return ExporterConfig(path=path if path.exists() else None, **values)
