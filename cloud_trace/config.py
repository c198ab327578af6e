"""Configuration loading: defaults, TOML file, environment, explicit overrides.

Priority, lowest to highest:

1. ``TraceConfig`` defaults
2. ``[tracing]`` table of a TOML config file
3. ``CLOUD_TRACE_*`` environment variables
4. keyword overrides passed to ``load_config``
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from cloud_trace.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "cloud_trace.toml"
ENV_PREFIX = "CLOUD_TRACE_"


class TraceConfig(BaseModel):
    """Middleware and reporting settings."""

    project_id: Optional[str] = None
    path_exclusions: List[str] = Field(default_factory=lambda: ["/_ah/health"])
    capture_stack: bool = False
    sample_rate: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    qps: Optional[float] = Field(default=None, gt=0.0)
    drop_parent_span: bool = True
    report_timeout: float = Field(default=5.0, gt=0.0)
    async_reporting: bool = False
    max_queue_size: int = Field(default=1000, gt=0)


def find_config_file() -> Optional[str]:
    """Look for a config file in the working directory, then the user config dir."""
    candidates = [
        Path.cwd() / CONFIG_FILE_NAME,
        Path.home() / ".config" / "cloud_trace" / CONFIG_FILE_NAME,
    ]
    for candidate in candidates:
        if candidate.is_file():
            return str(candidate)
    return None


def load_toml_config(path: str) -> Dict[str, Any]:
    """
    Read a TOML config file.

    Returns an empty dict if the file does not exist.

    Raises:
        ConfigError: if the file is not valid TOML
    """
    config_path = Path(path)
    if not config_path.is_file():
        return {}
    try:
        with config_path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError("Invalid TOML config file", {"path": path, "error": e}) from e


def load_env_config(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Collect ``CLOUD_TRACE_*`` variables for the fields of ``TraceConfig``."""
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = {}
    for name in TraceConfig.model_fields:
        raw = environ.get(ENV_PREFIX + name.upper())
        if raw is None or raw == "":
            continue
        if name == "path_exclusions":
            values[name] = [item.strip() for item in raw.split(",") if item.strip()]
        else:
            values[name] = raw
    return values


def load_config(config_file: Optional[str] = None, **overrides: Any) -> TraceConfig:
    """
    Build a ``TraceConfig`` from all sources.

    Raises:
        ConfigError: if the file cannot be parsed or a value is invalid
    """
    values: Dict[str, Any] = {}

    path = config_file or find_config_file()
    if path:
        file_config = load_toml_config(path)
        tracing = file_config.get("tracing", {})
        if not isinstance(tracing, dict):
            raise ConfigError("[tracing] must be a table", {"path": path})
        values.update(tracing)
        logger.debug("Loaded trace config from %s", path)

    values.update(load_env_config())
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return TraceConfig(**values)
    except ValidationError as e:
        raise ConfigError("Invalid trace configuration", {"errors": e.error_count()}) from e
