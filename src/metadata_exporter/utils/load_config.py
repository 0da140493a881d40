#!/usr/bin/env python3

import os
import json
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

try:
    # Python 3.11+ 标准库
    import tomllib as toml  # type: ignore
except ModuleNotFoundError:
    # Python <3.11 的轻量实现
    import tomli as toml  # type: ignore

from ..imds.client import METADATA_ENDPOINT
from ..imds.errors import ExporterError
from ..imds.token import TOKEN_ENDPOINT


class ConfigError(ExporterError):
    """Config file is missing, unreadable or malformed."""


@dataclass(frozen=True)
class ExporterConfig:
    """Exporter settings.

    Attributes:
        bind_addr: ``host:port`` the metrics server listens on; an empty host
            binds every interface.
        metrics_path: Path serving the exposition format.
        log_level: Minimum log level name.
        metadata_endpoint: Root of the metadata tree.
        token_endpoint: IMDSv2 token URL.
        token_ttl_seconds: Requested token lifetime.
        token_timeout_s: Timeout of the token handshake.
    """

    bind_addr: str = ":9189"
    metrics_path: str = "/metrics"
    log_level: str = "info"
    metadata_endpoint: str = METADATA_ENDPOINT
    token_endpoint: str = TOKEN_ENDPOINT
    token_ttl_seconds: int = 15
    token_timeout_s: float = 5.0

    def merged(self, **overrides: Any) -> "ExporterConfig":
        """Copy with every non-``None`` override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _replace_values(data: Any) -> Any:
    """Recursively resolve ``env,NAME`` placeholders.

    Args:
        data: Config value to resolve.

    Returns:
        Any: Resolved value; unresolvable placeholders are kept as-is.
    """
    if isinstance(data, dict):
        return {k: _replace_values(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_replace_values(item) for item in data]
    elif isinstance(data, str) and data.startswith("env,"):
        env_value = os.getenv(data.split(",", 1)[1])
        if env_value is not None:
            return env_value
    return data


def load_config_by_file(path: str) -> Dict[str, Any]:
    """Load config from TOML/JSON and resolve placeholders.

    Args:
        path: Config file path.

    Returns:
        Dict[str, Any]: Loaded and resolved config.

    Raises:
        ConfigError: File cannot be read or parsed.
    """
    try:
        if path.endswith('.toml'):
            # tomllib/tomli 需要以二进制模式读取
            with open(path, 'rb') as f:
                config = toml.load(f)
        elif path.endswith('.json'):
            with open(path, 'r', encoding='utf-8') as f:
                config = json.load(f)
        else:
            raise ConfigError(f"unsupported config file type: {path}")
    except (OSError, ValueError) as exc:
        raise ConfigError(f"failed to load config {path}: {exc}") from exc

    if not isinstance(config, dict):
        raise ConfigError(f"config root must be a table/object: {path}")
    return _replace_values(config)


def _coerce(name: str, value: Any, default: Any) -> Any:
    try:
        if isinstance(default, int):
            return int(value)
        if isinstance(default, float):
            return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid value for {name}: {value!r}") from exc
    return str(value)


def load_exporter_config(path: Optional[str] = None) -> ExporterConfig:
    """Build an ``ExporterConfig`` from defaults and an optional file.

    Keys are read from an ``[exporter]`` table when present, otherwise from
    the top level. Unknown keys are ignored.

    Args:
        path: Optional TOML/JSON config file.

    Returns:
        ExporterConfig: Resolved settings.
    """
    config = ExporterConfig()
    if not path:
        return config

    raw = load_config_by_file(path)
    section = raw.get("exporter", raw)
    if not isinstance(section, dict):
        raise ConfigError("[exporter] must be a table")

    values = {}
    for field in fields(ExporterConfig):
        if field.name in section:
            values[field.name] = _coerce(field.name, section[field.name], getattr(config, field.name))
    return replace(config, **values)
