import json
import os
from copy import deepcopy
from dataclasses import fields
from typing import Any, Dict, Tuple

import yaml
from structlog import get_logger

from statsd_instrument.core.config import EmitterConfig, parse_server
from statsd_instrument.errors import ConfigurationError

logger = get_logger("config.loader")

DEFAULT_CONFIG_PATH = "config/statsd.yaml"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "host": "localhost",
    "port": 8125,
    "mode": "development",  # production sends datagrams, anything else logs them
    "enabled": True,
    "default_sample_rate": 1.0,
    "prefix": None,
    "implementation": "statsd",  # statsd | statsite | datadog
}

_CONFIG_FIELDS = {f.name for f in fields(EmitterConfig)}


def _bool_env(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _load_settings_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            if path.endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.error("Failed to load StatsD settings file", path=path, error=str(exc))
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("StatsD settings file is not a mapping, ignoring", path=path)
        return {}
    # allow the settings to live under a top-level "statsd" key
    if isinstance(data.get("statsd"), dict):
        data = data["statsd"]
    return data


def _env_overrides() -> Dict[str, Any]:
    env: Dict[str, Any] = {}
    if os.getenv("STATSD_SERVER"):
        env["server"] = os.getenv("STATSD_SERVER")
    if os.getenv("STATSD_HOST"):
        env["host"] = os.getenv("STATSD_HOST")
    if os.getenv("STATSD_PORT"):
        try:
            env["port"] = int(os.getenv("STATSD_PORT"))
        except ValueError:
            logger.warning("Ignoring non-numeric STATSD_PORT", value=os.getenv("STATSD_PORT"))
    if os.getenv("STATSD_MODE"):
        env["mode"] = os.getenv("STATSD_MODE")
    if os.getenv("STATSD_ENABLED") is not None:
        env["enabled"] = _bool_env(os.getenv("STATSD_ENABLED"), default=True)
    if os.getenv("STATSD_SAMPLE_RATE"):
        try:
            env["default_sample_rate"] = float(os.getenv("STATSD_SAMPLE_RATE"))
        except ValueError:
            logger.warning("Ignoring non-numeric STATSD_SAMPLE_RATE", value=os.getenv("STATSD_SAMPLE_RATE"))
    if os.getenv("STATSD_PREFIX"):
        env["prefix"] = os.getenv("STATSD_PREFIX")
    if os.getenv("STATSD_IMPLEMENTATION"):
        env["implementation"] = os.getenv("STATSD_IMPLEMENTATION")
    return env


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Later layers win; a ``server`` entry expands into host and port."""
    override = dict(override)
    server = override.pop("server", None)
    if server:
        override["host"], override["port"] = parse_server(server)
    for k, v in override.items():
        if k not in _CONFIG_FIELDS:
            logger.warning("Unknown StatsD setting ignored", key=k)
            continue
        base[k] = v
    return base


def load_config(
    path: str | None = None, overrides: Dict[str, Any] | None = None
) -> Tuple[EmitterConfig, Dict[str, Any]]:
    """Return (config, applied_defaults) after applying the priority chain.

    defaults < settings file < STATSD_* environment < explicit overrides
    """
    path = path or os.getenv("STATSD_CONFIG") or DEFAULT_CONFIG_PATH
    applied_defaults = deepcopy(DEFAULT_SETTINGS)

    settings = deepcopy(DEFAULT_SETTINGS)
    settings = _merge(settings, _load_settings_file(path))
    settings = _merge(settings, _env_overrides())
    settings = _merge(settings, overrides or {})

    try:
        config = EmitterConfig(**settings)
    except TypeError as exc:
        raise ConfigurationError(f"invalid StatsD settings: {exc}") from exc
    return config, applied_defaults


def summarize_config(config: EmitterConfig) -> str:
    lines = []
    lines.append(f"server={config.server}")
    lines.append(f"mode={config.mode}{'' if config.is_production else ' (log only)'}")
    lines.append(f"enabled={config.enabled}")
    lines.append(f"implementation={config.implementation.value}")
    lines.append(f"sample_rate={config.default_sample_rate}")
    lines.append(f"prefix={config.prefix or '-'}")
    return " | ".join(lines)
