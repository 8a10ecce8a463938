import os
import re
import yaml
from pathlib import Path
from typing import Any, Dict

from devbroker.core.errors import ConfigurationError

ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]+))?\}")

DEFAULT_CONFIG_FILE = "devbroker.yaml"

def interpolate_env_vars(content: str) -> str:
    """Replace ${VAR} or ${VAR:default} with environment variables."""
    def replace_match(match: re.Match) -> str:
        var_name = match.group(1)
        default_value = match.group(2) if match.group(2) is not None else ""
        return os.environ.get(var_name, default_value)

    return ENV_VAR_PATTERN.sub(replace_match, content)

def load_config(path: Path) -> Dict[str, Any]:
    """
    Load devbroker.yaml with environment variable interpolation.

    A missing file yields an empty mapping. A file that is not valid YAML, or whose
    root is not a mapping, raises ConfigurationError.
    """
    if not path.exists():
        return {}

    try:
        content = path.read_text()
        full_config = yaml.safe_load(interpolate_env_vars(content))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Unable to read configuration file '{path}': {exc}") from exc

    if full_config is None:
        return {}

    if not isinstance(full_config, dict):
        raise ConfigurationError(
            f"Configuration file '{path}' must contain a mapping at the top level."
        )

    return full_config

def flatten_properties(config: Dict[str, Any], prefix: str = "") -> Dict[str, str]:
    """
    Flatten a nested mapping into dotted property names with string values.

    ``{"mp": {"messaging": {"incoming": {"prices": {"connector": "smallrye-amqp"}}}}}``
    becomes ``{"mp.messaging.incoming.prices.connector": "smallrye-amqp"}``.
    Lists are joined with commas; ``null`` values are dropped.
    """
    flattened: Dict[str, str] = {}
    for key, value in config.items():
        name = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            flattened.update(flatten_properties(value, name))
        elif value is None:
            continue
        elif isinstance(value, bool):
            flattened[name] = "true" if value else "false"
        elif isinstance(value, (list, tuple)):
            flattened[name] = ",".join(str(item) for item in value)
        else:
            flattened[name] = str(value)
    return flattened
