"""Credentials and settings for the traffic report."""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema
import toml
import yaml

from shared.logger import get_logger

from .fetcher import DEFAULT_BASE_URL, DEFAULT_TIMEOUT

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path("repo-traffic.yaml")

ENV_ACCOUNT = "GITHUB_USERNAME"
ENV_TOKEN = "GITHUB_TOKEN"

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "account": {"type": "string", "minLength": 1},
        "token": {"type": "string", "minLength": 1},
        "base_url": {"type": "string", "minLength": 1},
        "timeout": {"type": "number", "exclusiveMinimum": 0},
    },
    "required": ["account", "token"],
    "additionalProperties": False,
}


class ConfigError(ValueError):
    """Configuration is unreadable, invalid or incomplete."""


@dataclass
class TrafficConfig:
    """Account credentials and API settings."""

    account: str
    token: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT

    def __repr__(self) -> str:
        return (
            f"TrafficConfig(account={self.account!r}, token='***', "
            f"base_url={self.base_url!r}, timeout={self.timeout!r})"
        )


def _parse(content: str, suffix: str) -> Any:
    if suffix == ".json":
        return json.loads(content)
    elif suffix in [".yaml", ".yml"]:
        return yaml.safe_load(content)
    elif suffix == ".toml":
        return toml.loads(content)
    raise ConfigError(f"Unsupported config format: {suffix or '(no extension)'}")


def read_config_file(filepath: Path, require_credentials: bool = True) -> Dict[str, Any]:
    """
    Read and validate a JSON, YAML or TOML config file.

    Args:
        filepath: Path to the config file
        require_credentials: Reject files without account and token

    Returns:
        Validated config values

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigError: If the file cannot be parsed or fails validation
    """
    schema = CONFIG_SCHEMA if require_credentials else dict(CONFIG_SCHEMA, required=[])

    if not filepath.exists():
        raise FileNotFoundError(f"Config file not found: {filepath}")

    logger.debug(f"Loading config from {filepath}")

    with open(filepath, "r") as f:
        content = f.read()

    try:
        data = _parse(content, filepath.suffix.lower())
    except ConfigError:
        raise
    except Exception as e:
        raise ConfigError(f"Failed to parse {filepath}: {e}") from e

    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        raise ConfigError(f"Invalid config {filepath}: {e.message}") from e

    return data


def load_config(filepath: Path) -> TrafficConfig:
    """Load a complete TrafficConfig from a file."""
    return TrafficConfig(**read_config_file(filepath))


def resolve_config(
    filepath: Optional[Path] = None,
    account: Optional[str] = None,
    token: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> TrafficConfig:
    """
    Merge explicit values, environment variables and the config file.

    Explicit values win over GITHUB_USERNAME / GITHUB_TOKEN, which win over
    the file. Without a filepath, repo-traffic.yaml in the working directory
    is read if present.

    Raises:
        ConfigError: If no account or token is found, or a merged value is invalid
    """
    values: Dict[str, Any] = {}

    if filepath is None and DEFAULT_CONFIG_PATH.exists():
        filepath = DEFAULT_CONFIG_PATH

    if filepath is not None:
        # Partial files are fine here; the merged result is checked below
        values.update(read_config_file(filepath, require_credentials=False))

    env = {"account": os.getenv(ENV_ACCOUNT), "token": os.getenv(ENV_TOKEN)}
    explicit = {"account": account, "token": token, "base_url": base_url, "timeout": timeout}

    # Empty environment variables count as unset; explicit values only when given
    values.update({k: v for k, v in env.items() if v})
    values.update({k: v for k, v in explicit.items() if v is not None})

    missing = [key for key in ("account", "token") if not values.get(key)]
    if missing:
        raise ConfigError(
            f"Missing {' and '.join(missing)}. Pass --account/--token, set "
            f"{ENV_ACCOUNT}/{ENV_TOKEN}, or add them to a config file."
        )

    try:
        jsonschema.validate(instance=values, schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ConfigError(f"Invalid {e.path[-1] if e.path else 'config'}: {e.message}") from e

    return TrafficConfig(**values)
