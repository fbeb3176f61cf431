"""Configuration loading utilities."""

import json
import re
from pathlib import Path
from typing import Any

from ssrbridge.config.schema import ClientConfig


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def convert_keys(data: Any) -> Any:
    """Convert top-level camelCase keys to snake_case; ``env`` values are kept verbatim."""
    if not isinstance(data, dict):
        return data
    return {camel_to_snake(k): v for k, v in data.items()}


def load_client_config(config_path: Path) -> ClientConfig:
    """
    Load a bridge client configuration from a JSON file.

    Args:
        config_path: Path to the JSON file. Keys may be camelCase or snake_case.

    Returns:
        Validated client configuration.
    """
    path = Path(config_path).expanduser()
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("top-level JSON value must be an object")
        return ClientConfig.model_validate(convert_keys(data))
    except (json.JSONDecodeError, ValueError) as e:
        raise ValueError(f"Failed to load client config from {path}: {e}") from e
