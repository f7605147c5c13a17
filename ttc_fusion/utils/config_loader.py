"""
Config Loader - Loading of YAML configuration files.
"""

import logging
import yaml
from pathlib import Path
from typing import Dict, Any

logger = logging.getLogger(__name__)


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        config_path: Path to the YAML file

    Returns:
        Configuration dictionary (empty if the file is empty)

    Raises:
        FileNotFoundError: If the file does not exist
        yaml.YAMLError: If the file is not valid YAML
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_file, 'r') as f:
        try:
            config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Error parsing YAML file {config_path}: {e}")

    logger.debug("Loaded configuration from %s", config_path)
    return config or {}


def get_nested_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get a nested value from a dictionary using a dot-notation path.

    Args:
        config: Configuration dictionary
        key_path: Dot-notation path (e.g. "lidar_ttc.percentile")
        default: Value returned if the key does not exist

    Returns:
        Value found, or default

    Example:
        >>> config = {'lidar_ttc': {'percentile': 10.0}}
        >>> get_nested_value(config, 'lidar_ttc.percentile')
        10.0
    """
    keys = key_path.split('.')
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


def set_nested_value(config: Dict[str, Any], key_path: str, value: Any) -> Dict[str, Any]:
    """
    Set a nested value, creating intermediate dictionaries as needed.

    Used to apply command-line overrides on top of a loaded configuration.
    """
    keys = key_path.split('.')
    node = config
    for key in keys[:-1]:
        node = node.setdefault(key, {})
    node[keys[-1]] = value
    return config
