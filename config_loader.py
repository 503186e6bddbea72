"""
Config Loader - Reads a config document from disk and resolves it

YAML (.yaml / .yml) is parsed with PyYAML's safe loader, .json with json.
The parsed document goes through resolve_show_config() unchanged.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from strip_config import ShowConfig, resolve_show_config
from strip_errors import ConfigError

logger = logging.getLogger(__name__)


def read_config_document(path: Union[str, Path]) -> Dict[str, Any]:
    """Parse the file at `path` into a plain dict"""
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Unspecified or invalid config path: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                document = json.load(f)
            else:
                document = yaml.safe_load(f)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Error parsing config file {path}: {e}") from e

    if not isinstance(document, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    return document


def load_show_config(path: Union[str, Path]) -> ShowConfig:
    """Read and resolve a config file"""
    config = resolve_show_config(read_config_document(path))
    logger.info(
        f"Loaded {path}: {len(config.emitters)} dudes on {config.strip_length} pixels"
        f" ({config.led_type or 'no ledType'})"
    )
    return config
