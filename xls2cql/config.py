"""Configuration loading (YAML over built-in defaults)."""

import copy
import logging
import os

import yaml

from .cql_writer import DEFAULT_PARAMETER
from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULTS = {
    # Sheets that never hold decision tables
    "ignore_sheets": ["readme", "cover", "references"],
    "indicator_sheet": "Indicator table",
    "default_parameter": DEFAULT_PARAMETER,
    "skeleton": "skel.cql",
    "canonical_base": "http://fhir.org/guides/who/Immz",
    "log_level": "INFO",
}


def load_config(config_path=None):
    """Load configuration from a YAML file, falling back to :data:`DEFAULTS`."""
    config = copy.deepcopy(DEFAULTS)
    if config_path and os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            try:
                user_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Cannot parse config file {config_path}: {e}") from e
        if not isinstance(user_config, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping of settings")
        unknown = set(user_config) - set(DEFAULTS)
        if unknown:
            logger.warning(f"Ignoring unknown config keys in {config_path}: {sorted(unknown)}")
        config.update({k: v for k, v in user_config.items() if k in DEFAULTS})
    elif config_path:
        logger.debug(f"Config file {config_path} not found - using defaults")
    return config
