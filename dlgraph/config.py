"""
DLGRAPH CONFIG - Graph Options from TOML

Options are normally passed in code, but a project can pin them in a
dlgraph.toml file:

    [graph]
    treat_keys_as_locally_unique = true

Usage:
    from dlgraph.config import load_options

    options = load_options()                      # ./dlgraph.toml, if present
    options = load_options(Path("conf/app.toml"))

The environment variable DLGRAPH_LOCALLY_UNIQUE ("1", "true", "yes", or
"0", "false", "no") overrides whatever the file says.
"""
import msgspec
import logging
import os
import tomllib
import warnings
from typing import Any, Dict, Optional
from pathlib import Path

from dlgraph.graph_db import GraphError
from dlgraph.schemas import GraphOptions

logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = Path("dlgraph.toml")
DEFAULT_SECTION = "graph"
LOCALLY_UNIQUE_ENV_VAR = "DLGRAPH_LOCALLY_UNIQUE"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigError(GraphError):
    """Raised when configuration cannot be read or does not validate."""
    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        super().__init__(message)


# =============================================================================
# LOADING
# =============================================================================

def load_toml_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load a TOML configuration file.

    Args:
        path: File to read. Defaults to ./dlgraph.toml.

    Returns:
        Dict with all configuration sections. Empty if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not valid TOML
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        if path is not None:
            warnings.warn(f"Config file not found: {config_path}, using defaults")
        return {}

    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {config_path}: {e}", config_path) from e


def options_from_dict(section: Dict[str, Any]) -> GraphOptions:
    """
    Build GraphOptions from a config section.

    Unknown keys are ignored with a warning; wrongly typed values fail.

    Raises:
        ConfigError: If a value has the wrong type
    """
    known = set(GraphOptions.__struct_fields__)
    unknown = sorted(set(section) - known)
    if unknown:
        warnings.warn(f"Ignoring unknown graph options: {', '.join(unknown)}")

    try:
        return msgspec.convert(
            {k: v for k, v in section.items() if k in known},
            type=GraphOptions,
        )
    except msgspec.ValidationError as e:
        raise ConfigError(f"Invalid graph options: {e}") from e


def apply_env_overrides(options: GraphOptions) -> GraphOptions:
    """
    Apply DLGRAPH_LOCALLY_UNIQUE on top of options.

    Raises:
        ConfigError: If the variable is set to something that is not a boolean
    """
    raw = os.environ.get(LOCALLY_UNIQUE_ENV_VAR)
    if raw is None or not raw.strip():
        return options

    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        locally_unique = True
    elif value in _FALSE_VALUES:
        locally_unique = False
    else:
        raise ConfigError(f"{LOCALLY_UNIQUE_ENV_VAR} must be a boolean, got {raw!r}")

    logger.debug(f"{LOCALLY_UNIQUE_ENV_VAR} overrides treat_keys_as_locally_unique={locally_unique}")
    return msgspec.structs.replace(options, treat_keys_as_locally_unique=locally_unique)


def load_options(path: Optional[Path] = None, section: str = DEFAULT_SECTION) -> GraphOptions:
    """
    Load GraphOptions from the [graph] table of a TOML file plus environment.

    A missing file or missing table gives the default options.

    Raises:
        ConfigError: If the file or the table does not validate
    """
    config = load_toml_config(path)
    table = config.get(section, {})
    if not isinstance(table, dict):
        raise ConfigError(f"[{section}] must be a table, got {type(table).__name__}", path)

    options = apply_env_overrides(options_from_dict(table))
    logger.debug(f"Loaded graph options: mode={options.mode.value}")
    return options
