"""
SIMGRAPH CONFIG - TOML-Backed Engine Options

Configuration is loaded once from simgraph.toml and converted into typed
msgspec structs; components receive a MatchConfig instead of reading files.

Sections:
- [matching]: MatchConfig fields (edge_aware, dual_mode, max_passes,
  update_order, visit_order, seed)
- [benchmark]: defaults for benchmarks.harness

Resolution order for the file path:
1. Explicit `path` argument
2. SIMGRAPH_CONFIG environment variable
3. config/simgraph.toml next to the packages

Usage:
    from infrastructure.config import load_match_config

    config = load_match_config()                   # from TOML
    config = load_match_config(edge_aware=True)    # TOML + overrides
"""
import logging
import os
import tomllib
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import msgspec

from core.errors import ConfigError
from core.schemas import MatchConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SIMGRAPH_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "simgraph.toml"


# =============================================================================
# BENCHMARK DEFAULTS
# =============================================================================

class BenchmarkConfig(msgspec.Struct, kw_only=True, frozen=True):
    """Defaults for the benchmark harness ([benchmark] table)."""
    vertices: int = 1000
    labels: int = 10
    degree: float = 4.0
    query_vertices: int = 10
    query_degree: float = 2.0
    edge_labels: Optional[int] = None
    runs: int = 5
    seed: Optional[int] = None


# =============================================================================
# LOADING
# =============================================================================

def config_path(path: Optional[Path] = None) -> Path:
    """Resolve the config file location."""
    if path is not None:
        return Path(path)
    env = os.environ.get(CONFIG_ENV_VAR)
    if env:
        return Path(env)
    return DEFAULT_CONFIG_PATH


def load_toml_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from simgraph.toml.

    A missing file is not fatal: defaults apply and a warning is issued.

    Returns:
        Dict with all configuration sections

    Raises:
        ConfigError: If the file exists but is not valid TOML
    """
    resolved = config_path(path)
    try:
        with open(resolved, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError:
        warnings.warn(f"Config file {resolved} not found, using defaults")
        return {}
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Malformed config file {resolved}: {e}") from e


def _section(
    raw: Dict[str, Any],
    name: str,
    struct_type: type,
    overrides: Dict[str, Any],
) -> Any:
    """Convert one TOML table (plus overrides) into a struct."""
    table = raw.get(name, {})
    if not isinstance(table, dict):
        raise ConfigError(f"[{name}] must be a table")

    known = set(struct_type.__struct_fields__)
    section = {}
    for key, value in table.items():
        if key in known:
            section[key] = value
        else:
            warnings.warn(f"Ignoring unknown key '{key}' in [{name}]")
    section.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return msgspec.convert(section, struct_type)
    except (msgspec.ValidationError, ConfigError) as e:
        raise ConfigError(f"Invalid [{name}] config: {e}") from e


def load_match_config(path: Optional[Path] = None, **overrides) -> MatchConfig:
    """
    Build a MatchConfig from the [matching] table.

    Args:
        path: Optional config file path
        **overrides: Field values taking precedence over the file;
                     None values are ignored

    Raises:
        ConfigError: If a value has the wrong type or range
    """
    config = _section(load_toml_config(path), "matching", MatchConfig, overrides)
    logger.debug("Loaded match config: %s", config)
    return config


def load_benchmark_config(path: Optional[Path] = None, **overrides) -> BenchmarkConfig:
    """Build a BenchmarkConfig from the [benchmark] table."""
    return _section(load_toml_config(path), "benchmark", BenchmarkConfig, overrides)
