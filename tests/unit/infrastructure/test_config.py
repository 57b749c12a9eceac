"""
Unit tests for infrastructure/config.py - TOML-backed options.
"""
import pytest

from core.errors import ConfigError
from core.ontology import UpdateOrder, VisitOrder
from infrastructure.config import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_PATH,
    BenchmarkConfig,
    config_path,
    load_benchmark_config,
    load_match_config,
    load_toml_config,
)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "simgraph.toml"
    path.write_text(
        "[matching]\n"
        "edge_aware = true\n"
        "max_passes = 7\n"
        'update_order = "in_place"\n'
        'visit_order = "shuffled"\n'
        "seed = 3\n"
        "\n"
        "[benchmark]\n"
        "vertices = 200\n"
        "degree = 3\n"
        "edge_labels = 2\n"
    )
    return path


def test_shipped_config_loads():
    """The config file in the repository matches the struct defaults."""
    assert DEFAULT_CONFIG_PATH.exists()
    config = load_match_config(DEFAULT_CONFIG_PATH)

    assert not config.edge_aware
    assert config.update_order == UpdateOrder.SNAPSHOT
    assert load_benchmark_config(DEFAULT_CONFIG_PATH) == BenchmarkConfig()


def test_load_match_config(config_file):
    """
    Validate conversion of [matching] into a MatchConfig.

    Verifies:
    - Booleans, ints and enum strings are converted
    - Fields absent from the file keep their defaults
    """
    config = load_match_config(config_file)

    assert config.edge_aware
    assert not config.dual_mode
    assert config.max_passes == 7
    assert config.update_order == UpdateOrder.IN_PLACE
    assert config.visit_order == VisitOrder.SHUFFLED
    assert config.seed == 3


def test_overrides_take_precedence(config_file):
    config = load_match_config(config_file, edge_aware=False, dual_mode=None, max_passes=2)

    assert not config.edge_aware
    assert not config.dual_mode
    assert config.max_passes == 2


def test_load_benchmark_config(config_file):
    bench = load_benchmark_config(config_file, runs=9)

    assert bench.vertices == 200
    assert bench.degree == 3.0
    assert bench.edge_labels == 2
    assert bench.runs == 9
    assert bench.labels == 10


def test_env_var_resolution(config_file, monkeypatch):
    monkeypatch.setenv(CONFIG_ENV_VAR, str(config_file))

    assert config_path() == config_file
    assert load_match_config().max_passes == 7


def test_default_path_without_env(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    assert config_path() == DEFAULT_CONFIG_PATH


def test_missing_file_warns_and_uses_defaults(tmp_path):
    with pytest.warns(UserWarning, match="not found"):
        config = load_match_config(tmp_path / "absent.toml")
    assert config.max_passes is None


def test_unknown_key_warns(tmp_path):
    path = tmp_path / "simgraph.toml"
    path.write_text("[matching]\nturbo = true\ndual_mode = true\n")

    with pytest.warns(UserWarning, match="turbo"):
        config = load_match_config(path)
    assert config.dual_mode


@pytest.mark.parametrize("body", [
    'max_passes = "lots"',
    "max_passes = -1",
    'visit_order = "sideways"',
])
def test_invalid_values_raise_config_error(tmp_path, body):
    path = tmp_path / "simgraph.toml"
    path.write_text(f"[matching]\n{body}\n")

    with pytest.raises(ConfigError, match=r"\[matching\]"):
        load_match_config(path)


def test_malformed_toml_raises_config_error(tmp_path):
    path = tmp_path / "simgraph.toml"
    path.write_text("[matching\nedge_aware = \n")

    with pytest.raises(ConfigError, match="Malformed"):
        load_toml_config(path)


def test_section_must_be_a_table(tmp_path):
    path = tmp_path / "simgraph.toml"
    path.write_text("matching = 3\n")

    with pytest.raises(ConfigError, match="must be a table"):
        load_match_config(path)
