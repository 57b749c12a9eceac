"""
Unit tests for core/schemas.py - MatchConfig, MatchResult and codecs.
"""
import msgspec
import pytest

from core.errors import ConfigError, OutOfRangeError
from core.ontology import RefinementMode, UpdateOrder, VisitOrder
from core.schemas import (
    MatchConfig,
    MatchResult,
    decode_config,
    decode_result,
    decode_result_msgpack,
    encode_config,
    encode_result,
    encode_result_msgpack,
    freeze_mapping,
)


@pytest.fixture
def result():
    return MatchResult(
        phi=freeze_mapping([{0, 3}, {1, 2}]),
        satisfiable=True,
        iterations=2,
        converged=True,
        mode=RefinementMode.EDGE_LABELED,
        edge_aware=True,
    )


# =============================================================================
# MATCH CONFIG
# =============================================================================

def test_config_defaults():
    config = MatchConfig()

    assert not config.edge_aware
    assert not config.dual_mode
    assert config.max_passes is None
    assert config.update_order == UpdateOrder.SNAPSHOT
    assert config.visit_order == VisitOrder.FORWARD
    assert config.mode == RefinementMode.PLAIN


def test_config_mode_tag():
    assert MatchConfig(edge_aware=True).mode == RefinementMode.EDGE_LABELED
    assert MatchConfig(dual_mode=True).mode == RefinementMode.DUAL
    assert MatchConfig(edge_aware=True, dual_mode=True).mode == RefinementMode.DUAL


def test_config_is_frozen_and_keyword_only():
    config = MatchConfig()
    with pytest.raises(AttributeError):
        config.edge_aware = True
    with pytest.raises(TypeError):
        MatchConfig(True)


def test_config_rejects_negative_max_passes():
    with pytest.raises(ConfigError, match="max_passes"):
        MatchConfig(max_passes=-1)
    with pytest.raises(ConfigError):
        MatchConfig().replace(max_passes=-2)


def test_config_error_is_value_error():
    with pytest.raises(ValueError):
        MatchConfig(max_passes=-1)


def test_config_replace_leaves_original():
    config = MatchConfig()
    changed = config.replace(dual_mode=True, max_passes=4)

    assert changed.dual_mode and changed.max_passes == 4
    assert not config.dual_mode and config.max_passes is None


def test_config_json_round_trip():
    config = MatchConfig(edge_aware=True, update_order=UpdateOrder.IN_PLACE, seed=9)
    encoded = encode_config(config)

    assert b'"update_order":"in_place"' in encoded
    assert decode_config(encoded) == config


def test_decode_config_validation_errors():
    """
    Validate that malformed config payloads surface as ConfigError.

    Verifies:
    - Wrong types are rejected
    - Unknown enum values are rejected
    - Range checks run during decoding
    """
    with pytest.raises(ConfigError):
        decode_config(b'{"max_passes": "many"}')
    with pytest.raises(ConfigError):
        decode_config(b'{"visit_order": "sideways"}')
    with pytest.raises(ConfigError):
        decode_config(b'{"max_passes": -3}')


# =============================================================================
# MATCH RESULT
# =============================================================================

def test_result_accessors(result):
    assert len(result) == 2
    assert result.candidates(1) == frozenset({1, 2})
    assert result.as_dict() == {0: frozenset({0, 3}), 1: frozenset({1, 2})}
    assert result.total_candidates() == 4
    assert result.empty_vertex is None


def test_result_candidates_out_of_range(result):
    for bad in (-1, 2, True):
        with pytest.raises(OutOfRangeError):
            result.candidates(bad)


def test_result_to_polars(result):
    df = result.to_polars()

    assert df.columns == ["query_vertex", "data_vertex"]
    assert df.rows() == [(0, 0), (0, 3), (1, 1), (1, 2)]


def test_result_to_polars_empty():
    df = MatchResult(phi=(), satisfiable=True).to_polars()
    assert df.is_empty()
    assert df.columns == ["query_vertex", "data_vertex"]


def test_result_json_round_trip(result):
    assert decode_result(encode_result(result)) == result


def test_result_msgpack_round_trip(result):
    encoded = encode_result_msgpack(result)
    assert decode_result_msgpack(encoded) == result
    assert len(encoded) < len(encode_result(result))


def test_decode_result_rejects_wrong_shape():
    with pytest.raises(msgspec.ValidationError):
        decode_result(b'{"phi": [[0, "x"]], "satisfiable": true}')


def test_freeze_mapping():
    frozen = freeze_mapping([{1}, set()])
    assert frozen == (frozenset({1}), frozenset())
    assert isinstance(frozen, tuple)
