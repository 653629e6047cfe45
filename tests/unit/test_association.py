"""Tests for the Cramér's V association engine."""

import numpy as np
import pandas as pd
import pytest

from guestmap.association import (
    REASON_LOW_SAMPLE,
    REASON_NO_VARIATION,
    AssociationConfig,
    build_contingency_table,
    classify_strength,
    compute_association_matrix,
    cramers_v,
    resolve_scope,
)
from guestmap.encoding import MISSING_VALUE
from guestmap.errors import ConfigurationError

# ========== Cramér's V ==========


@pytest.mark.unit
def test_perfect_diagonal_is_one() -> None:
    """Test a perfectly diagonal 2x2 table yields 1.0 with no continuity correction."""
    assert cramers_v(np.array([[10, 0], [0, 10]])) == pytest.approx(1.0)


@pytest.mark.unit
def test_independent_table_is_zero() -> None:
    """Test a uniform table yields 0."""
    assert cramers_v(np.array([[5, 5], [5, 5]])) == pytest.approx(0.0)


@pytest.mark.unit
def test_rectangular_table_in_range() -> None:
    """Test r x c tables with r != c stay within [0, 1]."""
    v = cramers_v(np.array([[10, 2, 3], [1, 8, 4]]))
    assert 0.0 < v <= 1.0


@pytest.mark.unit
@pytest.mark.parametrize("table", [[[1, 2, 3]], [[0, 0], [0, 0]], [1, 2]])
def test_malformed_tables_raise(table) -> None:
    """Test single-row, empty and one-dimensional tables are rejected."""
    with pytest.raises(ValueError):
        cramers_v(np.array(table))


@pytest.mark.unit
def test_contingency_table_drops_missing() -> None:
    """Test cross-tabulation uses only rows where both codes are present."""
    x = pd.Series([1, 1, 2, None, 2], dtype="Int64")
    y = pd.Series([1, 2, 2, 1, None], dtype="Int64")
    table = build_contingency_table(x, y)
    assert int(table.to_numpy().sum()) == 3
    assert table.shape == (2, 2)


@pytest.mark.unit
def test_classify_strength() -> None:
    """Test strength buckets for reporting."""
    assert classify_strength(None) == "n/a"
    assert classify_strength(0.05) == "none"
    assert classify_strength(0.2) == "weak"
    assert classify_strength(0.4) == "moderate"
    assert classify_strength(0.9) == "strong"


# ========== Matrix ==========


def _paired_rows(make_row, pairs):
    return [
        make_row(f"u{i:02d}", zodiac=z, gender=g)
        for i, (z, g) in enumerate(pairs)
    ]


@pytest.mark.unit
def test_matrix_is_square_and_symmetric(make_row, make_table) -> None:
    """Test the matrix has a 1.0 diagonal and equal mirrored cells."""
    pairs = [(1, 1)] * 5 + [(2, 2)] * 5 + [(1, 2)] * 2
    table = make_table(_paired_rows(make_row, pairs))
    config = AssociationConfig(scope=["zodiac", "gender"], min_sample_size=5)

    result = compute_association_matrix(table, config)

    assert result.variables == ["zodiac", "gender"]
    assert result.value("zodiac", "zodiac") == 1.0
    assert result.value("gender", "gender") == 1.0
    v = result.value("zodiac", "gender")
    assert v == result.value("gender", "zodiac")
    assert 0.0 < v < 1.0
    assert result.diagnostics == []


@pytest.mark.unit
def test_perfect_association_through_matrix(make_row, make_table) -> None:
    """Test perfectly aligned variables score 1.0."""
    pairs = [(1, 1)] * 10 + [(2, 2)] * 10
    table = make_table(_paired_rows(make_row, pairs))
    result = compute_association_matrix(table, AssociationConfig(scope=["zodiac", "gender"]))
    assert result.value("zodiac", "gender") == pytest.approx(1.0)


@pytest.mark.unit
def test_low_sample_cell_is_none(make_row, make_table) -> None:
    """Test pairs under the minimum sample are None with a diagnostic."""
    pairs = [(1, 1), (2, 2), (1, None), (None, 2), (2, 1)]
    table = make_table(_paired_rows(make_row, pairs))
    result = compute_association_matrix(table, AssociationConfig(scope=["zodiac", "gender"], min_sample_size=5))

    assert result.value("zodiac", "gender") is None
    assert result.value("gender", "zodiac") is None
    assert [d.to_row() for d in result.diagnostics] == [
        {"variable_a": "zodiac", "variable_b": "gender", "n": 3, "reason": REASON_LOW_SAMPLE}
    ]


@pytest.mark.unit
def test_no_variation_cell_is_none(make_row, make_table) -> None:
    """Test a variable with a single observed code yields None, not 0."""
    pairs = [(1, 1), (1, 2), (1, 1), (1, 2), (1, 1), (1, 2)]
    table = make_table(_paired_rows(make_row, pairs))
    result = compute_association_matrix(table, AssociationConfig(scope=["zodiac", "gender"]))

    assert result.value("zodiac", "gender") is None
    assert result.diagnostics[0].reason == REASON_NO_VARIATION
    assert result.diagnostics[0].sample_size == 6


@pytest.mark.unit
def test_one_bad_pair_does_not_abort_matrix(make_row, make_table) -> None:
    """Test other cells are computed when one pair is skipped."""
    rows = [
        make_row(f"u{i}", zodiac=1 + i % 2, gender=1 + i % 2, role=1)
        for i in range(10)
    ]
    result = compute_association_matrix(
        make_table(rows), AssociationConfig(scope=["zodiac", "gender", "role"])
    )

    assert result.value("zodiac", "gender") == pytest.approx(1.0)
    assert result.value("zodiac", "role") is None
    assert result.value("gender", "role") is None
    assert len(result.diagnostics) == 2


@pytest.mark.unit
def test_matrix_rows_use_missing_marker(make_row, make_table) -> None:
    """Test uncomputed cells render as N/A in the association table."""
    rows = [make_row("u1", zodiac=1, gender=1), make_row("u2", zodiac=2, gender=2)]
    result = compute_association_matrix(make_table(rows), AssociationConfig(scope=["zodiac", "gender"]))

    matrix = result.matrix_rows()
    assert matrix[0] == {"variable": "zodiac", "zodiac": 1.0, "gender": MISSING_VALUE}
    assert matrix[1]["variable"] == "gender"
    assert np.isnan(result.to_frame().loc["zodiac", "gender"])


@pytest.mark.unit
def test_interest_fields_are_separate_variables(make_row, make_table) -> None:
    """Test interest slots cross as individual columns."""
    rows = [make_row(f"u{i}", interests=(1 + i % 2, 1 + i % 2)) for i in range(8)]
    result = compute_association_matrix(
        make_table(rows), AssociationConfig(scope=["interest_1", "interest_2"])
    )
    assert result.value("interest_1", "interest_2") == pytest.approx(1.0)


# ========== Scope validation ==========


@pytest.mark.unit
@pytest.mark.parametrize("scope", [
    ["zodiac", "star_sign"],
    ["zodiac", "zodiac"],
    ["zodiac", "know_score"],
])
def test_invalid_scope_raises(scope, make_row, make_table) -> None:
    """Test unknown, duplicate and non-categorical scope keys are configuration errors."""
    table = make_table([make_row("u1", zodiac=1)])
    with pytest.raises(ConfigurationError):
        compute_association_matrix(table, AssociationConfig(scope=scope))


@pytest.mark.unit
def test_config_from_dict() -> None:
    """Test AssociationConfig reads the association section."""
    config = AssociationConfig.from_config({"association": {"scope": ["zodiac"], "min_sample_size": 8}})
    assert config.scope == ["zodiac"]
    assert config.min_sample_size == 8


@pytest.mark.unit
def test_default_scope_is_valid(make_row, make_table) -> None:
    """Test the default scope covers real categorical columns."""
    result = compute_association_matrix(make_table([make_row("u1")]))
    assert len(result.variables) == 13
    assert all(d.reason == REASON_LOW_SAMPLE for d in result.diagnostics)


@pytest.mark.unit
def test_variable_key_expands_to_interest_slots(make_row, make_table) -> None:
    """Test the shared interest key crosses each interest slot as its own variable."""
    rows = [make_row(f"u{i}", interests=(1 + i % 2, 1 + i % 2, 3), zodiac=1 + i % 2) for i in range(8)]
    result = compute_association_matrix(make_table(rows), AssociationConfig(scope=["zodiac", "interest"]))

    assert result.variables == ["zodiac", "interest_1", "interest_2", "interest_3"]
    assert result.value("zodiac", "interest_1") == pytest.approx(1.0)
    assert result.value("interest_1", "interest_3") is None
    assert [r["variable"] for r in result.matrix_rows()] == result.variables


@pytest.mark.unit
def test_resolve_scope() -> None:
    """Test column keys pass through and variable keys expand in schema order."""
    field_to_variable = {"zodiac": "zodiac", "interest_1": "interest", "interest_2": "interest"}
    assert resolve_scope(["interest", "zodiac"], field_to_variable) == ["interest_1", "interest_2", "zodiac"]
    assert resolve_scope(["interest_2"], field_to_variable) == ["interest_2"]


@pytest.mark.unit
def test_variable_key_overlapping_slot_raises(make_row, make_table) -> None:
    """Test a variable key plus one of its own slots is a duplicate."""
    table = make_table([make_row("u1", zodiac=1)])
    with pytest.raises(ConfigurationError, match="interest_1"):
        compute_association_matrix(table, AssociationConfig(scope=["interest", "interest_1"]))
