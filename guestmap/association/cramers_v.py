"""
Pairwise association strength between categorical variables.

For every unordered pair of scoped variables, a contingency table is built
over the rows where both codes are present, and Cramér's V is computed from
the Pearson chi-square statistic.

Cramér's V Formula:
    chi2 = sum((observed - expected)^2 / expected)
    expected = row_total * col_total / n
    phi2 = chi2 / n
    V = sqrt(phi2 / min(r - 1, c - 1)), clipped to [0, 1]

Cells that cannot be computed (too few rows, no variation, malformed
table) hold None instead of a number, so they are never confused with a
genuine V of 0. Each one is listed in the diagnostics.
"""

import logging
from dataclasses import dataclass, field
from itertools import combinations
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.stats import chi2_contingency

from ..data_loading.schema import CATEGORICAL_FIELDS
from ..encoding import FeatureTable, MISSING_VALUE
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

REASON_LOW_SAMPLE = "low_sample"
REASON_NO_VARIATION = "no_variation"

DEFAULT_SCOPE: Tuple[str, ...] = (
    "age_range", "education", "ethnicity", "gender", "orientation",
    "industry", "role",
    "known_from", "zodiac", "music_pref",
    "interest_1", "interest_2", "interest_3",
)


@dataclass
class AssociationConfig:
    """
    Configuration for the association engine.

    Attributes:
        scope: Categorical feature columns to cross, in matrix order
        min_sample_size: Minimum joint non-missing rows for a numeric cell
    """
    scope: List[str] = field(default_factory=lambda: list(DEFAULT_SCOPE))
    min_sample_size: int = 5

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "AssociationConfig":
        """Create from main config dictionary."""
        assoc_config = config.get("association", {})
        return cls(
            scope=list(assoc_config.get("scope", DEFAULT_SCOPE)),
            min_sample_size=int(assoc_config.get("min_sample_size", 5))
        )


@dataclass(frozen=True)
class AssociationCell:
    """Symmetric matrix entry. value is None when it was not computed."""
    variable_a: str
    variable_b: str
    value: Optional[float]
    sample_size: int
    warning: Optional[str] = None


@dataclass(frozen=True)
class AssociationDiagnostic:
    """A pair that was skipped, with its sample size and reason."""
    variable_a: str
    variable_b: str
    sample_size: int
    reason: str

    def to_row(self) -> Dict[str, Any]:
        return {
            "variable_a": self.variable_a,
            "variable_b": self.variable_b,
            "n": self.sample_size,
            "reason": self.reason
        }


@dataclass
class AssociationResult:
    """
    Square, symmetric association matrix plus diagnostics.

    Attributes:
        variables: Row/column order
        cells: (a, b) -> cell, both orientations present
        diagnostics: Pairs that were not computed
    """
    variables: List[str]
    cells: Dict[Tuple[str, str], AssociationCell]
    diagnostics: List[AssociationDiagnostic]

    def value(self, a: str, b: str) -> Optional[float]:
        return self.cells[(a, b)].value

    def to_frame(self) -> pd.DataFrame:
        """Matrix as a DataFrame; uncomputed cells are NaN."""
        data = [
            [np.nan if self.cells[(a, b)].value is None else self.cells[(a, b)].value for b in self.variables]
            for a in self.variables
        ]
        return pd.DataFrame(data, index=self.variables, columns=self.variables)

    def matrix_rows(self, decimals: int = 6) -> List[Dict[str, Any]]:
        """Rows for the association table; uncomputed cells use the N/A marker."""
        rows = []
        for a in self.variables:
            row: Dict[str, Any] = {"variable": a}
            for b in self.variables:
                v = self.cells[(a, b)].value
                row[b] = MISSING_VALUE if v is None else round(v, decimals)
            rows.append(row)
        return rows

    def diagnostic_rows(self) -> List[Dict[str, Any]]:
        return [d.to_row() for d in self.diagnostics]


def build_contingency_table(x: pd.Series, y: pd.Series) -> pd.DataFrame:
    """
    Cross-tabulate two code columns over rows where both are present.

    Args:
        x: Codes for variable X (nullable)
        y: Codes for variable Y (nullable)

    Returns:
        r x c DataFrame of counts over the codes observed in the joint subset
    """
    joint = pd.DataFrame({"x": x, "y": y}).dropna()
    if joint.empty:
        return pd.DataFrame(dtype="int64")
    return pd.crosstab(joint["x"], joint["y"])


def cramers_v(table: np.ndarray) -> float:
    """
    Compute Cramér's V from an r x c table of counts.

    Uses the uncorrected Pearson chi-square (no Yates continuity
    correction), so a perfectly diagonal 2x2 table yields exactly 1.0.

    Args:
        table: 2D array of counts with r >= 2 and c >= 2

    Returns:
        V in [0, 1]

    Raises:
        ValueError: If the table is not at least 2x2 or is empty
    """
    table = np.asarray(table, dtype=float)
    if table.ndim != 2 or min(table.shape) < 2:
        raise ValueError(f"Contingency table must be at least 2x2, got shape {table.shape}")
    n = table.sum()
    if n <= 0:
        raise ValueError("Contingency table is empty")

    chi2, _, _, _ = chi2_contingency(table, correction=False)
    phi2 = chi2 / n
    v = np.sqrt(phi2 / (min(table.shape) - 1))
    return float(np.clip(v, 0.0, 1.0))


def resolve_scope(scope: Sequence[str], field_to_variable: Dict[str, str]) -> List[str]:
    """
    Resolve scope keys to categorical feature columns.

    A feature column stands for itself. A dictionary variable shared by
    several columns ("interest") expands to those columns in schema order,
    so each interest slot is crossed as its own variable.

    Args:
        scope: Configured keys, in matrix order
        field_to_variable: Categorical column -> dictionary variable key

    Returns:
        Feature columns in matrix order

    Raises:
        ConfigurationError: On unknown keys, or keys that resolve to the same
            column twice
    """
    columns: List[str] = []
    unknown = []
    for key in scope:
        if key in field_to_variable:
            columns.append(key)
            continue
        slots = [f for f, variable in field_to_variable.items() if variable == key]
        if slots:
            columns.extend(slots)
        else:
            unknown.append(key)

    if unknown:
        raise ConfigurationError(f"Unknown variable keys in association scope: {unknown}")
    duplicated = sorted({c for c in columns if columns.count(c) > 1})
    if duplicated:
        raise ConfigurationError(f"Duplicate variable keys in association scope: {duplicated}")
    return columns


def compute_association_matrix(
    table: FeatureTable,
    config: Optional[AssociationConfig] = None
) -> AssociationResult:
    """
    Compute the Cramér's V matrix over the configured scope.

    A problem with one pair only affects that cell; the rest of the matrix
    is always computed.

    Args:
        table: Encoded feature table
        config: Association configuration (defaults if None)

    Returns:
        AssociationResult with a symmetric matrix and diagnostics

    Raises:
        ConfigurationError: If the scope names unknown or duplicate variables
    """
    config = config or AssociationConfig()
    field_to_variable = {f: CATEGORICAL_FIELDS.get(f, f) for f in table.categorical_fields}
    scope = resolve_scope(config.scope, field_to_variable)

    logger.info(f"Computing association matrix for {len(scope)} variables "
                f"({len(scope) * (len(scope) - 1) // 2} pairs, min_sample_size={config.min_sample_size})")

    codes = table.codes_frame()
    cells: Dict[Tuple[str, str], AssociationCell] = {}
    diagnostics: List[AssociationDiagnostic] = []

    for variable in scope:
        n_self = int(codes[variable].notna().sum())
        cells[(variable, variable)] = AssociationCell(variable, variable, 1.0, n_self)

    for a, b in combinations(scope, 2):
        cell, diagnostic = _compute_pair(codes[a], codes[b], a, b, config.min_sample_size)
        cells[(a, b)] = cell
        cells[(b, a)] = AssociationCell(b, a, cell.value, cell.sample_size, cell.warning)
        if diagnostic is not None:
            diagnostics.append(diagnostic)

    logger.info(f"Association matrix complete: {len(diagnostics)} pairs skipped")
    return AssociationResult(variables=scope, cells=cells, diagnostics=diagnostics)


def _compute_pair(
    x: pd.Series,
    y: pd.Series,
    a: str,
    b: str,
    min_sample_size: int
) -> Tuple[AssociationCell, Optional[AssociationDiagnostic]]:
    """Compute one off-diagonal cell, degrading to None on any table problem."""
    contingency = build_contingency_table(x, y)
    n = int(contingency.to_numpy().sum()) if not contingency.empty else 0

    reason = None
    if n < min_sample_size:
        reason = REASON_LOW_SAMPLE
    elif contingency.shape[0] < 2 or contingency.shape[1] < 2:
        reason = REASON_NO_VARIATION

    if reason is None:
        try:
            value = cramers_v(contingency.to_numpy())
            return AssociationCell(a, b, value, n), None
        except ValueError as e:
            reason = f"error:{e}"
            logger.warning(f"Association {a} x {b} failed: {e}")

    logger.debug(f"Skipping association {a} x {b}: {reason} (n={n})")
    return (
        AssociationCell(a, b, None, n, warning=reason),
        AssociationDiagnostic(a, b, n, reason)
    )


def classify_strength(v: Optional[float]) -> str:
    """Classify association strength for reporting."""
    if v is None:
        return "n/a"
    if v >= 0.5:
        return "strong"
    elif v >= 0.3:
        return "moderate"
    elif v >= 0.1:
        return "weak"
    return "none"
