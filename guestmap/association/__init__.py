"""Association module (Cramér's V between categorical variables)."""

from .cramers_v import (
    compute_association_matrix,
    build_contingency_table,
    cramers_v,
    classify_strength,
    resolve_scope,
    AssociationConfig,
    AssociationCell,
    AssociationDiagnostic,
    AssociationResult,
    REASON_LOW_SAMPLE,
    REASON_NO_VARIATION
)

__all__ = [
    "compute_association_matrix",
    "build_contingency_table",
    "cramers_v",
    "classify_strength",
    "resolve_scope",
    "AssociationConfig",
    "AssociationCell",
    "AssociationDiagnostic",
    "AssociationResult",
    "REASON_LOW_SAMPLE",
    "REASON_NO_VARIATION"
]
