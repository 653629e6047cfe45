"""
Run summary metrics.

Summarizes what a pipeline run produced:
1. Dictionary size and validity per variable
2. Feature coverage (valid / N/A / missing) per categorical field
3. Association strength distribution and skipped pairs
4. Similarity score distribution

These are descriptive statistics for the run log and console only.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from ..association import AssociationResult, classify_strength
from ..similarity import SimilarityResult

logger = logging.getLogger(__name__)


@dataclass
class ScoreDistributionStats:
    """Statistics about score distribution."""
    count: int
    mean: float
    std: float
    min: float
    max: float
    quantiles: Dict[str, float]  # e.g., {"p10": 0.2, "p50": 0.5, "p90": 0.8}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": int(self.count),
            "mean": float(self.mean),
            "std": float(self.std),
            "min": float(self.min),
            "max": float(self.max),
            "quantiles": {k: float(v) for k, v in self.quantiles.items()}
        }


def compute_score_distribution_stats(
    scores: np.ndarray,
    quantiles: List[float] = [0.1, 0.25, 0.5, 0.75, 0.9]
) -> Optional[ScoreDistributionStats]:
    """
    Compute distribution statistics for scores.

    Args:
        scores: Array of scores
        quantiles: Quantile values to compute (default: p10, p25, p50, p75, p90)

    Returns:
        ScoreDistributionStats instance, or None for an empty array
    """
    scores = np.asarray(scores, dtype=float)
    if scores.size == 0:
        return None

    quantile_dict = {
        f"p{int(q * 100)}": float(np.percentile(scores, q * 100))
        for q in quantiles
    }

    return ScoreDistributionStats(
        count=int(scores.size),
        mean=float(np.mean(scores)),
        std=float(np.std(scores)),
        min=float(np.min(scores)),
        max=float(np.max(scores)),
        quantiles=quantile_dict
    )


def association_strength_counts(result: AssociationResult) -> Dict[str, int]:
    """Count off-diagonal pairs by strength class (each unordered pair once)."""
    counts = {"strong": 0, "moderate": 0, "weak": 0, "none": 0, "n/a": 0}
    variables = result.variables
    for i, a in enumerate(variables):
        for b in variables[i + 1:]:
            counts[classify_strength(result.value(a, b))] += 1
    return counts


@dataclass
class RunReport:
    """
    Summary of one pipeline run.

    Contains per-stage counts and the similarity score distribution.
    """
    n_records: int
    dictionary_counts: Dict[str, Dict[str, int]]
    feature_counts: Dict[str, Dict[str, int]]
    association_strengths: Dict[str, int] = field(default_factory=dict)
    association_skipped: int = 0
    similarity_mode: Optional[str] = None
    similarity_stats: Optional[ScoreDistributionStats] = None
    n_edges: int = 0

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "n_records": self.n_records,
            "dictionary_counts": self.dictionary_counts,
            "feature_counts": self.feature_counts,
            "association_strengths": self.association_strengths,
            "association_skipped": self.association_skipped,
            "similarity_mode": self.similarity_mode,
            "n_edges": self.n_edges
        }
        if self.similarity_stats:
            result["similarity_stats"] = self.similarity_stats.to_dict()
        return result

    def summary(self) -> str:
        """Generate text summary of the report."""
        lines = [
            "Run Report",
            "=" * 50,
            "",
            f"Eligible records: {self.n_records}",
            "",
            "Dictionary:",
        ]
        for key, c in self.dictionary_counts.items():
            lines.append(f"  {key}: {c['entries']} entries ({c['invalid']} invalid)")

        if self.association_strengths:
            lines.extend(["", "Association strengths:"])
            for name, count in self.association_strengths.items():
                lines.append(f"  {name}: {count}")
            lines.append(f"  skipped pairs: {self.association_skipped}")

        if self.similarity_mode:
            lines.extend(["", f"Similarity ({self.similarity_mode}):"])
            if self.similarity_mode == "sparse":
                lines.append(f"  Edges: {self.n_edges}")
            if self.similarity_stats:
                lines.extend([
                    f"  Mean: {self.similarity_stats.mean:.4f}",
                    f"  Std:  {self.similarity_stats.std:.4f}",
                    f"  Max:  {self.similarity_stats.max:.4f}",
                ])

        return "\n".join(lines)


def create_run_report(
    n_records: int,
    dictionary_counts: Dict[str, Dict[str, int]],
    feature_counts: Dict[str, Dict[str, int]],
    association: Optional[AssociationResult] = None,
    similarity: Optional[SimilarityResult] = None
) -> RunReport:
    """
    Create a run report from stage outputs.

    Association and similarity are optional because a configuration error
    in either stage leaves it without a result.
    """
    report = RunReport(
        n_records=n_records,
        dictionary_counts=dictionary_counts,
        feature_counts=feature_counts
    )

    if association is not None:
        report.association_strengths = association_strength_counts(association)
        report.association_skipped = len(association.diagnostics)

    if similarity is not None:
        report.similarity_mode = similarity.mode
        report.similarity_stats = compute_score_distribution_stats(
            np.array([s.score for s in similarity.scores.values()])
        )
        report.n_edges = len(similarity.edges)

    return report
