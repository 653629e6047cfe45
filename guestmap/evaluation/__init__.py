"""Evaluation module for run summaries."""

from .metrics import (
    compute_score_distribution_stats,
    association_strength_counts,
    ScoreDistributionStats,
    RunReport,
    create_run_report
)

__all__ = [
    "compute_score_distribution_stats",
    "association_strength_counts",
    "ScoreDistributionStats",
    "RunReport",
    "create_run_report"
]
