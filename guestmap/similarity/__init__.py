"""Similarity module for the guest compatibility graph."""

from .scoring import (
    default_score_guest_pair,
    interests_only_score,
    jaccard_similarity,
    get_scorer,
    PairScore,
    ScoringFunction,
    SimilarityWeights,
    MATCH_BONUSES
)
from .engine import (
    compute_similarity,
    score_all_pairs,
    top_n_edges,
    SimilarityConfig,
    SimilarityEdge,
    SimilarityResult
)

__all__ = [
    "default_score_guest_pair",
    "interests_only_score",
    "jaccard_similarity",
    "get_scorer",
    "PairScore",
    "ScoringFunction",
    "SimilarityWeights",
    "MATCH_BONUSES",
    "compute_similarity",
    "score_all_pairs",
    "top_n_edges",
    "SimilarityConfig",
    "SimilarityEdge",
    "SimilarityResult"
]
