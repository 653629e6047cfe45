"""
Guest similarity graph construction.

Enumerates unordered guest pairs, scores each with a pluggable scoring
function, and emits either a dense symmetric matrix or a sparse top-N
edge list.

Key Design Decisions:
- Pairs are unordered and never include self-pairs
- Edges store the lexicographically smaller UID first
- Ranking ties break on counterpart UID, then on pair enumeration order,
  so identical input always gives identical output
- A failing scorer call skips that one pair; the run continues
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from ..encoding import FeatureTable, MISSING_VALUE
from ..errors import ConfigurationError, InputError, Issue, IssueKind
from .scoring import PairScore, ScoringFunction, SimilarityWeights, get_scorer

logger = logging.getLogger(__name__)

MODES = ("auto", "dense", "sparse")


@dataclass
class SimilarityConfig:
    """
    Configuration for the similarity engine.

    Attributes:
        mode: "dense", "sparse", or "auto" (dense up to dense_max_guests)
        top_n: Edges kept per guest in sparse mode
        dense_max_guests: Largest guest count that "auto" renders dense
        min_score: Sparse edges must score strictly above this
        max_pairs: Optional cap on enumerated guest pairs
        scorer: Registered scorer name
        weights: Factor weights
        decimals: Rounding applied to emitted scores
    """
    mode: str = "auto"
    top_n: int = 5
    dense_max_guests: int = 50
    min_score: float = 0.0
    max_pairs: Optional[int] = None
    scorer: str = "default"
    weights: SimilarityWeights = field(default_factory=SimilarityWeights)
    decimals: int = 6

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: On invalid mode, top_n or max_pairs
        """
        if self.mode not in MODES:
            raise ConfigurationError(f"Unknown similarity mode: {self.mode}")
        if self.top_n < 1:
            raise ConfigurationError(f"top_n must be >= 1, got {self.top_n}")
        if self.max_pairs is not None and self.max_pairs < 0:
            raise ConfigurationError(f"max_pairs must be >= 0, got {self.max_pairs}")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "SimilarityConfig":
        """
        Create from main config dictionary.

        Raises:
            ConfigurationError: If a numeric setting or weight is not a number
        """
        sim_config = config.get("similarity", {})
        weights = SimilarityWeights.from_dict(sim_config.get("weights", {}) or {})
        max_pairs = sim_config.get("max_pairs")
        try:
            return cls(
                mode=sim_config.get("mode", "auto"),
                top_n=int(sim_config.get("top_n", 5)),
                dense_max_guests=int(sim_config.get("dense_max_guests", 50)),
                min_score=float(sim_config.get("min_score", 0.0)),
                max_pairs=int(max_pairs) if max_pairs is not None else None,
                scorer=sim_config.get("scorer", "default"),
                weights=weights
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid similarity setting: {e}")

    def resolve_mode(self, n_guests: int) -> str:
        if self.mode == "auto":
            return "dense" if n_guests <= self.dense_max_guests else "sparse"
        return self.mode


@dataclass(frozen=True)
class SimilarityEdge:
    """Undirected edge with uid_a < uid_b."""
    uid_a: str
    uid_b: str
    score: float
    reasons: Tuple[str, ...]

    def to_row(self) -> Dict[str, Any]:
        return {
            "uid_a": self.uid_a,
            "uid_b": self.uid_b,
            "score": self.score,
            "reasons": ",".join(self.reasons)
        }


@dataclass
class SimilarityResult:
    """
    Output of the similarity engine.

    Attributes:
        mode: Output mode actually used
        uids: Guest order
        edges: Sparse edges (sparse mode), sorted by (uid_a, uid_b)
        matrix: Dense score matrix (dense mode); NaN where a pair was not scored
        scores: Every computed pair score, keyed by (uid_a, uid_b)
        issues: Pairs that failed to score
        truncated: Whether max_pairs cut enumeration short
    """
    mode: str
    uids: List[str]
    edges: List[SimilarityEdge] = field(default_factory=list)
    matrix: Optional[np.ndarray] = None
    scores: Dict[Tuple[str, str], PairScore] = field(default_factory=dict)
    issues: List[Issue] = field(default_factory=list)
    truncated: bool = False

    @property
    def table_name(self) -> str:
        return "similarity_matrix" if self.mode == "dense" else "similarity_edges"

    def to_rows(self) -> List[Dict[str, Any]]:
        """Rows for the similarity table in the active mode."""
        if self.mode == "dense":
            rows = []
            for i, uid in enumerate(self.uids):
                row: Dict[str, Any] = {"uid": uid}
                for j, other in enumerate(self.uids):
                    value = self.matrix[i, j]
                    row[other] = MISSING_VALUE if np.isnan(value) else float(value)
                rows.append(row)
            return rows
        return [e.to_row() for e in self.edges]


def _ordered(uid_x: str, uid_y: str) -> Tuple[str, str]:
    return (uid_x, uid_y) if uid_x < uid_y else (uid_y, uid_x)


def score_all_pairs(
    table: FeatureTable,
    config: SimilarityConfig,
    scorer: Optional[ScoringFunction] = None
) -> Tuple[List[Tuple[int, int, PairScore]], List[Issue], bool]:
    """
    Score every unordered guest pair (i < j in row order).

    Args:
        table: Encoded feature table
        config: Similarity configuration
        scorer: Scoring function (defaults to the configured one)

    Returns:
        Tuple of (scored pairs as (i, j, score), issues, truncated)
    """
    scorer = scorer or get_scorer(config.scorer)
    rows = table.rows
    n = len(rows)

    max_possible = n * (n - 1) // 2
    limit = max_possible if config.max_pairs is None else min(config.max_pairs, max_possible)
    logger.info(f"Scoring {limit} of {max_possible} guest pairs from {n} guests")

    scored: List[Tuple[int, int, PairScore]] = []
    issues: List[Issue] = []
    enumerated = 0
    truncated = False

    for i in range(n):
        if truncated:
            break
        for j in range(i + 1, n):
            if enumerated >= limit:
                truncated = True
                break
            enumerated += 1
            row_a, row_b = rows[i], rows[j]
            try:
                result = scorer(row_a, row_b, config.weights)
                score = round(float(np.clip(result.score, 0.0, 1.0)), config.decimals)
            except Exception as e:
                subject = "|".join(_ordered(row_a.uid, row_b.uid))
                logger.warning(f"Scoring failed for pair {subject}: {e}")
                issues.append(Issue(IssueKind.PAIR_FAILURE, subject, None, f"scorer error: {e}"))
                continue
            scored.append((i, j, PairScore(score, tuple(result.reasons))))

    if truncated:
        logger.warning(f"Pair enumeration capped at max_pairs={config.max_pairs}")

    return scored, issues, truncated


def top_n_edges(
    uids: List[str],
    scored: List[Tuple[int, int, PairScore]],
    top_n: int,
    min_score: float = 0.0
) -> List[SimilarityEdge]:
    """
    Select the top-N counterparts for every guest and merge into edges.

    Ranking per guest: descending score, then counterpart UID, then the
    order in which the pair was enumerated. An edge chosen by both
    endpoints appears once.

    Args:
        uids: Guest UIDs in row order
        scored: Scored pairs from score_all_pairs
        top_n: Counterparts kept per guest
        min_score: Edges must score strictly above this

    Returns:
        Deduplicated edges sorted by (uid_a, uid_b)
    """
    candidates: Dict[int, List[Tuple[float, str, int, int]]] = {i: [] for i in range(len(uids))}
    for order, (i, j, pair) in enumerate(scored):
        if pair.score <= min_score:
            continue
        candidates[i].append((-pair.score, uids[j], order, j))
        candidates[j].append((-pair.score, uids[i], order, i))

    selected: Dict[Tuple[str, str], SimilarityEdge] = {}
    for i, ranked in candidates.items():
        ranked.sort()
        for neg_score, other_uid, order, _ in ranked[:top_n]:
            key = _ordered(uids[i], other_uid)
            if key not in selected:
                selected[key] = SimilarityEdge(key[0], key[1], -neg_score, scored[order][2].reasons)

    return [selected[k] for k in sorted(selected)]


def compute_similarity(
    table: FeatureTable,
    config: Optional[SimilarityConfig] = None,
    scorer: Optional[ScoringFunction] = None
) -> SimilarityResult:
    """
    Compute the guest similarity graph.

    Args:
        table: Encoded feature table
        config: Similarity configuration (defaults if None)
        scorer: Optional scoring function overriding config.scorer

    Returns:
        SimilarityResult in dense or sparse mode

    Raises:
        ConfigurationError: On invalid configuration
        InputError: If the table repeats a UID
    """
    config = config or SimilarityConfig()
    config.validate()
    scorer = scorer or get_scorer(config.scorer)

    uids = table.uids
    duplicated = sorted({u for u in uids if uids.count(u) > 1})
    if duplicated:
        raise InputError(f"Feature table contains duplicate UIDs: {duplicated}")

    mode = config.resolve_mode(len(uids))
    scored, issues, truncated = score_all_pairs(table, config, scorer)

    scores = {_ordered(uids[i], uids[j]): pair for i, j, pair in scored}
    result = SimilarityResult(mode=mode, uids=uids, scores=scores, issues=issues, truncated=truncated)

    if mode == "dense":
        # Pairs never scored (cap or scorer failure) stay NaN, not 0
        matrix = np.full((len(uids), len(uids)), np.nan)
        np.fill_diagonal(matrix, 1.0)
        for i, j, pair in scored:
            matrix[i, j] = pair.score
            matrix[j, i] = pair.score
        result.matrix = matrix
        logger.info(f"Dense similarity matrix: {len(uids)}x{len(uids)}")
    else:
        result.edges = top_n_edges(uids, scored, config.top_n, config.min_score)
        logger.info(f"Sparse similarity graph: {len(result.edges)} edges (top_n={config.top_n})")

    return result
