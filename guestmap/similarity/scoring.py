"""
Guest-pair scoring functions.

A scoring function takes two feature rows and a weights configuration and
returns a score with the tags that explain it. The engine only depends on
this contract, so alternative scorers can be plugged in without touching
iteration or ranking.

Default Score Formula:
    jaccard = |I_A & I_B| / |I_A | I_B|   (0 if either interest set is empty)
    score = w_interest * jaccard
          + w_music            [music_pref codes match]
          + w_recent_purchase  [recent_purchase codes match]
          + w_at_worst         [at_worst codes match]
    score = min(score, 1.0)

Only non-demographic factors are used. Missing and N/A answers never
match and never count as interests.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, FrozenSet, Optional, Tuple

from ..encoding import FeatureRow
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

REASON_MUSIC = "music"
REASON_PURCHASE = "purchase"
REASON_AT_WORST = "aworst"

# Flat match bonuses: (field, weight attribute, reason tag), in tag order.
# Together with the interest slots these are the only fields scored.
MATCH_BONUSES: Tuple[Tuple[str, str, str], ...] = (
    ("music_pref", "music", REASON_MUSIC),
    ("recent_purchase", "recent_purchase", REASON_PURCHASE),
    ("at_worst", "at_worst", REASON_AT_WORST),
)


@dataclass(frozen=True)
class SimilarityWeights:
    """
    Weights for the default scorer.

    Attributes:
        interest: Multiplier on the interest Jaccard term
        music: Flat bonus for matching music preference
        recent_purchase: Flat bonus for matching recent purchase
        at_worst: Flat bonus for matching "at your worst"
    """
    interest: float = 1.0
    music: float = 0.2
    recent_purchase: float = 0.1
    at_worst: float = 0.1

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SimilarityWeights":
        """
        Create from a weights mapping.

        Raises:
            ConfigurationError: If a key is not a similarity factor, or a
                weight is not a non-negative number
        """
        allowed = set(cls.__dataclass_fields__)
        unknown = sorted(set(d) - allowed)
        if unknown:
            raise ConfigurationError(
                f"Unknown similarity factors {unknown}; allowed: {sorted(allowed)}"
            )
        weights = {}
        for name, value in d.items():
            try:
                weights[name] = float(value)
            except (TypeError, ValueError):
                raise ConfigurationError(f"Similarity weight '{name}' must be a number, got {value!r}")
            if weights[name] < 0:
                raise ConfigurationError(f"Similarity weight '{name}' must be non-negative, got {value}")
        return cls(**weights)


@dataclass(frozen=True)
class PairScore:
    """Score for one guest pair with its ordered reason tags."""
    score: float
    reasons: Tuple[str, ...] = ()


ScoringFunction = Callable[[FeatureRow, FeatureRow, SimilarityWeights], PairScore]


def jaccard_similarity(a: FrozenSet[int], b: FrozenSet[int]) -> float:
    """Jaccard similarity of two code sets; 0.0 if either set is empty."""
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def _match(a: Optional[int], b: Optional[int]) -> bool:
    return a is not None and b is not None and a == b


def default_score_guest_pair(
    row_a: FeatureRow,
    row_b: FeatureRow,
    weights: SimilarityWeights
) -> PairScore:
    """
    Default guest-pair scorer: interest Jaccard plus flat match bonuses.

    Args:
        row_a: First guest's feature row
        row_b: Second guest's feature row
        weights: Factor weights

    Returns:
        PairScore with score in [0, 1] and tags such as ("int:2", "music")
    """
    interests_a = row_a.interest_codes()
    interests_b = row_b.interest_codes()

    score = weights.interest * jaccard_similarity(interests_a, interests_b)
    reasons = []

    overlap = len(interests_a & interests_b)
    if overlap:
        reasons.append(f"int:{overlap}")

    for field_name, weight_name, tag in MATCH_BONUSES:
        if _match(row_a.answered_code(field_name), row_b.answered_code(field_name)):
            score += getattr(weights, weight_name)
            reasons.append(tag)

    return PairScore(score=min(score, 1.0), reasons=tuple(reasons))


def interests_only_score(
    row_a: FeatureRow,
    row_b: FeatureRow,
    weights: SimilarityWeights
) -> PairScore:
    """Alternative scorer that ignores the match bonuses."""
    interests_a = row_a.interest_codes()
    interests_b = row_b.interest_codes()
    overlap = len(interests_a & interests_b)
    return PairScore(
        score=min(weights.interest * jaccard_similarity(interests_a, interests_b), 1.0),
        reasons=(f"int:{overlap}",) if overlap else ()
    )


SCORERS: Dict[str, ScoringFunction] = {
    "default": default_score_guest_pair,
    "interests_only": interests_only_score,
}


def get_scorer(name: str) -> ScoringFunction:
    """
    Look up a registered scorer by name.

    Raises:
        ConfigurationError: If no scorer is registered under that name
    """
    if name not in SCORERS:
        raise ConfigurationError(f"Unknown similarity scorer: {name} (available: {sorted(SCORERS)})")
    return SCORERS[name]
