"""Pairwise correlation among significant features.

Two features that move together carry largely the same information about
a relationship (e.g. "totalMeetings" and "meetingsLast90Days"). This
module reports such pairs so a caller can drop or combine redundant
features before scoring.

For every unordered pair of significant keys, only contacts carrying a
usable value for *both* keys take part (pairwise-complete observations).
Pairs with fewer than five such contacts are skipped silently: a Pearson
coefficient over three or four points is mostly noise.

Reported pairs have |r| > 0.5 and are labelled:
    "strong"  for |r| > 0.7
    "medium"  otherwise

The cost is O(k^2 * n) for k significant keys and n contacts, which is
fine because filtering leaves k in the tens.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

import numpy as np

from cardgraph.base import as_feature_vectors
from cardgraph.feature_stats import is_usable_value

STRENGTH_STRONG = "strong"
STRENGTH_MEDIUM = "medium"


@dataclass(frozen=True)
class CorrelationPair:
    """A reported correlation between two features."""

    feature_a: str
    feature_b: str
    correlation: float
    strength: str
    n_observations: int

    def to_dict(self) -> dict:
        return asdict(self)


def pearson_correlation(x, y) -> float:
    """Pearson correlation coefficient of two equal-length samples.

    Returns 0.0 for empty input or when either sample has zero variance,
    where the coefficient is undefined.
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if len(x) == 0 or len(x) != len(y):
        return 0.0

    dx = x - np.mean(x)
    dy = y - np.mean(y)
    denom = float(np.sqrt(np.sum(dx * dx) * np.sum(dy * dy)))
    if denom == 0.0:
        return 0.0
    r = float(np.sum(dx * dy) / denom)
    # Rounding can push |r| a hair past 1 for perfectly collinear data.
    return float(np.clip(r, -1.0, 1.0))


def correlation_strength(r: float, strong_threshold: float = 0.7) -> str:
    return STRENGTH_STRONG if abs(r) > strong_threshold else STRENGTH_MEDIUM


def analyze_feature_correlations(
    vectors,
    significant_features: list[str],
    min_observations: int = 5,
    report_threshold: float = 0.5,
    strong_threshold: float = 0.7,
) -> list[CorrelationPair]:
    """Find strongly co-varying pairs among the significant features.

    Args:
        vectors: FeatureVector objects (typically FilterResult.filtered_features).
        significant_features: Ranked significant keys. Pair order follows
            this list: feature_a always precedes feature_b in it.
        min_observations: Minimum pairwise-complete contacts for a pair.
        report_threshold: Pairs with |r| at or below this are not reported.
        strong_threshold: |r| above this is labelled "strong".

    Returns:
        CorrelationPair list sorted by |r| descending. Empty when fewer
        than two significant features exist.
    """
    keys = list(significant_features)
    if len(keys) < 2:
        return []
    vectors = as_feature_vectors(vectors)

    pairs = []
    for i in range(len(keys)):
        for j in range(i + 1, len(keys)):
            key_a, key_b = keys[i], keys[j]
            xs, ys = [], []
            for vec in vectors:
                a = vec.features.get(key_a)
                b = vec.features.get(key_b)
                if is_usable_value(a) and is_usable_value(b):
                    xs.append(float(a))
                    ys.append(float(b))

            if len(xs) < min_observations:
                continue

            r = pearson_correlation(xs, ys)
            if abs(r) > report_threshold:
                pairs.append(CorrelationPair(
                    feature_a=key_a,
                    feature_b=key_b,
                    correlation=r,
                    strength=correlation_strength(r, strong_threshold),
                    n_observations=len(xs),
                ))

    pairs.sort(key=lambda p: abs(p.correlation), reverse=True)
    return pairs
