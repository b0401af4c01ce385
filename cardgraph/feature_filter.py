"""Significance filter: keep only features that can tell contacts apart.

Most extracted relationship features are useless for a given user: a
"hasEmail" flag that every card carries, a "totalGifts" count that is zero
for everybody, a meeting-duration average only three contacts have. This
module decides, per feature key, whether the feature is *significant* and
ranks the survivors by importance.

Algorithm (per feature key, over the union of keys of all contacts):

    1. Gather the usable values. No usable value at all -> excluded
       ("no data"); no statistics are computed for that key.
    2. Compute FeatureStats and coverage = contacts with a value / contacts.
    3. The first matching rule wins:
         a. coverage < min_data_coverage          -> "coverage too low"
         b. exactly one distinct value            -> "constant feature"
         c. key starts with "is" or "has": treated as a 0/1 flag. The
            dominant ratio max(mean, 1 - mean) above 0.9 -> "skewed
            boolean"; otherwise significant with a fixed importance of
            0.5, skipping the CV rule.
         d. cv < min_coefficient_of_variation     -> "low variance"
         e. (only with enforce_min_entropy) entropy < min_entropy
                                                  -> "low entropy"
         f. significant, with
                importance = min(cv, 2) * 0.3 + entropy * 0.2
                             + coverage * 0.2 + 0.3 (high-priority keys)
    4. Significant keys are sorted by importance, descending, with ties
       kept in first-seen order.
    5. Every contact gets a reduced vector holding only the significant
       keys it actually had. Missing values stay missing.

min_entropy is part of the configuration but does not gate exclusion by
default; entropy only feeds the importance score. enforce_min_entropy
turns it into an extra rule after the CV check.

The filter never raises for well-formed vectors and is deterministic:
identical input and configuration give identical output.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

from cardgraph.base import FeatureVector, as_feature_vectors
from cardgraph.feature_stats import FeatureStats, compute_stats, usable_values
from cardgraph.log import get_logger

logger = get_logger(__name__)

REASON_NO_DATA = "no data"
REASON_LOW_COVERAGE = "coverage too low"
REASON_CONSTANT = "constant feature"
REASON_SKEWED_BOOLEAN = "skewed boolean"
REASON_LOW_VARIANCE = "low variance"
REASON_LOW_ENTROPY = "low entropy"

BOOLEAN_PREFIXES = ("is", "has")
BOOLEAN_DOMINANT_RATIO = 0.9
BOOLEAN_IMPORTANCE = 0.5

HIGH_PRIORITY_FEATURES = (
    "totalMeetings",
    "meetingsLast30Days",
    "daysSinceLastMeeting",
    "totalMemos",
    "totalGifts",
    "totalFacts",
    "isFavorite",
)
HIGH_PRIORITY_BONUS = 0.3


@dataclass(frozen=True)
class FilterConfig:
    """Thresholds for the significance filter."""

    min_coefficient_of_variation: float = 0.3
    min_entropy: float = 0.5
    min_data_coverage: float = 0.3
    enforce_min_entropy: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class FilterDecision:
    """Outcome of the filter for one feature key.

    ``reason`` is one of the REASON_* codes when the feature is excluded,
    and ``detail`` a human-readable explanation with the offending numbers.
    ``importance`` is only set for significant features.
    """

    key: str
    significant: bool
    reason: str | None = None
    detail: str | None = None
    importance: float | None = None
    stats: FeatureStats | None = None

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "significant": self.significant,
            "reason": self.reason,
            "detail": self.detail,
            "importance": self.importance,
            "stats": self.stats.to_dict() if self.stats is not None else None,
        }


@dataclass
class FilterResult:
    """Everything the filter derived from one run."""

    filtered_features: list[FeatureVector] = field(default_factory=list)
    significant_features: list[str] = field(default_factory=list)
    feature_stats: dict[str, FeatureStats] = field(default_factory=dict)
    decisions: dict[str, FilterDecision] = field(default_factory=dict)
    excluded_features: list[FilterDecision] = field(default_factory=list)
    summary: dict = field(default_factory=dict)

    def importance(self, key: str) -> float | None:
        decision = self.decisions.get(key)
        return decision.importance if decision is not None else None

    def to_dict(self) -> dict:
        return {
            "filtered_features": [v.to_dict() for v in self.filtered_features],
            "significant_features": list(self.significant_features),
            "feature_stats": {k: s.to_dict() for k, s in self.feature_stats.items()},
            "excluded_features": [d.to_dict() for d in self.excluded_features],
            "importance": {k: self.decisions[k].importance for k in self.significant_features},
            "summary": dict(self.summary),
        }


def is_boolean_key(key: str) -> bool:
    """Feature keys following the isX / hasX convention are 0/1 flags."""
    return key.startswith(BOOLEAN_PREFIXES)


def feature_importance(key: str, stats: FeatureStats) -> float:
    """Relative importance of a numeric feature that passed every rule."""
    importance = min(stats.cv, 2.0) * 0.3
    importance += stats.entropy * 0.2
    importance += (stats.coverage or 0.0) * 0.2
    if key in HIGH_PRIORITY_FEATURES:
        importance += HIGH_PRIORITY_BONUS
    return importance


def apply_filter_criteria(key: str, stats: FeatureStats, config: FilterConfig) -> FilterDecision:
    """Run the exclusion rules for one key whose stats carry coverage."""
    coverage = stats.coverage or 0.0

    if coverage < config.min_data_coverage:
        return FilterDecision(
            key, False, REASON_LOW_COVERAGE,
            f"coverage {coverage:.1%} < {config.min_data_coverage:.1%}",
            stats=stats,
        )

    if stats.unique_values == 1:
        return FilterDecision(
            key, False, REASON_CONSTANT,
            f"every contact has the same value ({stats.mean:g})",
            stats=stats,
        )

    if is_boolean_key(key):
        # mean of a 0/1 column is the fraction of contacts with the flag set
        dominant_ratio = max(stats.mean, 1.0 - stats.mean)
        if dominant_ratio > BOOLEAN_DOMINANT_RATIO:
            return FilterDecision(
                key, False, REASON_SKEWED_BOOLEAN,
                f"{dominant_ratio:.1%} of contacts share the same value",
                stats=stats,
            )
        return FilterDecision(key, True, importance=BOOLEAN_IMPORTANCE, stats=stats)

    if stats.cv < config.min_coefficient_of_variation:
        return FilterDecision(
            key, False, REASON_LOW_VARIANCE,
            f"CV={stats.cv:.3f} < {config.min_coefficient_of_variation}",
            stats=stats,
        )

    if config.enforce_min_entropy and stats.entropy < config.min_entropy:
        return FilterDecision(
            key, False, REASON_LOW_ENTROPY,
            f"entropy={stats.entropy:.3f} < {config.min_entropy}",
            stats=stats,
        )

    return FilterDecision(key, True, importance=feature_importance(key, stats), stats=stats)


def collect_feature_keys(vectors) -> list[str]:
    """Union of feature keys across vectors, in first-seen order."""
    keys = {}
    for vec in vectors:
        for key in vec.features:
            keys.setdefault(key, None)
    return list(keys)


def filter_significant_features(vectors, config: FilterConfig | None = None) -> FilterResult:
    """Select the significant features of a contact population.

    Args:
        vectors: FeatureVector objects (or dicts accepted by
            FeatureVector.from_dict). Never mutated.
        config: Filter thresholds. Defaults to FilterConfig().

    Returns:
        FilterResult with reduced per-contact vectors, the ranked list of
        significant keys, stats for every key that had data, a decision
        for every key, the exclusions in evaluation order, and a summary.
    """
    config = config or FilterConfig()
    vectors = as_feature_vectors(vectors)

    if not vectors:
        return FilterResult(summary=_summary(0, 0, 0, config))

    total = len(vectors)
    keys = collect_feature_keys(vectors)

    feature_stats: dict[str, FeatureStats] = {}
    decisions: dict[str, FilterDecision] = {}
    excluded: list[FilterDecision] = []
    significant: list[FilterDecision] = []

    for key in keys:
        values = usable_values(vectors, key)
        if not values:
            decision = FilterDecision(key, False, REASON_NO_DATA, "no contact has a usable value")
            decisions[key] = decision
            excluded.append(decision)
            continue

        stats = compute_stats(values).with_coverage(len(values) / total)
        feature_stats[key] = stats

        decision = apply_filter_criteria(key, stats, config)
        decisions[key] = decision
        if decision.significant:
            significant.append(decision)
        else:
            excluded.append(decision)

    significant.sort(key=lambda d: d.importance, reverse=True)
    ranked = [d.key for d in significant]

    filtered = [
        vec.with_features({k: vec.features[k] for k in ranked if k in vec.features})
        for vec in vectors
    ]

    logger.debug(
        "features_filtered",
        contacts=total,
        total_features=len(keys),
        significant=len(ranked),
        excluded=len(excluded),
    )

    return FilterResult(
        filtered_features=filtered,
        significant_features=ranked,
        feature_stats=feature_stats,
        decisions=decisions,
        excluded_features=excluded,
        summary=_summary(len(keys), len(ranked), len(excluded), config),
    )


def _summary(total: int, significant: int, excluded: int, config: FilterConfig) -> dict:
    return {
        "total_features": total,
        "significant_count": significant,
        "excluded_count": excluded,
        "filter_criteria": config.to_dict(),
    }
