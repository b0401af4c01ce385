"""Descriptive statistics for one feature column.

Given the usable values of a single feature key across contacts, computes
the dispersion and diversity measures the significance filter decides on:

    Location and spread:
        Mean, population variance (divide by N, not N-1), standard
        deviation, coefficient of variation (std / |mean|, 0 when the mean
        is 0), min, max and range.

    Order statistics:
        Q1, median and Q3 by plain order-statistic indexing: sort
        ascending and take the element at floor(N * p). No interpolation,
        so every quartile is an observed value. IQR = Q3 - Q1.

    Diversity:
        Number of distinct values and normalized Shannon entropy. Values
        are treated as discrete categories even when numeric: a frequency
        table over exact values gives the entropy in bits, which is divided
        by log2(distinct values) to land in [0, 1]. A single distinct value
        has entropy 0 by definition.

Coverage (the fraction of contacts that carry a usable value) is a
property of the whole population, not of the column, so it is left as
None here and filled in by the filter.

All functions are pure. Calling compute_stats() on an empty column is a
contract violation and raises ValueError.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass, replace

import numpy as np


@dataclass(frozen=True)
class FeatureStats:
    """Descriptive statistics of one feature column."""

    count: int
    mean: float
    std_dev: float
    variance: float
    cv: float
    min: float
    max: float
    range: float
    unique_values: int
    entropy: float
    q1: float
    median: float
    q3: float
    iqr: float
    coverage: float | None = None

    def with_coverage(self, coverage: float) -> "FeatureStats":
        return replace(self, coverage=float(coverage))

    def to_dict(self) -> dict:
        return asdict(self)


def is_usable_value(value) -> bool:
    """True for finite numbers and bools; False for None, NaN, inf, huge ints, strings, etc."""
    if isinstance(value, (bool, np.bool_)):
        return True
    if isinstance(value, (int, float, np.integer, np.floating)):
        try:
            return bool(np.isfinite(float(value)))
        except OverflowError:
            # ints beyond float range
            return False
    return False


def usable_values(vectors, key: str) -> list[float]:
    """Collect the usable values of ``key`` across vectors, in input order."""
    values = []
    for vec in vectors:
        val = vec.features.get(key)
        if is_usable_value(val):
            values.append(float(val))
    return values


def normalized_entropy(samples) -> float:
    """Shannon entropy over exact sample values, normalized to [0, 1].

    Returns 0.0 when fewer than two distinct values exist.
    """
    counts = Counter(float(v) for v in samples)
    n = sum(counts.values())
    if n == 0 or len(counts) < 2:
        return 0.0
    p = np.array(list(counts.values()), dtype=np.float64) / n
    entropy = float(-np.sum(p * np.log2(p)))
    return entropy / float(np.log2(len(counts)))


def compute_stats(samples) -> FeatureStats:
    """Compute descriptive statistics for a non-empty column of samples.

    Args:
        samples: Sequence of usable numeric values (bools count as 0/1).

    Returns:
        FeatureStats with coverage left as None.

    Raises:
        ValueError: If ``samples`` is empty.
    """
    arr = np.asarray([float(v) for v in samples], dtype=np.float64)
    n = len(arr)
    if n == 0:
        raise ValueError("compute_stats() requires at least one sample")

    mean = float(np.mean(arr))
    variance = float(np.mean((arr - mean) ** 2))
    std_dev = float(np.sqrt(variance))
    cv = std_dev / abs(mean) if mean != 0 else 0.0

    ordered = np.sort(arr)
    q1 = float(ordered[int(n * 0.25)])
    median = float(ordered[int(n * 0.5)])
    q3 = float(ordered[int(n * 0.75)])

    lo = float(ordered[0])
    hi = float(ordered[-1])

    return FeatureStats(
        count=n,
        mean=mean,
        std_dev=std_dev,
        variance=variance,
        cv=cv,
        min=lo,
        max=hi,
        range=hi - lo,
        unique_values=len(set(arr.tolist())),
        entropy=normalized_entropy(arr.tolist()),
        q1=q1,
        median=median,
        q3=q3,
        iqr=q3 - q1,
    )


def feature_distribution(vectors, key: str, n_bins: int = 10) -> dict:
    """Build a histogram-ready view of one feature across contacts.

    Only contacts with a usable value for ``key`` take part. Bins are
    equal-width over [min, max]; a zero range falls back to a bin width of
    1 so every value lands in the first bin. The maximum value is clamped
    into the last bin.

    Args:
        vectors: FeatureVector objects.
        key: Feature key to inspect.
        n_bins: Number of histogram bins.

    Returns:
        Dict with:
            "feature_key": str,
            "values": [{"entity_id", "name", "value"}] sorted by value descending,
            "histogram": {"bins": left edges, "counts": per-bin counts, "bin_width": float},
            "stats": FeatureStats of the column as a dict.

    Raises:
        ValueError: If no contact has a usable value, or n_bins < 1.
    """
    if n_bins < 1:
        raise ValueError(f"n_bins must be >= 1, got {n_bins}")

    items = []
    for vec in vectors:
        val = vec.features.get(key)
        if is_usable_value(val):
            items.append({"entity_id": vec.entity_id, "name": vec.name, "value": float(val)})
    if not items:
        raise ValueError(f"No usable values for feature {key!r}")

    values = np.array([item["value"] for item in items], dtype=np.float64)
    lo = float(np.min(values))
    hi = float(np.max(values))
    bin_width = (hi - lo) / n_bins or 1.0

    idx = np.floor((values - lo) / bin_width).astype(int)
    idx = np.clip(idx, 0, n_bins - 1)
    counts = np.bincount(idx, minlength=n_bins)

    return {
        "feature_key": key,
        "values": sorted(items, key=lambda item: item["value"], reverse=True),
        "histogram": {
            "bins": [lo + i * bin_width for i in range(n_bins)],
            "counts": [int(c) for c in counts],
            "bin_width": bin_width,
        },
        "stats": compute_stats(values).to_dict(),
    }
