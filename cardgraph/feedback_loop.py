"""Score-quality evaluation and the bounded feature feedback loop.

A relationship graph is only useful when scores separate contacts. If the
scorer hands back 48, 52, 50, 51 for everybody, the graph is a ring of
identical nodes. evaluate_analysis_quality() diagnoses that from the
scores alone:

    LOW_VARIANCE         (high)    coefficient of variation of scores < 0.15
    LOW_GRADE_DIVERSITY  (medium)  two or fewer distinct grades
    NARROW_RANGE         (high)    max score - min score < 25
    HOMOGENEOUS_TYPES    (medium)  one relationship type covers > 80%

Quality is good when no high-severity issue is present. With fewer than
three scored contacts there is nothing to judge and another iteration is
requested.

run_feedback_loop() wires this into a bounded retry: filter features,
score, evaluate; while quality is poor and iterations remain, ask a
strategy callable for feature operations, apply them and refilter. Both
the scorer and the strategy source are injected callables; the LLM
calls behind them live outside this package.
"""

from __future__ import annotations

from collections import Counter

import numpy as np

from cardgraph.base import as_feature_vectors
from cardgraph.feature_filter import FilterConfig, FilterResult, filter_significant_features
from cardgraph.feature_operations import FeatureOperation, execute_feature_operations
from cardgraph.log import get_logger
from cardgraph.scoring import rank_entities

logger = get_logger(__name__)

SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"

MIN_SCORED_CONTACTS = 3
MIN_SCORE_CV = 0.15
MIN_DISTINCT_GRADES = 3
MIN_SCORE_RANGE = 25.0
MAX_DOMINANT_TYPE_SHARE = 0.8


def evaluate_analysis_quality(entities) -> dict:
    """Judge whether a set of scores discriminates between contacts.

    Args:
        entities: ScoredEntity records.

    Returns:
        Dict with:
            "is_good": bool -- no high-severity issue,
            "needs_iteration": bool,
            "issues": [{"type", "message", "severity"}],
            "metrics": {"cv", "std_dev", "range", "grade_count", "mean"},
        With fewer than three contacts, "reason" replaces issues/metrics.
    """
    entities = list(entities)
    if len(entities) < MIN_SCORED_CONTACTS:
        return {
            "is_good": False,
            "needs_iteration": True,
            "reason": f"only {len(entities)} scored contacts; need at least {MIN_SCORED_CONTACTS}",
            "issues": [],
            "metrics": {},
        }

    scores = np.array([e.score for e in entities], dtype=np.float64)
    mean = float(np.mean(scores))
    std_dev = float(np.std(scores))
    cv = std_dev / mean if mean > 0 else 0.0
    grades = {e.grade for e in entities}
    lo, hi = float(np.min(scores)), float(np.max(scores))
    score_range = hi - lo

    issues = []
    if cv < MIN_SCORE_CV:
        issues.append({
            "type": "LOW_VARIANCE",
            "message": f"score spread too small (CV={cv * 100:.1f}%)",
            "severity": SEVERITY_HIGH,
        })
    if len(grades) < MIN_DISTINCT_GRADES:
        issues.append({
            "type": "LOW_GRADE_DIVERSITY",
            "message": f"only {len(grades)} distinct grades",
            "severity": SEVERITY_MEDIUM,
        })
    if score_range < MIN_SCORE_RANGE:
        issues.append({
            "type": "NARROW_RANGE",
            "message": f"scores span {lo:g}-{hi:g} (range={score_range:g})",
            "severity": SEVERITY_HIGH,
        })

    types = [e.relationship_type for e in entities if e.relationship_type]
    if types:
        dominant, count = Counter(types).most_common(1)[0]
        share = count / len(types)
        if share > MAX_DOMINANT_TYPE_SHARE:
            issues.append({
                "type": "HOMOGENEOUS_TYPES",
                "message": f"relationship types mostly identical ({dominant}: {share:.0%})",
                "severity": SEVERITY_MEDIUM,
            })

    has_high = any(i["severity"] == SEVERITY_HIGH for i in issues)
    return {
        "is_good": not has_high,
        "needs_iteration": has_high,
        "issues": issues,
        "metrics": {
            "cv": round(cv, 2),
            "std_dev": round(std_dev, 2),
            "range": score_range,
            "grade_count": len(grades),
            "mean": round(mean, 2),
        },
    }


def run_feedback_loop(
    vectors,
    score_fn,
    strategy_fn,
    config: FilterConfig | None = None,
    max_iterations: int = 3,
) -> dict:
    """Filter, score and refine features until the scores discriminate.

    Args:
        vectors: FeatureVector objects (or dicts) for every contact.
        score_fn: Callable(filtered_vectors, filter_result) -> list of
            ScoredEntity. Usually an LLM-backed scorer.
        strategy_fn: Callable(quality, filter_result) -> list of
            FeatureOperation (or dicts). Asked only when quality is poor
            and another iteration remains.
        config: FilterConfig for every refiltering pass.
        max_iterations: Upper bound on scoring rounds (>= 1).

    Returns:
        Dict with:
            "entities": ranked ScoredEntity list from the last round,
            "quality": quality report of the last round,
            "filter_result": FilterResult of the last round,
            "iterations": int,
            "history": [{"iteration", "quality", "feature_count", "operations"}],
            "improved": bool -- more than one round ran and the last was good.

    Raises:
        ValueError: If max_iterations < 1.
    """
    if max_iterations < 1:
        raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")

    config = config or FilterConfig()
    current = as_feature_vectors(vectors)
    history = []
    entities = []
    quality: dict = {}
    filter_result: FilterResult | None = None

    iteration = 0
    while iteration < max_iterations:
        iteration += 1
        filter_result = filter_significant_features(current, config)
        entities = rank_entities(score_fn(filter_result.filtered_features, filter_result))
        quality = evaluate_analysis_quality(entities)

        record = {
            "iteration": iteration,
            "quality": quality,
            "feature_count": len(filter_result.significant_features),
            "operations": [],
        }
        history.append(record)
        logger.info(
            "feedback_iteration",
            iteration=iteration,
            max_iterations=max_iterations,
            is_good=quality["is_good"],
            features=record["feature_count"],
        )

        if quality["is_good"] or not quality["needs_iteration"]:
            break
        if iteration == max_iterations:
            break

        operations = [
            op if isinstance(op, FeatureOperation) else FeatureOperation.from_dict(op)
            for op in strategy_fn(quality, filter_result)
        ]
        record["operations"] = [op.to_dict() for op in operations]
        current = execute_feature_operations(current, operations)

    return {
        "entities": entities,
        "quality": quality,
        "filter_result": filter_result,
        "iterations": iteration,
        "history": history,
        "improved": len(history) > 1 and quality["is_good"],
    }
