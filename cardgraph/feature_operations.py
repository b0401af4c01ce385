"""Apply scorer-proposed feature operations to a contact population.

When scores come back too uniform, the scorer proposes operations on the
feature set (see cardgraph.feedback_loop). Each operation is one of:

    CREATE     new feature from a formula over existing ones
    COMBINE    same as CREATE; merges several features into one
    TRANSFORM  rewrite an existing feature; the description selects how:
                 "log"                 -> ln(value + 1)
                 "bucket" + "recency"  -> <target>_bucket: 3 (<= 30),
                                          2 (<= 90), 1 otherwise
                 "normalize"           -> min-max scaled over all contacts
               Korean descriptions from the scorer (버킷, 경과일, 정규화) select
               the same transforms.
    REMOVE     drop a feature everywhere
    WEIGHT     nothing to do here; weights are applied by the scorer

Formulas go through cardgraph.expression, never through eval. Inside a
formula, a feature the contact lacks (or holds as None) counts as 0. A
formula that still fails for a contact (syntax error, division by zero)
sets the target to 0 for that contact and logs a warning.

Input vectors are never modified; new vectors are returned.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping

import numpy as np

from cardgraph.base import FeatureVector, as_feature_vectors
from cardgraph.expression import Expression, ExpressionError
from cardgraph.feature_stats import is_usable_value
from cardgraph.log import get_logger

logger = get_logger(__name__)

OPERATIONS = ("CREATE", "TRANSFORM", "WEIGHT", "REMOVE", "COMBINE")

BUCKET_KEYWORDS = ("bucket", "버킷")
RECENCY_KEYWORDS = ("recency", "경과일")
NORMALIZE_KEYWORDS = ("normalize", "정규화")


@dataclass(frozen=True)
class FeatureOperation:
    """One proposed change to the feature set."""

    operation: str
    target_feature: str
    description: str = ""
    formula: str | None = None
    rationale: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "FeatureOperation":
        """Accepts snake_case keys or the scorer's camelCase (targetFeature)."""
        return cls(
            operation=str(d.get("operation", "")).upper(),
            target_feature=d.get("target_feature", d.get("targetFeature", "")),
            description=d.get("description") or "",
            formula=d.get("formula") or None,
            rationale=d.get("rationale") or "",
        )


def _formula_variables(features: Mapping[str, Any], names: list[str]) -> dict[str, float]:
    values = {}
    for name in names:
        val = features.get(name)
        values[name] = float(val) if is_usable_value(val) else 0.0
    return values


def _apply_formula(features_list: list[dict], op: FeatureOperation) -> None:
    if not op.formula:
        logger.warning("feature_operation_skipped", operation=op.operation,
                       target=op.target_feature, reason="no formula")
        return

    try:
        expr = Expression(op.formula)
    except ExpressionError as exc:
        logger.warning("feature_formula_invalid", target=op.target_feature,
                       formula=op.formula, error=str(exc))
        for features in features_list:
            features[op.target_feature] = 0.0
        return

    for features in features_list:
        try:
            value = expr.evaluate(_formula_variables(features, expr.variables))
        except ExpressionError as exc:
            logger.warning("feature_formula_failed", target=op.target_feature,
                           formula=op.formula, error=str(exc))
            value = 0.0
        features[op.target_feature] = value


def _mentions(description: str, keywords) -> bool:
    return any(word in description for word in keywords)


def _recency_bucket(days: float) -> int:
    if days <= 30:
        return 3
    if days <= 90:
        return 2
    return 1


def _apply_transform(features_list: list[dict], op: FeatureOperation) -> None:
    description = op.description.lower()
    key = op.target_feature

    if "log" in description:
        for features in features_list:
            val = features.get(key)
            if is_usable_value(val) and float(val) > -1.0:
                features[key] = float(np.log1p(float(val)))
        return

    if _mentions(description, BUCKET_KEYWORDS):
        if not _mentions(description, RECENCY_KEYWORDS):
            logger.warning("feature_transform_unsupported", target=key, description=op.description)
            return
        for features in features_list:
            val = features.get(key)
            if is_usable_value(val):
                features[f"{key}_bucket"] = _recency_bucket(float(val))
        return

    if _mentions(description, NORMALIZE_KEYWORDS):
        present = [float(f[key]) for f in features_list if is_usable_value(f.get(key))]
        if not present:
            return
        lo, hi = min(present), max(present)
        span = hi - lo
        for features in features_list:
            val = features.get(key)
            if is_usable_value(val):
                features[key] = (float(val) - lo) / span if span > 0 else 0.0
        return

    logger.warning("feature_transform_unsupported", target=key, description=op.description)


def execute_feature_operations(vectors, operations) -> list[FeatureVector]:
    """Apply operations in order and return new feature vectors.

    Args:
        vectors: FeatureVector objects (or dicts). Never mutated.
        operations: FeatureOperation objects or dicts accepted by
            FeatureOperation.from_dict.

    Returns:
        New FeatureVector list, same order and identifiers as the input.
    """
    vectors = as_feature_vectors(vectors)
    features_list = [dict(v.features) for v in vectors]

    for raw in operations:
        op = raw if isinstance(raw, FeatureOperation) else FeatureOperation.from_dict(raw)
        logger.info("feature_operation", operation=op.operation, target=op.target_feature)

        if op.operation in ("CREATE", "COMBINE"):
            _apply_formula(features_list, op)
        elif op.operation == "TRANSFORM":
            _apply_transform(features_list, op)
        elif op.operation == "REMOVE":
            for features in features_list:
                features.pop(op.target_feature, None)
        elif op.operation == "WEIGHT":
            continue
        else:
            logger.warning("feature_operation_unknown", operation=op.operation,
                           target=op.target_feature)

    return [vec.with_features(features) for vec, features in zip(vectors, features_list)]
