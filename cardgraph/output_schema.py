"""Shared JSON envelope for analysis reports.

A report bundles one run's feature analysis with the relationship graph
built from the scores, so a downstream UI can load a single document:

    {
        "schema_version": "1.0",
        "generated_at": ISO timestamp,
        "features": {significant_features, importance, feature_stats, excluded_features, summary},
        "correlations": [{feature_a, feature_b, correlation, strength, n_observations}],
        "graph": {nodes, edges, metadata},
        "network_stats": {...},
        "clusters": [{grade, label, color, count}],
    }

Any section may be empty when the run did not produce it (a filter-only
run has an empty graph).

Usage::

    from cardgraph.output_schema import AnalysisReport, validate_report

    report = AnalysisReport.from_results(analysis, view)
    d = report.to_dict()
    errors = validate_report(d)
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone

import numpy as np

SCHEMA_VERSION = "1.0"


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types."""

    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, (np.integer,)):
            return int(obj)
        if isinstance(obj, (np.floating,)):
            return float(obj)
        if isinstance(obj, (np.bool_,)):
            return bool(obj)
        return super().default(obj)


@dataclass
class AnalysisReport:
    """Standardized report envelope for one analysis run."""

    significant_features: list[str] = field(default_factory=list)
    importance: dict[str, float] = field(default_factory=dict)
    feature_stats: dict[str, dict] = field(default_factory=dict)
    excluded_features: list[dict] = field(default_factory=list)
    filter_summary: dict = field(default_factory=dict)
    correlations: list[dict] = field(default_factory=list)
    graph: dict = field(default_factory=dict)
    network_stats: dict = field(default_factory=dict)
    clusters: list[dict] = field(default_factory=list)
    generated_at: str | None = None

    @classmethod
    def from_results(cls, analysis=None, view: dict | None = None, generated_at: str | None = None):
        """Assemble a report from pipeline outputs.

        Args:
            analysis: FeatureAnalysis from pipeline.analyze_features(), or None.
            view: Dict from pipeline.build_relationship_view(), or None.
            generated_at: ISO timestamp. Defaults to now (UTC).
        """
        report = cls(generated_at=generated_at or datetime.now(timezone.utc).isoformat())
        if analysis is not None:
            fr = analysis.filter_result.to_dict()
            report.significant_features = fr["significant_features"]
            report.importance = fr["importance"]
            report.feature_stats = fr["feature_stats"]
            report.excluded_features = fr["excluded_features"]
            report.filter_summary = fr["summary"]
            report.correlations = [c.to_dict() for c in analysis.correlations]
        if view is not None:
            report.graph = view["graph"].to_dict()
            report.network_stats = dict(view["network_stats"])
            report.clusters = list(view["clusters"]["summary"])
        return report

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dict following the shared schema."""
        return {
            "schema_version": SCHEMA_VERSION,
            "generated_at": self.generated_at,
            "features": {
                "significant_features": list(self.significant_features),
                "importance": dict(self.importance),
                "feature_stats": dict(self.feature_stats),
                "excluded_features": list(self.excluded_features),
                "summary": dict(self.filter_summary),
            },
            "correlations": list(self.correlations),
            "graph": {
                "nodes": list(self.graph.get("nodes", [])),
                "edges": list(self.graph.get("edges", [])),
                "metadata": dict(self.graph.get("metadata", {})),
            },
            "network_stats": dict(self.network_stats),
            "clusters": list(self.clusters),
        }

    def to_json(self, **kwargs) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), cls=NumpyEncoder, **kwargs)


def validate_report(d: dict) -> list[str]:
    """Validate a dict against the report schema.

    Returns a list of error messages. Empty list = valid.
    """
    errors = []

    if "schema_version" not in d:
        errors.append("Missing required key: schema_version")
    for section in ["features", "correlations", "graph"]:
        if section not in d:
            errors.append(f"Missing required section: {section}")

    if errors:
        return errors  # can't validate further

    features = d["features"]
    significant = features.get("significant_features", [])
    importance = features.get("importance", {})
    stats = features.get("feature_stats", {})

    missing_importance = [k for k in significant if k not in importance]
    if missing_importance:
        errors.append(f"Significant features without importance: {missing_importance}")
    missing_stats = [k for k in significant if k not in stats]
    if missing_stats:
        errors.append(f"Significant features without stats: {missing_stats}")

    excluded_keys = {e.get("key") for e in features.get("excluded_features", [])}
    overlap = excluded_keys & set(significant)
    if overlap:
        errors.append(f"Features both significant and excluded: {sorted(overlap)}")

    for key, s in stats.items():
        coverage = s.get("coverage")
        if coverage is not None and not (0.0 <= coverage <= 1.0):
            errors.append(f"Coverage out of [0, 1] for {key}: {coverage}")

    sig_set = set(significant)
    for pair in d["correlations"]:
        for side in ("feature_a", "feature_b"):
            if pair.get(side) not in sig_set:
                errors.append(f"Correlation references non-significant feature: {pair.get(side)}")
        r = pair.get("correlation", 0.0)
        if abs(r) > 1.0:
            errors.append(f"Correlation out of [-1, 1]: {r}")

    graph = d["graph"]
    nodes = graph.get("nodes", [])
    edges = graph.get("edges", [])
    node_ids = {n.get("id") for n in nodes}
    for e in edges:
        if e.get("source") not in node_ids or e.get("target") not in node_ids:
            errors.append(f"Edge references unknown node: {e.get('source')} -> {e.get('target')}")

    metadata = graph.get("metadata", {})
    if "total_nodes" in metadata and metadata["total_nodes"] != len(nodes):
        errors.append(
            f"Node count mismatch: metadata says {metadata['total_nodes']}, "
            f"graph has {len(nodes)} nodes"
        )
    if "total_edges" in metadata and metadata["total_edges"] != len(edges):
        errors.append(
            f"Edge count mismatch: metadata says {metadata['total_edges']}, "
            f"graph has {len(edges)} edges"
        )

    return errors
