"""End-to-end helpers composing the filter, correlation and graph tools.

Two halves, split where the external scorer sits:

    analyze_features()         vectors -> significant features (+ correlations)
    build_relationship_view()  scored contacts -> graph, clusters, stats, layout

Between them the caller runs its scorer over
FeatureAnalysis.filter_result.filtered_features.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from cardgraph.correlation import CorrelationPair, analyze_feature_correlations
from cardgraph.feature_filter import FilterConfig, FilterResult, filter_significant_features
from cardgraph.graph_builder import (
    GraphOptions,
    build_clustered_graph,
    build_force_graph,
    force_params,
    network_stats,
)
from cardgraph.log import get_logger
from cardgraph.scoring import rank_entities, summarize_scores

logger = get_logger(__name__)


@dataclass
class FeatureAnalysis:
    """Filter result plus the correlations among its significant features."""

    filter_result: FilterResult
    correlations: list[CorrelationPair] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            **self.filter_result.to_dict(),
            "correlations": [c.to_dict() for c in self.correlations],
        }


def analyze_features(
    vectors,
    config: FilterConfig | None = None,
    with_correlations: bool = True,
) -> FeatureAnalysis:
    """Filter features and optionally correlate the survivors."""
    result = filter_significant_features(vectors, config)
    correlations = []
    if with_correlations:
        correlations = analyze_feature_correlations(
            result.filtered_features, result.significant_features
        )
    logger.info(
        "features_analyzed",
        contacts=len(result.filtered_features),
        significant=result.summary.get("significant_count", 0),
        excluded=result.summary.get("excluded_count", 0),
        correlated_pairs=len(correlations),
    )
    return FeatureAnalysis(result, correlations)


def build_relationship_view(entities, options: GraphOptions | None = None) -> dict:
    """Rank scored contacts and derive every graph view from them.

    Returns:
        Dict with "graph" (RelationshipGraph), "clusters", "network_stats",
        "force_params" (ForceParams), "summary" and "entities" (ranked).
    """
    ranked = rank_entities(entities)
    graph = build_force_graph(ranked, options)
    stats = network_stats(graph)
    logger.info(
        "relationship_graph_built",
        nodes=stats["node_count"],
        edges=stats["edge_count"],
        density=stats["density"],
    )
    return {
        "entities": ranked,
        "graph": graph,
        "clusters": build_clustered_graph(ranked),
        "network_stats": stats,
        "force_params": force_params(graph),
        "summary": summarize_scores(ranked),
    }
