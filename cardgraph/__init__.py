"""cardgraph: relationship features and graphs for a business-card CRM.

Takes per-contact feature vectors (meeting counts, memo activity, gifts,
extracted facts, ...), keeps the features that actually discriminate
between contacts, and turns externally produced relationship scores into
a force-directed graph around the user.

Modules:
    base               -- FeatureVector record and the Scorer protocol
    feature_stats      -- Per-feature descriptive statistics and histograms
    feature_filter     -- Coverage / variance / boolean-skew significance filter
    correlation        -- Pairwise Pearson correlation among significant features
    scoring            -- Scored contacts, grades, ranking and summaries
    graph_builder      -- Star graph, grade clusters, time series, network stats, layout params
    expression         -- Safe arithmetic formulas over feature values
    feature_operations -- CREATE / TRANSFORM / REMOVE / COMBINE feature operations
    feedback_loop      -- Score-quality evaluation and bounded refinement loop
    pipeline           -- analyze_features() and build_relationship_view()
    output_schema      -- JSON report envelope and validator
    config             -- Environment-driven settings
    log                -- Structlog configuration
    cli                -- `cardgraph` command
"""

from cardgraph.base import FeatureVector, Scorer, ScorerWrapper, as_feature_vectors
from cardgraph.feature_stats import FeatureStats, compute_stats, feature_distribution, normalized_entropy
from cardgraph.feature_filter import FilterConfig, FilterDecision, FilterResult, filter_significant_features
from cardgraph.correlation import CorrelationPair, analyze_feature_correlations, pearson_correlation
from cardgraph.scoring import ScoredEntity, grade_info, rank_entities, summarize_scores
from cardgraph.graph_builder import (
    ForceParams,
    GraphEdge,
    GraphNode,
    GraphOptions,
    RelationshipGraph,
    build_clustered_graph,
    build_force_graph,
    build_time_series,
    export_graph,
    force_params,
    network_stats,
)
from cardgraph.expression import Expression, ExpressionError
from cardgraph.feature_operations import FeatureOperation, execute_feature_operations
from cardgraph.feedback_loop import evaluate_analysis_quality, run_feedback_loop
from cardgraph.pipeline import FeatureAnalysis, analyze_features, build_relationship_view
from cardgraph.output_schema import AnalysisReport, NumpyEncoder, validate_report

__version__ = "0.1.0"

__all__ = [
    "FeatureVector",
    "Scorer",
    "ScorerWrapper",
    "as_feature_vectors",
    "FeatureStats",
    "compute_stats",
    "feature_distribution",
    "normalized_entropy",
    "FilterConfig",
    "FilterDecision",
    "FilterResult",
    "filter_significant_features",
    "CorrelationPair",
    "analyze_feature_correlations",
    "pearson_correlation",
    "ScoredEntity",
    "grade_info",
    "rank_entities",
    "summarize_scores",
    "ForceParams",
    "GraphEdge",
    "GraphNode",
    "GraphOptions",
    "RelationshipGraph",
    "build_clustered_graph",
    "build_force_graph",
    "build_time_series",
    "export_graph",
    "force_params",
    "network_stats",
    "Expression",
    "ExpressionError",
    "FeatureOperation",
    "execute_feature_operations",
    "evaluate_analysis_quality",
    "run_feedback_loop",
    "FeatureAnalysis",
    "analyze_features",
    "build_relationship_view",
    "AnalysisReport",
    "NumpyEncoder",
    "validate_report",
]
