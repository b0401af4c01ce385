"""Command-line entry point.

    cardgraph filter features.json [--correlations] [--min-cv 0.3] [--min-coverage 0.3] [-o report.json]
    cardgraph graph scores.json [--max-nodes 50] [--min-score 10] [--format json|csv] [-o graph.json]
    cardgraph distribution features.json totalMeetings [--bins 10]

Input files are JSON lists: feature vectors ({"cardId", "features",
"cardInfo"} or {"entity_id", "features", "info"}) for filter/distribution,
scored contacts ({"entity_id", "score", "grade", ...}) for graph.
Results go to stdout unless --output is given; logs go to stderr.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

from cardgraph.base import as_feature_vectors
from cardgraph.config import get_settings
from cardgraph.feature_stats import feature_distribution
from cardgraph.graph_builder import export_graph
from cardgraph.log import configure_logging, get_logger
from cardgraph.output_schema import AnalysisReport, NumpyEncoder
from cardgraph.pipeline import analyze_features, build_relationship_view
from cardgraph.scoring import ScoredEntity

logger = get_logger(__name__)


def _load_json_list(path: str) -> list:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        # Accept {"data": [...]} / {"features": [...]} wrappers from the card service API.
        for key in ("data", "features", "scores", "results"):
            if isinstance(data.get(key), list):
                return data[key]
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list")
    return data


def _write(text: str, output: str | None) -> None:
    if output:
        Path(output).write_text(text, encoding="utf-8")
        logger.info("output_written", path=output)
    else:
        sys.stdout.write(text)
        sys.stdout.write("\n")


def cmd_filter(args, settings) -> int:
    config = settings.filter.to_config()
    if args.min_cv is not None:
        config = replace(config, min_coefficient_of_variation=args.min_cv)
    if args.min_coverage is not None:
        config = replace(config, min_data_coverage=args.min_coverage)

    vectors = as_feature_vectors(_load_json_list(args.input))
    analysis = analyze_features(vectors, config, with_correlations=args.correlations)
    report = AnalysisReport.from_results(analysis)
    _write(report.to_json(indent=2, ensure_ascii=False), args.output)
    return 0


def cmd_graph(args, settings) -> int:
    options = settings.graph.to_options()
    if args.max_nodes is not None:
        options = replace(options, max_nodes=args.max_nodes)
    if args.min_score is not None:
        options = replace(options, min_score_for_edge=args.min_score)

    entities = [ScoredEntity.from_dict(d) for d in _load_json_list(args.input)]
    view = build_relationship_view(entities, options)

    if args.format == "csv":
        exported = export_graph(view["graph"], "csv")
        _write(exported["nodes_csv"] + "\n" + exported["edges_csv"], args.output)
        return 0

    report = AnalysisReport.from_results(view=view)
    payload = report.to_dict()
    payload["force_params"] = view["force_params"].to_dict()
    payload["summary"] = view["summary"]
    _write(json.dumps(payload, cls=NumpyEncoder, indent=2, ensure_ascii=False), args.output)
    return 0


def cmd_distribution(args, settings) -> int:
    vectors = as_feature_vectors(_load_json_list(args.input))
    dist = feature_distribution(vectors, args.key, n_bins=args.bins)
    _write(json.dumps(dist, cls=NumpyEncoder, indent=2, ensure_ascii=False), args.output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cardgraph",
        description="Feature significance filtering and relationship graph building.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_filter = sub.add_parser("filter", help="Select significant features")
    p_filter.add_argument("input", help="JSON list of feature vectors")
    p_filter.add_argument("--correlations", action="store_true",
                          help="Also report correlated feature pairs")
    p_filter.add_argument("--min-cv", type=float, default=None,
                          help="Override the minimum coefficient of variation")
    p_filter.add_argument("--min-coverage", type=float, default=None,
                          help="Override the minimum data coverage")
    p_filter.add_argument("-o", "--output", default=None, help="Write report here")
    p_filter.set_defaults(func=cmd_filter)

    p_graph = sub.add_parser("graph", help="Build the relationship graph")
    p_graph.add_argument("input", help="JSON list of scored contacts")
    p_graph.add_argument("--max-nodes", type=int, default=None)
    p_graph.add_argument("--min-score", type=float, default=None)
    p_graph.add_argument("--format", choices=("json", "csv"), default="json")
    p_graph.add_argument("-o", "--output", default=None, help="Write graph here")
    p_graph.set_defaults(func=cmd_graph)

    p_dist = sub.add_parser("distribution", help="Histogram of one feature")
    p_dist.add_argument("input", help="JSON list of feature vectors")
    p_dist.add_argument("key", help="Feature key")
    p_dist.add_argument("--bins", type=int, default=10)
    p_dist.add_argument("-o", "--output", default=None, help="Write distribution here")
    p_dist.set_defaults(func=cmd_distribution)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)

    try:
        return args.func(args, settings)
    except (OSError, ValueError) as exc:
        # json.JSONDecodeError is a ValueError
        logger.error("command_failed", command=args.command, error=str(exc))
        return 1


if __name__ == "__main__":
    sys.exit(main())
