"""Relationship graph construction from ranked scores.

Turns a score-descending list of ScoredEntity records into a star-shaped
graph around the user, ready for a force-directed renderer:

    Nodes:
        One fixed center node for the user at (0, 0), plus one contact
        node per retained entity. Contact size grows with score,
        15 + score/100 * 20, so a score of 0 draws at 15 and 100 at 35.
        Contact color is the grade color. Only the center node carries a
        position; contacts are placed by the external simulation.

    Edges:
        One edge center -> contact for every retained contact whose score
        reaches min_score_for_edge. Distance shrinks with score,
        300 - score/100 * 200, and width grows with it, 1 + score/100 * 4.
        Contacts below the threshold still get a node, drawn unconnected.

Derived views over the same inputs:
    build_clustered_graph   contacts bucketed by grade letter
    build_time_series       score history per contact across snapshots
    network_stats           density, average weight, grade mix, top edges
    force_params            simulation tuning derived from graph size
    export_graph            JSON or CSV rendering of a graph

Everything here is a pure function of its arguments.
"""

from __future__ import annotations

import csv
import io
import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

import numpy as np

from cardgraph.scoring import GRADE_COLORS, GRADE_LABELS, GRADES, grade_info

CENTER_LABEL = "Me"
CENTER_SIZE = 40.0
CENTER_COLOR = "#3b82f6"

DEFAULT_LINK_DISTANCE = 150.0
DEFAULT_LINK_WEIGHT = 50.0
DEFAULT_NODE_SIZE = 20.0


@dataclass(frozen=True)
class GraphOptions:
    """Options for build_force_graph."""

    center_node_id: str = "user"
    min_score_for_edge: float = 10.0
    max_nodes: int = 50

    def __post_init__(self):
        if self.max_nodes < 0:
            raise ValueError(f"max_nodes must be >= 0, got {self.max_nodes}")


@dataclass
class GraphNode:
    """A node of the relationship graph.

    The center node has type "user", a fixed position and no score;
    contact nodes have type "contact" and carry score, grade and rank.
    """

    id: str
    label: str
    type: str
    size: float
    color: str
    entity_id: Any = None
    company: str | None = None
    position: str | None = None
    score: float | None = None
    grade: dict | None = None
    rank: int | None = None
    x: float | None = None
    y: float | None = None
    fixed: bool = False

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class GraphEdge:
    """An edge from the center node to a contact node."""

    source: str
    target: str
    weight: float
    distance: float
    width: float
    color: str
    label: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RelationshipGraph:
    """Nodes, edges and metadata of one rendered graph."""

    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)

    def node(self, node_id: str) -> GraphNode | None:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def to_dict(self) -> dict:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class ForceParams:
    """Force-simulation tuning for a rendered graph.

    Link distance and strength are given per edge (keyed "source->target")
    and the collision radius per node, so a renderer can look them up
    instead of evaluating accessor functions.
    """

    charge_strength: float
    link_distance: dict[str, float]
    link_strength: dict[str, float]
    collision_radius: dict[str, float]
    center_strength: float = 0.05
    velocity_decay: float = 0.4
    iterations: int = 300

    def to_dict(self) -> dict:
        return asdict(self)


def score_to_size(score: float) -> float:
    """Node size, 15 at score 0 up to 35 at score 100."""
    return 15.0 + (score / 100.0) * 20.0


def score_to_distance(score: float) -> float:
    """Link distance, 300 at score 0 down to 100 at score 100."""
    return 300.0 - (score / 100.0) * 200.0


def score_to_width(score: float) -> float:
    """Edge width, 1 at score 0 up to 5 at score 100."""
    return 1.0 + (score / 100.0) * 4.0


def contact_node_id(entity_id) -> str:
    return f"card_{entity_id}"


def _center_node(center_node_id: str) -> GraphNode:
    return GraphNode(
        id=center_node_id,
        label=CENTER_LABEL,
        type="user",
        size=CENTER_SIZE,
        color=CENTER_COLOR,
        x=0.0,
        y=0.0,
        fixed=True,
    )


def build_force_graph(entities, options: GraphOptions | None = None) -> RelationshipGraph:
    """Build the star graph for a force-directed layout.

    Args:
        entities: ScoredEntity records sorted by score descending (see
            rank_entities). Only the first ``max_nodes`` are retained.
        options: GraphOptions. Defaults to GraphOptions().

    Returns:
        RelationshipGraph. metadata holds total_nodes, total_edges and the
        score_range ({"min", "max"}) of the retained contacts, 0/0 when
        there are none. An empty input yields only the center node.
    """
    options = options or GraphOptions()
    retained = list(entities)[: options.max_nodes]

    nodes = [_center_node(options.center_node_id)]
    edges = []

    for entity in retained:
        node_id = contact_node_id(entity.entity_id)
        nodes.append(GraphNode(
            id=node_id,
            label=entity.name,
            type="contact",
            size=score_to_size(entity.score),
            color=entity.grade_color,
            entity_id=entity.entity_id,
            company=entity.info.get("company"),
            position=entity.info.get("position"),
            score=entity.score,
            grade=grade_info(entity.grade),
            rank=entity.rank,
        ))

        if entity.score < options.min_score_for_edge:
            continue
        edges.append(GraphEdge(
            source=options.center_node_id,
            target=node_id,
            weight=entity.score,
            distance=score_to_distance(entity.score),
            width=score_to_width(entity.score),
            color=entity.grade_color,
            label=entity.grade_label,
        ))

    scores = [e.score for e in retained]
    return RelationshipGraph(
        nodes=nodes,
        edges=edges,
        metadata={
            "total_nodes": len(nodes),
            "total_edges": len(edges),
            "score_range": {
                "min": min(scores) if scores else 0.0,
                "max": max(scores) if scores else 0.0,
            },
        },
    )


def build_clustered_graph(entities) -> dict:
    """Bucket contacts by grade letter.

    Returns:
        Dict with:
            "clusters": {grade: {"label", "color", "nodes": [...]}} for A, B, C, D, F,
            "summary": [{"grade", "label", "color", "count"}] in grade order.
    """
    clusters = {
        grade: {"label": GRADE_LABELS[grade], "color": GRADE_COLORS[grade], "nodes": []}
        for grade in GRADES
    }
    for entity in entities:
        clusters[entity.grade]["nodes"].append({
            "id": contact_node_id(entity.entity_id),
            "entity_id": entity.entity_id,
            "label": entity.name,
            "company": entity.info.get("company"),
            "score": entity.score,
            "rank": entity.rank,
        })

    return {
        "clusters": clusters,
        "summary": [
            {
                "grade": grade,
                "label": data["label"],
                "color": data["color"],
                "count": len(data["nodes"]),
            }
            for grade, data in clusters.items()
        ],
    }


def build_time_series(entities, history=(), timestamp: str | None = None) -> dict:
    """Append the current scores to earlier snapshots and index them per contact.

    Args:
        entities: Current ScoredEntity records.
        history: Earlier snapshots, each {"timestamp": str, "scores":
            [{"entity_id", "score", "grade"}]}, oldest first.
        timestamp: ISO timestamp of the current snapshot. Defaults to now (UTC).

    Returns:
        Dict with "current_snapshot", "entity_series" ({entity_id:
        [{"timestamp", "score", "grade"}]}) and "snapshot_count".
    """
    if timestamp is None:
        timestamp = datetime.now(timezone.utc).isoformat()

    current = {
        "timestamp": timestamp,
        "scores": [
            {"entity_id": e.entity_id, "score": e.score, "grade": e.grade}
            for e in entities
        ],
    }
    snapshots = [*history, current]

    series: dict[Any, list[dict]] = {}
    for snapshot in snapshots:
        for row in snapshot["scores"]:
            series.setdefault(row["entity_id"], []).append({
                "timestamp": snapshot["timestamp"],
                "score": row["score"],
                "grade": row["grade"],
            })

    return {
        "current_snapshot": current,
        "entity_series": series,
        "snapshot_count": len(snapshots),
    }


def network_stats(graph: RelationshipGraph, top_n: int = 5) -> dict:
    """Network-level statistics of a relationship graph.

    Density counts every node, center included, against the n(n-1)/2
    possible undirected edges. The grade distribution covers contact
    nodes only.

    Returns:
        Dict with node_count, edge_count, density (3 decimals),
        avg_connection_strength (2 decimals), grade_distribution and
        strongest_connections ([{"target", "score"}], top ``top_n`` by weight).
    """
    n = len(graph.nodes)
    max_edges = n * (n - 1) / 2
    density = len(graph.edges) / max_edges if max_edges > 0 else 0.0

    weights = [e.weight for e in graph.edges]
    avg_weight = float(np.mean(weights)) if weights else 0.0

    grade_distribution: dict[str, int] = {}
    for node in graph.nodes:
        if node.type == "contact" and node.grade:
            level = node.grade["level"]
            grade_distribution[level] = grade_distribution.get(level, 0) + 1

    strongest = sorted(graph.edges, key=lambda e: e.weight, reverse=True)[:top_n]
    labels = {node.id: node.label for node in graph.nodes}

    return {
        "node_count": n,
        "edge_count": len(graph.edges),
        "density": round(density, 3),
        "avg_connection_strength": round(avg_weight, 2),
        "grade_distribution": grade_distribution,
        "strongest_connections": [
            {"target": labels.get(e.target, e.target), "score": e.weight}
            for e in strongest
        ],
    }


def _edge_key(edge: GraphEdge) -> str:
    return f"{edge.source}->{edge.target}"


def force_params(graph: RelationshipGraph) -> ForceParams:
    """Derive force-simulation parameters from graph size and contents.

    Repulsion grows with node count (-300 - 5 * nodes) so larger graphs
    spread out. Link distance and strength come from each edge (distance,
    weight / 100); collision radius is node size + 10.
    """
    node_count = len(graph.nodes)
    link_distance = {}
    link_strength = {}
    for edge in graph.edges:
        key = _edge_key(edge)
        distance = edge.distance if edge.distance is not None else DEFAULT_LINK_DISTANCE
        weight = edge.weight if edge.weight is not None else DEFAULT_LINK_WEIGHT
        link_distance[key] = distance
        link_strength[key] = weight / 100.0

    collision_radius = {
        node.id: (node.size if node.size is not None else DEFAULT_NODE_SIZE) + 10.0
        for node in graph.nodes
    }

    return ForceParams(
        charge_strength=-300.0 - node_count * 5.0,
        link_distance=link_distance,
        link_strength=link_strength,
        collision_radius=collision_radius,
    )


NODE_CSV_FIELDS = ("id", "label", "type", "score", "grade", "company")
EDGE_CSV_FIELDS = ("source", "target", "weight", "label")


def export_graph(graph: RelationshipGraph, fmt: str = "json"):
    """Render a graph for download.

    Args:
        graph: RelationshipGraph to export.
        fmt: "json" for an indented JSON string, "csv" for a dict with
            "nodes_csv" and "edges_csv" strings.

    Raises:
        ValueError: For any other format.
    """
    if fmt == "json":
        return json.dumps(graph.to_dict(), indent=2, ensure_ascii=False)

    if fmt == "csv":
        nodes_buf = io.StringIO()
        writer = csv.writer(nodes_buf, lineterminator="\n")
        writer.writerow(NODE_CSV_FIELDS)
        for n in graph.nodes:
            writer.writerow([
                n.id,
                n.label or "",
                n.type,
                "" if n.score is None else n.score,
                n.grade["level"] if n.grade else "",
                n.company or "",
            ])

        edges_buf = io.StringIO()
        writer = csv.writer(edges_buf, lineterminator="\n")
        writer.writerow(EDGE_CSV_FIELDS)
        for e in graph.edges:
            writer.writerow([e.source, e.target, e.weight, e.label or ""])

        return {"nodes_csv": nodes_buf.getvalue(), "edges_csv": edges_buf.getvalue()}

    raise ValueError(f"Unsupported export format: {fmt!r}")
