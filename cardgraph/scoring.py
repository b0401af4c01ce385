"""Relationship scores as produced by an external scorer.

The scorer (an LLM in the card service) reads a contact's significant
features and returns a 0-100 relationship score with a letter grade. This
module holds the numeric side around it: the grade table used for
display, the ScoredEntity record, ranking, and summary statistics.

Grades:
    A  very close   #22c55e
    B  close        #84cc16
    C  neutral      #eab308
    D  distant      #f97316
    F  almost none  #ef4444
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

import numpy as np

GRADES = ("A", "B", "C", "D", "F")

GRADE_LABELS = {
    "A": "very close",
    "B": "close",
    "C": "neutral",
    "D": "distant",
    "F": "almost none",
}

GRADE_COLORS = {
    "A": "#22c55e",
    "B": "#84cc16",
    "C": "#eab308",
    "D": "#f97316",
    "F": "#ef4444",
}

UNKNOWN_GRADE_LABEL = "unknown"
UNKNOWN_GRADE_COLOR = "#888888"


def grade_info(grade: str | None) -> dict:
    """Display label and color for a grade letter, grey for anything else."""
    return {
        "level": grade,
        "label": GRADE_LABELS.get(grade, UNKNOWN_GRADE_LABEL),
        "color": GRADE_COLORS.get(grade, UNKNOWN_GRADE_COLOR),
    }


@dataclass(frozen=True)
class ScoredEntity:
    """One contact with its relationship score.

    Args:
        entity_id: Contact identifier.
        score: Relationship score, 0-100 by convention.
        grade: Letter grade, one of A, B, C, D, F.
        rank: 1-based rank after sorting by score, or None if unranked.
        info: Display metadata (name, company, position).
        relationship_type: Free-form type reported by the scorer.
        summary: One-line summary reported by the scorer.
        sentiment: positive / neutral / negative / mixed.

    Raises:
        ValueError: If the grade is not A-F or the score is not a finite number.
    """

    entity_id: Any
    score: float
    grade: str
    rank: int | None = None
    info: Mapping[str, Any] = field(default_factory=dict)
    relationship_type: str | None = None
    summary: str | None = None
    sentiment: str | None = None

    def __post_init__(self):
        if self.grade not in GRADES:
            raise ValueError(f"Unknown grade {self.grade!r}; expected one of {GRADES}")
        if isinstance(self.score, bool) or not isinstance(self.score, (int, float, np.integer, np.floating)):
            raise ValueError(f"Score must be numeric, got {self.score!r}")
        if not np.isfinite(float(self.score)):
            raise ValueError(f"Score must be finite, got {self.score!r}")
        object.__setattr__(self, "score", float(self.score))
        object.__setattr__(self, "info", dict(self.info or {}))

    @property
    def name(self) -> str:
        return self.info.get("name") or f"Card {self.entity_id}"

    @property
    def grade_label(self) -> str:
        return GRADE_LABELS[self.grade]

    @property
    def grade_color(self) -> str:
        return GRADE_COLORS[self.grade]

    def to_dict(self) -> dict:
        return {
            "entity_id": self.entity_id,
            "score": self.score,
            "grade": self.grade,
            "rank": self.rank,
            "info": dict(self.info),
            "relationship_type": self.relationship_type,
            "summary": self.summary,
            "sentiment": self.sentiment,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "ScoredEntity":
        """Build from a JSON-style dict.

        Besides the native keys, accepts the card service's shapes:
        cardId / totalScore / cardInfo, a grade given as {"level": ...},
        and an LLM analysis nested under "analysis" (relationshipScore,
        grade, relationshipType, summary, sentiment).
        """
        analysis = d.get("analysis") or {}
        entity_id = d.get("entity_id", d.get("cardId", d.get("id")))
        score = d.get("score", d.get("totalScore", analysis.get("relationshipScore")))
        grade = d.get("grade", analysis.get("grade"))
        if isinstance(grade, Mapping):
            grade = grade.get("level")
        return cls(
            entity_id=entity_id,
            score=score,
            grade=grade,
            rank=d.get("rank"),
            info=d.get("info") or d.get("cardInfo") or {},
            relationship_type=d.get("relationship_type", analysis.get("relationshipType")),
            summary=d.get("summary", analysis.get("summary")),
            sentiment=d.get("sentiment", analysis.get("sentiment")),
        )


def rank_entities(entities) -> list[ScoredEntity]:
    """Sort by score descending and assign 1-based ranks.

    The sort is stable: contacts with equal scores keep their input order.
    Returns new records; the input is not modified.
    """
    ordered = sorted(entities, key=lambda e: e.score, reverse=True)
    return [replace(e, rank=i + 1) for i, e in enumerate(ordered)]


def summarize_scores(entities, top_n: int = 5) -> dict:
    """Aggregate statistics over a set of scored contacts.

    Args:
        entities: ScoredEntity objects, ideally already ranked.
        top_n: How many leading contacts to list.

    Returns:
        Dict with total_analyzed, avg_score, min_score, max_score,
        grade_distribution, type_distribution, sentiment_distribution and
        top_relationships; or {"error": ...} when no contact was scored.
    """
    entities = list(entities)
    if not entities:
        return {"error": "No scored contacts to summarize"}

    scores = np.array([e.score for e in entities], dtype=np.float64)

    return {
        "total_analyzed": len(entities),
        "avg_score": round(float(np.mean(scores)), 2),
        "min_score": float(np.min(scores)),
        "max_score": float(np.max(scores)),
        "grade_distribution": dict(Counter(e.grade for e in entities)),
        "type_distribution": dict(Counter(e.relationship_type for e in entities if e.relationship_type)),
        "sentiment_distribution": dict(Counter(e.sentiment for e in entities if e.sentiment)),
        "top_relationships": [
            {
                "name": e.name,
                "score": e.score,
                "type": e.relationship_type,
                "summary": e.summary,
            }
            for e in entities[:top_n]
        ],
    }
