"""Base types and protocols for cardgraph.

Defines the per-contact feature vector consumed by the statistics,
filtering and correlation tools, and the protocol an external scorer
must satisfy to feed the graph builder.

A feature vector is a plain mapping from feature key to value:

    {"totalMeetings": 12, "daysSinceLastMeeting": 4, "isFavorite": True}

Keys need not be uniform across contacts. A key that a contact does not
carry is *absent*, never an implicit zero. Booleans count as 0/1.

The scorer protocol requires one method:
    score(vectors: list[FeatureVector]) -> list[ScoredEntity]
        Produce one scored entity (0-100 score plus letter grade) per
        contact it could analyze. The LLM-backed scorer of the card
        service is one implementation; any callable wrapped in
        ScorerWrapper is another.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, runtime_checkable


@dataclass(frozen=True)
class FeatureVector:
    """Feature values for one contact entity.

    Args:
        entity_id: Identifier of the contact (business card id).
        features: Mapping from feature key to a number, a bool, or None
            for "extracted but missing". The mapping is copied on
            construction so the caller's dict is never shared.
        info: Optional display metadata (name, company, position).
    """

    entity_id: Any
    features: Mapping[str, Any] = field(default_factory=dict)
    info: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "features", dict(self.features))
        object.__setattr__(self, "info", dict(self.info or {}))

    @property
    def name(self) -> str:
        """Display name, falling back to a synthetic label."""
        return self.info.get("name") or f"Card {self.entity_id}"

    def with_features(self, features: Mapping[str, Any]) -> "FeatureVector":
        """Return a copy carrying a different feature mapping."""
        return FeatureVector(self.entity_id, features, self.info)

    def to_dict(self) -> dict:
        return {
            "entity_id": self.entity_id,
            "features": dict(self.features),
            "info": dict(self.info),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "FeatureVector":
        """Build a vector from a JSON-style dict.

        Accepts both the native shape (entity_id / features / info) and the
        shape emitted by the card service's feature extractor
        (cardId / features / cardInfo).

        Raises:
            ValueError: If no identifier key is present.
        """
        for id_key in ("entity_id", "cardId", "id"):
            if id_key in d:
                entity_id = d[id_key]
                break
        else:
            raise ValueError(f"Feature vector has no identifier: {sorted(d.keys())}")
        info = d.get("info") or d.get("cardInfo") or {}
        return cls(entity_id, d.get("features") or {}, info)


def as_feature_vectors(items) -> list[FeatureVector]:
    """Coerce a sequence of FeatureVector or dicts into FeatureVector objects."""
    vectors = []
    for item in items:
        if isinstance(item, FeatureVector):
            vectors.append(item)
        else:
            vectors.append(FeatureVector.from_dict(item))
    return vectors


@runtime_checkable
class Scorer(Protocol):
    """Protocol for anything that turns feature vectors into relationship scores.

    Example:
        class ConstantScorer:
            def score(self, vectors):
                return [ScoredEntity(v.entity_id, 50.0, "C") for v in vectors]

        assert isinstance(ConstantScorer(), Scorer)  # True at runtime
    """

    def score(self, vectors: list[FeatureVector]) -> list:
        """Score each contact.

        Args:
            vectors: Filtered feature vectors, one per contact.

        Returns:
            List of ScoredEntity records. Contacts the scorer could not
            analyze may be omitted.
        """
        ...


class ScorerWrapper:
    """Wraps a plain callable into a Scorer-compatible object.

    Example:
        def by_meetings(vectors):
            return [
                ScoredEntity(v.entity_id, min(100.0, v.features.get("totalMeetings", 0) * 10), "C")
                for v in vectors
            ]

        scorer = ScorerWrapper(by_meetings)
        entities = scorer.score(vectors)
    """

    def __init__(self, score_fn: callable):
        self._score = score_fn

    def score(self, vectors: list[FeatureVector]) -> list:
        """Call the wrapped function."""
        return list(self._score(vectors))
