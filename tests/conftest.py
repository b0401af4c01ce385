"""Shared test fixtures for the cardgraph test suite.

Provides small contact populations with known statistical structure:

    contact_vectors: six contacts with
        totalMeetings        spread out, full coverage -> significant
        meetingsLast30Days   tracks totalMeetings      -> strongly correlated
        hasEmail             everybody has it          -> constant
        isFavorite           two of six set            -> significant flag
        avgMemoLength        only one contact carries it -> coverage too low
        responseRate         all close to 0.8          -> low variance

    scored_entities: five scored contacts, one per grade, in score order.

    StubScorer: deterministic Scorer that maps totalMeetings to a score.
"""

import pytest

from cardgraph.base import FeatureVector
from cardgraph.scoring import ScoredEntity


def _grade_for(score: float) -> str:
    if score >= 80:
        return "A"
    if score >= 60:
        return "B"
    if score >= 40:
        return "C"
    if score >= 20:
        return "D"
    return "F"


class StubScorer:
    """Scores each contact as 10 * totalMeetings, capped at 100.

    Contacts without totalMeetings are skipped, as an LLM scorer may
    skip contacts it cannot analyze.
    """

    def __init__(self, key: str = "totalMeetings", factor: float = 10.0):
        self.key = key
        self.factor = factor

    def score(self, vectors):
        out = []
        for v in vectors:
            if self.key not in v.features:
                continue
            score = min(100.0, float(v.features[self.key]) * self.factor)
            out.append(ScoredEntity(v.entity_id, score, _grade_for(score), info=v.info))
        return out


@pytest.fixture
def contact_vectors():
    rows = [
        (1, "Kim", 12, 5, True, True, 240.0, 0.80),
        (2, "Lee", 3, 1, True, False, None, 0.82),
        (3, "Park", 8, 3, True, False, None, 0.79),
        (4, "Choi", 1, 0, True, True, None, 0.81),
        (5, "Jung", 20, 9, True, False, None, 0.80),
        (6, "Han", 5, 2, True, False, None, 0.78),
    ]
    vectors = []
    for cid, name, meetings, recent, email, fav, memo_len, rate in rows:
        features = {
            "totalMeetings": meetings,
            "meetingsLast30Days": recent,
            "hasEmail": email,
            "isFavorite": fav,
            "responseRate": rate,
        }
        if memo_len is not None:
            features["avgMemoLength"] = memo_len
        vectors.append(FeatureVector(cid, features, {"name": name, "company": "Acme"}))
    return vectors


@pytest.fixture
def scored_entities():
    return [
        ScoredEntity(1, 92.0, "A", rank=1, info={"name": "Kim", "company": "Acme"},
                     relationship_type="mentor", sentiment="positive"),
        ScoredEntity(2, 71.0, "B", rank=2, info={"name": "Lee"},
                     relationship_type="colleague", sentiment="positive"),
        ScoredEntity(3, 48.0, "C", rank=3, info={"name": "Park"},
                     relationship_type="colleague", sentiment="neutral"),
        ScoredEntity(4, 25.0, "D", rank=4, info={"name": "Choi"},
                     relationship_type="client", sentiment="neutral"),
        ScoredEntity(5, 5.0, "F", rank=5, info={"name": "Jung"},
                     relationship_type="acquaintance", sentiment="negative"),
    ]


@pytest.fixture
def stub_scorer():
    return StubScorer()
