"""Tests for the command-line entry point (cardgraph.cli)."""

import json

import pytest

from cardgraph.cli import main
from cardgraph.config import get_settings
from cardgraph.output_schema import validate_report


@pytest.fixture(autouse=True)
def quiet_settings(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CARDGRAPH_LOG_FORMAT", "json")
    monkeypatch.setenv("CARDGRAPH_LOG_LEVEL", "WARNING")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def features_file(tmp_path, contact_vectors):
    path = tmp_path / "features.json"
    rows = [
        {"cardId": v.entity_id, "features": v.features, "cardInfo": v.info}
        for v in contact_vectors
    ]
    path.write_text(json.dumps({"data": rows}))
    return path


@pytest.fixture
def scores_file(tmp_path, scored_entities):
    path = tmp_path / "scores.json"
    path.write_text(json.dumps([e.to_dict() for e in scored_entities]))
    return path


class TestFilterCommand:
    """cardgraph filter."""

    def test_stdout_report(self, features_file, capsys):
        assert main(["filter", str(features_file), "--correlations"]) == 0
        report = json.loads(capsys.readouterr().out)
        assert validate_report(report) == []
        assert len(report["correlations"]) == 1

    def test_threshold_override(self, features_file, tmp_path):
        out = tmp_path / "report.json"
        assert main(["filter", str(features_file), "--min-coverage", "0.1", "-o", str(out)]) == 0
        report = json.loads(out.read_text())
        assert "avgMemoLength" not in {
            e["key"] for e in report["features"]["excluded_features"]
            if e["reason"] == "coverage too low"
        }
        assert report["features"]["summary"]["filter_criteria"]["min_data_coverage"] == 0.1


class TestGraphCommand:
    """cardgraph graph."""

    def test_json(self, scores_file, capsys):
        assert main(["graph", str(scores_file), "--min-score", "30"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert validate_report(payload) == []
        assert len(payload["graph"]["nodes"]) == 6
        assert len(payload["graph"]["edges"]) == 3
        assert "force_params" in payload

    def test_csv(self, scores_file, tmp_path):
        out = tmp_path / "graph.csv"
        assert main(["graph", str(scores_file), "--format", "csv", "-o", str(out)]) == 0
        text = out.read_text()
        assert text.startswith("id,label,type,score,grade,company")
        assert "source,target,weight,label" in text


class TestDistributionCommand:
    """cardgraph distribution."""

    def test_histogram(self, features_file, capsys):
        assert main(["distribution", str(features_file), "totalMeetings", "--bins", "3"]) == 0
        dist = json.loads(capsys.readouterr().out)
        assert sum(dist["histogram"]["counts"]) == 6


class TestErrors:
    """Failures exit non-zero without a traceback."""

    def test_missing_file(self, tmp_path):
        assert main(["filter", str(tmp_path / "nope.json")]) == 1

    def test_not_a_list(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"hello": 1}')
        assert main(["filter", str(path)]) == 1

    def test_bad_grade(self, tmp_path):
        path = tmp_path / "scores.json"
        path.write_text(json.dumps([{"cardId": 1, "totalScore": 50, "grade": "Q"}]))
        assert main(["graph", str(path)]) == 1

    def test_unknown_feature(self, features_file):
        assert main(["distribution", str(features_file), "nope"]) == 1
