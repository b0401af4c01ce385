"""Tests for the analysis report envelope (cardgraph.output_schema)."""

import json

import numpy as np
import pytest

from cardgraph.output_schema import AnalysisReport, NumpyEncoder, validate_report
from cardgraph.pipeline import analyze_features, build_relationship_view


@pytest.fixture
def full_report(contact_vectors, stub_scorer):
    analysis = analyze_features(contact_vectors)
    view = build_relationship_view(stub_scorer.score(analysis.filter_result.filtered_features))
    return AnalysisReport.from_results(analysis, view, generated_at="2026-10-01T00:00:00+00:00")


class TestNumpyEncoder:
    """NumpyEncoder conversions."""

    def test_numpy_types(self):
        payload = {"a": np.float64(1.5), "b": np.int32(3), "c": np.array([1, 2]), "d": np.bool_(True)}
        parsed = json.loads(json.dumps(payload, cls=NumpyEncoder))
        assert parsed == {"a": 1.5, "b": 3, "c": [1, 2], "d": True}

    def test_unknown_type_still_fails(self):
        with pytest.raises(TypeError):
            json.dumps({"x": object()}, cls=NumpyEncoder)


class TestAnalysisReport:
    """Report construction and serialization."""

    def test_structure(self, full_report):
        d = full_report.to_dict()
        assert d["schema_version"] == "1.0"
        assert d["generated_at"] == "2026-10-01T00:00:00+00:00"
        assert len(d["features"]["significant_features"]) == 3
        assert len(d["correlations"]) == 1
        assert len(d["graph"]["nodes"]) == 7
        assert d["network_stats"]["node_count"] == 7
        assert [c["grade"] for c in d["clusters"]] == ["A", "B", "C", "D", "F"]

    def test_valid(self, full_report):
        assert validate_report(full_report.to_dict()) == []

    def test_json_round_trip(self, full_report):
        parsed = json.loads(full_report.to_json())
        assert validate_report(parsed) == []

    def test_filter_only_report(self, contact_vectors):
        report = AnalysisReport.from_results(analyze_features(contact_vectors))
        d = report.to_dict()
        assert d["graph"] == {"nodes": [], "edges": [], "metadata": {}}
        assert d["generated_at"]
        assert validate_report(d) == []

    def test_empty_report_valid(self):
        assert validate_report(AnalysisReport().to_dict()) == []


class TestValidation:
    """validate_report() error detection."""

    def test_missing_sections(self):
        errors = validate_report({"features": {}})
        assert any("schema_version" in e for e in errors)
        assert any("correlations" in e for e in errors)
        assert any("graph" in e for e in errors)

    def test_missing_importance(self, full_report):
        d = full_report.to_dict()
        key = d["features"]["significant_features"][0]
        del d["features"]["importance"][key]
        assert any("without importance" in e for e in validate_report(d))

    def test_overlap(self, full_report):
        d = full_report.to_dict()
        d["features"]["excluded_features"].append({"key": d["features"]["significant_features"][0]})
        assert any("both significant and excluded" in e for e in validate_report(d))

    def test_coverage_out_of_range(self, full_report):
        d = full_report.to_dict()
        key = d["features"]["significant_features"][0]
        d["features"]["feature_stats"][key]["coverage"] = 1.5
        assert any("Coverage" in e for e in validate_report(d))

    def test_correlation_on_excluded_feature(self, full_report):
        d = full_report.to_dict()
        d["correlations"].append({"feature_a": "hasEmail", "feature_b": "totalMeetings",
                                  "correlation": 0.8})
        assert any("non-significant" in e for e in validate_report(d))

    def test_correlation_out_of_range(self, full_report):
        d = full_report.to_dict()
        d["correlations"][0]["correlation"] = 1.2
        assert any("out of [-1, 1]" in e for e in validate_report(d))

    def test_dangling_edge(self, full_report):
        d = full_report.to_dict()
        d["graph"]["edges"].append({"source": "user", "target": "card_missing"})
        errors = validate_report(d)
        assert any("unknown node" in e for e in errors)
        assert any("Edge count mismatch" in e for e in errors)

    def test_node_count_mismatch(self, full_report):
        d = full_report.to_dict()
        d["graph"]["metadata"]["total_nodes"] = 99
        assert any("Node count mismatch" in e for e in validate_report(d))
