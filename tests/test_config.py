"""Tests for environment-driven settings (cardgraph.config)."""

import pytest
from pydantic import ValidationError

from cardgraph.config import FilterSettings, GraphSettings, Settings, get_settings
from cardgraph.feature_filter import FilterConfig
from cardgraph.graph_builder import GraphOptions


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    # keep a stray .env in the working directory out of the tests
    monkeypatch.chdir(tmp_path)
    for name in (
        "CARDGRAPH_LOG_LEVEL",
        "CARDGRAPH_LOG_FORMAT",
        "CARDGRAPH_FILTER_MIN_COEFFICIENT_OF_VARIATION",
        "CARDGRAPH_FILTER_MIN_DATA_COVERAGE",
        "CARDGRAPH_FILTER_ENFORCE_MIN_ENTROPY",
        "CARDGRAPH_GRAPH_MAX_NODES",
        "CARDGRAPH_GRAPH_CENTER_NODE_ID",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestDefaults:
    """Defaults match the library defaults."""

    def test_filter_defaults(self):
        assert FilterSettings().to_config() == FilterConfig()

    def test_graph_defaults(self):
        assert GraphSettings().to_options() == GraphOptions()

    def test_top_level(self):
        s = Settings()
        assert s.log_level == "INFO"
        assert s.log_format == "auto"


class TestEnvironment:
    """Environment overrides and validation."""

    def test_filter_override(self, monkeypatch):
        monkeypatch.setenv("CARDGRAPH_FILTER_MIN_COEFFICIENT_OF_VARIATION", "0.25")
        monkeypatch.setenv("CARDGRAPH_FILTER_ENFORCE_MIN_ENTROPY", "true")
        config = get_settings().filter.to_config()
        assert config.min_coefficient_of_variation == 0.25
        assert config.enforce_min_entropy is True

    def test_graph_override(self, monkeypatch):
        monkeypatch.setenv("CARDGRAPH_GRAPH_MAX_NODES", "12")
        assert get_settings().graph.to_options().max_nodes == 12

    def test_log_level(self, monkeypatch):
        monkeypatch.setenv("CARDGRAPH_LOG_LEVEL", "DEBUG")
        assert get_settings().log_level == "DEBUG"

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("CARDGRAPH_FILTER_MIN_DATA_COVERAGE=0.6\n")
        assert FilterSettings().min_data_coverage == 0.6

    def test_coverage_out_of_range(self, monkeypatch):
        monkeypatch.setenv("CARDGRAPH_FILTER_MIN_DATA_COVERAGE", "1.5")
        with pytest.raises(ValidationError):
            FilterSettings()

    def test_negative_max_nodes(self, monkeypatch):
        monkeypatch.setenv("CARDGRAPH_GRAPH_MAX_NODES", "-1")
        with pytest.raises(ValidationError):
            GraphSettings()

    def test_bad_log_format(self, monkeypatch):
        monkeypatch.setenv("CARDGRAPH_LOG_FORMAT", "xml")
        with pytest.raises(ValidationError):
            Settings()

    def test_cached(self):
        assert get_settings() is get_settings()
