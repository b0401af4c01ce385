"""Settings loaded from the environment via pydantic-settings.

Defaults match the card service's graph-extraction configuration.
Every value can be overridden with an environment variable or a .env file
in the working directory:

    CARDGRAPH_LOG_LEVEL=DEBUG
    CARDGRAPH_LOG_FORMAT=json
    CARDGRAPH_FILTER_MIN_COEFFICIENT_OF_VARIATION=0.25
    CARDGRAPH_FILTER_MIN_DATA_COVERAGE=0.5
    CARDGRAPH_GRAPH_MAX_NODES=30

The analysis functions themselves take plain FilterConfig / GraphOptions
values; settings only produce them.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cardgraph.feature_filter import FilterConfig
from cardgraph.graph_builder import GraphOptions


class FilterSettings(BaseSettings):
    """Significance filter thresholds.

    Environment variables:
        CARDGRAPH_FILTER_MIN_COEFFICIENT_OF_VARIATION (default: 0.3)
        CARDGRAPH_FILTER_MIN_ENTROPY (default: 0.5)
        CARDGRAPH_FILTER_MIN_DATA_COVERAGE (default: 0.3)
        CARDGRAPH_FILTER_ENFORCE_MIN_ENTROPY (default: false)
    """

    model_config = SettingsConfigDict(
        env_prefix="CARDGRAPH_FILTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    min_coefficient_of_variation: float = Field(default=0.3, ge=0.0)
    min_entropy: float = Field(default=0.5, ge=0.0, le=1.0)
    min_data_coverage: float = Field(default=0.3, ge=0.0, le=1.0)
    enforce_min_entropy: bool = False

    def to_config(self) -> FilterConfig:
        return FilterConfig(
            min_coefficient_of_variation=self.min_coefficient_of_variation,
            min_entropy=self.min_entropy,
            min_data_coverage=self.min_data_coverage,
            enforce_min_entropy=self.enforce_min_entropy,
        )


class GraphSettings(BaseSettings):
    """Relationship graph options.

    Environment variables:
        CARDGRAPH_GRAPH_CENTER_NODE_ID (default: user)
        CARDGRAPH_GRAPH_MIN_SCORE_FOR_EDGE (default: 10)
        CARDGRAPH_GRAPH_MAX_NODES (default: 50)
    """

    model_config = SettingsConfigDict(
        env_prefix="CARDGRAPH_GRAPH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    center_node_id: str = Field(default="user", min_length=1)
    min_score_for_edge: float = Field(default=10.0, ge=0.0, le=100.0)
    max_nodes: int = Field(default=50, ge=0)

    def to_options(self) -> GraphOptions:
        return GraphOptions(
            center_node_id=self.center_node_id,
            min_score_for_edge=self.min_score_for_edge,
            max_nodes=self.max_nodes,
        )


class Settings(BaseSettings):
    """Top-level settings aggregating every section."""

    model_config = SettingsConfigDict(
        env_prefix="CARDGRAPH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["auto", "console", "json"] = "auto"
    filter: FilterSettings = Field(default_factory=FilterSettings)
    graph: GraphSettings = Field(default_factory=GraphSettings)


@lru_cache
def get_settings() -> Settings:
    """Return cached settings; call get_settings.cache_clear() to reload."""
    return Settings()
