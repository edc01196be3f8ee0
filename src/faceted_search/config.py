"""Centralized runtime configuration for faceted-search using Pydantic Settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from faceted_search.field_config import FieldConfig


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    Every variable carries the ``FACETED_SEARCH_`` prefix, e.g.
    ``FACETED_SEARCH_INDEX_NAME=content``.
    """

    model_config = SettingsConfigDict(
        env_prefix="FACETED_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Engine connection (consumed by the adapters only)
    server_url: str = Field(default="http://localhost:9200", description="Search engine base URL")
    index_name: str = Field(default="content", min_length=1, description="Primary index name (prefix per group)")
    secondary_index: str = Field(
        default="", description="Index rebuilt by re-indexing runs before being swapped in as primary"
    )
    read_timeout: float = Field(default=1.0, gt=0, description="Timeout for search requests in seconds")
    write_timeout: float = Field(default=300.0, gt=0, description="Timeout for indexing requests in seconds")

    # Index creation
    number_of_shards: int = Field(default=5, ge=1, description="Primary shards when (re)creating the index")
    number_of_replicas: int = Field(default=1, ge=0, description="Replicas when (re)creating the index")

    # Query compilation
    partition: str = Field(default="1", min_length=1, description="Active content partition applied to every query")
    facet_size: int = Field(default=100, ge=1, description="Maximum buckets returned per facet")
    suggest_size: int = Field(default=5, ge=1, le=50, description="Suggestions returned per request")
    page_size: int = Field(default=10, ge=1, description="Default number of hits per page")
    default_sort: Literal["score", "date"] = Field(default="score", description="Default result ordering")

    # Field configuration
    field_config_path: Path | None = Field(default=None, description="Path to the field configuration JSON file")

    # Logging
    log_level: str = Field(default="info", pattern=r"^(debug|info|warning|error|critical)$")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")

    @model_validator(mode="after")
    def _check_secondary_index(self) -> "Settings":
        if self.secondary_index and self.secondary_index == self.index_name:
            raise ValueError("FACETED_SEARCH_SECONDARY_INDEX must differ from FACETED_SEARCH_INDEX_NAME")
        return self

    def write_index(self) -> str:
        """Index that receives documents: the secondary one while a rebuild is staged."""
        return self.secondary_index or self.index_name

    def load_field_config(self) -> FieldConfig:
        """Load the configured field configuration, or an empty one when no path is set."""
        if self.field_config_path is None:
            return FieldConfig()
        return FieldConfig.from_json_file(self.field_config_path)
