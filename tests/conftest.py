"""Shared test fixtures and configuration."""

import json
import os
from pathlib import Path
import sys

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(REPO_ROOT / "src"))


# Test environment overriding every setting read from FACETED_SEARCH_* variables
TEST_ENV = {
    "FACETED_SEARCH_SERVER_URL": "http://localhost:9200",
    "FACETED_SEARCH_INDEX_NAME": "content",
    "FACETED_SEARCH_SECONDARY_INDEX": "",
    "FACETED_SEARCH_PARTITION": "1",
    "FACETED_SEARCH_FACET_SIZE": "100",
    "FACETED_SEARCH_PAGE_SIZE": "10",
    "FACETED_SEARCH_LOG_LEVEL": "info",
    "FACETED_SEARCH_LOG_JSON": "true",
}


for key, value in TEST_ENV.items():
    os.environ[key] = value

from faceted_search.domain.model import InMemoryTermStore, Record, TermMembership, TermNode
from faceted_search.field_config import FieldConfig
from faceted_search.search.extensions import Extensions


FIELD_CONFIG_DATA = {
    "fields": ["title", "content", "content_type", "date"],
    "meta_fields": ["author", "rating", "urls.title", "urls.href"],
    "taxonomies": ["category", "tag"],
    "facets": ["category", "tag", "content_type"],
    "numeric": {"rating": True},
    "not_analyzed": {"href": True},
    "scores": {
        "field": {"title": 3.0, "content": 1.0},
        "meta": {"author": 2.0, "urls.title": 1.0},
        "taxonomy": {"category": 1.5},
    },
    "ranges": {
        "rating": [
            {"to": 3},
            {"from": 3, "to": 5, "key": "mid"},
            {"from": 5},
        ]
    },
}


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Reset FACETED_SEARCH_* variables to test defaults before each test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv("FACETED_SEARCH_FIELD_CONFIG_PATH", raising=False)


@pytest.fixture
def field_config() -> FieldConfig:
    return FieldConfig.model_validate(FIELD_CONFIG_DATA)


@pytest.fixture
def field_config_file(tmp_path: Path) -> Path:
    path = tmp_path / "field_config.json"
    path.write_text(json.dumps(FIELD_CONFIG_DATA), encoding="utf-8")
    return path


@pytest.fixture
def extensions() -> Extensions:
    return Extensions()


@pytest.fixture
def term_store() -> InMemoryTermStore:
    """Category tree science > energy > solar, plus a flat tag."""
    return InMemoryTermStore(
        {
            "category": [
                TermNode(id=1, slug="science", name="Science"),
                TermNode(id=2, slug="energy", name="Energy", parent_id=1),
                TermNode(id=3, slug="solar", name="Solar", parent_id=2),
            ],
            "tag": [TermNode(id=10, slug="diy", name="DIY")],
        }
    )


@pytest.fixture
def record() -> Record:
    return Record(
        id=42,
        content_type="post",
        fields={
            "title": "Solar panels",
            "content": "<p>Install <em>solar</em> panels</p>",
            "date": "2024-03-01T10:15:30.123456",
        },
        metadata={
            "author": "Ada",
            "rating": "4.5",
            "urls": [
                {"title": "Docs", "href": "/docs"},
                {"title": "Blog", "href": "/blog"},
            ],
            "internal_note": "not indexed",
        },
        memberships=[
            TermMembership(taxonomy="category", term_id=3, slug="solar", name="Solar", parent_id=2),
            TermMembership(taxonomy="tag", term_id=10, slug="diy", name="DIY"),
        ],
        link="https://example.com/solar-panels",
    )
