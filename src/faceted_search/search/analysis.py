"""Index settings and the analysis chain used by autocomplete fields."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

from faceted_search.search.extensions import Extensions


if TYPE_CHECKING:
    from faceted_search.config import Settings


NGRAM_FILTER = "ngram_filter"
NGRAM_ANALYZER = "ngram_analyzer"
WHITESPACE_ANALYZER = "whitespace_analyzer"
STARTSWITH_ANALYZER = "analyzer_startswith"

DEFAULT_ANALYSIS: dict[str, Any] = {
    "filter": {
        NGRAM_FILTER: {
            "type": "edge_ngram",
            "min_gram": 1,
            "max_gram": 20,
        },
    },
    "analyzer": {
        STARTSWITH_ANALYZER: {
            "tokenizer": "keyword",
            "filter": ["lowercase"],
        },
        NGRAM_ANALYZER: {
            "type": "custom",
            "tokenizer": "whitespace",
            "filter": ["lowercase", "asciifolding", NGRAM_FILTER],
        },
        WHITESPACE_ANALYZER: {
            "type": "custom",
            "tokenizer": "whitespace",
            "filter": ["lowercase", "asciifolding"],
        },
    },
}


def build_index_settings(settings: Settings, extensions: Extensions | None = None) -> dict[str, Any]:
    """Return the settings body used when (re)creating the index.

    ``index.analysis`` receives the analysis block and may replace it; an
    empty result drops the block entirely. ``index.settings`` receives the
    assembled body last.
    """
    extensions = extensions or Extensions()
    analysis = extensions.apply("index.analysis", copy.deepcopy(DEFAULT_ANALYSIS))

    body: dict[str, Any] = {
        "number_of_shards": extensions.apply("index.shards", settings.number_of_shards),
        "number_of_replicas": extensions.apply("index.replicas", settings.number_of_replicas),
    }
    if analysis:
        body["analysis"] = analysis
    return extensions.apply("index.settings", body)
