"""Normalize raw engine responses into ``SearchResult``."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any

from faceted_search.domain.search import SearchResult
from faceted_search.field_config import range_key
from faceted_search.search.query import PARENT_DOCUMENTS_AGGREGATION
from faceted_search.search.extensions import Extensions


logger = logging.getLogger(__name__)


def total_hits(hits: Mapping[str, Any]) -> int:
    """Total hit count; newer engines report ``{"value": n, "relation": ...}``."""
    total = hits.get("total", 0)
    if isinstance(total, Mapping):
        total = total.get("value", 0)
    return int(total or 0)


def _is_keyed(buckets: Mapping[str, Any]) -> bool:
    # a sub-aggregation that happens to be named "buckets" is not a keyed bucket dict
    return all(isinstance(bucket, Mapping) and "doc_count" in bucket for bucket in buckets.values())


def find_buckets(aggregation: Mapping[str, Any]) -> list[Mapping[str, Any]] | None:
    """Locate the bucket list of an aggregation, at any wrapping depth."""
    buckets = aggregation.get("buckets")
    if isinstance(buckets, list):
        return buckets
    if isinstance(buckets, Mapping) and _is_keyed(buckets):
        return [dict(bucket, key=key) for key, bucket in buckets.items()]

    for value in aggregation.values():
        if isinstance(value, Mapping):
            found = find_buckets(value)
            if found is not None:
                return found
    return None


def bucket_key(bucket: Mapping[str, Any]) -> str:
    """Range buckets are keyed ``"<from>-<to>"``; terms buckets by their key."""
    if "from" in bucket or "to" in bucket:
        return range_key(bucket.get("from"), bucket.get("to"))
    return str(bucket.get("key_as_string", bucket.get("key")))


def bucket_count(bucket: Mapping[str, Any]) -> int:
    parents = bucket.get(PARENT_DOCUMENTS_AGGREGATION)
    if isinstance(parents, Mapping):
        return int(parents.get("doc_count", 0))
    return int(bucket.get("doc_count", 0))


class ResultParser:
    def __init__(self, extensions: Extensions | None = None) -> None:
        self.extensions = extensions or Extensions()

    def parse(self, raw_response: Mapping[str, Any]) -> SearchResult:
        hits = raw_response.get("hits") or {}

        ids: list[str] = []
        results: list[dict[str, Any]] = []
        for hit in hits.get("hits", []):
            source = dict(hit.get("_source") or {})
            source["id"] = str(hit.get("_id"))
            ids.append(source["id"])
            results.append(source)

        facets: dict[str, dict[str, int]] = {}
        for name, aggregation in (raw_response.get("aggregations") or {}).items():
            buckets = find_buckets(aggregation) if isinstance(aggregation, Mapping) else None
            if buckets is None:
                logger.debug("Aggregation '%s' carries no buckets", name)
                continue
            facets[name] = {bucket_key(bucket): bucket_count(bucket) for bucket in buckets}

        result = SearchResult(total=total_hits(hits), ids=ids, results=results, facets=facets)
        return self.extensions.apply("results", result, raw_response)
