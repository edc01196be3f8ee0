"""Autocomplete against the title suggest field."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from faceted_search.domain.search import Suggestion, SuggestionResult, normalize_facet_selection
from faceted_search.field_config import FieldConfig
from faceted_search.search.extensions import Extensions
from faceted_search.search.query import Match
from faceted_search.search.query_compiler import QueryCompiler
from faceted_search.search.result_parser import total_hits


DEFAULT_SUGGEST_SIZE = 5


class Suggester:
    """Reduced query path returning the top matches' id, title and link.

    Category filters are built exactly like facet filters of a full search.
    """

    def __init__(
        self,
        compiler: QueryCompiler,
        *,
        size: int = DEFAULT_SUGGEST_SIZE,
        extensions: Extensions | None = None,
    ) -> None:
        self.compiler = compiler
        self.size = size
        self.extensions = extensions or compiler.extensions

    def compile(
        self,
        text: str | None,
        field_config: FieldConfig,
        categories: Mapping[str, Any] | None = None,
        size: int | None = None,
    ) -> dict[str, Any] | None:
        """Request body for ``text``, or ``None`` when there is nothing to suggest for."""
        text = (text or "").strip()
        if not text:
            return None

        selection = normalize_facet_selection(categories)
        constraints = self.compiler.build_facet_constraints(selection, field_config)
        filters = [item for constraint in constraints for item in constraint.filters()]
        filters.append(self.compiler.partition_filter(field_config).to_dict())

        match = Match(f"{field_config.title_field}_suggest", text.lower())
        body = {
            "query": {"bool": {"must": [match.to_dict()], "filter": filters}},
            "_source": [field_config.content_type_field, field_config.title_field, "link"],
            "from": 0,
            "size": size or self.size,
        }
        return self.extensions.apply("suggest.query", body, text, field_config)

    def parse(self, raw_response: Mapping[str, Any], field_config: FieldConfig) -> SuggestionResult:
        hits = raw_response.get("hits") or {}
        suggestions = []
        for hit in hits.get("hits", []):
            source = hit.get("_source") or {}
            suggestions.append(
                Suggestion(
                    id=str(hit.get("_id")),
                    title=source.get(field_config.title_field),
                    link=source.get("link"),
                )
            )
        return SuggestionResult(total=total_hits(hits), results=suggestions)
