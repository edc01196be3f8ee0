"""Faceted query compilation.

``QueryCompiler.compile`` turns free text and a facet selection into a
``CompiledQuery`` in three independent steps:

- the text clause: match-all for empty text, the raw text as a query-string
  clause when it uses explicit query syntax, otherwise a weighted
  multi-field match across the scored fields;
- the filter clause: one constraint per selected facet plus the partition
  filter, which is always present;
- one aggregation per facet, each filtered by everything except its own
  facet's constraint.

A request with no text, no constraint and no aggregation compiles to
``EMPTY_QUERY`` so callers can skip the round trip.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any

from faceted_search.domain.search import FacetSelection, FacetValues, normalize_facet_selection
from faceted_search.field_config import FieldConfig, FieldKind, format_bound
from faceted_search.observability.context import bind_partition
from faceted_search.observability.metrics import COMPILE_LATENCY, track_latency
from faceted_search.observability.tracing import create_span
from faceted_search.search.extensions import Extensions
from faceted_search.search.mapping_builder import MappingBuilder
from faceted_search.search.metadata import normalize_meta_path
from faceted_search.search.query import (
    EMPTY_QUERY,
    AnyOf,
    Clause,
    CompiledQuery,
    EmptyQuery,
    FacetAggregation,
    FacetConstraint,
    FilterClause,
    MatchAll,
    MultiMatch,
    NestedQuery,
    QueryString,
    RangeAggregation,
    RangeFilter,
    TermFilter,
    TermsAggregation,
)
from faceted_search.search.query_syntax import QueryTokenizer, has_boolean_syntax, split_fuzzy_marker
from faceted_search.search.schema import FieldType


logger = logging.getLogger(__name__)


def nested_path(name: str) -> str | None:
    """Path of the nested documents a dotted metadata field lives in."""
    path, dot, _ = name.partition(".")
    return path if dot else None


class QueryCompiler:
    """Compile faceted search requests for one content partition.

    Args:
        partition: Partition every query and aggregation is restricted to
        facet_size: Maximum buckets per terms aggregation
        extensions: Extension points applied while compiling
    """

    def __init__(self, partition: str, *, facet_size: int = 100, extensions: Extensions | None = None) -> None:
        self.partition = partition
        self.facet_size = facet_size
        self.extensions = extensions or Extensions()
        self.tokenizer = QueryTokenizer()
        self._mapping_builder = MappingBuilder()

    def compile(
        self,
        free_text: str | None,
        facet_selection: Mapping[str, Any] | None,
        field_config: FieldConfig,
    ) -> CompiledQuery | EmptyQuery:
        with (
            bind_partition(self.partition),
            track_latency(COMPILE_LATENCY, operation="search"),
            create_span("query.compile", attributes={"query.partition": self.partition}) as span,
        ):
            selection = normalize_facet_selection(facet_selection)

            text_clause = self.build_text_clause(free_text, field_config)
            filter_clause = FilterClause(
                constraints=tuple(self.build_facet_constraints(selection, field_config)),
                partition=self.partition_filter(field_config),
            )
            filter_clause = self.extensions.apply("query.filters", filter_clause, selection, field_config)
            aggregations = self.build_aggregations(text_clause, filter_clause, field_config)

            span.set_attribute("query.constraints", len(filter_clause.constraints))
            span.set_attribute("query.aggregations", len(aggregations))

            if isinstance(text_clause, MatchAll) and not filter_clause and not aggregations:
                logger.debug("Nothing to query: no text, no facet selection and no facets configured")
                return EMPTY_QUERY

            compiled = CompiledQuery(
                text_clause=text_clause,
                filter_clause=filter_clause,
                aggregations=tuple(aggregations),
                date_field=field_config.date_field,
            )
            return self.extensions.apply("query.compiled", compiled, field_config)

    def partition_filter(self, field_config: FieldConfig) -> TermFilter:
        return TermFilter(field_config.partition_field, self.partition)

    # Free text

    def build_text_clause(self, free_text: str | None, field_config: FieldConfig) -> Clause:
        text = (free_text or "").strip()
        if not text:
            return MatchAll()

        clause: Clause
        if has_boolean_syntax(text, self.tokenizer, fields=self.queryable_fields(field_config)):
            top, _ = self.scored_fields(field_config, fuzzy=False)
            clause = QueryString(text, fields=tuple(top))
        else:
            text, fuzzy = split_fuzzy_marker(text)
            if not text:
                return MatchAll()
            clause = self._match_clause(text, fuzzy, field_config)
        return self.extensions.apply("query.text", clause, text, field_config)

    def queryable_fields(self, field_config: FieldConfig) -> set[str]:
        """Names a user may address with ``name:value`` in free text."""
        return self._filterable(field_config) | {f"{taxonomy}_name" for taxonomy in field_config.taxonomies}

    def _match_clause(self, text: str, fuzzy: bool, field_config: FieldConfig) -> Clause:
        fuzziness = field_config.fuzziness if fuzzy else None
        top, nested = self.scored_fields(field_config, fuzzy=fuzzy)
        if not top and not nested:
            return MultiMatch(text, fields=tuple(self.searchable_fields(field_config)), fuzziness=fuzziness)

        clauses: list[Clause] = []
        if top:
            clauses.append(MultiMatch(text, fields=tuple(top), fuzziness=fuzziness))
        for path, fields in nested.items():
            clauses.append(NestedQuery(path, MultiMatch(text, fields=tuple(fields), fuzziness=fuzziness)))
        return clauses[0] if len(clauses) == 1 else AnyOf(tuple(clauses))

    def scored_fields(self, field_config: FieldConfig, *, fuzzy: bool) -> tuple[list[str], dict[str, list[str]]]:
        """Weighted free-text targets, split into top-level and nested (by path).

        Analyzed fields are targeted through their language sub-field unless
        fuzzy matching is requested; unanalyzed fields always use the base field.
        """
        top: list[str] = []
        nested: dict[str, list[str]] = {}

        for taxonomy in field_config.taxonomies:
            weight = field_config.score("taxonomy", taxonomy)
            if weight > 0:
                top.append(f"{taxonomy}_name^{format_bound(weight)}")

        excluded = field_config.excluded_from_search()
        candidates: list[tuple[FieldKind, str]] = [("field", name) for name in field_config.fields]
        candidates += [("meta", normalize_meta_path(name)) for name in field_config.meta_fields]

        for kind, name in candidates:
            weight = field_config.score(kind, name)
            if weight <= 0 or name in excluded:
                continue
            inferred = self._mapping_builder.infer(name, kind, field_config)
            if inferred.field_type in (FieldType.NUMERIC, FieldType.DATE):
                continue

            target = name
            if inferred.analyzed and not fuzzy:
                target = f"{name}.{field_config.analyzer_language}"
            weighted = f"{target}^{format_bound(weight)}"

            head, dot, _ = name.partition(".")
            if dot:
                nested.setdefault(head, []).append(weighted)
            else:
                top.append(weighted)
        return top, nested

    def searchable_fields(self, field_config: FieldConfig) -> list[str]:
        """Top-level full-text fields matched when no field carries a weight."""
        excluded = field_config.excluded_from_search()
        searchable: list[str] = []
        candidates: list[tuple[FieldKind, str]] = [("field", name) for name in field_config.fields]
        candidates += [("meta", normalize_meta_path(name)) for name in field_config.meta_fields]
        for kind, name in candidates:
            if "." in name or name in excluded or name in searchable:
                continue
            if self._mapping_builder.infer(name, kind, field_config).field_type == FieldType.TEXT:
                searchable.append(name)
        return searchable

    # Facet filters

    def build_facet_constraints(self, selection: FacetSelection, field_config: FieldConfig) -> list[FacetConstraint]:
        """One constraint per selected, known facet; unknown facets and range keys are ignored."""
        filterable = self._filterable(field_config)
        constraints: list[FacetConstraint] = []
        for facet, selected in selection.items():
            if facet not in filterable:
                logger.debug("Ignoring selection for unknown facet '%s'", facet)
                continue

            clauses = self._facet_clauses(facet, selected, field_config)
            if clauses:
                constraints.append(FacetConstraint(facet=facet, clauses=tuple(clauses), operator=selected.operator))
        return constraints

    def _facet_clauses(self, facet: str, selected: FacetValues, field_config: FieldConfig) -> list[Clause]:
        clauses: list[Clause] = []
        if not field_config.has_ranges(facet):
            clauses = [TermFilter(facet, value) for value in selected.values]
        else:
            lookup = field_config.range_lookup(facet)
            for key in selected.values:
                bucket = lookup.get(key)
                if bucket is None:
                    logger.debug("Ignoring unknown range key '%s' for facet '%s'", key, facet)
                    continue
                clauses.append(RangeFilter.from_bucket(facet, bucket))

        path = nested_path(facet)
        if path is not None:
            clauses = [NestedQuery(path, clause) for clause in clauses]
        return clauses

    @staticmethod
    def _filterable(field_config: FieldConfig) -> set[str]:
        names = set(field_config.taxonomies) | set(field_config.fields) | set(field_config.facets)
        names |= {normalize_meta_path(name) for name in field_config.meta_fields}
        return names

    # Aggregations

    def build_aggregations(
        self,
        text_clause: Clause,
        filter_clause: FilterClause,
        field_config: FieldConfig,
    ) -> list[FacetAggregation]:
        names = list(field_config.facets)
        names += [name for name in field_config.numeric if field_config.has_ranges(name) and name not in names]

        text = None if isinstance(text_clause, MatchAll) else text_clause
        aggregations: list[FacetAggregation] = []
        for name in names:
            bucket: TermsAggregation | RangeAggregation
            if field_config.has_ranges(name):
                bucket = RangeAggregation(name, tuple(field_config.ranges_for(name)))
            else:
                size = self.extensions.apply("query.facet_size", self.facet_size, name, key=name)
                bucket = TermsAggregation(name, size)

            aggregation = FacetAggregation(
                facet=name,
                bucket=bucket,
                text=text,
                constraints=filter_clause.excluding(name),
                partition=filter_clause.partition,
                nested_path=nested_path(name),
            )
            aggregation = self.extensions.apply("query.aggregation", aggregation, field_config, key=name)
            if aggregation is not None:
                aggregations.append(aggregation)
        return aggregations
