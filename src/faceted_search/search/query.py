"""Engine-independent query clauses and the compiled query.

The compiler assembles these immutable value objects; nothing here knows
how the clauses were chosen. ``to_dict()`` renders each clause into the
Elasticsearch query DSL, and ``CompiledQuery.render`` produces the complete
request body for a result window and sort order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Literal

from faceted_search.domain.search import ResultWindow, SortOrder
from faceted_search.field_config import RangeBucket


# Names of the wrapper aggregations around each facet's buckets
FILTERED_AGGREGATION = "filtered"
BUCKETS_AGGREGATION = "buckets"
NESTED_AGGREGATION = "nested"
# Per-bucket count of parent documents for facets on nested paths
PARENT_DOCUMENTS_AGGREGATION = "documents"


class Clause(ABC):
    """A query or filter clause."""

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Render the clause in the engine query DSL."""


@dataclass(frozen=True)
class MatchAll(Clause):
    def to_dict(self) -> dict[str, Any]:
        return {"match_all": {}}


@dataclass(frozen=True)
class MultiMatch(Clause):
    """Match ``query`` against several (optionally weighted) fields."""

    query: str
    fields: tuple[str, ...] = ()
    fuzziness: str | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"query": self.query}
        if self.fields:
            body["fields"] = list(self.fields)
        if self.fuzziness:
            body["fuzziness"] = self.fuzziness
        return {"multi_match": body}


@dataclass(frozen=True)
class Match(Clause):
    field: str
    query: str

    def to_dict(self) -> dict[str, Any]:
        return {"match": {self.field: {"query": self.query}}}


@dataclass(frozen=True)
class QueryString(Clause):
    """User-authored query syntax passed through verbatim."""

    query: str
    fields: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"query": self.query}
        if self.fields:
            body["fields"] = list(self.fields)
        return {"query_string": body}


@dataclass(frozen=True)
class NestedQuery(Clause):
    path: str
    query: Clause

    def to_dict(self) -> dict[str, Any]:
        return {"nested": {"path": self.path, "query": self.query.to_dict()}}


@dataclass(frozen=True)
class AnyOf(Clause):
    """Disjunction requiring at least one clause to match."""

    clauses: tuple[Clause, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"bool": {"should": [clause.to_dict() for clause in self.clauses], "minimum_should_match": 1}}


@dataclass(frozen=True)
class TermFilter(Clause):
    field: str
    value: Any

    def to_dict(self) -> dict[str, Any]:
        return {"term": {self.field: self.value}}


@dataclass(frozen=True)
class RangeFilter(Clause):
    """Numeric range; ``gte`` inclusive, ``lt`` exclusive."""

    field: str
    gte: float | None = None
    lt: float | None = None

    @classmethod
    def from_bucket(cls, name: str, bucket: RangeBucket) -> RangeFilter:
        return cls(name, gte=bucket.lower, lt=bucket.upper)

    def to_dict(self) -> dict[str, Any]:
        bounds: dict[str, float] = {}
        if self.gte is not None:
            bounds["gte"] = self.gte
        if self.lt is not None:
            bounds["lt"] = self.lt
        return {"range": {self.field: bounds}}


@dataclass(frozen=True)
class FacetConstraint:
    """The filter contribution of one selected facet.

    ``and`` requires every clause, each as its own filter; ``or`` requires
    at least one.
    """

    facet: str
    clauses: tuple[Clause, ...]
    operator: Literal["and", "or"] = "and"

    def filters(self) -> list[dict[str, Any]]:
        if self.operator == "or":
            return [AnyOf(self.clauses).to_dict()]
        return [clause.to_dict() for clause in self.clauses]


@dataclass(frozen=True)
class FilterClause:
    """All facet constraints plus the unconditional partition filter."""

    constraints: tuple[FacetConstraint, ...] = ()
    partition: TermFilter | None = None

    @property
    def facets(self) -> list[str]:
        return [constraint.facet for constraint in self.constraints]

    def excluding(self, facet: str) -> tuple[FacetConstraint, ...]:
        """Constraints of every facet except ``facet``."""
        return tuple(constraint for constraint in self.constraints if constraint.facet != facet)

    def filters(self) -> list[dict[str, Any]]:
        rendered = [item for constraint in self.constraints for item in constraint.filters()]
        if self.partition is not None:
            rendered.append(self.partition.to_dict())
        return rendered

    def __bool__(self) -> bool:
        return bool(self.constraints)


@dataclass(frozen=True)
class TermsAggregation:
    field: str
    size: int

    def to_dict(self) -> dict[str, Any]:
        return {"terms": {"field": self.field, "size": self.size}}


@dataclass(frozen=True)
class RangeAggregation:
    field: str
    ranges: tuple[RangeBucket, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"range": {"field": self.field, "ranges": [bucket.to_aggregation_range() for bucket in self.ranges]}}


@dataclass(frozen=True)
class FacetAggregation:
    """Bucket counts for one facet.

    The aggregation runs over every document (global scope) and re-applies
    its own filter set: the free-text clause, the constraints of every
    *other* facet and the partition filter. Leaving out its own facet's
    constraint keeps the counts of unselected values of that facet visible.

    A facet on a nested path buckets inside a ``nested`` aggregation and
    counts parent documents per bucket through ``reverse_nested``.
    """

    facet: str
    bucket: TermsAggregation | RangeAggregation
    text: Clause | None = None
    constraints: tuple[FacetConstraint, ...] = ()
    partition: TermFilter | None = None
    nested_path: str | None = None

    def bucket_aggregations(self) -> dict[str, Any]:
        buckets = self.bucket.to_dict()
        if self.nested_path is None:
            return {BUCKETS_AGGREGATION: buckets}

        buckets["aggs"] = {PARENT_DOCUMENTS_AGGREGATION: {"reverse_nested": {}}}
        return {
            NESTED_AGGREGATION: {
                "nested": {"path": self.nested_path},
                "aggs": {BUCKETS_AGGREGATION: buckets},
            }
        }

    def filters(self) -> list[dict[str, Any]]:
        rendered: list[dict[str, Any]] = []
        if self.text is not None:
            rendered.append(self.text.to_dict())
        for constraint in self.constraints:
            rendered.extend(constraint.filters())
        if self.partition is not None:
            rendered.append(self.partition.to_dict())
        return rendered

    def to_dict(self) -> dict[str, Any]:
        return {
            "global": {},
            "aggs": {
                FILTERED_AGGREGATION: {
                    "filter": {"bool": {"filter": self.filters()}},
                    "aggs": self.bucket_aggregations(),
                }
            },
        }


@dataclass(frozen=True)
class CompiledQuery:
    """Text clause, filter clause and aggregations of one search request."""

    text_clause: Clause
    filter_clause: FilterClause
    aggregations: tuple[FacetAggregation, ...] = ()
    date_field: str = "date"
    source: tuple[str, ...] = ()

    def query(self) -> dict[str, Any]:
        """Single boolean query: text under ``must``, constraints and partition under ``filter``."""
        return {"bool": {"must": [self.text_clause.to_dict()], "filter": self.filter_clause.filters()}}

    def sort_spec(self, sort: SortOrder) -> list[dict[str, Any]]:
        if sort == SortOrder.DATE:
            return [{self.date_field: {"order": "desc"}}]
        return [{"_score": {"order": "desc"}}]

    def render(self, window: ResultWindow | None = None, sort: SortOrder = SortOrder.SCORE) -> dict[str, Any]:
        window = window or ResultWindow()
        body: dict[str, Any] = {
            "query": self.query(),
            "from": window.offset,
            "size": window.size,
            "sort": self.sort_spec(sort),
        }
        if self.source:
            body["_source"] = list(self.source)
        if self.aggregations:
            body["aggs"] = {aggregation.facet: aggregation.to_dict() for aggregation in self.aggregations}
        return body


@dataclass(frozen=True)
class EmptyQuery:
    """Signals that a request has nothing to query."""

    reason: str = "no text, facet filter or aggregation"

    def __bool__(self) -> bool:
        return False


EMPTY_QUERY = EmptyQuery()
