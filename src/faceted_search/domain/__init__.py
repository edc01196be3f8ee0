"""Domain layer - records, terms and search value objects.

Key principles:
1. No dependencies on infrastructure (no engine clients, no I/O)
2. Type safety with Pydantic
3. Immutability for value objects
"""

from faceted_search.domain.model import (
    Document,
    InMemoryTermStore,
    MetaList,
    MetaNode,
    MetaObject,
    MetaScalar,
    Record,
    TermLookup,
    TermMembership,
    TermNode,
    meta_from_native,
)
from faceted_search.domain.search import (
    FacetSelection,
    FacetValues,
    ResultWindow,
    SearchFailure,
    SearchResult,
    SortOrder,
    Suggestion,
    SuggestionResult,
    normalize_facet_selection,
)


__all__ = [
    "Document",
    "FacetSelection",
    "FacetValues",
    "InMemoryTermStore",
    "MetaList",
    "MetaNode",
    "MetaObject",
    "MetaScalar",
    "Record",
    "ResultWindow",
    "SearchFailure",
    "SearchResult",
    "SortOrder",
    "Suggestion",
    "SuggestionResult",
    "TermLookup",
    "TermMembership",
    "TermNode",
    "meta_from_native",
    "normalize_facet_selection",
]
