"""Domain models for search requests and responses.

Following the value-object style used across the package:
- Request/response models are immutable (frozen=True)
- No infrastructure dependencies
- Facet selections are normalized once, at the boundary
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class FacetValues(BaseModel):
    """Selected values for one facet and how they combine."""

    model_config = ConfigDict(frozen=True)

    values: tuple[str, ...]
    operator: Literal["and", "or"] = "and"


FacetSelection = Mapping[str, FacetValues]


def _coerce_values(raw: Any) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, (list, tuple, set, frozenset)):
        return tuple(str(item) for item in raw if item is not None and str(item) != "")
    text = str(raw)
    return (text,) if text else ()


def normalize_facet_selection(raw: Mapping[str, Any] | None) -> dict[str, FacetValues]:
    """Normalize a raw selection (typically parsed query-string parameters).

    - ``"red"`` -> AND of one value
    - ``["red", "blue"]`` -> AND (every value must match)
    - ``{"or": ["red", "blue"]}`` -> OR (any value may match)
    - ``{"and": [...]}`` -> AND

    Facets whose selection is empty are dropped; absence means "no filter".
    """
    normalized: dict[str, FacetValues] = {}
    for name, selection in (raw or {}).items():
        if isinstance(selection, FacetValues):
            if selection.values:
                normalized[name] = selection
            continue

        if isinstance(selection, Mapping):
            operator: Literal["and", "or"] = "or" if "or" in selection else "and"
            values = _coerce_values(selection.get(operator))
        else:
            operator = "and"
            values = _coerce_values(selection)

        if values:
            normalized[name] = FacetValues(values=values, operator=operator)
    return normalized


class SortOrder(str, Enum):
    """Result ordering supported by the query executor."""

    SCORE = "score"
    DATE = "date"


class ResultWindow(BaseModel):
    """Page of hits requested from the engine."""

    model_config = ConfigDict(frozen=True)

    offset: int = Field(default=0, ge=0)
    size: int = Field(default=10, ge=0)

    @classmethod
    def for_page(cls, page_index: int, size: int) -> "ResultWindow":
        return cls(offset=max(page_index, 0) * size, size=size)


class SearchResult(BaseModel):
    """Uniform search result shape.

    ``facets`` maps facet name -> bucket key -> document count. Range buckets
    are keyed ``"<from>-<to>"``.
    """

    model_config = ConfigDict(frozen=True)

    total: int = 0
    ids: list[str] = Field(default_factory=list)
    results: list[dict[str, Any]] = Field(default_factory=list)
    facets: dict[str, dict[str, int]] = Field(default_factory=dict)

    @classmethod
    def empty(cls) -> "SearchResult":
        return cls()


class SearchFailure(BaseModel):
    """Failure value returned when the query executor cannot answer."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    message: str
    cause: BaseException | None = None


class Suggestion(BaseModel):
    """One autocomplete hit."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str | None = None
    link: str | None = None


class SuggestionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    results: list[Suggestion] = Field(default_factory=list)
