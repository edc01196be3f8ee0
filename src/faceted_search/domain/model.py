"""Domain models for content records and taxonomy terms.

Records are read-only inputs handed to the document builder by the content
source. Metadata is a tagged tree (``MetaScalar | MetaList | MetaObject``)
so the builder dispatches on the node type instead of sniffing the shape of
native containers.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator


Document = dict[str, Any]


@dataclass(frozen=True)
class MetaScalar:
    """Leaf metadata value (string, number, bool or None)."""

    value: Any

    def is_empty(self) -> bool:
        return self.value is None or self.value == ""


@dataclass(frozen=True)
class MetaList:
    """Repeating metadata value; items share the parent's path."""

    items: tuple[MetaNode, ...] = ()


@dataclass(frozen=True)
class MetaObject:
    """Associative metadata value; each entry extends the path with its key."""

    entries: Mapping[str, MetaNode] = field(default_factory=dict)


MetaNode = MetaScalar | MetaList | MetaObject


def meta_from_native(value: Any) -> MetaNode:
    """Convert plain dicts/lists/scalars (e.g. decoded JSON) into a metadata tree."""

    if isinstance(value, Mapping):
        return MetaObject({str(key): meta_from_native(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return MetaList(tuple(meta_from_native(item) for item in value))
    return MetaScalar(value)


class TermNode(BaseModel):
    """A taxonomy term as stored by the external term store."""

    model_config = ConfigDict(frozen=True)

    id: int
    slug: str
    name: str
    parent_id: int | None = None


class TermMembership(BaseModel):
    """A record's direct assignment to a taxonomy term."""

    model_config = ConfigDict(frozen=True)

    taxonomy: str
    term_id: int
    slug: str
    name: str
    parent_id: int | None = None

    def as_node(self) -> TermNode:
        return TermNode(id=self.term_id, slug=self.slug, name=self.name, parent_id=self.parent_id)


class TermLookup(Protocol):
    """Capability resolving a term by id within a taxonomy."""

    def __call__(self, taxonomy: str, term_id: int) -> TermNode | None:  # pragma: no cover - interface definition
        ...


class InMemoryTermStore:
    """Dict-backed ``TermLookup`` for tests, fixtures and small taxonomies."""

    def __init__(self, terms: Mapping[str, list[TermNode]] | None = None) -> None:
        self._terms: dict[tuple[str, int], TermNode] = {}
        for taxonomy, nodes in (terms or {}).items():
            for node in nodes:
                self.add(taxonomy, node)

    def add(self, taxonomy: str, node: TermNode) -> None:
        self._terms[(taxonomy, node.id)] = node

    def __call__(self, taxonomy: str, term_id: int) -> TermNode | None:
        return self._terms.get((taxonomy, term_id))


class Record(BaseModel):
    """Content record as delivered by the content source.

    ``metadata`` carries the structured metadata tree when the host exposes
    one; otherwise ``flat_meta`` holds the raw flat key/value bag
    (``urls_0_title`` style keys).
    """

    model_config = ConfigDict(frozen=True)

    id: int | str
    content_type: str | None = None
    fields: dict[str, Any] = Field(default_factory=dict)
    metadata: Any = None
    flat_meta: dict[str, Any] = Field(default_factory=dict)
    memberships: list[TermMembership] = Field(default_factory=list)
    link: str | None = None

    @field_validator("metadata", mode="before")
    @classmethod
    def _coerce_metadata(cls, value: Any) -> MetaObject | None:
        if value is None or isinstance(value, MetaObject):
            return value
        if isinstance(value, Mapping):
            return meta_from_native(value)
        raise ValueError("metadata must be a MetaObject or a mapping")
