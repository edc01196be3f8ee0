"""Field configuration describing what gets indexed and how it is searched.

A ``FieldConfig`` is the static description of a content model: which record
fields, metadata paths and taxonomies are indexed, which of them are exposed
as facets, which are numeric or exact-match, the per-field scoring weights and
the range buckets offered for numeric facets.

The configuration is loaded once (usually from ``field_config.json``) and is
read-only afterwards; builders and compilers receive it per call.
"""

import json
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from faceted_search.errors import ConfigurationError


FieldKind = Literal["field", "meta", "taxonomy"]


def format_bound(value: float | None) -> str:
    """Render a range bound the way facet keys expect it (``10.0`` -> ``"10"``)."""

    if value is None:
        return ""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def range_key(lower: float | None, upper: float | None) -> str:
    """Build the stable ``"<from>-<to>"`` key of a range bucket."""

    return f"{format_bound(lower)}-{format_bound(upper)}"


def _unique(values: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        stripped = value.strip()
        if stripped and stripped not in seen:
            seen.add(stripped)
            ordered.append(stripped)
    return ordered


class RangeBucket(BaseModel):
    """One selectable bucket of a numeric range facet."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    lower: Annotated[
        float | None,
        Field(alias="from", description="Inclusive lower bound; omitted for an open start"),
    ] = None
    upper: Annotated[
        float | None,
        Field(alias="to", description="Exclusive upper bound; omitted for an open end"),
    ] = None
    key: Annotated[
        str | None,
        Field(description="Selection key; defaults to '<from>-<to>'"),
    ] = None

    @model_validator(mode="after")
    def _default_key(self) -> "RangeBucket":
        if self.lower is None and self.upper is None:
            raise ValueError("A range bucket needs at least one of 'from' or 'to'")
        if self.key is None:
            object.__setattr__(self, "key", range_key(self.lower, self.upper))
        return self

    def to_aggregation_range(self) -> dict[str, Any]:
        spec: dict[str, Any] = {"key": self.key}
        if self.lower is not None:
            spec["from"] = self.lower
        if self.upper is not None:
            spec["to"] = self.upper
        return spec


class FieldConfig(BaseModel):
    """Static description of the indexable fields of a content model."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    fields: Annotated[
        list[str],
        Field(description="Record fields copied into documents, in declaration order"),
    ] = Field(default_factory=list)

    meta_fields: Annotated[
        list[str],
        Field(
            description="Metadata paths to index; '.' separates nested object levels",
            examples=[["price", "urls.title", "urls.href"]],
        ),
    ] = Field(default_factory=list)

    taxonomies: Annotated[
        list[str],
        Field(description="Taxonomies whose term memberships are indexed"),
    ] = Field(default_factory=list)

    facets: Annotated[
        list[str],
        Field(description="Fields or taxonomies exposed as facets, in display order"),
    ] = Field(default_factory=list)

    numeric: Annotated[
        dict[str, bool],
        Field(description="Fields mapped with a numeric type"),
    ] = Field(default_factory=dict)

    not_analyzed: Annotated[
        dict[str, bool],
        Field(description="Fields mapped as exact-match keywords"),
    ] = Field(default_factory=dict)

    scores: Annotated[
        dict[FieldKind, dict[str, Annotated[float, Field(gt=0)]]],
        Field(
            description="Free-text weights per kind and name",
            examples=[{"field": {"title": 3.0}, "taxonomy": {"category": 1.5}}],
        ),
    ] = Field(default_factory=dict)

    ranges: Annotated[
        dict[str, list[RangeBucket]],
        Field(description="Range buckets offered for numeric facets"),
    ] = Field(default_factory=dict)

    analyzer_language: Annotated[
        str,
        Field(min_length=1, description="Language analyzer used for the language-aware sub-field"),
    ] = "english"

    title_field: str = "title"
    date_field: str = "date"
    content_field: str = "content"
    content_type_field: str = "content_type"
    partition_field: str = "partition"

    exclude_from_search: Annotated[
        list[str] | None,
        Field(description="Fields never targeted by free text; defaults to the date field"),
    ] = None

    type_taxonomies: Annotated[
        dict[str, list[str]],
        Field(description="Content type -> taxonomies registered for it; unlisted types use all taxonomies"),
    ] = Field(default_factory=dict)

    fuzziness: Annotated[
        str,
        Field(description="Fuzziness applied when free text ends with '~'"),
    ] = "AUTO"

    @field_validator("fields", "meta_fields", "taxonomies", "facets")
    @classmethod
    def _dedupe(cls, value: list[str]) -> list[str]:
        return _unique(value)

    @field_validator("ranges")
    @classmethod
    def _unique_range_keys(cls, value: dict[str, list[RangeBucket]]) -> dict[str, list[RangeBucket]]:
        for name, buckets in value.items():
            keys = [bucket.key for bucket in buckets]
            if len(keys) != len(set(keys)):
                raise ValueError(f"Duplicate range keys configured for '{name}': {keys}")
        return value

    def is_numeric(self, name: str) -> bool:
        """Numeric override for ``name``; dotted paths also match on their leaf name."""

        return bool(self.numeric.get(name) or self.numeric.get(name.rpartition(".")[2]))

    def is_not_analyzed(self, name: str) -> bool:
        return bool(self.not_analyzed.get(name) or self.not_analyzed.get(name.rpartition(".")[2]))

    def score(self, kind: FieldKind, name: str) -> float:
        """Return the configured weight, or ``0.0`` when the field is unscored."""

        return self.scores.get(kind, {}).get(name, 0.0)

    def ranges_for(self, name: str) -> list[RangeBucket]:
        return list(self.ranges.get(name, []))

    def range_lookup(self, name: str) -> dict[str, RangeBucket]:
        """Buckets of ``name`` by selection key.

        Each bucket is reachable by its configured key and by its
        ``"<from>-<to>"`` form, which is what parsed range buckets are keyed by.
        """
        lookup: dict[str, RangeBucket] = {}
        for bucket in self.ranges.get(name, []):
            lookup.setdefault(range_key(bucket.lower, bucket.upper), bucket)
        for bucket in self.ranges.get(name, []):
            lookup[bucket.key] = bucket
        return lookup

    def has_ranges(self, name: str) -> bool:
        return self.is_numeric(name) and bool(self.ranges.get(name))

    def excluded_from_search(self) -> set[str]:
        if self.exclude_from_search is None:
            return {self.date_field}
        return set(self.exclude_from_search)

    def taxonomies_for(self, content_type: str) -> list[str]:
        """Configured taxonomies that apply to ``content_type``, in config order."""

        registered = self.type_taxonomies.get(content_type)
        if registered is None:
            return list(self.taxonomies)
        allowed = set(registered)
        return [taxonomy for taxonomy in self.taxonomies if taxonomy in allowed]

    @classmethod
    def from_json_file(cls, path: Path) -> "FieldConfig":
        """Load and validate a field configuration file.

        Raises:
            ConfigurationError: If the file is missing, is not JSON, or fails validation
        """
        if not path.exists():
            raise ConfigurationError(f"Field config not found: {path}")

        try:
            with path.open(encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Field config is not valid JSON: {path}: {e}") from e

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid field config {path}: {e}") from e
