"""
Schema definition for the search index mapping.

Defines field types and schema structure for indexed documents. Supports:
- TextField: Analyzed full-text fields, optionally with a language sub-field
- KeywordField: Exact match fields (slugs, content types, partitions)
- NumericField: Numeric fields for range filters and aggregations
- DateField: Date fields stored without milliseconds
- NestedField: Sub-documents built from dotted metadata paths

Each field renders to the engine's mapping syntax with ``to_dict()`` and can
check a document value against its declared type, which is how documents
produced by the document builder are verified against the mapping produced
for the same field configuration.

Note: declaring a schema is not a migration. Sending a changed schema to an
index that already holds documents of a different shape can break queries
against those documents; recreate the index when mappings change materially.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
import re
from typing import Any


DATE_FORMAT_NO_MILLIS = "date_time_no_millis"

_DATE_NO_MILLIS_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(Z|[+-]\d{2}:?\d{2})$")


class FieldType(str, Enum):
    """Types of fields supported in the schema."""

    TEXT = "text"
    KEYWORD = "keyword"
    NUMERIC = "float"
    DATE = "date"
    NESTED = "nested"


def _each(value: Any) -> list[Any]:
    return list(value) if isinstance(value, list) else [value]


@dataclass(frozen=True)
class SchemaField(ABC):
    """Base class for all schema fields."""

    name: str

    @property
    @abstractmethod
    def field_type(self) -> FieldType:
        """Return the field type."""

    @property
    def analyzed(self) -> bool:
        return False

    @property
    def analyzer_name(self) -> str | None:
        return None

    @property
    def nested_properties(self) -> Schema | None:
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize the field to the engine mapping syntax."""
        return {"type": self.field_type.value}

    def conformance_errors(self, value: Any, path: str) -> list[str]:
        """Return human-readable mismatches between ``value`` and this field's type."""
        return [
            f"{path}: expected {self.field_type.value}, got {type(item).__name__}"
            for item in _each(value)
            if not self._accepts(item)
        ]

    @abstractmethod
    def _accepts(self, item: Any) -> bool: ...

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> SchemaField:
        """Deserialize a field from the engine mapping syntax."""
        field_type = FieldType(data.get("type", FieldType.NESTED.value if "properties" in data else "text"))

        if field_type == FieldType.TEXT:
            languages = [sub for sub, spec in data.get("fields", {}).items() if spec.get("analyzer") == sub]
            return TextField(
                name,
                analyzer=data.get("analyzer"),
                search_analyzer=data.get("search_analyzer"),
                language=languages[0] if languages else None,
            )
        if field_type == FieldType.KEYWORD:
            return KeywordField(name)
        if field_type == FieldType.NUMERIC:
            return NumericField(name)
        if field_type == FieldType.DATE:
            return DateField(name, format=data.get("format", DATE_FORMAT_NO_MILLIS))
        if field_type == FieldType.NESTED:
            return NestedField(name, properties=Schema.from_dict(data))
        msg = f"Unknown field type: {field_type}"
        raise ValueError(msg)


@dataclass(frozen=True)
class TextField(SchemaField):
    """
    Analyzed text field for full-text search.

    When ``language`` is set the field is a multi-representation field: the
    stored value is indexed once with the generic analyzer and once more in a
    sub-field named after the language (``title.english``), so queries can
    target either representation.

    Args:
        name: Field name (e.g., "title", "content")
        analyzer: Index-time analyzer (default: None = engine standard)
        search_analyzer: Query-time analyzer (default: same as analyzer)
        language: Language analyzer for the sub-field (default: None = no sub-field)
    """

    analyzer: str | None = None
    search_analyzer: str | None = None
    language: str | None = None

    @property
    def field_type(self) -> FieldType:
        return FieldType.TEXT

    @property
    def analyzed(self) -> bool:
        return True

    @property
    def analyzer_name(self) -> str | None:
        return self.analyzer

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.analyzer:
            data["analyzer"] = self.analyzer
        if self.search_analyzer:
            data["search_analyzer"] = self.search_analyzer
        if self.language:
            data["fields"] = {self.language: {"type": FieldType.TEXT.value, "analyzer": self.language}}
        return data

    def _accepts(self, item: Any) -> bool:
        # the engine indexes numbers in text fields by their string form
        return isinstance(item, (str, int, float))


@dataclass(frozen=True)
class KeywordField(SchemaField):
    """
    Exact-match keyword field.

    Keyword fields are indexed as-is without analysis. Use for:
    - Taxonomy slugs
    - Content type discriminators and partition ids
    - Any field filtered with exact term matches
    """

    @property
    def field_type(self) -> FieldType:
        return FieldType.KEYWORD

    def _accepts(self, item: Any) -> bool:
        return isinstance(item, (str, int, float))


@dataclass(frozen=True)
class NumericField(SchemaField):
    """Numeric field for range filters and range aggregations."""

    @property
    def field_type(self) -> FieldType:
        return FieldType.NUMERIC

    def _accepts(self, item: Any) -> bool:
        return isinstance(item, (int, float)) and not isinstance(item, bool)


@dataclass(frozen=True)
class DateField(SchemaField):
    """Date field; values are ISO-8601 strings without fractional seconds."""

    format: str = DATE_FORMAT_NO_MILLIS

    @property
    def field_type(self) -> FieldType:
        return FieldType.DATE

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["format"] = self.format
        return data

    def _accepts(self, item: Any) -> bool:
        return isinstance(item, str) and bool(_DATE_NO_MILLIS_PATTERN.match(item))


@dataclass(frozen=True)
class NestedField(SchemaField):
    """
    Nested sub-document field built from dotted paths.

    ``urls.title`` and ``urls.href`` declare one ``urls`` field whose
    properties are ``title`` and ``href``.
    """

    properties: Schema = field(default_factory=lambda: Schema(fields=[]))

    @property
    def field_type(self) -> FieldType:
        return FieldType.NESTED

    @property
    def nested_properties(self) -> Schema:
        return self.properties

    def with_property(self, child: SchemaField) -> NestedField:
        """Return a copy with ``child`` added (or replaced) in the nested properties."""
        merged = Schema(fields=list(self.properties.fields))
        merged.put(child)
        return replace(self, properties=merged)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["properties"] = self.properties.to_dict()["properties"]
        return data

    def conformance_errors(self, value: Any, path: str) -> list[str]:
        errors: list[str] = []
        for item in _each(value):
            if not isinstance(item, Mapping):
                errors.append(f"{path}: expected nested object, got {type(item).__name__}")
                continue
            errors.extend(self.properties.conformance_errors(item, prefix=path))
        return errors

    def _accepts(self, item: Any) -> bool:
        return isinstance(item, Mapping)


@dataclass
class Schema:
    """
    Field mapping for one document group (a content type or a taxonomy).

    Fields keep their insertion order; putting a field with an existing name
    replaces it in place.

    Example:
        schema = Schema(
            fields=[
                TextField("title", language="english"),
                KeywordField("content_type"),
                NumericField("price"),
                DateField("date"),
            ],
            name="post",
        )
    """

    fields: list[SchemaField]
    name: str = "default"

    def __post_init__(self) -> None:
        self._field_map: dict[str, SchemaField] = {}
        fields, self.fields = self.fields, []
        for schema_field in fields:
            self.put(schema_field)

    def put(self, schema_field: SchemaField) -> None:
        """Add ``schema_field`` or replace the field with the same name."""
        if schema_field.name in self._field_map:
            position = next(i for i, existing in enumerate(self.fields) if existing.name == schema_field.name)
            self.fields[position] = schema_field
        else:
            self.fields.append(schema_field)
        self._field_map[schema_field.name] = schema_field

    def get(self, name: str) -> SchemaField | None:
        return self._field_map.get(name)

    def __getitem__(self, name: str) -> SchemaField:
        """Get field by name."""
        return self._field_map[name]

    def __contains__(self, name: str) -> bool:
        """Check if field exists."""
        return name in self._field_map

    def __iter__(self) -> Iterator[SchemaField]:
        """Iterate over fields."""
        return iter(self.fields)

    def __len__(self) -> int:
        """Return number of fields."""
        return len(self.fields)

    @property
    def names(self) -> list[str]:
        return [f.name for f in self.fields]

    def conformance_errors(self, document: Mapping[str, Any], *, prefix: str = "") -> list[str]:
        """Check every declared field present in ``document`` against its type.

        Keys without a declaration are left to the engine's dynamic mapping and
        are not reported.
        """
        errors: list[str] = []
        for key, value in document.items():
            schema_field = self._field_map.get(key)
            if schema_field is None or value is None:
                continue
            path = f"{prefix}.{key}" if prefix else key
            errors.extend(schema_field.conformance_errors(value, path))
        return errors

    def to_dict(self) -> dict[str, Any]:
        """Serialize schema to the engine mapping body."""
        return {"properties": {f.name: f.to_dict() for f in self.fields}}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], name: str = "default") -> Schema:
        """Deserialize schema from a mapping body."""
        properties = data.get("properties", {})
        return cls(fields=[SchemaField.from_dict(key, spec) for key, spec in properties.items()], name=name)
