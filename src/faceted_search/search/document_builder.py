"""Document construction for content records and taxonomy terms.

A document is assembled in four independent stages, each routed through an
extension point before it is merged:

1. record fields listed in the field configuration (``document.field``)
2. dynamic fields computed from the record (``document.dynamic``)
3. configured metadata paths (``document.meta``)
4. taxonomy memberships with their ancestors (``document.taxonomy``)

Values are coerced to the types the mapping builder declares for the same
configuration, so a built document always conforms to its schema. Anything
that cannot be coerced is left out; building a document never fails because
of the record's data.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import date, datetime, timezone
import logging
import math
from typing import Any

from bs4 import BeautifulSoup

from faceted_search.domain.model import Document, Record, TermLookup, TermNode
from faceted_search.field_config import FieldConfig
from faceted_search.observability.context import bind_partition
from faceted_search.observability.metrics import DOCUMENTS_BUILT
from faceted_search.observability.tracing import create_span
from faceted_search.search.extensions import Extensions
from faceted_search.search.mapping_builder import LINK_FIELD, MappingBuilder
from faceted_search.search.metadata import select_flat, select_structured
from faceted_search.search.schema import DateField, NestedField, NumericField, Schema, SchemaField
from faceted_search.search.taxonomy import TaxonomyExpander


logger = logging.getLogger(__name__)

DynamicField = Callable[[Record], Any]


def _permalink(record: Record) -> str | None:
    return record.link


DEFAULT_DYNAMIC_FIELDS: dict[str, DynamicField] = {LINK_FIELD: _permalink}


def strip_markup(text: str) -> str:
    """Return the visible text of an HTML fragment."""
    if "<" not in text:
        return text
    return BeautifulSoup(text, "html.parser").get_text()


def to_iso_datetime(value: Any) -> str | None:
    """Normalize a date-like value to ISO-8601 without fractional seconds.

    Naive values are taken as UTC. Returns ``None`` when the value is not a date.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        try:
            moment = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        try:
            moment = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.replace(microsecond=0).isoformat()


def to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


class DocumentBuilder:
    """Turn records into indexable documents.

    Args:
        term_lookup: Resolves parent terms during taxonomy expansion
        partition: Active content partition written into every document
        extensions: Extension points applied at every stage
        dynamic_fields: Computed fields (name -> callable receiving the record);
            defaults to the record's permalink under ``link``
    """

    def __init__(
        self,
        term_lookup: TermLookup,
        partition: str,
        *,
        extensions: Extensions | None = None,
        dynamic_fields: Mapping[str, DynamicField] | None = None,
    ) -> None:
        self.partition = partition
        self.extensions = extensions or Extensions()
        self.dynamic_fields = dict(DEFAULT_DYNAMIC_FIELDS if dynamic_fields is None else dynamic_fields)
        self.expander = TaxonomyExpander(term_lookup, self.extensions)
        self.mapping_builder = MappingBuilder(self.extensions)

    def build(self, record: Record, field_config: FieldConfig) -> Document:
        with (
            bind_partition(self.partition),
            create_span(
                "document.build",
                attributes={"document.id": str(record.id), "document.content_type": record.content_type or ""},
            ),
        ):
            document: Document = {}
            document.update(self._build_field_values(record, field_config))
            document.update(self._build_dynamic_values(record, field_config))
            document.update(self._build_meta_values(record, field_config))
            document.update(self._build_taxonomy_values(record, field_config))
            document = self.extensions.apply("document", document, record)

        DOCUMENTS_BUILT.labels(kind="record").inc()
        return document

    def build_term(self, term: TermNode) -> Document:
        """Document for a taxonomy term, matching ``MappingBuilder.build_taxonomy``."""
        DOCUMENTS_BUILT.labels(kind="term").inc()
        return {"name": term.name, "name_suggest": term.name, "slug": term.slug}

    def _build_field_values(self, record: Record, field_config: FieldConfig) -> Document:
        schema = self.mapping_builder.build_kind(field_config.fields, "field", field_config)
        values: Document = {}
        for name in field_config.fields:
            raw = record.fields.get(name)
            if raw is None and name == field_config.content_type_field:
                raw = record.content_type
            if raw is None:
                continue

            value = self._conform(raw, schema.get(name), name)
            if value is not None and name == field_config.content_field and isinstance(value, str):
                value = strip_markup(value)
            value = self.extensions.apply("document.field", value, record, key=name)
            if value is None:
                continue

            values[name] = value
            if name == field_config.title_field:
                values[f"{name}_suggest"] = value
        return values

    def _build_dynamic_values(self, record: Record, field_config: FieldConfig) -> Document:
        values: Document = {}
        for name, compute in self.dynamic_fields.items():
            value = compute(record)
            if value is not None:
                values[name] = value
        values[field_config.partition_field] = self.partition
        return self.extensions.apply("document.dynamic", values, record)

    def _build_meta_values(self, record: Record, field_config: FieldConfig) -> Document:
        if not field_config.meta_fields:
            return {}

        if record.metadata is not None:
            selected = select_structured(record.metadata, field_config.meta_fields)
        else:
            selected = select_flat(record.flat_meta, field_config.meta_fields)

        schema = self.mapping_builder.build_kind(field_config.meta_fields, "meta", field_config)
        values: Document = {}
        for key, raw in selected.items():
            value = self._conform(raw, schema.get(key), key)
            if value is not None:
                values[key] = value
        return self.extensions.apply("document.meta", values, record)

    def _build_taxonomy_values(self, record: Record, field_config: FieldConfig) -> Document:
        values: Document = {}
        for taxonomy, expansion in self.expander.expand(record, field_config).items():
            entry = {
                taxonomy: list(expansion.slugs),
                f"{taxonomy}_name": list(expansion.names),
                f"{taxonomy}_suggest": list(expansion.suggest),
            }
            values.update(self.extensions.apply("document.taxonomy", entry, record, key=taxonomy))
        return values

    def _conform(self, value: Any, schema_field: SchemaField | None, path: str) -> Any:
        """Coerce ``value`` to the declared type of ``schema_field``; ``None`` drops it."""
        if isinstance(value, list):
            items = [self._conform(item, schema_field, path) for item in value]
            items = [item for item in items if item is not None]
            return items or None

        if isinstance(schema_field, NestedField):
            if not isinstance(value, Mapping):
                logger.debug("Dropping non-object value for nested field '%s'", path)
                return None
            return self._conform_object(value, schema_field.properties, path)

        if isinstance(value, Mapping):
            logger.debug("Dropping object value for scalar field '%s'", path)
            return None

        if isinstance(schema_field, NumericField):
            number = to_number(value)
            if number is None:
                logger.debug("Dropping non-numeric value %r for '%s'", value, path)
            return number

        if isinstance(schema_field, DateField):
            normalized = to_iso_datetime(value)
            if normalized is None:
                logger.debug("Dropping unparseable date %r for '%s'", value, path)
            return normalized

        return value

    def _conform_object(self, value: Mapping[str, Any], properties: Schema, path: str) -> Document | None:
        conformed: Document = {}
        for key, item in value.items():
            coerced = self._conform(item, properties.get(key), f"{path}.{key}")
            if coerced is not None:
                conformed[key] = coerced
        return conformed or None
