"""Field mapping construction.

Turns a ``FieldConfig`` into the ``Schema`` an index must declare before it
accepts documents: one schema per content type grouping, plus a fixed schema
per taxonomy for term documents.

Type inference, first match wins:

1. numeric override -> numeric
2. not-analyzed override, any taxonomy, or the content type field -> keyword
3. the date field -> date without milliseconds
4. anything else -> analyzed text with a language sub-field

Dotted metadata paths (``urls.title``) become a nested field per prefix;
paths sharing a prefix merge into one nested field.

Sending a schema to an index that already holds documents of a different
shape is not prevented here. Recreate the index when a mapping changes
materially, otherwise queries against existing documents can break.
"""

from __future__ import annotations

from collections.abc import Iterable
import logging

from faceted_search.field_config import FieldConfig, FieldKind
from faceted_search.observability.tracing import create_span
from faceted_search.search.analysis import NGRAM_ANALYZER, WHITESPACE_ANALYZER
from faceted_search.search.extensions import Extensions
from faceted_search.search.metadata import normalize_meta_path
from faceted_search.search.schema import (
    DateField,
    KeywordField,
    NestedField,
    NumericField,
    Schema,
    SchemaField,
    TextField,
)


logger = logging.getLogger(__name__)

DEFAULT_GROUP = "default"
# Permalink written by the default dynamic field
LINK_FIELD = "link"


def taxonomy_group(taxonomy: str) -> str:
    """Name of the document group holding term documents of ``taxonomy``."""
    return f"taxonomy_{taxonomy}"


def suggest_field(name: str) -> TextField:
    """Edge-ngram analyzed autocomplete field."""
    return TextField(name, analyzer=NGRAM_ANALYZER, search_analyzer=WHITESPACE_ANALYZER)


class MappingBuilder:
    """Build index schemas from a field configuration."""

    def __init__(self, extensions: Extensions | None = None) -> None:
        self.extensions = extensions or Extensions()

    def infer(self, path: str, kind: FieldKind, field_config: FieldConfig) -> SchemaField:
        """Infer the schema field for a non-nested ``path``.

        ``path`` may be a dotted nested path; the returned field is named
        after its last segment.
        """
        name = path.rpartition(".")[2]
        if field_config.is_numeric(path):
            return NumericField(name)
        if field_config.is_not_analyzed(path) or kind == "taxonomy" or path == field_config.content_type_field:
            return KeywordField(name)
        if path == field_config.date_field:
            return DateField(name)
        return TextField(name, language=field_config.analyzer_language)

    def build(self, field_config: FieldConfig, content_type: str | None = None) -> Schema:
        """Build the schema for one content type grouping.

        Without ``content_type`` every configured taxonomy is declared;
        otherwise only the taxonomies registered for that type.
        """
        group = content_type or DEFAULT_GROUP
        with create_span("mapping.build", attributes={"mapping.group": group}) as span:
            taxonomies = field_config.taxonomies_for(content_type) if content_type else field_config.taxonomies

            schema = Schema(fields=[], name=group)
            self._map_values(schema, taxonomies, "taxonomy", field_config)
            self._map_values(schema, field_config.fields, "field", field_config)
            self._map_values(schema, field_config.meta_fields, "meta", field_config)

            schema.put(suggest_field(f"{field_config.title_field}_suggest"))
            if LINK_FIELD not in schema:
                schema.put(KeywordField(LINK_FIELD))
            if field_config.partition_field not in schema:
                schema.put(KeywordField(field_config.partition_field))

            schema = self.extensions.apply("mapping", schema, content_type, key=content_type)
            span.set_attribute("mapping.fields", len(schema))
        logger.debug("Built mapping for '%s' with %d fields", group, len(schema))
        return schema

    def build_taxonomy(self, taxonomy: str) -> Schema:
        """Fixed schema for term documents of ``taxonomy``."""
        group = taxonomy_group(taxonomy)
        schema = Schema(
            fields=[suggest_field("name_suggest"), TextField("name"), KeywordField("slug")],
            name=group,
        )
        return self.extensions.apply("mapping", schema, group, key=group)

    def build_kind(self, names: Iterable[str], kind: FieldKind, field_config: FieldConfig) -> Schema:
        """Schema covering only ``names`` of one kind, with extension points applied."""
        schema = Schema(fields=[], name=kind)
        self._map_values(schema, names, kind, field_config)
        return schema

    def _map_values(
        self,
        schema: Schema,
        names: Iterable[str],
        kind: FieldKind,
        field_config: FieldConfig,
        prefix: str = "",
    ) -> None:
        grouped: dict[str, list[str]] = {}
        for raw in names:
            name = normalize_meta_path(raw) if kind == "meta" else raw
            head, dot, remainder = name.partition(".")
            children = grouped.setdefault(head, [])
            if dot:
                children.append(remainder)

        for head, children in grouped.items():
            path = f"{prefix}.{head}" if prefix else head
            if children:
                properties = Schema(fields=[], name=path)
                self._map_values(properties, children, kind, field_config, prefix=path)
                computed: SchemaField = NestedField(head, properties=properties)
                existing = schema.get(head)
                if isinstance(existing, NestedField):
                    for child in properties:
                        existing = existing.with_property(child)
                    computed = existing
            else:
                computed = self.infer(path, kind, field_config)

            computed = self.extensions.apply(f"mapping.{kind}", computed, path, key=path)
            schema.put(computed)

            if kind == "taxonomy" and not prefix:
                name_field = self.extensions.apply("mapping.taxonomy_name", TextField(f"{head}_name"), head, key=head)
                schema.put(name_field)
                schema.put(suggest_field(f"{head}_suggest"))
