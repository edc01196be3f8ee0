"""Taxonomy ancestor expansion.

A record is indexed under every term it is assigned to *and* every ancestor
of those terms, so that filtering on a parent category also matches content
filed under its children.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

from faceted_search.domain.model import Record, TermLookup, TermNode
from faceted_search.field_config import FieldConfig
from faceted_search.search.extensions import Extensions


logger = logging.getLogger(__name__)


@dataclass
class TaxonomyExpansion:
    """Parallel slug/name/suggest lists for one taxonomy.

    The three lists are always appended together so they stay index-aligned.
    """

    slugs: list[str] = field(default_factory=list)
    names: list[str] = field(default_factory=list)
    suggest: list[str] = field(default_factory=list)

    def add(self, node: TermNode) -> bool:
        if node.slug in self.slugs:
            return False
        self.slugs.append(node.slug)
        self.names.append(node.name)
        self.suggest.append(node.name)
        return True

    def __bool__(self) -> bool:
        return bool(self.slugs)


class TaxonomyExpander:
    """Compute the transitive closure of a record's term memberships."""

    def __init__(self, term_lookup: TermLookup, extensions: Extensions | None = None) -> None:
        self.term_lookup = term_lookup
        self.extensions = extensions or Extensions()

    def expand(self, record: Record, field_config: FieldConfig) -> dict[str, TaxonomyExpansion]:
        if not record.content_type:
            logger.debug("Record %s has no content type; skipping taxonomy expansion", record.id)
            return {}

        expansions: dict[str, TaxonomyExpansion] = {}
        for taxonomy in field_config.taxonomies_for(record.content_type):
            memberships = [m for m in record.memberships if m.taxonomy == taxonomy]
            if not memberships:
                continue

            include_ancestors = bool(self.extensions.apply("taxonomy.ancestors", True, taxonomy, key=taxonomy))
            expansion = TaxonomyExpansion()
            for membership in memberships:
                self._walk(taxonomy, membership.as_node(), expansion, include_ancestors)

            if expansion:
                expansions[taxonomy] = expansion
        return expansions

    def _walk(self, taxonomy: str, start: TermNode, expansion: TaxonomyExpansion, include_ancestors: bool) -> None:
        expansion.add(start)
        if not include_ancestors:
            return

        visited = {start.id}
        parent_id = start.parent_id
        while parent_id:
            if parent_id in visited:
                logger.warning(
                    "Cyclic parent chain in taxonomy '%s' at term %s (started from %s)",
                    taxonomy,
                    parent_id,
                    start.slug,
                )
                return
            visited.add(parent_id)

            parent = self.term_lookup(taxonomy, parent_id)
            if parent is None:
                logger.debug("Term %s missing from taxonomy '%s'", parent_id, taxonomy)
                return
            expansion.add(parent)
            parent_id = parent.parent_id
