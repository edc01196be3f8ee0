"""Search and indexing orchestration.

Wires the pure builders and compilers to the engine boundary. Engine
failures during search are returned as ``SearchFailure`` values, never
raised; nothing here retries.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
import logging
from typing import Any

from faceted_search.adapters.search_executor import AbstractIndexAdministrator, AbstractQueryExecutor
from faceted_search.domain.model import Record, TermNode
from faceted_search.domain.search import ResultWindow, SearchFailure, SearchResult, SortOrder, SuggestionResult
from faceted_search.errors import QueryExecutionError
from faceted_search.field_config import FieldConfig
from faceted_search.observability.metrics import SEARCH_ERRORS, SEARCH_LATENCY, track_latency
from faceted_search.observability.tracing import create_span
from faceted_search.search.document_builder import DocumentBuilder
from faceted_search.search.mapping_builder import DEFAULT_GROUP, MappingBuilder, taxonomy_group
from faceted_search.search.query import EmptyQuery
from faceted_search.search.query_compiler import QueryCompiler
from faceted_search.search.result_parser import ResultParser
from faceted_search.search.suggester import Suggester


logger = logging.getLogger(__name__)


class SearchService:
    """High-level search orchestration service.

    Compiles the request, skips the round trip for empty queries, executes
    the rendered body and parses the response.
    """

    def __init__(
        self,
        compiler: QueryCompiler,
        executor: AbstractQueryExecutor,
        field_config: FieldConfig,
        *,
        parser: ResultParser | None = None,
        suggester: Suggester | None = None,
        page_size: int = 10,
        default_sort: SortOrder = SortOrder.SCORE,
    ):
        """Initialize search service with dependencies.

        Args:
            compiler: Query compiler bound to the active partition
            executor: Engine boundary running rendered queries
            field_config: Field configuration every request is compiled against
            parser: Response parser (default: one sharing the compiler's extensions)
            suggester: Autocomplete path (default: one built on ``compiler``)
            page_size: Hits per page when the caller gives no size
            default_sort: Ordering when the caller gives none
        """
        self.compiler = compiler
        self.executor = executor
        self.field_config = field_config
        self.parser = parser or ResultParser(compiler.extensions)
        self.suggester = suggester or Suggester(compiler)
        self.page_size = page_size
        self.default_sort = default_sort

    def search(
        self,
        text: str | None = None,
        facets: Mapping[str, Any] | None = None,
        *,
        page_index: int = 0,
        size: int | None = None,
        sort: SortOrder | None = None,
    ) -> SearchResult | SearchFailure:
        with (
            track_latency(SEARCH_LATENCY, operation="search"),
            create_span("search.execute", attributes={"search.page": page_index}) as span,
        ):
            compiled = self.compiler.compile(text, facets, self.field_config)
            if isinstance(compiled, EmptyQuery):
                span.set_attribute("search.empty", True)
                return SearchResult.empty()

            window = ResultWindow.for_page(page_index, size or self.page_size)
            body = compiled.render(window, sort or self.default_sort)
            try:
                raw = self.executor.execute(body)
            except QueryExecutionError as e:
                return self._failure("search", e)

            result = self.parser.parse(raw)
            span.set_attribute("search.total", result.total)

        logger.debug("Search returned %d of %d hits", len(result.ids), result.total)
        return result

    def suggest(
        self,
        text: str | None,
        categories: Mapping[str, Any] | None = None,
        *,
        size: int | None = None,
    ) -> SuggestionResult | SearchFailure:
        with track_latency(SEARCH_LATENCY, operation="suggest"), create_span("search.suggest"):
            body = self.suggester.compile(text, self.field_config, categories, size)
            if body is None:
                return SuggestionResult()

            try:
                raw = self.executor.execute(body)
            except QueryExecutionError as e:
                return self._failure("suggest", e)
            return self.suggester.parse(raw, self.field_config)

    @staticmethod
    def _failure(operation: str, error: QueryExecutionError) -> SearchFailure:
        logger.warning("%s failed: %s", operation.capitalize(), error)
        cause = error.cause or error
        SEARCH_ERRORS.labels(operation=operation, error_type=type(cause).__name__).inc()
        return SearchFailure(message=str(error), cause=cause)


@dataclass
class IndexingReport:
    """Outcome of an indexing run, per document group."""

    written: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.written.values())


class IndexingService:
    """Build documents and mappings and hand them to the index administrator."""

    def __init__(
        self,
        builder: DocumentBuilder,
        administrator: AbstractIndexAdministrator,
        field_config: FieldConfig,
        *,
        mapping_builder: MappingBuilder | None = None,
    ):
        self.builder = builder
        self.administrator = administrator
        self.field_config = field_config
        self.mapping_builder = mapping_builder or MappingBuilder(builder.extensions)

    def groups(self, content_types: Iterable[str]) -> list[str]:
        """Every document group for ``content_types``, taxonomy groups last."""
        groups = list(dict.fromkeys(content_types)) or [DEFAULT_GROUP]
        groups += [taxonomy_group(taxonomy) for taxonomy in self.field_config.taxonomies]
        return groups

    def recreate_index(self, content_types: Iterable[str], index_settings: Mapping[str, Any]) -> list[str]:
        """Drop, create and map every group. All indexed documents are lost."""
        content_types = list(dict.fromkeys(content_types))
        groups = self.groups(content_types)

        with create_span("index.recreate", attributes={"index.groups": len(groups)}):
            self.administrator.recreate(groups, index_settings)
            for content_type in content_types or [None]:
                schema = self.mapping_builder.build(self.field_config, content_type)
                self.administrator.put_mapping(content_type or DEFAULT_GROUP, schema)
            for taxonomy in self.field_config.taxonomies:
                self.administrator.put_mapping(taxonomy_group(taxonomy), self.mapping_builder.build_taxonomy(taxonomy))

        logger.info("Recreated %d document groups", len(groups))
        return groups

    def index_records(self, records: Iterable[Record]) -> IndexingReport:
        """Build and bulk-index ``records``, one request per content type."""
        grouped: dict[str, list[tuple[str, dict[str, Any]]]] = {}
        for record in records:
            document = self.builder.build(record, self.field_config)
            grouped.setdefault(record.content_type or DEFAULT_GROUP, []).append((str(record.id), document))

        report = IndexingReport()
        for group, documents in grouped.items():
            report.written[group] = self.administrator.bulk_index(group, documents)
        logger.info("Indexed %d records into %d groups", report.total, len(report.written))
        return report

    def index_terms(self, taxonomy: str, terms: Iterable[TermNode]) -> int:
        documents = [(str(term.id), self.builder.build_term(term)) for term in terms]
        return self.administrator.bulk_index(taxonomy_group(taxonomy), documents)

    def delete_record(self, record: Record) -> bool:
        return self.administrator.delete(record.content_type or DEFAULT_GROUP, str(record.id))

    def delete_term(self, taxonomy: str, term: TermNode) -> bool:
        return self.administrator.delete(taxonomy_group(taxonomy), str(term.id))
