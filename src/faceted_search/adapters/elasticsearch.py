"""Elasticsearch implementations of the engine boundary.

Each document group lives in its own index named ``<prefix>-<group>``;
searches run against ``<prefix>-*`` and rely on the partition filter to keep
term documents (which carry no partition) out of results and counts.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import logging
from typing import Any

from elasticsearch import ApiError, Elasticsearch, NotFoundError, TransportError
from elasticsearch.helpers import BulkIndexError, bulk

from faceted_search.adapters.search_executor import AbstractIndexAdministrator, AbstractQueryExecutor
from faceted_search.config import Settings
from faceted_search.domain.model import Document
from faceted_search.errors import IndexAdministrationError, QueryExecutionError
from faceted_search.search.schema import Schema


logger = logging.getLogger(__name__)

# Request body keys whose client keyword differs
_PARAMETER_ALIASES = {"from": "from_", "_source": "source"}


def build_client(settings: Settings, *, write: bool = False) -> Elasticsearch:
    """Client for ``settings.server_url``; write clients get the longer timeout."""
    timeout = settings.write_timeout if write else settings.read_timeout
    return Elasticsearch(settings.server_url, request_timeout=timeout)


def _response_body(response: Any) -> Any:
    return getattr(response, "body", response)


def index_name(prefix: str, group: str) -> str:
    return f"{prefix}-{group}".lower()


class ElasticsearchQueryExecutor(AbstractQueryExecutor):
    def __init__(self, client: Elasticsearch, index: str) -> None:
        self.client = client
        self.index = index

    @classmethod
    def from_settings(cls, settings: Settings) -> ElasticsearchQueryExecutor:
        return cls(build_client(settings), f"{settings.index_name}-*")

    def execute(self, body: Mapping[str, Any]) -> Mapping[str, Any]:
        params = {_PARAMETER_ALIASES.get(key, key): value for key, value in body.items()}
        try:
            response = self.client.search(index=self.index, **params)
        except (ApiError, TransportError) as e:
            raise QueryExecutionError(f"Search against '{self.index}' failed: {e}", cause=e) from e
        return _response_body(response)


class ElasticsearchIndexAdministrator(AbstractIndexAdministrator):
    def __init__(self, client: Elasticsearch, prefix: str) -> None:
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_settings(cls, settings: Settings) -> ElasticsearchIndexAdministrator:
        return cls(build_client(settings, write=True), settings.write_index())

    def index_for(self, group: str) -> str:
        return index_name(self.prefix, group)

    def recreate(self, groups: Iterable[str], settings: Mapping[str, Any]) -> None:
        for group in groups:
            name = self.index_for(group)
            try:
                self.client.indices.delete(index=name, ignore_unavailable=True)
                self.client.indices.create(index=name, settings=dict(settings))
            except (ApiError, TransportError) as e:
                raise IndexAdministrationError(f"Could not recreate index '{name}': {e}", cause=e) from e
            logger.info("Recreated index %s", name)

    def put_mapping(self, group: str, schema: Schema) -> None:
        name = self.index_for(group)
        try:
            self.client.indices.put_mapping(index=name, properties=schema.to_dict()["properties"])
        except (ApiError, TransportError) as e:
            raise IndexAdministrationError(f"Could not put mapping on '{name}': {e}", cause=e) from e
        logger.debug("Mapped %d fields on %s", len(schema), name)

    def bulk_index(self, group: str, documents: Iterable[tuple[str, Document]]) -> int:
        name = self.index_for(group)
        actions = ({"_index": name, "_id": document_id, "_source": document} for document_id, document in documents)
        try:
            written, _ = bulk(self.client, actions)
        except BulkIndexError as e:
            raise IndexAdministrationError(
                f"{len(e.errors)} documents rejected by '{name}'",
                cause=e,
            ) from e
        except (ApiError, TransportError) as e:
            raise IndexAdministrationError(f"Bulk indexing into '{name}' failed: {e}", cause=e) from e
        return written

    def delete(self, group: str, document_id: str) -> bool:
        name = self.index_for(group)
        try:
            self.client.delete(index=name, id=document_id)
        except NotFoundError:
            return False
        except (ApiError, TransportError) as e:
            raise IndexAdministrationError(f"Could not delete '{document_id}' from '{name}': {e}", cause=e) from e
        return True
