"""Query execution and index administration abstractions.

Defines the engine boundary following the Repository Pattern: services talk
to these interfaces and never to an engine client directly.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

from faceted_search.domain.model import Document
from faceted_search.search.schema import Schema


class AbstractQueryExecutor(ABC):
    """Runs rendered queries against the engine."""

    @abstractmethod
    def execute(self, body: Mapping[str, Any]) -> Mapping[str, Any]:
        """Execute a rendered request body and return the raw engine response.

        Raises:
            QueryExecutionError: If the engine is unreachable or rejects the request
        """
        raise NotImplementedError


class AbstractIndexAdministrator(ABC):
    """Creates indexes, declares mappings and writes documents.

    Documents are grouped by content type (and one group per taxonomy); each
    group has its own mapping.
    """

    @abstractmethod
    def recreate(self, groups: Iterable[str], settings: Mapping[str, Any]) -> None:
        """Drop and create the storage of every group with ``settings``.

        Existing documents of those groups are lost.
        """
        raise NotImplementedError

    @abstractmethod
    def put_mapping(self, group: str, schema: Schema) -> None:
        """Declare ``schema`` for ``group``.

        Declaring a mapping that contradicts already indexed documents can
        break queries against them; recreate the group instead.
        """
        raise NotImplementedError

    @abstractmethod
    def bulk_index(self, group: str, documents: Iterable[tuple[str, Document]]) -> int:
        """Index ``(id, document)`` pairs and return how many were written."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, group: str, document_id: str) -> bool:
        """Delete one document; returns False when it did not exist."""
        raise NotImplementedError
