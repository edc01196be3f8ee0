"""Adapters layer - engine boundary implementations.

Following Cosmic Python Chapter 2: Repository Pattern
Services depend on the abstract executor/administrator; the Elasticsearch
classes are one implementation of them.
"""

from .elasticsearch import ElasticsearchIndexAdministrator, ElasticsearchQueryExecutor, build_client
from .search_executor import AbstractIndexAdministrator, AbstractQueryExecutor


__all__ = [
    "AbstractIndexAdministrator",
    "AbstractQueryExecutor",
    "ElasticsearchIndexAdministrator",
    "ElasticsearchQueryExecutor",
    "build_client",
]
