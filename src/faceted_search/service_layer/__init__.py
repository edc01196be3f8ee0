"""Service layer - use case orchestration.

- Search and suggestion requests against a query executor
- Index recreation, mapping and bulk indexing through an index administrator
"""

from .search_service import IndexingReport, IndexingService, SearchService


__all__ = [
    "IndexingReport",
    "IndexingService",
    "SearchService",
]
