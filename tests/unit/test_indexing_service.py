"""Unit tests for the indexing service."""

import pytest

from faceted_search.adapters.search_executor import AbstractIndexAdministrator
from faceted_search.domain.model import Record, TermNode
from faceted_search.search.document_builder import DocumentBuilder
from faceted_search.service_layer.search_service import IndexingReport, IndexingService


class FakeAdministrator(AbstractIndexAdministrator):
    def __init__(self):
        self.recreated = []
        self.mappings = {}
        self.indexed = {}
        self.deleted = []

    def recreate(self, groups, settings):
        self.recreated.append((list(groups), dict(settings)))

    def put_mapping(self, group, schema):
        self.mappings[group] = schema

    def bulk_index(self, group, documents):
        documents = list(documents)
        self.indexed.setdefault(group, []).extend(documents)
        return len(documents)

    def delete(self, group, document_id):
        self.deleted.append((group, document_id))
        return document_id != "missing"


@pytest.fixture
def administrator():
    return FakeAdministrator()


@pytest.fixture
def service(term_store, administrator, field_config):
    return IndexingService(DocumentBuilder(term_store, "1"), administrator, field_config)


@pytest.mark.unit
class TestRecreateIndex:
    def test_groups_include_one_per_taxonomy(self, service):
        assert service.groups(["post", "page", "post"]) == ["post", "page", "taxonomy_category", "taxonomy_tag"]
        assert service.groups([]) == ["default", "taxonomy_category", "taxonomy_tag"]

    def test_recreate_maps_every_group(self, service, administrator):
        groups = service.recreate_index(["post", "page"], {"number_of_shards": 1})

        assert administrator.recreated == [(groups, {"number_of_shards": 1})]
        assert set(administrator.mappings) == set(groups)
        assert "title_suggest" in administrator.mappings["post"]
        assert administrator.mappings["taxonomy_tag"].names == ["name_suggest", "name", "slug"]

    def test_recreate_without_content_types_uses_the_default_group(self, service, administrator):
        service.recreate_index([], {})

        assert "default" in administrator.mappings


@pytest.mark.unit
class TestIndexing:
    def test_records_are_grouped_by_content_type(self, service, administrator, record):
        page = Record(id=7, content_type="page", fields={"title": "About"})
        untyped = Record(id=8, fields={"title": "Loose"})

        report = service.index_records([record, page, untyped])

        assert report == IndexingReport(written={"post": 1, "page": 1, "default": 1})
        assert report.total == 3
        document_id, document = administrator.indexed["post"][0]
        assert document_id == "42"
        assert document["category"] == ["solar", "energy", "science"]

    def test_terms(self, service, administrator):
        written = service.index_terms("category", [TermNode(id=1, slug="science", name="Science")])

        assert written == 1
        assert administrator.indexed["taxonomy_category"] == [
            ("1", {"name": "Science", "name_suggest": "Science", "slug": "science"})
        ]

    def test_deletes(self, service, administrator, record):
        assert service.delete_record(record) is True
        assert service.delete_term("tag", TermNode(id=10, slug="diy", name="DIY")) is True
        assert service.delete_record(Record(id="missing")) is False
        assert administrator.deleted == [("post", "42"), ("taxonomy_tag", "10"), ("default", "missing")]
