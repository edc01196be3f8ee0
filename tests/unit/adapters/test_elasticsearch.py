"""Unit tests for the Elasticsearch executor and index administrator."""

from types import SimpleNamespace
from unittest.mock import MagicMock, Mock

from elasticsearch import ConnectionError as TransportConnectionError, NotFoundError
from elasticsearch.helpers import BulkIndexError
import pytest

from faceted_search.adapters import elasticsearch as es_module
from faceted_search.adapters.elasticsearch import (
    ElasticsearchIndexAdministrator,
    ElasticsearchQueryExecutor,
    build_client,
    index_name,
)
from faceted_search.config import Settings
from faceted_search.errors import IndexAdministrationError, QueryExecutionError
from faceted_search.search.schema import KeywordField, Schema, TextField


@pytest.fixture
def client():
    return MagicMock()


@pytest.mark.unit
def test_index_name_is_lowercased():
    assert index_name("Content", "Product") == "content-product"
    assert index_name("content", "taxonomy_category") == "content-taxonomy_category"


@pytest.mark.unit
def test_build_client_uses_read_and_write_timeouts(monkeypatch):
    created = []
    monkeypatch.setattr(es_module, "Elasticsearch", lambda url, **kwargs: created.append((url, kwargs)))

    build_client(Settings())
    build_client(Settings(), write=True)

    assert created == [
        ("http://localhost:9200", {"request_timeout": 1.0}),
        ("http://localhost:9200", {"request_timeout": 300.0}),
    ]


@pytest.mark.unit
class TestQueryExecutor:
    def test_body_keys_are_passed_as_client_parameters(self, client):
        client.search.return_value = SimpleNamespace(body={"hits": {"total": {"value": 0}, "hits": []}})
        executor = ElasticsearchQueryExecutor(client, "content-*")

        response = executor.execute({"query": {"match_all": {}}, "from": 20, "size": 10, "_source": ["title"]})

        client.search.assert_called_once_with(
            index="content-*",
            query={"match_all": {}},
            from_=20,
            size=10,
            source=["title"],
        )
        assert response == {"hits": {"total": {"value": 0}, "hits": []}}

    def test_plain_dict_responses(self, client):
        client.search.return_value = {"hits": {"hits": []}}

        assert ElasticsearchQueryExecutor(client, "content-*").execute({}) == {"hits": {"hits": []}}

    def test_transport_errors_become_execution_errors(self, client):
        error = TransportConnectionError("connection refused")
        client.search.side_effect = error

        with pytest.raises(QueryExecutionError) as exc_info:
            ElasticsearchQueryExecutor(client, "content-*").execute({"size": 1})

        assert exc_info.value.cause is error
        assert "content-*" in str(exc_info.value)

    def test_from_settings_searches_every_group(self, monkeypatch):
        monkeypatch.setattr(es_module, "build_client", lambda settings, write=False: "client")

        executor = ElasticsearchQueryExecutor.from_settings(Settings())

        assert executor.client == "client"
        assert executor.index == "content-*"


@pytest.mark.unit
class TestIndexAdministrator:
    def test_recreate_drops_and_creates_each_group(self, client):
        administrator = ElasticsearchIndexAdministrator(client, "content")

        administrator.recreate(["post", "taxonomy_category"], {"number_of_shards": 1})

        assert client.indices.delete.call_args_list[0].kwargs == {
            "index": "content-post",
            "ignore_unavailable": True,
        }
        client.indices.create.assert_any_call(index="content-taxonomy_category", settings={"number_of_shards": 1})
        assert client.indices.create.call_count == 2

    def test_recreate_failure(self, client):
        client.indices.create.side_effect = TransportConnectionError("down")

        with pytest.raises(IndexAdministrationError, match="content-post"):
            ElasticsearchIndexAdministrator(client, "content").recreate(["post"], {})

    def test_put_mapping_sends_properties(self, client):
        schema = Schema(fields=[TextField("title"), KeywordField("slug")])

        ElasticsearchIndexAdministrator(client, "content").put_mapping("post", schema)

        client.indices.put_mapping.assert_called_once_with(
            index="content-post",
            properties={"title": {"type": "text"}, "slug": {"type": "keyword"}},
        )

    def test_bulk_index_builds_actions(self, client, monkeypatch):
        captured = {}

        def fake_bulk(es_client, actions):
            captured["client"] = es_client
            captured["actions"] = list(actions)
            return len(captured["actions"]), []

        monkeypatch.setattr(es_module, "bulk", fake_bulk)

        written = ElasticsearchIndexAdministrator(client, "content").bulk_index(
            "post",
            [("1", {"title": "A"}), ("2", {"title": "B"})],
        )

        assert written == 2
        assert captured["client"] is client
        assert captured["actions"] == [
            {"_index": "content-post", "_id": "1", "_source": {"title": "A"}},
            {"_index": "content-post", "_id": "2", "_source": {"title": "B"}},
        ]

    def test_bulk_index_rejections(self, client, monkeypatch):
        def fake_bulk(es_client, actions):
            raise BulkIndexError("2 document(s) failed to index.", [{"index": {}}, {"index": {}}])

        monkeypatch.setattr(es_module, "bulk", fake_bulk)

        with pytest.raises(IndexAdministrationError, match="2 documents rejected"):
            ElasticsearchIndexAdministrator(client, "content").bulk_index("post", [("1", {})])

    def test_delete(self, client):
        administrator = ElasticsearchIndexAdministrator(client, "content")

        assert administrator.delete("post", "42") is True
        client.delete.assert_called_once_with(index="content-post", id="42")

    def test_delete_missing_document(self, client):
        client.delete.side_effect = NotFoundError("not_found", meta=Mock(status=404), body={})

        assert ElasticsearchIndexAdministrator(client, "content").delete("post", "42") is False

    def test_from_settings_writes_to_the_secondary_index(self, monkeypatch):
        monkeypatch.setenv("FACETED_SEARCH_SECONDARY_INDEX", "content_next")
        calls = []
        monkeypatch.setattr(es_module, "build_client", lambda settings, write=False: calls.append(write) or "client")

        administrator = ElasticsearchIndexAdministrator.from_settings(Settings())

        assert calls == [True]
        assert administrator.index_for("post") == "content_next-post"
