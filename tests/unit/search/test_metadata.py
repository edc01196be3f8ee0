"""Unit tests for metadata selection."""

import pytest

from faceted_search.domain.model import MetaList, MetaObject, MetaScalar, meta_from_native
from faceted_search.search.metadata import normalize_meta_path, select_flat, select_structured


@pytest.mark.unit
class TestSelectStructured:
    def test_keeps_configured_paths_only(self):
        metadata = meta_from_native({"author": "Ada", "views": 10, "seo": {"title": "T", "robots": "noindex"}})

        assert select_structured(metadata, ["author", "seo.title"]) == {"author": "Ada", "seo": {"title": "T"}}

    def test_list_positions_do_not_extend_the_path(self):
        metadata = meta_from_native(
            {"urls": [{"title": "Docs", "href": "/docs", "rel": "x"}, {"title": "Blog"}]},
        )

        assert select_structured(metadata, ["urls.title", "urls.href"]) == {
            "urls": [{"title": "Docs", "href": "/docs"}, {"title": "Blog"}]
        }

    def test_nested_lists_are_flattened_into_the_parent(self):
        metadata = MetaObject({"tags": MetaList((MetaList((MetaScalar("a"), MetaScalar("b"))), MetaScalar("c")))})

        assert select_structured(metadata, ["tags"]) == {"tags": ["a", "b", "c"]}

    def test_empty_values_are_dropped(self):
        metadata = meta_from_native({"author": "", "editor": None, "seo": {"title": ""}, "links": []})

        assert select_structured(metadata, ["author", "editor", "seo.title", "links"]) == {}

    def test_wildcard_paths(self):
        metadata = meta_from_native({"urls": [{"title": "Docs"}]})

        assert select_structured(metadata, ["urls.*.title"]) == {"urls": [{"title": "Docs"}]}


@pytest.mark.unit
class TestSelectFlat:
    def test_plain_keys_match_verbatim(self):
        assert select_flat({"author": "Ada", "author_0_x": "no"}, ["author"]) == {"author": "Ada"}

    def test_indexed_keys_are_renested_in_order(self):
        flat = {
            "urls_10_title": "Ten",
            "urls_2_title": "Two",
            "urls_2_href": "/two",
        }

        assert select_flat(flat, ["urls.title", "urls.href"]) == {
            "urls": [{"title": "Two", "href": "/two"}, {"title": "Ten"}]
        }

    def test_two_levels(self):
        flat = {"sections_0_links_1_href": "/b", "sections_0_links_0_href": "/a"}

        assert select_flat(flat, ["sections.links.href"]) == {"sections": [{"links": [{"href": "/a"}, {"href": "/b"}]}]}

    def test_non_matching_and_empty_keys(self):
        flat = {"urls_title": "no index", "urls_x_title": "bad index", "urls_0_title": ""}

        assert select_flat(flat, ["urls.title"]) == {}


@pytest.mark.unit
def test_normalize_meta_path():
    assert normalize_meta_path("urls.*.title") == "urls.title"
    assert normalize_meta_path("author") == "author"
