"""Unit tests for the extension point registry."""

import logging

import pytest

from faceted_search.search.extensions import Extensions


@pytest.mark.unit
def test_callbacks_run_in_registration_order():
    extensions = Extensions()
    extensions.register("document", lambda value: value + ["first"])
    extensions.register("document", lambda value: value + ["second"])

    assert extensions.apply("document", []) == ["first", "second"]


@pytest.mark.unit
def test_keyed_callbacks_only_run_for_their_key():
    extensions = Extensions()
    extensions.register("mapping.field", lambda value, path: value * 2, key="price")
    extensions.register("mapping.field", lambda value, path: value + 1)

    assert extensions.apply("mapping.field", 10, "price", key="price") == 21
    assert extensions.apply("mapping.field", 10, "title", key="title") == 11
    assert extensions.apply("mapping.field", 10, "title") == 11


@pytest.mark.unit
def test_context_arguments_are_passed_through():
    extensions = Extensions()
    seen = []
    extensions.register("query.facet_size", lambda size, facet: seen.append(facet) or size)

    assert extensions.apply("query.facet_size", 100, "tag", key="tag") == 100
    assert seen == ["tag"]


@pytest.mark.unit
def test_unregistered_hook_returns_value_unchanged():
    marker = object()

    assert Extensions().apply("results", marker) is marker


@pytest.mark.unit
def test_unknown_hook_names_are_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="faceted_search.search.extensions"):
        Extensions().register("documnet", lambda value: value)

    assert "unknown extension point 'documnet'" in caplog.text
