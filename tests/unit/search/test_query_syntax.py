"""Unit tests for free-text tokenizing and query syntax detection."""

import pytest

from faceted_search.search.query_syntax import QueryTokenizer, TokenKind, has_boolean_syntax, split_fuzzy_marker


@pytest.mark.unit
class TestQueryTokenizer:
    def test_token_kinds(self):
        tokens = list(QueryTokenizer()('title:solar AND "wind farm" (-coal OR +gas)'))

        assert [(t.text, t.kind) for t in tokens] == [
            ("title:solar", TokenKind.FIELD),
            ("AND", TokenKind.OPERATOR),
            ('"wind farm"', TokenKind.PHRASE),
            ("(", TokenKind.GROUP_OPEN),
            ("-coal", TokenKind.PROHIBITED),
            ("OR", TokenKind.OPERATOR),
            ("+gas", TokenKind.REQUIRED),
            (")", TokenKind.GROUP_CLOSE),
        ]

    def test_positions_and_offsets(self):
        tokens = list(QueryTokenizer()("solar  panels"))

        assert [(t.position, t.start_char, t.end_char) for t in tokens] == [(0, 0, 5), (1, 7, 13)]

    def test_unterminated_phrase_runs_to_the_end(self):
        tokens = list(QueryTokenizer()('say "hello world'))

        assert tokens[-1].text == '"hello world'
        assert tokens[-1].kind == TokenKind.PHRASE


@pytest.mark.unit
class TestHasBooleanSyntax:
    @pytest.mark.parametrize(
        "text",
        [
            "solar AND wind",
            "solar OR wind",
            "NOT coal",
            "solar && wind",
            "solar || wind",
            "title:solar",
            "+solar -coal",
            "(solar wind)",
            "energy (solar OR wind)",
        ],
    )
    def test_explicit_syntax(self, text):
        assert has_boolean_syntax(text)

    @pytest.mark.parametrize(
        "text",
        [
            "solar panels",
            "brandon portland",
            "rock and roll",
            "this or that",
            '"solar AND wind"',
            "see https://example.com/solar",
            "time 10:30",
            "-5 degrees",
            "C++ guide",
            "std::vector tutorial",
            "a::b",
            "unbalanced (paren",
            "closing) first (",
        ],
    )
    def test_plain_text(self, text):
        assert not has_boolean_syntax(text)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("solr~", ("solr", True)),
        ("solar panels ~ ", ("solar panels", True)),
        ("solar~~", ("solar", True)),
        ("solar", ("solar", False)),
        ("~", ("", True)),
    ],
)
def test_split_fuzzy_marker(text, expected):
    assert split_fuzzy_marker(text) == expected


@pytest.mark.unit
class TestFieldQueries:
    def test_only_known_fields_count_when_fields_are_given(self):
        fields = {"title", "urls.title", "category"}

        assert has_boolean_syntax("title:solar", fields=fields)
        assert has_boolean_syntax("urls.title:guide", fields=fields)
        assert not has_boolean_syntax("re:Invent keynote", fields=fields)
        assert not has_boolean_syntax("std::vector tutorial", fields=fields)

    def test_any_name_counts_without_fields(self):
        assert has_boolean_syntax("re:Invent keynote")

    def test_field_token_exposes_its_field(self):
        tokens = list(QueryTokenizer()("urls.title:guide solar"))

        assert [token.field for token in tokens] == ["urls.title", None]
