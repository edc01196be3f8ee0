"""CLI printing the engine JSON produced for a field configuration."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
import logging
from pathlib import Path
import sys
from typing import Any

import orjson
from pydantic import ValidationError

from faceted_search.config import Settings
from faceted_search.domain.model import InMemoryTermStore, Record, TermNode
from faceted_search.domain.search import ResultWindow, SortOrder
from faceted_search.errors import ConfigurationError
from faceted_search.field_config import FieldConfig
from faceted_search.observability.logging import configure_logging
from faceted_search.search.analysis import build_index_settings
from faceted_search.search.document_builder import DocumentBuilder
from faceted_search.search.mapping_builder import MappingBuilder
from faceted_search.search.query import EmptyQuery
from faceted_search.search.query_compiler import QueryCompiler


logger = logging.getLogger(__name__)


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="faceted-search",
        description="Print index settings, mappings, queries and documents for a field configuration",
    )
    parser.add_argument(
        "--field-config",
        type=Path,
        help="Path to the field configuration JSON (default: FACETED_SEARCH_FIELD_CONFIG_PATH)",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    subcommands.add_parser("settings", help="Index settings and analysis chain")

    mapping = subcommands.add_parser("mapping", help="Mapping of a content type or taxonomy")
    target = mapping.add_mutually_exclusive_group()
    target.add_argument("--content-type", help="Content type grouping (default: all taxonomies declared)")
    target.add_argument("--taxonomy", help="Print the term document mapping of this taxonomy")

    query = subcommands.add_parser("query", help="Compiled search request body")
    query.add_argument("text", nargs="?", default="", help="Free text")
    query.add_argument(
        "--facet",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Require VALUE for facet NAME (repeat to require several values)",
    )
    query.add_argument(
        "--any",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Accept any of the given values for facet NAME (repeatable)",
    )
    query.add_argument("--page", type=int, default=0, help="Zero-based page index")
    query.add_argument("--size", type=int, help="Hits per page (default: FACETED_SEARCH_PAGE_SIZE)")
    query.add_argument("--sort", choices=[order.value for order in SortOrder], help="Result ordering")

    document = subcommands.add_parser("document", help="Document built from a record JSON file")
    document.add_argument("record", type=Path, help="Record JSON file")
    document.add_argument("--terms", type=Path, help="JSON file mapping taxonomy -> list of terms")
    return parser


def parse_facet_arguments(required: Sequence[str], any_of: Sequence[str]) -> dict[str, Any]:
    """Turn ``NAME=VALUE`` arguments into a raw facet selection."""
    selection: dict[str, Any] = {}
    for argument in required:
        name, value = _split_pair(argument)
        selection.setdefault(name, []).append(value)
    for argument in any_of:
        name, value = _split_pair(argument)
        selection.setdefault(name, {"or": []})["or"].append(value)
    return selection


def _split_pair(argument: str) -> tuple[str, str]:
    name, sep, value = argument.partition("=")
    if not sep or not name:
        raise ValueError(f"Expected NAME=VALUE, got '{argument}'")
    return name, value


def _load_field_config(args: argparse.Namespace, settings: Settings) -> FieldConfig:
    if args.field_config is not None:
        return FieldConfig.from_json_file(args.field_config)
    return settings.load_field_config()


def _load_json(path: Path) -> Any:
    try:
        return orjson.loads(path.read_bytes())
    except FileNotFoundError as exc:
        raise ConfigurationError(f"File not found: {path}") from exc
    except orjson.JSONDecodeError as exc:
        raise ConfigurationError(f"Not valid JSON: {path}: {exc}") from exc


def _run(args: argparse.Namespace, settings: Settings) -> Any:
    if args.command == "settings":
        return build_index_settings(settings)

    field_config = _load_field_config(args, settings)

    if args.command == "mapping":
        builder = MappingBuilder()
        if args.taxonomy:
            return builder.build_taxonomy(args.taxonomy).to_dict()
        return builder.build(field_config, args.content_type).to_dict()

    if args.command == "query":
        compiler = QueryCompiler(settings.partition, facet_size=settings.facet_size)
        compiled = compiler.compile(args.text, parse_facet_arguments(args.facet, args.any), field_config)
        if isinstance(compiled, EmptyQuery):
            return {"empty": True, "reason": compiled.reason}
        window = ResultWindow.for_page(args.page, args.size or settings.page_size)
        return compiled.render(window, SortOrder(args.sort or settings.default_sort))

    record = Record.model_validate(_load_json(args.record))
    terms = InMemoryTermStore()
    if args.terms is not None:
        for taxonomy, nodes in _load_json(args.terms).items():
            for node in nodes:
                terms.add(taxonomy, TermNode.model_validate(node))
    return DocumentBuilder(terms, settings.partition).build(record, field_config)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings()
    except ValidationError as exc:
        sys.stderr.write(f"Invalid settings: {exc}\n")
        return 1
    configure_logging(settings.log_level, json_output=settings.log_json)

    try:
        payload = _run(args, settings)
    except (ConfigurationError, ValidationError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    sys.stdout.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode("utf-8") + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
