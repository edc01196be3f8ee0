"""Metadata selection for documents.

Two metadata sources are supported:

- a structured tree (``MetaObject``), walked recursively; a value is kept when
  its dotted path, with array positions collapsed, is configured;
- a flat key/value bag where repeating groups are encoded in the key
  (``urls_0_title``); a dotted configuration entry ``urls.title`` matches
  those keys and the values are re-assembled into nested lists.

Dotted configuration entries may spell out array positions with a ``*``
segment (``urls.*.title``); it is equivalent to ``urls.title``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import re
from typing import Any

from faceted_search.domain.model import MetaList, MetaNode, MetaObject, MetaScalar


_WILDCARD = "*"


def normalize_meta_path(path: str) -> str:
    """Collapse explicit ``*`` array segments out of a dotted path."""

    return ".".join(part for part in path.split(".") if part and part != _WILDCARD)


def select_structured(metadata: MetaObject, meta_fields: Iterable[str]) -> dict[str, Any]:
    """Filter a structured metadata tree down to the configured paths."""

    configured = {normalize_meta_path(path) for path in meta_fields}
    return _select_object(metadata, "", configured)


def _join(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def _select_object(node: MetaObject, prefix: str, configured: set[str]) -> dict[str, Any]:
    selected: dict[str, Any] = {}
    for key, child in node.entries.items():
        path = _join(prefix, key)
        value = _select_node(child, path, configured)
        if value is not None:
            selected[key] = value
    return selected


def _select_node(node: MetaNode, path: str, configured: set[str]) -> Any:
    if isinstance(node, MetaScalar):
        if path in configured and not node.is_empty():
            return node.value
        return None

    if isinstance(node, MetaObject):
        return _select_object(node, path, configured) or None

    matches: list[Any] = []
    for item in node.items:
        # array positions do not extend the path
        value = _select_node(item, path, configured)
        if value is None:
            continue
        if isinstance(item, MetaList):
            matches.extend(value)
        else:
            matches.append(value)
    return matches or None


def _flat_key_pattern(path: str) -> re.Pattern[str]:
    segments = [re.escape(segment) for segment in path.split(".")]
    return re.compile("^" + r"_([0-9]+)_".join(segments) + "$")


def select_flat(flat_meta: Mapping[str, Any], meta_fields: Iterable[str]) -> dict[str, Any]:
    """Pick configured keys out of a flat metadata bag.

    Plain entries match keys verbatim. Dotted entries match keys where each
    ``.`` is replaced by a numeric index infix (``urls.title`` matches
    ``urls_0_title``); matched values are re-assembled into nested lists
    ordered by index so they line up with the nested mapping.
    """
    selected: dict[str, Any] = {}
    nested: dict[str, Any] = {}

    for raw_path in meta_fields:
        path = normalize_meta_path(raw_path)
        if "." not in path:
            value = flat_meta.get(path)
            if value is not None and value != "":
                selected[path] = value
            continue

        pattern = _flat_key_pattern(path)
        segments = path.split(".")
        for key, value in flat_meta.items():
            match = pattern.match(key)
            if match is None or value is None or value == "":
                continue
            indices = [int(group) for group in match.groups()]
            _place(nested, segments, indices, value)

    for key, tree in nested.items():
        selected[key] = _materialize(tree)
    return selected


def _place(tree: dict[str, Any], segments: list[str], indices: list[int], value: Any) -> None:
    """Store ``value`` under ``segments`` using ``indices`` for every list level."""

    node = tree
    for segment, index in zip(segments[:-1], indices):
        positions = node.setdefault(segment, {})
        node = positions.setdefault(index, {})
    node[segments[-1]] = value


def _materialize(node: Any) -> Any:
    if not isinstance(node, dict):
        return node
    if node and all(isinstance(key, int) for key in node):
        return [_materialize(node[index]) for index in sorted(node)]
    return {key: _materialize(value) for key, value in node.items()}
