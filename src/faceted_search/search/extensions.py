"""Ordered extension points for builders and compilers.

Each stage of document building, mapping, query compilation and result
parsing passes its partial result through a named extension point before it
is merged. Callers register callbacks per hook name, optionally narrowed by a
discriminator (a field name, taxonomy, facet or content type). Callbacks run
in registration order; each receives the current value plus the stage's
context arguments and returns the value handed to the next callback.

Example:
    extensions = Extensions()
    extensions.register("mapping.field", widen_title, key="title")
    extensions.register("query.facet_size", lambda size, facet: 10)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import logging
from typing import Any


logger = logging.getLogger(__name__)

Callback = Callable[..., Any]

# Hook names understood by the package. Unknown names are accepted so callers
# can add their own stages, but a typo is logged once at registration.
KNOWN_HOOKS = frozenset(
    {
        "taxonomy.ancestors",
        "document.field",
        "document.dynamic",
        "document.meta",
        "document.taxonomy",
        "document",
        "mapping.field",
        "mapping.meta",
        "mapping.taxonomy",
        "mapping.taxonomy_name",
        "mapping",
        "index.analysis",
        "index.shards",
        "index.replicas",
        "index.settings",
        "suggest.query",
        "query.text",
        "query.filters",
        "query.facet_size",
        "query.aggregation",
        "query.compiled",
        "results",
    }
)


@dataclass(frozen=True)
class _Registration:
    key: str | None
    callback: Callback


class Extensions:
    """Registry of ordered, keyed transformation callbacks."""

    def __init__(self) -> None:
        self._hooks: dict[str, list[_Registration]] = {}

    def register(self, hook: str, callback: Callback, *, key: str | None = None) -> None:
        """Register ``callback`` for ``hook``; ``key`` limits it to one discriminator."""

        if hook not in KNOWN_HOOKS:
            logger.warning("Registering callback for unknown extension point '%s'", hook)
        self._hooks.setdefault(hook, []).append(_Registration(key=key, callback=callback))

    def apply(self, hook: str, value: Any, *context: Any, key: str | None = None) -> Any:
        """Thread ``value`` through every matching callback and return the result."""

        for registration in self._hooks.get(hook, ()):
            if registration.key is not None and registration.key != key:
                continue
            value = registration.callback(value, *context)
        return value

