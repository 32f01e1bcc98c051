"""
Filter service for plugindex.

Applies query strings to an in-memory plugin collection.
"""

from typing import Iterable, List, Optional
import logging

from ..domain import Plugin, Result
from ..query import compile_filter

logger = logging.getLogger(__name__)


class FilterEngine:
    """
    Filters plugin collections with the query language.

    Example:
        engine = FilterEngine()
        result = engine.apply(snapshot.items, "author:folke;tags:ui")
        if result.ok:
            for plugin in result.value:
                print(plugin.full_name)
    """

    def apply(self, collection: Iterable[Plugin], query: Optional[str]) -> Result[List[Plugin]]:
        """
        Return the plugins matching ``query``, in collection order.

        An empty query returns the whole collection unchanged. A malformed
        query returns a QueryError result.
        """
        items = list(collection)
        if not query or not query.strip():
            return Result.success(items)

        compiled = compile_filter(query)
        if not compiled.ok:
            return Result.failure(compiled.error)

        predicate = compiled.value
        matches = [plugin for plugin in items if predicate(plugin)]
        logger.debug(f"Query '{query}' matched {len(matches)} of {len(items)} plugins")
        return Result.success(matches)

    @staticmethod
    def count_installable(plugins: Iterable[Plugin], variant: Optional[str] = None) -> int:
        """Count plugins with an install snippet, optionally for one variant."""
        if variant is None:
            return sum(1 for plugin in plugins if plugin.installable)
        return sum(1 for plugin in plugins if plugin.snippet_for(variant) is not None)
