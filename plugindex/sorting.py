"""
Sort orders for the plugin catalogue.

Every order is stable, so re-applying a sort to its own output changes
nothing. Missing timestamps sort after every real one.
"""

from enum import Enum
from typing import Iterable, List, Mapping, Optional, Sequence, Union
import logging

from .domain import Plugin, Result
from .domain.plugin import sort_timestamp
from .exit_codes import ValidationError

logger = logging.getLogger(__name__)

InstalledLookup = Mapping[str, object]


class SortKey(Enum):
    """Available sort orders and their display labels."""
    DEFAULT = ("default", "Default")
    MOST_STARS = ("most_stars", "Most Stars")
    RECENTLY_UPDATED = ("recently_updated", "Recently Updated")
    RECENTLY_CREATED = ("recently_created", "Recently Created")
    INSTALLED = ("installed", "Installed")

    def __init__(self, key: str, label: str):
        self.key = key
        self.label = label

    @classmethod
    def lookup(cls, name: str) -> Optional['SortKey']:
        name = name.strip().lower()
        for member in cls:
            if member.key == name:
                return member
        return None


SORT_KEYS = tuple(member.key for member in SortKey)


def is_installed(plugin: Plugin, installed: Optional[InstalledLookup]) -> bool:
    """Installed lookups are keyed by plugin name or full name."""
    if not installed:
        return False
    return bool(installed.get(plugin.name) or installed.get(plugin.full_name))


class SortEngine:
    """
    Orders plugin collections by a fixed set of keys.

    Example:
        engine = SortEngine()
        result = engine.apply(snapshot.items, "most_stars")
    """

    def apply(
        self,
        collection: Iterable[Plugin],
        key: Union[str, SortKey],
        installed: Optional[InstalledLookup] = None,
    ) -> Result[List[Plugin]]:
        """
        Sort a collection.

        Args:
            collection: Plugins in catalogue order
            key: Sort key name or SortKey
            installed: Lookup of installed plugin names, used by ``installed``

        Returns:
            Result with a new list, or ValidationError for an unknown key
        """
        sort_key = key if isinstance(key, SortKey) else SortKey.lookup(str(key))
        if sort_key is None:
            return Result.failure(ValidationError(
                f"Unknown sort key '{key}'. Valid keys: {', '.join(SORT_KEYS)}"
            ))

        items = list(collection)
        logger.debug(f"Sorting {len(items)} plugins by {sort_key.key}")
        return Result.success(self._sorted(items, sort_key, installed))

    def _sorted(self, items: List[Plugin], key: SortKey,
                installed: Optional[InstalledLookup]) -> List[Plugin]:
        if key is SortKey.DEFAULT:
            return items
        if key is SortKey.MOST_STARS:
            return sorted(items, key=lambda p: p.stars, reverse=True)
        if key is SortKey.RECENTLY_UPDATED:
            return sorted(items, key=lambda p: sort_timestamp(p.updated_at), reverse=True)
        if key is SortKey.RECENTLY_CREATED:
            return sorted(items, key=lambda p: sort_timestamp(p.created_at), reverse=True)
        if key is SortKey.INSTALLED:
            first = [p for p in items if is_installed(p, installed)]
            rest = [p for p in items if not is_installed(p, installed)]
            return first + rest
        raise AssertionError(f"Unhandled sort key: {key}")

    @staticmethod
    def labels() -> Sequence[str]:
        return [member.label for member in SortKey]
