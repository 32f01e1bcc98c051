"""
Plugin domain objects for plugindex.

Plugin represents one crawled repository in the catalogue. Snapshot is one
complete copy of the catalogue as produced by the crawler. Both are immutable
and serializable back to the crawler's JSON shape, which is also what the
disk cache stores.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import cached_property
from typing import Optional, Dict, Any, Tuple, NamedTuple, List, Set

from ..exit_codes import ParseError

# Manager variants with install catalogues
LAZY_NVIM = "lazy.nvim"
VIM_PACK = "vim.pack"
MANAGER_VARIANTS = (LAZY_NVIM, VIM_PACK)

# Older crawler output keyed snippets by dialect name
_LEGACY_INSTALL_KEYS = {
    'lazyConfig': LAZY_NVIM,
    'vimPackConfig': VIM_PACK,
}

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a crawler timestamp into an aware datetime.

    Accepts ISO-8601 strings (with or without a trailing ``Z``) and unix
    seconds. Returns None for empty values; raises ValueError otherwise.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise ValueError(f"Timestamp out of range: {value!r}")
    if isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    raise ValueError(f"Invalid timestamp: {value!r}")


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


def _metric(data: Dict[str, Any], key: str, *aliases: str) -> int:
    for name in (key,) + aliases:
        if name in data and data[name] is not None:
            raw = data[name]
            break
    else:
        return 0
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ParseError(f"Field '{key}' must be an integer, got {raw!r}")
    if raw < 0:
        raise ParseError(f"Field '{key}' must be non-negative, got {raw}")
    return raw


def _optional_text(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class InstallSnippet:
    """Configuration snippet for one package-manager variant."""
    variant: str
    snippet: str
    source: Optional[str] = None  # Manager the snippet was originally written for

    @property
    def native(self) -> bool:
        return self.source is None or self.source == self.variant

    @property
    def provenance(self) -> str:
        if self.native:
            return f"{self.variant} native"
        return f"Migrated from {self.source} to {self.variant}"


class FoldedFields(NamedTuple):
    """Lower-cased searchable fields, computed once per record."""
    full_name: str
    author: str
    name: str
    description: Optional[str]
    homepage: Optional[str]
    tags: Tuple[str, ...]


@dataclass(frozen=True)
class Plugin:
    """
    Immutable representation of a catalogued plugin repository.

    Example:
        plugin = Plugin.from_dict({"full_name": "folke/lazy.nvim", "stars": 10})
        plugin.author   # "folke"
        plugin.name     # "lazy.nvim"
    """
    full_name: str
    author: str
    name: str
    url: Optional[str] = None
    description: Optional[str] = None
    homepage: Optional[str] = None
    tags: Tuple[str, ...] = ()
    stars: int = 0
    issues: int = 0
    forks: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    pretty: Dict[str, str] = field(default_factory=dict, compare=False, hash=False)
    readme: Optional[str] = None  # "branch/path" reference for the raw endpoint
    install: Dict[str, InstallSnippet] = field(default_factory=dict, compare=False, hash=False)

    @property
    def owner(self) -> str:
        return self.author

    @property
    def installable(self) -> bool:
        return bool(self.install)

    @cached_property
    def folded(self) -> FoldedFields:
        return FoldedFields(
            full_name=self.full_name.lower(),
            author=self.author.lower(),
            name=self.name.lower(),
            description=self.description.lower() if self.description else None,
            homepage=self.homepage.lower() if self.homepage else None,
            tags=tuple(tag.lower() for tag in self.tags),
        )

    def snippet_for(self, variant: str) -> Optional[InstallSnippet]:
        return self.install.get(variant)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Plugin':
        """
        Create from one crawler ``items`` entry.

        Raises:
            ParseError: when mandatory fields are missing or malformed
        """
        if not isinstance(data, dict):
            raise ParseError(f"Plugin entry must be an object, got {type(data).__name__}")

        full_name = data.get('full_name')
        if not isinstance(full_name, str) or '/' not in full_name:
            raise ParseError(f"Plugin entry has invalid full_name: {full_name!r}")

        owner_part, _, name_part = full_name.partition('/')
        tags = data.get('tags') or data.get('topics') or []
        if not isinstance(tags, list):
            raise ParseError(f"Plugin '{full_name}' tags must be a list")

        try:
            created_at = parse_timestamp(data.get('created_at'))
            updated_at = parse_timestamp(data.get('updated_at') or data.get('pushed_at'))
        except ValueError as e:
            raise ParseError(f"Plugin '{full_name}': {e}")

        pretty = data.get('pretty') or {}
        if not isinstance(pretty, dict):
            raise ParseError(f"Plugin '{full_name}' pretty must be an object")

        return cls(
            full_name=full_name,
            author=str(data.get('author') or owner_part),
            name=str(data.get('name') or name_part),
            url=_optional_text(data, 'url') or _optional_text(data, 'html_url'),
            description=_optional_text(data, 'description'),
            homepage=_optional_text(data, 'homepage'),
            tags=tuple(str(tag) for tag in tags),
            stars=_metric(data, 'stars', 'stargazers_count'),
            issues=_metric(data, 'issues', 'open_issues_count'),
            forks=_metric(data, 'forks', 'forks_count'),
            created_at=created_at,
            updated_at=updated_at,
            pretty={str(k): str(v) for k, v in pretty.items()},
            readme=_optional_text(data, 'readme'),
            install=cls._parse_install(full_name, data.get('install')),
        )

    @staticmethod
    def _parse_install(full_name: str, raw: Any) -> Dict[str, InstallSnippet]:
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ParseError(f"Plugin '{full_name}' install must be an object")

        source = raw.get('initial')
        snippets: Dict[str, InstallSnippet] = {}
        for key, value in raw.items():
            if key == 'initial' or not isinstance(value, str) or not value.strip():
                continue
            variant = _LEGACY_INSTALL_KEYS.get(key, key)
            snippets[variant] = InstallSnippet(variant=variant, snippet=value, source=source)
        return snippets

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to the crawler's item shape."""
        result: Dict[str, Any] = {
            'full_name': self.full_name,
            'author': self.author,
            'name': self.name,
            'url': self.url,
            'description': self.description,
            'homepage': self.homepage,
            'tags': list(self.tags),
            'stars': self.stars,
            'issues': self.issues,
            'forks': self.forks,
            'created_at': format_timestamp(self.created_at),
            'updated_at': format_timestamp(self.updated_at),
        }
        if self.pretty:
            result['pretty'] = dict(self.pretty)
        if self.readme:
            result['readme'] = self.readme
        if self.install:
            install: Dict[str, Any] = {v: s.snippet for v, s in self.install.items()}
            sources = {s.source for s in self.install.values() if s.source}
            if sources:
                install['initial'] = sources.pop()
            result['install'] = install
        return result


@dataclass(frozen=True)
class SnapshotMeta:
    """Catalogue metadata written by the crawler."""
    total_count: int
    created_at: Optional[datetime] = None
    display_hints: Dict[str, int] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], item_count: int) -> 'SnapshotMeta':
        if not isinstance(data, dict):
            raise ParseError("Catalogue 'meta' must be an object")
        total = data.get('total_count', item_count)
        if isinstance(total, bool) or not isinstance(total, int) or total < 0:
            raise ParseError(f"Catalogue meta.total_count must be a non-negative integer, got {total!r}")
        try:
            created_at = parse_timestamp(data.get('created_at'))
        except ValueError as e:
            raise ParseError(f"Catalogue meta: {e}")
        hints = {
            key: value for key, value in data.items()
            if key not in ('total_count', 'created_at')
            and isinstance(value, int) and not isinstance(value, bool)
        }
        return cls(total_count=total, created_at=created_at, display_hints=hints)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = dict(self.display_hints)
        result['total_count'] = self.total_count
        if self.created_at is not None:
            result['created_at'] = format_timestamp(self.created_at)
        return result


@dataclass(frozen=True)
class Snapshot:
    """One complete, atomically replaced copy of the plugin catalogue."""
    meta: SnapshotMeta
    items: Tuple[Plugin, ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def find(self, full_name: str) -> Optional[Plugin]:
        needle = full_name.lower()
        for plugin in self.items:
            if plugin.folded.full_name == needle:
                return plugin
        return None

    @classmethod
    def from_dict(cls, data: Any) -> 'Snapshot':
        """
        Parse a crawler document.

        Raises:
            ParseError: on any schema mismatch
        """
        if not isinstance(data, dict):
            raise ParseError("Catalogue document must be a JSON object")
        if 'items' not in data:
            raise ParseError("Catalogue document is missing 'items'")
        if 'meta' not in data:
            raise ParseError("Catalogue document is missing 'meta'")
        raw_items = data['items']
        if not isinstance(raw_items, list):
            raise ParseError("Catalogue 'items' must be a list")

        items: List[Plugin] = []
        seen: Set[str] = set()
        for index, raw in enumerate(raw_items):
            try:
                plugin = Plugin.from_dict(raw)
            except ParseError as e:
                raise ParseError(f"items[{index}]: {e}")
            if plugin.full_name in seen:
                raise ParseError(f"items[{index}]: duplicate full_name '{plugin.full_name}'")
            seen.add(plugin.full_name)
            items.append(plugin)

        return cls(meta=SnapshotMeta.from_dict(data['meta'], len(items)), items=tuple(items))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'meta': self.meta.to_dict(),
            'items': [plugin.to_dict() for plugin in self.items],
        }


def sort_timestamp(value: Optional[datetime]) -> datetime:
    """Sort key for optional timestamps; missing values sort as the earliest instant."""
    return value if value is not None else _EARLIEST
