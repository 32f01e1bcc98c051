"""
plugindex - Browse, search and install editor plugins from a crawled catalogue.

plugindex keeps a local two-tier cache of the plugin catalogue, filters it
with a small query language, sorts it, fetches sanitized READMEs and
prepares install snippets for supported package managers.

Quick Start:
    from plugindex import StoreContext, StoreSession, load_config

    with StoreContext.create(load_config(), background=True) as context:
        session = StoreSession(context)
        session.load()
        for plugin in session.view("tags:git", "most_stars").unwrap():
            print(plugin.full_name, plugin.stars)

Query syntax:
    telescope                      bare term, searches full_name
    author:folke;tags:ui,git       criteria are ANDed, tags are ORed

Components:
    CatalogueClient - Plugin database and install catalogues
    ReadmeFetcher - Sanitized READMEs
    FilterEngine / SortEngine - Query filtering and stable sorting
    InstallService - Install snippets and target paths
    CacheStore - Memory and disk cache tiers
"""

__version__ = "0.4.0"

from .config import StoreConfig, default_config, load_config, validate_config
from .context import StoreContext
from .domain import Plugin, Result, Snapshot
from .query import Field, QueryError, compile_filter, parse_query
from .sanitizer import ContentSanitizer, split_lines
from .services import (
    CatalogueClient, FilterEngine, InstallService, ReadmeFetcher, StoreSession,
)
from .sorting import SortEngine, SortKey

__all__ = [
    '__version__',
    'StoreConfig',
    'default_config',
    'load_config',
    'validate_config',
    'StoreContext',
    'Plugin',
    'Result',
    'Snapshot',
    'Field',
    'QueryError',
    'compile_filter',
    'parse_query',
    'ContentSanitizer',
    'split_lines',
    'CatalogueClient',
    'FilterEngine',
    'InstallService',
    'ReadmeFetcher',
    'StoreSession',
    'SortEngine',
    'SortKey',
]
