"""
Domain layer for plugindex.

Contains pure domain objects with no I/O or side effects:
- Plugin: One catalogued plugin repository
- Snapshot: A complete copy of the plugin catalogue
- InstallSnippet: Manager-specific installation snippet
- Result: Value-or-error returned by fallible operations
"""

from .plugin import (
    Plugin,
    Snapshot,
    SnapshotMeta,
    InstallSnippet,
    LAZY_NVIM,
    VIM_PACK,
    MANAGER_VARIANTS,
)
from .result import Result

__all__ = [
    'Plugin',
    'Snapshot',
    'SnapshotMeta',
    'InstallSnippet',
    'LAZY_NVIM',
    'VIM_PACK',
    'MANAGER_VARIANTS',
    'Result',
]
