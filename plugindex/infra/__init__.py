"""
Infrastructure layer for plugindex.

Contains abstractions for external systems:
- HttpClient: HTTP transport with categorized failures
- CacheStore: Two-tier memory + disk cache
- FileStore: Atomic JSON file persistence

These provide clean interfaces that can be mocked for testing.
"""

from .http_client import HttpClient, HttpResponse
from .cache_store import CacheStore, CacheHit, LINES_CODEC, JSON_CODEC
from .file_store import FileStore

__all__ = [
    'HttpClient',
    'HttpResponse',
    'CacheStore',
    'CacheHit',
    'LINES_CODEC',
    'JSON_CODEC',
    'FileStore',
]
