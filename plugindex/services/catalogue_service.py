"""
Catalogue service for plugindex.

Fetches the crawled plugin database and the per-manager install catalogues,
cache first. The plugin database is large, so a copy cached by an earlier
process is revalidated with a HEAD probe of its Content-Length instead of
being downloaded again.
"""

from typing import Any, Dict, Optional, Tuple
import logging

from ..context import StoreContext
from ..domain import MANAGER_VARIANTS, Result, Snapshot
from ..exit_codes import ParseError, StoreError, ValidationError
from ..infra import HttpResponse
from ..infra.cache_store import MEMORY

logger = logging.getLogger(__name__)

CONTENT_LENGTH = 'content_length'


def parse_install_catalogue(data: Any) -> Dict[str, str]:
    """
    Validate an install catalogue document.

    Raises:
        ParseError: unless ``data`` is ``{"items": {full_name: snippet}}``
    """
    if not isinstance(data, dict) or 'items' not in data:
        raise ParseError("Install catalogue is missing 'items'")
    items = data['items']
    if not isinstance(items, dict):
        raise ParseError("Install catalogue 'items' must be an object")
    for full_name, snippet in items.items():
        if not isinstance(snippet, str):
            raise ParseError(f"Install snippet for '{full_name}' must be a string")
    return dict(items)


def _response_length(response: HttpResponse) -> int:
    length = response.content_length
    if length is None:
        length = len(response.text.encode('utf-8'))
    return length


class CatalogueClient:
    """
    Client for the plugin database and install catalogues.

    Example:
        client = CatalogueClient(StoreContext.create(load_config()))
        result = client.fetch_plugin_list()
        if result.ok:
            print(f"{len(result.value)} plugins")
    """

    def __init__(self, context: StoreContext):
        self.context = context
        self.config = context.config
        self.http = context.http
        self.cache = context.plugins_cache
        self.install_cache = context.install_cache
        # Parsed form of the last payload, so memory hits skip re-parsing
        self._parsed: Optional[Tuple[Any, Snapshot]] = None

    # -- plugin database ---------------------------------------------------

    def fetch_plugin_list(self, force_refresh: bool = False) -> Result[Snapshot]:
        """
        Get the plugin catalogue snapshot.

        Args:
            force_refresh: Skip both cache tiers; the fresh copy is written through

        Returns:
            Result with the Snapshot, or a TransportError, ProtocolError or
            ParseError
        """
        url = self.config.data_source_url
        try:
            if force_refresh:
                logger.debug("Forced refresh of plugin database")
                self.cache.clear(url)
                return Result.success(self._download(url))

            cached = self._from_cache(url)
            if cached is not None:
                return Result.success(cached)
            return Result.success(self._download(url))
        except StoreError as e:
            logger.debug(f"Plugin database fetch failed: {e}")
            return Result.failure(e)

    def _from_cache(self, url: str) -> Optional[Snapshot]:
        hit = self.cache.get(url)
        if hit.valid:
            snapshot = self._parse_cached(url, hit.payload)
            if snapshot is None:
                return None
            if hit.tier == MEMORY or not self.config.validate_with_head:
                return snapshot
            # First use in this process: confirm the remote copy is unchanged
            changed = self._remote_changed(url, hit.meta)
            if changed is True:
                logger.info("Plugin database changed upstream, downloading")
                return None
            # An unconfirmed copy keeps its original age
            if changed is False:
                self.cache.touch(url)
            return snapshot

        if not self.config.validate_with_head:
            return None

        stale = self.cache.peek(url)
        if stale is None or stale.meta.get(CONTENT_LENGTH) is None:
            return None
        if self._remote_changed(url, stale.meta) is not False:
            return None
        snapshot = self._parse_cached(url, stale.payload)
        if snapshot is not None:
            logger.debug("Expired plugin database is unchanged upstream, reusing it")
            self.cache.touch(url)
        return snapshot

    def _remote_changed(self, url: str, meta: Optional[Dict[str, Any]]) -> Optional[bool]:
        """
        Compare the recorded Content-Length against a HEAD probe.

        Returns:
            True or False, or None when there is nothing to compare or the
            probe failed
        """
        recorded = (meta or {}).get(CONTENT_LENGTH)
        if recorded is None:
            return None
        try:
            current = self.http.content_length(url)
        except StoreError as e:
            logger.warning(f"HEAD probe of plugin database failed: {e}")
            return None
        logger.debug(f"Plugin database length: cached {recorded}, remote {current}")
        return current != recorded

    def _parse_cached(self, url: str, payload: Any) -> Optional[Snapshot]:
        if self._parsed is not None and self._parsed[0] is payload:
            return self._parsed[1]
        try:
            snapshot = Snapshot.from_dict(payload)
        except ParseError as e:
            logger.warning(f"Discarding unreadable cached plugin database: {e}")
            self.cache.clear(url)
            return None
        self._parsed = (payload, snapshot)
        return snapshot

    def _download(self, url: str) -> Snapshot:
        logger.info("Fetching plugin database")
        response = self.http.get(url)
        data = response.json()
        snapshot = Snapshot.from_dict(data)
        self.cache.put(url, data, {CONTENT_LENGTH: _response_length(response)})
        self._parsed = (data, snapshot)
        logger.info(f"Plugin database loaded: {len(snapshot)} plugins")
        return snapshot

    # -- install catalogues ------------------------------------------------

    def fetch_install_catalogue(self, variant: str,
                                force_refresh: bool = False) -> Result[Dict[str, str]]:
        """
        Get the ``full_name -> snippet`` catalogue for a manager variant.

        Returns:
            Result with the mapping, or ValidationError for an unknown or
            unconfigured variant
        """
        if variant not in MANAGER_VARIANTS:
            return Result.failure(ValidationError(
                f"Unknown plugin manager '{variant}'. Valid managers: {', '.join(MANAGER_VARIANTS)}"
            ))
        url = self.config.install_catalogue_urls.get(variant)
        if not url:
            return Result.failure(ValidationError(
                f"No install catalogue configured for {variant}"
            ))

        if force_refresh:
            self.install_cache.clear(variant)
        else:
            hit = self.install_cache.get(variant)
            if hit.valid and isinstance(hit.payload, dict):
                return Result.success(hit.payload)

        try:
            logger.info(f"Fetching {variant} install catalogue")
            items = parse_install_catalogue(self.http.get(url).json())
        except StoreError as e:
            logger.debug(f"Install catalogue fetch for {variant} failed: {e}")
            return Result.failure(e)

        self.install_cache.put(variant, items)
        logger.debug(f"Loaded {len(items)} {variant} install snippets")
        return Result.success(items)

    def clear(self) -> bool:
        """Drop the cached plugin database and install catalogues."""
        self._parsed = None
        plugins_cleared = self.cache.clear()
        install_cleared = self.install_cache.clear()
        return plugins_cleared and install_cleared
