"""
Explicit runtime context for plugindex.

StoreContext owns everything that would otherwise be module-level state:
configuration, clock, HTTP transport, the cache stores and the executors.
Every service takes a context, so independent instances (for example one per
test) never share caches.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Optional
import logging

from .config import StoreConfig, default_config
from .infra import CacheStore, HttpClient, LINES_CODEC

logger = logging.getLogger(__name__)

PLUGINS = "plugins"
READMES = "readmes"
INSTALL = "install"


@dataclass
class StoreContext:
    """
    Shared state for one plugindex instance.

    Example:
        context = StoreContext.create(load_config())
        client = CatalogueClient(context)
    """
    config: StoreConfig
    http: HttpClient
    plugins_cache: CacheStore
    readme_cache: CacheStore
    install_cache: CacheStore
    clock: Callable[[], float] = time.time
    executor: Optional[ThreadPoolExecutor] = None
    writer: Optional[ThreadPoolExecutor] = None

    @classmethod
    def create(
        cls,
        config: Optional[StoreConfig] = None,
        http: Optional[HttpClient] = None,
        clock: Callable[[], float] = time.time,
        background: bool = False,
    ) -> 'StoreContext':
        """
        Build a context from configuration.

        Args:
            config: Configuration (defaults if None)
            http: Transport (built from the timeouts in config if None)
            clock: Time source shared by every cache tier
            background: Run fetches on a thread pool and disk writes on a
                dedicated writer thread
        """
        config = config or default_config()
        http = http or HttpClient(timeout=config.request_timeout,
                                  head_timeout=config.head_timeout)

        executor = None
        writer = None
        if background:
            executor = ThreadPoolExecutor(max_workers=config.max_workers,
                                          thread_name_prefix="plugindex-fetch")
            writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="plugindex-cache")

        cache_dir = config.cache_path
        plugins_cache = CacheStore(
            PLUGINS, cache_dir,
            memory_max_age=config.plugins_cache.memory_max_age,
            disk_max_age=config.plugins_cache.disk_max_age,
            inline=True, clock=clock, executor=writer,
            keep_stale=config.validate_with_head,
        )
        readme_cache = CacheStore(
            READMES, cache_dir,
            memory_max_age=config.readme_cache.memory_max_age,
            disk_max_age=config.readme_cache.disk_max_age,
            inline=False, codec=LINES_CODEC, clock=clock, executor=writer,
        )
        install_cache = CacheStore(
            INSTALL, cache_dir,
            memory_max_age=config.install_cache.memory_max_age,
            disk_max_age=config.install_cache.disk_max_age,
            inline=True, clock=clock, executor=writer,
        )

        logger.debug(f"Created store context (cache dir {cache_dir})")
        return cls(
            config=config,
            http=http,
            plugins_cache=plugins_cache,
            readme_cache=readme_cache,
            install_cache=install_cache,
            clock=clock,
            executor=executor,
            writer=writer,
        )

    @property
    def caches(self) -> Dict[str, CacheStore]:
        return {
            PLUGINS: self.plugins_cache,
            READMES: self.readme_cache,
            INSTALL: self.install_cache,
        }

    def clear_caches(self) -> bool:
        """Drop every cache tier. Returns False if some file survived."""
        start = time.perf_counter()
        success = True
        for cache in self.caches.values():
            success = cache.clear() and success
        elapsed_ms = (time.perf_counter() - start) * 1000
        if success:
            logger.info(f"Cache cleared in {elapsed_ms:.1f}ms")
        else:
            logger.warning(f"Some cache files could not be removed ({elapsed_ms:.1f}ms)")
        return success

    def close(self) -> None:
        """Wait for pending work and release the transport."""
        if self.executor is not None:
            self.executor.shutdown(wait=True)
        for cache in self.caches.values():
            cache.flush()
        if self.writer is not None:
            self.writer.shutdown(wait=True)
        self.http.close()

    def __enter__(self) -> 'StoreContext':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
