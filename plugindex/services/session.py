"""
Store session for plugindex.

StoreSession ties the services together for a client: it loads the plugin
database, the installed lookup and the install catalogue side by side,
keeps the current snapshot, applies filter and sort, and debounces README
previews. Results reach the caller through completion callbacks; a failed
install catalogue or installed lookup never fails the plugin list.
"""

import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional
import logging

from ..context import StoreContext
from ..domain import Plugin, Result, Snapshot
from ..exit_codes import StoreError
from ..sorting import SortEngine, SortKey
from ..tasks import Debouncer, InFlightRegistry, TaskHandle
from .catalogue_service import CatalogueClient
from .filter_service import FilterEngine
from .install_service import InstallPlan, InstallService
from .readme_service import ReadmeFetcher

logger = logging.getLogger(__name__)

InstalledProvider = Callable[[], Mapping[str, Any]]

PLUGINS_PART = "plugins"
INSTALLED_PART = "installed"
CATALOGUE_PART = "catalogue"


@dataclass
class LoadReport:
    """Outcome of each independent part of a session load."""
    plugins: Result[Snapshot]
    installed: Result[Dict[str, bool]] = field(default_factory=lambda: Result.success({}))
    catalogue: Result[Dict[str, str]] = field(default_factory=lambda: Result.success({}))

    @property
    def ok(self) -> bool:
        return self.plugins.ok

    @property
    def warnings(self) -> List[str]:
        """Failures of the optional parts."""
        messages = []
        if not self.installed.ok:
            messages.append(f"Installed plugins unavailable: {self.installed.error}")
        if not self.catalogue.ok:
            messages.append(f"Installation unavailable for this session: {self.catalogue.error}")
        return messages


def _completed(value: Any) -> Future:
    future: Future = Future()
    future.set_result(value)
    return future


class StoreSession:
    """
    Client-facing state and orchestration.

    Example:
        with StoreContext.create(config, background=True) as context:
            session = StoreSession(context)
            report = session.load()
            visible = session.view(query="tags:git", sort_key="most_stars")
    """

    def __init__(
        self,
        context: StoreContext,
        installed_provider: Optional[InstalledProvider] = None,
        debouncer: Optional[Debouncer] = None,
    ):
        self.context = context
        self.catalogue = CatalogueClient(context)
        self.readmes = ReadmeFetcher(context)
        self.installer = InstallService(context.config)
        self.filter_engine = FilterEngine()
        self.sort_engine = SortEngine()
        self.installed_provider = installed_provider
        self.debouncer = debouncer or Debouncer(context.config.debounce_delay)
        self.registry = InFlightRegistry(context.executor) if context.executor else None

        self.snapshot: Optional[Snapshot] = None
        self.installed: Dict[str, bool] = {}
        self.install_catalogue: Dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def variant(self) -> str:
        return self.installer.default_variant()

    # -- loading -----------------------------------------------------------

    def _submit(self, key: str, fn: Callable[..., Any], *args: Any) -> Future:
        if self.registry is None:
            return _completed(fn(*args))
        return self.registry.submit(key, fn, *args)

    def _start_load(self, force_refresh: bool) -> Dict[str, Future]:
        return {
            PLUGINS_PART: self._submit(
                PLUGINS_PART, self.catalogue.fetch_plugin_list, force_refresh),
            INSTALLED_PART: self._submit(INSTALLED_PART, self._load_installed),
            CATALOGUE_PART: self._submit(
                f"{CATALOGUE_PART}:{self.variant}", self._load_catalogue, force_refresh),
        }

    def _finish_load(self, futures: Dict[str, Future]) -> LoadReport:
        report = LoadReport(
            plugins=futures[PLUGINS_PART].result(),
            installed=futures[INSTALLED_PART].result(),
            catalogue=futures[CATALOGUE_PART].result(),
        )
        with self._lock:
            if report.plugins.ok:
                self.snapshot = report.plugins.value
            if report.installed.ok:
                self.installed = report.installed.value
            if report.catalogue.ok:
                self.install_catalogue = report.catalogue.value
        for warning in report.warnings:
            logger.warning(warning)
        return report

    def load(self, force_refresh: bool = False) -> LoadReport:
        """Load every part and wait for all of them."""
        return self._finish_load(self._start_load(force_refresh))

    def load_async(self, on_done: Callable[[LoadReport], Any],
                   force_refresh: bool = False) -> TaskHandle:
        """
        Start a load; ``on_done`` receives the LoadReport once every part
        has finished, unless the returned handle was cancelled first.
        """
        handle = TaskHandle("load")
        futures = self._start_load(force_refresh)
        remaining = [len(futures)]
        counter_lock = threading.Lock()

        def part_done(_future: Future) -> None:
            with counter_lock:
                remaining[0] -= 1
                last = remaining[0] == 0
            if last:
                handle.deliver(on_done, self._finish_load(futures))

        for future in futures.values():
            future.add_done_callback(part_done)
        return handle

    def _load_installed(self) -> Result[Dict[str, bool]]:
        if self.installed_provider is None:
            return Result.success({})
        try:
            lookup = self.installed_provider()
            return Result.success({str(name): bool(value) for name, value in lookup.items()})
        except StoreError as e:
            return Result.failure(e)
        except (OSError, ValueError, AttributeError) as e:
            return Result.failure(StoreError(f"Failed to read installed plugins: {e}"))

    def _load_catalogue(self, force_refresh: bool) -> Result[Dict[str, str]]:
        # Without a configured catalogue the snippets inside plugin records are used
        if not self.context.config.install_catalogue_urls.get(self.variant):
            return Result.success({})
        return self.catalogue.fetch_install_catalogue(self.variant, force_refresh)

    # -- browsing ----------------------------------------------------------

    def view(self, query: Optional[str] = None,
             sort_key: str = SortKey.DEFAULT.key) -> Result[List[Plugin]]:
        """Filter then sort the current snapshot."""
        if self.snapshot is None:
            return Result.failure(StoreError("Plugin database is not loaded"))
        filtered = self.filter_engine.apply(self.snapshot.items, query)
        if not filtered.ok:
            return filtered
        return self.sort_engine.apply(filtered.value, sort_key, self.installed)

    def installable_count(self, plugins: List[Plugin]) -> int:
        if self.install_catalogue:
            return sum(1 for p in plugins
                       if p.full_name in self.install_catalogue or p.snippet_for(self.variant))
        return self.filter_engine.count_installable(plugins, self.variant)

    def find(self, full_name: str) -> Optional[Plugin]:
        if self.snapshot is None:
            return None
        return self.snapshot.find(full_name)

    # -- README preview ----------------------------------------------------

    def readme(self, plugin: Plugin, force_refresh: bool = False) -> Result[List[str]]:
        return self.readmes.fetch(plugin.full_name, force_refresh, plugin.readme)

    def preview(self, plugin: Plugin, on_done: Callable[[Result[List[str]]], Any]) -> TaskHandle:
        """
        Debounced README fetch for the selected plugin.

        A newer preview request cancels this one; a fetch already running
        still completes and fills the cache.
        """
        def work() -> Result[List[str]]:
            future = self._submit(f"readme:{plugin.full_name}", self.readme, plugin)
            return future.result()

        return self.debouncer.trigger("preview", work, on_done)

    # -- install -----------------------------------------------------------

    def prepare_install(self, plugin: Plugin, variant: Optional[str] = None) -> Result[InstallPlan]:
        variant = variant or self.variant
        catalogue = self.install_catalogue if variant == self.variant else None
        if catalogue is None and self.context.config.install_catalogue_urls.get(variant):
            fetched = self.catalogue.fetch_install_catalogue(variant)
            catalogue = fetched.value if fetched.ok else None
        return self.installer.prepare(plugin, variant, catalogue)

    def refresh(self) -> LoadReport:
        """Drop cached catalogue data and load everything again."""
        self.catalogue.clear()
        return self.load(force_refresh=True)

    def close(self) -> None:
        self.debouncer.cancel_all()
