"""Tests for StoreSession."""

import threading

import pytest

from plugindex.context import StoreContext
from plugindex.exit_codes import ProtocolError, StoreError, TransportError
from plugindex.services.install_service import FROM_CATALOGUE, FROM_RECORD
from plugindex.services.session import LoadReport, StoreSession
from plugindex.domain import Result
from plugindex.infra import HttpResponse
from plugindex.tasks import Debouncer

from conftest import DB_URL, json_response

LAZY_URL = "https://example.com/lazy.json"


class ImmediateTimer:
    """Timer that fires as soon as it is started."""

    def __init__(self, delay, function, args=()):
        self.function = function
        self.args = args

    def start(self):
        self.function(*self.args)

    def cancel(self):
        pass


def route(responses):
    """side_effect dispatching GET requests by URL."""
    def get(url, headers=None):
        response = responses[url]
        if isinstance(response, Exception):
            raise response
        return response
    return get


@pytest.fixture
def session(context):
    return StoreSession(context, debouncer=Debouncer(0, timer_factory=ImmediateTimer))


class TestLoad:
    """Tests for StoreSession.load."""

    def test_load(self, session, http, catalogue_doc):
        http.get.return_value = json_response(catalogue_doc)
        report = session.load()
        assert report.ok
        assert report.warnings == []
        assert len(session.snapshot) == 3
        assert session.installed == {}
        assert session.install_catalogue == {}

    def test_no_catalogue_url_no_request(self, session, http, catalogue_doc):
        """Without an install catalogue URL only the database is requested."""
        http.get.return_value = json_response(catalogue_doc)
        session.load()
        http.get.assert_called_once_with(DB_URL)

    def test_catalogue_failure_is_a_warning(self, session, http, config, catalogue_doc):
        """A failed install catalogue never fails the plugin list."""
        config.install_catalogue_urls = {'lazy.nvim': LAZY_URL}
        http.get.side_effect = route({
            DB_URL: json_response(catalogue_doc),
            LAZY_URL: ProtocolError("HTTP 404", status=404),
        })
        report = session.load()
        assert report.ok
        assert len(report.warnings) == 1
        assert report.warnings[0].startswith("Installation unavailable for this session")
        assert len(session.snapshot) == 3

    def test_catalogue_loaded(self, session, http, config, catalogue_doc):
        config.install_catalogue_urls = {'lazy.nvim': LAZY_URL}
        http.get.side_effect = route({
            DB_URL: json_response(catalogue_doc),
            LAZY_URL: json_response({'items': {'folke/tokyonight.nvim': '{ "folke/tokyonight.nvim" }'}}, url=LAZY_URL),
        })
        session.load()
        assert session.install_catalogue == {'folke/tokyonight.nvim': '{ "folke/tokyonight.nvim" }'}
        # One record from the catalogue, one inline snippet
        assert session.installable_count(list(session.snapshot)) == 2

    def test_installed_provider(self, context, http, catalogue_doc):
        http.get.return_value = json_response(catalogue_doc)
        session = StoreSession(context, installed_provider=lambda: {'lazy.nvim': 1})
        assert session.load().ok
        assert session.installed == {'lazy.nvim': True}

    def test_installed_provider_failure(self, context, http, catalogue_doc):
        def broken():
            raise OSError("no lock file")

        http.get.return_value = json_response(catalogue_doc)
        session = StoreSession(context, installed_provider=broken)
        report = session.load()
        assert report.ok
        assert isinstance(report.installed.error, StoreError)
        assert "no lock file" in report.warnings[0]

    def test_database_failure(self, session, http):
        http.get.side_effect = TransportError("offline")
        report = session.load()
        assert not report.ok
        assert session.snapshot is None
        assert not session.view().ok

    def test_failed_reload_keeps_snapshot(self, session, http, catalogue_doc):
        http.get.return_value = json_response(catalogue_doc)
        session.load()
        http.get.side_effect = TransportError("offline")
        assert not session.load(force_refresh=True).ok
        assert len(session.snapshot) == 3

    def test_load_async_inline(self, session, http, catalogue_doc):
        http.get.return_value = json_response(catalogue_doc)
        reports = []
        session.load_async(reports.append)
        assert len(reports) == 1
        assert reports[0].ok

    def test_load_async_background(self, config, http, clock, catalogue_doc):
        """Background loads deliver one report after every part finishes."""
        http.get.return_value = json_response(catalogue_doc)
        done = threading.Event()
        reports = []

        def on_done(report):
            reports.append(report)
            done.set()

        with StoreContext.create(config, http=http, clock=clock, background=True) as context:
            session = StoreSession(context, installed_provider=lambda: {'telescope.nvim': True})
            session.load_async(on_done)
            assert done.wait(5)
        assert len(reports) == 1
        assert reports[0].ok
        assert session.installed == {'telescope.nvim': True}

    def test_refresh_downloads(self, session, http, catalogue_doc):
        http.get.return_value = json_response(catalogue_doc)
        session.load()
        session.refresh()
        assert http.get.call_count == 2


class TestView:
    """Tests for StoreSession.view."""

    def test_filter_and_sort(self, session, http, catalogue_doc):
        http.get.return_value = json_response(catalogue_doc)
        session.load()
        result = session.view("author:folke", "most_stars")
        assert [p.name for p in result.value] == ['lazy.nvim', 'tokyonight.nvim']

    def test_installed_sort_uses_lookup(self, context, http, catalogue_doc):
        http.get.return_value = json_response(catalogue_doc)
        session = StoreSession(context, installed_provider=lambda: {'tokyonight.nvim': True})
        session.load()
        names = [p.name for p in session.view(sort_key="installed").value]
        assert names == ['tokyonight.nvim', 'lazy.nvim', 'telescope.nvim']

    def test_query_error(self, session, http, catalogue_doc):
        http.get.return_value = json_response(catalogue_doc)
        session.load()
        assert not session.view("stars:5").ok

    def test_find(self, session, http, catalogue_doc):
        assert session.find('folke/lazy.nvim') is None
        http.get.return_value = json_response(catalogue_doc)
        session.load()
        assert session.find('folke/lazy.nvim').stars == 10


class TestPreviewAndInstall:
    """README preview and install preparation."""

    def test_preview_uses_readme_ref(self, session, http, config, catalogue_doc):
        http.get.return_value = json_response(catalogue_doc)
        session.load()
        config.readme_source = "raw"
        http.get.return_value = HttpResponse("u", 200, "# lazy")

        results = []
        session.preview(session.find('folke/lazy.nvim'), results.append)
        assert results == [Result.success(["# lazy"])]
        http.get.assert_called_with("https://raw.githubusercontent.com/folke/lazy.nvim/main/README.md")

    def test_close_cancels_pending_preview(self, context):
        session = StoreSession(context, debouncer=Debouncer(60))
        plugin_results = []
        handle = session.debouncer.trigger("preview", lambda: None, plugin_results.append)
        session.close()
        assert handle.cancelled

    def test_prepare_install_inline(self, session, http, catalogue_doc):
        http.get.return_value = json_response(catalogue_doc)
        session.load()
        plan = session.prepare_install(session.find('folke/lazy.nvim')).unwrap()
        assert plan.origin == FROM_RECORD
        assert plan.snippet == 'return { "folke/lazy.nvim" }'

    def test_prepare_install_catalogue(self, session, http, config, catalogue_doc):
        config.install_catalogue_urls = {'lazy.nvim': LAZY_URL}
        http.get.side_effect = route({
            DB_URL: json_response(catalogue_doc),
            LAZY_URL: json_response({'items': {'folke/lazy.nvim': '{ "folke/lazy.nvim", lazy = false }'}}, url=LAZY_URL),
        })
        session.load()
        plan = session.prepare_install(session.find('folke/lazy.nvim')).unwrap()
        assert plan.origin == FROM_CATALOGUE
        assert plan.snippet == 'return { "folke/lazy.nvim", lazy = false }'

    def test_prepare_install_other_variant(self, session, http, config, catalogue_doc):
        """A variant other than the session's fetches its own catalogue."""
        pack_url = "https://example.com/pack.json"
        config.install_catalogue_urls = {'vim.pack': pack_url}
        http.get.side_effect = route({
            DB_URL: json_response(catalogue_doc),
            pack_url: json_response({'items': {'folke/lazy.nvim': 'vim.pack.add({})'}}, url=pack_url),
        })
        session.load()
        plan = session.prepare_install(session.find('folke/lazy.nvim'), "vim.pack").unwrap()
        assert plan.variant == "vim.pack"
        assert plan.snippet == 'vim.pack.add({})'


def test_load_report_warnings():
    report = LoadReport(plugins=Result.success(None),
                        installed=Result.failure(StoreError("x")),
                        catalogue=Result.failure(StoreError("y")))
    assert report.ok
    assert len(report.warnings) == 2


def test_contexts_share_no_state(config, http, clock):
    """Two contexts over one config keep separate cache stores."""
    first = StoreContext.create(config, http=http, clock=clock)
    second = StoreContext.create(config, http=http, clock=clock)
    assert set(first.caches) == {"plugins", "readmes", "install"}
    first.plugins_cache.put(DB_URL, {'items': []})
    assert first.plugins_cache.get(DB_URL).tier == "memory"
    assert second.plugins_cache.get(DB_URL).tier == "disk"
    assert not hasattr(first, "extras")
