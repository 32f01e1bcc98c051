"""Shared fixtures for plugindex tests."""

import json
from unittest.mock import MagicMock

import pytest

from plugindex.config import default_config
from plugindex.context import StoreContext
from plugindex.infra import HttpClient, HttpResponse

DB_URL = "https://example.com/db.json"


class FakeClock:
    """Settable time source."""

    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def json_response(data, url=DB_URL, headers=None):
    text = json.dumps(data)
    return HttpResponse(url=url, status=200, text=text, headers=headers or {})


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalogue_doc():
    return {
        'meta': {
            'total_count': 3,
            'created_at': '2025-06-01T12:00:00Z',
            'max_full_name_length': 32,
        },
        'items': [
            {
                'full_name': 'folke/lazy.nvim',
                'description': 'A modern plugin manager for Neovim',
                'tags': ['plugin-manager', 'lua'],
                'stars': 10,
                'issues': 3,
                'created_at': '2022-11-01T00:00:00Z',
                'updated_at': '2025-01-01T00:00:00Z',
                'install': {'lazy.nvim': '{ "folke/lazy.nvim" }', 'initial': 'lazy.nvim'},
                'readme': 'main/README.md',
            },
            {
                'full_name': 'nvim-telescope/telescope.nvim',
                'description': 'Find, Filter, Preview, Pick',
                'tags': ['fuzzy-finder', 'ui'],
                'stars': 50,
                'issues': 10,
                'created_at': '2020-08-01T00:00:00Z',
                'updated_at': '2025-02-01T00:00:00Z',
            },
            {
                'full_name': 'folke/tokyonight.nvim',
                'tags': ['colorscheme'],
                'stars': 5,
                'issues': 0,
                'created_at': '2021-03-01T00:00:00Z',
                'updated_at': '2025-03-01T00:00:00Z',
            },
        ],
    }


@pytest.fixture
def config(tmp_path):
    config = default_config()
    config.cache_dir = str(tmp_path / "cache")
    config.data_source_url = DB_URL
    config.install_dir = str(tmp_path / "nvim")
    return config


@pytest.fixture
def http():
    return MagicMock(spec=HttpClient)


@pytest.fixture
def context(config, http, clock):
    return StoreContext.create(config, http=http, clock=clock)


@pytest.fixture
def new_context(config, http, clock):
    """Factory for a second context over the same cache, like a restarted process."""
    def factory():
        return StoreContext.create(config, http=http, clock=clock)
    return factory
