"""Tests for FilterEngine and SortEngine."""

import pytest

from plugindex.domain import Plugin, Snapshot
from plugindex.exit_codes import ValidationError
from plugindex.query import QueryError
from plugindex.services.filter_service import FilterEngine
from plugindex.sorting import SORT_KEYS, SortEngine, SortKey, is_installed


def plugin(full_name, stars=0, updated=None, created=None, **kwargs):
    data = {'full_name': full_name, 'stars': stars,
            'updated_at': updated, 'created_at': created}
    data.update(kwargs)
    return Plugin.from_dict(data)


@pytest.fixture
def scenario():
    """A: 10 stars, oldest update; B: 50 stars; C: 5 stars, newest update."""
    return [
        plugin("owner/A", stars=10, updated="2024-01-01T00:00:00Z", created="2020-01-01T00:00:00Z"),
        plugin("owner/B", stars=50, updated="2024-02-01T00:00:00Z", created="2022-01-01T00:00:00Z"),
        plugin("owner/C", stars=5, updated="2024-03-01T00:00:00Z", created="2021-01-01T00:00:00Z"),
    ]


def short_names(plugins):
    return [p.name for p in plugins]


class TestFilterEngine:
    """Tests for FilterEngine."""

    def test_empty_query_is_identity(self, scenario):
        """The empty query returns every record in the original order."""
        engine = FilterEngine()
        for query in ("", "   ", None, ";;"):
            result = engine.apply(scenario, query)
            assert result.value == scenario

    def test_filters_in_order(self, scenario):
        result = FilterEngine().apply(scenario, "owner/")
        assert short_names(result.value) == ["A", "B", "C"]
        assert short_names(FilterEngine().apply(scenario, "name:b").value) == ["B"]

    def test_stars_is_not_filterable(self, scenario):
        """stars:5 is an unknown field, not a silent no-match."""
        result = FilterEngine().apply(scenario, "stars:5")
        assert isinstance(result.error, QueryError)
        assert "stars" in str(result.error)

    def test_accepts_snapshot(self, catalogue_doc):
        snapshot = Snapshot.from_dict(catalogue_doc)
        result = FilterEngine().apply(snapshot, "author:folke")
        assert [p.full_name for p in result.value] == ['folke/lazy.nvim', 'folke/tokyonight.nvim']

    def test_count_installable(self, catalogue_doc):
        snapshot = Snapshot.from_dict(catalogue_doc)
        assert FilterEngine.count_installable(snapshot) == 1
        assert FilterEngine.count_installable(snapshot, "lazy.nvim") == 1
        assert FilterEngine.count_installable(snapshot, "vim.pack") == 0


class TestSortEngine:
    """Tests for SortEngine."""

    def test_most_stars(self, scenario):
        assert short_names(SortEngine().apply(scenario, "most_stars").value) == ["B", "A", "C"]

    def test_recently_updated(self, scenario):
        assert short_names(SortEngine().apply(scenario, "recently_updated").value) == ["C", "B", "A"]

    def test_recently_created(self, scenario):
        assert short_names(SortEngine().apply(scenario, "recently_created").value) == ["B", "C", "A"]

    def test_default_keeps_order(self, scenario):
        assert SortEngine().apply(scenario, "default").value == scenario

    def test_does_not_mutate_input(self, scenario):
        original = list(scenario)
        SortEngine().apply(scenario, "most_stars")
        assert scenario == original

    def test_ties_keep_original_order(self):
        """Equal keys keep their relative order."""
        items = [plugin(f"o/{n}", stars=1) for n in "xyz"] + [plugin("o/w", stars=2)]
        assert short_names(SortEngine().apply(items, "most_stars").value) == ["w", "x", "y", "z"]

    def test_missing_timestamps_sort_last(self, scenario):
        items = [plugin("o/none")] + scenario
        result = SortEngine().apply(items, "recently_updated")
        assert short_names(result.value) == ["C", "B", "A", "none"]

    def test_installed_partition(self, scenario):
        """Installed records come first, relative order kept on both sides."""
        installed = {"C": True, "owner/A": True}
        result = SortEngine().apply(scenario, "installed", installed)
        assert short_names(result.value) == ["A", "C", "B"]

    def test_installed_sort_idempotent(self, scenario):
        installed = {"B": True}
        engine = SortEngine()
        once = engine.apply(scenario, "installed", installed).value
        twice = engine.apply(once, "installed", installed).value
        assert twice == once

    @pytest.mark.parametrize("key", SORT_KEYS)
    def test_every_sort_is_idempotent(self, scenario, key):
        engine = SortEngine()
        once = engine.apply(scenario, key, {"A": True}).value
        assert engine.apply(once, key, {"A": True}).value == once

    def test_installed_without_lookup(self, scenario):
        assert SortEngine().apply(scenario, "installed").value == scenario

    def test_unknown_key(self, scenario):
        result = SortEngine().apply(scenario, "alphabetical")
        assert isinstance(result.error, ValidationError)
        assert "alphabetical" in str(result.error)

    def test_accepts_enum_and_case(self, scenario):
        assert SortEngine().apply(scenario, SortKey.MOST_STARS).ok
        assert SortEngine().apply(scenario, "Most_Stars").ok

    def test_labels(self):
        assert SortEngine.labels() == [
            "Default", "Most Stars", "Recently Updated", "Recently Created", "Installed"]

    def test_is_installed_lookup(self, scenario):
        assert is_installed(scenario[0], {"A": True})
        assert is_installed(scenario[0], {"owner/A": True})
        assert not is_installed(scenario[0], {"A": False})
        assert not is_installed(scenario[0], None)
