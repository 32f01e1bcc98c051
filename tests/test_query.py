"""Tests for the query language."""

import pytest

from plugindex.domain import Plugin
from plugindex.query import (
    Field, QueryError, QueryErrorKind, VALID_FIELDS, compile_filter, parse_query,
)


def make_plugin(full_name, **kwargs):
    data = {'full_name': full_name}
    data.update(kwargs)
    return Plugin.from_dict(data)


@pytest.fixture
def plugins():
    return [
        make_plugin("folke/lazy.nvim", description="A modern plugin manager",
                    tags=["plugin-manager", "Lua"], homepage="https://lazy.folke.io"),
        make_plugin("nvim-telescope/telescope.nvim", description="Find, Filter, Preview, Pick",
                    tags=["fuzzy-finder", "ui"]),
        make_plugin("folke/tokyonight.nvim", tags=["colorscheme", "UI"]),
        make_plugin("tpope/vim-fugitive", description="A Git wrapper so awesome"),
    ]


def names(result, plugins):
    predicate = result.unwrap()
    return [p.full_name for p in plugins if predicate(p)]


class TestParseQuery:
    """Tests for parse_query."""

    def test_bare_term_is_full_name(self):
        """A term without a colon searches full_name."""
        criteria = parse_query("telescope").unwrap()
        assert len(criteria) == 1
        assert criteria[0].field is Field.FULL_NAME
        assert criteria[0].value == "telescope"

    def test_field_value_pairs(self):
        """field:value pairs keep their order."""
        criteria = parse_query("author:folke;tags:ui,git").unwrap()
        assert [c.field for c in criteria] == [Field.AUTHOR, Field.TAGS]
        assert criteria[1].value == "ui,git"

    def test_field_is_case_insensitive(self):
        """Field names match regardless of case."""
        criteria = parse_query("AUTHOR:folke; Description : manager").unwrap()
        assert [c.field for c in criteria] == [Field.AUTHOR, Field.DESCRIPTION]
        assert criteria[1].value == "manager"

    def test_splits_on_first_colon(self):
        """Only the first colon separates field from value."""
        criteria = parse_query("homepage:https://lazy").unwrap()
        assert criteria[0].field is Field.HOMEPAGE
        assert criteria[0].value == "https://lazy"

    def test_empty_segments_skipped(self):
        """Empty segments between separators are ignored."""
        criteria = parse_query(";;telescope; ;").unwrap()
        assert len(criteria) == 1

    def test_empty_query(self):
        """An empty query has no criteria."""
        assert parse_query("").unwrap() == []
        assert parse_query(None).unwrap() == []

    def test_unknown_field_names_field_and_valid_set(self):
        """An unknown field is an error naming it and every valid field."""
        result = parse_query("bogus:x")
        assert not result.ok
        error = result.error
        assert isinstance(error, QueryError)
        assert error.kind is QueryErrorKind.INVALID_FIELD
        assert error.field == "bogus"
        assert "bogus" in str(error)
        for field in VALID_FIELDS:
            assert field in str(error)

    def test_empty_field(self):
        """A colon with nothing before it is an empty field error."""
        result = parse_query(":value")
        assert result.error.kind is QueryErrorKind.EMPTY_FIELD

    def test_empty_value(self):
        """A field with a blank value is an empty value error."""
        result = parse_query("author:   ")
        assert result.error.kind is QueryErrorKind.EMPTY_VALUE
        assert result.error.field == "author"

    def test_error_stops_parsing(self):
        """One bad criterion fails the whole query."""
        assert not parse_query("telescope;stars:5").ok

    def test_query_error_is_validation_error(self):
        """Query errors exit with the usage error code."""
        from plugindex.exit_codes import USAGE_ERROR, ValidationError
        error = parse_query("bogus:x").error
        assert isinstance(error, ValidationError)
        assert error.exit_code == USAGE_ERROR


class TestCompileFilter:
    """Tests for compile_filter and matching semantics."""

    def test_empty_query_matches_everything(self, plugins):
        """The empty query is the identity filter."""
        assert names(compile_filter(""), plugins) == [p.full_name for p in plugins]

    def test_substring_case_insensitive(self, plugins):
        """Matching is a case-insensitive substring test."""
        assert names(compile_filter("TELE"), plugins) == ["nvim-telescope/telescope.nvim"]

    def test_author_field(self, plugins):
        """author matches the owner part."""
        assert names(compile_filter("author:folke"), plugins) == [
            "folke/lazy.nvim", "folke/tokyonight.nvim"]

    def test_name_field(self, plugins):
        """name matches the repository part only."""
        assert names(compile_filter("name:vim-"), plugins) == ["tpope/vim-fugitive"]

    def test_missing_description_never_matches(self, plugins):
        """Records without the field do not match."""
        assert names(compile_filter("description:a"), plugins) == [
            "folke/lazy.nvim", "tpope/vim-fugitive"]

    def test_homepage_field(self, plugins):
        """homepage only matches records that have one."""
        assert names(compile_filter("homepage:folke"), plugins) == ["folke/lazy.nvim"]

    def test_tags_or_within_field(self, plugins):
        """tags:a,b matches when any tag contains any sub-term."""
        assert names(compile_filter("tags:lua,colorscheme"), plugins) == [
            "folke/lazy.nvim", "folke/tokyonight.nvim"]

    def test_tags_case_insensitive_substring(self, plugins):
        """Tag matching folds case and accepts substrings."""
        assert names(compile_filter("tags:UI"), plugins) == [
            "nvim-telescope/telescope.nvim", "folke/tokyonight.nvim"]
        assert names(compile_filter("tags:fuzzy"), plugins) == [
            "nvim-telescope/telescope.nvim"]

    def test_tags_blank_subterms_ignored(self, plugins):
        """Blank alternatives in a tags value are dropped."""
        assert names(compile_filter("tags:, ,colorscheme,"), plugins) == [
            "folke/tokyonight.nvim"]

    def test_criteria_are_anded(self, plugins):
        """Every criterion must match."""
        assert names(compile_filter("author:folke;tags:ui"), plugins) == [
            "folke/tokyonight.nvim"]

    def test_and_equals_conjunction_of_parts(self, plugins):
        """match(c1;c2) == match(c1) and match(c2) for every record."""
        pairs = [("folke", "tags:ui"), ("nvim", "description:a"), ("author:tpope", "git")]
        for first, second in pairs:
            both = compile_filter(f"{first};{second}").unwrap()
            left = compile_filter(first).unwrap()
            right = compile_filter(second).unwrap()
            for plugin in plugins:
                assert both(plugin) == (left(plugin) and right(plugin))

    def test_non_filterable_field_is_error(self):
        """stars is not a filterable field."""
        result = compile_filter("stars:5")
        assert not result.ok
        assert result.error.field == "stars"
