"""
Tests for listing parameter extraction and sorting.
"""

import pytest
from sqlalchemy import select

from resource_service.services.crud.query_params import (
    SortSpec,
    apply_sort,
    parse_filter,
    parse_query_params,
    parse_sort,
)
from shared.config.constants import Limits
from sample_models import Author


class TestParseFilter:
    """Tests for parse_filter()"""

    def test_json_string(self):
        assert parse_filter('{"equal": {"status": "active"}}') == {"equal": {"status": "active"}}

    def test_dict_is_accepted(self):
        assert parse_filter({"like": {"name": "a"}}) == {"like": {"name": "a"}}

    @pytest.mark.parametrize("raw", [None, "", "{not json", "[1, 2]", '"text"', 42])
    def test_unusable_values_give_empty_filter(self, raw):
        assert parse_filter(raw) == {}

    def test_malformed_json_is_logged(self, caplog):
        with caplog.at_level("WARNING"):
            parse_filter("{oops")
        assert "Malformed filter parameter ignored" in caplog.text


class TestParseSort:
    """Tests for parse_sort()"""

    def test_ascending(self):
        assert parse_sort("name|asc") == SortSpec(field="name", direction="asc")

    def test_direction_is_case_insensitive(self):
        assert parse_sort("rating|DESC") == SortSpec(field="rating", direction="desc")

    @pytest.mark.parametrize("raw", ["name", "a|b|c", "name|sideways", "|asc", "", None, 5])
    def test_malformed_sort_is_ignored(self, raw):
        assert parse_sort(raw) is None


class TestParseQueryParams:
    """Tests for parse_query_params()"""

    def test_defaults(self):
        params = parse_query_params(None)
        assert params.filters == {}
        assert params.sort is None
        assert params.limit == 20
        assert params.page == 1

    def test_string_values_are_converted(self):
        params = parse_query_params({"limit": "5", "page": "3", "sort": "name|desc"})
        assert params.limit == 5
        assert params.page == 3
        assert params.sort == SortSpec(field="name", direction="desc")

    def test_limit_is_capped(self):
        params = parse_query_params({"limit": Limits.MAX_PAGE_SIZE + 50})
        assert params.limit == Limits.MAX_PAGE_SIZE

    @pytest.mark.parametrize("raw", ["abc", 0, -3, ""])
    def test_invalid_numbers_fall_back_to_defaults(self, raw):
        params = parse_query_params({"limit": raw, "page": raw})
        assert params.limit == Limits.DEFAULT_PAGE_SIZE
        assert params.page == Limits.FIRST_PAGE


class TestApplySort:
    """Tests for apply_sort()"""

    def names(self, db_session, sort):
        query = apply_sort(select(Author), Author, parse_sort(sort))
        return [author.name for author in db_session.scalars(query)]

    def test_ascending(self, db_session, seed_authors):
        assert self.names(db_session, "rating|asc") == ["Bob", "Dan", "Cora", "Ann"]

    def test_descending(self, db_session, seed_authors):
        assert self.names(db_session, "name|desc") == ["Dan", "Cora", "Bob", "Ann"]

    def test_missing_pipe_adds_no_ordering(self):
        query = apply_sort(select(Author), Author, parse_sort("name"))
        assert "ORDER BY" not in str(query)

    def test_unknown_column_adds_no_ordering(self):
        query = apply_sort(select(Author), Author, SortSpec(field="books", direction="asc"))
        assert "ORDER BY" not in str(query)
