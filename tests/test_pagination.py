"""Tests for pagination.py: page clamping, search term parsing, id filters."""

import pytest

from sis_portal.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from sis_portal.utils.pagination import (
    PageResult,
    normalize_page,
    split_ids,
    split_search_terms,
)


class TestNormalizePage:
    @pytest.mark.parametrize(
        "page,limit,expected",
        [
            (None, None, (1, DEFAULT_PAGE_SIZE)),
            (0, 0, (1, DEFAULT_PAGE_SIZE)),
            (-3, 5, (1, 5)),
            (4, 25, (4, 25)),
            (2, MAX_PAGE_SIZE + 50, (2, MAX_PAGE_SIZE)),
        ],
    )
    def test_clamps(self, page, limit, expected):
        assert normalize_page(page, limit) == expected


class TestPageResult:
    def test_total_pages_rounds_up(self):
        assert PageResult(items=[], total=21, page=1, limit=10).total_pages == 3

    def test_empty(self):
        assert PageResult(items=[], total=0, page=1, limit=10).total_pages == 0


class TestSearchTerms:
    def test_splits_on_spaces_and_commas(self):
        assert split_search_terms("  Doe,  Jane ") == ["Doe", "Jane"]

    def test_keeps_email_and_student_number_characters(self):
        assert split_search_terms("jane.doe@x.com 2024-0001") == [
            "jane.doe@x.com",
            "2024-0001",
        ]

    def test_drops_punctuation_only_terms(self):
        assert split_search_terms("% ( jane") == ["jane"]

    def test_empty(self):
        assert split_search_terms(None) == []
        assert split_search_terms("   ") == []


class TestSplitIds:
    def test_comma_list(self):
        assert split_ids("a, b,,c ") == ["a", "b", "c"]

    def test_empty(self):
        assert split_ids("") == []
        assert split_ids(None) == []
