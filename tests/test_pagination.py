"""
Unit tests for engine.pagination.

Tests cover:
- Page slicing and counts
- Parameter normalisation (absent, non-numeric, non-positive)
- Navigation metadata
"""

import pytest

from engine.pagination import DEFAULT_LIMIT, Page, normalize_page_params, paginate


ITEMS = list(range(25))


# =============================================================================
# Slicing Tests
# =============================================================================

class TestPaginate:
    """Pages are exact slices of the ordered sequence."""

    @pytest.mark.parametrize("page,expected", [(1, 10), (2, 10), (3, 5), (4, 0)])
    def test_page_sizes_for_25_items(self, page, expected):
        result = paginate(ITEMS, page=page, limit=10)
        assert len(result.items) == expected
        assert result.total == 25
        assert result.total_pages == 3

    def test_pages_partition_the_sequence(self):
        seen = []
        for page in range(1, 4):
            seen.extend(paginate(ITEMS, page=page, limit=10).items)
        assert seen == ITEMS

    def test_third_page_holds_the_tail(self):
        assert paginate(ITEMS, page=3, limit=10).items == [20, 21, 22, 23, 24]

    def test_empty_sequence(self):
        result = paginate([], page=1, limit=10)
        assert result.items == []
        assert result.total == 0
        assert result.total_pages == 0
        assert result.has_next_page is False

    def test_page_past_end_is_empty_not_error(self):
        result = paginate(ITEMS, page=99, limit=10)
        assert result.items == []
        assert result.page == 99


# =============================================================================
# Parameter Normalisation Tests
# =============================================================================

class TestNormalizePageParams:
    """Absent or invalid parameters fall back to defaults."""

    def test_defaults_when_absent(self):
        assert normalize_page_params() == (1, DEFAULT_LIMIT)

    @pytest.mark.parametrize("page", [0, -3, "abc", None, True])
    def test_invalid_page_becomes_first_page(self, page):
        assert normalize_page_params(page, 5)[0] == 1

    @pytest.mark.parametrize("limit", [0, -1, "ten", None, False])
    def test_invalid_limit_becomes_default(self, limit):
        assert normalize_page_params(2, limit, default_limit=7) == (2, 7)

    def test_numeric_strings_are_accepted(self):
        assert normalize_page_params("3", "20") == (3, 20)

    def test_invalid_default_limit_falls_back(self):
        assert normalize_page_params(1, None, default_limit=0) == (1, DEFAULT_LIMIT)


# =============================================================================
# Metadata Tests
# =============================================================================

class TestPageMetadata:

    def test_first_page_navigation(self):
        page = Page(items=[1], page=1, limit=10, total=25)
        assert page.has_prev_page is False
        assert page.prev_page is None
        assert page.has_next_page is True
        assert page.next_page == 2

    def test_last_page_navigation(self):
        page = Page(items=[1], page=3, limit=10, total=25)
        assert page.has_next_page is False
        assert page.next_page is None
        assert page.prev_page == 2

    def test_to_dict_shape(self):
        data = paginate(ITEMS, page=2, limit=10).to_dict()
        assert data["items"] == list(range(10, 20))
        assert data["page"] == 2
        assert data["limit"] == 10
        assert data["total"] == 25
        assert data["total_pages"] == 3
        assert data["has_prev_page"] is True
        assert data["has_next_page"] is True
