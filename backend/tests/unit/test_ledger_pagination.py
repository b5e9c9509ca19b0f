"""
Unit tests for ledger pagination and view state.
"""
import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal

from services.ledger_pagination import LedgerViewState, paginate
from utils.datetime_utils import LOCAL_TZ


def make_items(count):
    base = datetime(2024, 3, 1, 10, tzinfo=LOCAL_TZ)
    return [
        {
            'id': f"pay{n}",
            'is_virtual': False,
            'status': 'paid',
            'amount': Decimal(n),
            'date': base + timedelta(days=n),
            'patient_id': 'p1',
            'patient_name': 'Juan Perez' if n % 2 else 'Maria Garcia',
            'session_id': None,
            'description': None,
            'payment': None,
        }
        for n in range(count)
    ]


class TestPaginatePageMode:
    """Test fixed-size pages."""

    def test_middle_page(self):
        items = make_items(25)

        result = paginate(items, "page", {'page': 2, 'page_size': 10})

        assert [i['id'] for i in result['page_items']] == [f"pay{n}" for n in range(10, 20)]
        assert result['page_meta']['total_pages'] == 3
        assert result['page_meta']['total_count'] == 25
        assert result['page_meta']['has_more'] is True

    def test_last_partial_page(self):
        result = paginate(make_items(25), "page", {'page': 3, 'page_size': 10})

        assert len(result['page_items']) == 5
        assert result['page_meta']['has_more'] is False
        assert result['page_meta']['visible_count'] == 25

    def test_page_past_end_is_empty(self):
        result = paginate(make_items(5), "page", {'page': 4, 'page_size': 10})

        assert result['page_items'] == []

    def test_empty_list_has_zero_pages(self):
        result = paginate([], "page", {'page': 1, 'page_size': 10})

        assert result['page_meta']['total_pages'] == 0
        assert result['page_items'] == []

    def test_pages_concatenate_to_full_list(self):
        """Test iterating all pages yields every item exactly once, in order."""
        items = make_items(23)
        collected = []
        for page in range(1, 4):
            collected.extend(paginate(items, "page", {'page': page, 'page_size': 10})['page_items'])

        assert collected == items

    def test_invalid_page_raises(self):
        with pytest.raises(ValueError):
            paginate(make_items(3), "page", {'page': 0, 'page_size': 10})

    def test_invalid_page_size_raises(self):
        with pytest.raises(ValueError):
            paginate(make_items(3), "page", {'page': 1, 'page_size': 0})


class TestPaginateBatchMode:
    """Test growing-prefix batches."""

    def test_prefix(self):
        items = make_items(25)

        result = paginate(items, "batch", {'visible_count': 10, 'page_size': 10})

        assert result['page_items'] == items[:10]
        assert result['page_meta']['has_more'] is True

    def test_visible_count_beyond_total(self):
        result = paginate(make_items(5), "batch", {'visible_count': 20, 'page_size': 10})

        assert len(result['page_items']) == 5
        assert result['page_meta']['has_more'] is False

    def test_unknown_mode_raises(self):
        with pytest.raises(ValueError, match="Unknown pagination mode"):
            paginate(make_items(3), "scroll", {})  # type: ignore[arg-type]


class TestLedgerViewState:
    """Test filter/pagination state transitions."""

    def test_filter_change_resets_page(self):
        state = LedgerViewState(page_size=10)
        state.set_page(3)

        state.update_filters(status='paid')

        assert state.page == 1
        assert state.filters['status'] == 'paid'
        assert state.filters['sort_key'] == 'date-desc'

    def test_filter_change_resets_visible_count(self):
        state = LedgerViewState(mode="batch", batch_size=10)
        state.load_more()
        state.load_more()
        assert state.visible_count == 30

        state.update_filters(search_text='juan')

        assert state.visible_count == 10

    def test_view_filters_then_paginates(self):
        state = LedgerViewState(page_size=5)
        state.update_filters(search_text='juan', sort_key='date-asc')

        result = state.view(make_items(20))

        assert result['page_meta']['total_count'] == 10
        assert [i['id'] for i in result['page_items']] == ["pay1", "pay3", "pay5", "pay7", "pay9"]

    def test_view_date_bounds(self):
        state = LedgerViewState(page_size=50)
        state.update_filters(date_from=date(2024, 3, 5), date_to=date(2024, 3, 6), payments_prefiltered=False)

        result = state.view(make_items(20))

        assert [i['id'] for i in result['page_items']] == ["pay5", "pay4"]

    def test_set_page_rejects_zero(self):
        with pytest.raises(ValueError):
            LedgerViewState().set_page(0)
