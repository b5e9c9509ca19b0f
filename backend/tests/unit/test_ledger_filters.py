"""
Unit tests for ledger filters and ordering.
"""
import pytest
from datetime import date

from services.ledger_filters import LedgerFilterApplicator, apply_filters
from services.ledger_reconciler import reconcile
from tests.factories import make_payment, make_session


@pytest.fixture
def ledger_items(now):
    """Real items for March 1 and 10, virtual items for March 4 and 12."""
    sessions = [
        make_session("s1", "2024-03-04T09:00:00-03:00", cost="6000", first_name="Juan", last_name="Perez"),
        make_session("s2", "2024-03-12T09:00:00-03:00", cost="4000", first_name="Maria", last_name="Garcia"),
    ]
    payments = [
        make_payment("pay1", "7500", "2024-03-01T10:00:00-03:00", status="paid",
                     first_name="Maria", last_name="Garcia"),
        make_payment("pay2", "2000", "2024-03-10T10:00:00-03:00", status="overdue",
                     first_name="Ana", last_name="Lopez"),
    ]
    return reconcile(sessions, payments, now)


class TestLedgerFilterApplicator:
    """Test filter application."""

    def test_no_filters_sorts_by_date_desc(self, ledger_items):
        result = apply_filters(ledger_items, {})

        assert [i['id'] for i in result] == ["virtual-s2", "pay2", "virtual-s1", "pay1"]

    def test_date_bounds_apply_to_virtual_items_only(self, ledger_items):
        """Test prefiltered real payments pass the date filter untouched."""
        result = apply_filters(ledger_items, {
            'date_from': date(2024, 3, 5),
            'date_to': date(2024, 3, 31),
        })

        assert {i['id'] for i in result} == {"pay1", "pay2", "virtual-s2"}

    def test_date_bounds_apply_to_all_when_not_prefiltered(self, ledger_items):
        result = apply_filters(ledger_items, {
            'date_from': date(2024, 3, 5),
            'date_to': date(2024, 3, 31),
            'payments_prefiltered': False,
        })

        assert {i['id'] for i in result} == {"pay2", "virtual-s2"}

    def test_date_bounds_are_inclusive_days(self, ledger_items):
        result = apply_filters(ledger_items, {
            'date_from': date(2024, 3, 4),
            'date_to': date(2024, 3, 4),
            'payments_prefiltered': False,
        })

        assert [i['id'] for i in result] == ["virtual-s1"]

    def test_status_filter_applies_to_virtual_items(self, ledger_items):
        """Test pending filter keeps virtual items (always pending)."""
        result = apply_filters(ledger_items, {'status': 'pending'})

        assert {i['id'] for i in result} == {"virtual-s1", "virtual-s2"}

    def test_status_filter_paid(self, ledger_items):
        result = apply_filters(ledger_items, {'status': 'paid'})

        assert [i['id'] for i in result] == ["pay1"]

    def test_search_is_case_insensitive_substring(self, ledger_items):
        result = apply_filters(ledger_items, {'search_text': '  gar '})

        assert {i['id'] for i in result} == {"pay1", "virtual-s2"}

    def test_search_juan(self):
        """Test searching 'Juan' keeps only Juan Perez."""
        items = [
            {'id': '1', 'patient_name': 'Juan Perez', 'date': date(2024, 3, 1), 'amount': 1},
            {'id': '2', 'patient_name': 'Maria Garcia', 'date': date(2024, 3, 2), 'amount': 1},
        ]

        result = LedgerFilterApplicator._filter_by_search(items, 'Juan')  # type: ignore[arg-type]

        assert [i['patient_name'] for i in result] == ['Juan Perez']

    def test_blank_search_keeps_everything(self, ledger_items):
        result = apply_filters(ledger_items, {'search_text': '   '})

        assert len(result) == len(ledger_items)

    def test_input_not_modified(self, ledger_items):
        before = [i['id'] for i in ledger_items]

        apply_filters(ledger_items, {'status': 'paid', 'sort_key': 'price-asc'})

        assert [i['id'] for i in ledger_items] == before

    def test_filters_compose(self, ledger_items):
        result = apply_filters(ledger_items, {
            'status': 'pending',
            'search_text': 'juan',
        })

        assert [i['id'] for i in result] == ["virtual-s1"]


class TestSortItems:
    """Test ordering."""

    def test_price_desc(self, ledger_items):
        result = LedgerFilterApplicator.sort_items(ledger_items, 'price-desc')

        assert [i['id'] for i in result] == ["pay1", "virtual-s1", "virtual-s2", "pay2"]

    def test_price_asc(self, ledger_items):
        result = LedgerFilterApplicator.sort_items(ledger_items, 'price-asc')

        assert [i['id'] for i in result] == ["pay2", "virtual-s2", "virtual-s1", "pay1"]

    def test_date_asc(self, ledger_items):
        result = LedgerFilterApplicator.sort_items(ledger_items, 'date-asc')

        assert [i['id'] for i in result] == ["pay1", "virtual-s1", "pay2", "virtual-s2"]

    def test_sort_is_stable_on_ties(self):
        """Test equal amounts keep their input order."""
        items = [
            {'id': 'a', 'amount': '100', 'date': date(2024, 3, 1)},
            {'id': 'b', 'amount': 'not-a-number', 'date': date(2024, 3, 1)},
            {'id': 'c', 'amount': '100', 'date': date(2024, 3, 1)},
            {'id': 'd', 'amount': None, 'date': date(2024, 3, 1)},
        ]

        result = LedgerFilterApplicator.sort_items(items, 'price-desc')  # type: ignore[arg-type]

        assert [i['id'] for i in result] == ['a', 'c', 'b', 'd']

    def test_unknown_sort_key_raises(self, ledger_items):
        with pytest.raises(ValueError, match="Unknown sort key"):
            LedgerFilterApplicator.sort_items(ledger_items, 'name-asc')  # type: ignore[arg-type]
