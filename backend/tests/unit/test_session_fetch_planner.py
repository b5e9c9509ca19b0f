"""
Unit tests for the session fetch planner.
"""
import pytest
from datetime import datetime
from unittest.mock import AsyncMock

from services.session_fetch_planner import SessionFetchPlanner
from services.date_range_service import resolve_date_range
from utils.datetime_utils import LOCAL_TZ
from tests.factories import make_session


class TestPlanMonths:
    """Test month key planning."""

    def test_single_month(self):
        start = datetime(2024, 3, 1, tzinfo=LOCAL_TZ)
        end = datetime(2024, 3, 15, tzinfo=LOCAL_TZ)

        assert SessionFetchPlanner.plan_months(start, end) == [(2024, 3)]

    def test_spans_both_endpoint_months(self):
        """Test a rolling week across a month boundary touches both months."""
        start = datetime(2024, 2, 27, 12, tzinfo=LOCAL_TZ)
        end = datetime(2024, 3, 5, 12, tzinfo=LOCAL_TZ)

        assert SessionFetchPlanner.plan_months(start, end) == [(2024, 2), (2024, 3)]

    def test_crosses_year(self):
        start = datetime(2023, 11, 20, tzinfo=LOCAL_TZ)
        end = datetime(2024, 1, 3, tzinfo=LOCAL_TZ)

        assert SessionFetchPlanner.plan_months(start, end) == [(2023, 11), (2023, 12), (2024, 1)]

    def test_year_range_has_twelve_months_at_most(self):
        now = datetime(2024, 12, 31, 23, 0, tzinfo=LOCAL_TZ)
        date_range = resolve_date_range("year", now)

        months = SessionFetchPlanner.plan_months(date_range['start'], date_range['end'])

        assert len(months) == 12
        assert months[0] == (2024, 1)
        assert months[-1] == (2024, 12)

    def test_end_before_start_is_empty(self):
        start = datetime(2024, 3, 1, tzinfo=LOCAL_TZ)
        end = datetime(2024, 2, 1, tzinfo=LOCAL_TZ)

        assert SessionFetchPlanner.plan_months(start, end) == []


class TestMergeMonthlyBatches:
    """Test merging of monthly batches."""

    def test_deduplicates_by_id_last_seen_wins(self):
        """Test a session present in two batches appears once, with the latest copy."""
        start = datetime(2024, 2, 1, tzinfo=LOCAL_TZ)
        end = datetime(2024, 3, 31, tzinfo=LOCAL_TZ)
        first = make_session("s1", "2024-02-29T10:00:00-03:00", status="pending")
        second = make_session("s1", "2024-02-29T10:00:00-03:00", status="completed")

        result = SessionFetchPlanner.merge_monthly_batches([[first], [second]], start, end)

        assert len(result) == 1
        assert result[0].status == "completed"

    def test_window_is_inclusive(self):
        """Test sessions starting exactly on the bounds are kept."""
        start = datetime(2024, 3, 1, 9, tzinfo=LOCAL_TZ)
        end = datetime(2024, 3, 15, 12, tzinfo=LOCAL_TZ)
        batch = [
            make_session("on-start", "2024-03-01T09:00:00-03:00"),
            make_session("on-end", "2024-03-15T12:00:00-03:00"),
            make_session("before", "2024-03-01T08:59:00-03:00"),
            make_session("after", "2024-03-15T12:01:00-03:00"),
        ]

        result = SessionFetchPlanner.merge_monthly_batches([batch], start, end)

        assert [s.id for s in result] == ["on-start", "on-end"]

    def test_sessions_without_schedule_are_dropped(self):
        start = datetime(2024, 3, 1, tzinfo=LOCAL_TZ)
        end = datetime(2024, 3, 31, tzinfo=LOCAL_TZ)
        unscheduled = make_session("s2", "2024-03-05T10:00:00-03:00")
        unscheduled["scheduledTo"] = None

        result = SessionFetchPlanner.merge_monthly_batches(
            [[make_session("s1", "2024-03-05T10:00:00-03:00"), unscheduled]], start, end
        )

        assert [s.id for s in result] == ["s1"]

    def test_empty_batches(self):
        start = datetime(2024, 3, 1, tzinfo=LOCAL_TZ)
        end = datetime(2024, 3, 31, tzinfo=LOCAL_TZ)

        assert SessionFetchPlanner.merge_monthly_batches([[], None], start, end) == []  # type: ignore[list-item]


class TestFetchSessions:
    """Test concurrent monthly fetch."""

    @pytest.mark.asyncio
    async def test_fetches_every_month_and_merges(self):
        """Test one fetch per month key and a merged, windowed result."""
        now = datetime(2024, 3, 15, 12, tzinfo=LOCAL_TZ)
        date_range = resolve_date_range("quarter", now)
        batches = {
            (2024, 1): [make_session("jan", "2024-01-10T10:00:00-03:00")],
            (2024, 2): [make_session("feb", "2024-02-10T10:00:00-03:00")],
            (2024, 3): [
                make_session("mar", "2024-03-10T10:00:00-03:00"),
                make_session("future", "2024-03-20T10:00:00-03:00"),
            ],
        }
        get_monthly = AsyncMock(side_effect=lambda year, month: batches[(year, month)])

        result = await SessionFetchPlanner().fetch_sessions(get_monthly, date_range)

        assert get_monthly.await_count == 3
        get_monthly.assert_any_await(2024, 1)
        get_monthly.assert_any_await(2024, 3)
        assert [s.id for s in result] == ["jan", "feb", "mar"]

    @pytest.mark.asyncio
    async def test_failed_month_fails_whole_fetch(self):
        """Test no partial result is produced when one month fails."""
        now = datetime(2024, 3, 15, 12, tzinfo=LOCAL_TZ)
        date_range = resolve_date_range("quarter", now)

        async def get_monthly(year, month):
            if month == 2:
                raise RuntimeError("boom")
            return []

        with pytest.raises(RuntimeError, match="boom"):
            await SessionFetchPlanner().fetch_sessions(get_monthly, date_range)
