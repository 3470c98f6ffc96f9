"""Tests for training progress statistics."""

from datetime import datetime, timedelta

import pytest

from barkwatch.monitoring.models import TrainingSession
from barkwatch.monitoring.progress import compute_progress, filter_sessions, period_start

NOW = datetime(2026, 3, 31, 12, 0, 0)


def session(days_ago: float, barks: int, seconds: int = 600) -> TrainingSession:
    date = NOW - timedelta(days=days_ago)
    return TrainingSession(
        id=str(int(date.timestamp() * 1000)),
        date=date,
        duration_seconds=seconds,
        barks_detected=barks,
        success=barks == 0,
    )


@pytest.mark.unit
class TestPeriodStart:
    """Test cases for period cutoffs."""

    def test_week(self) -> None:
        assert period_start("week", NOW) == datetime(2026, 3, 24, 12, 0, 0)

    def test_month_clamps_day(self) -> None:
        """Test March 31 goes back to the last day of February."""
        assert period_start("month", NOW) == datetime(2026, 2, 28, 12, 0, 0)

    def test_month_across_year(self) -> None:
        assert period_start("month", datetime(2026, 1, 15)) == datetime(2025, 12, 15)

    def test_all(self) -> None:
        assert period_start("all", NOW) is None

    def test_unknown_period(self) -> None:
        with pytest.raises(ValueError, match="Unknown period"):
            period_start("year", NOW)


@pytest.mark.unit
class TestComputeProgress:
    """Test cases for progress aggregation."""

    def test_empty(self) -> None:
        """Test no sessions gives zeroed stats."""
        stats = compute_progress([], "all", NOW)

        assert stats.total_sessions == 0
        assert stats.success_rate == 0
        assert stats.average_barks == 0

    def test_aggregates(self) -> None:
        """Test counts, rate, average and duration are computed over the period."""
        sessions = [session(1, 0), session(2, 3), session(3, 0, seconds=300)]

        stats = compute_progress(sessions, "week", NOW)

        assert stats.total_sessions == 3
        assert stats.successful_sessions == 2
        assert stats.success_rate == 67
        assert stats.total_barks == 3
        assert stats.average_barks == 1
        assert stats.total_duration_minutes == 25

    def test_period_filter(self) -> None:
        """Test sessions outside the period are excluded."""
        sessions = [session(2, 4), session(20, 0), session(90, 9)]

        assert compute_progress(sessions, "week", NOW).total_sessions == 1
        assert compute_progress(sessions, "month", NOW).total_sessions == 2
        assert compute_progress(sessions, "all", NOW).total_barks == 13

    def test_filter_sorts_newest_first(self) -> None:
        sessions = [session(5, 1), session(1, 2), session(3, 3)]

        ordered = filter_sessions(sessions, "all", NOW)

        assert [s.barks_detected for s in ordered] == [2, 3, 1]
