"""Training progress statistics over recorded sessions."""

import calendar
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from .models import TrainingSession

PERIODS = ("week", "month", "all")


@dataclass
class ProgressStats:
    """Aggregate figures for a set of training sessions."""

    total_sessions: int
    successful_sessions: int
    success_rate: int  # percent, rounded
    total_barks: int
    average_barks: int  # per session, rounded
    total_duration_minutes: int  # rounded


def _one_month_before(now: datetime) -> datetime:
    year, month = (now.year, now.month - 1) if now.month > 1 else (now.year - 1, 12)
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def period_start(period: str, now: datetime) -> datetime | None:
    """
    Earliest session date included in ``period``.

    Returns:
        Cutoff datetime, or None for "all"

    Raises:
        ValueError: If the period is not one of "week", "month", "all"
    """
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return _one_month_before(now)
    if period == "all":
        return None
    raise ValueError(f"Unknown period: {period!r} (expected one of {', '.join(PERIODS)})")


def filter_sessions(
    sessions: Iterable[TrainingSession], period: str = "all", now: datetime | None = None
) -> list[TrainingSession]:
    """Sessions within ``period``, newest first."""
    cutoff = period_start(period, now or datetime.now())
    selected = [s for s in sessions if cutoff is None or s.date >= cutoff]
    return sorted(selected, key=lambda s: s.date, reverse=True)


def compute_progress(
    sessions: Iterable[TrainingSession], period: str = "all", now: datetime | None = None
) -> ProgressStats:
    """
    Summarize training sessions for a period.

    Args:
        sessions: Recorded sessions in any order
        period: "week", "month" or "all"
        now: Reference time for the period cutoff

    Returns:
        ProgressStats for the selected sessions
    """
    selected = filter_sessions(sessions, period, now)
    total = len(selected)
    successful = sum(1 for s in selected if s.success)
    total_barks = sum(s.barks_detected for s in selected)
    total_seconds = sum(s.duration_seconds for s in selected)

    return ProgressStats(
        total_sessions=total,
        successful_sessions=successful,
        success_rate=round(successful / total * 100) if total else 0,
        total_barks=total_barks,
        average_barks=round(total_barks / total) if total else 0,
        total_duration_minutes=round(total_seconds / 60),
    )
