"""Training statistics helpers."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from training_history.models import UserStats


def session_day(instant: str) -> date:
    """Return the local calendar day of an ISO-8601 instant.

    Instants with a UTC offset are converted to local time first; naive
    instants are taken as already local.
    """
    parsed = datetime.fromisoformat(instant)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.date()


def current_streak(instants: Iterable[str], today: Optional[date] = None) -> int:
    """Count consecutive days with a session, walking back from *today*.

    A day without a session ends the streak, so a user who has not trained
    yet today has a streak of 0.
    """
    today = today or date.today()
    days = {session_day(i) for i in instants}
    streak = 0
    expected = today
    while expected in days:
        streak += 1
        expected -= timedelta(days=1)
    return streak


def summarize(rows: list[dict], today: Optional[date] = None) -> UserStats:
    """Build ``UserStats`` from rows carrying ``date``, ``duration`` and ``volume``."""
    if not rows:
        return UserStats()
    total = len(rows)
    return UserStats(
        total_sessions=total,
        total_volume=sum(float(r["volume"]) for r in rows),
        average_duration_minutes=sum(int(r["duration"]) for r in rows) / total,
        current_streak_days=current_streak((r["date"] for r in rows), today=today),
    )
