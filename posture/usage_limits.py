"""
Free-tier usage policy: one posture session per calendar month, resetting on the
first day of the next month. Storage of the last capture time lives with the caller.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional


def can_capture_free(last_captured: Optional[datetime], now: Optional[datetime] = None) -> bool:
	if last_captured is None:
		return True
	now = now or datetime.now(tz=last_captured.tzinfo)
	if last_captured.tzinfo is not None and now.tzinfo is not None:
		last_captured = last_captured.astimezone(now.tzinfo)
	return (last_captured.year, last_captured.month) != (now.year, now.month)


def next_reset(now: Optional[datetime] = None) -> datetime:
	"""Midnight on the first day of the month after `now` (same tzinfo)."""
	now = now or datetime.now()
	if now.month == 12:
		return now.replace(year=now.year + 1, month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
	return now.replace(month=now.month + 1, day=1, hour=0, minute=0, second=0, microsecond=0)
