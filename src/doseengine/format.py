# src/doseengine/format.py
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Optional


def format_number(num: Optional[float], decimals: int = 2) -> str:
    """Fixed-point text; NaN or missing values show as "0"."""
    if num is None or (isinstance(num, float) and math.isnan(num)):
        return "0"
    return f"{float(num):.{decimals}f}"


def format_date(iso: Optional[str], now: Optional[datetime] = None) -> str:
    """
    Relative day label for list views:
      same day -> "Today", one day -> "Yesterday", under a week -> "N days ago",
      otherwise a short date like "Mar 5". Missing input gives "-".
    """
    if not iso:
        return "-"
    then = _parse(iso)
    now = now or datetime.now(timezone.utc)
    days = math.floor((now - then).total_seconds() / 86400.0)
    if days == 0:
        return "Today"
    if days == 1:
        return "Yesterday"
    if 1 < days < 7:
        return f"{days} days ago"
    local = then.astimezone()
    return f"{local:%b} {local.day}"


def format_datetime(iso: str) -> str:
    """Local "YYYY-MM-DD HH:MM" for a stored ISO-8601 timestamp."""
    return f"{_parse(iso).astimezone():%Y-%m-%d %H:%M}"


def _parse(iso: str) -> datetime:
    dt = datetime.fromisoformat(iso.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
