"""Parse the deadline strings shown on the iLearning dashboard."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


TAIPEI = timezone(timedelta(hours=8), name="Asia/Taipei")

# strptime accepts one- or two-digit months and days, so the padded forms
# also cover "2024/3/5 9:00".
DEADLINE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%Y年%m月%d日 %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y-%m-%d %H:%M",
    "%Y年%m月%d日 %H:%M",
    "%Y/%m/%d",
    "%Y-%m-%d",
    "%Y年%m月%d日",
)


def parse_deadline(text: str) -> Optional[datetime]:
    """
    Convert a dashboard deadline into an aware datetime in Asia/Taipei.

    Date-only values are due at 23:59 of that day. Returns None when no known
    format matches.
    """
    value = " ".join((text or "").split())
    if not value:
        return None
    for fmt in DEADLINE_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        if "%H" not in fmt:
            parsed = parsed.replace(hour=23, minute=59)
        return parsed.replace(tzinfo=TAIPEI)
    return None


__all__ = ["TAIPEI", "DEADLINE_FORMATS", "parse_deadline"]
