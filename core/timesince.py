"""
Humanized elapsed time ("3 hours ago") for API timestamps.
"""

from datetime import datetime
from typing import Optional

from django.utils import timezone
from django.utils.timesince import timesince

JUST_NOW_SECONDS = 60

# timesince joins number and unit with a non-breaking space
NBSP = '\xa0'


def humanize_elapsed(value: datetime, now: Optional[datetime] = None) -> str:
    """
    Describe how long ago `value` was, in its largest unit.

    Args:
        value: Past timestamp (naive values are taken as current timezone)
        now: Reference time, defaults to timezone.now()

    Returns:
        str: e.g. "just now", "1 minute ago", "3 hours ago", "in the future"
    """
    now = now or timezone.now()
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    if timezone.is_naive(now):
        now = timezone.make_aware(now)

    seconds = (now - value).total_seconds()
    if seconds < 0:
        return 'in the future'
    if seconds < JUST_NOW_SECONDS:
        return 'just now'

    elapsed = timesince(value, now, depth=1).replace(NBSP, ' ')
    return f'{elapsed} ago'
