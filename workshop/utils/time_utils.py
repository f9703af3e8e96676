"""
Date arithmetic for warranties and PDF access tokens.
"""

import calendar
import re
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone

_FIRST_INTEGER = re.compile(r'\d+')


def add_months(start: datetime, months: int) -> datetime:
    """
    Add calendar months, clamping the day to the target month's length.

    Args:
        start: Start datetime
        months: Number of months to add

    Returns:
        Datetime ``months`` later, e.g. Jan 31 + 1 month -> Feb 28/29
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def parse_warranty_months(warranty_text: Optional[str], default: Optional[int] = None) -> int:
    """
    Read the warranty duration from a product's free-text warranty.

    The first integer literal in the text is taken as a number of months
    ("6 months" -> 6, "12 month replacement" -> 12). Text with no integer,
    or a zero duration, yields ``default`` (WORKSHOP_DEFAULT_WARRANTY_MONTHS
    when not given).
    """
    if default is None:
        default = settings.WORKSHOP_DEFAULT_WARRANTY_MONTHS
    match = _FIRST_INTEGER.search(warranty_text or '')
    if not match:
        return default
    months = int(match.group(0))
    return months if months > 0 else default


def pdf_token_expiry(now: Optional[datetime] = None) -> datetime:
    now = now or timezone.now()
    return now + timedelta(days=settings.WORKSHOP_PDF_TOKEN_TTL_DAYS)


def is_expired(expiry: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """A missing expiry never expires."""
    if not expiry:
        return False
    now = now or timezone.now()
    if timezone.is_naive(expiry):
        expiry = timezone.make_aware(expiry)
    return now > expiry
