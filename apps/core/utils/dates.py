import calendar
from datetime import date, datetime

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime


def normalize_date(value=None):
    """
    Reduce a date-like value to a local calendar day.

    Accepts ``date``/``datetime`` objects and ISO strings; ``None`` means today.
    Returns ``None`` for input that cannot be parsed.
    """
    if value is None or value == '':
        return timezone.localdate()

    if isinstance(value, datetime):
        if timezone.is_aware(value):
            return timezone.localdate(value)
        return value.date()

    if isinstance(value, date):
        return value

    text = str(value).strip()
    try:
        parsed_date = parse_date(text)
    except ValueError:
        return None
    if parsed_date:
        return parsed_date

    try:
        parsed = parse_datetime(text.replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed is None:
        return None
    return normalize_date(parsed)


def month_bounds(year, month):
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)
