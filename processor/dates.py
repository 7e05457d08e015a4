"""Date parsing and date-based filtering for event listings.

Listing dates are free text scraped from the events page. Parsing may fail,
and an unparsed date is a normal outcome represented by ``None``. The
filtering predicates below treat unparsed dates so that an event is never
hidden because its date could not be read.
"""
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from processor.models import Event


# Tried in order, first match wins. strptime's %d and %m accept one or two
# digits, so "Apr 4 2026" and "Apr 04 2026" share a format. The slash format
# likewise accepts "1/5/26" as well as "01/05/26".
DATE_FORMATS = [
    '%b %d %Y',     # Mar 13 2026
    '%m.%d.%y',     # 4.4.26, 04.04.26
    '%m/%d/%y',     # 02/15/26
]

# Year-less format, completed with the current calendar year
YEARLESS_FORMAT = '%b %d'  # Jan 24

RELATIVE_WINDOW_DAYS = 30


def _today(today: Optional[date]) -> date:
    return today if today is not None else date.today()


def parse_date(date_text: str, today: Optional[date] = None) -> Optional[date]:
    """
    Parse listing date text into a calendar date.

    Args:
        date_text: Raw date text, e.g. "Mar 13 2026", "4.4.26" or "Jan 24"
        today: Reference date supplying the year for year-less dates

    Returns:
        Parsed date, or None if no supported format matches
    """
    if not date_text:
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(date_text, fmt).date()
        except ValueError:
            continue

    # Appending the year before parsing keeps Feb 29 valid in leap years
    year = _today(today).year
    try:
        return datetime.strptime(
            f"{date_text} {year}", f"{YEARLESS_FORMAT} %Y"
        ).date()
    except ValueError:
        return None


def days_until(date_text: str, today: Optional[date] = None) -> Optional[int]:
    """Signed number of days from today to the listing date, None if unparsed."""
    parsed = parse_date(date_text, today)
    if parsed is None:
        return None
    return (parsed - _today(today)).days


def is_past_event(event: Event, today: Optional[date] = None) -> bool:
    """
    Check whether an event's date has passed.

    Returns False when the date cannot be parsed, so the event is kept.
    """
    parsed = parse_date(event.date_text, today)
    if parsed is None:
        return False
    return parsed < _today(today)


def is_within_days(event: Event, days: int, today: Optional[date] = None) -> bool:
    """
    Check whether an event falls within the next ``days`` days.

    Args:
        event: Event to check
        days: Window size in days; zero or negative disables the filter
        today: Reference date (defaults to the local current date)

    Returns:
        True if the date is on or after today and before today + days.
        Also True when the filter is disabled or the date is unparsed.
    """
    if days <= 0:
        return True
    parsed = parse_date(event.date_text, today)
    if parsed is None:
        return True
    start = _today(today)
    return start <= parsed < start + timedelta(days=days)


def is_upcoming(event: Event, today: Optional[date] = None) -> bool:
    """Check whether an event is today or later. True when unparsed."""
    parsed = parse_date(event.date_text, today)
    if parsed is None:
        return True
    return parsed >= _today(today)


def sort_by_date(events: Iterable[Event], today: Optional[date] = None) -> List[Event]:
    """
    Sort events by ascending date.

    The sort is stable. Events with unparsed dates come after all parsed
    ones and keep their original relative order.
    """
    def sort_key(event: Event):
        parsed = parse_date(event.date_text, today)
        if parsed is None:
            return (1, date.min)
        return (0, parsed)

    return sorted(events, key=sort_key)


def _relative_suffix(delta_days: int) -> str:
    if delta_days == 0:
        return '(today!)'
    if delta_days == 1:
        return '(tomorrow)'
    if delta_days == -1:
        return '(yesterday)'
    if delta_days < 0:
        return f'({-delta_days} days ago)'
    if delta_days < 7:
        return f'(in {delta_days} days)'
    if delta_days <= RELATIVE_WINDOW_DAYS:
        weeks = delta_days // 7
        return f"(in {weeks} week{'s' if weeks > 1 else ''})"
    return ''


def format_date_nice(date_text: str, today: Optional[date] = None) -> str:
    """
    Render date text for humans, e.g. "Sat, Apr 4, 2026 (in 2 weeks)".

    Unparsed input is returned unchanged.
    """
    parsed = parse_date(date_text, today)
    if parsed is None:
        return date_text

    formatted = f"{parsed.strftime('%a, %b')} {parsed.day}, {parsed.year}"
    suffix = _relative_suffix((parsed - _today(today)).days)
    if suffix:
        return f"{formatted} {suffix}"
    return formatted
