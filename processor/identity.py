"""Deterministic identities for scraped event listings."""
import hashlib

from processor.models import Event, utc_now


def _sha1_hex(value: str) -> str:
    return hashlib.sha1(value.encode('utf-8')).hexdigest()


def generate_id(state: str, raw: str) -> str:
    """
    Generate the content ID of a listing.

    Any difference in the raw source line (date, city, spacing) yields a
    different ID.

    Args:
        state: Two-letter state code
        raw: Exact source line the listing was parsed from

    Returns:
        40-character hex SHA-1 digest of "state|raw"
    """
    return _sha1_hex(f"{state}|{raw}")


def generate_stable_key(state: str, title: str) -> str:
    """
    Generate a key identifying the same tournament across edits.

    Only the title is normalized (trimmed and lowercased), so the key stays
    the same when the date or city of a listing changes.
    """
    normalized = title.strip().lower()
    return _sha1_hex(f"{state}|{normalized}")


def new_event(
    state: str,
    title: str,
    date_text: str,
    city: str,
    raw: str,
    source_url: str,
) -> Event:
    """Create an Event with both identities and first_seen populated."""
    return Event(
        id=generate_id(state, raw),
        stable_key=generate_stable_key(state, title),
        state=state,
        title=title,
        date_text=date_text,
        city=city,
        raw=raw,
        source_url=source_url,
        first_seen=utc_now(),
    )
