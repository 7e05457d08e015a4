"""Field-level change detection for events that share a stable key."""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from processor.models import ChangeType, Event, EventChange, utc_now

logger = logging.getLogger(__name__)

# Compared with exact string equality, in this order
TRACKED_FIELDS = [
    (ChangeType.DATE, 'date_text'),
    (ChangeType.TITLE, 'title'),
    (ChangeType.CITY, 'city'),
]


def detect_changes(
    previous: Optional[Event],
    current: Event,
    detected_at: Optional[datetime] = None,
) -> List[EventChange]:
    """
    Compare two versions of an event and list what changed.

    Date text is compared as a string, so "Apr 4 2026" and "Apr 04 2026"
    count as a date change.

    Args:
        previous: Event from the last run, or None if it was not seen before
        current: Event from this run
        detected_at: Timestamp for the change records (defaults to now, UTC)

    Returns:
        A single NEW change when previous is None, otherwise zero to three
        changes ordered date, title, city
    """
    stamp = detected_at or utc_now()

    if previous is None:
        return [
            EventChange(
                event_id=current.id,
                stable_key=current.stable_key,
                change_type=ChangeType.NEW,
                old_value='',
                new_value=current.title,
                detected_at=stamp,
            )
        ]

    changes = []
    for change_type, attr in TRACKED_FIELDS:
        old_value = getattr(previous, attr)
        new_value = getattr(current, attr)
        if old_value != new_value:
            changes.append(EventChange(
                event_id=current.id,
                stable_key=current.stable_key,
                change_type=change_type,
                old_value=old_value,
                new_value=new_value,
                detected_at=stamp,
            ))
    return changes


def compare_snapshots(
    previous_events: Dict[str, Event],
    current_events: Dict[str, Event],
    previous_index: Dict[str, str],
    current_index: Dict[str, str],
) -> List[EventChange]:
    """
    Detect changes for every stable key in the current index.

    Keys seen before are compared field by field; keys not seen before are
    reported as NEW. Keys that disappeared are not reported here, see
    processor.snapshot.detect_removed_events.

    Stable keys are visited in sorted order so the result is deterministic.
    """
    detected_at = utc_now()
    all_changes = []

    for stable_key in sorted(current_index):
        current_event = current_events.get(current_index[stable_key])
        if current_event is None:
            logger.warning(
                f"Stable key {stable_key[:12]} points to unknown event "
                f"{current_index[stable_key][:12]}"
            )
            continue

        previous_event = None
        previous_id = previous_index.get(stable_key)
        if previous_id is not None:
            previous_event = previous_events.get(previous_id)

        all_changes.extend(detect_changes(previous_event, current_event, detected_at))

    return all_changes
