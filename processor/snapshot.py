"""Snapshot construction and run-to-run bookkeeping."""
import dataclasses
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from processor.models import Event, EventChange, Snapshot, utc_now

logger = logging.getLogger(__name__)

STATE_ALL = 'ALL'
CHANGE_LOG_LIMIT = 100


def is_all_states(state_filter: str) -> bool:
    """Return True if the filter selects every state ("" or "ALL")."""
    return not state_filter or state_filter.upper() == STATE_ALL


def matches_state(event: Event, state_filter: str) -> bool:
    """Check an event against a state filter, case-insensitively."""
    if is_all_states(state_filter):
        return True
    return event.state.casefold() == state_filter.casefold()


def filter_events_by_state(events: Iterable[Event], state_filter: str) -> List[Event]:
    """Keep only events matching the state filter, preserving order."""
    return [event for event in events if matches_state(event, state_filter)]


def new_snapshot() -> Snapshot:
    """Create an empty snapshot."""
    return Snapshot()


def create_snapshot(events: Iterable[Event], updated_at: str) -> Snapshot:
    """
    Build a snapshot from a list of events.

    Events are keyed by ID. Each non-empty stable key maps to the ID of the
    last event carrying it in input order.

    Args:
        events: Events from the current run
        updated_at: RFC3339 timestamp for the snapshot

    Returns:
        New Snapshot; the input events are not modified
    """
    snapshot = new_snapshot()
    snapshot.updated_at = updated_at

    for event in events:
        snapshot.events[event.id] = event
        if not event.stable_key:
            continue
        existing_id = snapshot.stable_index.get(event.stable_key)
        if existing_id is not None and existing_id != event.id:
            logger.debug(
                f"Stable key {event.stable_key[:12]} shared by events "
                f"{existing_id[:12]} and {event.id[:12]}; keeping the latter"
            )
        snapshot.stable_index[event.stable_key] = event.id

    return snapshot


def append_change_log(
    snapshot: Snapshot,
    changes: List[EventChange],
    limit: int = CHANGE_LOG_LIMIT,
) -> None:
    """Append changes to the snapshot's change log, keeping the newest ``limit``."""
    snapshot.change_log.extend(changes)
    if limit >= 0 and len(snapshot.change_log) > limit:
        snapshot.change_log = snapshot.change_log[len(snapshot.change_log) - limit:]


def detect_removed_events(
    previous: Optional[Snapshot],
    current: Snapshot,
    removed_at: Optional[datetime] = None,
) -> List[Event]:
    """
    Find events from the previous snapshot that are gone from the current one.

    An event counts as removed when its stable key no longer appears in the
    current index. Events without a stable key are matched by ID instead.

    Args:
        previous: Snapshot from the last run (None means nothing to remove)
        current: Snapshot built from this run
        removed_at: Removal timestamp (defaults to now, UTC)

    Returns:
        Copies of the removed events with removed_at set, ordered by
        (state, raw). The previous snapshot is left untouched.
    """
    if previous is None:
        return []

    stamp = removed_at or utc_now()
    removed = []

    for event_id, event in previous.events.items():
        if event.stable_key:
            if event.stable_key in current.stable_index:
                continue
            # Only report the event the previous index resolved the key to
            if previous.stable_index.get(event.stable_key, event_id) != event_id:
                continue
        elif event_id in current.events:
            continue
        removed.append(
            dataclasses.replace(event, removed_at=stamp, also_in=list(event.also_in))
        )

    removed.sort(key=lambda e: (e.state, e.raw))
    return removed
