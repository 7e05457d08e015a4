"""New-listing diff between a run and the previous snapshot."""
import logging
from typing import Iterable, Optional

from processor.models import DiffResult, Event, Snapshot
from processor.snapshot import matches_state, new_snapshot

logger = logging.getLogger(__name__)


def diff(
    previous: Optional[Snapshot],
    current: Iterable[Event],
    state_filter: str = '',
) -> DiffResult:
    """
    Find events in the current run whose ID is absent from the previous snapshot.

    Output order is fully determined by the inputs: new_events is sorted by
    (state, raw) and every per-state list by raw, so repeated calls yield
    identical results.

    Args:
        previous: Snapshot from the last run, or None for a first run
        current: Events scraped in this run
        state_filter: State code to restrict to; "" or "ALL" keeps every state

    Returns:
        DiffResult with the new events, flat and grouped by state
    """
    if previous is None:
        previous = new_snapshot()

    result = DiffResult()

    for event in current:
        # Filtered-out events are not considered at all
        if not matches_state(event, state_filter):
            continue
        if event.id in previous.events:
            continue
        result.new_events.append(event)

    result.new_events.sort(key=lambda e: (e.state, e.raw))

    # Grouping the sorted list keeps state keys and buckets in sorted order
    for event in result.new_events:
        result.states.setdefault(event.state, []).append(event)

    logger.debug(
        f"Diff found {len(result.new_events)} new events "
        f"across {len(result.states)} states"
    )
    return result
