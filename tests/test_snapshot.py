"""Unit tests for snapshot construction and removal detection."""
from datetime import datetime, timezone

from processor.changes import detect_changes
from processor.identity import new_event
from processor.snapshot import (
    append_change_log,
    create_snapshot,
    detect_removed_events,
    filter_events_by_state,
    new_snapshot,
)

UPDATED_AT = '2026-03-01T12:00:00Z'


class TestCreateSnapshot:
    """Test cases for create_snapshot."""

    def test_empty(self):
        """Test an empty event list gives an empty snapshot."""
        snapshot = create_snapshot([], UPDATED_AT)
        assert snapshot.events == {}
        assert snapshot.stable_index == {}
        assert snapshot.change_log == []
        assert snapshot.updated_at == UPDATED_AT

    def test_indexes_events(self, make_event):
        """Test events are keyed by ID and indexed by stable key."""
        first = make_event(title='Chimera Golf Club')
        second = make_event(state='UT', title='Sunbrook Golf Club', city='St. George')

        snapshot = create_snapshot([first, second], UPDATED_AT)

        assert snapshot.events == {first.id: first, second.id: second}
        assert snapshot.stable_index == {
            first.stable_key: first.id,
            second.stable_key: second.id,
        }

    def test_duplicate_ids_collapse(self, make_event):
        """Test one entry per distinct ID."""
        event = make_event()
        snapshot = create_snapshot([event, event], UPDATED_AT)
        assert len(snapshot.events) == 1

    def test_stable_key_collision_last_wins(self, make_event):
        """Test the last event with a stable key owns the index entry."""
        early = make_event(date_text='Apr 4 2026')
        late = make_event(date_text='Apr 11 2026')
        assert early.stable_key == late.stable_key

        snapshot = create_snapshot([early, late], UPDATED_AT)

        assert len(snapshot.events) == 2
        assert snapshot.stable_index == {late.stable_key: late.id}

    def test_empty_stable_key_not_indexed(self, make_event):
        """Test events without a stable key stay out of the index."""
        event = make_event()
        event.stable_key = ''
        snapshot = create_snapshot([event], UPDATED_AT)
        assert event.id in snapshot.events
        assert snapshot.stable_index == {}

    def test_index_values_are_event_ids(self, make_event):
        """Test every index value resolves to an event."""
        events = [make_event(title=f'Course {i}', date_text=f'Apr {i} 2026') for i in range(1, 6)]
        events.append(make_event(title='Course 1', date_text='May 1 2026'))
        snapshot = create_snapshot(events, UPDATED_AT)
        for event_id in snapshot.stable_index.values():
            assert event_id in snapshot.events


class TestFilterEventsByState:
    """Test cases for filter_events_by_state."""

    def test_all_and_empty_keep_everything(self, make_event):
        """Test "", "ALL" and "all" disable the filter."""
        events = [make_event(state='NV'), make_event(state='UT')]
        assert filter_events_by_state(events, '') == events
        assert filter_events_by_state(events, 'ALL') == events
        assert filter_events_by_state(events, 'all') == events

    def test_case_insensitive(self, make_event):
        """Test the state match ignores case."""
        nv = make_event(state='NV')
        events = [nv, make_event(state='UT')]
        assert filter_events_by_state(events, 'nv') == [nv]


class TestChangeLog:
    """Test cases for append_change_log."""

    def test_keeps_most_recent(self, make_event, fixed_time):
        """Test the log is trimmed to the newest entries."""
        snapshot = new_snapshot()
        changes = [
            detect_changes(None, make_event(title=f'Course {i}'), fixed_time)[0]
            for i in range(5)
        ]

        append_change_log(snapshot, changes[:3], limit=4)
        append_change_log(snapshot, changes[3:], limit=4)

        assert snapshot.change_log == changes[1:]

    def test_under_limit_keeps_all(self, make_event, fixed_time):
        """Test nothing is dropped below the limit."""
        snapshot = new_snapshot()
        changes = detect_changes(None, make_event(), fixed_time)
        append_change_log(snapshot, changes)
        assert snapshot.change_log == changes


class TestDetectRemovedEvents:
    """Test cases for detect_removed_events."""

    def test_removed_stable_key(self, make_event):
        """Test an event whose stable key vanished is reported with removed_at."""
        kept = make_event(title='Chimera Golf Club')
        gone = make_event(title='Wolf Creek', city='Mesquite')
        previous = create_snapshot([kept, gone], UPDATED_AT)
        current = create_snapshot([kept], UPDATED_AT)
        stamp = datetime(2026, 3, 2, tzinfo=timezone.utc)

        removed = detect_removed_events(previous, current, removed_at=stamp)

        assert [e.id for e in removed] == [gone.id]
        assert removed[0].removed_at == stamp
        # Previous snapshot is not modified
        assert previous.events[gone.id].removed_at is None

    def test_changed_event_not_removed(self, make_event):
        """Test an event that moved to a new date is not reported."""
        before = make_event(date_text='Apr 4 2026')
        after = make_event(date_text='Apr 11 2026')
        previous = create_snapshot([before], UPDATED_AT)
        current = create_snapshot([after], UPDATED_AT)

        assert detect_removed_events(previous, current) == []

    def test_event_without_stable_key_matched_by_id(self, make_event):
        """Test events lacking a stable key fall back to ID matching."""
        legacy = make_event()
        legacy.stable_key = ''
        previous = create_snapshot([legacy], UPDATED_AT)

        assert detect_removed_events(previous, create_snapshot([legacy], UPDATED_AT)) == []
        assert [e.id for e in detect_removed_events(previous, new_snapshot())] == [legacy.id]

    def test_sorted_by_state_and_raw(self):
        """Test removed events are ordered deterministically."""
        events = [
            new_event('UT', 'Sunbrook', 'Mar 13 2026', '', 'UT - Sunbrook', ''),
            new_event('NV', 'Wolf Creek', '', '', 'NV - Wolf Creek', ''),
            new_event('NV', 'Chimera', '', '', 'NV - Chimera', ''),
        ]
        previous = create_snapshot(events, UPDATED_AT)

        removed = detect_removed_events(previous, new_snapshot())

        assert [e.raw for e in removed] == ['NV - Chimera', 'NV - Wolf Creek', 'UT - Sunbrook']

    def test_no_previous(self, make_event):
        """Test a missing previous snapshot removes nothing."""
        assert detect_removed_events(None, create_snapshot([make_event()], UPDATED_AT)) == []
