"""Unit tests for EventProcessor."""
from datetime import date

from processor.event_processor import EventProcessor
from processor.identity import generate_id, generate_stable_key
from processor.models import RawListing

SOURCE_URL = 'https://vgagolf.org/state-events/'


def _listing(state='NV', title='Chimera Golf Club', date_text='4.4.26',
             city='Las Vegas', raw=None):
    if raw is None:
        raw = f"{state} - {title} - {city}"
    return RawListing(state, title, date_text, city, raw, SOURCE_URL)


class TestEventProcessor:
    """Test cases for EventProcessor class."""

    def test_process_listings_valid(self):
        """Test processing a valid listing."""
        processor = EventProcessor()

        events = processor.process_listings([_listing()])

        assert len(events) == 1
        event = events[0]
        assert event.state == 'NV'
        assert event.title == 'Chimera Golf Club'
        assert event.date_text == '4.4.26'
        assert event.city == 'Las Vegas'
        assert event.raw == 'NV - Chimera Golf Club - Las Vegas'
        assert event.source_url == SOURCE_URL
        assert event.id == generate_id('NV', 'NV - Chimera Golf Club - Las Vegas')
        assert event.stable_key == generate_stable_key('NV', 'Chimera Golf Club')
        assert event.also_in == []

    def test_missing_required_fields_skipped(self):
        """Test that listings with missing required fields are skipped."""
        processor = EventProcessor()

        events = processor.process_listings([
            _listing(title='', raw='NV -  - Las Vegas'),
            _listing(state=''),
            _listing(raw='   '),
            _listing(title='Valid Course'),
        ])

        assert [e.title for e in events] == ['Valid Course']

    def test_invalid_state_code_skipped(self):
        """Test state codes must be two letters."""
        processor = EventProcessor()
        events = processor.process_listings([_listing(state='Nevada')])
        assert events == []

    def test_lowercase_state_normalized(self):
        """Test state codes are upper-cased."""
        events = EventProcessor().process_listings([_listing(state='nv', raw='nv line')])
        assert events[0].state == 'NV'

    def test_duplicate_ids_dropped(self):
        """Test repeated raw lines produce one event, keeping the first."""
        processor = EventProcessor()

        events = processor.process_listings([
            _listing(date_text='4.4.26'),
            _listing(date_text='other'),
        ])

        assert len(events) == 1
        assert events[0].date_text == '4.4.26'

    def test_title_truncated(self):
        """Test long titles are cut to the maximum length."""
        events = EventProcessor().process_listings([_listing(title='X' * 300)])
        assert len(events[0].title) == EventProcessor.MAX_TITLE_LENGTH

    def test_cross_listings_annotated(self):
        """Test a tournament listed under several states records the others."""
        processor = EventProcessor()

        events = processor.process_listings([
            _listing(state='NV', title='Border Classic', city='Mesquite'),
            _listing(state='UT', title='Border Classic', city='Mesquite'),
            _listing(state='AZ', title='Border Classic', city='Mesquite'),
            _listing(state='NV', title='Other Course', city='Reno'),
        ])

        also_in = {(e.state, e.title): e.also_in for e in events}
        assert also_in[('NV', 'Border Classic')] == ['AZ', 'UT']
        assert also_in[('UT', 'Border Classic')] == ['AZ', 'NV']
        assert also_in[('AZ', 'Border Classic')] == ['NV', 'UT']
        assert also_in[('NV', 'Other Course')] == []

    def test_same_title_different_date_not_cross_listed(self):
        """Test cross-listing requires the same date and city."""
        events = EventProcessor().process_listings([
            _listing(state='NV', title='Border Classic', date_text='4.4.26'),
            _listing(state='UT', title='Border Classic', date_text='5.5.26'),
        ])
        assert all(e.also_in == [] for e in events)


class TestFilterForNotification:
    """Test cases for filter_for_notification."""

    def test_drops_past_and_out_of_window(self):
        """Test past events and events beyond the window are dropped."""
        processor = EventProcessor()
        events = processor.process_listings([
            _listing(title='Past', date_text='Feb 1 2026'),
            _listing(title='Soon', date_text='Mar 5 2026'),
            _listing(title='Later', date_text='Jun 1 2026'),
            _listing(title='Unknown', date_text='TBD'),
        ])

        kept = processor.filter_for_notification(events, days_ahead=30, today=date(2026, 3, 1))

        assert [e.title for e in kept] == ['Soon', 'Unknown']

    def test_window_disabled(self):
        """Test days_ahead=0 only drops past events."""
        processor = EventProcessor()
        events = processor.process_listings([
            _listing(title='Past', date_text='Feb 1 2026'),
            _listing(title='Later', date_text='Jun 1 2026'),
        ])

        kept = processor.filter_for_notification(events, today=date(2026, 3, 1))

        assert [e.title for e in kept] == ['Later']
