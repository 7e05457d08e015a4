"""Event processor for validating scraped listings and building events."""
import logging
import re
from datetime import date
from typing import Dict, List, Optional, Tuple

from processor.dates import is_past_event, is_within_days
from processor.identity import new_event
from processor.models import Event, RawListing

logger = logging.getLogger(__name__)


class EventProcessor:
    """Processor turning raw scraped listings into tracked events."""

    STATE_CODE_PATTERN = re.compile(r'^[A-Z]{2}$')
    MAX_TITLE_LENGTH = 200

    def process_listings(self, raw_listings: List[RawListing]) -> List[Event]:
        """
        Validate raw listings and build events from them.

        Listings whose content ID was already produced in this batch are
        dropped, keeping the first. Events describing the same tournament
        under several state codes get the other codes in ``also_in``.

        Args:
            raw_listings: Listings from the scraper, in page order

        Returns:
            List of Event objects in input order
        """
        events = []
        seen_ids = set()

        for listing in raw_listings:
            try:
                event = self._process_single_listing(listing)
            except Exception as e:
                logger.warning(
                    f"Failed to process listing '{listing.raw}': {e}"
                )
                continue
            if event is None:
                continue
            if event.id in seen_ids:
                logger.debug(f"Skipping duplicate listing: {event.raw}")
                continue
            seen_ids.add(event.id)
            events.append(event)

        self._annotate_cross_listings(events)

        logger.info(
            f"Processed {len(events)} valid events out of "
            f"{len(raw_listings)} scraped listings"
        )
        return events

    def _process_single_listing(self, listing: RawListing) -> Optional[Event]:
        """
        Process a single listing.

        Args:
            listing: Raw listing tuple

        Returns:
            Event object or None if validation fails
        """
        if not self._validate_required_fields(listing):
            return None

        state = listing.state.strip().upper()
        if not self.STATE_CODE_PATTERN.match(state):
            logger.warning(
                f"Invalid state code for listing '{listing.raw}': {listing.state}"
            )
            return None

        title = listing.title.strip()[:self.MAX_TITLE_LENGTH]

        return new_event(
            state=state,
            title=title,
            date_text=listing.date_text.strip(),
            city=listing.city.strip(),
            raw=listing.raw,
            source_url=listing.source_url,
        )

    def _validate_required_fields(self, listing: RawListing) -> bool:
        """
        Validate that required fields are present and non-empty.

        Args:
            listing: Listing to validate

        Returns:
            True if valid, False otherwise
        """
        if not listing.raw or not listing.raw.strip():
            logger.warning("Listing missing required field: raw")
            return False

        if not listing.state or not listing.state.strip():
            logger.warning(f"Listing '{listing.raw}' missing required field: state")
            return False

        if not listing.title or not listing.title.strip():
            logger.warning(f"Listing '{listing.raw}' missing required field: title")
            return False

        return True

    def _annotate_cross_listings(self, events: List[Event]) -> None:
        """Record, on each event, the other states listing the same tournament."""
        groups: Dict[Tuple[str, str, str], List[Event]] = {}
        for event in events:
            key = (
                event.title.strip().lower(),
                event.date_text,
                event.city.strip().lower(),
            )
            groups.setdefault(key, []).append(event)

        for group in groups.values():
            states = sorted({event.state for event in group})
            if len(states) < 2:
                continue
            for event in group:
                event.also_in = [s for s in states if s != event.state]

    def filter_for_notification(
        self,
        events: List[Event],
        days_ahead: int = 0,
        today: Optional[date] = None,
    ) -> List[Event]:
        """
        Drop events that are already over or beyond the notification window.

        Events with unparsed dates are always kept.

        Args:
            events: Candidate events, typically the new events of a run
            days_ahead: Notification window in days (0 disables the window)
            today: Reference date

        Returns:
            Filtered list in input order
        """
        kept = [
            event for event in events
            if not is_past_event(event, today)
            and is_within_days(event, days_ahead, today)
        ]
        if len(kept) != len(events):
            logger.info(
                f"Filtered out {len(events) - len(kept)} events outside the "
                f"notification window"
            )
        return kept
