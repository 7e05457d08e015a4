"""Data models for event tracking."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from dateutil import parser as dateparser


def format_timestamp(value: datetime) -> str:
    """Render a datetime as an RFC3339 UTC string with a 'Z' suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC3339 string; empty values and Go zero times yield None."""
    if not value or value.startswith('0001-01-01'):
        return None
    parsed = dateparser.isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_rfc3339() -> str:
    """Current time as RFC3339 with second precision, e.g. 2026-04-04T10:00:00Z."""
    return utc_now().strftime('%Y-%m-%dT%H:%M:%SZ')


class ChangeType(str, Enum):
    """Kind of change recorded for an event."""
    NEW = 'new'
    DATE = 'date'
    TITLE = 'title'
    CITY = 'city'


@dataclass
class RawListing:
    """Raw listing tuple from the state events scraper."""
    state: str
    title: str
    date_text: str
    city: str
    raw: str
    source_url: str


@dataclass
class Event:
    """A single listing occurrence seen during a run."""
    id: str
    stable_key: str
    state: str
    title: str
    date_text: str
    city: str
    raw: str
    source_url: str
    first_seen: datetime
    removed_at: Optional[datetime] = None
    also_in: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """
        Convert to the persisted JSON shape.

        ``city``, ``removed_at`` and ``also_in`` are omitted when empty.
        """
        data = {
            'id': self.id,
            'stable_key': self.stable_key,
            'state': self.state,
            'title': self.title,
            'date_text': self.date_text,
        }
        if self.city:
            data['city'] = self.city
        data['raw'] = self.raw
        data['source_url'] = self.source_url
        data['first_seen'] = format_timestamp(self.first_seen)
        if self.removed_at is not None:
            data['removed_at'] = format_timestamp(self.removed_at)
        if self.also_in:
            data['also_in'] = list(self.also_in)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'Event':
        first_seen = parse_timestamp(data.get('first_seen'))
        return cls(
            id=data['id'],
            stable_key=data.get('stable_key') or '',
            state=data.get('state') or '',
            title=data.get('title') or '',
            date_text=data.get('date_text') or '',
            city=data.get('city') or '',
            raw=data.get('raw') or '',
            source_url=data.get('source_url') or '',
            first_seen=first_seen or datetime.min.replace(tzinfo=timezone.utc),
            removed_at=parse_timestamp(data.get('removed_at')),
            also_in=list(data.get('also_in') or []),
        )


@dataclass
class EventChange:
    """A field-level change detected between two runs."""
    event_id: str
    stable_key: str
    change_type: ChangeType
    old_value: str
    new_value: str
    detected_at: datetime

    def to_dict(self) -> dict:
        return {
            'event_id': self.event_id,
            'stable_key': self.stable_key,
            'change_type': self.change_type.value,
            'old_value': self.old_value,
            'new_value': self.new_value,
            'detected_at': format_timestamp(self.detected_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'EventChange':
        return cls(
            event_id=data.get('event_id') or '',
            stable_key=data.get('stable_key') or '',
            change_type=ChangeType(data['change_type']),
            old_value=data.get('old_value') or '',
            new_value=data.get('new_value') or '',
            detected_at=(
                parse_timestamp(data.get('detected_at'))
                or datetime.min.replace(tzinfo=timezone.utc)
            ),
        )


@dataclass
class Snapshot:
    """All events known as of one run, plus the stable key index."""
    events: Dict[str, Event] = field(default_factory=dict)
    stable_index: Dict[str, str] = field(default_factory=dict)
    change_log: List[EventChange] = field(default_factory=list)
    updated_at: str = ''

    def to_dict(self) -> dict:
        return {
            'events': {
                event_id: event.to_dict()
                for event_id, event in self.events.items()
            },
            'stable_index': dict(self.stable_index),
            'change_log': [change.to_dict() for change in self.change_log],
            'updated_at': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Snapshot':
        """
        Build a Snapshot from its persisted JSON shape.

        Missing or null maps and lists load as empty collections.
        """
        events = {
            event_id: Event.from_dict(item)
            for event_id, item in (data.get('events') or {}).items()
        }
        return cls(
            events=events,
            stable_index=dict(data.get('stable_index') or {}),
            change_log=[
                EventChange.from_dict(item)
                for item in (data.get('change_log') or [])
            ],
            updated_at=data.get('updated_at') or '',
        )


@dataclass
class DiffResult:
    """New events found by comparing a run against the previous snapshot."""
    new_events: List[Event] = field(default_factory=list)
    states: Dict[str, List[Event]] = field(default_factory=dict)


@dataclass
class RunResult:
    """Result of a tracking run."""
    new_events: List[Event]
    changed_events: List[EventChange]
    removed_events: List[Event]
    total_events: int
