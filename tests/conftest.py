"""Shared fixtures."""
from datetime import datetime, timezone

import pytest

from processor.identity import new_event


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake AWS credentials so boto3 never talks to a real account."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def make_event():
    """Factory building events the way the scraper output would."""
    def _make(state='NV', title='Chimera Golf Club', date_text='Apr 4 2026',
              city='Las Vegas', raw=None, source_url='https://vgagolf.org/state-events/'):
        if raw is None:
            raw = f"{state} - {title} {date_text} - {city}" if city else f"{state} - {title} {date_text}"
        return new_event(state, title, date_text, city, raw, source_url)
    return _make


@pytest.fixture
def fixed_time():
    return datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
