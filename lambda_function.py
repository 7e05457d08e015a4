"""AWS Lambda handler for VGA state events tracking."""
import json
import logging
import os
import time
from typing import Any, Dict

from processor.changes import compare_snapshots
from processor.diff import diff
from processor.event_processor import EventProcessor
from processor.models import ChangeType, RunResult, utc_now_rfc3339
from processor.snapshot import (
    CHANGE_LOG_LIMIT,
    append_change_log,
    create_snapshot,
    detect_removed_events,
    filter_events_by_state,
)
from scraper.vga_events import VGAEventsScraper
from storage.dynamodb_manager import DynamoDBManager
from storage.file_storage import FileStorage


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    EXTRA_FIELDS = (
        'state', 'storage_backend', 'duration_seconds', 'error_type',
        'new_events', 'changed_events', 'removed_events', 'total_events',
    )

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key in self.EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def create_storage(backend: str):
    """
    Create the snapshot storage selected by configuration.

    Args:
        backend: "dynamodb" or "file"

    Returns:
        Storage object with load_snapshot/save_snapshot
    """
    if backend == 'file':
        return FileStorage(os.environ.get('DATA_DIR', '~/.vga-events'))
    if backend == 'dynamodb':
        return DynamoDBManager(
            table_name=os.environ.get('TABLE_NAME', 'vga-events-snapshots')
        )
    raise ValueError(f"Unknown storage backend: {backend}")


def _error_response(message: str, error: Exception, start_time: float, **extra) -> Dict[str, Any]:
    body = {
        'message': message,
        'error': str(error),
        'error_type': type(error).__name__,
        'duration_seconds': round(time.time() - start_time, 2)
    }
    body.update(extra)
    return {'statusCode': 500, 'body': json.dumps(body)}


def run_tracking(
    storage,
    listings,
    state: str,
    processor: EventProcessor,
    days_ahead: int = 0,
    change_log_limit: int = CHANGE_LOG_LIMIT,
    refresh: bool = False,
) -> RunResult:
    """
    Run one tracking pass over scraped listings.

    Builds events, compares them with the stored snapshot for ``state`` and
    saves the new snapshot. The previous snapshot is only replaced once every
    comparison has completed.

    Args:
        storage: Snapshot storage
        listings: Raw listings from the scraper
        state: State code or "ALL"
        processor: Event processor
        days_ahead: Notification window for new events (0 disables it)
        change_log_limit: Number of change records kept in the snapshot
        refresh: Rebuild the snapshot without reporting anything

    Returns:
        RunResult for the run
    """
    logger = logging.getLogger(__name__)

    events = processor.process_listings(listings)
    previous = storage.load_snapshot(state)

    events_to_save = filter_events_by_state(events, state)
    snapshot = create_snapshot(events_to_save, utc_now_rfc3339())
    snapshot.change_log = list(previous.change_log)

    if refresh:
        storage.save_snapshot(snapshot, state)
        logger.info("Snapshot refreshed", extra={'state': state})
        return RunResult(
            new_events=[],
            changed_events=[],
            removed_events=[],
            total_events=len(events_to_save)
        )

    diff_result = diff(previous, events, state)
    new_events = processor.filter_for_notification(
        diff_result.new_events, days_ahead=days_ahead
    )

    # New stable keys are reported through the diff
    changes = [
        change for change in compare_snapshots(
            previous.events, snapshot.events,
            previous.stable_index, snapshot.stable_index
        )
        if change.change_type != ChangeType.NEW
    ]
    append_change_log(snapshot, changes, limit=change_log_limit)

    removed_events = detect_removed_events(previous, snapshot)

    storage.save_snapshot(snapshot, state)

    return RunResult(
        new_events=new_events,
        changed_events=changes,
        removed_events=removed_events,
        total_events=len(events_to_save)
    )


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for VGA state events tracking.

    Args:
        event: EventBridge event payload; may set "state" and "refresh"
        context: Lambda context object

    Returns:
        Response dict with statusCode and run results
    """
    event = event or {}

    # Read configuration from environment variables
    storage_backend = os.environ.get('STORAGE_BACKEND', 'dynamodb')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    state = str(event.get('state') or os.environ.get('STATE_FILTER', 'ALL')).upper()
    days_ahead = int(os.environ.get('DAYS_AHEAD', '0'))
    change_log_limit = int(os.environ.get('CHANGE_LOG_LIMIT', str(CHANGE_LOG_LIMIT)))
    timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))
    refresh = bool(event.get('refresh', False))

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    logger.info(
        "Lambda execution started",
        extra={
            'state': state,
            'storage_backend': storage_backend
        }
    )

    try:
        scraper = VGAEventsScraper(timeout=timeout_seconds)
        processor = EventProcessor()
        storage = create_storage(storage_backend)

        try:
            logger.info("Fetching listings from VGA state events page")
            listings = scraper.fetch_listings()
            logger.info(f"Fetched {len(listings)} raw listings")
        except Exception as e:
            logger.error(
                f"Failed to fetch state events after retries: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _error_response('Failed to fetch state events', e, start_time)

        try:
            result = run_tracking(
                storage,
                listings,
                state,
                processor,
                days_ahead=days_ahead,
                change_log_limit=change_log_limit,
                refresh=refresh
            )
        except Exception as e:
            logger.error(
                f"Error during snapshot comparison: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _error_response(
                'Failed to update event snapshot', e, start_time,
                note='Previous snapshot was left unchanged'
            )

        duration = time.time() - start_time

        logger.info(
            "Lambda execution completed successfully",
            extra={
                'duration_seconds': round(duration, 2),
                'new_events': len(result.new_events),
                'changed_events': len(result.changed_events),
                'removed_events': len(result.removed_events),
                'total_events': result.total_events
            }
        )

        return {
            'statusCode': 200,
            'body': json.dumps({
                'message': 'Snapshot refreshed' if refresh else 'Check completed successfully',
                'state': state,
                'statistics': {
                    'listings_fetched': len(listings),
                    'total_events': result.total_events,
                    'new_events': len(result.new_events),
                    'changed_events': len(result.changed_events),
                    'removed_events': len(result.removed_events),
                    'duration_seconds': round(duration, 2)
                },
                'new_events': [e.to_dict() for e in result.new_events],
                'changed_events': [c.to_dict() for c in result.changed_events],
                'removed_events': [e.to_dict() for e in result.removed_events]
            })
        }

    except Exception as e:
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _error_response('Check failed', e, start_time)
