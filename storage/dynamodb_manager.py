"""DynamoDB manager for event snapshot storage."""
import json
import logging
from typing import Optional

import boto3
from botocore.exceptions import ClientError

from processor.models import Event, Snapshot, utc_now_rfc3339
from processor.snapshot import STATE_ALL, is_all_states, new_snapshot

logger = logging.getLogger(__name__)


class DynamoDBManager:
    """Manager for snapshot persistence in DynamoDB.

    Each snapshot is stored as one item keyed by ``snapshot_key`` ("ALL" or
    an upper-cased state code). The snapshot JSON lives in the ``snapshot``
    attribute, using the same shape as the file storage.
    """

    KEY_ATTRIBUTE = 'snapshot_key'

    # DynamoDB rejects items over 400 KB
    MAX_ITEM_BYTES = 400 * 1024
    SIZE_WARNING_RATIO = 0.8

    def __init__(self, table_name: str):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBManager for table: {table_name}")

    @staticmethod
    def snapshot_key(state: str) -> str:
        """Return the item key for a state ("" or "ALL" share one item)."""
        if is_all_states(state):
            return STATE_ALL
        return state.upper()

    def load_snapshot(self, state: str) -> Snapshot:
        """
        Load the snapshot for a state.

        Args:
            state: State code or "ALL"

        Returns:
            Stored Snapshot, or an empty one if nothing was saved yet
        """
        key = self.snapshot_key(state)
        logger.info(f"Loading snapshot {key} from DynamoDB")

        try:
            response = self.table.get_item(Key={self.KEY_ATTRIBUTE: key})
        except ClientError as e:
            logger.error(f"Error loading snapshot {key}: {e}")
            raise

        item = response.get('Item')
        if not item or not item.get('snapshot'):
            logger.info(f"No snapshot stored for {key}, starting fresh")
            return new_snapshot()

        try:
            snapshot = Snapshot.from_dict(json.loads(item['snapshot']))
        except (ValueError, KeyError) as e:
            logger.error(f"Error parsing snapshot {key}: {e}")
            raise

        logger.info(f"Retrieved snapshot {key} with {len(snapshot.events)} events")
        return snapshot

    def save_snapshot(self, snapshot: Snapshot, state: str) -> None:
        """
        Save a snapshot, stamping its updated_at with the current time.

        Args:
            snapshot: Snapshot to persist
            state: State code or "ALL"
        """
        key = self.snapshot_key(state)
        snapshot.updated_at = utc_now_rfc3339()

        payload = json.dumps(snapshot.to_dict())
        payload_bytes = len(payload.encode('utf-8'))
        if payload_bytes >= self.MAX_ITEM_BYTES * self.SIZE_WARNING_RATIO:
            logger.warning(
                f"Snapshot {key} is {payload_bytes} bytes, close to the "
                f"{self.MAX_ITEM_BYTES} byte item limit"
            )
        else:
            logger.debug(f"Snapshot {key} payload is {payload_bytes} bytes")

        item = {
            self.KEY_ATTRIBUTE: key,
            'snapshot': payload,
            'event_count': len(snapshot.events),
            'updated_at': snapshot.updated_at,
        }

        try:
            self.table.put_item(Item=item)
        except ClientError as e:
            logger.error(f"Error saving snapshot {key}: {e}")
            raise

        logger.info(f"Saved snapshot {key} with {len(snapshot.events)} events")

    def get_event_by_id(self, event_id: str) -> Optional[Event]:
        """Look up an event in the all-states snapshot."""
        return self.load_snapshot(STATE_ALL).events.get(event_id)
