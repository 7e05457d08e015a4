"""Local JSON file storage for event snapshots."""
import json
import logging
import os
from pathlib import Path
from typing import Optional, Union

from processor.models import Event, Snapshot, utc_now_rfc3339
from processor.snapshot import is_all_states, new_snapshot

logger = logging.getLogger(__name__)


class FileStorage:
    """Snapshot storage backed by JSON files in a data directory."""

    def __init__(self, data_dir: Union[str, Path]):
        """
        Initialize file storage, creating the data directory if needed.

        Args:
            data_dir: Directory for snapshot files; "~" is expanded
        """
        self.data_dir = Path(os.path.expanduser(str(data_dir)))
        self.data_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Initialized FileStorage in: {self.data_dir}")

    def snapshot_path(self, state: str) -> Path:
        """Return the snapshot file for a state ("" or "ALL" share one file)."""
        if is_all_states(state):
            return self.data_dir / 'snapshot.json'
        return self.data_dir / f"snapshot_{state.upper()}.json"

    def load_snapshot(self, state: str) -> Snapshot:
        """
        Load the snapshot for a state.

        Args:
            state: State code or "ALL"

        Returns:
            Stored Snapshot, or an empty one if nothing was saved yet

        Raises:
            OSError: If the file exists but cannot be read
            ValueError: If the file does not contain valid snapshot JSON
        """
        path = self.snapshot_path(state)

        try:
            with open(path, encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.info(f"No snapshot at {path}, starting fresh")
            return new_snapshot()
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing snapshot {path}: {e}")
            raise
        except OSError as e:
            logger.error(f"Error reading snapshot {path}: {e}")
            raise

        snapshot = Snapshot.from_dict(data)
        logger.info(f"Loaded snapshot with {len(snapshot.events)} events from {path}")
        return snapshot

    def save_snapshot(self, snapshot: Snapshot, state: str) -> None:
        """
        Save a snapshot, stamping its updated_at with the current time.

        Args:
            snapshot: Snapshot to persist
            state: State code or "ALL"
        """
        path = self.snapshot_path(state)
        snapshot.updated_at = utc_now_rfc3339()

        # Write then rename so a failed write keeps the previous snapshot
        tmp_path = path.with_suffix('.json.tmp')
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(snapshot.to_dict(), f, indent=2)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Error writing snapshot {path}: {e}")
            raise

        logger.info(f"Saved snapshot with {len(snapshot.events)} events to {path}")

    def get_event_by_id(self, event_id: str) -> Optional[Event]:
        """Look up an event in the all-states snapshot."""
        return self.load_snapshot('ALL').events.get(event_id)
