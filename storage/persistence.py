"""Persistence adapter between the item store and a blob store."""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from storage.blob_store import BlobStore
from tracker.errors import CorruptDataError
from tracker.models import Event

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = 'thingListEvents'


def format_timestamp(value: datetime) -> str:
    """Format a timestamp as ISO 8601 UTC with milliseconds and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO 8601 timestamp into an aware UTC datetime.

    Naive timestamps are taken to be UTC.

    Raises:
        ValueError: If the text is not a valid timestamp
    """
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class PersistenceAdapter:
    """Serializes the full event collection to a single blob."""

    def __init__(self, blob_store: BlobStore, key: str = DEFAULT_STORAGE_KEY):
        """
        Args:
            blob_store: Backing key-value store
            key: Key the event blob is kept under
        """
        self.blob_store = blob_store
        self.key = key

    def save(self, events: Iterable[Event]) -> int:
        """
        Write the whole collection under the storage key.

        Args:
            events: Events to persist, in display order

        Returns:
            Number of events written
        """
        items = [self._event_to_item(event) for event in events]
        self.blob_store.set(self.key, json.dumps(items, ensure_ascii=False))
        logger.info(f"Saved {len(items)} events under key '{self.key}'")
        return len(items)

    def load(self) -> List[Event]:
        """
        Read and migrate the stored collection.

        Returns:
            Loaded events in storage order, empty if nothing is stored

        Raises:
            CorruptDataError: If the blob is not a JSON array
        """
        raw = self.blob_store.get(self.key)
        if raw is None:
            logger.info(f"No stored events under key '{self.key}'")
            return []

        try:
            payload = json.loads(raw)
        except ValueError as e:
            raise CorruptDataError(
                f"Failed to parse stored events under key '{self.key}': {e}"
            ) from e

        if not isinstance(payload, list):
            raise CorruptDataError(
                f"Stored events under key '{self.key}' must be a list, "
                f"got {type(payload).__name__}"
            )

        events = []
        for index, item in enumerate(self.migrate(payload)):
            event = self._item_to_event(item, index)
            if event:
                events.append(event)

        logger.info(f"Loaded {len(events)} of {len(payload)} stored events")
        return events

    def migrate(self, raw_items: List[Any]) -> List[Any]:
        """
        Fill in fields that older saved data lacks.

        Records without a sort_order get their position in the loaded
        sequence, so the stored order is kept. Records without a completed
        flag default to not completed. A null value counts as missing.
        Non-object entries are passed through unchanged.

        Args:
            raw_items: Decoded records in storage order

        Returns:
            New list of migrated records
        """
        migrated = []
        for index, item in enumerate(raw_items):
            if not isinstance(item, dict):
                migrated.append(item)
                continue
            item = dict(item)
            if item.get('sort_order') is None:
                item['sort_order'] = index
            if item.get('completed') is None:
                item['completed'] = False
            migrated.append(item)
        return migrated

    def clear(self) -> None:
        """Remove the storage key entirely."""
        self.blob_store.remove(self.key)
        logger.info(f"Removed stored events under key '{self.key}'")

    def _item_to_event(self, item: Any, index: int) -> Optional[Event]:
        """
        Convert a migrated record to an Event.

        Args:
            item: Decoded record
            index: Position of the record in the blob

        Returns:
            Event, or None if the record is unusable
        """
        if not isinstance(item, dict):
            logger.warning(f"Skipping stored record {index}: not an object")
            return None

        try:
            event_id = item['id']
            if isinstance(event_id, bool) or not isinstance(event_id, (int, float)):
                raise ValueError(f"invalid id {event_id!r}")
            if isinstance(event_id, float):
                if not event_id.is_integer():
                    raise ValueError(f"invalid id {event_id!r}")
                event_id = int(event_id)

            name = item['name']
            if not isinstance(name, str) or not name.strip():
                raise ValueError("empty name")

            sort_order = item.get('sort_order')
            if isinstance(sort_order, bool) or not isinstance(sort_order, int):
                sort_order = None

            note = item.get('note')
            if not isinstance(note, str):
                note = ''

            # Only a real boolean marks an event completed
            completed = item.get('completed')
            if not isinstance(completed, bool):
                completed = False

            return Event(
                id=event_id,
                name=name.strip(),
                note=note,
                create_time=parse_timestamp(str(item['create_time'])),
                sort_order=sort_order,
                completed=completed
            )
        except (KeyError, ValueError) as e:
            logger.warning(f"Skipping stored record {index}: {e}")
            return None

    def _event_to_item(self, event: Event) -> Dict[str, Any]:
        return {
            'id': event.id,
            'name': event.name,
            'note': event.note,
            'create_time': format_timestamp(event.create_time),
            'sort_order': event.sort_order,
            'completed': event.completed
        }
