"""Event list session: keeps the item store and its persisted blob in step."""
import logging
from typing import List, Optional

from storage.persistence import PersistenceAdapter
from tracker.errors import CorruptDataError
from tracker.item_store import ItemStore
from tracker.models import Event

logger = logging.getLogger(__name__)


class EventListSession:
    """
    Loads the event list, applies user actions and writes it back.

    Every successful mutation is followed by a full save. Operations that
    raise do not touch the stored blob.
    """

    def __init__(self, adapter: PersistenceAdapter, store: Optional[ItemStore] = None):
        self.adapter = adapter
        self.store = store or ItemStore()

    def open(self) -> 'EventListSession':
        """
        Load persisted events into the store.

        A corrupt blob is logged and replaced by an empty list in memory.
        """
        try:
            events = self.adapter.load()
        except CorruptDataError as e:
            logger.error(f"Stored events are corrupt, starting empty: {e}", exc_info=True)
            events = []
        self.store.reload(events)
        return self

    def _save(self) -> None:
        self.adapter.save(self.store.list())

    def events(self) -> List[Event]:
        """Detached copies of the events in display order."""
        return self.store.snapshot()

    def get(self, event_id: int) -> Event:
        return self.store.get(event_id)

    def add(self, name: str, note: str = '') -> Event:
        event = self.store.create(name, note)
        self._save()
        return event

    def edit(self, event_id: int, name: str, note: str = '') -> Event:
        event = self.store.update(event_id, name, note)
        self._save()
        return event

    def toggle(self, event_id: int) -> Event:
        event = self.store.toggle_completed(event_id)
        self._save()
        return event

    def remove(self, event_id: int) -> Event:
        event = self.store.delete(event_id)
        self._save()
        return event

    def move(self, dragged_id: int, target_id: int) -> List[Event]:
        ordered = self.store.move(dragged_id, target_id)
        if dragged_id != target_id:
            self._save()
        return ordered

    def clear_all(self) -> int:
        """
        Empty the list and delete the stored blob instead of writing an
        empty one.
        """
        cleared = self.store.clear_all()
        self.adapter.clear()
        return cleared
