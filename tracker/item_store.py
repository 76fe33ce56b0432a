"""In-memory ordered collection of events."""
import copy
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from tracker.errors import NotFoundError, ValidationError
from tracker.models import Event
from tracker.ordering import display_order, has_rank

logger = logging.getLogger(__name__)


def _epoch_millis() -> int:
    return time.time_ns() // 1_000_000


class ItemStore:
    """Authoritative set of events with order-preserving operations."""

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        id_source: Optional[Callable[[], int]] = None
    ):
        """
        Initialize an empty store.

        Args:
            clock: Returns the creation timestamp for new events
                (default: current UTC time)
            id_source: Returns a candidate id for new events
                (default: current epoch milliseconds)
        """
        self._events: Dict[int, Event] = {}
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._id_source = id_source or _epoch_millis
        self._last_id = 0

    @classmethod
    def from_events(cls, events: Iterable[Event], **kwargs) -> 'ItemStore':
        """
        Build a store from previously persisted events.

        Args:
            events: Loaded events in storage order
            **kwargs: Passed to the constructor

        Returns:
            ItemStore holding the events
        """
        store = cls(**kwargs)
        store.reload(events)
        return store

    def reload(self, events: Iterable[Event]) -> None:
        """
        Replace the contents of the store with loaded events.

        Later duplicates of an id are dropped. The survivors are renumbered
        to 0..n-1 in display order unless they already are, so gaps left
        by skipped records and clashes from migrated legacy records do not
        leak into later operations. Ids already issued by this store are
        never reissued.

        Args:
            events: Loaded events in storage order
        """
        self._events = {}
        for event in events:
            if event.id in self._events:
                logger.warning(f"Dropping duplicate event id {event.id}")
                continue
            self._events[event.id] = event
            self._last_id = max(self._last_id, event.id)

        ordered = display_order(self._events.values())
        dense = all(has_rank(event) for event in ordered) and (
            [event.sort_order for event in ordered] == list(range(len(ordered)))
        )
        if not dense:
            self._renumber(ordered)
            logger.info(f"Renumbered {len(ordered)} loaded events")

    def __len__(self) -> int:
        return len(self._events)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._events

    def _next_id(self) -> int:
        # Never reissue an id, even when created within the same millisecond
        candidate = max(self._id_source(), self._last_id + 1)
        self._last_id = candidate
        return candidate

    def _require(self, event_id: int) -> Event:
        try:
            return self._events[event_id]
        except KeyError:
            raise NotFoundError(event_id) from None

    @staticmethod
    def _clean_name(name: Optional[str]) -> str:
        name = (name or '').strip()
        if not name:
            raise ValidationError("Event name is required")
        return name

    def _renumber(self, ordered: List[Event]) -> None:
        for index, event in enumerate(ordered):
            event.sort_order = index

    def get(self, event_id: int) -> Event:
        """
        Look up a single event.

        Raises:
            NotFoundError: If no event has that id
        """
        return self._require(event_id)

    def create(self, name: str, note: str = '') -> Event:
        """
        Append a new event at the end of the display order.

        Args:
            name: Event name, must not be blank
            note: Optional note

        Returns:
            The new Event

        Raises:
            ValidationError: If name is blank
        """
        name = self._clean_name(name)
        event = Event(
            id=self._next_id(),
            name=name,
            note=(note or '').strip(),
            create_time=self._clock(),
            sort_order=len(self._events),
            completed=False
        )
        self._events[event.id] = event
        logger.info(f"Created event {event.id} at position {event.sort_order}")
        return event

    def update(self, event_id: int, name: str, note: str = '') -> Event:
        """
        Change the name and note of an event.

        sort_order, completed and create_time are left untouched.

        Raises:
            NotFoundError: If no event has that id
            ValidationError: If name is blank
        """
        event = self._require(event_id)
        name = self._clean_name(name)
        event.name = name
        event.note = (note or '').strip()
        logger.info(f"Updated event {event_id}")
        return event

    def toggle_completed(self, event_id: int) -> Event:
        """Flip the completed flag of an event."""
        event = self._require(event_id)
        event.completed = not event.completed
        logger.info(f"Event {event_id} completed={event.completed}")
        return event

    def delete(self, event_id: int) -> Event:
        """
        Remove an event and renumber the rest to 0..n-1.

        Args:
            event_id: Id of the event to remove

        Returns:
            The removed Event

        Raises:
            NotFoundError: If no event has that id
        """
        event = self._require(event_id)
        del self._events[event_id]
        self._renumber(display_order(self._events.values()))
        logger.info(f"Deleted event {event_id}, {len(self._events)} remaining")
        return event

    def move(self, dragged_id: int, target_id: int) -> List[Event]:
        """
        Move an event to the position currently held by another event.

        The dragged event is taken out of the display order and inserted at
        the index the target held before the move, then every event is
        renumbered to 0..n-1.

        Args:
            dragged_id: Id of the event being moved
            target_id: Id of the event whose position it takes

        Returns:
            Events in their new display order

        Raises:
            NotFoundError: If either id is missing
        """
        self._require(dragged_id)
        self._require(target_id)

        ordered = display_order(self._events.values())
        if dragged_id == target_id:
            return ordered

        ids = [event.id for event in ordered]
        dragged_index = ids.index(dragged_id)
        target_index = ids.index(target_id)

        dragged = ordered.pop(dragged_index)
        ordered.insert(target_index, dragged)
        self._renumber(ordered)

        logger.info(
            f"Moved event {dragged_id} from position {dragged_index} "
            f"to {target_index}"
        )
        return ordered

    def list(self) -> Iterator[Event]:
        """Iterate events in display order."""
        yield from display_order(self._events.values())

    def ranked(self) -> Iterator[Tuple[int, Event]]:
        """Iterate (rank, event) pairs in display order, rank starting at 1."""
        return enumerate(self.list(), start=1)

    def clear_all(self) -> int:
        """
        Remove every event.

        Returns:
            Number of events removed
        """
        count = len(self._events)
        self._events.clear()
        logger.info(f"Cleared {count} events")
        return count

    def snapshot(self) -> List[Event]:
        """Copies of all events in display order."""
        return [copy.copy(event) for event in self.list()]
