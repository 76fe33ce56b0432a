"""Display order for events."""
from typing import Iterable, List

from tracker.models import Event


def has_rank(event: Event) -> bool:
    """Return True if the event carries a usable integer sort_order."""
    # bool is a subclass of int but never a valid rank
    return isinstance(event.sort_order, int) and not isinstance(event.sort_order, bool)


def display_order(events: Iterable[Event]) -> List[Event]:
    """
    Return events in display order.

    Events are sorted by sort_order when every event has one. If any event
    lacks an integer sort_order the whole collection is ordered by
    create_time instead, oldest first. The sort is stable, so ties keep
    their insertion order.

    Args:
        events: Events in storage order

    Returns:
        New list of the same Event objects in display order
    """
    events = list(events)
    if all(has_rank(event) for event in events):
        return sorted(events, key=lambda event: event.sort_order)
    return sorted(events, key=lambda event: event.create_time)
