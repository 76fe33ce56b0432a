"""Exceptions raised by event list operations."""


class EventListError(Exception):
    """Base class for event list errors."""


class ValidationError(EventListError):
    """A required field was empty."""


class NotFoundError(EventListError):
    """An operation referenced an event id that is not in the store."""

    def __init__(self, event_id: int):
        super().__init__(f"Event not found: {event_id}")
        self.event_id = event_id


class CorruptDataError(EventListError):
    """The persisted blob could not be parsed."""
