"""Data models for the event list."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Event:
    """A single task tracked by the list."""
    id: int
    name: str
    note: str
    create_time: datetime
    sort_order: Optional[int]
    completed: bool = False

    @property
    def create_date(self) -> str:
        """Creation date as shown next to the event name (YYYY-MM-DD)."""
        return self.create_time.strftime('%Y-%m-%d')

