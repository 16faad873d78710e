from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class ActivityEntry:
    """Represents a row from the activity_logs table."""

    id: int
    action: str
    owner_id: int | None = None
    entity_type: str | None = None
    entity_id: int | None = None
    details: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


@dataclass(frozen=True)
class ActivityPage:
    """Newest-first page of activity entries."""

    items: list[ActivityEntry]
    total: int
    page: int
    page_size: int
    total_pages: int
