from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SearchHit:
    """Projection of an indexed record returned to callers and exporters."""

    record_id: str
    document_id: int
    line_number: int
    content: str
    email: str
    domain: str
    uploaded_at: datetime


@dataclass(frozen=True)
class SearchPage:
    items: list[SearchHit]
    total: int
    page: int
    page_size: int
    total_pages: int
