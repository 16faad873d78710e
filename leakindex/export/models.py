from dataclasses import dataclass


@dataclass(frozen=True)
class ExportResult:
    """A finished download. ``truncated`` is set when total > row_count."""

    content: bytes
    media_type: str
    filename: str
    row_count: int
    total: int
    truncated: bool
