from dataclasses import dataclass, field

from leakindex.ingestion.models import ExtractedRecord, ItemFailure


@dataclass
class BulkWriteResult:
    """Per-batch outcome reported by a search index adapter."""

    indexed_ids: list[str] = field(default_factory=list)
    failures: list[ItemFailure] = field(default_factory=list)


@dataclass(frozen=True)
class IndexQueryResult:
    records: list[ExtractedRecord]
    total: int
