from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from leakindex.exceptions import PartialIndexFailure


class IngestionStatus(StrEnum):
    PENDING = "pending"
    COMPLETE = "complete"
    PARTIAL = "partial"
    INCOMPLETE = "incomplete"


@dataclass(frozen=True)
class NewDocument:
    """Metadata for a document that has been stored but not yet registered."""

    original_name: str
    stored_name: str
    size_bytes: int
    owner_id: int
    content_hash: str


@dataclass(frozen=True)
class Document:
    """A registered upload (row of the documents table)."""

    id: int
    original_name: str
    stored_name: str
    size_bytes: int
    owner_id: int
    content_hash: str
    uploaded_at: datetime
    ingestion_status: IngestionStatus = IngestionStatus.PENDING
    indexed_count: int = 0
    failed_count: int = 0
    error_message: str | None = None


@dataclass(frozen=True)
class DocumentPatch:
    """Ingestion bookkeeping update. ``None`` fields are left unchanged."""

    ingestion_status: IngestionStatus | None = None
    indexed_count: int | None = None
    failed_count: int | None = None
    error_message: str | None = None

    def is_empty(self) -> bool:
        return (
            self.ingestion_status is None
            and self.indexed_count is None
            and self.failed_count is None
            and self.error_message is None
        )


@dataclass(frozen=True)
class DocumentPage:
    items: list[Document]
    total: int
    page: int
    page_size: int
    total_pages: int


@dataclass(frozen=True)
class StoredUpload:
    """Result of streaming an upload to disk."""

    original_name: str
    stored_name: str
    size_bytes: int
    content_hash: str


@dataclass(frozen=True, slots=True)
class ExtractedLine:
    """First email token found on one source line."""

    line_number: int
    raw_line: str
    email: str
    domain: str


@dataclass(frozen=True, slots=True)
class ExtractedRecord:
    """One unit of the search index."""

    record_id: str
    document_id: int
    owner_id: int
    line_number: int
    raw_line: str
    email: str
    domain: str
    indexed_at: datetime


@dataclass(frozen=True)
class ItemFailure:
    record_id: str
    reason: str


@dataclass
class CommitResult:
    """Outcome of committing a document's records to the index."""

    submitted: int = 0
    indexed: int = 0
    failures: list[ItemFailure] = field(default_factory=list)
    batches: int = 0

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)

    def merge(self, other: "CommitResult") -> None:
        self.submitted += other.submitted
        self.indexed += other.indexed
        self.failures.extend(other.failures)
        self.batches += other.batches

    def raise_for_failures(self) -> None:
        """Raise PartialIndexFailure if any submitted record was rejected."""
        if self.failures:
            raise PartialIndexFailure(
                f"{self.failed} of {self.submitted} records failed to index",
                failed=self.failed,
            )
