from abc import ABC, abstractmethod
from collections.abc import Sequence

from leakindex.index.models import BulkWriteResult, IndexQueryResult
from leakindex.ingestion.models import ExtractedRecord

CONFLICT_REASON = "conflict: record id already indexed"


class BaseSearchIndex(ABC):
    """Contract for all search index adapters."""

    @abstractmethod
    def bulk_write(self, records: Sequence[ExtractedRecord]) -> BulkWriteResult:
        """Write one batch of records in a single request.

        Rejected items are reported in the result, not raised. A record whose
        id is already present is left untouched and reported with
        CONFLICT_REASON.

        Raises:
            IndexUnavailableError: if the index cannot be reached.
        """

    @abstractmethod
    def query(
        self,
        domain: str,
        owner_id: int | None,
        offset: int,
        limit: int,
    ) -> IndexQueryResult:
        """Return one page of records whose domain equals ``domain``.

        Matching is exact and case-insensitive. Results are ordered by
        (indexed_at, document_id, line_number, record_id).

        Raises:
            IndexUnavailableError: if the index cannot be reached.
        """

    @abstractmethod
    def count_for_document(self, document_id: int) -> int:
        """Number of records indexed for a document."""
