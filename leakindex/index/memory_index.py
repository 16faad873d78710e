"""In-process search index adapter.

No network calls. Used for local development and tests; behaves like the
PostgreSQL adapter for matching, ordering and conflicts.
"""

import threading
from collections.abc import Sequence

from leakindex.index.base import CONFLICT_REASON, BaseSearchIndex
from leakindex.index.models import BulkWriteResult, IndexQueryResult
from leakindex.ingestion.models import ExtractedRecord, ItemFailure


def _sort_key(record: ExtractedRecord) -> tuple:
    return (record.indexed_at, record.document_id, record.line_number, record.record_id)


class InMemorySearchIndex(BaseSearchIndex):
    def __init__(self) -> None:
        self._records: dict[str, ExtractedRecord] = {}
        self._lock = threading.Lock()

    def bulk_write(self, records: Sequence[ExtractedRecord]) -> BulkWriteResult:
        result = BulkWriteResult()
        with self._lock:
            for record in records:
                if record.record_id in self._records:
                    result.failures.append(ItemFailure(record.record_id, CONFLICT_REASON))
                    continue
                self._records[record.record_id] = record
                result.indexed_ids.append(record.record_id)
        return result

    def query(
        self,
        domain: str,
        owner_id: int | None,
        offset: int,
        limit: int,
    ) -> IndexQueryResult:
        wanted = domain.lower()
        with self._lock:
            matches = [
                r
                for r in self._records.values()
                if r.domain.lower() == wanted and (owner_id is None or r.owner_id == owner_id)
            ]
        matches.sort(key=_sort_key)
        return IndexQueryResult(records=matches[offset : offset + limit], total=len(matches))

    def count_for_document(self, document_id: int) -> int:
        with self._lock:
            return sum(1 for r in self._records.values() if r.document_id == document_id)
