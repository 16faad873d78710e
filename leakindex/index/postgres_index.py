from collections.abc import Sequence

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from leakindex.database.connection import Database
from leakindex.exceptions import IndexUnavailableError
from leakindex.index.base import CONFLICT_REASON, BaseSearchIndex
from leakindex.index.models import BulkWriteResult, IndexQueryResult
from leakindex.ingestion.models import ExtractedRecord, ItemFailure

_INSERT = """
INSERT INTO {table}
    (record_id, document_id, owner_id, line_number, content, email, domain, indexed_at)
VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
ON CONFLICT (record_id) DO NOTHING
RETURNING record_id
"""

_MATCH = "lower(domain) = lower(%(domain)s) AND (%(owner_id)s::bigint IS NULL OR owner_id = %(owner_id)s)"

_SELECT = (
    """
SELECT record_id, document_id, owner_id, line_number, content, email, domain, indexed_at
FROM {table}
WHERE """
    + _MATCH
    + """
ORDER BY indexed_at, document_id, line_number, record_id
LIMIT %(limit)s OFFSET %(offset)s
"""
)

_COUNT = "SELECT COUNT(*) FROM {table} WHERE " + _MATCH


def reject_reason(record: ExtractedRecord) -> str | None:
    """Return why PostgreSQL would refuse this record, or None if it is storable."""
    for name in ("raw_line", "email", "domain"):
        if "\x00" in getattr(record, name):
            return f"{name} contains a NUL character"
    if not record.email or not record.domain:
        return "email and domain must not be empty"
    return None


class PostgresSearchIndex(BaseSearchIndex):
    """Search index stored in a PostgreSQL table named after the index."""

    def __init__(self, database: Database, index_name: str) -> None:
        self._database = database
        self._index_name = index_name
        self._table = sql.Identifier(index_name)

    def bulk_write(self, records: Sequence[ExtractedRecord]) -> BulkWriteResult:
        result = BulkWriteResult()
        accepted: list[ExtractedRecord] = []
        for record in records:
            reason = reject_reason(record)
            if reason is None:
                accepted.append(record)
            else:
                result.failures.append(ItemFailure(record.record_id, reason))
        if not accepted:
            return result

        query = sql.SQL(_INSERT).format(table=self._table)
        params = [
            (
                r.record_id,
                r.document_id,
                r.owner_id,
                r.line_number,
                r.raw_line,
                r.email,
                r.domain,
                r.indexed_at,
            )
            for r in accepted
        ]
        written: set[str] = set()
        try:
            with self._database.connection() as conn:
                with conn.cursor() as cur:
                    cur.executemany(query, params, returning=True)
                    while True:
                        row = cur.fetchone()
                        if row is not None:
                            written.add(row[0])
                        if not cur.nextset():
                            break
                conn.commit()
        except (psycopg.OperationalError, psycopg.InterfaceError) as exc:
            raise IndexUnavailableError(
                f"Index '{self._index_name}' unavailable: {exc}"
            ) from exc

        for record in accepted:
            if record.record_id in written:
                result.indexed_ids.append(record.record_id)
            else:
                result.failures.append(ItemFailure(record.record_id, CONFLICT_REASON))
        return result

    def query(
        self,
        domain: str,
        owner_id: int | None,
        offset: int,
        limit: int,
    ) -> IndexQueryResult:
        params = {
            "domain": domain,
            "owner_id": owner_id,
            "limit": limit,
            "offset": offset,
        }
        try:
            with self._database.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql.SQL(_COUNT).format(table=self._table), params)
                    count_row = cur.fetchone()
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(sql.SQL(_SELECT).format(table=self._table), params)
                    rows = cur.fetchall()
        except (psycopg.OperationalError, psycopg.InterfaceError) as exc:
            raise IndexUnavailableError(
                f"Index '{self._index_name}' unavailable: {exc}"
            ) from exc

        total = int(count_row[0]) if count_row is not None else 0
        return IndexQueryResult(records=[self._to_record(row) for row in rows], total=total)

    def count_for_document(self, document_id: int) -> int:
        query = sql.SQL("SELECT COUNT(*) FROM {table} WHERE document_id = %s").format(
            table=self._table
        )
        try:
            with self._database.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, (document_id,))
                    row = cur.fetchone()
        except (psycopg.OperationalError, psycopg.InterfaceError) as exc:
            raise IndexUnavailableError(
                f"Index '{self._index_name}' unavailable: {exc}"
            ) from exc
        return int(row[0]) if row is not None else 0

    @staticmethod
    def _to_record(row: dict) -> ExtractedRecord:
        return ExtractedRecord(
            record_id=row["record_id"],
            document_id=row["document_id"],
            owner_id=row["owner_id"],
            line_number=row["line_number"],
            raw_line=row["content"],
            email=row["email"],
            domain=row["domain"],
            indexed_at=row["indexed_at"],
        )
