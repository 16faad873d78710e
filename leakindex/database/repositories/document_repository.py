import math
from typing import Any

from psycopg.rows import dict_row

from leakindex.database.connection import Database
from leakindex.exceptions import DocumentNotFoundError, InvalidArgumentError
from leakindex.ingestion.models import (
    Document,
    DocumentPage,
    DocumentPatch,
    IngestionStatus,
    NewDocument,
)

_COLUMNS = """
    id, original_name, stored_name, size_bytes, owner_id, content_hash,
    uploaded_at, ingestion_status, indexed_count, failed_count, error_message
"""


class DocumentRepository:
    """Registry of uploaded documents (the documents table)."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def register(self, new_document: NewDocument) -> Document:
        """Insert a document in 'pending' state and return it with its id."""
        with self._database.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO documents
                        (original_name, stored_name, size_bytes, owner_id, content_hash,
                         ingestion_status)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (
                        new_document.original_name,
                        new_document.stored_name,
                        new_document.size_bytes,
                        new_document.owner_id,
                        new_document.content_hash,
                        IngestionStatus.PENDING.value,
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError("INSERT INTO documents returned no row")
        return self._to_document(row)

    def find_by_id(self, document_id: int) -> Document:
        """Find a document by ID.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with self._database.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return self._to_document(row)

    def find_by_hash(self, content_hash: str) -> Document | None:
        """Return the earliest document with this content hash, if any."""
        with self._database.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS} FROM documents
                    WHERE content_hash = %s
                    ORDER BY id
                    LIMIT 1
                    """,
                    (content_hash,),
                )
                row = cur.fetchone()
        return self._to_document(row) if row is not None else None

    def list(
        self,
        page: int,
        page_size: int,
        owner_scope: int | None = None,
    ) -> DocumentPage:
        """Newest-first page of documents, optionally for one owner only."""
        if page < 1 or page_size <= 0:
            raise InvalidArgumentError("page must be >= 1 and page_size must be > 0")
        params = {
            "owner_id": owner_scope,
            "limit": page_size,
            "offset": (page - 1) * page_size,
        }
        with self._database.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS} FROM documents
                    WHERE (%(owner_id)s::bigint IS NULL OR owner_id = %(owner_id)s)
                    ORDER BY uploaded_at DESC, id DESC
                    LIMIT %(limit)s OFFSET %(offset)s
                    """,
                    params,
                )
                rows = cur.fetchall()
                cur.execute(
                    """
                    SELECT COUNT(*) AS total FROM documents
                    WHERE (%(owner_id)s::bigint IS NULL OR owner_id = %(owner_id)s)
                    """,
                    params,
                )
                count_row = cur.fetchone()

        total = int(count_row["total"]) if count_row is not None else 0
        return DocumentPage(
            items=[self._to_document(row) for row in rows],
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size),
        )

    def apply_patch(self, document_id: int, patch: DocumentPatch) -> Document:
        """Apply ingestion bookkeeping changes through one fixed UPDATE.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        if patch.is_empty():
            return self.find_by_id(document_id)
        status = patch.ingestion_status.value if patch.ingestion_status else None
        with self._database.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE documents
                    SET ingestion_status = COALESCE(%s, ingestion_status),
                        indexed_count = COALESCE(%s, indexed_count),
                        failed_count = COALESCE(%s, failed_count),
                        error_message = COALESCE(%s, error_message)
                    WHERE id = %s
                    RETURNING {_COLUMNS}
                    """,
                    (
                        status,
                        patch.indexed_count,
                        patch.failed_count,
                        patch.error_message,
                        document_id,
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return self._to_document(row)

    def count(self) -> int:
        with self._database.connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT COUNT(*) FROM documents")
                row = cur.fetchone()
        return int(row[0]) if row is not None else 0

    @staticmethod
    def _to_document(row: dict[str, Any]) -> Document:
        return Document(
            id=row["id"],
            original_name=row["original_name"],
            stored_name=row["stored_name"],
            size_bytes=row["size_bytes"],
            owner_id=row["owner_id"],
            content_hash=row["content_hash"],
            uploaded_at=row["uploaded_at"],
            ingestion_status=IngestionStatus(row["ingestion_status"]),
            indexed_count=row["indexed_count"],
            failed_count=row["failed_count"],
            error_message=row["error_message"],
        )
