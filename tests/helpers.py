from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from leakindex.exceptions import DocumentNotFoundError
from leakindex.ingestion.models import (
    Document,
    DocumentPage,
    DocumentPatch,
    ExtractedRecord,
    NewDocument,
)

BASE_TIME = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_record(
    record_id: str,
    domain: str = "foo.com",
    *,
    document_id: int = 1,
    owner_id: int = 10,
    line_number: int = 1,
    local_part: str = "user",
    seconds: int = 0,
) -> ExtractedRecord:
    email = f"{local_part}@{domain}"
    return ExtractedRecord(
        record_id=record_id,
        document_id=document_id,
        owner_id=owner_id,
        line_number=line_number,
        raw_line=f"https://site.example/login:{email}:pw{line_number}",
        email=email,
        domain=domain,
        indexed_at=BASE_TIME + timedelta(seconds=seconds),
    )


def mock_database() -> tuple[MagicMock, MagicMock, MagicMock]:
    """Wire up a mock Database + connection + cursor: (database, conn, cursor)."""
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    database = MagicMock()
    database.connection.return_value.__enter__ = MagicMock(return_value=mock_conn)
    database.connection.return_value.__exit__ = MagicMock(return_value=False)
    return database, mock_conn, mock_cursor


class FakeDocumentRepository:
    """Dict-backed stand-in for DocumentRepository used by workflow tests."""

    def __init__(self) -> None:
        self.documents: dict[int, Document] = {}
        self._next_id = 1

    def register(self, new_document: NewDocument) -> Document:
        document = Document(
            id=self._next_id,
            original_name=new_document.original_name,
            stored_name=new_document.stored_name,
            size_bytes=new_document.size_bytes,
            owner_id=new_document.owner_id,
            content_hash=new_document.content_hash,
            uploaded_at=BASE_TIME,
        )
        self.documents[document.id] = document
        self._next_id += 1
        return document

    def find_by_id(self, document_id: int) -> Document:
        if document_id not in self.documents:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return self.documents[document_id]

    def find_by_hash(self, content_hash: str) -> Document | None:
        matches = [d for d in self.documents.values() if d.content_hash == content_hash]
        return min(matches, key=lambda d: d.id) if matches else None

    def apply_patch(self, document_id: int, patch: DocumentPatch) -> Document:
        document = self.find_by_id(document_id)
        changes = {
            name: value
            for name, value in (
                ("ingestion_status", patch.ingestion_status),
                ("indexed_count", patch.indexed_count),
                ("failed_count", patch.failed_count),
                ("error_message", patch.error_message),
            )
            if value is not None
        }
        document = replace(document, **changes)
        self.documents[document_id] = document
        return document

    def list(self, page: int, page_size: int, owner_scope: int | None = None) -> DocumentPage:
        items = sorted(
            (d for d in self.documents.values() if owner_scope in (None, d.owner_id)),
            key=lambda d: d.id,
            reverse=True,
        )
        start = (page - 1) * page_size
        return DocumentPage(
            items=items[start : start + page_size],
            total=len(items),
            page=page,
            page_size=page_size,
            total_pages=-(-len(items) // page_size),
        )

    def count(self) -> int:
        return len(self.documents)
