import re
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

from leakindex.config.settings import Settings
from leakindex.database.connection import Database
from leakindex.database.models import ActivityPage
from leakindex.database.repositories.activity_repository import (
    EXPORT,
    SEARCH,
    UPLOAD,
    ActivityRepository,
)
from leakindex.database.repositories.document_repository import DocumentRepository
from leakindex.exceptions import InvalidArgumentError
from leakindex.export.exporter import CSV_MEDIA_TYPE, XLSX_MEDIA_TYPE, ResultExporter
from leakindex.export.models import ExportResult
from leakindex.index.base import BaseSearchIndex
from leakindex.index.factory import SearchIndexFactory
from leakindex.ingestion.models import Document, DocumentPage
from leakindex.ingestion.processor import UploadProcessor, build_upload_processor
from leakindex.logging.logger import Log
from leakindex.search.models import SearchPage
from leakindex.search.searcher import DomainSearcher, normalize_domain

EXPORT_FORMATS = ("csv", "xlsx")

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def export_filename(domain: str, fmt: str, now: datetime | None = None) -> str:
    """emails_<domain>_<unix-ms>.<fmt>, with filesystem-unsafe characters replaced."""
    moment = now or datetime.now(timezone.utc)
    safe_domain = _UNSAFE_FILENAME_CHARS.sub("_", domain)
    return f"emails_{safe_domain}_{int(moment.timestamp() * 1000)}.{fmt}"


class LeakIndexService:
    """Entry points consumed by the surrounding web service.

    Authentication, routing and multipart parsing happen outside; callers pass
    the authenticated user id as ``owner_id`` / ``actor_id``.
    """

    def __init__(
        self,
        *,
        upload_processor: UploadProcessor,
        searcher: DomainSearcher,
        exporter: ResultExporter,
        doc_repo: DocumentRepository,
        activity_repo: ActivityRepository,
        default_page_size: int = 20,
        export_max_rows: int = 10000,
    ) -> None:
        self._upload_processor = upload_processor
        self._searcher = searcher
        self._exporter = exporter
        self._doc_repo = doc_repo
        self._activity_repo = activity_repo
        self._default_page_size = default_page_size
        self._export_max_rows = export_max_rows

    def upload(
        self,
        stream: BinaryIO,
        original_name: str,
        owner_id: int,
        *,
        content_type: str | None = None,
        declared_size: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Document:
        """Store, register and index a plaintext leak dump."""
        document = self._upload_processor.process(
            stream,
            original_name,
            owner_id,
            content_type=content_type,
            declared_size=declared_size,
            cancel_event=cancel_event,
        )
        self._activity_repo.record(
            UPLOAD,
            owner_id=owner_id,
            entity_id=document.id,
            details={
                "filename": document.original_name,
                "size": document.size_bytes,
                "indexed": document.indexed_count,
                "failed": document.failed_count,
                "status": document.ingestion_status.value,
            },
        )
        return document

    def search(
        self,
        domain: str,
        page: int = 1,
        page_size: int | None = None,
        owner_scope: int | None = None,
        actor_id: int | None = None,
    ) -> SearchPage:
        result = self._searcher.search(
            domain,
            page,
            page_size if page_size is not None else self._default_page_size,
            owner_scope=owner_scope,
        )
        self._activity_repo.record(
            SEARCH,
            owner_id=actor_id,
            details={"domain": normalize_domain(domain), "results": result.total},
        )
        return result

    def export(
        self,
        domain: str,
        fmt: str,
        owner_scope: int | None = None,
        actor_id: int | None = None,
    ) -> ExportResult:
        """Export every hit for ``domain`` up to export_max_rows.

        Raises:
            InvalidArgumentError: for an unknown format or empty domain.
            ExportError: if encoding fails.
        """
        fmt = fmt.lower().strip()
        if fmt not in EXPORT_FORMATS:
            raise InvalidArgumentError(
                f"Unknown export format '{fmt}'. Choose from: {list(EXPORT_FORMATS)}"
            )
        wanted = normalize_domain(domain)
        result = self._searcher.search(wanted, 1, self._export_max_rows, owner_scope=owner_scope)

        if fmt == "csv":
            content = self._exporter.export_csv(result.items)
            media_type = CSV_MEDIA_TYPE
        else:
            content = self._exporter.export_xlsx(result.items)
            media_type = XLSX_MEDIA_TYPE

        truncated = result.total > len(result.items)
        if truncated:
            Log.warning(
                f"Export for '{wanted}' truncated to {len(result.items)} of {result.total} rows"
            )
        self._activity_repo.record(
            EXPORT,
            owner_id=actor_id,
            details={
                "domain": wanted,
                "format": fmt,
                "results": result.total,
                "truncated": truncated,
            },
        )
        return ExportResult(
            content=content,
            media_type=media_type,
            filename=export_filename(wanted, fmt),
            row_count=len(result.items),
            total=result.total,
            truncated=truncated,
        )

    def list_documents(
        self,
        page: int = 1,
        page_size: int | None = None,
        owner_scope: int | None = None,
    ) -> DocumentPage:
        return self._doc_repo.list(
            page,
            page_size if page_size is not None else self._default_page_size,
            owner_scope=owner_scope,
        )

    def activity_log(self, page: int = 1, page_size: int | None = None) -> ActivityPage:
        return self._activity_repo.list(
            page, page_size if page_size is not None else self._default_page_size
        )

    def stats(self) -> dict[str, int]:
        return {
            "total_documents": self._doc_repo.count(),
            "total_searches": self._activity_repo.count_by_action(SEARCH),
            "total_exports": self._activity_repo.count_by_action(EXPORT),
        }


def build_service(
    settings: Settings,
    database: Database,
    index: BaseSearchIndex | None = None,
    uploads_dir: Path | None = None,
) -> LeakIndexService:
    """Wire a LeakIndexService from settings and a live Database handle."""
    search_index = index if index is not None else SearchIndexFactory.create(settings, database)
    doc_repo = DocumentRepository(database)
    return LeakIndexService(
        upload_processor=build_upload_processor(
            settings, doc_repo, search_index, uploads_dir=uploads_dir
        ),
        searcher=DomainSearcher(
            search_index,
            max_page_size=max(settings.max_page_size, settings.export_max_rows),
        ),
        exporter=ResultExporter(),
        doc_repo=doc_repo,
        activity_repo=ActivityRepository(database),
        default_page_size=settings.default_page_size,
        export_max_rows=settings.export_max_rows,
    )
