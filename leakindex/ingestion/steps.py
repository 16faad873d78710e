import psycopg

from leakindex.database.repositories.document_repository import DocumentRepository
from leakindex.exceptions import DuplicateDocumentError, IndexUnavailableError, RegistryError
from leakindex.index.base import BaseSearchIndex
from leakindex.ingestion.extractor import EmailExtractor
from leakindex.ingestion.file_store import FileStore, check_file_name, check_file_type
from leakindex.ingestion.index_writer import IndexWriter
from leakindex.ingestion.models import (
    Document,
    DocumentPatch,
    IngestionStatus,
    NewDocument,
    StoredUpload,
)
from leakindex.ingestion.pipeline import IngestionContext, PipelineStep
from leakindex.logging.logger import Log

DUPLICATE_ALLOW = "allow"
DUPLICATE_REJECT = "reject"


class StoreUploadStep(PipelineStep):
    """Check name and type, then stream the upload to disk while hashing and validating."""

    def __init__(self, file_store: FileStore) -> None:
        self._file_store = file_store

    def run(self, context: IngestionContext) -> IngestionContext:
        check_file_name(context.original_name)
        check_file_type(context.original_name, context.content_type)
        context.stored = self._file_store.save(
            context.stream,
            context.original_name,
            declared_size=context.declared_size,
            cancel_event=context.cancel_event,
        )
        Log.info(
            f"Stored '{context.original_name}' as '{context.stored.stored_name}' "
            f"({context.stored.size_bytes} bytes, sha256 {context.stored.content_hash})"
        )
        return context


class RegisterDocumentStep(PipelineStep):
    def __init__(
        self,
        doc_repo: DocumentRepository,
        file_store: FileStore,
        duplicate_policy: str = DUPLICATE_ALLOW,
    ) -> None:
        if duplicate_policy not in (DUPLICATE_ALLOW, DUPLICATE_REJECT):
            raise ValueError(
                f"Unknown duplicate policy '{duplicate_policy}'. "
                f"Choose from: {[DUPLICATE_ALLOW, DUPLICATE_REJECT]}"
            )
        self._doc_repo = doc_repo
        self._file_store = file_store
        self._duplicate_policy = duplicate_policy

    def run(self, context: IngestionContext) -> IngestionContext:
        if context.stored is None:
            raise ValueError("IngestionContext.stored must be set before registration")
        stored = context.stored

        # Nothing is registered yet, so the stored file is the only trace to remove.
        try:
            context.document = self._register(context, stored)
        except psycopg.Error as exc:
            self._file_store.path_for(stored.stored_name).unlink(missing_ok=True)
            raise RegistryError(
                f"Could not register '{context.original_name}': {exc}"
            ) from exc
        except BaseException:
            self._file_store.path_for(stored.stored_name).unlink(missing_ok=True)
            raise
        Log.info(f"Registered document {context.document.id} for owner {context.owner_id}")
        return context

    def _register(self, context: IngestionContext, stored: StoredUpload) -> Document:
        existing = self._doc_repo.find_by_hash(stored.content_hash)
        if existing is not None:
            if self._duplicate_policy == DUPLICATE_REJECT:
                raise DuplicateDocumentError(
                    f"'{context.original_name}' has the same content as document {existing.id}"
                )
            Log.warning(
                f"'{context.original_name}' has the same content as document "
                f"{existing.id}; indexing it again"
            )

        return self._doc_repo.register(
            NewDocument(
                original_name=stored.original_name,
                stored_name=stored.stored_name,
                size_bytes=stored.size_bytes,
                owner_id=context.owner_id,
                content_hash=stored.content_hash,
            )
        )


class IndexLinesStep(PipelineStep):
    """Stream the stored file through the extractor into the index writer."""

    def __init__(
        self,
        file_store: FileStore,
        extractor: EmailExtractor,
        writer: IndexWriter,
    ) -> None:
        self._file_store = file_store
        self._extractor = extractor
        self._writer = writer

    def run(self, context: IngestionContext) -> IngestionContext:
        if context.document is None:
            raise ValueError("IngestionContext.document must be set before indexing")
        document = context.document
        lines = self._file_store.open_lines(document.stored_name)
        extracted = self._extractor.extract(lines, cancel_event=context.cancel_event)
        context.commit_result = self._writer.commit(document.id, document.owner_id, extracted)
        return context


class MarkCompleteStep(PipelineStep):
    def __init__(self, doc_repo: DocumentRepository) -> None:
        self._doc_repo = doc_repo

    def run(self, context: IngestionContext) -> IngestionContext:
        if context.document is None or context.commit_result is None:
            raise ValueError("IngestionContext.commit_result must be set before completion")
        result = context.commit_result
        patch = DocumentPatch(
            ingestion_status=(
                IngestionStatus.PARTIAL if result.has_failures else IngestionStatus.COMPLETE
            ),
            indexed_count=result.indexed,
            failed_count=result.failed,
            error_message=(
                f"{result.failed} of {result.submitted} records failed to index"
                if result.has_failures
                else None
            ),
        )
        context.document = self._doc_repo.apply_patch(context.document.id, patch)
        if result.has_failures:
            Log.warning(
                f"Document {context.document.id} partially indexed: "
                f"{result.failed} of {result.submitted} records rejected"
            )
        return context


class MarkIncompleteStep(PipelineStep):
    """Flag a registered document whose ingestion did not finish.

    Records committed before the failure stay in the index; the document
    metadata says so instead of claiming a complete ingestion.
    """

    def __init__(self, doc_repo: DocumentRepository, index: BaseSearchIndex) -> None:
        self._doc_repo = doc_repo
        self._index = index

    def run(self, context: IngestionContext) -> IngestionContext:
        if context.document is None:
            return context
        indexed_count = self._count_indexed(context.document.id)
        context.document = self._doc_repo.apply_patch(
            context.document.id,
            DocumentPatch(
                ingestion_status=IngestionStatus.INCOMPLETE,
                indexed_count=indexed_count,
                error_message=f"Ingestion incomplete: {context.error}",
            ),
        )
        Log.error(
            f"Document {context.document.id} marked incomplete "
            f"({indexed_count} records indexed): {context.error}"
        )
        return context

    def _count_indexed(self, document_id: int) -> int | None:
        try:
            return self._index.count_for_document(document_id)
        except IndexUnavailableError as exc:
            Log.warning(f"Could not count indexed records for document {document_id}: {exc}")
            return None
