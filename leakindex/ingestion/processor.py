import threading
from pathlib import Path
from typing import BinaryIO

from leakindex.config.settings import Settings
from leakindex.database.repositories.document_repository import DocumentRepository
from leakindex.index.base import BaseSearchIndex
from leakindex.ingestion.extractor import EmailExtractor
from leakindex.ingestion.file_store import FileStore
from leakindex.ingestion.index_writer import IndexWriter
from leakindex.ingestion.models import Document
from leakindex.ingestion.pipeline import IngestionContext, PipelineStep
from leakindex.ingestion.steps import (
    IndexLinesStep,
    MarkCompleteStep,
    MarkIncompleteStep,
    RegisterDocumentStep,
    StoreUploadStep,
)
from leakindex.logging.logger import Log


class UploadProcessor:
    """Runs an upload through the ingestion steps.

    Pipeline: store -> register -> extract+index -> mark complete.
    If a step fails after registration, ``failed_step`` flags the document
    and the original exception is re-raised.
    """

    def __init__(self, steps: list[PipelineStep], failed_step: PipelineStep) -> None:
        self._steps = steps
        self._failed_step = failed_step

    def process(
        self,
        stream: BinaryIO,
        original_name: str,
        owner_id: int,
        *,
        content_type: str | None = None,
        declared_size: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Document:
        Log.info(f"Processing upload '{original_name}' for owner {owner_id}")
        context = IngestionContext(
            stream=stream,
            original_name=original_name,
            owner_id=owner_id,
            content_type=content_type,
            declared_size=declared_size,
            cancel_event=cancel_event,
        )
        try:
            for step in self._steps:
                context = step.run(context)
        except Exception as exc:
            context.error = exc
            self._run_failed_step(context)
            raise

        if context.document is None:
            raise RuntimeError("Upload pipeline finished without a registered document")
        return context.document

    def _run_failed_step(self, context: IngestionContext) -> None:
        try:
            self._failed_step.run(context)
        except Exception as exc:
            Log.exception(f"Failed to record ingestion failure: {exc}")


def build_upload_processor(
    settings: Settings,
    doc_repo: DocumentRepository,
    index: BaseSearchIndex,
    uploads_dir: Path | None = None,
) -> UploadProcessor:
    """Build an UploadProcessor with all steps wired from settings."""
    file_store = FileStore(
        uploads_dir if uploads_dir is not None else Path(settings.uploads_dir),
        max_size_bytes=settings.max_file_size_bytes,
    )
    writer = IndexWriter(
        index,
        batch_size=settings.index_batch_size,
        max_retries=settings.index_batch_retries,
        workers=settings.index_writer_workers,
        retry_backoff_seconds=settings.index_retry_backoff_seconds,
    )
    steps: list[PipelineStep] = [
        StoreUploadStep(file_store),
        RegisterDocumentStep(doc_repo, file_store, settings.duplicate_policy),
        IndexLinesStep(
            file_store, EmailExtractor(max_line_length=settings.max_line_length), writer
        ),
        MarkCompleteStep(doc_repo),
    ]
    return UploadProcessor(steps=steps, failed_step=MarkIncompleteStep(doc_repo, index))
