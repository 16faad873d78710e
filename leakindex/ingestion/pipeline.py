import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import BinaryIO

from leakindex.ingestion.models import CommitResult, Document, StoredUpload


@dataclass(slots=True)
class IngestionContext:
    stream: BinaryIO
    original_name: str
    owner_id: int
    content_type: str | None = None
    declared_size: int | None = None
    cancel_event: threading.Event | None = None
    stored: StoredUpload | None = None
    document: Document | None = None
    commit_result: CommitResult | None = None
    error: BaseException | None = None


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: IngestionContext) -> IngestionContext:
        raise NotImplementedError
