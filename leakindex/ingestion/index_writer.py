import time
import uuid
from collections.abc import Iterable, Iterator
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone

from leakindex.exceptions import IndexUnavailableError
from leakindex.index.base import CONFLICT_REASON, BaseSearchIndex
from leakindex.ingestion.models import CommitResult, ExtractedLine, ExtractedRecord
from leakindex.logging.logger import Log


def new_record_id() -> str:
    return uuid.uuid4().hex


class IndexWriter:
    """Commits extracted lines to the search index in bounded batches.

    Each record gets a random id when its batch is built, so ingesting the same
    file twice never overwrites earlier records. A batch that cannot reach the
    index is retried up to ``max_retries`` times with the same ids; items the
    index rejects are reported in the CommitResult and never retried.
    """

    def __init__(
        self,
        index: BaseSearchIndex,
        *,
        batch_size: int = 2000,
        max_retries: int = 2,
        workers: int = 1,
        retry_backoff_seconds: float = 0.5,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self._index = index
        self._batch_size = batch_size
        self._max_retries = max(0, max_retries)
        self._workers = max(1, workers)
        self._retry_backoff_seconds = retry_backoff_seconds

    def commit(
        self,
        document_id: int,
        owner_id: int,
        lines: Iterable[ExtractedLine],
    ) -> CommitResult:
        """Write all lines for a document. Zero lines means zero index calls.

        If ``lines`` raises mid-iteration, the batch being assembled is
        discarded and the exception propagates once in-flight batches finish.

        Raises:
            IndexUnavailableError: if a batch still fails after all retries.
        """
        batches = self._batches(document_id, owner_id, lines)
        if self._workers == 1:
            result = CommitResult()
            for batch in batches:
                result.merge(self._write_batch(document_id, batch))
        else:
            result = self._commit_concurrently(document_id, batches)

        Log.info(
            f"Document {document_id}: {result.indexed}/{result.submitted} records "
            f"indexed in {result.batches} batches, {result.failed} failed"
        )
        return result

    def _commit_concurrently(
        self,
        document_id: int,
        batches: Iterator[list[ExtractedRecord]],
    ) -> CommitResult:
        result = CommitResult()
        with ThreadPoolExecutor(max_workers=self._workers) as pool:
            pending: set[Future[CommitResult]] = set()
            for batch in batches:
                if len(pending) >= self._workers:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        result.merge(future.result())
                pending.add(pool.submit(self._write_batch, document_id, batch))
            for future in pending:
                result.merge(future.result())
        return result

    def _batches(
        self,
        document_id: int,
        owner_id: int,
        lines: Iterable[ExtractedLine],
    ) -> Iterator[list[ExtractedRecord]]:
        batch: list[ExtractedRecord] = []
        indexed_at = datetime.now(timezone.utc)
        for line in lines:
            batch.append(
                ExtractedRecord(
                    record_id=new_record_id(),
                    document_id=document_id,
                    owner_id=owner_id,
                    line_number=line.line_number,
                    raw_line=line.raw_line,
                    email=line.email,
                    domain=line.domain,
                    indexed_at=indexed_at,
                )
            )
            if len(batch) >= self._batch_size:
                yield batch
                batch = []
                indexed_at = datetime.now(timezone.utc)
        if batch:
            yield batch

    def _write_batch(self, document_id: int, batch: list[ExtractedRecord]) -> CommitResult:
        attempt = 0
        while True:
            attempt += 1
            try:
                outcome = self._index.bulk_write(batch)
                break
            except IndexUnavailableError as exc:
                if attempt > self._max_retries:
                    Log.error(
                        f"Document {document_id}: batch of {len(batch)} failed "
                        f"after {attempt} attempts: {exc}"
                    )
                    raise
                Log.warning(
                    f"Document {document_id}: batch attempt {attempt} failed, retrying: {exc}"
                )
                time.sleep(self._retry_backoff_seconds * attempt)

        indexed = len(outcome.indexed_ids)
        failures = outcome.failures
        if attempt > 1:
            # On a retry, a conflict means the earlier attempt did write the record.
            recovered = [f for f in failures if f.reason == CONFLICT_REASON]
            indexed += len(recovered)
            failures = [f for f in failures if f.reason != CONFLICT_REASON]
        Log.debug(
            f"Document {document_id}: batch of {len(batch)} written on attempt {attempt}, "
            f"{len(failures)} rejected"
        )
        return CommitResult(
            submitted=len(batch),
            indexed=indexed,
            failures=list(failures),
            batches=1,
        )
