import codecs
import threading
import time
import uuid
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

from leakindex.exceptions import (
    EncodingError,
    FileTooLargeError,
    IngestionCancelledError,
    InvalidArgumentError,
    UnsupportedFileTypeError,
    UploadTruncatedError,
)
from leakindex.ingestion.hasher import ContentHasher
from leakindex.ingestion.models import StoredUpload

CHUNK_SIZE = 64 * 1024
MAX_NAME_LENGTH = 255


def stored_file_name(original_name: str, now_ms: int | None = None) -> str:
    """Build the on-disk name: {unix_ms}-{random}-{basename}."""
    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    basename = Path(original_name.replace("\\", "/")).name or "upload.txt"
    return f"{timestamp}-{uuid.uuid4().hex[:8]}-{basename}"


def check_file_name(original_name: str) -> None:
    """Reject names the documents table cannot hold.

    Raises:
        InvalidArgumentError: for an empty name or one over MAX_NAME_LENGTH.
    """
    if not original_name.strip():
        raise InvalidArgumentError("file name is required")
    if len(original_name) > MAX_NAME_LENGTH:
        raise InvalidArgumentError(
            f"file name is {len(original_name)} characters, the limit is {MAX_NAME_LENGTH}"
        )


def check_file_type(original_name: str, content_type: str | None) -> None:
    """Accept .txt files or anything declared as text/plain.

    Raises:
        UnsupportedFileTypeError: for any other upload.
    """
    if original_name.lower().endswith(".txt"):
        return
    if content_type and "text/plain" in content_type.lower():
        return
    raise UnsupportedFileTypeError(
        f"Only plain text (.txt) files are accepted, got '{original_name}'"
    )


class FileStore:
    """Writes uploads to the uploads directory and streams them back as lines."""

    def __init__(self, uploads_dir: Path, max_size_bytes: int) -> None:
        self._uploads_dir = uploads_dir
        self._max_size_bytes = max_size_bytes

    def path_for(self, stored_name: str) -> Path:
        return self._uploads_dir / stored_name

    def save(
        self,
        stream: BinaryIO,
        original_name: str,
        declared_size: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> StoredUpload:
        """Stream an upload to disk while hashing and validating it.

        The content must be UTF-8 text without NUL bytes. On any failure the
        partially written file is removed.

        Raises:
            UnsupportedFileTypeError: if the content looks binary.
            EncodingError: if the content is not valid UTF-8.
            FileTooLargeError: if the upload exceeds the size limit.
            UploadTruncatedError: if the byte count differs from declared_size.
            IngestionCancelledError: if cancel_event is set while reading.
        """
        self._uploads_dir.mkdir(parents=True, exist_ok=True)
        stored_name = stored_file_name(original_name)
        path = self.path_for(stored_name)
        hasher = ContentHasher()
        decoder = codecs.getincrementaldecoder("utf-8")(errors="strict")
        size = 0
        try:
            with path.open("wb") as out:
                while chunk := stream.read(CHUNK_SIZE):
                    if cancel_event is not None and cancel_event.is_set():
                        raise IngestionCancelledError(
                            f"Upload of '{original_name}' cancelled after {size} bytes"
                        )
                    size += len(chunk)
                    if size > self._max_size_bytes:
                        raise FileTooLargeError(
                            f"Upload exceeds {self._max_size_bytes} bytes"
                        )
                    if b"\x00" in chunk:
                        raise UnsupportedFileTypeError(
                            f"'{original_name}' contains binary data"
                        )
                    self._decode(decoder, chunk, original_name, final=False)
                    hasher.update(chunk)
                    out.write(chunk)
                self._decode(decoder, b"", original_name, final=True)
            if declared_size is not None and size != declared_size:
                raise UploadTruncatedError(
                    f"Received {size} bytes of '{original_name}', expected {declared_size}"
                )
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        return StoredUpload(
            original_name=original_name,
            stored_name=stored_name,
            size_bytes=size,
            content_hash=hasher.hexdigest(),
        )

    def open_lines(self, stored_name: str) -> Iterator[str]:
        """Yield decoded lines of a stored file, split on '\\n' only.

        A trailing line without terminator is yielded as well. Terminators are
        kept; the extractor strips them.
        """
        path = self.path_for(stored_name)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        with path.open("rb") as fh:
            for line_number, raw in enumerate(fh, start=1):
                try:
                    yield raw.decode("utf-8")
                except UnicodeDecodeError as exc:
                    raise EncodingError(
                        f"Line {line_number} of '{stored_name}' is not valid UTF-8"
                    ) from exc

    @staticmethod
    def _decode(
        decoder: codecs.IncrementalDecoder,
        chunk: bytes,
        original_name: str,
        *,
        final: bool,
    ) -> None:
        try:
            decoder.decode(chunk, final=final)
        except UnicodeDecodeError as exc:
            raise EncodingError(f"'{original_name}' is not valid UTF-8 text") from exc
