class LeakIndexError(Exception):
    """Base exception for all leakindex errors.

    Every subclass carries a stable ``kind`` that callers can map to a
    response code without parsing the message.
    """

    kind: str = "leakindex_error"


class UnsupportedFileTypeError(LeakIndexError):
    """Raised when an upload is not a plaintext document."""

    kind = "unsupported_file_type"


class EncodingError(LeakIndexError):
    """Raised when upload content is not valid UTF-8."""

    kind = "encoding_error"


class FileTooLargeError(LeakIndexError):
    """Raised when an upload exceeds the configured size limit."""

    kind = "file_too_large"


class UploadTruncatedError(LeakIndexError):
    """Raised when fewer or more bytes arrive than the declared size."""

    kind = "upload_truncated"


class DuplicateDocumentError(LeakIndexError):
    """Raised when identical content is uploaded and duplicates are rejected."""

    kind = "duplicate_document"


class IngestionCancelledError(LeakIndexError):
    """Raised when ingestion is aborted before the whole file was read."""

    kind = "ingestion_cancelled"


class DocumentNotFoundError(LeakIndexError):
    """Raised when a document cannot be found in the registry."""

    kind = "document_not_found"


class IndexUnavailableError(LeakIndexError):
    """Raised when the search index cannot be reached."""

    kind = "index_unavailable"


class PartialIndexFailure(LeakIndexError):
    """Raised on request when some records of a commit were rejected."""

    kind = "partial_index_failure"

    def __init__(self, message: str, failed: int) -> None:
        super().__init__(message)
        self.failed = failed


class InvalidArgumentError(LeakIndexError):
    """Raised for malformed paging parameters, domains or export formats."""

    kind = "invalid_argument"


class ExportError(LeakIndexError):
    """Raised when a result set cannot be encoded."""

    kind = "export_error"


class RegistryError(LeakIndexError):
    """Raised when the document registry cannot record an upload."""

    kind = "registry_error"
