import math

from leakindex.exceptions import InvalidArgumentError
from leakindex.index.base import BaseSearchIndex
from leakindex.ingestion.models import ExtractedRecord
from leakindex.search.models import SearchHit, SearchPage


def normalize_domain(domain: str) -> str:
    """Trim whitespace and a leading '@' from a user-supplied domain."""
    cleaned = domain.strip().lstrip("@").strip()
    if not cleaned:
        raise InvalidArgumentError("domain is required")
    if "@" in cleaned or any(ch.isspace() for ch in cleaned):
        raise InvalidArgumentError(f"'{domain}' is not a domain")
    return cleaned


class DomainSearcher:
    """Offset-paginated, exact-domain queries against the search index."""

    def __init__(self, index: BaseSearchIndex, max_page_size: int = 10000) -> None:
        self._index = index
        self._max_page_size = max_page_size

    def search(
        self,
        domain: str,
        page: int,
        page_size: int,
        owner_scope: int | None = None,
    ) -> SearchPage:
        """Return one page of hits for ``domain``.

        Raises:
            InvalidArgumentError: for page < 1, page_size outside
                1..max_page_size, or an empty domain.
            IndexUnavailableError: if the index cannot be reached.
        """
        if page < 1:
            raise InvalidArgumentError(f"page must be >= 1, got {page}")
        if page_size <= 0 or page_size > self._max_page_size:
            raise InvalidArgumentError(
                f"page_size must be between 1 and {self._max_page_size}, got {page_size}"
            )
        wanted = normalize_domain(domain)

        result = self._index.query(
            wanted,
            owner_scope,
            offset=(page - 1) * page_size,
            limit=page_size,
        )
        return SearchPage(
            items=[self._to_hit(record) for record in result.records],
            total=result.total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(result.total / page_size),
        )

    @staticmethod
    def _to_hit(record: ExtractedRecord) -> SearchHit:
        return SearchHit(
            record_id=record.record_id,
            document_id=record.document_id,
            line_number=record.line_number,
            content=record.raw_line,
            email=record.email,
            domain=record.domain,
            uploaded_at=record.indexed_at,
        )
