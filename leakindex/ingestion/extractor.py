import re
import threading
from collections.abc import Iterable, Iterator

from leakindex.exceptions import IngestionCancelledError
from leakindex.ingestion.models import ExtractedLine
from leakindex.logging.logger import Log

# Only start at the beginning of a token run so a long run without an '@' is scanned once.
EMAIL_PATTERN = re.compile(r"(?<![a-zA-Z0-9._-])[a-zA-Z0-9._-]+@[a-zA-Z0-9._-]+\.[a-zA-Z0-9_-]+")


def strip_terminator(line: str) -> str:
    if line.endswith("\n"):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    return line


class EmailExtractor:
    """Finds the first email-like token on each line of a leak dump.

    The pattern is deliberately permissive: leak dumps are full of addresses
    that are not RFC 5322 valid but are still worth indexing. Only the first
    token per line is captured, which fits the usual ``url:email:password``
    layout.
    """

    def __init__(
        self,
        pattern: re.Pattern[str] = EMAIL_PATTERN,
        max_line_length: int | None = None,
    ) -> None:
        self._pattern = pattern
        self._max_line_length = max_line_length

    def extract(
        self,
        lines: Iterable[str],
        cancel_event: threading.Event | None = None,
    ) -> Iterator[ExtractedLine]:
        """Lazily yield one ExtractedLine per matching non-blank line.

        Raises:
            IngestionCancelledError: if cancel_event is set mid-stream.
        """
        for line_number, line in enumerate(lines, start=1):
            if cancel_event is not None and cancel_event.is_set():
                raise IngestionCancelledError(
                    f"Extraction cancelled at line {line_number}"
                )
            extracted = self.extract_line(line, line_number)
            if extracted is not None:
                yield extracted

    def extract_line(self, line: str, line_number: int = 1) -> ExtractedLine | None:
        raw_line = strip_terminator(line)
        if "@" not in raw_line or not raw_line.strip():
            return None
        if self._max_line_length is not None and len(raw_line) > self._max_line_length:
            Log.warning(
                f"Line {line_number} skipped: {len(raw_line)} characters "
                f"exceeds max_line_length {self._max_line_length}"
            )
            return None
        match = self._pattern.search(raw_line)
        if match is None:
            return None
        email = match.group(0)
        return ExtractedLine(
            line_number=line_number,
            raw_line=raw_line,
            email=email,
            domain=email.split("@", 1)[1],
        )
