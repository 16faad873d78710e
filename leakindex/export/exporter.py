import csv
import io
from collections.abc import Sequence
from datetime import datetime

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils.exceptions import IllegalCharacterError

from leakindex.exceptions import ExportError
from leakindex.search.models import SearchHit

EXPORT_FIELDS = ("content", "email", "domain", "uploaded_at")
SHEET_TITLE = "Results"

CSV_MEDIA_TYPE = "text/csv"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _format_timestamp(value: datetime | None) -> str:
    return value.isoformat() if value is not None else ""


def export_row(hit: SearchHit) -> list[str]:
    """Flatten a hit into the fixed export column order."""
    return [hit.content, hit.email, hit.domain, _format_timestamp(hit.uploaded_at)]


def worksheet_row(hit: SearchHit) -> list[str]:
    """Export row with the control characters XLSX cannot hold removed."""
    return [ILLEGAL_CHARACTERS_RE.sub("", value) for value in export_row(hit)]


class ResultExporter:
    """Encodes a full result set as CSV or XLSX bytes, all or nothing."""

    def export_csv(self, rows: Sequence[SearchHit]) -> bytes:
        try:
            buffer = io.StringIO(newline="")
            writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL)
            writer.writerow(EXPORT_FIELDS)
            for hit in rows:
                writer.writerow(export_row(hit))
            return buffer.getvalue().encode("utf-8")
        except (csv.Error, AttributeError, TypeError, UnicodeEncodeError) as exc:
            raise ExportError(f"CSV export failed: {exc}") from exc

    def export_xlsx(self, rows: Sequence[SearchHit]) -> bytes:
        try:
            workbook = Workbook()
            sheet = workbook.active
            sheet.title = SHEET_TITLE
            sheet.append(list(EXPORT_FIELDS))
            for hit in rows:
                sheet.append(worksheet_row(hit))
            output = io.BytesIO()
            workbook.save(output)
            return output.getvalue()
        except (IllegalCharacterError, ValueError, TypeError, AttributeError) as exc:
            raise ExportError(f"XLSX export failed: {exc}") from exc
