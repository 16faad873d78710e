import math
from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from leakindex.database.connection import Database
from leakindex.database.models import ActivityEntry, ActivityPage
from leakindex.exceptions import InvalidArgumentError

UPLOAD = "document_upload"
SEARCH = "document_search"
EXPORT = "document_export"


class ActivityRepository:
    """Audit trail of uploads, searches and exports (activity_logs table)."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def record(
        self,
        action: str,
        *,
        owner_id: int | None = None,
        entity_type: str | None = "document",
        entity_id: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        with self._database.connection() as conn:
            conn.execute(
                """
                INSERT INTO activity_logs (owner_id, action, entity_type, entity_id, details)
                VALUES (%s, %s, %s, %s, %s)
                """,
                (owner_id, action, entity_type, entity_id, Jsonb(details or {})),
            )
            conn.commit()

    def list(self, page: int, page_size: int) -> ActivityPage:
        """Newest-first page of entries."""
        if page < 1 or page_size <= 0:
            raise InvalidArgumentError("page must be >= 1 and page_size must be > 0")
        with self._database.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, owner_id, action, entity_type, entity_id, details, created_at
                    FROM activity_logs
                    ORDER BY created_at DESC, id DESC
                    LIMIT %s OFFSET %s
                    """,
                    (page_size, (page - 1) * page_size),
                )
                rows = cur.fetchall()
                cur.execute("SELECT COUNT(*) AS total FROM activity_logs")
                count_row = cur.fetchone()

        total = int(count_row["total"]) if count_row is not None else 0
        entries = [
            ActivityEntry(
                id=row["id"],
                action=row["action"],
                owner_id=row["owner_id"],
                entity_type=row["entity_type"],
                entity_id=row["entity_id"],
                details=row["details"] or {},
                created_at=row["created_at"],
            )
            for row in rows
        ]
        return ActivityPage(
            items=entries,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size),
        )

    def count_by_action(self, action: str) -> int:
        with self._database.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT COUNT(*) FROM activity_logs WHERE action = %s",
                    (action,),
                )
                row = cur.fetchone()
        return int(row[0]) if row is not None else 0
