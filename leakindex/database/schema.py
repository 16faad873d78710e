from psycopg import sql

from leakindex.database.connection import Database
from leakindex.logging.logger import Log

DOCUMENTS_DDL = """
CREATE TABLE IF NOT EXISTS documents (
    id BIGSERIAL PRIMARY KEY,
    original_name VARCHAR(255) NOT NULL,
    stored_name VARCHAR(512) NOT NULL,
    size_bytes BIGINT NOT NULL,
    owner_id BIGINT NOT NULL,
    content_hash CHAR(64) NOT NULL,
    uploaded_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    ingestion_status VARCHAR(16) NOT NULL DEFAULT 'pending',
    indexed_count BIGINT NOT NULL DEFAULT 0,
    failed_count BIGINT NOT NULL DEFAULT 0,
    error_message TEXT
);
CREATE INDEX IF NOT EXISTS documents_content_hash_idx ON documents (content_hash);
CREATE INDEX IF NOT EXISTS documents_owner_idx ON documents (owner_id, uploaded_at DESC);
"""

ACTIVITY_DDL = """
CREATE TABLE IF NOT EXISTS activity_logs (
    id BIGSERIAL PRIMARY KEY,
    owner_id BIGINT,
    action VARCHAR(50) NOT NULL,
    entity_type VARCHAR(50),
    entity_id BIGINT,
    details JSONB,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS activity_logs_action_idx ON activity_logs (action);
"""

INDEX_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    record_id VARCHAR(64) PRIMARY KEY,
    document_id BIGINT NOT NULL REFERENCES documents (id) ON DELETE CASCADE,
    owner_id BIGINT NOT NULL,
    line_number BIGINT NOT NULL,
    content TEXT NOT NULL,
    email TEXT NOT NULL,
    domain TEXT NOT NULL,
    indexed_at TIMESTAMPTZ NOT NULL
);
CREATE INDEX IF NOT EXISTS {domain_idx} ON {table} (lower(domain));
CREATE INDEX IF NOT EXISTS {order_idx}
    ON {table} (indexed_at, document_id, line_number, record_id);
"""


def index_table_ddl(index_name: str) -> sql.Composed:
    """DDL for the search-index table; the domain is matched via lower(domain)."""
    return sql.SQL(INDEX_DDL).format(
        table=sql.Identifier(index_name),
        domain_idx=sql.Identifier(f"{index_name}_domain_idx"),
        order_idx=sql.Identifier(f"{index_name}_order_idx"),
    )


def apply_schema(database: Database, index_name: str) -> None:
    """Create all tables and indexes if they do not exist yet."""
    with database.connection() as conn:
        conn.execute(DOCUMENTS_DDL)
        conn.execute(index_table_ddl(index_name))
        conn.execute(ACTIVITY_DDL)
        conn.commit()
    Log.info(f"Schema applied (index table '{index_name}')")
