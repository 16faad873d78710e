import os
import uuid
from collections.abc import Generator
from pathlib import Path

import pytest

from leakindex.config.settings import Settings
from leakindex.database.connection import Database
from leakindex.database.repositories.activity_repository import ActivityRepository
from leakindex.database.repositories.document_repository import DocumentRepository
from leakindex.database.schema import apply_schema
from leakindex.index.postgres_index import PostgresSearchIndex
from leakindex.service import LeakIndexService, build_service


def _test_settings() -> Settings:
    return Settings(
        db_database=os.environ.get("DB_DATABASE", "leakindex_test"),
        index_name=os.environ.get("INDEX_NAME", "document_lines_test"),
        index_retry_backoff_seconds=0,
    )


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def database(test_settings: Settings) -> Generator[Database, None, None]:
    db = Database.from_settings(test_settings)
    try:
        db.wait(timeout=5)
        apply_schema(db, test_settings.index_name)
    except Exception as e:
        db.close()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to point at one.")
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def integration_cleanup(database: Database) -> Generator[list[tuple[str, int]], None, None]:
    """Collects (table, id) pairs to delete after the test.

    Index rows go with their document through ON DELETE CASCADE.
    """
    cleanup: list[tuple[str, int]] = []
    yield cleanup
    if not cleanup:
        return
    with database.connection() as conn:
        with conn.cursor() as cur:
            for table, row_id in cleanup:
                if table == "documents":
                    cur.execute("DELETE FROM documents WHERE id = %s", (row_id,))
                elif table == "activity_logs":
                    cur.execute("DELETE FROM activity_logs WHERE owner_id = %s", (row_id,))
        conn.commit()


@pytest.fixture
def doc_repo(database: Database) -> DocumentRepository:
    return DocumentRepository(database)


@pytest.fixture
def activity_repo(database: Database) -> ActivityRepository:
    return ActivityRepository(database)


@pytest.fixture
def postgres_index(database: Database, test_settings: Settings) -> PostgresSearchIndex:
    return PostgresSearchIndex(database, test_settings.index_name)


@pytest.fixture
def pg_service(database: Database, test_settings: Settings, tmp_path: Path) -> LeakIndexService:
    return build_service(test_settings, database, uploads_dir=tmp_path)


@pytest.fixture
def unique_domain(request: pytest.FixtureRequest) -> str:
    """A domain no other test run has indexed."""
    return f"{os.getpid()}-{abs(hash(request.node.nodeid)) % 10**8}.test"


@pytest.fixture
def owner_id(integration_cleanup: list[tuple[str, int]]) -> int:
    """An owner id unique to this test; its activity rows are removed afterwards."""
    value = 10**9 + uuid.uuid4().int % 10**9
    integration_cleanup.append(("activity_logs", value))
    return value
