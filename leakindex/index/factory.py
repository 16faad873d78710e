from leakindex.config.settings import Settings
from leakindex.database.connection import Database
from leakindex.index.base import BaseSearchIndex
from leakindex.index.memory_index import InMemorySearchIndex
from leakindex.index.postgres_index import PostgresSearchIndex


class SearchIndexFactory:
    """Creates the search index adapter selected in settings."""

    BACKENDS = ("postgres", "memory")

    @classmethod
    def create(cls, settings: Settings, database: Database | None = None) -> BaseSearchIndex:
        backend = settings.index_backend.lower()
        if backend == "memory":
            return InMemorySearchIndex()
        if backend == "postgres":
            if database is None:
                raise ValueError("index_backend=postgres requires a Database handle")
            return PostgresSearchIndex(database, settings.index_name)
        raise ValueError(
            f"Unknown index backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
