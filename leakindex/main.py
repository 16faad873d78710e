from leakindex.config.settings import Settings
from leakindex.database.connection import Database
from leakindex.database.schema import apply_schema
from leakindex.logging.logger import Log


def main() -> None:
    """Entry point: open pool -> wait for the database -> create tables and indexes -> close pool."""
    settings = Settings()
    Log.configure(settings.log_level)
    database = Database.from_settings(settings)
    try:
        database.wait()
        apply_schema(database, settings.index_name)
    finally:
        database.close()


if __name__ == "__main__":
    main()
