import duckdb
import logging

from ..config import settings
from ..exceptions import DatabaseConnectionError, SchemaInitializationError
from . import schema
from .connection import ConnectionHandler

logger = logging.getLogger(__name__)


class SchemaManager:
    """Manages the database schema initialization and maintenance."""

    def __init__(self, handler: ConnectionHandler):
        self._handler = handler

    def initialize_schema(self, force_recreate_tables: bool = False) -> None:
        """
        Initializes the database schema using a transaction. Skips if in read-only mode
        unless it's an in-memory DB. Can force recreation of tables, which will
        delete all existing data.
        """
        if self._handle_read_only_initialization(force_recreate_tables):
            return

        conn = self._handler.get_connection()
        try:
            with conn.cursor() as cursor:
                if force_recreate_tables:
                    self._perform_safety_check(cursor)
                cursor.begin()
                if force_recreate_tables:
                    self._recreate_tables(cursor)
                cursor.execute(schema.DB_SCHEMA_SQL)
                cursor.commit()
            logger.info(
                f"Database schema at {self._handler.db_path_resolved} initialized successfully (or already exists)."
            )
        except duckdb.Error as e:
            logger.error(
                f"Error initializing database schema at {self._handler.db_path_resolved}: {e}"
            )
            try:
                conn.rollback()
                logger.info("Transaction rolled back due to schema initialization error.")
            except duckdb.Error as rb_err:
                logger.error(f"Failed to rollback transaction: {rb_err}")
            raise SchemaInitializationError(
                f"Failed to initialize schema: {e}", original_exception=e
            ) from e

    def _handle_read_only_initialization(self, force_recreate_tables: bool) -> bool:
        """Returns True if initialization should be skipped because the
        database is read-only."""
        if self._handler.read_only:
            if force_recreate_tables:
                raise DatabaseConnectionError(
                    "Cannot force_recreate_tables in read-only mode."
                )
            if not self._handler.is_memory:
                logger.warning(
                    "Attempting to initialize schema in read-only mode. Skipping."
                )
                return True
        return False

    def _perform_safety_check(self, cursor: duckdb.DuckDBPyConnection) -> None:
        """Refuses to drop a file database's tables while any of them holds data."""
        if self._handler.is_memory or settings.testing_mode:
            return

        card_count = self._count_rows(cursor, "cards")
        parameter_count = self._count_rows(cursor, "parameters")
        if card_count > 0 or parameter_count > 0:
            error_msg = (
                "CRITICAL: Attempted to drop tables with existing data! "
                f"Cards: {card_count}, Parameter sets: {parameter_count}. "
                "This would cause permanent data loss."
            )
            logger.error(error_msg)
            raise SchemaInitializationError(error_msg)

    @staticmethod
    def _count_rows(cursor: duckdb.DuckDBPyConnection, table: str) -> int:
        try:
            result = cursor.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
        except duckdb.CatalogException:
            return 0
        return result[0] if result else 0

    def _recreate_tables(self, cursor: duckdb.DuckDBPyConnection) -> None:
        """Drops all tables to force recreation."""
        logger.warning(
            f"Forcing table recreation for {self._handler.db_path_resolved}. ALL EXISTING DATA WILL BE LOST."
        )
        cursor.execute("DROP TABLE IF EXISTS cards;")
        cursor.execute("DROP TABLE IF EXISTS parameters;")
