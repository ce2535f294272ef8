import duckdb
import logging
from pathlib import Path
from typing import Optional, Union

from ..exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


class ConnectionHandler:
    """
    Owns the single DuckDB connection of a RecallDatabase.

    The connection is opened lazily on first use and can be closed and reopened.
    """

    def __init__(self, db_path: Union[str, Path], read_only: bool = False):
        """
        Parameters:
            db_path: Path to the card store, or ":memory:" (case-insensitive)
                for an in-memory store. "~" is expanded.
            read_only: Open the store in read-only mode. A read-only store must
                already exist on disk.
        """
        if str(db_path).lower() == MEMORY_DB:
            self.db_path_resolved = Path(MEMORY_DB)
        else:
            self.db_path_resolved = Path(db_path).expanduser().resolve()
        self.read_only: bool = read_only
        self.is_new_db: bool = False
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        logger.debug(
            f"Card store configured at {self.db_path_resolved} (read_only={read_only})"
        )

    @property
    def is_memory(self) -> bool:
        return str(self.db_path_resolved) == MEMORY_DB

    def _prepare_location(self) -> None:
        """Record whether the store is new and create its directory if needed."""
        if self.is_memory:
            self.is_new_db = True
            return
        self.is_new_db = not self.db_path_resolved.exists()
        if self.read_only:
            if self.is_new_db:
                raise DatabaseConnectionError(
                    f"Failed to connect to database: {self.db_path_resolved} does not "
                    "exist and cannot be created in read-only mode."
                )
            return
        self.db_path_resolved.parent.mkdir(parents=True, exist_ok=True)

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        """
        Return the open connection, opening it first if necessary.

        Raises:
            DatabaseConnectionError: If a read-only store is missing or DuckDB
                cannot open the store.
        """
        if self._connection is not None:
            return self._connection

        self._prepare_location()
        try:
            self._connection = duckdb.connect(
                database=str(self.db_path_resolved), read_only=self.read_only
            )
        except duckdb.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to database: {e}", original_exception=e
            ) from e
        logger.info(
            f"Opened {'new ' if self.is_new_db else ''}card store at {self.db_path_resolved}"
        )
        return self._connection

    def close_connection(self) -> None:
        """Close the connection if open; a later get_connection() reopens it."""
        if self._connection is None:
            return
        try:
            self._connection.close()
            logger.info(f"Closed card store at {self.db_path_resolved}")
        except duckdb.Error as e:
            logger.error(f"Error closing the database connection: {e}")
        finally:
            self._connection = None
