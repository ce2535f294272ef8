"""
DuckDB database interactions for recallcore.
Implements the RecallDatabase facade: the persistence adapter that stores card
memory state and the global parameter set around the pure memory model.
"""

import duckdb
import logging
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from ..config import settings
from ..exceptions import (
    CardOperationError,
    DatabaseConnectionError,
    MarshallingError,
    ParameterOperationError,
    StaleCardError,
)
from ..models import Card, CardState
from ..parameters import ParameterSet, load_parameters_file, parameters_from_mapping
from ..scheduler import SchedulerOutput
from . import db_utils
from .connection import ConnectionHandler
from .schema_manager import SchemaManager

logger = logging.getLogger(__name__)

GLOBAL_PARAMETERS_ID = "global"


def _rows_to_dicts(cursor: duckdb.DuckDBPyConnection) -> List[Dict[str, Any]]:
    """Convert cursor results to list of dictionaries using column names."""
    rows = cursor.fetchall()
    if not rows:
        return []
    description = cursor.description
    if description is None:
        return []
    columns = [desc[0] for desc in description]
    return [dict(zip(columns, row, strict=True)) for row in rows]


class RecallDatabase:
    """
    Acts as a Facade for the database subsystem, providing a simple, high-level
    interface for card and parameter storage.

    It coordinates the ConnectionHandler, SchemaManager, and data marshalling
    utilities. Intended for use as a context manager.
    """

    def __init__(self, db_path: Union[str, Path], read_only: bool = False):
        """
        Create a RecallDatabase backed by the given DuckDB path.

        Args:
            db_path (str | Path): Path to the database file. Use ':memory:' for an in-memory database.
            read_only (bool): If True, open the database in read-only mode.
        """
        self._handler = ConnectionHandler(db_path=db_path, read_only=read_only)
        self._schema_manager = SchemaManager(self._handler)
        logger.info(
            f"RecallDatabase initialized for DB at: {self._handler.db_path_resolved}"
        )

    @property
    def db_path_resolved(self) -> Path:
        return self._handler.db_path_resolved

    @property
    def read_only(self) -> bool:
        return self._handler.read_only

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        return self._handler.get_connection()

    def close_connection(self) -> None:
        self._handler.close_connection()

    def __enter__(self) -> "RecallDatabase":
        """
        Open the database connection and initialize the schema if a new writable database was created.
        """
        self.get_connection()
        if self._handler.is_new_db and not self._handler.read_only:
            self.initialize_schema()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close_connection()

    def initialize_schema(self, force_recreate_tables: bool = False) -> None:
        """
        Ensure the database schema exists; optionally drop and recreate the tables.
        """
        self._schema_manager.initialize_schema(
            force_recreate_tables=force_recreate_tables
        )

    def _require_writable(self, operation: str) -> None:
        if self.read_only:
            raise DatabaseConnectionError(f"Cannot {operation} in read-only mode.")

    def _rollback(self, conn: duckdb.DuckDBPyConnection, context: str) -> None:
        try:
            conn.rollback()
            logger.info(f"Transaction rolled back due to error in {context}.")
        except duckdb.Error as rb_err:
            # The original error is more informative; keep raising that one.
            logger.error(f"Failed to rollback transaction during {context}: {rb_err}")

    # --- Card Operations ---
    _INSERT_CARDS_SQL = """
        INSERT INTO cards (uuid, item_id, due, stability, difficulty, state, reps, lapses,
                           last_review, elapsed_days, scheduled_days, created_at, updated_at)
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13);
        """

    def add_cards(self, cards: Sequence[Card]) -> int:
        """
        Insert new cards in a single transaction.

        Returns:
            int: Number of cards inserted; an empty sequence is a no-op.

        Raises:
            CardOperationError: If a uuid or item_id already exists or the insert fails.
        """
        if not cards:
            return 0
        self._require_writable("add cards")

        card_params_list = db_utils.card_to_db_params_list(cards)
        conn = self.get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.begin()
                cursor.executemany(self._INSERT_CARDS_SQL, card_params_list)
                cursor.commit()
        except duckdb.Error as e:
            logger.error(f"Error during batch card insert: {e}")
            self._rollback(conn, "batch card insert")
            raise CardOperationError(
                f"Batch card insert failed: {e}", original_exception=e
            ) from e
        logger.info(f"Inserted {len(card_params_list)} cards.")
        return len(card_params_list)

    def _fetch_cards(self, sql: str, params: Sequence[Any], context: str) -> List[Card]:
        conn = self.get_connection()
        try:
            cursor = conn.execute(sql, list(params) or None)
            rows = _rows_to_dicts(cursor)
        except duckdb.Error as e:
            logger.error(f"Error fetching {context}: {e}")
            raise CardOperationError(
                f"Failed to fetch {context}: {e}", original_exception=e
            ) from e
        try:
            return [db_utils.db_row_to_card(row_dict) for row_dict in rows]
        except MarshallingError as e:
            raise CardOperationError(
                f"Failed to parse {context} from database.", original_exception=e
            ) from e

    def get_card_by_uuid(self, card_uuid: uuid.UUID) -> Optional[Card]:
        """
        Fetches a card by its UUID, or None if no such card exists.

        Raises:
            CardOperationError: If a database error occurs or the row cannot be parsed.
        """
        cards = self._fetch_cards(
            "SELECT * FROM cards WHERE uuid = $1;",
            (card_uuid,),
            f"card {card_uuid}",
        )
        return cards[0] if cards else None

    def get_card_by_item_id(self, item_id: str) -> Optional[Card]:
        cards = self._fetch_cards(
            "SELECT * FROM cards WHERE item_id = $1;",
            (item_id,),
            f"card for item '{item_id}'",
        )
        return cards[0] if cards else None

    def get_all_cards(self) -> List[Card]:
        return self._fetch_cards(
            "SELECT * FROM cards ORDER BY created_at ASC, item_id ASC;",
            (),
            "all cards",
        )

    def get_due_cards(self, on_date: date, limit: Optional[int] = 20) -> List[Card]:
        """
        Retrieve cards due on or before `on_date`.

        Most overdue cards come first; ties go to the least stable, then the
        most difficult card.

        Parameters:
            on_date (date): Date to check for due cards.
            limit (Optional[int]): Maximum number of cards to return. If `None`, no limit is applied. A value of 0 returns an empty list.

        Raises:
            ValueError: If `limit` is negative.
        """
        if limit is not None and limit < 0:
            raise ValueError(f"limit must be None or non-negative, got {limit}.")
        if limit == 0:
            return []
        sql = """
        SELECT * FROM cards
        WHERE due <= $1
        ORDER BY due ASC, stability ASC, difficulty DESC, item_id ASC
        """
        params: List[Any] = [on_date]
        if limit is not None:
            sql += " LIMIT $2"
            params.append(limit)
        return self._fetch_cards(sql, params, f"due cards on {on_date}")

    def get_due_card_count(self, on_date: date) -> int:
        conn = self.get_connection()
        try:
            result = conn.execute(
                "SELECT COUNT(*) FROM cards WHERE due <= $1;", (on_date,)
            ).fetchone()
        except duckdb.Error as e:
            logger.error(f"Error counting due cards on {on_date}: {e}")
            raise CardOperationError(
                f"Failed to count due cards: {e}", original_exception=e
            ) from e
        return result[0] if result else 0

    def delete_cards_by_uuids(self, card_uuids: Sequence[uuid.UUID]) -> int:
        """
        Delete the given cards in one transaction.

        Returns:
            int: Number of cards that existed and were deleted.
        """
        if not card_uuids:
            return 0
        self._require_writable("delete cards")

        conn = self.get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.begin()
                deleted = 0
                for card_uuid in set(card_uuids):
                    cursor.execute(
                        "DELETE FROM cards WHERE uuid = $1 RETURNING uuid;",
                        (card_uuid,),
                    )
                    deleted += len(cursor.fetchall())
                cursor.commit()
        except duckdb.Error as e:
            logger.error(f"Error deleting cards: {e}")
            self._rollback(conn, "card deletion")
            raise CardOperationError(
                f"Failed to delete cards: {e}", original_exception=e
            ) from e
        logger.info(f"Deleted {deleted} cards.")
        return deleted

    # --- Review Operations ---
    _APPLY_REVIEW_SQL = """
        UPDATE cards
        SET due = $1, stability = $2, difficulty = $3, state = $4,
            reps = reps + 1,
            lapses = CASE WHEN $5::BOOLEAN THEN lapses + 1 ELSE lapses END,
            last_review = $6, elapsed_days = $7, scheduled_days = $8, updated_at = $9
        WHERE uuid = $10 {reps_guard}
        RETURNING uuid;
        """

    def apply_review(
        self,
        card_uuid: uuid.UUID,
        output: SchedulerOutput,
        reviewed_at: datetime,
        expected_reps: Optional[int] = None,
    ) -> Card:
        """
        Atomically write a scheduler outcome to its card.

        Advances `reps`, and `lapses` when the outcome is a lapse, inside the
        same statement so concurrent writers cannot lose an increment.

        Args:
            expected_reps: The `reps` of the card snapshot the outcome was
                computed from. When given, the write only happens if the stored
                card still has that many reviews.

        Returns:
            Card: The card as stored after the update.

        Raises:
            DatabaseConnectionError: If the database is opened in read-only mode.
            StaleCardError: If the card was reviewed again after the snapshot
                was read; nothing is written.
            CardOperationError: If the card does not exist or the update fails.
        """
        self._require_writable("apply review")

        params = (
            output.next_due,
            output.stab,
            output.diff,
            db_utils.state_to_text(output.state),
            output.is_lapse,
            db_utils.to_db_timestamp(reviewed_at),
            output.elapsed_days,
            output.scheduled_days,
            db_utils.to_db_timestamp(datetime.now(timezone.utc)),
            card_uuid,
        )
        reps_guard = ""
        if expected_reps is not None:
            reps_guard = "AND reps = $11"
            params += (expected_reps,)
        sql = self._APPLY_REVIEW_SQL.format(reps_guard=reps_guard)
        conn = self.get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.begin()
                cursor.execute(sql, params)
                if not cursor.fetchall():
                    stored = cursor.execute(
                        "SELECT reps FROM cards WHERE uuid = $1;", (card_uuid,)
                    ).fetchone()
                    cursor.rollback()
                    if stored is None:
                        raise CardOperationError(
                            f"Cannot apply review: card {card_uuid} not found."
                        )
                    logger.warning(
                        f"Rejected stale review for card {card_uuid}: "
                        f"expected reps={expected_reps}, stored reps={stored[0]}"
                    )
                    raise StaleCardError(
                        f"Card {card_uuid} was reviewed since it was read "
                        f"(reps {expected_reps} -> {stored[0]})."
                    )
                cursor.commit()
        except duckdb.Error as e:
            logger.error(f"Error applying review to card {card_uuid}: {e}")
            self._rollback(conn, "review update")
            raise CardOperationError(
                f"Failed to apply review to card {card_uuid}: {e}",
                original_exception=e,
            ) from e

        updated_card = self.get_card_by_uuid(card_uuid)
        if updated_card is None:
            raise CardOperationError(
                f"Failed to retrieve card '{card_uuid}' after a successful review update."
            )
        return updated_card

    # --- Parameter Operations ---
    _UPSERT_PARAMETERS_SQL = (
        "INSERT INTO parameters (id, "
        + ", ".join(db_utils.PARAMETER_COLUMNS)
        + ", created_at, updated_at) VALUES ("
        + ", ".join(f"${i}" for i in range(1, len(db_utils.PARAMETER_COLUMNS) + 4))
        + ") ON CONFLICT (id) DO UPDATE SET "
        + ", ".join(f"{col} = EXCLUDED.{col}" for col in db_utils.PARAMETER_COLUMNS)
        + ", updated_at = EXCLUDED.updated_at;"
    )

    def save_parameters(self, params: ParameterSet) -> None:
        """
        Store `params` as the global parameter set, replacing any previous one.

        Raises:
            DatabaseConnectionError: If the database is opened in read-only mode.
            ParameterOperationError: If the write fails.
        """
        self._require_writable("save parameters")
        now = db_utils.to_db_timestamp(datetime.now(timezone.utc))
        values = (
            (GLOBAL_PARAMETERS_ID,)
            + db_utils.parameters_to_db_params_tuple(params)
            + (now, now)
        )
        conn = self.get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.begin()
                cursor.execute(self._UPSERT_PARAMETERS_SQL, values)
                cursor.commit()
        except duckdb.Error as e:
            logger.error(f"Error saving parameters: {e}")
            self._rollback(conn, "parameter save")
            raise ParameterOperationError(
                f"Failed to save parameters: {e}", original_exception=e
            ) from e
        logger.info("Saved global parameter set.")

    def _default_parameters(self) -> ParameterSet:
        if settings.parameters_file is not None:
            return load_parameters_file(settings.parameters_file)
        return ParameterSet()

    def load_parameters(self) -> ParameterSet:
        """
        Load the global parameter set, creating it on first use.

        The seed comes from `settings.parameters_file` when configured,
        otherwise the documented defaults. Read-only databases return the seed
        without storing it.

        Raises:
            ParameterValidationError: If the stored row or the seed file is malformed.
            ParameterOperationError: If the database cannot be read or written.
        """
        columns = ", ".join(db_utils.PARAMETER_COLUMNS)
        conn = self.get_connection()
        try:
            cursor = conn.execute(
                f"SELECT {columns} FROM parameters WHERE id = $1;",
                (GLOBAL_PARAMETERS_ID,),
            )
            rows = _rows_to_dicts(cursor)
        except duckdb.Error as e:
            logger.error(f"Error loading parameters: {e}")
            raise ParameterOperationError(
                f"Failed to load parameters: {e}", original_exception=e
            ) from e

        if rows:
            return parameters_from_mapping(rows[0])

        params = self._default_parameters()
        if self.read_only:
            logger.warning("No stored parameters in read-only database; using seed values.")
            return params
        self.save_parameters(params)
        logger.info("Created global parameter set on first use.")
        return params

    # --- Statistics ---
    def get_database_stats(self) -> Dict[str, Any]:
        """
        Aggregate statistics over all cards.

        Returns:
            Dict with keys `total_cards`, `state_counts` (every state present,
            zero when empty), `total_reps`, `total_lapses`, `avg_stability`,
            `avg_difficulty` (None without cards) and `mastered_cards`.
        """
        conn = self.get_connection()
        try:
            totals = conn.execute(
                """
                SELECT COUNT(*), COALESCE(SUM(reps), 0), COALESCE(SUM(lapses), 0),
                       AVG(stability), AVG(difficulty)
                FROM cards;
                """
            ).fetchone()
            state_rows = conn.execute(
                "SELECT state, COUNT(*) FROM cards GROUP BY state;"
            ).fetchall()
        except duckdb.Error as e:
            logger.error(f"Error computing database stats: {e}")
            raise CardOperationError(
                f"Failed to compute database stats: {e}", original_exception=e
            ) from e

        state_counts = {state.name: 0 for state in CardState}
        for text, count in state_rows:
            state_counts[db_utils.text_to_state(text).name] = count

        total_cards, total_reps, total_lapses, avg_stability, avg_difficulty = totals
        return {
            "total_cards": total_cards,
            "state_counts": state_counts,
            "total_reps": int(total_reps),
            "total_lapses": int(total_lapses),
            "avg_stability": avg_stability,
            "avg_difficulty": avg_difficulty,
            "mastered_cards": sum(card.is_mastered for card in self.get_all_cards()),
        }
