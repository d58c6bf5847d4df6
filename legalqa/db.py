"""SQLite conversation log.

Stores one row per completed exchange:
- user prompt and model response
- UTC timestamp
- client session ID

The log is write-only; failures are logged and never reach the caller.
"""
import sqlite3
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional
import structlog

from legalqa.exceptions import PersistenceError

logger = structlog.get_logger()


class ConversationLog:
    """Write-only store for question/answer pairs."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    def get_connection(self) -> sqlite3.Connection:
        """Get a connection to the SQLite database."""
        return sqlite3.connect(self.db_path)

    def init_database(self) -> None:
        """Create the conversations table if it doesn't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS conversations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_id TEXT NOT NULL,
                    user_prompt TEXT NOT NULL,
                    model_response TEXT NOT NULL,
                    timestamp TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_conversations_session_id
                ON conversations(session_id)
            """)

            conn.commit()
            logger.info("conversation_log_initialized", db_path=str(self.db_path))

        except Exception as e:
            conn.rollback()
            logger.error("conversation_log_init_failed", error=str(e))
            raise
        finally:
            conn.close()

    def insert_exchange(
        self,
        user_prompt: str,
        model_response: str,
        session_id: str,
        timestamp: Optional[datetime] = None,
    ) -> int:
        """Insert one exchange.

        Returns:
            ID of the inserted row

        Raises:
            PersistenceError: If the write fails
        """
        timestamp = timestamp or datetime.now(timezone.utc)

        try:
            conn = self.get_connection()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to open conversation log: {e}") from e

        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO conversations (
                    session_id, user_prompt, model_response, timestamp
                ) VALUES (?, ?, ?, ?)
            """, (
                session_id,
                user_prompt,
                model_response,
                timestamp.isoformat(),
            ))

            conn.commit()
            return cursor.lastrowid

        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"Failed to write conversation: {e}") from e
        finally:
            conn.close()

    def log_exchange(self, user_prompt: str, model_response: str, session_id: str) -> None:
        """Record an exchange, swallowing persistence failures."""
        try:
            row_id = self.insert_exchange(user_prompt, model_response, session_id)
            logger.info("conversation_logged", id=row_id, session_id=session_id)
        except PersistenceError as e:
            logger.error(
                "conversation_log_failed",
                session_id=session_id,
                error=str(e),
            )
