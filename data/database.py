"""
Database Module for Recipe Social Jobs

This module handles the database connection and the queue operations of both
workers. It provides a thin pyodbc connection manager and one repository per
table family, each implementing a protocol from data.protocols.
"""

import json
import pyodbc
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from config import settings
from data.models import CommentProjection, NotificationRecord, RecipeSnapshot, RepostQueueItem
from utils.exceptions import ConnectionError as DatabaseConnectionError
from utils.exceptions import QueryError
from utils.logger import get_logger

logger = get_logger(__name__)


def _as_bool(value: Any) -> Optional[bool]:
    # The PostgreSQL ODBC driver may return booleans as '1'/'0' characters
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in ("1", "t", "true", "yes")


def _as_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _as_json_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        logger.warning(f"Could not parse JSON column value: {str(value)[:50]}")
        return []
    return parsed if isinstance(parsed, list) else []


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DatabaseConnection:
    """Database connection manager for the batch workers."""

    def __init__(self, connection_string: Optional[str] = None):
        """Initialize the database connection."""
        self.connection_string = connection_string or settings.DB_CONNECTION_STRING
        self.conn = None
        pyodbc.pooling = False

    def connect(self) -> None:
        """
        Establish a connection to the database.

        Raises:
            ConnectionError: If the connection cannot be established.
        """
        try:
            self.conn = pyodbc.connect(self.connection_string)
            self.conn.setdecoding(pyodbc.SQL_CHAR, encoding='utf-8')
            logger.info("Successfully connected to database")
        except DatabaseConnectionError:
            self.conn = None
            raise
        except Exception as e:
            self.conn = None
            logger.error(f"Failed to connect to database: {e}")
            raise DatabaseConnectionError(f"Failed to connect to database: {e}") from e

    def close(self) -> None:
        """Close the database connection."""
        try:
            if self.conn:
                self.conn.close()
                logger.info("Database connection closed")
        except Exception as e:
            logger.error(f"Error closing database connection: {e}")
        finally:
            self.conn = None

    def execute_query(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """
        Execute a SQL statement and return the results.

        Args:
            query: The SQL statement to execute.
            params: Query parameters (optional).

        Returns:
            List[Dict]: Rows as dictionaries for SELECT statements, an empty list otherwise.

        Raises:
            ConnectionError: If no connection can be established.
            QueryError: If the statement fails. Writes are rolled back.
        """
        if not self.conn:
            self.connect()

        try:
            cursor = self.conn.cursor()
            if params:
                cursor.execute(query, params)
            else:
                cursor.execute(query)

            # Check if this is a SELECT query with results
            if cursor.description:
                columns = [column[0] for column in cursor.description]
                return [dict(zip(columns, row)) for row in cursor.fetchall()]

            self.conn.commit()
            return []

        except Exception as e:
            logger.error(f"Error executing query: {e}")
            try:
                self.conn.rollback()
            except Exception as rollback_error:
                logger.warning(f"Rollback failed: {rollback_error}")
            raise QueryError(str(e)) from e


class RepostQueueRepository:
    """SQL implementation of RepostQueueStorage over recipe_repost_queue."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def fetch_unposted_queue_items(self, limit: int = 1) -> List[RepostQueueItem]:
        query = """
        SELECT id, recipe_id, scheduled_date, is_posted, posted_at,
               instagram_post_id, instagram_post_url, error_message,
               created_at, updated_at
        FROM recipe_repost_queue
        WHERE is_posted = false
        ORDER BY created_at ASC
        LIMIT ?
        """
        rows = self.db.execute_query(query, (limit,))
        return [
            RepostQueueItem(
                id=_as_str(row['id']),
                recipe_id=_as_str(row['recipe_id']),
                is_posted=bool(_as_bool(row.get('is_posted'))),
                error_message=row.get('error_message'),
                posted_at=row.get('posted_at'),
                platform_post_id=row.get('instagram_post_id'),
                platform_post_url=row.get('instagram_post_url'),
                scheduled_date=row.get('scheduled_date'),
                created_at=row.get('created_at'),
                updated_at=row.get('updated_at'),
            )
            for row in rows
        ]

    def update_queue_item_success(self, queue_id: str, platform_post_id: str,
                                  platform_post_url: str) -> None:
        query = """
        UPDATE recipe_repost_queue
        SET is_posted = true,
            posted_at = ?,
            instagram_post_id = ?,
            instagram_post_url = ?,
            error_message = NULL,
            updated_at = ?
        WHERE id = ?
        """
        now = _utc_now()
        self.db.execute_query(query, (now, platform_post_id, platform_post_url, now, queue_id))
        logger.info(f"Marked repost queue item {queue_id} as posted")

    def update_queue_item_error(self, queue_id: str, error_message: str) -> None:
        query = """
        UPDATE recipe_repost_queue
        SET error_message = ?,
            updated_at = ?
        WHERE id = ?
        """
        self.db.execute_query(query, (error_message, _utc_now(), queue_id))
        logger.info(f"Recorded error for repost queue item {queue_id}")


class RecipeRepository:
    """SQL implementation of RecipeStorage."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def fetch_recipe_snapshot(self, recipe_id: str) -> Optional[RecipeSnapshot]:
        query = """
        SELECT r.id, r.title, r.source_name, r.ingredients, r.instructions,
               r.thumbnail, r.is_public, r.user_id,
               p.display_name AS owner_display_name
        FROM recipes r
        LEFT JOIN profiles p ON p.id = r.user_id
        WHERE r.id = ?
        """
        rows = self.db.execute_query(query, (recipe_id,))
        if not rows:
            return None

        row = rows[0]
        return RecipeSnapshot(
            id=_as_str(row['id']),
            title=row.get('title') or "",
            ingredients=_as_json_list(row.get('ingredients')),
            instructions=_as_json_list(row.get('instructions')),
            thumbnail=row.get('thumbnail'),
            is_public=bool(_as_bool(row.get('is_public'))),
            user_id=_as_str(row.get('user_id')),
            source_name=row.get('source_name'),
            owner_display_name=row.get('owner_display_name'),
        )


class NotificationRepository:
    """SQL implementation of NotificationStorage over notification_queue."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def fetch_unsent_notifications(self) -> List[NotificationRecord]:
        query = """
        SELECT nq.id, nq.comment_id, nq.recipe_id, nq.recipient_id, nq.sent,
               nq.created_at,
               p.display_name AS recipient_display_name,
               np.recipe_comment_notifications
        FROM notification_queue nq
        LEFT JOIN profiles p ON p.id = nq.recipient_id
        LEFT JOIN notification_preferences np ON np.user_id = nq.recipient_id
        WHERE nq.sent = false
        ORDER BY nq.created_at DESC
        """
        rows = self.db.execute_query(query)
        return [
            NotificationRecord(
                id=_as_str(row['id']),
                comment_id=_as_str(row['comment_id']),
                recipe_id=_as_str(row.get('recipe_id')),
                recipient_id=_as_str(row['recipient_id']),
                sent=bool(_as_bool(row.get('sent'))),
                recipient_display_name=row.get('recipient_display_name'),
                recipe_comment_notifications=_as_bool(row.get('recipe_comment_notifications')),
                created_at=row.get('created_at'),
            )
            for row in rows
        ]

    def fetch_comments_by_ids(self, comment_ids: List[str]) -> List[CommentProjection]:
        if not comment_ids:
            return []

        placeholders = ", ".join("?" for _ in comment_ids)
        query = f"""
        SELECT c.id, c.text, c.recipe_id,
               p.display_name AS commenter_name,
               r.title AS recipe_title
        FROM comments c
        LEFT JOIN profiles p ON p.id = c.user_id
        LEFT JOIN recipes r ON r.id = c.recipe_id
        WHERE c.id IN ({placeholders})
        """
        rows = self.db.execute_query(query, tuple(comment_ids))
        return [
            CommentProjection(
                id=_as_str(row['id']),
                text=row.get('text') or "",
                commenter_name=row.get('commenter_name'),
                recipe_title=row.get('recipe_title'),
                recipe_id=_as_str(row.get('recipe_id')),
            )
            for row in rows
        ]

    def mark_notifications_sent(self, notification_ids: List[str]) -> None:
        if not notification_ids:
            return

        placeholders = ", ".join("?" for _ in notification_ids)
        query = f"UPDATE notification_queue SET sent = true WHERE id IN ({placeholders})"
        self.db.execute_query(query, tuple(notification_ids))
        logger.info(f"Marked {len(notification_ids)} notifications as sent")

    def check_connection(self) -> None:
        self.db.execute_query("SELECT id FROM notification_queue LIMIT 1")


class UserRepository:
    """SQL implementation of UserDirectory over the auth schema."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def lookup_user_email(self, user_id: str) -> Optional[str]:
        rows = self.db.execute_query("SELECT email FROM auth.users WHERE id = ?", (user_id,))
        if not rows:
            return None
        return rows[0].get('email') or None
