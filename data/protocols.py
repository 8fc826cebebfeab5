"""
Data Layer Protocol Definitions

This module defines typing.Protocol interfaces for the queue store and the
lookups the workers need. These protocols enable dependency injection for
database operations, making the workers testable with in-memory fakes.

Protocols defined:
- RepostQueueStorage: Interface for reading and updating the repost queue
- RecipeStorage: Interface for loading recipe snapshots
- NotificationStorage: Interface for the notification queue and comment lookups
- UserDirectory: Interface for resolving a user's email address
"""

from typing import List, Optional, Protocol

from data.models import CommentProjection, NotificationRecord, RecipeSnapshot, RepostQueueItem


class RepostQueueStorage(Protocol):
    """Protocol defining the interface for repost queue operations."""

    def fetch_unposted_queue_items(self, limit: int = 1) -> List[RepostQueueItem]:
        """Fetch queue items that are not posted yet, oldest first.

        Args:
            limit: Maximum number of items to return.

        Returns:
            List of unposted queue items.

        Raises:
            DatabaseError: If the queue cannot be read.
        """
        ...

    def update_queue_item_success(self, queue_id: str, platform_post_id: str,
                                  platform_post_url: str) -> None:
        """Mark a queue item as posted and clear its error message.

        Raises:
            DatabaseError: If the update fails.
        """
        ...

    def update_queue_item_error(self, queue_id: str, error_message: str) -> None:
        """Record the failure reason of a queue item, leaving it unposted.

        Raises:
            DatabaseError: If the update fails.
        """
        ...


class RecipeStorage(Protocol):
    """Protocol defining the interface for recipe lookups."""

    def fetch_recipe_snapshot(self, recipe_id: str) -> Optional[RecipeSnapshot]:
        """Load a recipe with its owner's display name.

        Returns:
            The recipe snapshot, or None if the recipe does not exist.
        """
        ...


class NotificationStorage(Protocol):
    """Protocol defining the interface for notification queue operations."""

    def fetch_unsent_notifications(self) -> List[NotificationRecord]:
        """Fetch every unsent notification, newest first, with recipient profile and preference.

        Raises:
            DatabaseError: If the queue cannot be read.
        """
        ...

    def fetch_comments_by_ids(self, comment_ids: List[str]) -> List[CommentProjection]:
        """Load many comments in a single query. Deleted comments are simply absent.

        Raises:
            DatabaseError: If the query fails.
        """
        ...

    def mark_notifications_sent(self, notification_ids: List[str]) -> None:
        """Set sent = true for all given notifications in one update.

        Raises:
            DatabaseError: If the update fails.
        """
        ...

    def check_connection(self) -> None:
        """Run a trivial query against the notification queue.

        Raises:
            DatabaseError: If the store is unreachable.
        """
        ...


class UserDirectory(Protocol):
    """Protocol defining the interface for admin-level user lookups."""

    def lookup_user_email(self, user_id: str) -> Optional[str]:
        """Resolve a user's delivery address.

        Returns:
            The email address, or None if the user has none.
        """
        ...
