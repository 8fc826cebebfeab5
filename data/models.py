"""
Data Models for Recipe Social Jobs

This module contains the data classes used by both batch workers: queue rows,
read-only projections joined from other tables, and per-run result objects.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

UNKNOWN_SOURCE_NAME = "Onbekend"


# =============================================================================
# Repost Dispatcher
# =============================================================================

@dataclass
class RepostQueueItem:
    """One row of recipe_repost_queue."""
    id: str
    recipe_id: str
    is_posted: bool = False
    error_message: Optional[str] = None
    posted_at: Optional[datetime] = None
    platform_post_id: Optional[str] = None      # Stored as instagram_post_id
    platform_post_url: Optional[str] = None     # Stored as instagram_post_url
    scheduled_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class RecipeSnapshot:
    """Read-only projection of a recipe used to build an Instagram post."""
    id: str
    title: str
    ingredients: List[Any] = field(default_factory=list)
    instructions: List[str] = field(default_factory=list)
    thumbnail: Optional[str] = None
    is_public: bool = False
    user_id: Optional[str] = None
    source_name: Optional[str] = None
    owner_display_name: Optional[str] = None

    @property
    def source_display_name(self) -> str:
        """Name credited in the caption: explicit source, then the owner, then a placeholder."""
        if self.source_name and self.source_name.strip():
            return self.source_name
        if self.owner_display_name:
            return self.owner_display_name
        return UNKNOWN_SOURCE_NAME


@dataclass
class CaptionResult:
    """Outcome of caption generation."""
    success: bool
    caption: Optional[str] = None
    error: Optional[str] = None


@dataclass
class PublishResult:
    """Outcome of a single publish attempt."""
    success: bool
    platform_post_id: Optional[str] = None
    platform_post_url: Optional[str] = None
    error: Optional[str] = None


# =============================================================================
# Notification Aggregator
# =============================================================================

@dataclass
class NotificationRecord:
    """One row of notification_queue joined with the recipient's profile and preference."""
    id: str
    comment_id: str
    recipient_id: str
    recipe_id: Optional[str] = None
    sent: bool = False
    recipient_display_name: Optional[str] = None
    recipe_comment_notifications: Optional[bool] = None
    created_at: Optional[datetime] = None

    @property
    def wants_comment_notifications(self) -> bool:
        # A missing preference row counts as opted out
        return self.recipe_comment_notifications is True


@dataclass
class CommentProjection:
    """Read-only projection of a comment, joined with commenter and recipe."""
    id: str
    text: str
    commenter_name: Optional[str]
    recipe_title: Optional[str]
    recipe_id: str


@dataclass
class CommentDisplayData:
    """One human-readable comment line in a notification email."""
    commenter_name: Optional[str]
    recipe_title: Optional[str]
    recipe_url: str
    comment_text: str


@dataclass
class EmailResult:
    """Outcome of sending an email."""
    success: bool
    error: Optional[str] = None


# =============================================================================
# Run Results
# =============================================================================

@dataclass
class BookkeepingWarning:
    """A status write that failed after the primary action already happened."""
    operation: str
    target_id: Optional[str]
    message: str


@dataclass
class RepostRunResult:
    """Counts for one repost dispatcher run."""
    processed: int = 0
    posted: int = 0
    failed: int = 0
    warnings: List[BookkeepingWarning] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed == 0


@dataclass
class NotificationRunResult:
    """Counts for one notification aggregator run."""
    success: bool
    processed: int = 0
    sent: int = 0
    errors: int = 0
    error: Optional[str] = None
    warnings: List[BookkeepingWarning] = field(default_factory=list)


@dataclass
class ConnectionCheckResult:
    """Outcome of a connection check."""
    success: bool
    error: Optional[str] = None
