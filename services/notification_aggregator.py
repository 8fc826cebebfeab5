"""
Notification Aggregator Module

This module drains the comment notification queue. Unsent notifications are
filtered by the recipient's preference, grouped per recipient and delivered
as one email per recipient: a single-comment email for one comment, a digest
for several. Delivered notifications are then marked as sent.
"""

from dataclasses import dataclass
from typing import Dict, List

from config import settings
from data.models import (
    BookkeepingWarning,
    CommentDisplayData,
    ConnectionCheckResult,
    NotificationRecord,
    NotificationRunResult,
)
from data.protocols import NotificationStorage, UserDirectory
from services.protocols import NotificationMailerProtocol
from utils.exceptions import EmailDeliveryError, NoValidCommentsError, NotificationError, RecipientLookupError
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class NotificationConfig:
    """Values used to build links in notification emails."""
    app_base_url: str
    notification_type: str = "recipe_comment"

    @classmethod
    def from_settings(cls) -> "NotificationConfig":
        return cls(
            app_base_url=settings.APP_BASE_URL,
            notification_type=settings.NOTIFICATION_TYPE,
        )


class NotificationAggregator:
    """Sends one comment notification email per recipient."""

    def __init__(self, notification_repository: NotificationStorage, user_directory: UserDirectory,
                 email_service: NotificationMailerProtocol, config: NotificationConfig):
        self.notification_repository = notification_repository
        self.user_directory = user_directory
        self.email_service = email_service
        self.config = config

    def process_notifications(self) -> NotificationRunResult:
        """
        Process all unsent notifications.

        Returns:
            NotificationRunResult: processed is the number of records left after
            preference filtering, sent and errors count recipients. A failure to
            read the queue is returned as success False instead of raised.
        """
        try:
            records = self.notification_repository.fetch_unsent_notifications()
        except Exception as e:
            logger.error(f"Error processing notifications: {e}", exc_info=True)
            return NotificationRunResult(success=False, error=f"Unexpected error: {e}")

        enabled = [record for record in records if record.wants_comment_notifications]
        skipped = len(records) - len(enabled)
        if skipped:
            logger.info(f"Skipping {skipped} notifications for recipients with comment notifications disabled")

        if not enabled:
            logger.info("No pending notifications")
            return NotificationRunResult(success=True)

        grouped = self.group_notifications_by_recipient(enabled)
        logger.info(f"Processing {len(enabled)} notifications for {len(grouped)} recipients")

        result = NotificationRunResult(success=True, processed=len(enabled))

        for recipient_id, notifications in grouped.items():
            try:
                self._process_recipient(recipient_id, notifications, result)
                result.sent += 1
            except NotificationError as e:
                logger.error(f"Error processing notifications for user {recipient_id}: {e}")
                result.errors += 1
            except Exception as e:
                logger.error(f"Unexpected error for user {recipient_id}: {e}", exc_info=True)
                result.errors += 1

        logger.info(f"Processed {result.processed} notifications: {result.sent} sent, {result.errors} errors")
        return result

    def group_notifications_by_recipient(self, records: List[NotificationRecord]) -> Dict[str, List[NotificationRecord]]:
        """Group records per recipient, keeping the order in which recipients and records appear."""
        grouped: Dict[str, List[NotificationRecord]] = {}
        for record in records:
            grouped.setdefault(record.recipient_id, []).append(record)
        return grouped

    def _process_recipient(self, recipient_id: str, notifications: List[NotificationRecord],
                           result: NotificationRunResult) -> None:
        """
        Deliver the notifications of one recipient.

        Raises:
            RecipientLookupError: If the recipient has no email address
            NoValidCommentsError: If none of the comments still exist
            EmailDeliveryError: If the email provider rejected the message
        """
        try:
            email = self.user_directory.lookup_user_email(recipient_id)
        except Exception as e:
            raise RecipientLookupError(f"Could not look up email for user {recipient_id}: {e}") from e
        if not email:
            raise RecipientLookupError(f"No email found for user {recipient_id}")

        comment_ids = [n.comment_id for n in notifications]
        comments = self.notification_repository.fetch_comments_by_ids(comment_ids)
        if not comments:
            raise NoValidCommentsError(f"No valid comments found for user {recipient_id}")

        display_comments = [
            CommentDisplayData(
                commenter_name=comment.commenter_name,
                recipe_title=comment.recipe_title,
                recipe_url=self.recipe_url(comment.recipe_id),
                comment_text=comment.text,
            )
            for comment in comments
        ]

        recipient_name = notifications[0].recipient_display_name or ""
        unsubscribe_url = self.unsubscribe_url(recipient_id)

        if len(display_comments) == 1:
            email_result = self.email_service.send_comment_notification(
                email, recipient_name, display_comments[0], unsubscribe_url
            )
        else:
            email_result = self.email_service.send_comment_summary_notification(
                email, recipient_name, display_comments, unsubscribe_url
            )

        if not email_result.success:
            raise EmailDeliveryError(f"Failed to send email to user {recipient_id}: {email_result.error}")

        notification_ids = [n.id for n in notifications]
        try:
            self.notification_repository.mark_notifications_sent(notification_ids)
        except Exception as e:
            # The email is already out; these rows may be picked up again next run
            logger.error(f"Error marking notifications as sent for user {recipient_id}: {e}")
            result.warnings.append(BookkeepingWarning("mark_notifications_sent", recipient_id, str(e)))

        logger.info(f"Sent {len(display_comments)} comment(s) to user {recipient_id}")

    def recipe_url(self, recipe_id: str) -> str:
        return f"{self.config.app_base_url}/recipes/{recipe_id}"

    def unsubscribe_url(self, recipient_id: str) -> str:
        return f"{self.config.app_base_url}/unsubscribe?u={recipient_id}&t={self.config.notification_type}"

    def verify_connections(self) -> ConnectionCheckResult:
        """Check that both the queue store and the email provider are reachable."""
        try:
            self.notification_repository.check_connection()
        except Exception as e:
            logger.error(f"Database connection failed: {e}")
            return ConnectionCheckResult(success=False, error=f"Database connection failed: {e}")

        email_result = self.email_service.verify_connection()
        if not email_result.success:
            return ConnectionCheckResult(success=False, error=email_result.error)

        logger.info("All connections verified")
        return ConnectionCheckResult(success=True)
