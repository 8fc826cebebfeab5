"""
Service Protocol Definitions

This module defines typing.Protocol interfaces for the external clients used
by the batch workers. These protocols enable loose coupling, dependency
injection, and easier testing.

Protocols defined:
- CaptionGeneratorProtocol: Interface for AI caption generation
- PublisherProtocol: Interface for publishing an image post to a social platform
- OperatorAlertProtocol: Interface for alerting the operator about failures
- NotificationMailerProtocol: Interface for comment notification emails
"""

from typing import List, Protocol

from data.models import CaptionResult, CommentDisplayData, EmailResult, PublishResult, RecipeSnapshot


class CaptionGeneratorProtocol(Protocol):
    """Protocol defining the interface for caption generation."""

    def generate_caption(self, recipe: RecipeSnapshot) -> CaptionResult:
        """Generate a social media caption for a recipe.

        Args:
            recipe: The recipe snapshot to describe.

        Returns:
            CaptionResult with the caption, or with success False and an error.
            Implementations never raise.
        """
        ...


class PublisherProtocol(Protocol):
    """Protocol defining the interface for social platform publishing."""

    def post_recipe(self, image_url: str, caption: str) -> PublishResult:
        """Publish an image with a caption.

        Args:
            image_url: Publicly reachable image URL.
            caption: The caption text.

        Returns:
            PublishResult with the platform post id and URL on success.
        """
        ...


class OperatorAlertProtocol(Protocol):
    """Protocol defining the interface for operator alerts."""

    def send_error_notification(self, subject: str, error_message: str) -> None:
        """Send an error report to the operator.

        Raises:
            Exception: Any delivery failure. Callers treat alerts as best-effort.
        """
        ...


class NotificationMailerProtocol(Protocol):
    """Protocol defining the interface for comment notification emails."""

    def send_comment_notification(self, recipient_email: str, recipient_name: str,
                                  comment: CommentDisplayData, unsubscribe_url: str) -> EmailResult:
        """Send an email about a single new comment."""
        ...

    def send_comment_summary_notification(self, recipient_email: str, recipient_name: str,
                                          comments: List[CommentDisplayData],
                                          unsubscribe_url: str) -> EmailResult:
        """Send a digest email listing several new comments."""
        ...

    def verify_connection(self) -> EmailResult:
        """Check that the email provider accepts our credentials."""
        ...
