"""
Repost Dispatcher Module

This module drains the recipe repost queue. Each queued recipe is checked,
given an AI-generated caption and published to Instagram, and the outcome
is written back to its queue row. Failures are isolated per item and
reported to the operator by email.
"""

import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from config import settings
from data.models import BookkeepingWarning, RecipeSnapshot, RepostQueueItem, RepostRunResult
from data.protocols import RecipeStorage, RepostQueueStorage
from services.protocols import CaptionGeneratorProtocol, OperatorAlertProtocol, PublisherProtocol
from utils.exceptions import (
    CaptionGenerationError,
    ImageNotAccessibleError,
    PublishingError,
    RecipeNotFoundError,
    RecipeNotPublicError,
)
from utils.helpers import is_publicly_accessible, retry_with_fixed_delay, truncate_text
from utils.logger import get_logger

logger = get_logger(__name__)

DRY_RUN_POST_URL = "https://www.instagram.com/p/dry-run-test/"


@dataclass
class RepostConfig:
    """Run options for the repost dispatcher."""
    retry_attempts: int = 3
    retry_delay_ms: int = 5000
    batch_size: int = 1
    dry_run: bool = False

    @classmethod
    def from_settings(cls, dry_run: bool = False) -> "RepostConfig":
        return cls(
            retry_attempts=settings.RETRY_ATTEMPTS,
            retry_delay_ms=settings.RETRY_DELAY_MS,
            batch_size=settings.REPOST_BATCH_SIZE,
            dry_run=dry_run,
        )


class RepostDispatcher:
    """Publishes queued recipes to Instagram, one queue item at a time."""

    def __init__(self, queue_repository: RepostQueueStorage, recipe_repository: RecipeStorage,
                 caption_service: CaptionGeneratorProtocol, publisher: PublisherProtocol,
                 alert_service: OperatorAlertProtocol, config: Optional[RepostConfig] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.queue_repository = queue_repository
        self.recipe_repository = recipe_repository
        self.caption_service = caption_service
        self.publisher = publisher
        self.alert_service = alert_service
        self.config = config or RepostConfig()
        self._sleep = sleep

    def run(self) -> RepostRunResult:
        """
        Process the current backlog of unposted queue items.

        Returns:
            RepostRunResult: Counts of processed, posted and failed items plus
            any bookkeeping warnings

        Raises:
            Exception: If the queue itself cannot be read
        """
        result = RepostRunResult()

        if self.config.dry_run:
            logger.info("DRY RUN MODE - no posts will be published")

        try:
            items = self.queue_repository.fetch_unposted_queue_items(limit=self.config.batch_size)
        except Exception as e:
            logger.error(f"Error fetching scheduled posts: {e}")
            self._alert_operator("Worker error", str(e), result)
            raise

        logger.info(f"Found {len(items)} scheduled posts to process")

        for item in items:
            result.processed += 1
            if self._process_item(item, result):
                result.posted += 1
            else:
                result.failed += 1

        logger.info(f"Repost run finished: {result.posted} posted, {result.failed} failed, "
                    f"{len(result.warnings)} warnings")
        return result

    def _process_item(self, item: RepostQueueItem, result: RepostRunResult) -> bool:
        """Run one queue item through the pipeline. Returns True when it was posted."""
        logger.info(f"Processing queue item {item.id} for recipe {item.recipe_id}")

        try:
            recipe = self._load_recipe(item.recipe_id)

            caption_result = self.caption_service.generate_caption(recipe)
            if not caption_result.success or not caption_result.caption:
                raise CaptionGenerationError(
                    f"Caption generation failed: {caption_result.error or 'Unknown error'}"
                )

            if self.config.dry_run:
                post_id = f"dry-run-{int(time.time() * 1000)}"
                post_url = DRY_RUN_POST_URL
                logger.info(f"[DRY RUN] Would post recipe '{recipe.title}' with image {recipe.thumbnail}")
                logger.info(f"[DRY RUN] Caption: {truncate_text(caption_result.caption, 100)}")
            else:
                post_id, post_url = self._publish_with_retry(recipe.thumbnail, caption_result.caption)

        except Exception as e:
            logger.error(f"Error processing post {item.id}: {e}", exc_info=True)
            self._handle_item_error(item, str(e) or e.__class__.__name__, result)
            return False

        self._record_success(item, post_id, post_url, result)
        return True

    def _load_recipe(self, recipe_id: str) -> RecipeSnapshot:
        recipe = self.recipe_repository.fetch_recipe_snapshot(recipe_id)
        if recipe is None:
            raise RecipeNotFoundError("Recipe not found")

        if not recipe.is_public:
            raise RecipeNotPublicError("Recipe is not public")

        if not self.config.dry_run and not is_publicly_accessible(recipe.thumbnail):
            raise ImageNotAccessibleError(f"Recipe image is not publicly accessible: {recipe.thumbnail}")

        return recipe

    def _publish_with_retry(self, image_url: str, caption: str):
        """
        Publish with a fixed number of attempts and a fixed delay in between.

        Returns:
            Tuple: (post_id, post_url)

        Raises:
            PublishingError: With the last attempt's error once every attempt failed
        """
        def attempt():
            publish_result = self.publisher.post_recipe(image_url, caption)
            return publish_result.success, publish_result, publish_result.error

        def on_attempt_failed(attempt_number: int, error: str):
            logger.warning(f"Attempt {attempt_number}/{self.config.retry_attempts} failed: {error}")

        success, publish_result, last_error, attempts = retry_with_fixed_delay(
            attempt,
            max_attempts=self.config.retry_attempts,
            delay_seconds=self.config.retry_delay_ms / 1000,
            on_attempt_failed=on_attempt_failed,
            sleep=self._sleep,
        )

        if not success:
            raise PublishingError(f"Instagram posting failed: {last_error}")

        logger.info(f"Published after {attempts} attempt(s): {publish_result.platform_post_url}")
        return publish_result.platform_post_id, publish_result.platform_post_url

    def _record_success(self, item: RepostQueueItem, post_id: str, post_url: str,
                        result: RepostRunResult) -> None:
        try:
            self.queue_repository.update_queue_item_success(item.id, post_id, post_url)
            logger.info(f"Successfully processed post {item.id}")
        except Exception as e:
            # The post exists on Instagram; the row stays unposted and will be picked up again
            message = f"Published as {post_id} but could not mark queue item as posted: {e}"
            logger.error(f"Error updating post success for {item.id}: {e}")
            result.warnings.append(BookkeepingWarning("update_queue_item_success", item.id, message))
            self._alert_operator(f"Instagram post not recorded for recipe {item.recipe_id}", message,
                                result, item.id)

    def _handle_item_error(self, item: RepostQueueItem, message: str, result: RepostRunResult) -> None:
        try:
            self.queue_repository.update_queue_item_error(item.id, message)
        except Exception as e:
            logger.error(f"Error updating post error for {item.id}: {e}")
            result.warnings.append(BookkeepingWarning("update_queue_item_error", item.id, str(e)))

        self._alert_operator(f"Instagram post failed for recipe {item.recipe_id}", message, result, item.id)

    def _alert_operator(self, subject: str, message: str, result: RepostRunResult,
                        target_id: Optional[str] = None) -> None:
        try:
            self.alert_service.send_error_notification(subject, message)
        except Exception as e:
            logger.error(f"Failed to send error notification: {e}")
            result.warnings.append(BookkeepingWarning("send_error_notification", target_id, str(e)))

    @staticmethod
    def summarize(result: RepostRunResult) -> List[str]:
        """Human-readable lines for the end-of-run log."""
        lines = [
            f"Processed: {result.processed}",
            f"Posted: {result.posted}",
            f"Failed: {result.failed}",
        ]
        lines.extend(f"Warning ({w.operation} {w.target_id}): {w.message}" for w in result.warnings)
        return lines
