"""
Recipe Social Jobs

This is the main entry point for the recipe batch jobs. Each invocation
runs one job once and exits:

- repost: publish queued recipes to Instagram with an AI-generated caption
- notify: email recipe owners about new comments on their recipes

Usage:
    python main.py repost [--dry-run]
    python main.py notify [--skip-verify]
"""

import sys
import argparse
import logging
from typing import List, Optional

from config.validators import get_config_summary, validate_notification_settings, validate_repost_settings
from data.database import (
    DatabaseConnection,
    NotificationRepository,
    RecipeRepository,
    RepostQueueRepository,
    UserRepository,
)
from services.alert_service import AlertEmailConfig, AlertService
from services.caption_service import CaptionService
from services.email_service import EmailService, PostmarkConfig
from services.instagram_service import InstagramConfig, InstagramService
from services.notification_aggregator import NotificationAggregator, NotificationConfig
from services.repost_dispatcher import RepostConfig, RepostDispatcher
from utils.exceptions import ConfigurationError
from utils.logger import get_logger, setup_file_logging

# Set up logging
logger = get_logger(__name__)


def create_repost_dispatcher(db: DatabaseConnection, dry_run: bool = False) -> RepostDispatcher:
    """
    Build a repost dispatcher wired to the real database and external services.

    Args:
        db: Open or lazily connecting database connection
        dry_run: If True, nothing is published to Instagram

    Returns:
        RepostDispatcher: A configured dispatcher
    """
    return RepostDispatcher(
        queue_repository=RepostQueueRepository(db),
        recipe_repository=RecipeRepository(db),
        caption_service=CaptionService(),
        publisher=InstagramService(InstagramConfig.from_settings()),
        alert_service=AlertService(AlertEmailConfig.from_settings()),
        config=RepostConfig.from_settings(dry_run=dry_run),
    )


def create_notification_aggregator(db: DatabaseConnection) -> NotificationAggregator:
    """Build a notification aggregator wired to the real database and Postmark."""
    return NotificationAggregator(
        notification_repository=NotificationRepository(db),
        user_directory=UserRepository(db),
        email_service=EmailService(PostmarkConfig.from_settings()),
        config=NotificationConfig.from_settings(),
    )


def run_repost(dry_run: bool = False) -> int:
    """Run the repost job once and return the exit code."""
    validate_repost_settings()

    db = DatabaseConnection()
    try:
        dispatcher = create_repost_dispatcher(db, dry_run=dry_run)
        result = dispatcher.run()
    finally:
        db.close()

    for line in RepostDispatcher.summarize(result):
        logger.info(line)

    if result.success:
        logger.info("Repost job completed successfully")
        return 0

    logger.warning("Repost job completed with errors")
    return 1


def run_notify(skip_verify: bool = False) -> int:
    """Run the notification job once and return the exit code."""
    validate_notification_settings()

    db = DatabaseConnection()
    try:
        aggregator = create_notification_aggregator(db)

        if not skip_verify:
            check = aggregator.verify_connections()
            if not check.success:
                logger.error(f"Connection verification failed: {check.error}")
                return 1

        result = aggregator.process_notifications()
    finally:
        db.close()

    if not result.success:
        logger.error(f"Notification job failed: {result.error}")
        return 1

    for warning in result.warnings:
        logger.warning(f"Warning ({warning.operation} {warning.target_id}): {warning.message}")

    logger.info(f"Processed: {result.processed}, sent: {result.sent}, errors: {result.errors}")
    if result.errors:
        logger.warning("Notification job completed with errors")
        return 1

    logger.info("Notification job completed successfully")
    return 0


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--log-file', type=str, default=None, help='Log file path')
    common.add_argument('--log-level', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        default='INFO', help='Logging level')

    parser = argparse.ArgumentParser(description='Recipe Social Jobs')
    subparsers = parser.add_subparsers(dest='command', required=True)

    repost_parser = subparsers.add_parser('repost', parents=[common],
                                          help='Publish queued recipes to Instagram')
    repost_parser.add_argument('--dry-run', action='store_true',
                               help='Run every step except the actual publish')

    notify_parser = subparsers.add_parser('notify', parents=[common],
                                          help='Send comment notification emails')
    notify_parser.add_argument('--skip-verify', action='store_true',
                               help='Skip the database and Postmark connection check')

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    # Parse command line arguments
    args = parse_arguments(argv)

    # Set up logging
    log_level = getattr(logging, args.log_level)
    setup_file_logging(args.log_file, log_level)

    logger.info(f"Starting Recipe Social Jobs: {args.command}")

    try:
        logger.debug(f"Configuration: {get_config_summary()}")

        if args.command == 'repost':
            exit_code = run_repost(dry_run=args.dry_run)
        else:
            exit_code = run_notify(skip_verify=args.skip_verify)

    except ConfigurationError as e:
        logger.error(str(e))
        exit_code = 1
    except Exception as e:
        logger.error(f"Unhandled exception in {args.command} job: {e}", exc_info=True)
        exit_code = 2

    # Log application end
    logger.info(f"Recipe Social Jobs {args.command} finished with exit code {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
