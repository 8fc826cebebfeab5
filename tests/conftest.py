"""
Shared Test Fixtures for Recipe Social Jobs

This module provides common fixtures used across all test modules.
Fixtures include mocks for settings, database connections, logging,
HTTP responses, data factories, and in-memory fakes of the repositories
and clients the two workers depend on.
"""

import pytest
from unittest.mock import MagicMock, patch
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config.settings  # noqa: F401
from data.models import (
    CaptionResult,
    CommentProjection,
    EmailResult,
    NotificationRecord,
    PublishResult,
    RecipeSnapshot,
    RepostQueueItem,
)

PUBLIC_IMAGE_URL = "https://cdn.bonchef.io/storage/v1/object/public/recipe-images/pasta.jpg"


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def mock_settings():
    """
    Mock the settings module with test configuration values.

    This fixture patches the config.settings module with safe test values,
    preventing tests from accessing real API keys or database credentials.

    Usage:
        def test_something(mock_settings):
            mock_settings.RETRY_ATTEMPTS = 5
            # ... test code

    Returns:
        MagicMock: A mock settings object with default test values.
    """
    with patch('config.settings') as mock_settings_module:
        # Environment
        mock_settings_module.APP_ENV = "test"
        mock_settings_module.APP_BASE_URL = "https://app.test"
        mock_settings_module.ASSET_HOST = "https://assets.test"

        # Database Settings
        mock_settings_module.DB_SERVER = "test-server"
        mock_settings_module.DB_NAME = "test-db"
        mock_settings_module.DB_USER = "test-user"
        mock_settings_module.DB_PASSWORD = "test-password"
        mock_settings_module.DB_CONNECTION_STRING = "DRIVER={Test};SERVER=test-server;DATABASE=test-db;"

        # Instagram
        mock_settings_module.FACEBOOK_PAGE_ID = "test-page-id"
        mock_settings_module.SYSTEM_USER_ACCESS_TOKEN = "test-access-token"
        mock_settings_module.INSTAGRAM_API_VERSION = "v23.0"
        mock_settings_module.INSTAGRAM_BASE_URL = "https://graph.facebook.com"
        mock_settings_module.INSTAGRAM_REQUEST_TIMEOUT = 30
        mock_settings_module.CONTAINER_STATUS_WAIT = 0
        mock_settings_module.CONTAINER_STATUS_CHECKS = 3

        # AI Caption Settings
        mock_settings_module.GOOGLE_AI_API_KEY = "test-google-api-key"
        mock_settings_module.DEFAULT_AI_MODELS = ['gemini-2.0-flash', 'gemini-2.0-flash-lite']
        mock_settings_module.MAX_CAPTION_LENGTH = 2200
        mock_settings_module.CAPTION_TEMPERATURE = 0.7
        mock_settings_module.CAPTION_MAX_OUTPUT_TOKENS = 1000

        # Email Settings
        mock_settings_module.ZOHO_USER = "jobs@test.bonchef.io"
        mock_settings_module.ZOHO_PASS = "test-smtp-password"
        mock_settings_module.ZOHO_SMTP_HOST = "smtp.test"
        mock_settings_module.ZOHO_SMTP_PORT = 465
        mock_settings_module.SUPPORT_EMAIL = "support@test.bonchef.io"
        mock_settings_module.SMTP_TIMEOUT = 30
        mock_settings_module.POSTMARK_API_KEY = "test-postmark-token"
        mock_settings_module.POSTMARK_FROM_EMAIL = "notifications@test.bonchef.io"
        mock_settings_module.POSTMARK_API_URL = "https://api.postmark.test"
        mock_settings_module.POSTMARK_MESSAGE_STREAM = "outbound"
        mock_settings_module.POSTMARK_TIMEOUT = 15
        mock_settings_module.NOTIFICATION_TYPE = "recipe_comment"

        # Job Settings
        mock_settings_module.RETRY_ATTEMPTS = 3
        mock_settings_module.RETRY_DELAY_MS = 5000
        mock_settings_module.REPOST_BATCH_SIZE = 1
        mock_settings_module.INVALID_INT_SETTINGS = {}

        mock_settings_module.REPOST_REQUIRED_VARS = [
            "FACEBOOK_PAGE_ID", "SYSTEM_USER_ACCESS_TOKEN", "GOOGLE_AI_API_KEY",
            "ZOHO_USER", "ZOHO_PASS", "SUPPORT_EMAIL",
        ]
        mock_settings_module.NOTIFICATION_REQUIRED_VARS = ["POSTMARK_API_KEY"]

        yield mock_settings_module


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def mock_db_connection():
    """
    Mock pyodbc database connection and cursor.

    This fixture provides a mock database connection that simulates
    pyodbc behavior without requiring an actual database connection.

    Usage:
        def test_database(mock_db_connection):
            conn, cursor = mock_db_connection
            cursor.fetchall.return_value = [('row1',), ('row2',)]
            # ... test code

    Returns:
        tuple: A tuple of (mock_connection, mock_cursor).
    """
    mock_cursor = MagicMock()
    mock_cursor.description = None
    mock_cursor.fetchall.return_value = []
    mock_cursor.rowcount = 0

    mock_conn = MagicMock()
    mock_conn.cursor.return_value = mock_cursor

    with patch('pyodbc.connect', return_value=mock_conn):
        yield mock_conn, mock_cursor


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def capture_logs():
    """
    Capture log messages for assertion in tests.

    Returns:
        list: A list that will contain captured log records.
    """
    import logging

    class LogCapture(logging.Handler):
        def __init__(self):
            super().__init__()
            self.records = []

        def emit(self, record):
            self.records.append(record)

    handler = LogCapture()
    handler.setLevel(logging.DEBUG)

    app_logger = logging.getLogger("recipe_jobs")
    original_level = app_logger.level
    app_logger.setLevel(logging.DEBUG)
    app_logger.addHandler(handler)

    yield handler.records

    app_logger.removeHandler(handler)
    app_logger.setLevel(original_level)


# =============================================================================
# HTTP Response Fixtures
# =============================================================================

@pytest.fixture
def mock_http_response():
    """
    Factory fixture for creating mock HTTP responses.

    Usage:
        def test_http_request(mock_http_response):
            response = mock_http_response(status_code=200, json_data={'id': '1'})

    Returns:
        callable: A factory function for creating mock responses.
    """
    def _create_response(
        status_code: int = 200,
        json_data: Optional[Dict[str, Any]] = None,
        text: str = '',
    ) -> MagicMock:
        import json

        mock_response = MagicMock()
        mock_response.status_code = status_code
        mock_response.ok = 200 <= status_code < 300
        mock_response.text = text or (json.dumps(json_data) if json_data is not None else '')

        if json_data is not None:
            mock_response.json.return_value = json_data
        else:
            mock_response.json.side_effect = ValueError("No JSON data")

        if status_code >= 400:
            from requests.exceptions import HTTPError
            mock_response.raise_for_status.side_effect = HTTPError(
                f"{status_code} Error",
                response=mock_response
            )
        else:
            mock_response.raise_for_status.return_value = None

        return mock_response

    return _create_response


@pytest.fixture
def mock_session():
    """
    A mock requests.Session for services that accept an injected session.

    Returns:
        MagicMock: Session with request/get/post methods to configure.
    """
    import requests
    return MagicMock(spec=requests.Session)


# =============================================================================
# Data Model Factories
# =============================================================================

@pytest.fixture
def queue_item_factory():
    """
    Factory fixture for creating RepostQueueItem test objects.

    Returns:
        callable: A factory function for creating queue items.
    """
    def _create_item(id: str = "queue-1", recipe_id: str = "recipe-1", **kwargs) -> RepostQueueItem:
        kwargs.setdefault("created_at", datetime(2024, 1, 1, tzinfo=timezone.utc))
        return RepostQueueItem(id=id, recipe_id=recipe_id, **kwargs)

    return _create_item


@pytest.fixture
def recipe_factory():
    """
    Factory fixture for creating RecipeSnapshot test objects.

    Defaults describe a public recipe with a publicly reachable thumbnail.

    Returns:
        callable: A factory function for creating recipe snapshots.
    """
    def _create_recipe(
        id: str = "recipe-1",
        title: str = "Pasta Pesto",
        thumbnail: Optional[str] = PUBLIC_IMAGE_URL,
        is_public: bool = True,
        **kwargs
    ) -> RecipeSnapshot:
        kwargs.setdefault("ingredients", ["200 g pasta", "1 pot pesto"])
        kwargs.setdefault("instructions", ["Kook de pasta", "Meng met pesto"])
        kwargs.setdefault("owner_display_name", "Anna")
        return RecipeSnapshot(id=id, title=title, thumbnail=thumbnail, is_public=is_public, **kwargs)

    return _create_recipe


@pytest.fixture
def notification_factory():
    """
    Factory fixture for creating NotificationRecord test objects.

    Records opt in to comment notifications unless told otherwise.

    Returns:
        callable: A factory function for creating notification records.
    """
    counter = {"n": 0}

    def _create_notification(
        recipient_id: str = "user-a",
        comment_id: Optional[str] = None,
        enabled: Optional[bool] = True,
        **kwargs
    ) -> NotificationRecord:
        counter["n"] += 1
        n = counter["n"]
        kwargs.setdefault("recipient_display_name", f"Display {recipient_id}")
        kwargs.setdefault("recipe_id", "recipe-1")
        kwargs.setdefault("created_at", datetime(2024, 1, 1, tzinfo=timezone.utc) - timedelta(minutes=n))
        return NotificationRecord(
            id=f"notif-{n}",
            comment_id=comment_id or f"comment-{n}",
            recipient_id=recipient_id,
            recipe_comment_notifications=enabled,
            **kwargs
        )

    return _create_notification


# =============================================================================
# Dependency Injection Fixtures
# =============================================================================

class FakeRepostQueue:
    """In-memory implementation of RepostQueueStorage and RecipeStorage.

    Rows are kept as RepostQueueItem objects and updated in place, so tests
    can assert on the final state of each row.
    """

    def __init__(self, items=None, recipes=None):
        self.items: Dict[str, RepostQueueItem] = {item.id: item for item in (items or [])}
        self.recipes: Dict[str, RecipeSnapshot] = {r.id: r for r in (recipes or [])}
        self.fetch_limits: List[int] = []
        self.fail_fetch: Optional[Exception] = None
        self.fail_success_update: Optional[Exception] = None
        self.fail_error_update: Optional[Exception] = None

    def fetch_unposted_queue_items(self, limit: int = 1) -> List[RepostQueueItem]:
        self.fetch_limits.append(limit)
        if self.fail_fetch:
            raise self.fail_fetch
        unposted = [item for item in self.items.values() if not item.is_posted]
        unposted.sort(key=lambda item: item.created_at)
        return unposted[:limit]

    def update_queue_item_success(self, queue_id: str, platform_post_id: str,
                                  platform_post_url: str) -> None:
        if self.fail_success_update:
            raise self.fail_success_update
        item = self.items[queue_id]
        item.is_posted = True
        item.posted_at = datetime.now(timezone.utc)
        item.platform_post_id = platform_post_id
        item.platform_post_url = platform_post_url
        item.error_message = None

    def update_queue_item_error(self, queue_id: str, error_message: str) -> None:
        if self.fail_error_update:
            raise self.fail_error_update
        self.items[queue_id].error_message = error_message

    def fetch_recipe_snapshot(self, recipe_id: str) -> Optional[RecipeSnapshot]:
        return self.recipes.get(recipe_id)


class FakeCaptionService:
    """Caption generator returning a fixed result and recording its calls."""

    def __init__(self, result: Optional[CaptionResult] = None):
        self.result = result or CaptionResult(success=True, caption="Heerlijke pasta! #bonchef")
        self.calls: List[RecipeSnapshot] = []

    def generate_caption(self, recipe: RecipeSnapshot) -> CaptionResult:
        self.calls.append(recipe)
        return self.result


class FakePublisher:
    """Publisher that plays back a scripted list of outcomes.

    Each entry is a PublishResult or an exception to raise. The last entry
    repeats once the script runs out.
    """

    def __init__(self, outcomes=None):
        self.outcomes = list(outcomes or [
            PublishResult(success=True, platform_post_id="ig-1", platform_post_url="https://www.instagram.com/p/ig-1/")
        ])
        self.calls: List[tuple] = []

    def post_recipe(self, image_url: str, caption: str) -> PublishResult:
        self.calls.append((image_url, caption))
        index = min(len(self.calls), len(self.outcomes)) - 1
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeAlertService:
    """Operator alert channel that records subjects and messages."""

    def __init__(self, fail_with: Optional[Exception] = None):
        self.alerts: List[tuple] = []
        self.fail_with = fail_with

    def send_error_notification(self, subject: str, error_message: str) -> None:
        self.alerts.append((subject, error_message))
        if self.fail_with:
            raise self.fail_with


class FakeNotificationStore:
    """In-memory implementation of NotificationStorage."""

    def __init__(self, records=None, comments=None):
        self.records: List[NotificationRecord] = list(records or [])
        self.comments: Dict[str, CommentProjection] = {c.id: c for c in (comments or [])}
        self.comment_lookups: List[List[str]] = []
        self.mark_calls: List[List[str]] = []
        self.fail_fetch: Optional[Exception] = None
        self.fail_mark: Optional[Exception] = None
        self.fail_check: Optional[Exception] = None

    def fetch_unsent_notifications(self) -> List[NotificationRecord]:
        if self.fail_fetch:
            raise self.fail_fetch
        unsent = [r for r in self.records if not r.sent]
        return sorted(unsent, key=lambda r: r.created_at, reverse=True)

    def fetch_comments_by_ids(self, comment_ids: List[str]) -> List[CommentProjection]:
        self.comment_lookups.append(list(comment_ids))
        return [self.comments[cid] for cid in comment_ids if cid in self.comments]

    def mark_notifications_sent(self, notification_ids: List[str]) -> None:
        self.mark_calls.append(list(notification_ids))
        if self.fail_mark:
            raise self.fail_mark
        for record in self.records:
            if record.id in notification_ids:
                record.sent = True

    def check_connection(self) -> None:
        if self.fail_check:
            raise self.fail_check


class FakeUserDirectory:
    """User directory backed by a dict. Values may be exceptions to raise."""

    def __init__(self, emails=None):
        self.emails = dict(emails or {})

    def lookup_user_email(self, user_id: str) -> Optional[str]:
        value = self.emails.get(user_id)
        if isinstance(value, Exception):
            raise value
        return value


class RecordingMailer:
    """Notification mailer that records every email instead of sending it."""

    def __init__(self, fail_for=None, verify_result: Optional[EmailResult] = None):
        self.single: List[dict] = []
        self.summary: List[dict] = []
        self.fail_for = set(fail_for or [])
        self.verify_result = verify_result or EmailResult(success=True)

    def send_comment_notification(self, recipient_email, recipient_name, comment, unsubscribe_url):
        self.single.append({"to": recipient_email, "name": recipient_name,
                            "comment": comment, "unsubscribe_url": unsubscribe_url})
        return self._result(recipient_email)

    def send_comment_summary_notification(self, recipient_email, recipient_name, comments, unsubscribe_url):
        self.summary.append({"to": recipient_email, "name": recipient_name,
                             "comments": list(comments), "unsubscribe_url": unsubscribe_url})
        return self._result(recipient_email)

    def verify_connection(self) -> EmailResult:
        return self.verify_result

    @property
    def total_sent(self) -> int:
        return len(self.single) + len(self.summary)

    def _result(self, recipient_email) -> EmailResult:
        if recipient_email in self.fail_for:
            return EmailResult(success=False, error="Postmark rejected the message")
        return EmailResult(success=True)


@pytest.fixture
def fake_queue():
    """Provide an empty in-memory repost queue."""
    return FakeRepostQueue()


@pytest.fixture
def fake_caption_service():
    """Provide a caption generator that always succeeds."""
    return FakeCaptionService()


@pytest.fixture
def fake_publisher():
    """Provide a publisher that always succeeds."""
    return FakePublisher()


@pytest.fixture
def fake_alert_service():
    """Provide an operator alert channel that records alerts."""
    return FakeAlertService()


@pytest.fixture
def fake_notification_store():
    """Provide an empty in-memory notification queue."""
    return FakeNotificationStore()


@pytest.fixture
def recording_mailer():
    """Provide a notification mailer that records emails."""
    return RecordingMailer()
