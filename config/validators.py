"""
Configuration Validation for Recipe Social Jobs

This module contains configuration validation logic for both workers.
Every problem is collected first and reported in a single ConfigurationError.
"""

from typing import List

from utils.exceptions import ConfigurationError
from utils.logger import get_logger

logger = get_logger(__name__)


def _check_database(settings, errors: List[str]) -> None:
    required_vars = [
        ("DB_SERVER", settings.DB_SERVER),
        ("DB_NAME", settings.DB_NAME),
        ("DB_USER", settings.DB_USER),
        ("DB_PASSWORD", settings.DB_PASSWORD)
    ]

    for var_name, var_value in required_vars:
        if not var_value:
            errors.append(f"Missing required environment variable: {var_name}")

    if not settings.DB_CONNECTION_STRING:
        errors.append("Database connection string could not be built. Check DB_SERVER, DB_NAME, DB_USER, DB_PASSWORD.")


def _check_integers(settings, names: List[str], errors: List[str]) -> None:
    for var_name in names:
        raw_value = settings.INVALID_INT_SETTINGS.get(var_name)
        if raw_value is not None:
            errors.append(f"{var_name} must be an integer, got {raw_value!r}")


def _raise_if_errors(errors: List[str]) -> None:
    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)


def validate_repost_settings():
    """
    Validate the settings needed by the repost dispatcher.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    # Import settings here to avoid circular imports
    from config import settings

    errors = []
    _check_database(settings, errors)

    for var_name in settings.REPOST_REQUIRED_VARS:
        if not getattr(settings, var_name, None):
            errors.append(f"Missing required environment variable: {var_name}")

    _check_integers(settings, ["RETRY_ATTEMPTS", "RETRY_DELAY_MS", "REPOST_BATCH_SIZE", "ZOHO_SMTP_PORT"], errors)

    numeric_validations = [
        ("RETRY_ATTEMPTS", settings.RETRY_ATTEMPTS, 1, 10),
        ("RETRY_DELAY_MS", settings.RETRY_DELAY_MS, 1000, 60000),
        ("REPOST_BATCH_SIZE", settings.REPOST_BATCH_SIZE, 1, 50),
        ("MAX_CAPTION_LENGTH", settings.MAX_CAPTION_LENGTH, 100, 2200),
    ]

    for name, value, min_val, max_val in numeric_validations:
        if value < min_val or value > max_val:
            errors.append(f"{name} must be between {min_val} and {max_val}, got {value}")

    timeout_settings = [
        ("INSTAGRAM_REQUEST_TIMEOUT", settings.INSTAGRAM_REQUEST_TIMEOUT),
        ("CONTAINER_STATUS_CHECKS", settings.CONTAINER_STATUS_CHECKS),
        ("SMTP_TIMEOUT", settings.SMTP_TIMEOUT),
    ]

    for name, value in timeout_settings:
        if value <= 0:
            errors.append(f"{name} must be positive, got {value}")

    # 0 polls the container status without waiting
    if settings.CONTAINER_STATUS_WAIT < 0:
        errors.append(f"CONTAINER_STATUS_WAIT must not be negative, got {settings.CONTAINER_STATUS_WAIT}")

    _raise_if_errors(errors)
    return True


def validate_notification_settings():
    """
    Validate the settings needed by the notification aggregator.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    from config import settings

    errors = []
    _check_database(settings, errors)

    for var_name in settings.NOTIFICATION_REQUIRED_VARS:
        if not getattr(settings, var_name, None):
            errors.append(f"Missing required environment variable: {var_name}")

    if not settings.APP_BASE_URL:
        errors.append("APP_BASE_URL could not be determined")
    elif settings.APP_ENV != "development" and not settings.APP_BASE_URL.startswith("https://"):
        logger.warning(f"APP_BASE_URL is not https outside development: {settings.APP_BASE_URL}")

    if settings.POSTMARK_TIMEOUT <= 0:
        errors.append(f"POSTMARK_TIMEOUT must be positive, got {settings.POSTMARK_TIMEOUT}")

    _raise_if_errors(errors)
    return True


def get_config_summary() -> dict:
    """
    Returns a summary of current configuration (without sensitive values).
    Useful for logging startup state.
    """
    from config import settings

    return {
        "environment": settings.APP_ENV,
        "app_base_url": settings.APP_BASE_URL,
        "database": {
            "server": settings.DB_SERVER[:20] + "..." if settings.DB_SERVER and len(settings.DB_SERVER) > 20 else settings.DB_SERVER,
            "database": settings.DB_NAME,
        },
        "instagram": {
            "configured": bool(settings.FACEBOOK_PAGE_ID and settings.SYSTEM_USER_ACCESS_TOKEN),
            "api_version": settings.INSTAGRAM_API_VERSION,
        },
        "email": {
            "operator_alerts": bool(settings.ZOHO_USER and settings.ZOHO_PASS and settings.SUPPORT_EMAIL),
            "postmark": bool(settings.POSTMARK_API_KEY),
        },
        "job_settings": {
            "retry_attempts": settings.RETRY_ATTEMPTS,
            "retry_delay_ms": settings.RETRY_DELAY_MS,
            "batch_size": settings.REPOST_BATCH_SIZE,
        }
    }
