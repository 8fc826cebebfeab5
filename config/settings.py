"""
Configuration Settings for Recipe Social Jobs

This module centralizes all configuration settings for the repost dispatcher
and the notification aggregator, including environment variables, API
credentials, and application constants.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Determine the application root directory
APP_ROOT = Path(__file__).resolve().parent.parent

# Load environment variables from .env file
load_dotenv(dotenv_path=os.path.join(APP_ROOT, '.env'))


# Integer variables whose raw value could not be parsed, reported by the validators
INVALID_INT_SETTINGS = {}


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        INVALID_INT_SETTINGS[name] = value
        return default


# =============================================================================
# Environment
# =============================================================================

APP_ENV = os.getenv("APP_ENV", "production").lower()

# Base URL used for recipe links and unsubscribe links in notification emails
APP_BASE_URL = os.getenv("APP_BASE_URL") or (
    "http://localhost:3000" if APP_ENV == "development" else "https://app.bonchef.io"
)

# Host serving public storage assets (email logo)
ASSET_HOST = os.getenv("ASSET_HOST", "http://127.0.0.1:54321")

# =============================================================================
# Database Settings
# =============================================================================

DB_DRIVER = os.getenv("DB_DRIVER", "PostgreSQL Unicode")
DB_SERVER = os.getenv("DB_SERVER", "")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "")
DB_USER = os.getenv("DB_USER", "")
DB_PASSWORD = os.getenv("DB_PASSWORD", "")

# Build connection string safely (validation happens in validate_settings())
DB_CONNECTION_STRING = (
    f"DRIVER={{{DB_DRIVER}}};"
    f"SERVER={DB_SERVER};"
    f"PORT={DB_PORT};"
    f"DATABASE={DB_NAME};"
    f"UID={DB_USER};"
    f"PWD={DB_PASSWORD};"
    f"SSLmode=require;"
) if all([DB_SERVER, DB_NAME, DB_USER, DB_PASSWORD]) else ""

# =============================================================================
# Instagram (Meta Graph API) Settings
# =============================================================================

FACEBOOK_PAGE_ID = os.getenv("FACEBOOK_PAGE_ID")
SYSTEM_USER_ACCESS_TOKEN = os.getenv("SYSTEM_USER_ACCESS_TOKEN")
INSTAGRAM_API_VERSION = os.getenv("INSTAGRAM_API_VERSION", "v23.0")
INSTAGRAM_BASE_URL = "https://graph.facebook.com"
INSTAGRAM_REQUEST_TIMEOUT = 30       # Seconds per Graph API request
CONTAINER_STATUS_WAIT = 2            # Seconds between media container status checks
CONTAINER_STATUS_CHECKS = 5          # Maximum number of status checks before giving up

# =============================================================================
# AI Caption Settings
# =============================================================================

GOOGLE_AI_API_KEY = os.getenv("GOOGLE_AI_API_KEY")

DEFAULT_AI_MODELS = [
    'gemini-2.0-flash',
    'gemini-2.0-flash-lite',
    'gemini-2.5-flash-lite',
    'gemini-2.5-flash'
]

MAX_CAPTION_LENGTH = 2200            # Instagram caption character limit
CAPTION_TEMPERATURE = 0.7
CAPTION_MAX_OUTPUT_TOKENS = 1000

# =============================================================================
# Email Settings
# =============================================================================

# Operator alerts (Zoho Mail SMTP over SSL)
ZOHO_USER = os.getenv("ZOHO_USER")
ZOHO_PASS = os.getenv("ZOHO_PASS")
ZOHO_SMTP_HOST = os.getenv("ZOHO_SMTP_HOST", "smtp.zoho.eu")
ZOHO_SMTP_PORT = _get_int("ZOHO_SMTP_PORT", 465)
SUPPORT_EMAIL = os.getenv("SUPPORT_EMAIL")
SMTP_TIMEOUT = 30

# Comment notifications (Postmark)
POSTMARK_API_KEY = os.getenv("POSTMARK_API_KEY")
POSTMARK_FROM_EMAIL = os.getenv("POSTMARK_FROM_EMAIL", "notifications@bonchef.io")
POSTMARK_API_URL = "https://api.postmarkapp.com"
POSTMARK_MESSAGE_STREAM = "outbound"
POSTMARK_TIMEOUT = 15

NOTIFICATION_TYPE = "recipe_comment"

# =============================================================================
# Job Settings
# =============================================================================

RETRY_ATTEMPTS = _get_int("RETRY_ATTEMPTS", 3)
RETRY_DELAY_MS = _get_int("RETRY_DELAY_MS", 5000)
REPOST_BATCH_SIZE = _get_int("REPOST_BATCH_SIZE", 1)

# =============================================================================
# Required Variables per Worker
# =============================================================================

REPOST_REQUIRED_VARS = [
    "FACEBOOK_PAGE_ID",
    "SYSTEM_USER_ACCESS_TOKEN",
    "GOOGLE_AI_API_KEY",
    "ZOHO_USER",
    "ZOHO_PASS",
    "SUPPORT_EMAIL",
]

NOTIFICATION_REQUIRED_VARS = [
    "POSTMARK_API_KEY",
]
