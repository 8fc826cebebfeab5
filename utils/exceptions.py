"""
Custom Exception Classes for Recipe Social Jobs

This module defines custom exceptions for better error handling and
categorization of failures across both batch workers.
"""


class RecipeJobsError(Exception):
    """Base exception for all Recipe Social Jobs errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(RecipeJobsError):
    """Raised when configuration validation fails or required settings are missing."""
    pass


# =============================================================================
# Repost Errors
# =============================================================================

class RepostError(RecipeJobsError):
    """Base exception for failures of a single repost queue item."""
    pass


class RecipeNotFoundError(RepostError):
    """Raised when the recipe referenced by a queue item does not exist."""
    pass


class RecipeNotPublicError(RepostError):
    """Raised when the recipe referenced by a queue item is private."""
    pass


class ImageNotAccessibleError(RepostError):
    """Raised when the recipe thumbnail is not publicly reachable."""
    pass


class CaptionGenerationError(RepostError):
    """Raised when the caption could not be generated."""
    pass


class PublishingError(RepostError):
    """Raised when publishing to Instagram failed after all retries."""
    pass


# =============================================================================
# Notification Errors
# =============================================================================

class NotificationError(RecipeJobsError):
    """Base exception for failures of a single notification recipient."""
    pass


class RecipientLookupError(NotificationError):
    """Raised when the recipient's email address cannot be resolved."""
    pass


class NoValidCommentsError(NotificationError):
    """Raised when none of a recipient's comments could be loaded."""
    pass


class EmailDeliveryError(NotificationError):
    """Raised when the notification email could not be sent."""
    pass


# =============================================================================
# Database Errors
# =============================================================================

class DatabaseError(RecipeJobsError):
    """Base exception for database-related errors."""
    pass


class ConnectionError(DatabaseError):
    """Raised when database connection fails."""
    pass


class QueryError(DatabaseError):
    """Raised when a database query fails."""
    pass
