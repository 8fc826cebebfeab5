"""
Instagram Service Module

This module handles publishing to Instagram through the Meta Graph API.
A post is published in three steps: create a media container, wait until
Instagram has processed it, then publish the container.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from config import settings
from data.models import PublishResult
from utils.exceptions import PublishingError
from utils.helpers import safe_get
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class InstagramConfig:
    """Credentials and endpoint for the Graph API."""
    facebook_page_id: str
    system_user_access_token: str
    api_version: str = "v23.0"
    base_url: str = "https://graph.facebook.com"
    timeout: int = 30

    @classmethod
    def from_settings(cls) -> "InstagramConfig":
        return cls(
            facebook_page_id=settings.FACEBOOK_PAGE_ID,
            system_user_access_token=settings.SYSTEM_USER_ACCESS_TOKEN,
            api_version=settings.INSTAGRAM_API_VERSION,
            base_url=settings.INSTAGRAM_BASE_URL,
            timeout=settings.INSTAGRAM_REQUEST_TIMEOUT,
        )


class InstagramService:
    """Service for posting recipe images to an Instagram business account."""

    def __init__(self, config: InstagramConfig, session: Optional[requests.Session] = None,
                 status_wait: Optional[float] = None, status_checks: Optional[int] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self.session = session or requests.Session()
        self.status_wait = settings.CONTAINER_STATUS_WAIT if status_wait is None else status_wait
        self.status_checks = status_checks or settings.CONTAINER_STATUS_CHECKS
        self._sleep = sleep
        self.instagram_user_id: Optional[str] = None

    @property
    def _api_root(self) -> str:
        return f"{self.config.base_url}/{self.config.api_version}"

    def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                 data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        params = dict(params or {})
        if data is None:
            params["access_token"] = self.config.system_user_access_token
        else:
            data = dict(data)
            data["access_token"] = self.config.system_user_access_token

        response = self.session.request(
            method,
            f"{self._api_root}/{path}",
            params=params,
            data=data,
            timeout=self.config.timeout
        )

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if not response.ok:
            message = safe_get(payload, "error", "message") or f"HTTP {response.status_code}"
            raise PublishingError(f"Instagram API error: {message}")

        return payload

    def initialize(self) -> str:
        """
        Resolve the Instagram business account id linked to the Facebook page.

        Returns:
            str: The Instagram business account id

        Raises:
            PublishingError: If the page has no linked Instagram business account
        """
        if self.instagram_user_id:
            return self.instagram_user_id

        data = self._request("GET", self.config.facebook_page_id,
                             params={"fields": "instagram_business_account"})
        account_id = safe_get(data, "instagram_business_account", "id")
        if not account_id:
            raise PublishingError("No Instagram Business Account found for this Facebook Page")

        self.instagram_user_id = account_id
        logger.info(f"Instagram service initialized with Business ID: {account_id}")
        return account_id

    def create_media_container(self, image_url: str, caption: str) -> str:
        """Create a media container and return its creation id."""
        user_id = self.initialize()
        data = self._request("POST", f"{user_id}/media",
                             data={"image_url": image_url, "caption": caption})
        creation_id = data.get("id")
        if not creation_id:
            raise PublishingError("No creation ID returned from Instagram API")
        return creation_id

    def check_container_status(self, creation_id: str) -> Optional[str]:
        """Return the container's status_code (IN_PROGRESS, FINISHED, ERROR, ...)."""
        data = self._request("GET", creation_id, params={"fields": "status_code"})
        return data.get("status_code")

    def wait_for_container(self, creation_id: str) -> None:
        """
        Poll the container until it is ready to publish.

        Raises:
            PublishingError: If the container errors or is still not ready after the last check
        """
        status = None
        for check in range(1, self.status_checks + 1):
            self._sleep(self.status_wait)
            status = self.check_container_status(creation_id)
            logger.debug(f"Container {creation_id} status ({check}/{self.status_checks}): {status}")
            if status == "FINISHED":
                return
            if status in ("ERROR", "EXPIRED"):
                break

        raise PublishingError(f"Container not ready. Status: {status}")

    def publish_media_container(self, creation_id: str) -> PublishResult:
        """Publish a processed container."""
        user_id = self.initialize()
        data = self._request("POST", f"{user_id}/media_publish",
                             data={"creation_id": creation_id})
        post_id = data.get("id")
        if not post_id:
            raise PublishingError("No media ID returned from media_publish")

        return PublishResult(
            success=True,
            platform_post_id=post_id,
            platform_post_url=f"https://www.instagram.com/p/{post_id}/"
        )

    def post_recipe(self, image_url: str, caption: str) -> PublishResult:
        """
        Post a recipe image with its caption, running the complete container flow.

        Args:
            image_url: Publicly reachable image URL
            caption: Caption text

        Returns:
            PublishResult: Post id and URL on success, or the error message on failure
        """
        try:
            logger.info("Creating media container...")
            creation_id = self.create_media_container(image_url, caption)

            logger.info("Waiting for container processing...")
            self.wait_for_container(creation_id)

            logger.info("Publishing to Instagram...")
            result = self.publish_media_container(creation_id)
            logger.info(f"Successfully posted to Instagram: {result.platform_post_url}")
            return result

        except (PublishingError, requests.RequestException) as e:
            logger.error(f"Error posting recipe to Instagram: {e}")
            return PublishResult(success=False, error=str(e))
