"""
Email Service Module

This module sends comment notification emails to recipe owners through the
Postmark HTTP API. It renders a single-comment email and a digest email,
both in Dutch, each with an HTML and a plain text body.
"""

import html
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from config import settings
from data.models import CommentDisplayData, EmailResult
from utils.helpers import display_name_or_default
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_RECIPIENT_NAME = "Chef"
DEFAULT_COMMENTER_NAME = "Iemand"
BRAND_COLOR = "#385940"


@dataclass
class PostmarkConfig:
    """Postmark credentials and sender."""
    api_key: str
    from_email: str = "notifications@bonchef.io"
    api_url: str = "https://api.postmarkapp.com"
    message_stream: str = "outbound"
    asset_host: str = "http://127.0.0.1:54321"
    timeout: int = 15

    @classmethod
    def from_settings(cls) -> "PostmarkConfig":
        return cls(
            api_key=settings.POSTMARK_API_KEY,
            from_email=settings.POSTMARK_FROM_EMAIL,
            api_url=settings.POSTMARK_API_URL,
            message_stream=settings.POSTMARK_MESSAGE_STREAM,
            asset_host=settings.ASSET_HOST,
            timeout=settings.POSTMARK_TIMEOUT,
        )


class EmailService:
    """Service for sending comment notifications via Postmark."""

    def __init__(self, config: PostmarkConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-Postmark-Server-Token": self.config.api_key or "",
        }

    def send_comment_notification(self, recipient_email: str, recipient_name: str,
                                  comment: CommentDisplayData, unsubscribe_url: str) -> EmailResult:
        """
        Send an email about one new comment on the recipient's recipe.

        Args:
            recipient_email: Delivery address
            recipient_name: Display name of the recipe owner
            comment: The comment to show
            unsubscribe_url: Link that disables these notifications

        Returns:
            EmailResult: success, or the failure reason
        """
        display_name = display_name_or_default(recipient_name, DEFAULT_RECIPIENT_NAME)
        commenter = display_name_or_default(comment.commenter_name, DEFAULT_COMMENTER_NAME)
        title = comment.recipe_title or ""

        body = f"""
            <p style="font-size: 16px; line-height: 1.6; color: #333; text-align: center;">
                Hoi {html.escape(display_name)},
            </p>
            <p style="font-size: 16px; line-height: 1.6; color: #333; text-align: center;">
                <strong>{html.escape(commenter)}</strong> heeft gereageerd op je recept
                <strong>"{html.escape(title)}"</strong>:
            </p>
            <div style="margin: 20px 0; padding: 20px; background: #f8f9fa; border-left: 4px solid {BRAND_COLOR}; border-radius: 4px;">
                <p style="font-style: italic; margin: 0; color: #333; font-size: 16px;">"{html.escape(comment.comment_text)}"</p>
            </div>
            {self._button(comment.recipe_url)}
        """

        text = (
            f"Hoi {display_name},\n\n"
            f"{commenter} heeft gereageerd op je recept \"{title}\":\n\n"
            f"\"{comment.comment_text}\"\n\n"
            f"Bekijk de reactie: {comment.recipe_url}\n\n"
            f"Geen meldingen meer ontvangen? Klik hier: {unsubscribe_url}\n\n"
            "Groeten,\nBonchef Team"
        )

        try:
            self._send(
                to=recipient_email,
                subject=f"Je hebt een nieuwe reactie \"{title}\"",
                html_body=self._layout("Je hebt een nieuwe reactie op je recept!", body, unsubscribe_url),
                text_body=text,
                unsubscribe_url=unsubscribe_url,
            )
            return EmailResult(success=True)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Failed to send email: {e}")
            return EmailResult(success=False, error=f"Failed to send email: {e}")

    def send_comment_summary_notification(self, recipient_email: str, recipient_name: str,
                                          comments: List[CommentDisplayData],
                                          unsubscribe_url: str) -> EmailResult:
        """
        Send a digest email listing several new comments.

        Args:
            recipient_email: Delivery address
            recipient_name: Display name of the recipe owner
            comments: The comments to list, in display order
            unsubscribe_url: Link that disables these notifications

        Returns:
            EmailResult: success, or the failure reason
        """
        display_name = display_name_or_default(recipient_name, DEFAULT_RECIPIENT_NAME)
        count = len(comments)
        plural = "s" if count > 1 else ""
        heading = f"Je hebt {count} nieuwe reacties!"

        items = "".join(
            f"""
            <li style="margin-bottom: 15px; padding: 15px; background: #f8f9fa; border-left: 4px solid {BRAND_COLOR}; border-radius: 4px;">
                <div style="margin-bottom: 8px;">
                    <strong style="color: {BRAND_COLOR};">{html.escape(display_name_or_default(c.commenter_name, DEFAULT_COMMENTER_NAME))}</strong> op
                    <strong>"{html.escape(c.recipe_title or '')}"</strong>:
                </div>
                <div style="font-style: italic; color: #333; font-size: 14px;">"{html.escape(c.comment_text)}"</div>
                {self._button(c.recipe_url)}
            </li>"""
            for c in comments
        )

        body = f"""
            <p style="font-size: 16px; line-height: 1.6; color: #333; text-align: center;">
                Hoi {html.escape(display_name)},
            </p>
            <p style="font-size: 16px; line-height: 1.6; color: #333; text-align: center;">
                Je hebt {count} nieuwe reactie{plural} op je recepten:
            </p>
            <ul style="list-style: none; padding: 0; margin: 20px 0;">{items}
            </ul>
        """

        text_lines = "\n".join(
            f"* {display_name_or_default(c.commenter_name, DEFAULT_COMMENTER_NAME)} op "
            f"\"{c.recipe_title or ''}\": \"{c.comment_text}\""
            for c in comments
        )
        text = (
            f"Hoi {display_name},\n\n"
            f"Je hebt {count} nieuwe reactie{plural} op je recepten:\n\n"
            f"{text_lines}\n\n"
            f"Geen meldingen meer ontvangen? Klik hier: {unsubscribe_url}\n\n"
            "Groeten,\nBonchef Team"
        )

        try:
            self._send(
                to=recipient_email,
                subject=heading,
                html_body=self._layout(heading, body, unsubscribe_url),
                text_body=text,
                unsubscribe_url=unsubscribe_url,
            )
            return EmailResult(success=True)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Failed to send summary email: {e}")
            return EmailResult(success=False, error=f"Failed to send summary email: {e}")

    def verify_connection(self) -> EmailResult:
        """Verify the Postmark server token by fetching the server details."""
        try:
            response = self.session.get(
                f"{self.config.api_url}/server",
                headers=self._headers,
                timeout=self.config.timeout
            )
            response.raise_for_status()
            return EmailResult(success=True)
        except requests.RequestException as e:
            logger.error(f"Postmark connection verification failed: {e}")
            return EmailResult(success=False, error=f"Postmark connection failed: {e}")

    def _send(self, to: str, subject: str, html_body: str, text_body: str,
              unsubscribe_url: str) -> Dict[str, Any]:
        payload = {
            "From": self.config.from_email,
            "To": to,
            "Subject": subject,
            "HtmlBody": html_body,
            "TextBody": text_body,
            "MessageStream": self.config.message_stream,
            "Headers": [
                {"Name": "List-Unsubscribe", "Value": f"<{unsubscribe_url}>"},
                {"Name": "Precedence", "Value": "bulk"},
                {"Name": "X-Auto-Response-Suppress", "Value": "OOF, AutoReply"},
            ],
        }

        response = self.session.post(
            f"{self.config.api_url}/email",
            json=payload,
            headers=self._headers,
            timeout=self.config.timeout
        )
        response.raise_for_status()

        data = response.json()
        # Postmark reports rejected messages with a non-zero ErrorCode
        if data.get("ErrorCode"):
            raise ValueError(f"Postmark error {data.get('ErrorCode')}: {data.get('Message')}")

        logger.info(f"Email sent to {to}: {data.get('MessageID')}")
        return data

    def _button(self, url: str) -> str:
        return f"""<div style="text-align: center; margin: 30px 0;">
                <a href="{html.escape(url, quote=True)}" style="background: {BRAND_COLOR}; color: #ffffff; padding: 12px 24px; text-decoration: none; border-radius: 6px; font-weight: 500; display: inline-block; font-size: 16px;">Bekijk reactie</a>
            </div>"""

    def _layout(self, heading: str, body: str, unsubscribe_url: str) -> str:
        logo_url = f"{self.config.asset_host}/storage/v1/object/public/email-assets/Logo-groen-no-text.png"
        return f"""<!DOCTYPE html>
<html lang="nl">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(heading)}</title>
</head>
<body style="margin: 0; padding: 0; background-color: #f4f4f4; font-family: 'Montserrat', Arial, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: #f4f4f4;">
        <tr>
            <td align="center" style="padding: 20px 0;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="600" style="background-color: #ffffff; border-radius: 8px;">
                    <tr>
                        <td style="padding: 40px 30px;">
                            <div style="text-align: center; margin-bottom: 30px;">
                                <img src="{logo_url}" alt="Bonchef" style="height: 80px; width: auto; border: 0;">
                            </div>
                            <h1 style="color: {BRAND_COLOR}; margin: 0 0 20px 0; font-size: 30px; text-align: center; font-family: 'Lora', serif;">
                                {html.escape(heading)}
                            </h1>
                            {body}
                            <hr style="margin: 40px 0; border: none; border-top: 1px solid #e9ecef;">
                            <p style="font-size: 12px; color: #6c757d; text-align: center;">
                                Geen meldingen meer ontvangen over reacties op je recepten?
                                <a href="{html.escape(unsubscribe_url, quote=True)}" style="color: {BRAND_COLOR}; text-decoration: underline;">Klik hier om je af te melden</a>.
                            </p>
                            <p style="font-size: 12px; color: #6c757d; text-align: center;">
                                Deze e-mail is verzonden door Bonchef.
                                <a href="https://app.bonchef.io" style="color: {BRAND_COLOR};">Bezoek onze website</a>
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""
