"""
Alert Service Module

This module sends error reports about the repost job to the operator
through Zoho Mail SMTP over an implicit TLS connection.
"""

import html
import smtplib
import ssl
from dataclasses import dataclass
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import formataddr

from config import settings
from utils.logger import get_logger

logger = get_logger(__name__)

SUBJECT_PREFIX = "[Instagram Repost Job]"
SENDER_NAME = "Bonchef Instagram Job"


@dataclass
class AlertEmailConfig:
    """SMTP credentials and the operator mailbox."""
    smtp_user: str
    smtp_password: str
    support_email: str
    smtp_host: str = "smtp.zoho.eu"
    smtp_port: int = 465
    timeout: int = 30

    @classmethod
    def from_settings(cls) -> "AlertEmailConfig":
        return cls(
            smtp_user=settings.ZOHO_USER,
            smtp_password=settings.ZOHO_PASS,
            support_email=settings.SUPPORT_EMAIL,
            smtp_host=settings.ZOHO_SMTP_HOST,
            smtp_port=settings.ZOHO_SMTP_PORT,
            timeout=settings.SMTP_TIMEOUT,
        )


class AlertService:
    """Service for operator error emails."""

    def __init__(self, config: AlertEmailConfig):
        self.config = config

    def send_error_notification(self, subject: str, error_message: str) -> None:
        """
        Email an error report to the support mailbox.

        Args:
            subject: Short description of what failed
            error_message: The error text

        Raises:
            smtplib.SMTPException, OSError: If the email could not be delivered
        """
        message = EmailMessage()
        message["From"] = formataddr((SENDER_NAME, self.config.smtp_user))
        message["To"] = self.config.support_email
        message["Subject"] = f"{SUBJECT_PREFIX} {subject}"
        message.set_content(f"{subject}\n\n{error_message}")
        message.add_alternative(self.build_error_email_body(subject, error_message), subtype="html")

        self._send(message)

    def build_error_email_body(self, subject: str, error_message: str) -> str:
        """Build the HTML body of an error report."""
        timestamp = datetime.now(timezone.utc).isoformat()

        return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>Instagram Repost Job Error</title>
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
        <div style="background-color: #f8f9fa; padding: 20px; border-radius: 5px;">
            <h2>Instagram Repost Job Error</h2>
            <p><strong>Time:</strong> {timestamp}</p>
            <p><strong>Subject:</strong> {html.escape(subject)}</p>
        </div>
        <div style="background-color: #f8d7da; border: 1px solid #f5c6cb; padding: 15px; border-radius: 5px; margin: 20px 0;">
            <h3>Error Details</h3>
            <pre>{html.escape(error_message)}</pre>
        </div>
        <div>
            <h3>What to do next:</h3>
            <ul>
                <li>Check the Instagram repost job logs for more details</li>
                <li>Verify Instagram API credentials and permissions</li>
                <li>Check if the recipe data is valid and accessible</li>
                <li>Review the recipe_repost_queue table for failed posts</li>
            </ul>
        </div>
        <p style="font-size: 12px; color: #666;">This is an automated message from the Bonchef Instagram Repost Job system.</p>
    </div>
</body>
</html>"""

    def _send(self, message: EmailMessage) -> None:
        context = ssl.create_default_context()
        context.minimum_version = ssl.TLSVersion.TLSv1_2

        try:
            with smtplib.SMTP_SSL(self.config.smtp_host, self.config.smtp_port,
                                  context=context, timeout=self.config.timeout) as smtp:
                smtp.login(self.config.smtp_user, self.config.smtp_password)
                smtp.send_message(message)
            logger.info(f"Alert email sent to {message['To']}: {message['Subject']}")
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send alert email: {e}")
            logger.info(f"Undelivered alert - Subject: {message['Subject']}")
            raise
