# =============================================================================
# Email Delivery Integration (AWS SES)
# =============================================================================
#
# Setup:
#   1. Verify your sending email in AWS SES console
#   2. Set env vars:
#      - AWS_SES_FROM_EMAIL=noreply@yourdomain.com
#      - AWS_ACCESS_KEY_ID=...
#      - AWS_SECRET_ACCESS_KEY=...
#      - AWS_REGION=us-east-1
#
# Without credentials the service logs what it would have sent and reports
# the message as not delivered.
#
# =============================================================================

import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from esap.config import get_settings

logger = logging.getLogger(__name__)


# =============================================================================
# Email Templates
# =============================================================================

TEMPLATES = {
    "password_reset_pin": {
        "subject": "Your Password Reset PIN",
        "html": """
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <p>Hello,</p>
            <p>Your 4-digit PIN for password reset is:</p>
            <h2 style="letter-spacing: 6px;">{pin}</h2>
            <p style="color: #666; font-size: 14px;">This PIN will expire in {expires_minutes} minutes.</p>
            <p style="color: #666; font-size: 14px;">If you didn't request this, you can safely ignore this email.</p>
        </body>
        </html>
        """,
        "text": """
Hello,

Your 4-digit PIN for password reset is: {pin}

This PIN will expire in {expires_minutes} minutes.

If you didn't request this, you can safely ignore this email.
        """,
    },

    "welcome": {
        "subject": "Welcome to ESAP!",
        "html": """
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #333;">Welcome to ESAP!</h1>
            <p>Your account for {email} is ready. Sign in at <a href="{app_url}">{app_url}</a>.</p>
        </body>
        </html>
        """,
        "text": """
Welcome to ESAP!

Your account for {email} is ready. Sign in at {app_url}
        """,
    },
}


# =============================================================================
# Email Service
# =============================================================================

class EmailService:
    """Send emails via AWS SES."""

    def __init__(self):
        self.settings = get_settings()
        self._client = None

    @property
    def client(self):
        """Lazy-load SES client."""
        if self._client is None and self.settings.use_aws:
            self._client = boto3.client(
                'ses',
                region_name=self.settings.aws_region,
                aws_access_key_id=self.settings.aws_access_key_id,
                aws_secret_access_key=self.settings.aws_secret_access_key,
            )
        return self._client

    @property
    def is_configured(self) -> bool:
        """Check if email sending is properly configured."""
        return self.settings.use_aws and bool(self.settings.aws_ses_from_email)

    async def send(
        self,
        to: str,
        template: str,
        data: dict[str, Any] | None = None,
        subject_override: str | None = None,
    ) -> bool:
        """
        Send an email using a template.

        Args:
            to: Recipient email address
            template: Template name (e.g., "password_reset_pin")
            data: Template variables to substitute
            subject_override: Override the template's subject

        Returns:
            True if sent successfully, False otherwise
        """
        if template not in TEMPLATES:
            logger.error(f"Unknown email template: {template}")
            return False

        tpl = TEMPLATES[template]
        data = data or {}

        if not self.is_configured:
            logger.warning(f"Email not configured - would send '{template}' to {to}")
            # In dev, log the email content for debugging
            if not self.settings.is_production:
                logger.info(f"Email content: {tpl['text'].format(**data)}")
            return False

        try:
            subject = subject_override or tpl["subject"]
            html_body = tpl["html"].format(**data)
            text_body = tpl["text"].format(**data)

            response = self.client.send_email(
                Source=self.settings.aws_ses_from_email,
                Destination={"ToAddresses": [to]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": {
                        "Html": {"Data": html_body, "Charset": "UTF-8"},
                        "Text": {"Data": text_body, "Charset": "UTF-8"},
                    },
                },
            )

            logger.info(f"Email sent to {to}: {template} (MessageId: {response['MessageId']})")
            return True

        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return False
        except KeyError as e:
            logger.error(f"Missing template variable for '{template}': {e}")
            return False

    async def send_password_reset_pin(self, email: str, pin: str, expires_minutes: int) -> bool:
        """Send the one-time password reset PIN."""
        return await self.send(
            to=email,
            template="password_reset_pin",
            data={"pin": pin, "expires_minutes": expires_minutes},
        )

    async def send_welcome(self, email: str) -> bool:
        """Send welcome email after registration."""
        app_url = self.settings.cors_origins_list[0] if self.settings.cors_origins_list else ""
        return await self.send(
            to=email,
            template="welcome",
            data={"email": email, "app_url": app_url},
        )


# Global instance
_email_service: EmailService | None = None


def get_email_service() -> EmailService:
    """Get the email service singleton."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
