"""Notification service — outbound email for invitation and reset tokens."""

import logging
import smtplib
from email.mime.text import MIMEText

from crm.core.config import Settings, settings as default_settings

logger = logging.getLogger("crm.notifications")


class NotificationService:
    """Sends account emails over SMTP.

    Delivery is best effort: failures are logged and reported as ``False``,
    never raised into the calling account operation.
    """

    def __init__(self, settings: Settings = default_settings):
        self.settings = settings

    def send_invitation(self, email: str, token: str) -> bool:
        link = f"{self.settings.FRONTEND_URL}/confirmation?token={token}"
        body = (
            "Hello!\n\n"
            f"You have been invited to {self.settings.APP_NAME}.\n"
            f"Complete your registration here: {link}\n\n"
            f"This link expires in {self.settings.REGISTRATION_TOKEN_EXPIRY_DAYS} days.\n"
        )
        return self._send(email, "Team member invitation", body)

    def send_password_reset(self, email: str, token: str) -> bool:
        link = f"{self.settings.FRONTEND_URL}/reset-password?token={token}"
        body = (
            "Hello!\n\n"
            "We received a request to reset your password.\n"
            f"Choose a new password here: {link}\n\n"
            "If you did not ask for this, you can ignore this email.\n"
        )
        return self._send(email, "Set your new password", body)

    def _send(self, to_email: str, subject: str, body: str) -> bool:
        if not self.settings.SMTP_HOST:
            logger.info("SMTP not configured, skipping '%s' email to %s", subject, to_email)
            return False

        message = MIMEText(body, "plain")
        message["From"] = self.settings.MAIL_FROM
        message["To"] = to_email
        message["Subject"] = subject

        try:
            with smtplib.SMTP(self.settings.SMTP_HOST, self.settings.SMTP_PORT) as server:
                if self.settings.SMTP_USE_TLS:
                    server.starttls()
                if self.settings.SMTP_USERNAME:
                    server.login(self.settings.SMTP_USERNAME, self.settings.SMTP_PASSWORD)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Error sending '%s' email to %s: %s", subject, to_email, e)
            return False

        logger.info("Sent '%s' email to %s", subject, to_email)
        return True
