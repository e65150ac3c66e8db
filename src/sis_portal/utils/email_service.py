"""Email service: sends invitation mail via SMTP or writes it to the log.

EMAIL_BACKEND chooses the transport:
  - "log" (default): logs the message
  - "smtp": sends via SMTP using the MAIL_* settings
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from sis_portal import config
from sis_portal.core.exceptions import SISError

logger = logging.getLogger(__name__)

INVITATION_SUBJECT = "Invitation to Join SIS as Encoder"


class EmailDeliveryError(SISError):
    """Raised when an email could not be handed to the mail server."""

    def __init__(self, message: str = "Failed to send invitation email"):
        super().__init__(message)


def render_invitation(invite_url: str, ttl_hours: int) -> str:
    return (
        "<h1>Welcome to SIS</h1>"
        "<p>You have been invited to join the Student Information System "
        "as a Grade Encoder.</p>"
        "<p>Click the link below to verify your email and set your password:</p>"
        f'<a href="{invite_url}">Accept Invitation</a>'
        f"<p>This link will expire in {ttl_hours} hours.</p>"
    )


class EmailService:
    @staticmethod
    def send(to: str, subject: str, body_html: str) -> None:
        """Send an email with the configured backend.

        Raises:
            EmailDeliveryError: If the SMTP backend fails.
        """
        if config.EMAIL_BACKEND != "smtp":
            logger.info("EMAIL [to=%s] subject=%s\n%s", to, subject, body_html)
            return
        EmailService._do_send(to, subject, body_html)

    @staticmethod
    def _do_send(to: str, subject: str, body_html: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = config.MAIL_FROM
        msg["To"] = to
        msg.attach(MIMEText(body_html, "html"))

        try:
            with smtplib.SMTP(config.MAIL_SERVER, config.MAIL_PORT) as smtp:
                smtp.starttls()
                if config.MAIL_USERNAME and config.MAIL_PASSWORD:
                    smtp.login(config.MAIL_USERNAME, config.MAIL_PASSWORD)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP send to %s failed: %s", to, e)
            raise EmailDeliveryError() from e

    @staticmethod
    def send_invitation(email: str, token: str) -> None:
        invite_url = config.get_invite_url(token)
        EmailService.send(
            email,
            INVITATION_SUBJECT,
            render_invitation(invite_url, config.INVITATION_TTL_HOURS),
        )
