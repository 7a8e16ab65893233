"""
Email Service for password reset notifications
"""
import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from html import escape
from typing import Optional

from pydantic import BaseModel

from .config import Settings
from .errors import AuthError, AuthErrorKind
from .models import User

logger = logging.getLogger(__name__)


class EmailMessage(BaseModel):
    from_address: str
    to: str
    subject: str
    text: str
    html: Optional[str] = None


class EmailReceipt(BaseModel):
    message_id: str
    accepted: list[str]
    rejected: list[str]
    sent_at: datetime


class SmtpEmailSender:
    """Delivers ``EmailMessage`` objects over SMTP."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def send(self, message: EmailMessage) -> EmailReceipt:
        mime = MIMEMultipart("alternative")
        mime["Subject"] = message.subject
        mime["From"] = message.from_address
        mime["To"] = message.to
        mime["Message-ID"] = make_msgid()
        mime.attach(MIMEText(message.text, "plain"))
        if message.html:
            mime.attach(MIMEText(message.html, "html"))

        try:
            with smtplib.SMTP(
                self.settings.SMTP_HOST,
                self.settings.SMTP_PORT,
                timeout=self.settings.SMTP_TIMEOUT_SECONDS,
            ) as server:
                if self.settings.SMTP_USE_TLS:
                    server.starttls()
                if self.settings.SMTP_USERNAME and self.settings.SMTP_PASSWORD:
                    server.login(self.settings.SMTP_USERNAME, self.settings.SMTP_PASSWORD)
                refused = server.send_message(mime)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to=%s subject=%r: %s", message.to, message.subject, e)
            raise AuthError(AuthErrorKind.EMAIL_DELIVERY_FAILURE, f"Failed to send email: {type(e).__name__}") from e

        rejected = sorted(refused or {})
        accepted = [message.to] if message.to not in rejected else []
        logger.info("Email sent: to=%s, message_id=%s", message.to, mime["Message-ID"])
        return EmailReceipt(
            message_id=mime["Message-ID"],
            accepted=accepted,
            rejected=rejected,
            sent_at=datetime.utcnow(),
        )


def send_email_with_defaults(sender, settings: Settings, **overrides) -> EmailReceipt:
    """Send an email, filling the sender address from EMAIL_FROM unless overridden."""
    fields = {"from_address": settings.EMAIL_FROM}
    fields.update(overrides)
    return sender.send(EmailMessage(**fields))


def build_reset_password_email(settings: Settings, user: User, reset_token: str) -> dict:
    reset_url = f"{settings.RESET_PASSWORD_URL.rstrip('/')}/{reset_token}"
    minutes = settings.RESET_PASSWORD_TOKEN_DURATION_MINUTES

    text = (
        f"Hi {user.first_name},\n\n"
        f"We received a request to reset your password. Open the link below to choose a new one:\n\n"
        f"{reset_url}\n\n"
        f"This link expires in {minutes} minutes. If you didn't request this, you can ignore this email.\n"
    )
    html = f"""
    <h2>Password Reset Request</h2>
    <p>Hi {escape(user.first_name)},</p>
    <p>Click the link below to reset your password:</p>
    <p><a href="{escape(reset_url, quote=True)}">Reset Password</a></p>
    <p>This link expires in {minutes} minutes.</p>
    <p>If you didn't request this, please ignore this email.</p>
    """
    return {"to": user.email, "subject": "Reset your password", "text": text, "html": html}
