"""
Best-effort email notifications for new contact submissions
"""
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from html import escape
from typing import Any, Dict, Optional

from config import Settings
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Notification:
    subject: str
    html: str
    reply_to: Optional[str] = None


def build_contact_notification(record: Dict[str, Any]) -> Notification:
    """Render the owner-facing email for one submission"""
    message_html = escape(record.get("message", "")).replace("\n", "<br>")
    html = (
        "<h2>New Contact Form Submission</h2>"
        f"<p><strong>Name:</strong> {escape(record.get('name', ''))}</p>"
        f"<p><strong>Email:</strong> {escape(record.get('email', ''))}</p>"
        f"<p><strong>Subject:</strong> {escape(record.get('subject', ''))}</p>"
        f"<p><strong>Message:</strong></p><p>{message_html}</p>"
        "<hr>"
        f"<p><small>IP: {escape(record.get('ip_address', 'Unknown'))}"
        f" | Client: {escape(record.get('user_agent', 'Unknown'))}</small></p>"
    )
    return Notification(
        subject=f"Portfolio Contact: {record.get('subject', '')}",
        html=html,
        reply_to=record.get("email"),
    )


class NotificationDispatcher:
    """Sends notifications over SMTP; never raises"""

    def __init__(self, settings: Settings):
        self.host = settings.email_host
        self.port = settings.email_port
        self.user = settings.email_user
        self.password = settings.email_pass
        self.to = settings.email_to or settings.email_user

    @property
    def enabled(self) -> bool:
        return bool(self.user and self.password and self.to)

    def _build_message(self, notification: Notification) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = notification.subject
        msg["From"] = f"Portfolio Contact Form <{self.user}>"
        msg["To"] = self.to
        if notification.reply_to:
            msg["Reply-To"] = notification.reply_to
        msg.set_content("A new contact form submission was received.")
        msg.add_alternative(notification.html, subtype="html")
        return msg

    def send(self, notification: Notification) -> bool:
        if not self.enabled:
            logger.info("Email notifications disabled, skipping '%s'", notification.subject)
            return False
        try:
            with smtplib.SMTP(self.host, self.port, timeout=10) as smtp:
                smtp.starttls()
                smtp.login(self.user, self.password)
                smtp.send_message(self._build_message(notification))
        except Exception:
            logger.exception("Error sending notification email")
            return False
        logger.info("Notification email sent to %s", self.to)
        return True
