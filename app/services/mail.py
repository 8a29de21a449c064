"""
Mail service - outgoing email over SMTP.

Only invitations are mailed today. SSL (port 465) is the default; set
SMTP_USE_SSL=false to use STARTTLS on a plain connection instead.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.core.config import settings

logger = logging.getLogger("epiciot.services.mail")

INVITE_SUBJECT = "Your Epic IoT invitation link"

INVITE_HTML = """\
<div style="font-family: sans-serif; line-height: 1.5;">
  <h2>You're invited to join Epic IoT</h2>
  <p>Click the link below to accept your invitation:</p>
  <p><a href="{url}" style="color: #2F4358;">{url}</a></p>
  <p>If the link doesn't work, copy and paste it into your browser.</p>
  <p>This link will expire soon.</p>
</div>
"""

INVITE_TEXT = """\
You're invited to join Epic IoT.

Accept your invitation here:
{url}

This link will expire soon.
"""


class MailService:
    """Thin SMTP sender. Returns False instead of raising, and logs why."""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST or None
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER or None
        self.smtp_password = settings.SMTP_PASSWORD or None
        self.use_ssl = settings.SMTP_USE_SSL
        self.mail_from = settings.MAIL_FROM or settings.SMTP_USER or "no-reply@localhost"

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host)

    def send_invite_email(self, to: str, invite_url: str) -> bool:
        """
        Send the invitation link.

        Returns:
            True if the SMTP server accepted the message
        """
        msg = MIMEMultipart("alternative")
        msg["From"] = self.mail_from
        msg["To"] = to
        msg["Subject"] = INVITE_SUBJECT
        msg.attach(MIMEText(INVITE_TEXT.format(url=invite_url), "plain"))
        msg.attach(MIMEText(INVITE_HTML.format(url=invite_url), "html"))
        return self._send(msg, to)

    def _send(self, msg: MIMEMultipart, to: str) -> bool:
        if not self.is_configured:
            logger.warning("SMTP not configured, invite email not sent", extra={"to": to})
            return False

        try:
            if self.use_ssl:
                with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port) as server:
                    self._login(server)
                    server.send_message(msg)
            else:
                with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                    server.starttls()
                    self._login(server)
                    server.send_message(msg)
        except smtplib.SMTPAuthenticationError:
            logger.error("SMTP authentication failed", extra={"to": to})
            return False
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send email", extra={"to": to})
            return False

        logger.info("Email sent", extra={"to": to, "subject": msg["Subject"]})
        return True

    def _login(self, server: smtplib.SMTP) -> None:
        if self.smtp_user and self.smtp_password:
            server.login(self.smtp_user, self.smtp_password)


# Singleton instance
mail_service = MailService()
