import logging
from typing import Optional

from flask import Flask
from flask_mail import Mail, Message

from .config import mail_configured

logger = logging.getLogger(__name__)


class MailNotifier:
    """Sends registrant notifications through the app's SMTP settings."""

    def __init__(self, app: Flask, mail: Mail = None):
        self.app = app
        self.mail = mail or Mail(app)
        self.sender = (app.config.get('MAIL_SENDER_NAME'), app.config.get('MAIL_USERNAME'))

    def send(self, recipient: str, subject: str, body: str):
        """Deliver one plain-text email. Raises whatever the SMTP layer raises."""
        with self.app.app_context():
            msg = Message(
                subject=subject,
                recipients=[recipient],
                body=body,
                sender=self.sender
            )
            self.mail.send(msg)
        logger.info(f"Email sent to {recipient}")


def build_notifier(app: Flask) -> Optional[MailNotifier]:
    """A notifier when SMTP credentials are configured, else None."""
    if not mail_configured(app.config):
        logger.info("Mailer not configured - set MAIL_USERNAME and MAIL_PASSWORD to enable emails")
        return None
    logger.info(f"Mailer configured as {app.config['MAIL_USERNAME']}")
    return MailNotifier(app)
