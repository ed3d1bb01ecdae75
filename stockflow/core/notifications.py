"""
Email notifications

Fire-and-forget delivery of workflow alerts. Recipients may be a role name,
resolved through NOTIFY_ROLE_RECIPIENTS, or a literal email address.
"""
import smtplib
import threading
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional

from .config import Settings, settings as default_settings
from .logging import get_logger
from .security import Role

logger = get_logger("business")


class Notifier:
    """Best-effort, non-blocking email notifier"""

    def __init__(self, config: Optional[Settings] = None, background: bool = True):
        self.config = config or default_settings
        self.background = background

    def resolve_recipients(self, recipient: str) -> List[str]:
        """Expand a role name into its configured addresses"""
        if recipient in {r.value for r in Role}:
            return list(self.config.NOTIFY_ROLE_RECIPIENTS.get(recipient, []))
        return [recipient] if recipient and "@" in recipient else []

    def notify(self, recipient: str, subject: str, body: str) -> None:
        """Queue a notification; never raises"""
        try:
            recipients = self.resolve_recipients(recipient)
            if not recipients:
                logger.info(f"No recipients for '{recipient}', notification dropped: {subject}")
                return

            if self.background:
                worker = threading.Thread(
                    target=self._deliver,
                    args=(recipients, subject, body),
                    daemon=True,
                    name="stockflow-notifier",
                )
                worker.start()
            else:
                self._deliver(recipients, subject, body)
        except Exception as e:
            logger.error(f"Notification error: {e}")

    def _deliver(self, recipients: List[str], subject: str, body: str) -> bool:
        try:
            if not self.config.SMTP_HOST:
                logger.info(f"Email notification (SMTP disabled): {subject}")
                logger.info(f"Recipients: {', '.join(recipients)}")
                return True

            msg = MIMEMultipart()
            msg['From'] = self.config.MAIL_FROM
            msg['To'] = ', '.join(recipients)
            msg['Subject'] = subject
            msg.attach(MIMEText(body, 'plain'))

            with smtplib.SMTP(self.config.SMTP_HOST, self.config.SMTP_PORT, timeout=10) as server:
                if self.config.SMTP_USE_TLS:
                    server.starttls()
                if self.config.SMTP_USER:
                    server.login(self.config.SMTP_USER, self.config.SMTP_PASSWORD or "")
                server.send_message(msg)

            logger.info(f"Email sent to {', '.join(recipients)}: {subject}")
            return True

        except Exception as e:
            logger.error(f"Email send error: {str(e)}")
            return False


notifier = Notifier()
