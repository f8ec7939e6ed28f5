"""SMTP email transport."""

import logging
from dataclasses import dataclass
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import aiosmtplib

from makao.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class Attachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


class EmailSender:
    """Sends HTML email over SMTP. Logs instead of sending when disabled."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def build_message(
        self,
        to: str,
        subject: str,
        html_body: str,
        attachments: Optional[list[Attachment]] = None,
    ) -> MIMEMultipart:
        message = MIMEMultipart("mixed")
        message["Subject"] = subject
        message["From"] = self.settings.email_from
        message["To"] = to
        message.attach(MIMEText(html_body, "html"))

        for attachment in attachments or []:
            _, subtype = attachment.content_type.split("/", 1)
            part = MIMEApplication(attachment.content, _subtype=subtype)
            part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
            message.attach(part)
        return message

    async def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        attachments: Optional[list[Attachment]] = None,
    ) -> None:
        message = self.build_message(to, subject, html_body, attachments)

        if not self.settings.email_enabled:
            logger.info("Email disabled; would send %r to %s", subject, to)
            return

        await aiosmtplib.send(
            message,
            hostname=self.settings.smtp_host,
            port=self.settings.smtp_port,
            username=self.settings.smtp_username,
            password=self.settings.smtp_password,
            start_tls=self.settings.smtp_use_tls,
        )
        logger.info("Email %r sent to %s", subject, to)
