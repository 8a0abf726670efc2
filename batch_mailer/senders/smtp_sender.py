"""
SMTP transport: composes MIME messages and sends them through a relay.

One connection is opened per send, so the transport is safe to share
between delivery threads.
"""

from __future__ import annotations

import smtplib
import ssl
from dataclasses import dataclass, field
from email.errors import MessageError
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional, Protocol, Sequence

from batch_mailer.errors import TransportFailure
from batch_mailer.senders.attachments import Attachment


class Transport(Protocol):
    def send(
        self,
        from_address: str,
        to_address: str,
        subject: str,
        html_body: str,
        attachments: Sequence[Attachment],
    ) -> None:
        ...


@dataclass
class SmtpConfig:
    """SMTP relay settings."""

    host: str = "smtp.mail.yahoo.com"
    port: int = 587
    use_tls: bool = True
    username: str = ""
    password: str = ""
    from_name: str = ""
    timeout: float = 30.0


@dataclass
class MailMessage:
    """A fully formed email ready to send."""

    to: str
    subject: str
    body_html: str
    from_address: str
    from_name: str = ""
    attachments: list[Attachment] = field(default_factory=list)

    def to_mime(self) -> MIMEMultipart:
        msg = MIMEMultipart("mixed")
        msg["To"] = self.to
        msg["From"] = (
            formataddr((self.from_name, self.from_address))
            if self.from_name
            else self.from_address
        )
        msg["Subject"] = self.subject
        msg.attach(MIMEText(self.body_html, "html", "utf-8"))

        for attachment in self.attachments:
            maintype, subtype = attachment.mime_type.split("/", 1)
            if maintype != "application":
                subtype = "octet-stream"
            part = MIMEApplication(attachment.content, _subtype=subtype, Name=attachment.filename)
            part["Content-Disposition"] = f'attachment; filename="{attachment.filename}"'
            msg.attach(part)

        return msg


class SmtpTransport:
    """
    Send HTML email with attachments via SMTP.

    Usage:
        transport = SmtpTransport(SmtpConfig(username="...", password="..."))
        transport.send("me@example.com", "you@example.com", "Hi", "<p>Hi</p>", [])
    """

    def __init__(self, config: Optional[SmtpConfig] = None) -> None:
        self.config = config or SmtpConfig()

    def send(
        self,
        from_address: str,
        to_address: str,
        subject: str,
        html_body: str,
        attachments: Sequence[Attachment],
    ) -> None:
        """
        Deliver one message to *to_address*.

        Raises TransportFailure for connection, authentication, and
        remote rejection errors alike, and for addresses that cannot be
        placed in a header.
        """
        message = MailMessage(
            to=to_address,
            subject=subject,
            body_html=html_body,
            from_address=from_address,
            from_name=self.config.from_name,
            attachments=list(attachments),
        )
        try:
            mime = message.to_mime()
            payload = mime.as_string()
            with smtplib.SMTP(
                self.config.host, self.config.port, timeout=self.config.timeout
            ) as server:
                if self.config.use_tls:
                    server.ehlo()
                    server.starttls(context=ssl.create_default_context())
                    server.ehlo()
                if self.config.username:
                    server.login(self.config.username, self.config.password)
                server.sendmail(from_address, [to_address], payload)
        except (smtplib.SMTPException, OSError) as e:
            raise TransportFailure(f"SMTP send to {to_address!r} failed: {e}") from e
        except (MessageError, ValueError) as e:
            raise TransportFailure(f"Could not compose message for {to_address!r}: {e}") from e
