"""
Outbound transport and attachment resolution.
"""

from batch_mailer.senders.attachments import Attachment, AttachmentSource
from batch_mailer.senders.smtp_sender import MailMessage, SmtpConfig, SmtpTransport, Transport

__all__ = [
    "Attachment",
    "AttachmentSource",
    "MailMessage",
    "SmtpConfig",
    "SmtpTransport",
    "Transport",
]
