"""
The fixed outbound message shared by every delivery in a batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, TemplateNotFound

from batch_mailer.dispatch.config import MessageSettings
from batch_mailer.errors import ConfigError


@dataclass(frozen=True)
class OutboundMessage:
    """Subject, body, and attachment identifiers for one batch."""

    sender: str
    subject: str
    html_body: str
    sender_name: str = ""
    attachments: tuple[str, ...] = field(default_factory=tuple)


def build_message(settings: MessageSettings) -> OutboundMessage:
    """Render the body template once and freeze the result.

    Only message-level values (sender, sender_name, subject) are exposed to
    the template; the body is identical for every recipient.
    """
    template_path = Path(settings.body_template)
    env = Environment(
        loader=FileSystemLoader(str(template_path.parent)),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )
    try:
        template = env.get_template(template_path.name)
        html_body = template.render(
            sender=settings.sender,
            sender_name=settings.sender_name,
            subject=settings.subject,
        )
    except TemplateNotFound as e:
        raise ConfigError(f"Body template not found: {template_path}") from e
    except TemplateError as e:
        raise ConfigError(f"Body template {template_path} failed to render: {e}") from e
    return OutboundMessage(
        sender=settings.sender,
        subject=settings.subject,
        html_body=html_body,
        sender_name=settings.sender_name,
        attachments=tuple(settings.attachments),
    )
