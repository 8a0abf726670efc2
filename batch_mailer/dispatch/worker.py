"""
Delivery worker: one recipient, one message, at most one store write.

Order is fixed: resolve attachments, send, then record. A recipient is
only marked delivered after the transport has accepted the message.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from batch_mailer.dispatch.message import OutboundMessage
from batch_mailer.dispatch.recorder import StateRecorder
from batch_mailer.errors import AttachmentMissing, RecordFailure, TransportFailure
from batch_mailer.senders.attachments import AttachmentSource
from batch_mailer.senders.smtp_sender import Transport
from batch_mailer.store.recipients import PendingRecipient

logger = logging.getLogger(__name__)


class DeliveryOutcome(enum.Enum):
    SENT = "sent"
    TRANSPORT_FAILED = "transport_failed"
    RECORD_FAILED = "record_failed"


@dataclass(frozen=True)
class DeliveryAttempt:
    """Outcome of delivering to a single recipient."""

    recipient: PendingRecipient
    outcome: DeliveryOutcome
    reason: Optional[str] = None
    error: Optional[str] = None

    @property
    def sent(self) -> bool:
        return self.outcome is DeliveryOutcome.SENT


class DeliveryWorker:
    """
    Deliver the batch message to one recipient and record the result.

    Usage:
        worker = DeliveryWorker(transport, attachments, recorder)
        attempt = worker.deliver(recipient, message)
    """

    def __init__(
        self,
        transport: Transport,
        attachments: AttachmentSource,
        recorder: StateRecorder,
    ) -> None:
        self.transport = transport
        self.attachments = attachments
        self.recorder = recorder

    def deliver(self, recipient: PendingRecipient, message: OutboundMessage) -> DeliveryAttempt:
        # --- Attachments ---
        try:
            resolved = [self.attachments.resolve(file_id) for file_id in message.attachments]
        except AttachmentMissing as e:
            logger.warning(
                "Skipping recipient %s <%s>: %s", recipient.id, recipient.email, e
            )
            return DeliveryAttempt(
                recipient=recipient,
                outcome=DeliveryOutcome.TRANSPORT_FAILED,
                reason="attachment_missing",
                error=str(e),
            )

        # --- Send ---
        try:
            self.transport.send(
                message.sender,
                recipient.email,
                message.subject,
                message.html_body,
                resolved,
            )
        except TransportFailure as e:
            logger.warning(
                "Failed to send email to %s (recipient %s): %s",
                recipient.email, recipient.id, e,
            )
            return DeliveryAttempt(
                recipient=recipient,
                outcome=DeliveryOutcome.TRANSPORT_FAILED,
                reason="transport_error",
                error=str(e),
            )

        # --- Record ---
        try:
            self.recorder.mark_delivered(recipient.id)
        except RecordFailure as e:
            # Sent but unrecorded: the recipient stays eligible and may be
            # mailed again by a later batch.
            logger.error(
                "Sent to %s but could not record delivery for recipient %s: %s",
                recipient.email, recipient.id, e.reason,
            )
            return DeliveryAttempt(
                recipient=recipient,
                outcome=DeliveryOutcome.RECORD_FAILED,
                reason="record_error",
                error=str(e),
            )

        logger.debug("Delivered to recipient %s", recipient.id)
        return DeliveryAttempt(recipient=recipient, outcome=DeliveryOutcome.SENT)
