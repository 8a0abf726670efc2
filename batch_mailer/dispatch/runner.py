"""
Dispatch runner: selects one batch of pending recipients and delivers the
configured message to them.
"""

from __future__ import annotations

import logging
from typing import Optional

from batch_mailer.dispatch.config import DispatchConfig
from batch_mailer.dispatch.coordinator import BatchResult, DispatchCoordinator
from batch_mailer.dispatch.message import OutboundMessage, build_message
from batch_mailer.dispatch.recorder import StateRecorder
from batch_mailer.dispatch.selector import RecipientSelector
from batch_mailer.dispatch.worker import DeliveryWorker
from batch_mailer.senders.attachments import AttachmentSource
from batch_mailer.senders.smtp_sender import SmtpTransport, Transport
from batch_mailer.store.recipients import PendingRecipient, RecipientStore

logger = logging.getLogger(__name__)


class DispatchRunner:
    """
    Run batches of the fixed message against the recipient store.

    Usage:
        config = load_dispatch_config("dispatch.json")
        runner = DispatchRunner.from_config(config)
        result = runner.run(limit=50)
        print(result.to_dict())
    """

    def __init__(
        self,
        store: RecipientStore,
        transport: Transport,
        message: OutboundMessage,
        attachments: Optional[AttachmentSource] = None,
        max_workers: Optional[int] = 10,
        record_timeout: float = 5.0,
    ) -> None:
        self.store = store
        self.message = message
        self.selector = RecipientSelector(store)
        worker = DeliveryWorker(
            transport=transport,
            attachments=attachments or AttachmentSource(),
            recorder=StateRecorder(store, timeout=record_timeout),
        )
        self.coordinator = DispatchCoordinator(worker, max_workers=max_workers)

    @classmethod
    def from_config(
        cls,
        config: DispatchConfig,
        store: Optional[RecipientStore] = None,
        transport: Optional[Transport] = None,
    ) -> DispatchRunner:
        return cls(
            store=store or RecipientStore(config.database_url, pool=config.pool),
            transport=transport or SmtpTransport(config.smtp),
            message=build_message(config.message),
            attachments=AttachmentSource(config.attachment_dir),
            max_workers=config.max_workers,
            record_timeout=config.record_timeout_seconds,
        )

    def run(self, limit: int) -> BatchResult:
        """
        Deliver to up to *limit* pending recipients.

        Raises StorageUnavailable or StorageQueryError if selection fails;
        nothing is sent in that case. Per-recipient failures are logged and
        left out of the result.
        """
        recipients = self.selector.select(limit)
        return self.coordinator.dispatch(recipients, self.message)

    def preview(self, limit: int) -> list[PendingRecipient]:
        """Return the recipients the next ``run(limit)`` would target."""
        return self.selector.select(limit)
