"""
Recipient selector: the read side of a batch.
"""

from __future__ import annotations

import logging

from batch_mailer.store.recipients import PendingRecipient, RecipientStore

logger = logging.getLogger(__name__)


class RecipientSelector:
    """Pick the next undelivered recipients for a batch.

    StorageUnavailable and StorageQueryError from the store propagate
    unchanged; either one aborts the batch before any send.
    """

    def __init__(self, store: RecipientStore) -> None:
        self.store = store

    def select(self, limit: int) -> list[PendingRecipient]:
        recipients = self.store.select_pending(limit)
        logger.info("Selected %d pending recipients (limit %d)", len(recipients), limit)
        return recipients
