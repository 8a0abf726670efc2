"""
State recorder: the only writer of a recipient's delivered flag.
"""

from __future__ import annotations

from batch_mailer.errors import RecordFailure, StorageError
from batch_mailer.store.recipients import RecipientStore


class StateRecorder:
    """
    Commit the delivered transition for one recipient at a time.

    Each write carries its own timeout so one slow row cannot hold up
    sibling workers for longer than that. Failures are reported, never
    retried here; the recipient stays pending and is picked up again by a
    later batch.
    """

    def __init__(self, store: RecipientStore, timeout: float = 5.0) -> None:
        self.store = store
        self.timeout = timeout

    def mark_delivered(self, recipient_id: int) -> None:
        try:
            updated = self.store.mark_delivered(recipient_id, timeout=self.timeout)
        except StorageError as e:
            raise RecordFailure(recipient_id, str(e)) from e
        if not updated:
            raise RecordFailure(recipient_id, "no pending row matched")
