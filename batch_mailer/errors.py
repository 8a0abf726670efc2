"""
Exception hierarchy for the batch mailer.

Storage errors raised while selecting recipients abort the whole batch.
Delivery errors only ever affect one recipient's attempt.
"""

from __future__ import annotations


class BatchMailerError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(BatchMailerError):
    """The dispatch configuration is missing or invalid."""


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

class StorageError(BatchMailerError):
    """Base class for recipient store failures."""


class StorageUnavailable(StorageError):
    """A connection to the recipient store could not be obtained."""


class StorageQueryError(StorageError):
    """A statement against the recipient store failed."""


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------

class DeliveryError(BatchMailerError):
    """Base class for failures scoped to a single recipient."""


class AttachmentMissing(DeliveryError):
    """A file referenced by the message could not be resolved."""

    def __init__(self, file_id: str) -> None:
        super().__init__(f"Attachment not found: {file_id}")
        self.file_id = file_id


class TransportFailure(DeliveryError):
    """The transport refused, dropped, or could not authenticate the send."""


class RecordFailure(DeliveryError):
    """The message was sent but the delivered flag could not be stored."""

    def __init__(self, recipient_id: int, reason: str) -> None:
        super().__init__(f"Could not mark recipient {recipient_id} delivered: {reason}")
        self.recipient_id = recipient_id
        self.reason = reason
