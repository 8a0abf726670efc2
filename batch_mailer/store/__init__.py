"""
Recipient store: durable pool of addressees and their delivery state.
"""

from batch_mailer.store.recipients import (
    Base,
    PendingRecipient,
    PoolSettings,
    Recipient,
    RecipientState,
    RecipientStore,
)

__all__ = [
    "Base",
    "PendingRecipient",
    "PoolSettings",
    "Recipient",
    "RecipientState",
    "RecipientStore",
]
