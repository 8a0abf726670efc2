"""
Dispatch layer: select pending recipients, deliver the fixed message to
them concurrently, and record who received it.
"""

from batch_mailer.dispatch.config import (
    DispatchConfig,
    MessageSettings,
    load_dispatch_config,
)
from batch_mailer.dispatch.coordinator import BatchResult, DispatchCoordinator, ResultAggregator
from batch_mailer.dispatch.message import OutboundMessage, build_message
from batch_mailer.dispatch.recorder import StateRecorder
from batch_mailer.dispatch.runner import DispatchRunner
from batch_mailer.dispatch.selector import RecipientSelector
from batch_mailer.dispatch.worker import DeliveryAttempt, DeliveryOutcome, DeliveryWorker

__all__ = [
    "BatchResult",
    "DeliveryAttempt",
    "DeliveryOutcome",
    "DeliveryWorker",
    "DispatchConfig",
    "DispatchCoordinator",
    "DispatchRunner",
    "MessageSettings",
    "OutboundMessage",
    "RecipientSelector",
    "ResultAggregator",
    "StateRecorder",
    "build_message",
    "load_dispatch_config",
]
