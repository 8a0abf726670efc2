"""
Dispatch coordinator: fans a batch out over a thread pool and aggregates
the per-recipient outcomes once every delivery has finished.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from batch_mailer.dispatch.message import OutboundMessage
from batch_mailer.dispatch.worker import DeliveryAttempt, DeliveryOutcome, DeliveryWorker
from batch_mailer.store.recipients import PendingRecipient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchResult:
    """Summary of one batch.

    ``count`` and ``sent_emails`` cover only deliveries whose delivered
    flag was committed. ``sent_emails`` is in completion order, which is
    not the selection order.
    """

    count: int = 0
    sent_emails: tuple[str, ...] = field(default_factory=tuple)
    attempted: int = 0
    transport_failed: int = 0
    record_failed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "sentEmails": list(self.sent_emails)}

    def summary(self) -> str:
        return (
            f"{self.count} of {self.attempted} delivered "
            f"({self.transport_failed} transport failures, "
            f"{self.record_failed} unrecorded)"
        )


class ResultAggregator:
    """Lock-guarded accumulator for delivery attempts."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sent_emails: list[str] = []
        self._attempted = 0
        self._transport_failed = 0
        self._record_failed = 0

    def record(self, attempt: DeliveryAttempt) -> None:
        with self._lock:
            self._attempted += 1
            if attempt.outcome is DeliveryOutcome.SENT:
                self._sent_emails.append(attempt.recipient.email)
            elif attempt.outcome is DeliveryOutcome.TRANSPORT_FAILED:
                self._transport_failed += 1
            else:
                self._record_failed += 1

    def snapshot(self) -> BatchResult:
        with self._lock:
            return BatchResult(
                count=len(self._sent_emails),
                sent_emails=tuple(self._sent_emails),
                attempted=self._attempted,
                transport_failed=self._transport_failed,
                record_failed=self._record_failed,
            )


class DispatchCoordinator:
    """
    Deliver one message to many recipients concurrently.

    At most ``max_workers`` deliveries run at once; ``None`` starts one
    thread per recipient. ``dispatch`` returns only after every delivery
    has finished. A recipient whose delivery raises is counted as a
    transport failure; it never aborts the rest of the batch.

    Usage:
        coordinator = DispatchCoordinator(worker, max_workers=10)
        result = coordinator.dispatch(recipients, message)
        print(result.count, result.sent_emails)
    """

    def __init__(self, worker: DeliveryWorker, max_workers: Optional[int] = 10) -> None:
        self.worker = worker
        self.max_workers = max_workers

    def pool_size(self, batch_size: int) -> int:
        if self.max_workers is None:
            return batch_size
        return min(self.max_workers, batch_size)

    def dispatch(
        self,
        recipients: Sequence[PendingRecipient],
        message: OutboundMessage,
    ) -> BatchResult:
        aggregator = ResultAggregator()
        if not recipients:
            return aggregator.snapshot()

        def run_one(recipient: PendingRecipient) -> None:
            try:
                attempt = self.worker.deliver(recipient, message)
            except Exception as e:
                logger.exception(
                    "Unexpected error delivering to recipient %s <%s>", recipient.id, recipient.email
                )
                attempt = DeliveryAttempt(
                    recipient=recipient,
                    outcome=DeliveryOutcome.TRANSPORT_FAILED,
                    reason="unexpected_error",
                    error=str(e),
                )
            aggregator.record(attempt)

        workers = self.pool_size(len(recipients))
        logger.info("Dispatching %d recipients over %d workers", len(recipients), workers)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="delivery") as executor:
            futures = [executor.submit(run_one, recipient) for recipient in recipients]
            wait(futures)

        result = aggregator.snapshot()
        logger.info("Batch finished: %s", result.summary())
        return result
