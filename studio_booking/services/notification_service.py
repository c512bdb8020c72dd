"""
Customer notifications (confirmation, reschedule, cancellation).

Delivery is fire-and-forget: a failing notifier is logged and counted but
never propagates into the orchestrator that triggered it. Message formatting
and the actual email transport live outside this package.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send_confirmation(self, details: Dict[str, Any]) -> None: ...

    def send_reschedule(self, details: Dict[str, Any]) -> None: ...

    def send_cancellation(self, details: Dict[str, Any]) -> None: ...


class LoggingNotifier:
    """Default notifier: records what would be sent."""

    def send_confirmation(self, details: Dict[str, Any]) -> None:
        logger.info("Reservation confirmation queued", extra={"notification": details})

    def send_reschedule(self, details: Dict[str, Any]) -> None:
        logger.info("Reschedule confirmation queued", extra={"notification": details})

    def send_cancellation(self, details: Dict[str, Any]) -> None:
        logger.info("Cancellation notice queued", extra={"notification": details})


class NotificationService:
    """Best-effort wrapper around a Notifier."""

    def __init__(self, notifier: Optional[Notifier] = None) -> None:
        self.notifier = notifier or LoggingNotifier()

    def reservation_confirmed(self, details: Dict[str, Any]) -> bool:
        return self._dispatch("confirmation", self.notifier.send_confirmation, details)

    def reservation_rescheduled(self, details: Dict[str, Any]) -> bool:
        return self._dispatch("reschedule", self.notifier.send_reschedule, details)

    def reservation_cancelled(self, details: Dict[str, Any]) -> bool:
        return self._dispatch("cancellation", self.notifier.send_cancellation, details)

    def _dispatch(self, kind: str, send: Any, details: Dict[str, Any]) -> bool:
        try:
            send(details)
        except Exception as exc:
            prometheus_metrics.record_notification(kind, "error")
            logger.warning(
                "Notification failed: %s",
                exc,
                extra={"kind": kind, "reservation_id": details.get("reservation_id")},
                exc_info=True,
            )
            return False
        prometheus_metrics.record_notification(kind, "sent")
        return True


def get_notification_service() -> NotificationService:
    return NotificationService()
