"""Notification delivery for matched job alerts."""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from uuid import UUID

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationIntent:
    """A subscriber should hear about a newly published job."""
    alert_id: UUID
    user_id: str
    job_id: UUID
    job_title: str


class Notifier(ABC):
    """Delivers notification intents (email, push, SMS...)."""

    @abstractmethod
    async def notify(self, intent: NotificationIntent) -> None: ...


class LogNotifier(Notifier):
    """Dev-mode notifier: writes the notification to the log instead of sending it."""

    async def notify(self, intent: NotificationIntent) -> None:
        logger.info(
            f"[SIMULATION] Notification sent to user {intent.user_id} for job "
            f"\"{intent.job_title}\" based on alert {intent.alert_id}"
        )
