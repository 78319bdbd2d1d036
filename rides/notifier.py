import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .models import EventType

logger = logging.getLogger(__name__)


@dataclass
class NotificationResult:
    sent: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed == 0 and not self.errors


class Notifier:
    """
    Dispatcher contract: notify every participant of `ride_id` about an event.
    Delivery (push, Telegram, email) is an outer concern.
    """

    def notify(self, ride_id: str, event_type: EventType, reason: Optional[str] = None) -> NotificationResult:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    """
    Default notifier: records the event in the log and reports one send.
    """

    def notify(self, ride_id: str, event_type: EventType, reason: Optional[str] = None) -> NotificationResult:
        logger.info("Ride %s: %s notification%s", ride_id, event_type.value, f" ({reason})" if reason else "")
        return NotificationResult(sent=1)
