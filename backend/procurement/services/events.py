import logging
from typing import Any, Dict, Optional

from ..core.clock import Clock, SystemClock
from .ports import EventBus


logger = logging.getLogger(__name__)


class ProcurementEvents:
    """Audit trail and notifications for procurement actions.

    Every event is logged; when a bus is configured it is also published.
    Delivery is best-effort: a failing bus never fails the business operation.
    """

    def __init__(
        self,
        bus: Optional[EventBus] = None,
        audit_topic: str = "procurement.audit",
        notification_topic: str = "procurement.notifications",
        clock: Optional[Clock] = None,
    ) -> None:
        self.bus = bus
        self.clock = clock or SystemClock()
        self.audit_topic = audit_topic
        self.notification_topic = notification_topic

    def audit(self, action: str, entity: str, entity_id: str, **details: Any) -> None:
        logger.info("Audit: %s %s %s %s", action, entity, entity_id, details or "")
        self._publish(
            self.audit_topic,
            {
                "action": action,
                "entity": entity,
                "entity_id": entity_id,
                "details": details,
                "timestamp": self.clock.now().isoformat(),
            },
        )

    def notify(self, event_type: str, recipient_id: str, message: str, **payload: Any) -> None:
        logger.info("Notification %s for %s: %s", event_type, recipient_id, message)
        self._publish(
            self.notification_topic,
            {
                "type": event_type,
                "recipient_id": recipient_id,
                "message": message,
                "payload": payload,
            },
        )

    def _publish(self, topic: str, event: Dict[str, Any]) -> None:
        if self.bus is None:
            return
        try:
            self.bus.publish(topic, event)
        except Exception as exc:
            logger.warning("Failed to publish event to %s: %s", topic, exc)
