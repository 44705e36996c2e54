import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, Dict[str, Any]], None]

BOOKING_CREATED = "booking.created"
BOOKING_UPDATED = "booking.updated"
BOOKING_CANCELLED = "booking.cancelled"
BOOKING_PAID = "booking.paid"
BOOKING_CHECKED_IN = "booking.checked_in"
PAYMENT_FAILED = "payment.failed"
PAYMENT_REFUNDED = "payment.refunded"


class EventBus:
    """In-process publish/subscribe.

    Publishing is fire-and-forget: a failing subscriber is logged and the
    remaining subscribers still run. Subscribing to "*" receives every topic.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Subscriber]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, topic: str, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers[topic].append(subscriber)

    def unsubscribe(self, topic: str, subscriber: Subscriber) -> None:
        with self._lock:
            if subscriber in self._subscribers.get(topic, []):
                self._subscribers[topic].remove(subscriber)

    def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            targets = list(self._subscribers.get(topic, [])) + list(self._subscribers.get("*", []))

        logger.debug("publish %s to %d subscriber(s)", topic, len(targets))
        for subscriber in targets:
            try:
                subscriber(topic, payload)
            except Exception:
                logger.exception("subscriber failed for %s", topic)


def booking_payload(booking) -> Dict[str, Any]:
    return {
        "booking_id": booking.id,
        "booking_code": booking.booking_code,
        "facility_id": booking.facility_id,
        "date": booking.date.isoformat(),
        "start_time": booking.start_time,
        "end_time": booking.end_time,
        "status": booking.status,
        "payment_status": booking.payment_status,
    }


_default_bus = EventBus()


def get_event_bus() -> EventBus:
    return _default_bus
