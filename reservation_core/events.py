"""Best-effort reservation notifications over RabbitMQ."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict

import pika
from pika.exceptions import AMQPError

from .config import get_settings
from .models import Reservation

logger = logging.getLogger(__name__)


def reservation_payload(event: str, reservation: Reservation) -> Dict[str, Any]:
    return {
        "event": event,
        "booking_id": reservation.booking_id,
        "resource_type": reservation.resource_type.value,
        "resource_id": reservation.resource_id,
        "user_id": reservation.user_id,
        "booking_date": reservation.booking_date.isoformat(),
        "start_time": reservation.start_time.strftime("%H:%M:%S"),
        "hours": reservation.hours,
        "status": reservation.status.value,
    }


def publish_event(message: Dict[str, Any]) -> bool:
    """Send ``message`` to the reservation events queue.

    Returns False when publishing is disabled or the broker is unreachable;
    failures are logged and never raised to the caller.
    """

    settings = get_settings()
    if not settings.event_publishing_enabled:
        return False
    try:
        connection = pika.BlockingConnection(pika.ConnectionParameters(host=settings.rabbitmq_host))
        try:
            channel = connection.channel()
            channel.queue_declare(queue=settings.reservation_events_queue, durable=True)
            channel.basic_publish(
                exchange="",
                routing_key=settings.reservation_events_queue,
                body=json.dumps(message),
                properties=pika.BasicProperties(delivery_mode=2),
            )
        finally:
            connection.close()
    except (AMQPError, OSError) as exc:
        logger.error("Could not publish %s for booking %s: %s", message.get("event"), message.get("booking_id"), exc)
        return False
    logger.info("Published %s for booking %s", message.get("event"), message.get("booking_id"))
    return True


def publish_reservation_event(event: str, reservation: Reservation) -> bool:
    return publish_event(reservation_payload(event, reservation))
