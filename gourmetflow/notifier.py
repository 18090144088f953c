import logging

import httpx

from .config import get_settings
from .models import Order

logger = logging.getLogger(__name__)

EVENT_LABELS = {
    "created": "New order",
    "status_changed": "Order status changed",
    "completed": "Order completed",
    "cancelled": "Order cancelled",
}


def _post_webhook(url: str, token: str | None, payload: dict) -> None:
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    try:
        response = httpx.post(url, headers=headers, json=payload, timeout=5)
        response.raise_for_status()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Failed to deliver order webhook: %s", exc)


def build_payload(order: Order, event: str) -> dict:
    return {
        "event": event,
        "title": EVENT_LABELS.get(event, "Order"),
        "text": (
            f"{EVENT_LABELS.get(event, 'Order')} #{order.order_number}\n"
            f"Type: {order.delivery_type}\n"
            f"Status: {order.status}\n"
            f"Total: {order.total:.2f}"
        ),
        "order": order.model_dump(mode="json"),
    }


def notify_order_event(order: Order, event: str) -> None:
    """Push an order event to the configured webhook, if any."""
    settings = get_settings()
    url = settings.order_webhook_url
    if not url:
        return
    _post_webhook(url, settings.order_webhook_token, build_payload(order, event))
