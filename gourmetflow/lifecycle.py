"""Order status tracker.

Any status may be set from any other; there is no transition table.
Completion side effects run every time completion is requested, so
completing the same order twice books the sale twice.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlmodel import Session

from . import crud, pricing
from .models import CASH_PAYMENT_LABELS, ORDER_STATUSES, CashMovement, Customer, Order
from .notifier import notify_order_event

logger = logging.getLogger(__name__)

LATE_AFTER_MINUTES = 30


def set_status(session: Session, order: Order, status: str) -> Order:
    if status not in ORDER_STATUSES:
        raise ValueError(f"Unknown order status: {status}")
    previous = order.status
    order = crud.update_record(session, order, {"status": status})
    logger.info("Order %s status %s -> %s", order.order_number, previous, status)
    notify_order_event(order, "status_changed")
    return order


def complete_order(session: Session, order: Order, payment_method: Optional[str] = None) -> Order:
    now = datetime.now(timezone.utc)
    order = crud.update_record(
        session,
        order,
        {"status": "completed", "completed_at": now, "payment_method": payment_method},
    )
    crud.set_table_status(session, order.table_id, "free")

    crud.create_record(
        session,
        CashMovement,
        {
            "type": "entry",
            "amount": order.total,
            "category": "Venda",
            "description": f"Pedido {order.order_number}",
            "payment_method": CASH_PAYMENT_LABELS.get(order.payment_method, "Dinheiro"),
            "movement_date": date.today(),
            "order_id": order.id,
        },
    )

    _credit_loyalty(session, order)
    logger.info("Order %s completed (total %.2f)", order.order_number, order.total)
    notify_order_event(order, "completed")
    return order


def _credit_loyalty(session: Session, order: Order) -> None:
    if order.customer_id is None:
        return
    settings = crud.get_restaurant_settings(session)
    if not settings.loyalty_enabled:
        return
    customer = session.get(Customer, order.customer_id)
    if customer is None:
        return
    points = pricing.points_earned(order.total, settings.loyalty_points_per_currency)
    if points <= 0:
        return
    crud.record_loyalty_move(session, customer, points, "earn", order_id=order.id)
    crud.update_record(session, order, {"loyalty_points_earned": order.loyalty_points_earned + points})
    logger.info("Customer %s earned %d points on order %s", customer.id, points, order.order_number)


def cancel_order(session: Session, order: Order) -> Order:
    """Cancel and free the table. Redeemed points are not given back."""
    order = crud.update_record(session, order, {"status": "cancelled"})
    crud.set_table_status(session, order.table_id, "free")
    logger.info("Order %s cancelled", order.order_number)
    notify_order_event(order, "cancelled")
    return order


def waiting_minutes(order: Order, now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    created = order.created_at
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return max(0, int((now - created).total_seconds() // 60))


def is_late(order: Order, now: Optional[datetime] = None) -> bool:
    return order.status != "completed" and waiting_minutes(order, now) > LATE_AFTER_MINUTES
