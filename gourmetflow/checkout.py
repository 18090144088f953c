"""Order writer.

Turns a cart request into stored rows. The steps run as separate commits
(header, items, coupon usage, loyalty debit, table status), so a failure
half way leaves the earlier writes in place.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from sqlmodel import Session

from . import crud, pricing
from .cart import Cart, SelectedVariation
from .models import Coupon, Customer, DiningTable, Order, OrderItem
from .notifier import notify_order_event
from .schemas import CartLineIn, CheckoutRequest, QuoteRequest

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIXES = {"pdv": "", "customer_menu": "WEB", "table": "#"}


class CheckoutError(ValueError):
    pass


def generate_order_number(prefix: str = "") -> str:
    # last six digits of the epoch millis; collisions are possible
    millis = int(time.time() * 1000)
    return f"{prefix}{millis % 1_000_000:06d}"


def build_cart(session: Session, lines: Iterable[CartLineIn]) -> Cart:
    cart = Cart()
    for line in lines:
        item = crud.get_menu_item(session, line.menu_item_id)
        if item is None or not item.is_available:
            raise CheckoutError(f"Menu item {line.menu_item_id} is not available")
        available = crud.list_variations(session, item.id, active_only=True)
        selected = None
        if line.variation_ids is not None:
            by_id = {v.id: v for v in available}
            missing = [vid for vid in line.variation_ids if vid not in by_id]
            if missing:
                raise CheckoutError(f"Unknown options for '{item.name}': {missing}")
            selected = [
                SelectedVariation(id=v.id, name=v.name, type=v.type, price_adjustment=v.price_adjustment)
                for v in (by_id[vid] for vid in line.variation_ids)
            ]
        cart.add_item(
            item,
            selected,
            available_variations=available,
            quantity=line.quantity,
            notes=line.notes,
        )
    return cart


def quote(session: Session, request: QuoteRequest) -> Tuple[Cart, pricing.PriceBreakdown, Optional[Coupon]]:
    """Price a cart without writing anything."""
    settings = crud.get_restaurant_settings(session)
    cart = build_cart(session, request.items)
    coupon = pricing.apply_coupon(session, request.coupon_code, cart.subtotal) if request.coupon_code else None

    balance = 0
    if request.loyalty_points and request.customer_phone:
        customer = crud.find_customer_by_phone(session, request.customer_phone)
        balance = customer.loyalty_points if customer else 0

    breakdown = pricing.compute_totals(
        cart.subtotal,
        delivery_type=request.delivery_type,
        delivery_fee=settings.delivery_fee,
        include_service_fee=request.include_service_fee,
        service_fee_rate=settings.service_fee_rate,
        coupon=coupon,
        loyalty_points=request.loyalty_points,
        loyalty_balance=balance,
        redemption_value=settings.loyalty_redemption_value,
    )
    return cart, breakdown, coupon


def _validate(request: CheckoutRequest) -> None:
    if not request.items:
        raise CheckoutError("Add items to the cart before creating an order")
    if request.delivery_type == "dine_in" and request.table_id is None:
        raise CheckoutError("Select a table for dine-in orders")
    if request.delivery_type == "delivery":
        address = request.delivery_address
        if address is None or not address.street or not address.number:
            raise CheckoutError("Delivery address is required")
    if request.source == "customer_menu" and (not request.customer_name or not request.customer_phone):
        raise CheckoutError("Customer name and phone are required")


def _upsert_customer(session: Session, request: CheckoutRequest) -> Optional[Customer]:
    if not request.customer_phone:
        return None
    customer = crud.find_customer_by_phone(session, request.customer_phone)
    if customer is None:
        return crud.create_record(
            session,
            Customer,
            {
                "name": request.customer_name or request.customer_phone,
                "phone": request.customer_phone,
                "cpf": request.customer_cpf,
                "loyalty_points": 0,
            },
        )
    return crud.update_record(
        session,
        customer,
        {"name": request.customer_name, "cpf": request.customer_cpf},
    )


def _write_items(session: Session, order: Order, cart: Cart) -> List[OrderItem]:
    now = datetime.now(timezone.utc)
    items = [
        OrderItem(
            order_id=order.id,
            menu_item_id=line.menu_item_id,
            name=line.display_name,
            quantity=line.quantity,
            unit_price=line.final_price,
            total_price=line.total_price,
            notes=line.notes or line.customizations_text,
            created_at=now,
        )
        for line in cart.lines
    ]
    session.add_all(items)
    session.commit()
    for item in items:
        session.refresh(item)
    return items


def checkout(session: Session, request: CheckoutRequest) -> Order:
    _validate(request)

    table: Optional[DiningTable] = None
    if request.delivery_type == "dine_in":
        table = session.get(DiningTable, request.table_id)
        if table is None:
            raise CheckoutError("Table not found")

    # coupon and cart errors surface here, before anything is written
    cart, _, coupon = quote(session, request)
    customer = _upsert_customer(session, request)

    settings = crud.get_restaurant_settings(session)
    breakdown = pricing.compute_totals(
        cart.subtotal,
        delivery_type=request.delivery_type,
        delivery_fee=settings.delivery_fee,
        include_service_fee=request.include_service_fee,
        service_fee_rate=settings.service_fee_rate,
        coupon=coupon,
        loyalty_points=request.loyalty_points,
        loyalty_balance=customer.loyalty_points if customer else 0,
        redemption_value=settings.loyalty_redemption_value,
    )

    now = datetime.now(timezone.utc)
    order = Order(
        order_number=generate_order_number(ORDER_NUMBER_PREFIXES.get(request.source, "")),
        delivery_type=request.delivery_type,
        status="new",
        subtotal=breakdown.subtotal,
        delivery_fee=breakdown.delivery_fee,
        service_fee=breakdown.service_fee,
        discount=breakdown.discount,
        total=breakdown.total,
        payment_method=request.payment_method,
        table_id=table.id if table else None,
        customer_id=customer.id if customer else None,
        customer_name=request.customer_name,
        customer_phone=request.customer_phone,
        delivery_address=(
            request.delivery_address.model_dump()
            if request.delivery_type == "delivery" and request.delivery_address
            else None
        ),
        notes=request.notes,
        coupon_code=coupon.code if coupon else None,
        loyalty_points_used=breakdown.loyalty_points_used,
        created_at=now,
        updated_at=now,
    )
    session.add(order)
    session.commit()
    session.refresh(order)

    _write_items(session, order, cart)

    if coupon is not None:
        crud.increment_coupon_usage(session, coupon)
        logger.info("Coupon %s redeemed on order %s", coupon.code, order.order_number)

    if customer is not None and breakdown.loyalty_points_used > 0:
        crud.record_loyalty_move(
            session, customer, -breakdown.loyalty_points_used, "redeem", order_id=order.id
        )
        logger.info(
            "Customer %s redeemed %d points on order %s",
            customer.id,
            breakdown.loyalty_points_used,
            order.order_number,
        )

    if table is not None:
        crud.set_table_status(session, table.id, "occupied")

    session.refresh(order)
    logger.info("Order %s created (%s, total %.2f)", order.order_number, order.delivery_type, order.total)
    notify_order_event(order, "created")
    return order


def replace_items(
    session: Session,
    order: Order,
    lines: Iterable[CartLineIn],
    include_service_fee: Optional[bool] = None,
) -> Order:
    """Swap the order's items for a new cart and reprice it.

    The stored discount and delivery fee are kept as they are.
    """
    cart = build_cart(session, lines)
    if cart.is_empty():
        raise CheckoutError("Add items to the cart before saving the order")

    for item in crud.list_order_items(session, order.id):
        session.delete(item)
    session.commit()
    _write_items(session, order, cart)

    if include_service_fee is None:
        include_service_fee = order.service_fee > 0
    settings = crud.get_restaurant_settings(session)
    subtotal = cart.subtotal
    service_fee = round(subtotal * settings.service_fee_rate, 2) if include_service_fee else 0.0
    total = max(0.0, subtotal + order.delivery_fee + service_fee - order.discount)
    return crud.update_record(
        session,
        order,
        {"subtotal": subtotal, "service_fee": service_fee, "total": round(total, 2)},
    )


def append_items(session: Session, order: Order, lines: Iterable[CartLineIn]) -> Order:
    """Add items to an open tab.

    Subtotal and total are both reset to the sum of every item on the order,
    which drops any fee or discount previously applied.
    """
    cart = build_cart(session, lines)
    if cart.is_empty():
        raise CheckoutError("Add items to the cart before saving the order")
    _write_items(session, order, cart)

    new_total = round(sum(item.total_price for item in crud.list_order_items(session, order.id)), 2)
    return crud.update_record(session, order, {"subtotal": new_total, "total": new_total})
