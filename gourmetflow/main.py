from __future__ import annotations

import csv
import io
from datetime import date
from typing import Annotated, List, Literal, Optional

from fastapi import FastAPI, HTTPException, Query, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, PlainTextResponse
from sqlmodel import Session

from . import checkout, crud, lifecycle, pricing, schemas
from .config import get_settings
from .database import engine, init_db
from .deps import AccessGuard, SessionDep, get_or_404
from .logging_config import configure_logging
from .models import Coupon, Customer, DiningTable, ItemVariation, MenuItem, Order
from .receipts import render_receipt
from .registry import ROUTERS

app = FastAPI(title="GourmetFlow Orders", version="0.1.0")
settings = get_settings()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in ROUTERS:
    app.include_router(router)


@app.on_event("startup")
def on_startup() -> None:
    configure_logging()
    init_db()
    with Session(engine) as session:
        crud.ensure_default_settings(session)


@app.get("/health")
def health_check() -> dict:
    return {"status": "ok"}


def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


# -------------------------
# Menu
# -------------------------

@app.get("/menu-items", response_model=List[schemas.MenuItemRead])
def list_menu_items(
    _: AccessGuard,
    session: SessionDep,
    available_only: bool = False,
    category_id: Optional[int] = None,
):
    return crud.list_menu_items(session, available_only=available_only, category_id=category_id)


@app.post("/menu-items", response_model=schemas.MenuItemRead, status_code=status.HTTP_201_CREATED)
def create_menu_item(payload: schemas.MenuItemCreate, _: AccessGuard, session: SessionDep):
    return crud.create_record(session, MenuItem, payload.model_dump(exclude_unset=True))


@app.get("/menu-items/{menu_item_id}", response_model=schemas.MenuItemRead)
def get_menu_item(menu_item_id: int, _: AccessGuard, session: SessionDep):
    return get_or_404(session, MenuItem, menu_item_id, "Menu item")


@app.put("/menu-items/{menu_item_id}", response_model=schemas.MenuItemRead)
def update_menu_item(
    menu_item_id: int,
    payload: schemas.MenuItemUpdate,
    _: AccessGuard,
    session: SessionDep,
):
    menu_item = get_or_404(session, MenuItem, menu_item_id, "Menu item")
    updates = payload.model_dump(exclude_unset=True)
    return crud.update_record(session, menu_item, updates, skip_none=False)


@app.delete("/menu-items/{menu_item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_menu_item(menu_item_id: int, _: AccessGuard, session: SessionDep):
    menu_item = get_or_404(session, MenuItem, menu_item_id, "Menu item")
    try:
        crud.delete_menu_item(session, menu_item)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/menu-items/{menu_item_id}/variations", response_model=List[schemas.VariationRead])
def list_variations(
    menu_item_id: int,
    _: AccessGuard,
    session: SessionDep,
    active_only: bool = False,
):
    get_or_404(session, MenuItem, menu_item_id, "Menu item")
    return crud.list_variations(session, menu_item_id, active_only=active_only)


@app.post(
    "/menu-items/{menu_item_id}/variations",
    response_model=schemas.VariationRead,
    status_code=status.HTTP_201_CREATED,
)
def create_variation(
    menu_item_id: int,
    payload: schemas.VariationCreate,
    _: AccessGuard,
    session: SessionDep,
):
    get_or_404(session, MenuItem, menu_item_id, "Menu item")
    data = payload.model_dump()
    data["menu_item_id"] = menu_item_id
    return crud.create_record(session, ItemVariation, data)


@app.put("/variations/{variation_id}", response_model=schemas.VariationRead)
def update_variation(
    variation_id: int,
    payload: schemas.VariationUpdate,
    _: AccessGuard,
    session: SessionDep,
):
    variation = get_or_404(session, ItemVariation, variation_id, "Variation")
    updates = payload.model_dump(exclude_unset=True)
    return crud.update_record(session, variation, updates, skip_none=False)


@app.delete("/variations/{variation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_variation(variation_id: int, _: AccessGuard, session: SessionDep):
    variation = get_or_404(session, ItemVariation, variation_id, "Variation")
    crud.delete_record(session, variation)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -------------------------
# Customers
# -------------------------

@app.get("/customers", response_model=List[schemas.CustomerRead])
def list_customers(_: AccessGuard, session: SessionDep, search: Optional[str] = None):
    return crud.list_customers(session, search=search)


@app.post("/customers", response_model=schemas.CustomerRead, status_code=status.HTTP_201_CREATED)
def create_customer(payload: schemas.CustomerCreate, _: AccessGuard, session: SessionDep):
    return crud.create_record(session, Customer, payload.model_dump())


@app.get("/customers/by-phone/{phone}", response_model=schemas.CustomerRead)
def get_customer_by_phone(phone: str, _: AccessGuard, session: SessionDep):
    customer = crud.find_customer_by_phone(session, phone)
    if customer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    return customer


@app.get("/customers/{customer_id}", response_model=schemas.CustomerRead)
def get_customer(customer_id: int, _: AccessGuard, session: SessionDep):
    return get_or_404(session, Customer, customer_id, "Customer")


@app.put("/customers/{customer_id}", response_model=schemas.CustomerRead)
def update_customer(
    customer_id: int,
    payload: schemas.CustomerUpdate,
    _: AccessGuard,
    session: SessionDep,
):
    customer = get_or_404(session, Customer, customer_id, "Customer")
    updates = payload.model_dump(exclude_unset=True)
    return crud.update_record(session, customer, updates, skip_none=False)


@app.delete("/customers/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(customer_id: int, _: AccessGuard, session: SessionDep):
    customer = get_or_404(session, Customer, customer_id, "Customer")
    crud.delete_record(session, customer)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/customers/{customer_id}/suspicious", response_model=schemas.CustomerRead)
def toggle_customer_suspicious(customer_id: int, _: AccessGuard, session: SessionDep):
    customer = get_or_404(session, Customer, customer_id, "Customer")
    return crud.toggle_suspicious(session, customer)


@app.get("/customers/{customer_id}/history", response_model=schemas.CustomerHistory)
def customer_history(customer_id: int, _: AccessGuard, session: SessionDep):
    customer = get_or_404(session, Customer, customer_id, "Customer")
    return crud.customer_history(session, customer)


@app.get("/customers/{customer_id}/loyalty", response_model=List[schemas.LoyaltyTransactionRead])
def customer_loyalty(customer_id: int, _: AccessGuard, session: SessionDep):
    get_or_404(session, Customer, customer_id, "Customer")
    return crud.list_loyalty_transactions(session, customer_id)


# -------------------------
# Coupons
# -------------------------

@app.get("/coupons", response_model=List[schemas.CouponRead])
def list_coupons(_: AccessGuard, session: SessionDep):
    return crud.list_coupons(session)


@app.post("/coupons", response_model=schemas.CouponRead, status_code=status.HTTP_201_CREATED)
def create_coupon(payload: schemas.CouponCreate, _: AccessGuard, session: SessionDep):
    try:
        return crud.create_coupon(session, payload.model_dump())
    except ValueError as exc:
        raise _bad_request(exc) from exc


@app.post("/coupons/validate", response_model=schemas.CouponValidateResponse)
def validate_coupon(payload: schemas.CouponValidateRequest, _: AccessGuard, session: SessionDep):
    try:
        coupon = pricing.apply_coupon(session, payload.code, payload.subtotal)
    except pricing.CouponError as exc:
        raise _bad_request(exc) from exc
    return schemas.CouponValidateResponse(
        code=coupon.code,
        type=coupon.type,
        discount=pricing.coupon_discount(coupon, payload.subtotal),
    )


@app.put("/coupons/{coupon_id}", response_model=schemas.CouponRead)
def update_coupon(
    coupon_id: int,
    payload: schemas.CouponUpdate,
    _: AccessGuard,
    session: SessionDep,
):
    coupon = get_or_404(session, Coupon, coupon_id, "Coupon")
    updates = payload.model_dump(exclude_unset=True)
    return crud.update_record(session, coupon, updates, skip_none=False)


@app.post("/coupons/{coupon_id}/toggle", response_model=schemas.CouponRead)
def toggle_coupon(coupon_id: int, _: AccessGuard, session: SessionDep):
    coupon = get_or_404(session, Coupon, coupon_id, "Coupon")
    return crud.toggle_coupon(session, coupon)


@app.delete("/coupons/{coupon_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_coupon(coupon_id: int, _: AccessGuard, session: SessionDep):
    coupon = get_or_404(session, Coupon, coupon_id, "Coupon")
    crud.delete_record(session, coupon)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -------------------------
# Cart and orders
# -------------------------

@app.post("/cart/quote", response_model=schemas.QuoteResponse)
def quote_cart(payload: schemas.QuoteRequest, _: AccessGuard, session: SessionDep):
    try:
        cart, breakdown, coupon = checkout.quote(session, payload)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return schemas.QuoteResponse(
        lines=[
            schemas.QuoteLine(
                line_id=line.line_id,
                menu_item_id=line.menu_item_id,
                name=line.name,
                quantity=line.quantity,
                unit_price=line.final_price,
                total_price=line.total_price,
                customizations=line.customizations_text,
            )
            for line in cart.lines
        ],
        pricing=breakdown,
        coupon_code=coupon.code if coupon else None,
    )


@app.get("/orders", response_model=List[schemas.OrderRead])
def list_orders(
    _: AccessGuard,
    session: SessionDep,
    statuses: Annotated[Optional[List[str]], Query(alias="status")] = None,
    delivery_type: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=500),
):
    return crud.list_orders(session, statuses=statuses, delivery_type=delivery_type, limit=limit)


@app.post("/orders/checkout", response_model=schemas.OrderDetail, status_code=status.HTTP_201_CREATED)
def create_order(payload: schemas.CheckoutRequest, _: AccessGuard, session: SessionDep):
    try:
        order = checkout.checkout(session, payload)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return _order_detail(session, order)


@app.get("/orders/export", response_class=PlainTextResponse)
def export_orders(_: AccessGuard, session: SessionDep):
    orders = crud.list_orders(session)
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([
        "id",
        "order_number",
        "created_at",
        "delivery_type",
        "status",
        "customer_name",
        "subtotal",
        "delivery_fee",
        "service_fee",
        "discount",
        "total",
        "payment_method",
    ])
    for order in orders:
        writer.writerow([
            order.id,
            order.order_number,
            order.created_at.isoformat() if order.created_at else "",
            order.delivery_type,
            order.status,
            order.customer_name or "",
            f"{order.subtotal:.2f}",
            f"{order.delivery_fee:.2f}",
            f"{order.service_fee:.2f}",
            f"{order.discount:.2f}",
            f"{order.total:.2f}",
            order.payment_method,
        ])
    headers = {
        "Content-Disposition": "attachment; filename=orders.csv",
    }
    return PlainTextResponse(content=buffer.getvalue(), media_type="text/csv", headers=headers)


@app.get("/orders/{order_id}", response_model=schemas.OrderDetail)
def get_order(order_id: int, _: AccessGuard, session: SessionDep):
    order = get_or_404(session, Order, order_id, "Order")
    return _order_detail(session, order)


@app.put("/orders/{order_id}/items", response_model=schemas.OrderDetail)
def replace_order_items(
    order_id: int,
    payload: schemas.OrderItemsPayload,
    _: AccessGuard,
    session: SessionDep,
):
    order = get_or_404(session, Order, order_id, "Order")
    try:
        order = checkout.replace_items(session, order, payload.items, payload.include_service_fee)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return _order_detail(session, order)


@app.post("/orders/{order_id}/items", response_model=schemas.OrderDetail)
def append_order_items(
    order_id: int,
    payload: schemas.OrderItemsPayload,
    _: AccessGuard,
    session: SessionDep,
):
    order = get_or_404(session, Order, order_id, "Order")
    try:
        order = checkout.append_items(session, order, payload.items)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return _order_detail(session, order)


@app.patch("/orders/{order_id}/status", response_model=schemas.OrderRead)
def update_order_status(
    order_id: int,
    payload: schemas.StatusUpdate,
    _: AccessGuard,
    session: SessionDep,
):
    order = get_or_404(session, Order, order_id, "Order")
    return lifecycle.set_status(session, order, payload.status)


@app.post("/orders/{order_id}/complete", response_model=schemas.OrderRead)
def complete_order(
    order_id: int,
    _: AccessGuard,
    session: SessionDep,
    payload: Optional[schemas.CompleteRequest] = None,
):
    order = get_or_404(session, Order, order_id, "Order")
    payment_method = payload.payment_method if payload else None
    return lifecycle.complete_order(session, order, payment_method)


@app.post("/orders/{order_id}/cancel", response_model=schemas.OrderRead)
def cancel_order(order_id: int, _: AccessGuard, session: SessionDep):
    order = get_or_404(session, Order, order_id, "Order")
    return lifecycle.cancel_order(session, order)


@app.get("/orders/{order_id}/receipt", response_class=HTMLResponse)
def order_receipt(
    order_id: int,
    _: AccessGuard,
    session: SessionDep,
    kind: Literal["kitchen", "customer"] = "customer",
):
    order = get_or_404(session, Order, order_id, "Order")
    table = session.get(DiningTable, order.table_id) if order.table_id else None
    restaurant = crud.get_restaurant_settings(session)
    content = render_receipt(
        order,
        crud.list_order_items(session, order.id),
        restaurant.name,
        table_number=table.number if table else None,
        kind=kind,
    )
    return HTMLResponse(content=content)


@app.get("/kitchen/queue", response_model=List[schemas.KitchenTicket])
def kitchen_queue(
    _: AccessGuard,
    session: SessionDep,
    statuses: Annotated[Optional[List[schemas.OrderStatus]], Query(alias="status")] = None,
):
    return [
        schemas.KitchenTicket(
            order=entry["order"].model_dump(),
            items=[item.model_dump() for item in entry["items"]],
            waiting_minutes=lifecycle.waiting_minutes(entry["order"]),
            is_late=lifecycle.is_late(entry["order"]),
        )
        for entry in crud.kitchen_queue(session, statuses)
    ]


def _order_detail(session: Session, order: Order) -> dict:
    data = order.model_dump()
    data["items"] = [item.model_dump() for item in crud.list_order_items(session, order.id)]
    return data


# -------------------------
# Cash ledger
# -------------------------

@app.get("/cash-movements", response_model=List[schemas.CashMovementRead])
def list_cash_movements(
    _: AccessGuard,
    session: SessionDep,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    return crud.list_cash_movements(session, start_date, end_date)


@app.post("/cash-movements", response_model=schemas.CashMovementRead, status_code=status.HTTP_201_CREATED)
def create_cash_movement(payload: schemas.CashMovementCreate, _: AccessGuard, session: SessionDep):
    return crud.create_cash_movement(session, payload.model_dump())


@app.get("/cash-movements/summary", response_model=schemas.CashSummary)
def cash_summary(
    _: AccessGuard,
    session: SessionDep,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    return crud.cash_summary(session, start_date, end_date)


# -------------------------
# Settings and reports
# -------------------------

@app.get("/settings", response_model=schemas.SettingsRead)
def get_restaurant_settings(_: AccessGuard, session: SessionDep):
    return crud.get_restaurant_settings(session)


@app.put("/settings", response_model=schemas.SettingsRead)
def update_restaurant_settings(payload: schemas.SettingsUpdate, _: AccessGuard, session: SessionDep):
    current = crud.get_restaurant_settings(session)
    updates = payload.model_dump(exclude_unset=True)
    return crud.update_record(session, current, updates, skip_none=False)


@app.get("/reports/sales", response_model=schemas.SalesReport)
def sales_report(
    _: AccessGuard,
    session: SessionDep,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    return crud.sales_report(session, start_date, end_date)
