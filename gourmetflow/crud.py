from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Iterable, List, Optional, Type

from sqlalchemy import case, func, or_
from sqlmodel import Session, SQLModel, select

from .models import (
    CashMovement,
    Category,
    Coupon,
    Courier,
    Customer,
    DiningTable,
    Expense,
    InventoryItem,
    ItemVariation,
    LoyaltyTransaction,
    MenuItem,
    Order,
    OrderItem,
    RestaurantSettings,
    Supplier,
    TABLE_STATUSES,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# -------------------------
# Generic record operations
# -------------------------

def create_record(session: Session, model: Type[SQLModel], data: dict) -> SQLModel:
    record = model(**data)
    now = _now()
    for field in ("created_at", "updated_at"):
        if hasattr(record, field):
            setattr(record, field, now)
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def update_record(
    session: Session,
    record: SQLModel,
    updates: dict,
    *,
    skip_none: bool = True,
) -> SQLModel:
    """Apply ``updates`` to ``record`` and commit.

    ``None`` values are ignored unless ``skip_none`` is off, in which case
    they clear nullable columns. Non-nullable columns are never cleared.
    """
    columns = record.__table__.columns
    for key, value in updates.items():
        if value is None and (skip_none or key not in columns or not columns[key].nullable):
            continue
        setattr(record, key, value)
    if hasattr(record, "updated_at"):
        record.updated_at = _now()
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def delete_record(session: Session, record: SQLModel) -> None:
    session.delete(record)
    session.commit()


def list_records(session: Session, model: Type[SQLModel], *order_by) -> List[SQLModel]:
    statement = select(model)
    if order_by:
        statement = statement.order_by(*order_by)
    return list(session.exec(statement))


# -------------------------
# Category operations
# -------------------------

def list_categories(session: Session, *, active_only: bool = False) -> List[Category]:
    statement = select(Category)
    if active_only:
        statement = statement.where(Category.is_active.is_(True))
    statement = statement.order_by(Category.sort_order.asc(), Category.id.asc())
    return list(session.exec(statement))


def delete_category(session: Session, category: Category) -> None:
    in_use = session.exec(
        select(func.count(MenuItem.id)).where(MenuItem.category_id == category.id)
    ).one()
    if in_use:
        raise ValueError("Cannot delete a category that still has menu items")
    delete_record(session, category)


# -------------------------
# Menu operations
# -------------------------

def list_menu_items(
    session: Session,
    *,
    available_only: bool = False,
    category_id: Optional[int] = None,
) -> List[MenuItem]:
    statement = select(MenuItem)
    if available_only:
        statement = statement.where(MenuItem.is_available.is_(True))
    if category_id is not None:
        statement = statement.where(MenuItem.category_id == category_id)
    statement = statement.order_by(MenuItem.sort_order.asc(), MenuItem.id.asc())
    return list(session.exec(statement))


def get_menu_item(session: Session, menu_item_id: int) -> MenuItem | None:
    return session.get(MenuItem, menu_item_id)


def delete_menu_item(session: Session, menu_item: MenuItem) -> None:
    in_use = session.exec(
        select(func.count(OrderItem.id)).where(OrderItem.menu_item_id == menu_item.id)
    ).one()
    if in_use:
        raise ValueError("Cannot delete a menu item that already has orders")
    for variation in list_variations(session, menu_item.id):
        session.delete(variation)
    delete_record(session, menu_item)


def list_variations(session: Session, menu_item_id: int, *, active_only: bool = False) -> List[ItemVariation]:
    statement = select(ItemVariation).where(ItemVariation.menu_item_id == menu_item_id)
    if active_only:
        statement = statement.where(ItemVariation.is_active.is_(True))
    statement = statement.order_by(ItemVariation.type.asc(), ItemVariation.id.asc())
    return list(session.exec(statement))


# -------------------------
# Table operations
# -------------------------

def list_tables(session: Session) -> List[DiningTable]:
    return list(session.exec(select(DiningTable).order_by(DiningTable.number.asc())))


def create_table(session: Session, data: dict) -> DiningTable:
    existing = session.exec(select(DiningTable).where(DiningTable.number == data["number"])).first()
    if existing is not None:
        raise ValueError(f"Table {data['number']} already exists")
    return create_record(session, DiningTable, data)


def set_table_status(session: Session, table_id: Optional[int], status: str) -> DiningTable | None:
    if table_id is None:
        return None
    if status not in TABLE_STATUSES:
        raise ValueError(f"Unknown table status: {status}")
    table = session.get(DiningTable, table_id)
    if table is None:
        return None
    table.status = status
    session.add(table)
    session.commit()
    session.refresh(table)
    return table


def delete_table(session: Session, table: DiningTable) -> None:
    if table.status == "occupied":
        raise ValueError("Cannot delete an occupied table")
    delete_record(session, table)


# -------------------------
# Customer operations
# -------------------------

def list_customers(session: Session, *, search: Optional[str] = None) -> List[Customer]:
    statement = select(Customer)
    if search:
        pattern = f"%{search.strip()}%"
        statement = statement.where(or_(Customer.name.ilike(pattern), Customer.phone.ilike(pattern)))
    statement = statement.order_by(Customer.name.asc(), Customer.id.asc())
    return list(session.exec(statement))


def find_customer_by_phone(session: Session, phone: str) -> Customer | None:
    # exact match, first row wins
    statement = select(Customer).where(Customer.phone == phone).order_by(Customer.id.asc())
    return session.exec(statement).first()


def toggle_suspicious(session: Session, customer: Customer) -> Customer:
    customer.is_suspicious = not customer.is_suspicious
    return update_record(session, customer, {})


def customer_history(session: Session, customer: Customer) -> dict:
    row = session.exec(
        select(
            func.count(Order.id),
            func.coalesce(func.sum(case((Order.status == "completed", 1), else_=0)), 0),
            func.coalesce(func.sum(case((Order.status == "completed", Order.total), else_=0)), 0),
            func.max(Order.created_at),
        ).where(Order.customer_id == customer.id)
    ).one()
    return {
        "customer_id": customer.id,
        "total_orders": int(row[0] or 0),
        "completed_orders": int(row[1] or 0),
        "total_spent": round(float(row[2] or 0), 2),
        "last_order_at": row[3],
        "loyalty_points": customer.loyalty_points,
    }


def list_loyalty_transactions(session: Session, customer_id: int) -> List[LoyaltyTransaction]:
    statement = (
        select(LoyaltyTransaction)
        .where(LoyaltyTransaction.customer_id == customer_id)
        .order_by(LoyaltyTransaction.created_at.asc(), LoyaltyTransaction.id.asc())
    )
    return list(session.exec(statement))


def record_loyalty_move(
    session: Session,
    customer: Customer,
    points: int,
    kind: str,
    order_id: Optional[int] = None,
) -> LoyaltyTransaction:
    customer.loyalty_points = (customer.loyalty_points or 0) + points
    customer.updated_at = _now()
    entry = LoyaltyTransaction(customer_id=customer.id, order_id=order_id, points=points, kind=kind)
    session.add(customer)
    session.add(entry)
    session.commit()
    session.refresh(entry)
    session.refresh(customer)
    return entry


# -------------------------
# Coupon operations
# -------------------------

def list_coupons(session: Session) -> List[Coupon]:
    return list(session.exec(select(Coupon).order_by(Coupon.created_at.desc(), Coupon.id.desc())))


def get_coupon_by_code(session: Session, code: str) -> Coupon | None:
    normalized = (code or "").strip().upper()
    if not normalized:
        return None
    statement = select(Coupon).where(func.upper(Coupon.code) == normalized)
    return session.exec(statement).first()


def create_coupon(session: Session, data: dict) -> Coupon:
    data = dict(data)
    data["code"] = data["code"].strip().upper()
    if get_coupon_by_code(session, data["code"]) is not None:
        raise ValueError(f"Coupon {data['code']} already exists")
    return create_record(session, Coupon, data)


def toggle_coupon(session: Session, coupon: Coupon) -> Coupon:
    coupon.is_active = not coupon.is_active
    return update_record(session, coupon, {})


def increment_coupon_usage(session: Session, coupon: Coupon) -> Coupon:
    # read-modify-write; concurrent redemptions can lose an increment
    current = coupon.current_uses
    return update_record(session, coupon, {"current_uses": current + 1})


# -------------------------
# Order operations
# -------------------------

def list_orders(
    session: Session,
    *,
    statuses: Optional[Iterable[str]] = None,
    delivery_type: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Order]:
    statement = select(Order)
    if statuses:
        statement = statement.where(Order.status.in_(list(statuses)))
    if delivery_type:
        statement = statement.where(Order.delivery_type == delivery_type)
    statement = statement.order_by(Order.created_at.desc(), Order.id.desc())
    if limit:
        statement = statement.limit(limit)
    return list(session.exec(statement))


def get_order(session: Session, order_id: int) -> Order | None:
    return session.get(Order, order_id)


def list_order_items(session: Session, order_id: int) -> List[OrderItem]:
    statement = select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.id.asc())
    return list(session.exec(statement))


KITCHEN_STATUSES = ("confirmed", "preparing")


def kitchen_queue(session: Session, statuses: Optional[Iterable[str]] = None) -> List[dict]:
    """Open tickets, oldest first.

    The kitchen screen shows confirmed and preparing orders; the kitchen
    monitor passes its own set, usually new, preparing and ready.
    """
    statement = (
        select(Order)
        .where(Order.status.in_(list(statuses or KITCHEN_STATUSES)))
        .order_by(Order.created_at.asc(), Order.id.asc())
    )
    return [
        {"order": order, "items": list_order_items(session, order.id)}
        for order in session.exec(statement).all()
    ]


# -------------------------
# Cash operations
# -------------------------

def _day_bounds(start_date: Optional[date], end_date: Optional[date]) -> tuple:
    start_dt = datetime.combine(start_date, time.min) if start_date else None
    end_dt = datetime.combine(end_date, time.max) if end_date else None
    return start_dt, end_dt


def list_cash_movements(
    session: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[CashMovement]:
    statement = select(CashMovement)
    if start_date:
        statement = statement.where(CashMovement.movement_date >= start_date)
    if end_date:
        statement = statement.where(CashMovement.movement_date <= end_date)
    statement = statement.order_by(CashMovement.movement_date.desc(), CashMovement.id.desc())
    return list(session.exec(statement))


def create_cash_movement(session: Session, data: dict) -> CashMovement:
    data = dict(data)
    data["amount"] = abs(data.get("amount") or 0)
    if data.get("movement_date") is None:
        data.pop("movement_date", None)
    return create_record(session, CashMovement, data)


def cash_summary(
    session: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> dict:
    movements = list_cash_movements(session, start_date, end_date)
    entries = [m for m in movements if m.type == "entry"]
    exits = [m for m in movements if m.type == "exit"]
    total_entries = round(sum(m.amount for m in entries), 2)
    total_exits = round(sum(m.amount for m in exits), 2)
    return {
        "total_entries": total_entries,
        "total_exits": total_exits,
        "balance": round(total_entries - total_exits, 2),
        "entry_count": len(entries),
        "exit_count": len(exits),
    }


# -------------------------
# Registry listings
# -------------------------

def list_expenses(session: Session) -> List[Expense]:
    return list_records(session, Expense, Expense.expense_date.desc(), Expense.id.desc())


def list_suppliers(session: Session) -> List[Supplier]:
    return list_records(session, Supplier, Supplier.name.asc())


def list_couriers(session: Session, *, active_only: bool = False) -> List[Courier]:
    statement = select(Courier)
    if active_only:
        statement = statement.where(Courier.is_active.is_(True))
    return list(session.exec(statement.order_by(Courier.name.asc())))


# -------------------------
# Inventory
# -------------------------

def list_inventory(session: Session, *, category: Optional[str] = None) -> List[InventoryItem]:
    statement = select(InventoryItem)
    if category:
        statement = statement.where(InventoryItem.category == category)
    return list(session.exec(statement.order_by(InventoryItem.name.asc(), InventoryItem.id.asc())))


def list_low_stock(session: Session) -> List[InventoryItem]:
    statement = (
        select(InventoryItem)
        .where(InventoryItem.current_quantity < InventoryItem.min_quantity)
        .order_by(InventoryItem.name.asc(), InventoryItem.id.asc())
    )
    return list(session.exec(statement))


def adjust_inventory(session: Session, item: InventoryItem, delta: float) -> InventoryItem:
    # stock never goes below zero
    quantity = max(0.0, (item.current_quantity or 0) + delta)
    return update_record(session, item, {"current_quantity": quantity})


# -------------------------
# Settings
# -------------------------

def get_restaurant_settings(session: Session) -> RestaurantSettings:
    current = session.exec(select(RestaurantSettings).order_by(RestaurantSettings.id.asc())).first()
    if current is not None:
        return current
    return create_record(session, RestaurantSettings, {})


def ensure_default_settings(session: Session) -> None:
    get_restaurant_settings(session)


# -------------------------
# Reports
# -------------------------

def sales_report(
    session: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> dict:
    start_dt, end_dt = _day_bounds(start_date, end_date)
    filters = [Order.status == "completed"]
    if start_dt:
        filters.append(Order.created_at >= start_dt)
    if end_dt:
        filters.append(Order.created_at <= end_dt)

    total_orders, total_revenue = session.exec(
        select(func.count(Order.id), func.coalesce(func.sum(Order.total), 0)).where(*filters)
    ).one()

    by_payment = {
        row[0]: {"count": int(row[1]), "total": round(float(row[2] or 0), 2)}
        for row in session.exec(
            select(Order.payment_method, func.count(Order.id), func.sum(Order.total))
            .where(*filters)
            .group_by(Order.payment_method)
        ).all()
    }
    by_delivery = {
        row[0]: {"count": int(row[1]), "total": round(float(row[2] or 0), 2)}
        for row in session.exec(
            select(Order.delivery_type, func.count(Order.id), func.sum(Order.total))
            .where(*filters)
            .group_by(Order.delivery_type)
        ).all()
    }

    total_orders = int(total_orders or 0)
    total_revenue = round(float(total_revenue or 0), 2)
    cash = cash_summary(session, start_date, end_date)
    return {
        "total_orders": total_orders,
        "total_revenue": total_revenue,
        "average_ticket": round(total_revenue / total_orders, 2) if total_orders else 0.0,
        "by_payment_method": by_payment,
        "by_delivery_type": by_delivery,
        "cash_entries": cash["total_entries"],
        "cash_exits": cash["total_exits"],
    }
