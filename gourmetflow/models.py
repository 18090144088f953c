from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

ORDER_STATUSES = (
    "new",
    "confirmed",
    "preparing",
    "ready",
    "out_for_delivery",
    "completed",
    "cancelled",
)
DELIVERY_TYPES = ("delivery", "pickup", "dine_in")
PAYMENT_METHODS = ("cash", "credit_card", "debit_card", "pix")

# printed on receipts
PAYMENT_LABELS = {
    "cash": "Dinheiro",
    "credit_card": "Cartão de Crédito",
    "debit_card": "Cartão de Débito",
    "pix": "PIX",
}
# cash ledger groups both card types together
CASH_PAYMENT_LABELS = {
    "cash": "Dinheiro",
    "credit_card": "Cartão",
    "debit_card": "Cartão",
    "pix": "PIX",
}
COUPON_TYPES = ("percentage", "fixed", "free_shipping")
VARIATION_TYPES = ("size", "sauce", "border", "extra", "drink")
TABLE_STATUSES = ("free", "occupied", "reserved")


class Category(SQLModel, table=True):
    __tablename__ = "categories"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    sort_order: int = Field(default=0, index=True)
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MenuItem(SQLModel, table=True):
    __tablename__ = "menu_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    description: Optional[str] = None
    price: float = Field(default=0, ge=0)
    promotional_price: Optional[float] = Field(default=None, ge=0)
    category_id: Optional[int] = Field(default=None, foreign_key="categories.id", index=True)
    image_url: Optional[str] = None
    is_available: bool = Field(default=True, index=True)
    preparation_time: int = Field(default=15, ge=0)
    sort_order: int = Field(default=0, index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ItemVariation(SQLModel, table=True):
    __tablename__ = "item_variations"

    id: Optional[int] = Field(default=None, primary_key=True)
    menu_item_id: int = Field(foreign_key="menu_items.id", index=True)
    name: str
    type: str = Field(default="extra")
    price_adjustment: float = Field(default=0)
    is_required: bool = Field(default=False)
    is_active: bool = Field(default=True, index=True)


class DiningTable(SQLModel, table=True):
    __tablename__ = "tables"

    id: Optional[int] = Field(default=None, primary_key=True)
    number: int = Field(index=True, sa_column_kwargs={"unique": True})
    capacity: int = Field(default=4, ge=1)
    status: str = Field(default="free", index=True)


class Customer(SQLModel, table=True):
    __tablename__ = "customers"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    phone: str = Field(index=True)
    cpf: Optional[str] = None
    email: Optional[str] = None
    address: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    loyalty_points: int = Field(default=0)
    is_suspicious: bool = Field(default=False, index=True)
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class LoyaltyTransaction(SQLModel, table=True):
    __tablename__ = "loyalty_transactions"

    id: Optional[int] = Field(default=None, primary_key=True)
    customer_id: int = Field(foreign_key="customers.id", index=True)
    order_id: Optional[int] = Field(default=None, foreign_key="orders.id", index=True)
    points: int
    kind: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Coupon(SQLModel, table=True):
    __tablename__ = "coupons"

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(index=True, sa_column_kwargs={"unique": True})
    type: str = Field(default="percentage")
    discount_value: float = Field(default=0, ge=0)
    min_order_value: float = Field(default=0, ge=0)
    max_uses: int = Field(default=100, ge=0)
    current_uses: int = Field(default=0, ge=0)
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Order(SQLModel, table=True):
    __tablename__ = "orders"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_number: str = Field(index=True)
    delivery_type: str = Field(default="dine_in", index=True)
    status: str = Field(default="new", index=True)
    subtotal: float = Field(default=0)
    delivery_fee: float = Field(default=0)
    service_fee: float = Field(default=0)
    discount: float = Field(default=0)
    total: float = Field(default=0)
    payment_method: str = Field(default="cash")
    table_id: Optional[int] = Field(default=None, foreign_key="tables.id", index=True)
    customer_id: Optional[int] = Field(default=None, foreign_key="customers.id", index=True)
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    delivery_address: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    notes: Optional[str] = None
    coupon_code: Optional[str] = None
    loyalty_points_used: int = Field(default=0)
    loyalty_points_earned: int = Field(default=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None


class OrderItem(SQLModel, table=True):
    __tablename__ = "order_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="orders.id", index=True)
    menu_item_id: Optional[int] = Field(default=None, foreign_key="menu_items.id")
    name: str
    quantity: int = Field(default=1, ge=1)
    unit_price: float = Field(default=0)
    total_price: float = Field(default=0)
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CashMovement(SQLModel, table=True):
    __tablename__ = "cash_movements"

    id: Optional[int] = Field(default=None, primary_key=True)
    type: str = Field(index=True)
    amount: float = Field(default=0, ge=0)
    category: Optional[str] = None
    description: Optional[str] = None
    payment_method: Optional[str] = None
    movement_date: date = Field(default_factory=date.today, index=True)
    order_id: Optional[int] = Field(default=None, foreign_key="orders.id", index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Supplier(SQLModel, table=True):
    __tablename__ = "suppliers"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    phone: Optional[str] = None
    email: Optional[str] = None
    cnpj_cpf: Optional[str] = None
    zipcode: Optional[str] = None
    address: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Expense(SQLModel, table=True):
    __tablename__ = "expenses"

    id: Optional[int] = Field(default=None, primary_key=True)
    description: str
    category: str = Field(default="Fornecedores", index=True)
    amount: float = Field(default=0, ge=0)
    expense_date: date = Field(default_factory=date.today, index=True)
    payment_method: Optional[str] = None
    supplier_id: Optional[int] = Field(default=None, foreign_key="suppliers.id", index=True)
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Courier(SQLModel, table=True):
    __tablename__ = "couriers"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    phone: str
    cnh: Optional[str] = None
    vehicle_plate: Optional[str] = None
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class InventoryItem(SQLModel, table=True):
    __tablename__ = "inventory"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    category: str = Field(index=True)
    unit: str = Field(default="kg")
    current_quantity: float = Field(default=0, ge=0)
    min_quantity: float = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RestaurantSettings(SQLModel, table=True):
    __tablename__ = "restaurant_settings"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(default="Restaurante")
    phone: Optional[str] = None
    address: Optional[str] = None
    delivery_fee: float = Field(default=5.0, ge=0)
    service_fee_rate: float = Field(default=0.10, ge=0)
    loyalty_enabled: bool = Field(default=False)
    loyalty_points_per_currency: float = Field(default=1, ge=0)
    loyalty_redemption_value: float = Field(default=0.01, ge=0)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = [
    "Category",
    "MenuItem",
    "ItemVariation",
    "DiningTable",
    "Customer",
    "LoyaltyTransaction",
    "Coupon",
    "Order",
    "OrderItem",
    "CashMovement",
    "Supplier",
    "Expense",
    "Courier",
    "InventoryItem",
    "RestaurantSettings",
]
