from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .pricing import PriceBreakdown

OrderStatus = Literal["new", "confirmed", "preparing", "ready", "out_for_delivery", "completed", "cancelled"]
DeliveryType = Literal["delivery", "pickup", "dine_in"]
PaymentMethod = Literal["cash", "credit_card", "debit_card", "pix"]
CouponType = Literal["percentage", "fixed", "free_shipping"]
VariationType = Literal["size", "sauce", "border", "extra", "drink"]
TableStatus = Literal["free", "occupied", "reserved"]
OrderSource = Literal["pdv", "customer_menu", "table"]
InventoryUnit = Literal["kg", "un", "l", "g"]


class Address(BaseModel):
    street: Optional[str] = None
    number: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    complement: Optional[str] = None


# -------------------------
# Menu
# -------------------------

class CategoryBase(BaseModel):
    name: str
    sort_order: int = 0
    is_active: bool = True


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryRead(CategoryBase):
    id: int
    created_at: datetime


class MenuItemBase(BaseModel):
    name: str
    description: Optional[str] = None
    price: float = Field(ge=0)
    promotional_price: Optional[float] = Field(default=None, ge=0)
    category_id: Optional[int] = None
    image_url: Optional[str] = None
    is_available: bool = True
    preparation_time: int = Field(default=15, ge=0)
    sort_order: int = 0


class MenuItemCreate(MenuItemBase):
    pass


class MenuItemUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    promotional_price: Optional[float] = Field(default=None, ge=0)
    category_id: Optional[int] = None
    image_url: Optional[str] = None
    is_available: Optional[bool] = None
    preparation_time: Optional[int] = Field(default=None, ge=0)
    sort_order: Optional[int] = None


class MenuItemRead(MenuItemBase):
    id: int
    created_at: datetime
    updated_at: datetime


class VariationBase(BaseModel):
    name: str
    type: VariationType = "extra"
    price_adjustment: float = 0
    is_required: bool = False
    is_active: bool = True


class VariationCreate(VariationBase):
    pass


class VariationUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[VariationType] = None
    price_adjustment: Optional[float] = None
    is_required: Optional[bool] = None
    is_active: Optional[bool] = None


class VariationRead(VariationBase):
    id: int
    menu_item_id: int


# -------------------------
# Tables
# -------------------------

class TableCreate(BaseModel):
    number: int = Field(ge=1)
    capacity: int = Field(default=4, ge=1)
    status: TableStatus = "free"


class TableUpdate(BaseModel):
    capacity: Optional[int] = Field(default=None, ge=1)
    status: Optional[TableStatus] = None


class TableRead(BaseModel):
    id: int
    number: int
    capacity: int
    status: str


# -------------------------
# Customers
# -------------------------

class CustomerBase(BaseModel):
    name: str
    phone: str
    cpf: Optional[str] = None
    email: Optional[str] = None
    address: Optional[Address] = None
    is_suspicious: bool = False
    notes: Optional[str] = None


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    cpf: Optional[str] = None
    email: Optional[str] = None
    address: Optional[Address] = None
    is_suspicious: Optional[bool] = None
    notes: Optional[str] = None


class CustomerRead(CustomerBase):
    id: int
    loyalty_points: int
    created_at: datetime
    updated_at: datetime


class CustomerHistory(BaseModel):
    customer_id: int
    total_orders: int
    completed_orders: int
    total_spent: float
    last_order_at: Optional[datetime] = None
    loyalty_points: int


class LoyaltyTransactionRead(BaseModel):
    id: int
    customer_id: int
    order_id: Optional[int] = None
    points: int
    kind: str
    created_at: datetime


# -------------------------
# Coupons
# -------------------------

class CouponBase(BaseModel):
    code: str = Field(min_length=1)
    type: CouponType = "percentage"
    discount_value: float = Field(default=0, ge=0)
    min_order_value: float = Field(default=0, ge=0)
    max_uses: int = Field(default=100, ge=0)
    is_active: bool = True


class CouponCreate(CouponBase):
    pass


class CouponUpdate(BaseModel):
    type: Optional[CouponType] = None
    discount_value: Optional[float] = Field(default=None, ge=0)
    min_order_value: Optional[float] = Field(default=None, ge=0)
    max_uses: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class CouponRead(CouponBase):
    id: int
    current_uses: int
    created_at: datetime
    updated_at: datetime


class CouponValidateRequest(BaseModel):
    code: str
    subtotal: float = Field(ge=0)


class CouponValidateResponse(BaseModel):
    code: str
    type: str
    discount: float


# -------------------------
# Cart and checkout
# -------------------------

class CartLineIn(BaseModel):
    menu_item_id: int
    quantity: int = Field(default=1, ge=1)
    variation_ids: Optional[List[int]] = None
    notes: Optional[str] = None


class QuoteRequest(BaseModel):
    items: List[CartLineIn]
    delivery_type: DeliveryType = "dine_in"
    coupon_code: Optional[str] = None
    customer_phone: Optional[str] = None
    loyalty_points: int = Field(default=0, ge=0)
    include_service_fee: bool = False


class QuoteLine(BaseModel):
    line_id: str
    menu_item_id: int
    name: str
    quantity: int
    unit_price: float
    total_price: float
    customizations: Optional[str] = None


class QuoteResponse(BaseModel):
    lines: List[QuoteLine]
    pricing: PriceBreakdown
    coupon_code: Optional[str] = None


class CheckoutRequest(QuoteRequest):
    source: OrderSource = "pdv"
    payment_method: PaymentMethod = "cash"
    table_id: Optional[int] = None
    customer_name: Optional[str] = None
    customer_cpf: Optional[str] = None
    delivery_address: Optional[Address] = None
    notes: Optional[str] = None


class OrderItemsPayload(BaseModel):
    items: List[CartLineIn]
    include_service_fee: Optional[bool] = None


class OrderItemRead(BaseModel):
    id: int
    order_id: int
    menu_item_id: Optional[int] = None
    name: str
    quantity: int
    unit_price: float
    total_price: float
    notes: Optional[str] = None


class OrderRead(BaseModel):
    id: int
    order_number: str
    delivery_type: str
    status: str
    subtotal: float
    delivery_fee: float
    service_fee: float
    discount: float
    total: float
    payment_method: str
    table_id: Optional[int] = None
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    delivery_address: Optional[dict] = None
    notes: Optional[str] = None
    coupon_code: Optional[str] = None
    loyalty_points_used: int = 0
    loyalty_points_earned: int = 0
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None


class OrderDetail(OrderRead):
    items: List[OrderItemRead] = Field(default_factory=list)


class StatusUpdate(BaseModel):
    status: OrderStatus


class CompleteRequest(BaseModel):
    payment_method: Optional[PaymentMethod] = None


class KitchenTicket(BaseModel):
    order: OrderRead
    items: List[OrderItemRead]
    waiting_minutes: int
    is_late: bool


# -------------------------
# Cash and expenses
# -------------------------

class CashMovementCreate(BaseModel):
    type: Literal["entry", "exit"]
    amount: float
    category: Optional[str] = None
    description: Optional[str] = None
    payment_method: Optional[str] = None
    movement_date: Optional[date] = None


class CashMovementRead(BaseModel):
    id: int
    type: str
    amount: float
    category: Optional[str] = None
    description: Optional[str] = None
    payment_method: Optional[str] = None
    movement_date: date
    order_id: Optional[int] = None
    created_at: datetime


class CashSummary(BaseModel):
    total_entries: float
    total_exits: float
    balance: float
    entry_count: int
    exit_count: int


class ExpenseBase(BaseModel):
    description: str
    category: str = "Fornecedores"
    amount: float = Field(ge=0)
    expense_date: Optional[date] = None
    payment_method: Optional[str] = None
    supplier_id: Optional[int] = None
    notes: Optional[str] = None


class ExpenseCreate(ExpenseBase):
    pass


class ExpenseUpdate(BaseModel):
    description: Optional[str] = None
    category: Optional[str] = None
    amount: Optional[float] = Field(default=None, ge=0)
    expense_date: Optional[date] = None
    payment_method: Optional[str] = None
    supplier_id: Optional[int] = None
    notes: Optional[str] = None


class ExpenseRead(ExpenseBase):
    id: int
    expense_date: date
    created_at: datetime


# -------------------------
# Suppliers and couriers
# -------------------------

class SupplierBase(BaseModel):
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    cnpj_cpf: Optional[str] = None
    zipcode: Optional[str] = None
    address: Optional[Address] = None
    notes: Optional[str] = None


class SupplierCreate(SupplierBase):
    pass


class SupplierUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    cnpj_cpf: Optional[str] = None
    zipcode: Optional[str] = None
    address: Optional[Address] = None
    notes: Optional[str] = None


class SupplierRead(SupplierBase):
    id: int
    created_at: datetime


class CourierBase(BaseModel):
    name: str
    phone: str
    cnh: Optional[str] = None
    vehicle_plate: Optional[str] = None
    is_active: bool = True

    @field_validator("vehicle_plate")
    @classmethod
    def upper_plate(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value else value


class CourierCreate(CourierBase):
    pass


class CourierUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    cnh: Optional[str] = None
    vehicle_plate: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("vehicle_plate")
    @classmethod
    def upper_plate(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value else value


class CourierRead(CourierBase):
    id: int
    created_at: datetime


# -------------------------
# Inventory
# -------------------------

class InventoryItemBase(BaseModel):
    name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    unit: InventoryUnit = "kg"
    current_quantity: float = Field(default=0, ge=0)
    min_quantity: float = Field(default=0, ge=0)


class InventoryItemCreate(InventoryItemBase):
    pass


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[InventoryUnit] = None
    current_quantity: Optional[float] = Field(default=None, ge=0)
    min_quantity: Optional[float] = Field(default=None, ge=0)


class InventoryItemRead(InventoryItemBase):
    id: int
    is_low: bool = False
    updated_at: datetime

    @model_validator(mode="after")
    def flag_low_stock(self):
        self.is_low = self.current_quantity < self.min_quantity
        return self


class StockAdjustment(BaseModel):
    delta: float


# -------------------------
# Settings and reports
# -------------------------

class SettingsUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    delivery_fee: Optional[float] = Field(default=None, ge=0)
    service_fee_rate: Optional[float] = Field(default=None, ge=0)
    loyalty_enabled: Optional[bool] = None
    loyalty_points_per_currency: Optional[float] = Field(default=None, ge=0)
    loyalty_redemption_value: Optional[float] = Field(default=None, ge=0)


class SettingsRead(BaseModel):
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    delivery_fee: float
    service_fee_rate: float
    loyalty_enabled: bool
    loyalty_points_per_currency: float
    loyalty_redemption_value: float
    updated_at: datetime


class GroupTotal(BaseModel):
    count: int
    total: float


class SalesReport(BaseModel):
    total_orders: int
    total_revenue: float
    average_ticket: float
    by_payment_method: Dict[str, GroupTotal]
    by_delivery_type: Dict[str, GroupTotal]
    cash_entries: float
    cash_exits: float
