"""Discount engine: coupon eligibility, loyalty redemption and order totals."""

from __future__ import annotations

import math
from typing import Optional

from pydantic import BaseModel
from sqlmodel import Session

from . import crud
from .models import Coupon

DEFAULT_REDEMPTION_VALUE = 0.01


class CouponError(ValueError):
    pass


class CouponNotFound(CouponError):
    def __init__(self, code: str):
        self.code = code
        super().__init__("Invalid or expired coupon")


class CouponExhausted(CouponError):
    def __init__(self, code: str):
        self.code = code
        super().__init__("Coupon usage limit reached")


class CouponBelowMinimum(CouponError):
    def __init__(self, code: str, min_order_value: float):
        self.code = code
        self.min_order_value = min_order_value
        super().__init__(f"Minimum order of {min_order_value:.2f} required for this coupon")


class PriceBreakdown(BaseModel):
    subtotal: float
    delivery_fee: float = 0
    service_fee: float = 0
    coupon_discount: float = 0
    loyalty_discount: float = 0
    loyalty_points_used: int = 0
    discount: float = 0
    total: float = 0


def check_coupon(coupon: Optional[Coupon], code: str, subtotal: float) -> Coupon:
    if coupon is None or not coupon.is_active:
        raise CouponNotFound(code)
    if coupon.current_uses >= coupon.max_uses:
        raise CouponExhausted(coupon.code)
    if subtotal < coupon.min_order_value:
        raise CouponBelowMinimum(coupon.code, coupon.min_order_value)
    return coupon


def apply_coupon(session: Session, code: str, subtotal: float) -> Coupon:
    """Look up ``code`` and check it against ``subtotal``.

    Usage is not counted here; the order writer increments it once the
    order has been stored.
    """
    coupon = crud.get_coupon_by_code(session, code)
    return check_coupon(coupon, code, subtotal)


def coupon_discount(coupon: Optional[Coupon], subtotal: float) -> float:
    if coupon is None:
        return 0.0
    if coupon.type == "percentage":
        return round(subtotal * coupon.discount_value / 100, 2)
    if coupon.type == "fixed":
        # may exceed the subtotal; the total is clamped instead
        return round(coupon.discount_value, 2)
    return 0.0


def redeemable_points(requested: int, balance: int) -> int:
    return max(0, min(requested or 0, balance or 0))


def loyalty_discount(
    points_requested: int,
    balance: int,
    redemption_value: float = DEFAULT_REDEMPTION_VALUE,
) -> float:
    points = redeemable_points(points_requested, balance)
    return round(points * redemption_value, 2)


def points_earned(total: float, points_per_currency: float) -> int:
    if total <= 0 or points_per_currency <= 0:
        return 0
    return int(math.floor(round(total * points_per_currency, 6)))


def compute_totals(
    subtotal: float,
    *,
    delivery_type: str = "dine_in",
    delivery_fee: float = 0,
    include_service_fee: bool = False,
    service_fee_rate: float = 0,
    coupon: Optional[Coupon] = None,
    loyalty_points: int = 0,
    loyalty_balance: int = 0,
    redemption_value: float = DEFAULT_REDEMPTION_VALUE,
) -> PriceBreakdown:
    fee = delivery_fee if delivery_type == "delivery" else 0.0
    if coupon is not None and coupon.type == "free_shipping":
        fee = 0.0
    service_fee = round(subtotal * service_fee_rate, 2) if include_service_fee else 0.0

    by_coupon = coupon_discount(coupon, subtotal)
    points_used = redeemable_points(loyalty_points, loyalty_balance)
    by_points = loyalty_discount(loyalty_points, loyalty_balance, redemption_value or DEFAULT_REDEMPTION_VALUE)

    total = max(0.0, subtotal + fee + service_fee - by_coupon - by_points)
    return PriceBreakdown(
        subtotal=round(subtotal, 2),
        delivery_fee=round(fee, 2),
        service_fee=service_fee,
        coupon_discount=by_coupon,
        loyalty_discount=by_points,
        loyalty_points_used=points_used,
        discount=round(by_coupon + by_points, 2),
        total=round(total, 2),
    )
