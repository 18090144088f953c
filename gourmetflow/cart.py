"""Cart accumulator.

A cart is a plain serializable state object. Lines are keyed by the menu
item id plus the set of selected variations, so adding the same item with
the same choices bumps the quantity instead of creating a new line; notes
from both additions are kept on the merged line.
"""

from __future__ import annotations

import hashlib
import json
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field


class VariationSelectionRequired(ValueError):
    """The item has configurable variations and none were chosen."""

    def __init__(self, menu_item_id: int | None, name: str):
        self.menu_item_id = menu_item_id
        super().__init__(f"Choose the options for '{name}' before adding it to the cart")


class SelectedVariation(BaseModel):
    id: Optional[int] = None
    name: str
    type: str = "extra"
    price_adjustment: float = 0


class CartLine(BaseModel):
    line_id: str
    menu_item_id: int
    name: str
    price: float
    quantity: int = 1
    variations: List[SelectedVariation] = Field(default_factory=list)
    notes: Optional[str] = None

    @property
    def final_price(self) -> float:
        return round(self.price + sum(v.price_adjustment for v in self.variations), 2)

    @property
    def total_price(self) -> float:
        return round(self.final_price * self.quantity, 2)

    @property
    def customizations_text(self) -> str | None:
        if not self.variations:
            return None
        return ", ".join(v.name for v in self.variations)

    @property
    def display_name(self) -> str:
        text = self.customizations_text
        return f"{self.name} ({text})" if text else self.name


def base_price(item) -> float:
    if item.promotional_price is not None:
        return item.promotional_price
    return item.price


def line_key(menu_item_id: int, variations: Iterable[SelectedVariation]) -> str:
    chosen = sorted(
        (v.model_dump() for v in variations),
        key=lambda v: (v["type"], v["name"], v["id"] or 0),
    )
    if not chosen:
        return str(menu_item_id)
    digest = hashlib.sha1(json.dumps(chosen, sort_keys=True).encode("utf-8")).hexdigest()[:10]
    return f"{menu_item_id}-{digest}"


def merge_notes(current: Optional[str], extra: Optional[str]) -> Optional[str]:
    extra = (extra or "").strip()
    if not extra:
        return current
    if not current:
        return extra
    if extra in (part.strip() for part in current.split(";")):
        return current
    return f"{current}; {extra}"


class Cart(BaseModel):
    lines: List[CartLine] = Field(default_factory=list)

    @property
    def subtotal(self) -> float:
        return round(sum(line.final_price * line.quantity for line in self.lines), 2)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def is_empty(self) -> bool:
        return not self.lines

    def get_line(self, line_id: str) -> CartLine | None:
        for line in self.lines:
            if line.line_id == line_id:
                return line
        return None

    def add_item(
        self,
        item,
        variations: Optional[Iterable] = None,
        *,
        available_variations: Optional[Iterable] = None,
        quantity: int = 1,
        notes: Optional[str] = None,
    ) -> CartLine:
        """Add ``quantity`` units of ``item`` with the chosen variations.

        ``variations=None`` means no selection was made; when the item has
        active variations that raises :class:`VariationSelectionRequired`.
        An explicit empty list is a valid "no options" choice.
        """
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")
        if variations is None:
            if any(getattr(v, "is_active", True) for v in available_variations or []):
                raise VariationSelectionRequired(item.id, item.name)
            variations = []

        selected = [
            v if isinstance(v, SelectedVariation) else SelectedVariation(
                id=v.id, name=v.name, type=v.type, price_adjustment=v.price_adjustment or 0
            )
            for v in variations
        ]
        key = line_key(item.id, selected)
        existing = self.get_line(key)
        if existing is not None:
            existing.quantity += quantity
            existing.notes = merge_notes(existing.notes, notes)
            return existing

        line = CartLine(
            line_id=key,
            menu_item_id=item.id,
            name=item.name,
            price=base_price(item),
            quantity=quantity,
            variations=selected,
            notes=notes,
        )
        self.lines.append(line)
        return line

    def update_quantity(self, line_id: str, delta: int) -> CartLine | None:
        line = self.get_line(line_id)
        if line is None:
            return None
        line.quantity = max(0, line.quantity + delta)
        if line.quantity == 0:
            self.remove(line_id)
            return None
        return line

    def remove(self, line_id: str) -> None:
        self.lines = [line for line in self.lines if line.line_id != line_id]

    def clear(self) -> None:
        self.lines = []
