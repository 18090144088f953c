"""Printable HTML receipts for the kitchen and for customers."""

from __future__ import annotations

from datetime import datetime
from html import escape
from typing import Iterable, Optional

from .models import PAYMENT_LABELS, Order, OrderItem

DELIVERY_LABELS = {
    "dine_in": "Consumo no Local",
    "delivery": "Entrega",
    "pickup": "Retirada",
}

RECEIPT_STYLE = """
* { margin: 0; padding: 0; box-sizing: border-box; }
body { font-family: 'Courier New', monospace; font-size: 12px; line-height: 1.4; max-width: 80mm; margin: 0 auto; padding: 10px; }
.header { text-align: center; border-bottom: 2px dashed #000; padding-bottom: 10px; margin-bottom: 10px; }
.restaurant-name { font-size: 16px; font-weight: bold; margin-bottom: 5px; }
.section { margin: 10px 0; border-bottom: 1px dashed #000; padding-bottom: 10px; }
.row { display: flex; justify-content: space-between; margin: 3px 0; }
.item { margin: 8px 0; }
.item-header { display: flex; justify-content: space-between; font-weight: bold; }
.item-notes { font-size: 10px; font-style: italic; margin-left: 10px; color: #666; }
.total { font-size: 14px; font-weight: bold; text-align: right; margin-top: 10px; }
.footer { text-align: center; margin-top: 15px; font-size: 10px; }
@media print { body { margin: 0; } }
"""


def money(value: float) -> str:
    return f"R$ {value or 0:.2f}"


def _row(label: str, value: str, strong: bool = False) -> str:
    value_html = f"<strong>{value}</strong>" if strong else f"<span>{value}</span>"
    return f'<div class="row"><span>{label}</span>{value_html}</div>'


def _format_date(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y %H:%M:%S")


def render_receipt(
    order: Order,
    items: Iterable[OrderItem],
    restaurant_name: str,
    table_number: Optional[int] = None,
    kind: str = "customer",
) -> str:
    """Render a self-contained HTML receipt.

    ``kind="kitchen"`` leaves out the totals block and adds a signature
    line; ``kind="customer"`` shows totals and the payment method.
    """
    is_kitchen = kind == "kitchen"
    info = [
        _row("Pedido:", escape(order.order_number), strong=True),
        _row("Data:", _format_date(order.created_at)),
    ]
    if table_number:
        info.append(_row("Mesa:", str(table_number), strong=True))
    if order.delivery_type in DELIVERY_LABELS:
        info.append(_row("Tipo:", DELIVERY_LABELS[order.delivery_type]))

    customer = []
    if order.customer_name:
        customer.append(_row("Cliente:", escape(order.customer_name)))
    if order.customer_phone:
        customer.append(_row("Telefone:", escape(order.customer_phone)))

    lines = []
    for item in items:
        notes = f'<div class="item-notes">Obs: {escape(item.notes)}</div>' if item.notes else ""
        lines.append(
            '<div class="item"><div class="item-header">'
            f"<span>{item.quantity}x {escape(item.name)}</span>"
            f"<span>{money(item.total_price)}</span>"
            f"</div>{notes}</div>"
        )

    totals = ""
    if not is_kitchen:
        rows = [_row("Subtotal:", money(order.subtotal))]
        if order.delivery_fee:
            rows.append(_row("Taxa de entrega:", money(order.delivery_fee)))
        if order.service_fee:
            rows.append(_row("Taxa de serviço:", money(order.service_fee)))
        if order.discount:
            rows.append(_row("Desconto:", f"- {money(order.discount)}"))
        payment = PAYMENT_LABELS.get(order.payment_method, escape(order.payment_method or ""))
        totals = (
            '<div class="section">'
            + "".join(rows)
            + f'<div class="total">Total: {money(order.total)}</div>'
            + _row("Pagamento:", payment)
            + "</div>"
        )

    notes_section = ""
    if order.notes:
        notes_section = (
            '<div class="section"><div style="font-weight: bold;">Observações:</div>'
            f"<div>{escape(order.notes)}</div></div>"
        )

    footer = "<div>Obrigado pela preferência!</div>"
    if is_kitchen:
        footer += "<div style=\"margin-top: 10px;\">_______________________________</div><div>Assinatura do Responsável</div>"

    customer_section = f'<div class="section">{"".join(customer)}</div>' if customer else ""
    return (
        "<!DOCTYPE html>\n<html><head><meta charset=\"utf-8\">"
        f"<title>Pedido {escape(order.order_number)}</title>"
        f"<style>{RECEIPT_STYLE}</style></head><body>"
        '<div class="header">'
        f'<div class="restaurant-name">{escape(restaurant_name)}</div>'
        f"<div>{'PEDIDO - COZINHA' if is_kitchen else 'RECIBO DE PEDIDO'}</div>"
        "</div>"
        f'<div class="section">{"".join(info)}</div>'
        f"{customer_section}"
        '<div class="items"><div style="font-weight: bold; margin-bottom: 5px;">ITENS DO PEDIDO:</div>'
        f"{''.join(lines)}</div>"
        f"{totals}{notes_section}"
        f'<div class="footer">{footer}</div>'
        "</body></html>"
    )
